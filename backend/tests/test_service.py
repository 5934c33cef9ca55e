import pytest
from conftest import FakeAdapter

from convertors.conversion.errors import BatchValidationError, NoPipeline, ToolFailure, UnsupportedInputFormat
from convertors.conversion.models import Capability, ItemStatus
from convertors.conversion.service import ConversionService, parse_formats


def descriptor(type_name, target, client_id, sub_section=None):
    return {"type": type_name, "target": target, "subSection": sub_section, "id": client_id}


def test_batch_of_two_produces_distinct_outputs(service, stage_upload, calls):
    uploads = [stage_upload("photo.png"), stage_upload("notes.docx")]
    result = service.convert_batch(uploads, [descriptor("image", "jpg", "a"), descriptor("document", "pdf", "b")])

    assert [o.client_id for o in result.outcomes] == ["a", "b"]
    names = [o.output_name for o in result.outcomes]
    assert names[0] != names[1]
    assert names[0].startswith("photo_") and names[0].endswith(".jpg")
    assert names[1].startswith("notes_") and names[1].endswith(".pdf")
    for outcome in result.outcomes:
        assert outcome.output_path.parent == service.converted_dir
        assert outcome.output_path.is_file()
    assert [name for name, _, _ in calls] == ["fake-raster_image", "fake-document"]
    assert not any(u.path.exists() for u in uploads)


def test_mismatched_counts_fail_before_any_adapter(service, stage_upload, calls):
    uploads = [stage_upload("photo.png")]
    with pytest.raises(BatchValidationError) as exc:
        service.convert_batch(uploads, [descriptor("image", "jpg", "a"), descriptor("image", "png", "b")])
    assert "Files: 1" in exc.value.message
    assert "Formats: 2" in exc.value.message
    assert calls == []
    assert not uploads[0].path.exists()


def test_empty_and_oversized_batches(service, stage_upload):
    with pytest.raises(BatchValidationError, match="No files uploaded"):
        service.convert_batch([], [])
    uploads = [stage_upload(f"p{i}.png") for i in range(6)]
    with pytest.raises(BatchValidationError, match="Maximum 5 files allowed"):
        service.convert_batch(uploads, [descriptor("image", "jpg", str(i)) for i in range(6)])
    assert not any(u.path.exists() for u in uploads)


def test_target_label_uses_first_token(service, stage_upload):
    result = service.convert_batch([stage_upload("photo.png")], [descriptor("image", "PNG (lossless)", "a")])
    assert result.outcomes[0].output_name.endswith(".png")


def test_compressor_subsection_sets_compress(service, stage_upload, fake_registry):
    seen = []

    class Recording(FakeAdapter):
        def convert(self, input_path, output_path, options):
            seen.append(options.compress)
            super().convert(input_path, output_path, options)

    fake_registry[Capability.RASTER_IMAGE] = [Recording("pillow", Capability.RASTER_IMAGE)]
    service.convert_batch([stage_upload("photo.png")], [descriptor("image", "jpg", "a", sub_section="compressor")])
    assert seen == [True]


def test_two_stage_plan_removes_intermediate(service, stage_upload, calls):
    result = service.convert_batch([stage_upload("notes.docx")], [descriptor("document", "png", "a")])
    assert [name for name, _, _ in calls] == ["fake-document", "fake-pdf_raster"]
    intermediate = calls[0][2]
    assert intermediate.suffix == ".pdf"
    assert calls[1][1] == intermediate
    assert not intermediate.exists()
    assert result.outcomes[0].output_path.suffix == ".png"
    assert list(service.scratch.scratch_dir.iterdir()) == []


def test_first_failure_aborts_and_discards_earlier_outputs(service, stage_upload, fake_registry, calls):
    fake_registry[Capability.MEDIA] = [FakeAdapter("ffmpeg", Capability.MEDIA, fail=True, calls=calls)]
    uploads = [stage_upload("photo.png"), stage_upload("song.mp3"), stage_upload("notes.docx")]
    formats = [descriptor("image", "jpg", "a"), descriptor("audio", "wav", "b"), descriptor("document", "pdf", "c")]
    with pytest.raises(ToolFailure) as exc:
        service.convert_batch(uploads, formats)
    assert exc.value.adapter == "ffmpeg"
    assert [name for name, _, _ in calls] == ["fake-raster_image", "ffmpeg"]
    assert list(service.converted_dir.iterdir()) == []
    assert not any(u.path.exists() for u in uploads)


def test_partial_mode_reports_each_item(service, stage_upload, fake_registry):
    fake_registry[Capability.MEDIA] = [FakeAdapter("ffmpeg", Capability.MEDIA, fail=True)]
    uploads = [stage_upload("photo.png"), stage_upload("song.mp3"), stage_upload("virus.exe")]
    formats = [descriptor("image", "jpg", "a"), descriptor("audio", "wav", "b"), descriptor("image", "png", "c")]
    result = service.convert_batch(uploads, formats, partial=True)

    assert [o.client_id for o in result.succeeded] == ["a"]
    failed = {o.client_id: o for o in result.failed}
    assert failed["b"].kind == "tool_failure"
    assert failed["c"].kind == "unsupported_input_format"
    assert result.succeeded[0].output_path.is_file()
    assert not any(u.path.exists() for u in uploads)


def test_unsupported_source_runs_no_adapter(service, stage_upload, calls):
    with pytest.raises(UnsupportedInputFormat):
        service.convert_batch([stage_upload("virus.exe")], [descriptor("image", "png", "a")])
    assert calls == []


def test_unconnected_pair_is_no_pipeline(service, stage_upload, calls):
    with pytest.raises(NoPipeline):
        service.convert_batch([stage_upload("song.mp3")], [descriptor("ebook", "epub", "a")])
    assert calls == []


def test_missing_upload_is_artifact_missing(service, stage_upload):
    upload = stage_upload("photo.png")
    upload.path.unlink()
    result = service.convert_batch([upload], [descriptor("image", "jpg", "a")], partial=True)
    assert result.failed[0].kind == "artifact_missing"
    assert "photo.png" in result.failed[0].message


def test_delete_output_is_idempotent(service, stage_upload):
    result = service.convert_batch([stage_upload("photo.png")], [descriptor("image", "jpg", "a")])
    name = result.outcomes[0].output_name
    assert service.delete_output(name)
    assert service.delete_output(name)
    assert not service.output_file(name).exists()


def test_max_files_is_configurable(tmp_path, adapter_config, fake_registry, stage_upload):
    svc = ConversionService(registry=fake_registry, config=adapter_config, converted_dir=tmp_path / "out", max_files=1)
    with pytest.raises(BatchValidationError, match="Maximum 1 files allowed"):
        svc.convert_batch([stage_upload("a.png"), stage_upload("b.png")], [descriptor("image", "jpg", "1")] * 2)


@pytest.mark.parametrize("raw", ["not json", '{"type": "image"}', '["jpg"]'])
def test_parse_formats_rejects_malformed_payloads(raw):
    with pytest.raises(BatchValidationError):
        parse_formats(raw)


def test_parse_formats():
    assert parse_formats('[{"type": "image", "target": "jpg", "id": "1"}]') == [
        {"type": "image", "target": "jpg", "id": "1"}
    ]
    assert parse_formats(None) == []


def test_failed_outcome_names_the_adapter(service, stage_upload, fake_registry):
    fake_registry[Capability.MEDIA] = [FakeAdapter("ffmpeg", Capability.MEDIA, fail=True)]
    result = service.convert_batch([stage_upload("song.mp3")], [descriptor("audio", "wav", "a")], partial=True)
    assert result.failed[0].attempted_adapters == ["ffmpeg"]


def test_outcomes_are_either_succeeded_or_failed(service, stage_upload, fake_registry):
    fake_registry[Capability.MEDIA] = [FakeAdapter("ffmpeg", Capability.MEDIA, fail=True)]
    uploads = [stage_upload("photo.png"), stage_upload("song.mp3")]
    result = service.convert_batch(
        uploads, [descriptor("image", "jpg", "a"), descriptor("audio", "wav", "b")], partial=True
    )
    assert [o.status for o in result.outcomes] == [ItemStatus.SUCCEEDED, ItemStatus.FAILED]
    assert set(ItemStatus) == {ItemStatus.SUCCEEDED, ItemStatus.FAILED}
