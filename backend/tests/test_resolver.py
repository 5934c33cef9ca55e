import pytest

from convertors.conversion.errors import NoPipeline
from convertors.conversion.formats import OUTPUT_FORMATS, Category, classify
from convertors.conversion.models import Capability
from convertors.conversion.resolver import MAX_STAGES, bind, resolve
from convertors.conversion.scratch import ScratchManager


def test_direct_image_conversion_is_single_stage():
    plan = resolve("png", Category.IMAGE, "jpg")
    assert len(plan) == 1
    assert plan.stages[0].capability is Capability.RASTER_IMAGE
    assert plan.final_extension == "jpg"
    assert plan.intermediate_extensions == []


def test_document_to_image_goes_through_pdf():
    plan = resolve("docx", Category.DOCUMENT, "png")
    assert [s.capability for s in plan.stages] == [Capability.DOCUMENT, Capability.PDF_RASTER]
    assert plan.intermediate_extensions == ["pdf"]


def test_image_to_document_goes_through_pdf():
    plan = resolve("jpg", Category.IMAGE, "docx")
    assert [s.capability for s in plan.stages] == [Capability.RASTER_IMAGE, Capability.DOCUMENT]


def test_pdf_sources():
    assert resolve("pdf", Category.PDF, "gif").stages[0].capability is Capability.PDF_RASTER
    assert resolve("pdf", Category.PDF, "docx").stages[0].capability is Capability.DOCUMENT


def test_audio_to_video_is_media():
    plan = resolve("mp3", Category.AUDIO, "mp4")
    assert plan.stages[0].capability is Capability.MEDIA


@pytest.mark.parametrize(
    "source, category, target",
    [
        ("mp3", Category.AUDIO, "zip"),
        ("zip", Category.IMAGE, "png"),
        ("epub", Category.DOCUMENT, "pdf"),
        ("svg", Category.IMAGE, "png"),
    ],
)
def test_unconnected_pairs_raise_no_pipeline(source, category, target):
    with pytest.raises(NoPipeline):
        resolve(source, category, target)


def test_compressor_only_accepts_images():
    assert resolve("png", Category.COMPRESSOR, "png").stages[0].capability is Capability.RASTER_IMAGE
    with pytest.raises(NoPipeline):
        resolve("docx", Category.COMPRESSOR, "png")


def test_every_reachable_plan_ends_on_target(tmp_path):
    scratch = ScratchManager(tmp_path / "scratch")
    sources = ["png", "jpg", "svg", "docx", "txt", "pdf", "mp3", "mp4", "zip", "epub"]
    for source in sources:
        category = classify(source)
        for target in sorted(OUTPUT_FORMATS[category]):
            try:
                plan = resolve(source, category, target)
            except NoPipeline:
                continue
            assert plan.final_extension == target
            assert len(plan) <= MAX_STAGES
            source_path = tmp_path / f"in.{source}"
            output_path = tmp_path / f"out.{target}"
            stages = bind(plan, source_path, output_path, scratch)
            assert stages[0].input_path == source_path
            assert stages[-1].output_path == output_path
            for stage in stages[:-1]:
                assert stage.intermediate
                assert stage.output_path not in (source_path, output_path)
                assert stage.output_path.parent == scratch.scratch_dir


def test_bind_chains_stage_paths(tmp_path):
    scratch = ScratchManager(tmp_path / "scratch")
    plan = resolve("docx", Category.DOCUMENT, "png")
    first, second = bind(plan, tmp_path / "notes.docx", tmp_path / "notes.png", scratch)
    assert first.output_path == second.input_path
    assert first.output_path.suffix == ".pdf"
    assert not second.intermediate
