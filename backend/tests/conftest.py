from pathlib import Path

import pytest
from PIL import Image

from convertors.config import build_adapter_config
from convertors.conversion.adapters.base import Adapter, ConversionOptions
from convertors.conversion.errors import ToolFailure
from convertors.conversion.models import Capability, StagedUpload
from convertors.conversion.service import ConversionService


class FakeAdapter(Adapter):
    """Writes a fixed payload, or raises ToolFailure when built with fail=True."""

    def __init__(self, name, capability=Capability.DOCUMENT, fail=False, calls=None):
        self.name = name
        self.capability = capability
        self.fail = fail
        self.calls = calls if calls is not None else []

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        self.calls.append((self.name, Path(input_path), Path(output_path)))
        if self.fail:
            raise ToolFailure(self.name, "simulated failure")
        output_path.write_bytes(b"converted by " + self.name.encode())


@pytest.fixture
def adapter_config(tmp_path):
    return build_adapter_config(
        scratch_dir=tmp_path / "scratch",
        xdg_runtime_dir=str(tmp_path / "runtime"),
    )


@pytest.fixture
def calls():
    return []


@pytest.fixture
def fake_registry(calls):
    return {capability: [FakeAdapter(f"fake-{capability.value}", capability, calls=calls)] for capability in Capability}


@pytest.fixture
def service(tmp_path, adapter_config, fake_registry):
    return ConversionService(
        registry=fake_registry,
        config=adapter_config,
        converted_dir=tmp_path / "converted",
    )


@pytest.fixture
def stage_upload(tmp_path):
    uploads = tmp_path / "uploads"
    uploads.mkdir()

    def _stage(name: str, data: bytes = b"data") -> StagedUpload:
        path = uploads / f"upload_{name}"
        path.write_bytes(data)
        return StagedUpload(path=path, original_name=name)

    return _stage


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "photo.png"
    Image.new("RGBA", (40, 30), (200, 40, 40, 128)).save(path)
    return path
