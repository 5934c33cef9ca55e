"""Archive repackaging between zip and 7z (zipfile, py7zr)."""
import logging
import zipfile
from pathlib import Path

import py7zr

from convertors.conversion.adapters.base import Adapter, ConversionOptions, extension_of
from convertors.conversion.errors import ToolFailure, UnsupportedOutputFormat
from convertors.conversion.models import Capability
from convertors.conversion.scratch import ScratchManager

logger = logging.getLogger("converter.adapters.archive")

ARCHIVE_TARGETS = ("zip", "7z")


class ArchiveAdapter(Adapter):
    name = "archive"
    capability = Capability.ARCHIVE

    def __init__(self, config, scratch: ScratchManager):
        super().__init__(config)
        self.scratch = scratch

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        target = extension_of(output_path)
        if target not in ARCHIVE_TARGETS:
            raise UnsupportedOutputFormat(f"Unsupported archive format: {target}")
        with self.scratch.scratch_dir_scope("unpacked") as workdir:
            try:
                self._extract(input_path, workdir)
                self._pack(workdir, output_path, target)
            except (zipfile.BadZipFile, py7zr.Bad7zFile, OSError) as e:
                raise ToolFailure(self.name, f"Archive conversion failed: {e}") from e
        logger.info("Archive conversion completed: %s", output_path.name)

    def _extract(self, input_path: Path, workdir: Path) -> None:
        source = extension_of(input_path)
        if source == "zip":
            with zipfile.ZipFile(input_path, "r") as zf:
                for member in zf.infolist():
                    _check_member(member.filename)
                zf.extractall(workdir)
        elif source == "7z":
            with py7zr.SevenZipFile(input_path, "r") as archive:
                for name in archive.getnames():
                    _check_member(name)
                archive.extractall(path=workdir)
        else:
            raise ToolFailure(self.name, f"cannot unpack .{source}")

    @staticmethod
    def _pack(workdir: Path, output_path: Path, target: str) -> None:
        files = sorted(p for p in workdir.rglob("*") if p.is_file())
        if target == "7z":
            with py7zr.SevenZipFile(output_path, "w") as archive:
                for item in files:
                    archive.write(item, str(item.relative_to(workdir)))
        else:
            with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zf:
                for item in files:
                    zf.write(item, str(item.relative_to(workdir)))


def _check_member(name: str) -> None:
    """Reject absolute paths and parent traversal before extracting."""
    parts = Path(name).parts
    if name.startswith(("/", "\\")) or ".." in parts:
        raise ToolFailure("archive", f"unsafe member path in archive: {name}")
