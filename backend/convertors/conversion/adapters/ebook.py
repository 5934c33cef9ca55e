"""Ebook adapter (calibre ebook-convert subprocess)."""
import logging
from pathlib import Path

from convertors.conversion.adapters.base import Adapter, ConversionOptions, require_output, run_tool
from convertors.conversion.models import Capability

logger = logging.getLogger("converter.adapters.ebook")


class EbookAdapter(Adapter):
    name = "ebook-convert"
    capability = Capability.EBOOK

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        # ebook-convert picks formats from the file extensions
        run_tool(
            self.name,
            [self.config.ebook_convert_path, str(input_path), str(output_path)],
            timeout=self.config.timeout,
        )
        require_output(self.name, output_path)
        logger.info("Ebook conversion completed: %s", output_path.name)
