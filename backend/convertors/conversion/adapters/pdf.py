"""PDF rasterizer: poppler via pdf2image, pages stacked into one image."""
import logging
import subprocess
from pathlib import Path

from pdf2image import convert_from_path
from pdf2image.exceptions import PDFInfoNotInstalledError
from PIL import Image

from convertors.conversion.adapters.base import Adapter, ConversionOptions, extension_of
from convertors.conversion.adapters.image import PILLOW_FORMATS, RasterImageAdapter
from convertors.conversion.errors import Timeout, ToolFailure, UnsupportedOutputFormat
from convertors.conversion.models import Capability

logger = logging.getLogger("converter.adapters.pdf")


def stack_pages(pages: list[Image.Image]) -> Image.Image:
    """Stack page renders vertically, centred on a white canvas as wide as the widest page."""
    if len(pages) == 1:
        return pages[0].convert("RGB")
    width = max(p.width for p in pages)
    height = sum(p.height for p in pages)
    sheet = Image.new("RGB", (width, height), (255, 255, 255))
    top = 0
    for page in pages:
        sheet.paste(page.convert("RGB"), ((width - page.width) // 2, top))
        top += page.height
    return sheet


class PdfRasterAdapter(Adapter):
    name = "pdf2image"
    capability = Capability.PDF_RASTER

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        ext = extension_of(output_path)
        fmt = PILLOW_FORMATS.get(ext)
        if fmt is None or fmt == "PDF":
            raise UnsupportedOutputFormat(f"Unsupported PDF output format: {ext}")
        try:
            pages = convert_from_path(
                str(input_path),
                dpi=self.config.pdf_raster_dpi,
                first_page=1,
                last_page=self.config.pdf_raster_max_pages,
                poppler_path=self.config.poppler_path,
                timeout=self.config.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise Timeout(self.name, self.config.timeout) from e
        except PDFInfoNotInstalledError as e:
            raise ToolFailure(self.name, "poppler is not installed or not found in PATH") from e
        except Exception as e:
            raise ToolFailure(self.name, f"PDF to {ext} conversion failed: {e}") from e
        if not pages:
            raise ToolFailure(self.name, "PDF has no pages")
        sheet = stack_pages(pages)
        if fmt == "GIF":
            sheet = sheet.convert("P", palette=Image.Palette.ADAPTIVE)
        sheet.save(str(output_path), format=fmt, **RasterImageAdapter._save_kwargs(fmt, options.compress))
        logger.info("PDF to %s conversion completed: %s (%s page(s))", ext, output_path.name, len(pages))
