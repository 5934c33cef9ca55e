"""Image adapters: Pillow for raster formats (and PDF output), scour for SVG."""
import logging
from pathlib import Path

from PIL import Image
from scour import scour

from convertors.conversion.adapters.base import Adapter, ConversionOptions, extension_of
from convertors.conversion.errors import ToolFailure, UnsupportedOutputFormat
from convertors.conversion.models import Capability

logger = logging.getLogger("converter.adapters.image")

# extension -> Pillow format name. wbmp is readable by nothing we ship, svg is vector only.
PILLOW_FORMATS = {
    "bmp": "BMP",
    "eps": "EPS",
    "gif": "GIF",
    "ico": "ICO",
    "png": "PNG",
    "tga": "TGA",
    "tiff": "TIFF",
    "webp": "WEBP",
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "pdf": "PDF",
}
# Formats that cannot hold an alpha channel or palette
RGB_ONLY = {"JPEG", "PDF", "EPS"}
# Modes every other Pillow writer we use accepts as-is
WRITABLE_MODES = ("RGB", "RGBA", "L", "P", "1")

COMPRESSED_JPEG_QUALITY = 80
COMPRESSED_PNG_LEVEL = 9
DEFAULT_QUALITY = 90


class RasterImageAdapter(Adapter):
    name = "pillow"
    capability = Capability.RASTER_IMAGE

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        fmt = PILLOW_FORMATS.get(extension_of(output_path))
        if fmt is None:
            raise UnsupportedOutputFormat(f"Unsupported image output format: {extension_of(output_path)}")
        try:
            with Image.open(input_path) as img:
                img.load()
                out = img
                if fmt in RGB_ONLY and img.mode not in ("RGB", "L", "CMYK"):
                    out = _flatten(img)
                elif fmt not in RGB_ONLY and img.mode not in WRITABLE_MODES:
                    # CMYK, LA, I;16 and the like: fall back to a mode every writer takes
                    out = img.convert("RGBA" if "A" in img.getbands() else "RGB")
                out.save(str(output_path), format=fmt, **self._save_kwargs(fmt, options.compress))
        except (OSError, ValueError) as e:
            raise ToolFailure(self.name, f"image conversion failed: {e}") from e
        logger.info("Image conversion (%s%s) completed: %s", fmt, ", compressed" if options.compress else "", output_path.name)

    @staticmethod
    def _save_kwargs(fmt: str, compress: bool) -> dict:
        if fmt == "JPEG":
            return {"quality": COMPRESSED_JPEG_QUALITY if compress else DEFAULT_QUALITY, "optimize": True}
        if fmt == "PNG":
            return {"optimize": True, "compress_level": COMPRESSED_PNG_LEVEL if compress else 6}
        if fmt == "WEBP":
            return {"quality": COMPRESSED_JPEG_QUALITY if compress else DEFAULT_QUALITY, "method": 6 if compress else 4}
        if fmt == "PDF":
            return {"resolution": 100.0}
        return {}


def _flatten(img: Image.Image) -> Image.Image:
    """Composite transparency onto white; JPEG and PDF have no alpha."""
    rgba = img.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


class VectorImageAdapter(Adapter):
    """SVG -> SVG through the scour optimizer; never touches the raster engine."""

    name = "scour"
    capability = Capability.VECTOR_IMAGE

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        if extension_of(output_path) != "svg":
            raise UnsupportedOutputFormat(f"SVG optimizer only writes svg, not {extension_of(output_path)}")
        opts = scour.sanitizeOptions()
        opts.enable_viewboxing = False
        opts.strip_comments = True
        opts.remove_metadata = True
        opts.shorten_ids = options.compress
        opts.indent_type = "none" if options.compress else "space"
        try:
            svg = input_path.read_text(encoding="utf-8")
            result = scour.scourString(svg, opts)
        except Exception as e:
            raise ToolFailure(self.name, f"SVG compression failed: {e}") from e
        output_path.write_text(result, encoding="utf-8")
        logger.info("SVG optimization completed: %s (%s -> %s bytes)", output_path.name, len(svg), len(result))
