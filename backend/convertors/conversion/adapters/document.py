"""Document adapters, in fallback order.

1. LibreOfficeAdapter: headless soffice subprocess, bounded by a timeout.
2. PandocAdapter: in-process pypandoc call.
3. RasterMarkupAdapter: for inputs the engines above reject. Step one reduces the
   source to page images (PDF) or recovered text (anything else); step two lays that
   out as HTML and renders the target from the markup (reportlab for PDF, pandoc otherwise).
"""
import base64
import html
import io
import logging
import shutil
from pathlib import Path

import pypandoc
from docx import Document
from pdf2image import convert_from_path
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from convertors.conversion.adapters.base import (
    Adapter,
    ConversionOptions,
    extension_of,
    require_output,
    run_tool,
)
from convertors.conversion.errors import Timeout, ToolFailure, UnsupportedOutputFormat
from convertors.conversion.models import Capability
from convertors.conversion.retry import RetryPolicy
from convertors.conversion.scratch import ScratchManager

logger = logging.getLogger("converter.adapters.document")

# LibreOffice export filters per target
OFFICE_FILTERS = {
    "pdf": "pdf",
    "docx": "docx:MS Word 2007 XML",
    "odt": "odt",
    "rtf": "rtf",
    "txt": "txt:Text (encoded):UTF8",
}
# Pandoc writer / reader names
PANDOC_WRITERS = {"docx": "docx", "odt": "odt", "rtf": "rtf", "txt": "plain", "pdf": "pdf"}
PANDOC_READERS = {"docx": "docx", "odt": "odt", "rtf": "rtf", "txt": "markdown", "html": "html"}

# A fresh soffice profile sometimes fails on first start; one more try is enough
OFFICE_START_RETRY = RetryPolicy(max_attempts=2, delay=1.0, retry_on=(ToolFailure,), never_retry=(Timeout,))

# Plain-text layout for the reportlab fallback
TEXT_FONT = "Helvetica"
TEXT_SIZE = 11
TEXT_LEADING = 14
TEXT_MARGIN = 50


class LibreOfficeAdapter(Adapter):
    name = "libreoffice"
    capability = Capability.DOCUMENT

    def __init__(self, config, scratch: ScratchManager):
        super().__init__(config)
        self.scratch = scratch

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        target = extension_of(output_path)
        export_filter = OFFICE_FILTERS.get(target)
        if export_filter is None:
            raise UnsupportedOutputFormat(f"LibreOffice cannot export {target}")
        # Private outdir: soffice names its output after the input stem.
        # Private profile: a second soffice on a locked profile exits without converting.
        with self.scratch.scratch_dir_scope("office") as outdir, self.scratch.scratch_dir_scope("office-profile") as profile:
            cmd = [
                self.config.libreoffice_path,
                f"-env:UserInstallation={profile.resolve().as_uri()}",
                "--headless",
                "--norestore",
            ]
            if extension_of(input_path) == "pdf":
                cmd.append("--infilter=writer_pdf_import")
            cmd += ["--convert-to", export_filter, "--outdir", str(outdir), str(input_path)]

            def attempt():
                run_tool(
                    self.name,
                    cmd,
                    timeout=self.config.libreoffice_timeout,
                    env=self.config.office_env(),
                )
                produced = outdir / f"{input_path.stem}.{target}"
                require_output(self.name, produced)
                return produced

            produced = OFFICE_START_RETRY.call(attempt, description="LibreOffice conversion")
            shutil.move(str(produced), str(output_path))
        logger.info("LibreOffice conversion completed: %s", output_path.name)


class PandocAdapter(Adapter):
    name = "pandoc"
    capability = Capability.DOCUMENT

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        source = extension_of(input_path)
        target = extension_of(output_path)
        reader = PANDOC_READERS.get(source)
        writer = PANDOC_WRITERS.get(target)
        if reader is None:
            raise ToolFailure(self.name, f"pandoc cannot read {source}")
        if writer is None:
            raise UnsupportedOutputFormat(f"pandoc cannot write {target}")
        _pandoc_file(self.name, self.config, input_path, output_path, reader, writer)
        logger.info("Pandoc conversion completed: %s", output_path.name)


class RasterMarkupAdapter(Adapter):
    name = "raster-markup"
    capability = Capability.DOCUMENT

    def __init__(self, config, scratch: ScratchManager):
        super().__init__(config)
        self.scratch = scratch

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        target = extension_of(output_path)
        if target not in PANDOC_WRITERS:
            raise UnsupportedOutputFormat(f"Unsupported document output format: {target}")
        pages, text = self._rasterize(input_path)
        if target == "pdf":
            _render_pdf(output_path, pages, text)
        else:
            markup = _to_html(input_path.stem, pages, text)
            with self.scratch.with_scratch("markup", "html") as html_path:
                html_path.write_text(markup, encoding="utf-8")
                _pandoc_file(self.name, self.config, html_path, output_path, "html", PANDOC_WRITERS[target])
        require_output(self.name, output_path)
        logger.info("Raster/markup fallback completed: %s (%s page image(s))", output_path.name, len(pages))

    def _rasterize(self, input_path: Path) -> tuple[list, str]:
        """Page images for PDFs, recovered text for everything else."""
        source = extension_of(input_path)
        if source == "pdf":
            try:
                pages = convert_from_path(
                    str(input_path),
                    dpi=self.config.pdf_raster_dpi,
                    last_page=self.config.pdf_raster_max_pages,
                    poppler_path=self.config.poppler_path,
                    timeout=self.config.timeout,
                )
                return pages, ""
            except Exception as e:
                logger.warning("[%s] page rasterization failed, falling back to text: %s", self.name, e)
                return [], _pdf_text(input_path)
        if source == "docx":
            try:
                return [], "\n".join(p.text for p in Document(str(input_path)).paragraphs)
            except Exception as e:
                logger.warning("[%s] python-docx could not open %s: %s", self.name, input_path.name, e)
        # Malformed or unknown: salvage whatever decodes
        return [], input_path.read_bytes().decode("utf-8", errors="replace")


def _pandoc_file(adapter: str, config, src: Path, dest: Path, reader: str, writer: str) -> None:
    """Run pandoc under the adapter timeout. pypandoc only locates the binary."""
    try:
        pandoc = pypandoc.get_pandoc_path()
    except OSError as e:
        raise ToolFailure(adapter, f"pandoc not available: {e}") from e
    cmd = [pandoc, "-f", reader, "-t", writer, "-o", str(dest), str(src)]
    if writer == "pdf":
        cmd.append(f"--pdf-engine={config.pandoc_pdf_engine}")
    run_tool(adapter, cmd, timeout=config.timeout)


def _pdf_text(path: Path) -> str:
    try:
        reader = PdfReader(str(path), strict=False)
        return "\n\n".join((page.extract_text() or "") for page in reader.pages)
    except Exception as e:
        raise ToolFailure("raster-markup", f"could not read PDF: {e}") from e


def _to_html(title: str, pages: list, text: str) -> str:
    parts = [f"<html><head><meta charset='utf-8'><title>{html.escape(title)}</title></head><body>"]
    for page in pages:
        buf = io.BytesIO()
        page.convert("RGB").save(buf, format="PNG")
        data = base64.b64encode(buf.getvalue()).decode("ascii")
        parts.append(f"<p><img src='data:image/png;base64,{data}'/></p>")
    for paragraph in text.split("\n"):
        if paragraph.strip():
            parts.append(f"<p>{html.escape(paragraph)}</p>")
    parts.append("</body></html>")
    return "\n".join(parts)


def _render_pdf(output_path: Path, pages: list, text: str) -> None:
    """reportlab rendering: one page image per sheet, or text wrapped to the page width."""
    width, height = A4
    pdf = canvas.Canvas(str(output_path), pagesize=A4)
    for page in pages:
        scale = min(width / page.width, height / page.height)
        w, h = page.width * scale, page.height * scale
        pdf.drawImage(ImageReader(page.convert("RGB")), (width - w) / 2, (height - h) / 2, w, h)
        pdf.showPage()
    if text.strip() or not pages:
        pdf.setFont(TEXT_FONT, TEXT_SIZE)
        y = height - TEXT_MARGIN
        for paragraph in text.splitlines():
            for line in simpleSplit(paragraph, TEXT_FONT, TEXT_SIZE, width - 2 * TEXT_MARGIN) or [""]:
                pdf.drawString(TEXT_MARGIN, y, line)
                y -= TEXT_LEADING
                if y < TEXT_MARGIN:
                    pdf.showPage()
                    pdf.setFont(TEXT_FONT, TEXT_SIZE)
                    y = height - TEXT_MARGIN
        pdf.showPage()
    pdf.save()
