"""Availability checks for the external tools, reported by /status."""
import logging
import shutil
import subprocess

from convertors.config import AdapterConfig

logger = logging.getLogger("converter.adapters.toolcheck")


def _tools(config: AdapterConfig) -> list[tuple[str, list[str]]]:
    return [
        ("FFmpeg", [config.ffmpeg_path, "-version"]),
        ("LibreOffice", [config.libreoffice_path, "--version"]),
        ("Pandoc", ["pandoc", "--version"]),
        ("Ghostscript", ["gs", "--version"]),
        ("Poppler", ["pdftoppm", "-v"]),
        ("Calibre", [config.ebook_convert_path, "--version"]),
    ]


def check_tool(name: str, cmd: list[str], timeout: float = 10) -> dict:
    if shutil.which(cmd[0]) is None:
        return {"name": name, "status": "Failed", "details": f"{cmd[0]} not found in PATH"}
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (subprocess.SubprocessError, OSError) as e:
        logger.error("%s check failed: %s", name, e)
        return {"name": name, "status": "Failed", "details": str(e)}
    # pdftoppm prints its version on stderr
    output = (result.stdout or result.stderr or "").strip()
    first_line = output.splitlines()[0] if output else ""
    if result.returncode != 0 and name != "Poppler":
        logger.error("%s check failed (exit %s): %s", name, result.returncode, first_line)
        return {"name": name, "status": "Failed", "details": first_line or f"exit {result.returncode}"}
    logger.info("%s version: %s", name, first_line)
    return {"name": name, "status": "OK", "details": first_line}


def check_tools(config: AdapterConfig) -> list[dict]:
    return [check_tool(name, cmd) for name, cmd in _tools(config)]
