"""Application configuration. Loads from environment and .env file."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# Paths (override with env)
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads")))
CONVERTED_DIR = Path(os.getenv("CONVERTED_DIR", str(BASE_DIR / "converted")))
SCRATCH_DIR = Path(os.getenv("SCRATCH_DIR", str(BASE_DIR / "tmp")))
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
CONVERTED_DIR.mkdir(parents=True, exist_ok=True)
SCRATCH_DIR.mkdir(parents=True, exist_ok=True)

# Limits (env)
MAX_FILES_PER_REQUEST = int(os.getenv("MAX_FILES_PER_REQUEST", "5"))
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "50"))
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024

# External tools. Timeouts are in seconds; every subprocess is killed when it runs over.
CONVERSION_TIMEOUT = int(os.getenv("CONVERSION_TIMEOUT", "300"))
LIBREOFFICE_PATH = os.getenv("LIBREOFFICE_PATH", "soffice")
LIBREOFFICE_TIMEOUT = int(os.getenv("LIBREOFFICE_TIMEOUT", "120"))
# pypandoc locates pandoc itself (PATH or PYPANDOC_PANDOC); PDF output needs an engine
PANDOC_PDF_ENGINE = os.getenv("PANDOC_PDF_ENGINE", "wkhtmltopdf")
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
EBOOK_CONVERT_PATH = os.getenv("EBOOK_CONVERT_PATH", "ebook-convert")
POPPLER_PATH = os.getenv("POPPLER_PATH", "").strip() or None
PDF_RASTER_DPI = int(os.getenv("PDF_RASTER_DPI", "100"))
PDF_RASTER_MAX_PAGES = int(os.getenv("PDF_RASTER_MAX_PAGES", "10"))

# LibreOffice needs a writable profile home and runtime dir
OFFICE_HOME = os.getenv("OFFICE_HOME", os.getenv("HOME", "/tmp"))
XDG_RUNTIME_DIR = os.getenv("XDG_RUNTIME_DIR", str(SCRATCH_DIR / "office-runtime"))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5001"))
FRONTEND_URL = os.getenv("FRONTEND_URL", "").strip()
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]
if FRONTEND_URL and FRONTEND_URL not in CORS_ORIGINS:
    CORS_ORIGINS.append(FRONTEND_URL)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("converter")


@dataclass
class AdapterConfig:
    """Tool paths, limits and environment handed to the adapters at construction."""

    scratch_dir: Path = SCRATCH_DIR
    timeout: int = CONVERSION_TIMEOUT
    libreoffice_path: str = LIBREOFFICE_PATH
    libreoffice_timeout: int = LIBREOFFICE_TIMEOUT
    pandoc_pdf_engine: str = PANDOC_PDF_ENGINE
    ffmpeg_path: str = FFMPEG_PATH
    ebook_convert_path: str = EBOOK_CONVERT_PATH
    poppler_path: Optional[str] = POPPLER_PATH
    pdf_raster_dpi: int = PDF_RASTER_DPI
    pdf_raster_max_pages: int = PDF_RASTER_MAX_PAGES
    office_home: str = OFFICE_HOME
    xdg_runtime_dir: str = XDG_RUNTIME_DIR
    extra_env: dict[str, str] = field(default_factory=dict)

    def office_env(self) -> dict[str, str]:
        """Environment for LibreOffice: inherits the process env, pins HOME and the runtime dir."""
        env = os.environ.copy()
        env["HOME"] = self.office_home
        env["XDG_RUNTIME_DIR"] = self.xdg_runtime_dir
        env.update(self.extra_env)
        return env


def build_adapter_config(**overrides) -> AdapterConfig:
    cfg = AdapterConfig(**overrides)
    Path(cfg.xdg_runtime_dir).mkdir(parents=True, exist_ok=True)
    return cfg
