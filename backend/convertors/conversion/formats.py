"""Format allow-list and classification. Pure lookups over static tables."""
from enum import Enum
from typing import Union

from convertors.conversion.errors import UnsupportedInputFormat, UnsupportedOutputFormat

IMAGE_EXTENSIONS = ("bmp", "eps", "gif", "ico", "png", "svg", "tga", "tiff", "wbmp", "webp", "jpg", "jpeg")
DOCUMENT_EXTENSIONS = ("pdf", "docx", "txt", "rtf", "odt")
AUDIO_EXTENSIONS = ("mp3", "wav", "aac", "flac", "ogg", "opus", "wma", "aiff", "m4v", "mmf", "3g2")
VIDEO_EXTENSIONS = ("mp4", "avi", "mov", "webm", "mkv", "flv", "wmv")
ARCHIVE_EXTENSIONS = ("zip", "7z")
EBOOK_EXTENSIONS = ("epub", "mobi", "azw3")

ALL_EXTENSIONS = (
    IMAGE_EXTENSIONS
    + DOCUMENT_EXTENSIONS
    + AUDIO_EXTENSIONS
    + VIDEO_EXTENSIONS
    + ARCHIVE_EXTENSIONS
    + EBOOK_EXTENSIONS
)

VECTOR_IMAGE_EXTENSIONS = frozenset({"svg"})
RASTER_IMAGE_EXTENSIONS = frozenset(IMAGE_EXTENSIONS) - VECTOR_IMAGE_EXTENSIONS
NON_PDF_DOCUMENT_EXTENSIONS = frozenset(DOCUMENT_EXTENSIONS) - {"pdf"}
MEDIA_EXTENSIONS = frozenset(AUDIO_EXTENSIONS) | frozenset(VIDEO_EXTENSIONS)
# Audio containers with no picture stream; m4v and 3g2 are listed as audio but carry video
AUDIO_ONLY_EXTENSIONS = frozenset({"mp3", "wav", "aac", "flac", "ogg", "opus", "wma", "aiff", "mmf"})
VIDEO_CONTAINER_EXTENSIONS = frozenset(VIDEO_EXTENSIONS) | {"m4v", "3g2"}


class Category(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    PDF = "pdf"
    AUDIO = "audio"
    VIDEO = "video"
    ARCHIVE = "archive"
    EBOOK = "ebook"
    COMPRESSOR = "compressor"


# Target extensions each declared category accepts
OUTPUT_FORMATS: dict[Category, frozenset] = {
    Category.IMAGE: frozenset(IMAGE_EXTENSIONS) | frozenset(DOCUMENT_EXTENSIONS),
    Category.DOCUMENT: frozenset(DOCUMENT_EXTENSIONS) | RASTER_IMAGE_EXTENSIONS,
    Category.PDF: frozenset({"jpg", "png", "gif"}) | NON_PDF_DOCUMENT_EXTENSIONS,
    Category.AUDIO: MEDIA_EXTENSIONS,
    Category.VIDEO: MEDIA_EXTENSIONS,
    Category.ARCHIVE: frozenset(ARCHIVE_EXTENSIONS),
    Category.EBOOK: frozenset(EBOOK_EXTENSIONS),
    Category.COMPRESSOR: frozenset({"jpg", "png", "svg"}),
}

_PRIMARY: dict[str, Category] = {}
for _category, _extensions in (
    (Category.IMAGE, IMAGE_EXTENSIONS),
    (Category.DOCUMENT, NON_PDF_DOCUMENT_EXTENSIONS),
    (Category.PDF, ("pdf",)),
    (Category.AUDIO, AUDIO_EXTENSIONS),
    (Category.VIDEO, VIDEO_EXTENSIONS),
    (Category.ARCHIVE, ARCHIVE_EXTENSIONS),
    (Category.EBOOK, EBOOK_EXTENSIONS),
):
    for _ext in _extensions:
        _PRIMARY[_ext] = _category

# Descriptor "type" values sent by existing clients
_CATEGORY_ALIASES = {"pdfs": Category.PDF}


def normalize_extension(extension: str) -> str:
    return (extension or "").strip().lower().lstrip(".")


def classify(extension: str) -> Category:
    """Primary category for an extension. Raises UnsupportedInputFormat outside the allow-list."""
    ext = normalize_extension(extension)
    category = _PRIMARY.get(ext)
    if category is None:
        raise UnsupportedInputFormat(
            f"Unsupported input format: {ext or 'unknown'}. Supported formats: {', '.join(ALL_EXTENSIONS)}"
        )
    return category


def is_supported(extension: str) -> bool:
    return normalize_extension(extension) in _PRIMARY


def parse_category(value: Union[str, Category]) -> Category:
    if isinstance(value, Category):
        return value
    key = (value or "").strip().lower()
    if key in _CATEGORY_ALIASES:
        return _CATEGORY_ALIASES[key]
    try:
        return Category(key)
    except ValueError:
        supported = ", ".join(c.value for c in Category)
        raise UnsupportedOutputFormat(f"Unsupported conversion type: {value}. Supported types: {supported}") from None


def validate_target(category: Category, extension: str) -> None:
    ext = normalize_extension(extension)
    allowed = OUTPUT_FORMATS[category]
    if ext not in allowed:
        raise UnsupportedOutputFormat(
            f"Unsupported output format: {ext or 'unknown'} for type {category.value}. "
            f"Supported formats: {', '.join(sorted(allowed))}"
        )
