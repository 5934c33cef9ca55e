import pytest

from convertors.conversion.errors import UnsupportedInputFormat, UnsupportedOutputFormat
from convertors.conversion.formats import (
    Category,
    classify,
    is_supported,
    normalize_extension,
    parse_category,
    validate_target,
)


@pytest.mark.parametrize(
    "ext, category",
    [
        ("png", Category.IMAGE),
        (".JPG", Category.IMAGE),
        ("svg", Category.IMAGE),
        ("docx", Category.DOCUMENT),
        ("pdf", Category.PDF),
        ("mp3", Category.AUDIO),
        ("mkv", Category.VIDEO),
        ("7z", Category.ARCHIVE),
        ("epub", Category.EBOOK),
    ],
)
def test_classify_primary_category(ext, category):
    assert classify(ext) is category


def test_unknown_extension_is_rejected():
    with pytest.raises(UnsupportedInputFormat) as exc:
        classify("exe")
    assert "exe" in exc.value.message
    assert exc.value.kind == "unsupported_input_format"
    assert not is_supported("exe")
    assert not is_supported("")


def test_normalize_extension():
    assert normalize_extension(" .PnG ") == "png"
    assert normalize_extension(None) == ""


def test_parse_category_accepts_pdfs_alias():
    assert parse_category("pdfs") is Category.PDF
    assert parse_category("Image") is Category.IMAGE
    assert parse_category(Category.EBOOK) is Category.EBOOK


def test_parse_category_rejects_unknown_type():
    with pytest.raises(UnsupportedOutputFormat) as exc:
        parse_category("spreadsheet")
    assert "Unsupported conversion type: spreadsheet" in exc.value.message


def test_validate_target():
    validate_target(Category.PDF, "png")
    validate_target(Category.COMPRESSOR, "svg")
    with pytest.raises(UnsupportedOutputFormat):
        validate_target(Category.PDF, "webp")
    with pytest.raises(UnsupportedOutputFormat):
        validate_target(Category.ARCHIVE, "rar")
