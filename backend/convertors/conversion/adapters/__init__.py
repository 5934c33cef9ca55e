"""Adapter registry: capability -> ordered candidate adapters."""
from typing import Mapping, Sequence

from convertors.config import AdapterConfig
from convertors.conversion.adapters.archive import ArchiveAdapter
from convertors.conversion.adapters.base import Adapter, ConversionOptions
from convertors.conversion.adapters.document import LibreOfficeAdapter, PandocAdapter, RasterMarkupAdapter
from convertors.conversion.adapters.ebook import EbookAdapter
from convertors.conversion.adapters.image import RasterImageAdapter, VectorImageAdapter
from convertors.conversion.adapters.media import MediaAdapter
from convertors.conversion.adapters.pdf import PdfRasterAdapter
from convertors.conversion.models import Capability
from convertors.conversion.scratch import ScratchManager

AdapterRegistry = Mapping[Capability, Sequence[Adapter]]


def default_registry(config: AdapterConfig, scratch: ScratchManager) -> dict[Capability, list[Adapter]]:
    """Documents get a three-engine fallback chain; everything else has exactly one adapter."""
    return {
        Capability.RASTER_IMAGE: [RasterImageAdapter(config)],
        Capability.VECTOR_IMAGE: [VectorImageAdapter(config)],
        Capability.DOCUMENT: [
            LibreOfficeAdapter(config, scratch),
            PandocAdapter(config),
            RasterMarkupAdapter(config, scratch),
        ],
        Capability.PDF_RASTER: [PdfRasterAdapter(config)],
        Capability.MEDIA: [MediaAdapter(config)],
        Capability.ARCHIVE: [ArchiveAdapter(config, scratch)],
        Capability.EBOOK: [EbookAdapter(config)],
    }


__all__ = ["Adapter", "AdapterRegistry", "ConversionOptions", "default_registry"]
