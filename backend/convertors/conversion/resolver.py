"""Pipeline resolution: (source, target) -> ordered stages, at most two.

Priority order:
1. a direct adapter exists for the pair (same family);
2. document <-> image needs an intermediate PDF;
3. PDF sources go straight to the rasterizer or the document chain;
4. anything else is not connected and is rejected.
"""
import logging
from pathlib import Path

from convertors.conversion.errors import NoPipeline
from convertors.conversion.formats import (
    ARCHIVE_EXTENSIONS,
    EBOOK_EXTENSIONS,
    MEDIA_EXTENSIONS,
    NON_PDF_DOCUMENT_EXTENSIONS,
    RASTER_IMAGE_EXTENSIONS,
    VECTOR_IMAGE_EXTENSIONS,
    Category,
    normalize_extension,
)
from convertors.conversion.models import BoundStage, Capability, PipelinePlan, Stage
from convertors.conversion.scratch import ScratchManager

logger = logging.getLogger("converter.resolver")

MAX_STAGES = 2
INTERMEDIATE = "pdf"

DOCUMENT_TARGETS = NON_PDF_DOCUMENT_EXTENSIONS | {"pdf"}


def _direct(source: str, target: str):
    if source in RASTER_IMAGE_EXTENSIONS and (target in RASTER_IMAGE_EXTENSIONS or target == "pdf"):
        return Capability.RASTER_IMAGE
    if source in VECTOR_IMAGE_EXTENSIONS and target in VECTOR_IMAGE_EXTENSIONS:
        return Capability.VECTOR_IMAGE
    if source in MEDIA_EXTENSIONS and target in MEDIA_EXTENSIONS:
        return Capability.MEDIA
    if source in ARCHIVE_EXTENSIONS and target in ARCHIVE_EXTENSIONS:
        return Capability.ARCHIVE
    if source in EBOOK_EXTENSIONS and target in EBOOK_EXTENSIONS:
        return Capability.EBOOK
    if source in NON_PDF_DOCUMENT_EXTENSIONS and target in DOCUMENT_TARGETS:
        return Capability.DOCUMENT
    return None


def resolve(source_extension: str, target_category: Category, target_extension: str) -> PipelinePlan:
    source = normalize_extension(source_extension)
    target = normalize_extension(target_extension)

    if target_category is Category.COMPRESSOR and source not in RASTER_IMAGE_EXTENSIONS | VECTOR_IMAGE_EXTENSIONS:
        raise NoPipeline(f"Compression is only available for images, not {source}")

    stages: list[Stage]
    capability = _direct(source, target)
    if capability is not None:
        stages = [Stage(capability, source, target)]
    elif source in NON_PDF_DOCUMENT_EXTENSIONS and target in RASTER_IMAGE_EXTENSIONS:
        stages = [
            Stage(Capability.DOCUMENT, source, INTERMEDIATE),
            Stage(Capability.PDF_RASTER, INTERMEDIATE, target),
        ]
    elif source in RASTER_IMAGE_EXTENSIONS and target in NON_PDF_DOCUMENT_EXTENSIONS:
        stages = [
            Stage(Capability.RASTER_IMAGE, source, INTERMEDIATE),
            Stage(Capability.DOCUMENT, INTERMEDIATE, target),
        ]
    elif source == "pdf" and target in RASTER_IMAGE_EXTENSIONS:
        stages = [Stage(Capability.PDF_RASTER, source, target)]
    elif source == "pdf" and target in NON_PDF_DOCUMENT_EXTENSIONS:
        stages = [Stage(Capability.DOCUMENT, source, target)]
    else:
        raise NoPipeline(f"No conversion pipeline from {source or 'unknown'} to {target or 'unknown'}")

    if len(stages) > MAX_STAGES:
        raise NoPipeline(f"Conversion {source} -> {target} needs {len(stages)} stages (max {MAX_STAGES})")
    plan = PipelinePlan(tuple(stages))
    logger.debug("Resolved %s -> %s: %s", source, target, " -> ".join(s.capability.value for s in plan.stages))
    return plan


def bind(plan: PipelinePlan, source_path: Path, output_path: Path, scratch: ScratchManager) -> list[BoundStage]:
    """Attach concrete paths. Intermediates get fresh scratch paths; the caller owns their deletion."""
    bound: list[BoundStage] = []
    current = Path(source_path)
    for index, stage in enumerate(plan.stages):
        last = index == len(plan.stages) - 1
        out = Path(output_path) if last else scratch.allocate(f"stage{index + 1}", stage.output_extension)
        bound.append(BoundStage(stage.capability, current, out, intermediate=not last))
        current = out
    return bound
