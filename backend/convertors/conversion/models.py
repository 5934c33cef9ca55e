"""Conversion request/plan/outcome models."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from convertors.conversion.formats import Category


class ItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Capability(str, Enum):
    RASTER_IMAGE = "raster_image"
    VECTOR_IMAGE = "vector_image"
    DOCUMENT = "document"
    PDF_RASTER = "pdf_raster"
    MEDIA = "media"
    ARCHIVE = "archive"
    EBOOK = "ebook"


@dataclass
class ConversionRequestItem:
    source_path: Path
    source_extension: str
    declared_category: Category
    target_extension: str
    original_name: str
    sub_section: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def compress(self) -> bool:
        return self.declared_category is Category.COMPRESSOR or self.sub_section == "compressor"

    @property
    def effective_category(self) -> Category:
        return Category.COMPRESSOR if self.compress else self.declared_category


@dataclass(frozen=True)
class Stage:
    capability: Capability
    input_extension: str
    output_extension: str


@dataclass(frozen=True)
class BoundStage:
    capability: Capability
    input_path: Path
    output_path: Path
    intermediate: bool = False


@dataclass(frozen=True)
class PipelinePlan:
    stages: tuple[Stage, ...]

    @property
    def final_extension(self) -> str:
        return self.stages[-1].output_extension

    @property
    def intermediate_extensions(self) -> list[str]:
        return [s.output_extension for s in self.stages[:-1]]

    def __len__(self) -> int:
        return len(self.stages)


@dataclass
class AttemptRecord:
    adapter: str
    ok: bool
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class ConversionOutcome:
    """Result for one batch item: output fields on success, kind/message on failure."""

    client_id: Optional[str]
    status: ItemStatus
    output_path: Optional[Path] = None
    output_name: Optional[str] = None
    kind: Optional[str] = None
    message: Optional[str] = None
    attempted_adapters: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ItemStatus.SUCCEEDED


@dataclass
class BatchResult:
    outcomes: list[ConversionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ConversionOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[ConversionOutcome]:
        return [o for o in self.outcomes if not o.ok]


@dataclass(frozen=True)
class StagedUpload:
    """An uploaded file already written to the uploads directory."""

    path: Path
    original_name: str


@dataclass
class PendingItem:
    """A validated (upload, descriptor) pair that has not been planned yet."""

    upload: StagedUpload
    type_name: Optional[str]
    target: str
    sub_section: Optional[str] = None
    client_id: Optional[str] = None
