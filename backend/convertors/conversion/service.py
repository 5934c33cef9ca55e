"""Conversion orchestrator: batch validation, per-item planning and execution, cleanup."""
import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from convertors.config import (
    CONVERTED_DIR,
    MAX_FILES_PER_REQUEST,
    AdapterConfig,
    build_adapter_config,
)
from convertors.conversion.adapters import AdapterRegistry, ConversionOptions, default_registry
from convertors.conversion.errors import (
    ArtifactMissing,
    BatchValidationError,
    ConversionError,
)
from convertors.conversion.fallback import execute_with_fallback
from convertors.conversion.formats import (
    classify,
    normalize_extension,
    parse_category,
    validate_target,
)
from convertors.conversion.models import (
    BatchResult,
    ConversionOutcome,
    ConversionRequestItem,
    ItemStatus,
    PendingItem,
    StagedUpload,
)
from convertors.conversion.resolver import bind, resolve
from convertors.conversion.scratch import ScratchManager, output_path_for

logger = logging.getLogger("converter.service")


def parse_formats(raw: Optional[str]) -> list[dict[str, Any]]:
    """Parse the JSON array of {type, target, subSection, id} descriptors."""
    try:
        formats = json.loads(raw or "[]")
    except (TypeError, ValueError) as e:
        logger.error("Error parsing formats: %s", e)
        raise BatchValidationError("Invalid formats data. Please provide valid JSON.") from e
    if not isinstance(formats, list) or not all(isinstance(f, dict) for f in formats):
        raise BatchValidationError("Invalid formats data. Expected a JSON array of objects.")
    return formats


class ConversionService:
    """Runs batches item by item. Uploaded sources are always deleted when a batch ends."""

    def __init__(
        self,
        registry: Optional[AdapterRegistry] = None,
        config: Optional[AdapterConfig] = None,
        converted_dir: Path = CONVERTED_DIR,
        max_files: int = MAX_FILES_PER_REQUEST,
    ):
        self.config = config or build_adapter_config()
        self.scratch = ScratchManager(self.config.scratch_dir)
        self.registry = registry if registry is not None else default_registry(self.config, self.scratch)
        self.converted_dir = Path(converted_dir)
        self.converted_dir.mkdir(parents=True, exist_ok=True)
        self.max_files = max_files
        logger.info(
            "ConversionService initialized (converted=%s, scratch=%s, max_files=%s)",
            self.converted_dir, self.scratch.scratch_dir, max_files,
        )

    def validate_batch(
        self, uploads: Sequence[StagedUpload], formats: Sequence[dict[str, Any]]
    ) -> list[PendingItem]:
        """Whole-batch checks. Nothing is dispatched when any of them fails."""
        if not uploads:
            raise BatchValidationError("No files uploaded.")
        if len(uploads) > self.max_files:
            raise BatchValidationError(f"Maximum {self.max_files} files allowed.")
        if len(uploads) != len(formats):
            logger.error("Mismatch between files (%s) and formats (%s)", len(uploads), len(formats))
            raise BatchValidationError(
                f"Mismatch between files and formats. Files: {len(uploads)}, Formats: {len(formats)}"
            )
        items = []
        for upload, info in zip(uploads, formats):
            # "PNG (image)" style labels: only the first token is the extension
            target = str(info.get("target") or "").strip().lower().split(" ")[0]
            items.append(
                PendingItem(
                    upload=upload,
                    type_name=info.get("type"),
                    target=target,
                    sub_section=info.get("subSection"),
                    client_id=info.get("id"),
                )
            )
        return items

    def build_item(self, pending: PendingItem) -> ConversionRequestItem:
        category = parse_category(pending.type_name)
        item = ConversionRequestItem(
            source_path=pending.upload.path,
            source_extension=normalize_extension(Path(pending.upload.original_name).suffix) or "unknown",
            declared_category=category,
            target_extension=normalize_extension(pending.target),
            original_name=pending.upload.original_name,
            sub_section=pending.sub_section,
            client_id=pending.client_id,
        )
        classify(item.source_extension)
        validate_target(item.effective_category, item.target_extension)
        return item

    def convert_item(self, item: ConversionRequestItem) -> ConversionOutcome:
        """Plan and execute one item. Raises ConversionError; intermediates never outlive the call."""
        logger.info(
            "Processing file: %s, type: %s, inputExt: %s, target: %s",
            item.original_name, item.declared_category.value, item.source_extension, item.target_extension,
        )
        plan = resolve(item.source_extension, item.effective_category, item.target_extension)
        output_path = output_path_for(self.converted_dir, item.original_name, item.target_extension)
        stages = bind(plan, item.source_path, output_path, self.scratch)
        options = ConversionOptions(compress=item.compress)
        attempted: list[str] = []
        try:
            for stage in stages:
                if not stage.input_path.is_file():
                    if stage.input_path == item.source_path:
                        raise ArtifactMissing(stage.input_path, f"Input file not found: {item.original_name}")
                    raise ArtifactMissing(stage.input_path)
                adapters = self.registry.get(stage.capability) or []
                records = execute_with_fallback(
                    stage.capability, adapters, stage.input_path, stage.output_path, options
                )
                attempted.extend(r.adapter for r in records)
                if stage.input_path != item.source_path:
                    # The intermediate has been consumed
                    self.scratch.cleanup([stage.input_path])
        except BaseException:
            self.scratch.cleanup([s.output_path for s in stages])
            raise
        finally:
            self.scratch.cleanup([s.output_path for s in stages if s.intermediate])
        return ConversionOutcome(
            client_id=item.client_id,
            status=ItemStatus.SUCCEEDED,
            output_path=output_path,
            output_name=output_path.name,
            attempted_adapters=attempted,
        )

    def convert_batch(
        self,
        uploads: Sequence[StagedUpload],
        formats: Sequence[dict[str, Any]],
        partial: bool = False,
    ) -> BatchResult:
        """Sequential batch.

        Default: the first item error aborts the batch, earlier outputs are discarded and the
        error is raised. partial=True records a failed outcome per item and carries on.
        """
        result = BatchResult()
        try:
            pending = self.validate_batch(uploads, formats)
            for entry in pending:
                try:
                    item = self.build_item(entry)
                    outcome = self.convert_item(item)
                except ConversionError as e:
                    logger.error("Conversion error for %s: %s", entry.upload.original_name, e.message)
                    if not partial:
                        self.discard_outputs(result)
                        raise
                    outcome = _failed(entry.client_id, e)
                result.outcomes.append(outcome)
            return result
        finally:
            self.cleanup_uploads(uploads)

    def discard_outputs(self, result: BatchResult) -> None:
        self.scratch.cleanup([o.output_path for o in result.succeeded])

    def cleanup_uploads(self, uploads: Sequence[StagedUpload]) -> None:
        """Remove uploaded sources after processing."""
        leaked = self.scratch.cleanup([u.path for u in uploads])
        for path in leaked:
            logger.warning("Could not remove upload %s", path)

    def output_file(self, filename: str) -> Path:
        return self.converted_dir / Path(filename).name

    def delete_output(self, filename: str) -> bool:
        """Idempotent delete of a converted file. False only when the file could not be removed."""
        return not self.scratch.cleanup([self.output_file(filename)])


def _failed(client_id: Optional[str], error: ConversionError) -> ConversionOutcome:
    attempted = [a.adapter for a in getattr(error, "attempts", [])]
    if not attempted and getattr(error, "adapter", None):
        attempted = [error.adapter]
    return ConversionOutcome(
        client_id=client_id,
        status=ItemStatus.FAILED,
        kind=error.kind,
        message=error.message,
        attempted_adapters=attempted,
    )


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
