"""Fallback chain: try candidate adapters in order until one produces output."""
import logging
import time
from pathlib import Path
from typing import Sequence

from convertors.conversion.adapters.base import Adapter, ConversionOptions, has_output
from convertors.conversion.errors import AllAdaptersFailed, ConversionError
from convertors.conversion.models import AttemptRecord, Capability

logger = logging.getLogger("converter.fallback")


def _clear(path: Path) -> None:
    """Drop a partial output so the next adapter starts clean."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove partial output %s: %s", path, e)


def execute_with_fallback(
    capability: Capability,
    adapters: Sequence[Adapter],
    input_path: Path,
    output_path: Path,
    options: ConversionOptions,
) -> list[AttemptRecord]:
    """Returns the attempt records on success; raises AllAdaptersFailed once every adapter failed."""
    if not adapters:
        raise AllAdaptersFailed(capability.value, [])
    attempts: list[AttemptRecord] = []
    last_error = None
    for adapter in adapters:
        started = time.monotonic()
        try:
            adapter.convert(input_path, output_path, options)
            if not has_output(output_path):
                raise RuntimeError("adapter reported success but produced no output")
        except Exception as e:
            detail = getattr(e, "detail", None) or str(e) or type(e).__name__
            attempts.append(AttemptRecord(adapter.name, False, detail, time.monotonic() - started))
            _clear(output_path)
            last_error = e
            logger.warning(
                "[%s] attempt %s/%s with %s failed: %s",
                capability.value, len(attempts), len(adapters), adapter.name, detail,
            )
            continue
        attempts.append(AttemptRecord(adapter.name, True, None, time.monotonic() - started))
        if len(attempts) > 1:
            logger.info("[%s] %s succeeded after %s failed attempt(s)", capability.value, adapter.name, len(attempts) - 1)
        return attempts
    logger.error("[%s] all %s adapter(s) failed for %s", capability.value, len(adapters), input_path.name)
    # Without a chain there is nothing to aggregate: the single failure is terminal as-is
    if len(adapters) == 1 and isinstance(last_error, ConversionError):
        raise last_error
    raise AllAdaptersFailed(capability.value, attempts)
