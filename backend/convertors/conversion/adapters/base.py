"""Adapter interface and the subprocess helper shared by tool-backed adapters."""
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from convertors.config import AdapterConfig
from convertors.conversion.errors import Timeout, ToolFailure
from convertors.conversion.models import Capability

logger = logging.getLogger("converter.adapters")

# Keep error messages readable; full stderr goes to the log
STDERR_TAIL = 500


@dataclass
class ConversionOptions:
    compress: bool = False


class Adapter:
    """One conversion capability. convert() writes output_path or raises a ConversionError."""

    name: str = "adapter"
    capability: Capability

    def __init__(self, config: AdapterConfig):
        self.config = config

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def extension_of(path: Path) -> str:
    return path.suffix.lstrip(".").lower()


def run_tool(
    adapter: str,
    cmd: Sequence[str],
    timeout: float,
    env: Optional[dict[str, str]] = None,
    cwd: Optional[Path] = None,
) -> subprocess.CompletedProcess:
    """Run an external tool. subprocess.run kills the child when the timeout expires."""
    logger.debug("[%s] running: %s", adapter, " ".join(str(c) for c in cmd))
    try:
        result = subprocess.run(
            [str(c) for c in cmd],
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            env=env,
            cwd=str(cwd) if cwd else None,
        )
    except subprocess.TimeoutExpired:
        logger.error("[%s] killed after %ss timeout", adapter, timeout)
        raise Timeout(adapter, timeout) from None
    except FileNotFoundError as e:
        raise ToolFailure(adapter, f"{cmd[0]} not installed or not found in PATH") from e
    if result.returncode != 0:
        stderr = (result.stderr or result.stdout or "").strip()
        logger.warning("[%s] exited with %s: %s", adapter, result.returncode, stderr)
        raise ToolFailure(
            adapter,
            f"exited with code {result.returncode}: {stderr[-STDERR_TAIL:] or 'no output'}",
            exit_code=result.returncode,
            stderr=stderr,
        )
    return result


# An empty source legitimately converts to an empty plain-text file
EMPTY_OUTPUT_OK = frozenset({"txt"})


def has_output(path: Path) -> bool:
    if not path.is_file():
        return False
    return path.stat().st_size > 0 or extension_of(path) in EMPTY_OUTPUT_OK


def require_output(adapter: str, path: Path) -> None:
    """Tools sometimes exit 0 without writing anything."""
    if not has_output(path):
        raise ToolFailure(adapter, f"no output produced at {path.name}")
