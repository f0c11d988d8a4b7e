import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path

SOURCE_ROOTS_ENV = "CRASH_LENS_SOURCE_CONTEXT_ROOTS"
REPORTS_DIR_ENV = "CRASH_LENS_REPORTS_DIR"

MAX_REMOTE_BYTES = 5 * 1024 * 1024


def parse_source_roots(raw: str | None, *, windows: bool | None = None) -> tuple[str, ...]:
    """Split a root list on ``;`` (and ``:`` outside Windows) into absolute paths.

    Drive letters such as ``C:\\src`` are never split when running on Windows.
    """
    if raw is None or not raw.strip():
        return ()
    if windows is None:
        windows = os.name == "nt"
    separator = r";" if windows else r"[;:]"
    roots: list[str] = []
    for part in re.split(separator, raw):
        part = part.strip()
        if not part:
            continue
        normalized = os.path.abspath(part)
        if normalized not in roots:
            roots.append(normalized)
    return tuple(roots)


def get_source_roots() -> tuple[str, ...]:
    return parse_source_roots(os.getenv(SOURCE_ROOTS_ENV))


def get_reports_dir() -> Path:
    return Path(os.getenv(REPORTS_DIR_ENV, "reports"))


@dataclass(frozen=True)
class EnricherSettings:
    source_roots: tuple[str, ...] = field(default_factory=tuple)
    max_entries: int = 10
    max_entries_per_thread: int = 2
    max_faulting_entries: int = 10
    reserved_managed_slots: int = 2
    max_embedded_frames: int = 1000
    max_concurrency: int = 6
    timeout_seconds: float = 5.0
    max_remote_bytes: int = MAX_REMOTE_BYTES

    @classmethod
    def from_env(cls) -> "EnricherSettings":
        return cls(source_roots=get_source_roots())

    def with_roots(self, roots: Iterable[str]) -> "EnricherSettings":
        return replace(self, source_roots=tuple(os.path.abspath(r) for r in roots if r.strip()))
