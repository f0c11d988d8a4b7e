import asyncio
import logging
import re
from pathlib import Path

from crash_lens.core.ports.reports import ReportNotFoundError

logger = logging.getLogger(__name__)

_REPORT_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")


class DirectoryReportStore:
    """Serve ``<directory>/<report_id>.json`` files produced by the analysis engine."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _report_path(self, report_id: str) -> Path:
        if not _REPORT_ID_RE.match(report_id) or report_id.startswith("."):
            raise ReportNotFoundError(f"Invalid report id: {report_id!r}")
        base = self._directory.resolve()
        candidate = (base / f"{report_id}.json").resolve()
        if candidate.parent != base:
            raise ReportNotFoundError(f"Invalid report id: {report_id!r}")
        return candidate

    async def list_reports(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(p.stem for p in self._directory.glob("*.json") if p.is_file())

    async def load_report(self, report_id: str) -> str:
        path = self._report_path(report_id)
        if not path.is_file():
            raise ReportNotFoundError(f"Report not found: {report_id}")
        logger.debug("Loading report %s from %s", report_id, path)
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
