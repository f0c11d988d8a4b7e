from __future__ import annotations

from collections.abc import AsyncIterator

from crash_lens.config import EnricherSettings, get_reports_dir
from crash_lens.core.ports.reports import ReportStore
from crash_lens.enrich.enricher import SourceContextEnricher
from crash_lens.store.files import DirectoryReportStore

_store: ReportStore | None = None


def configure_report_store(store: ReportStore | None) -> None:
    global _store  # noqa: PLW0603
    _store = store


async def get_report_store() -> AsyncIterator[ReportStore]:
    """Yield a ``ReportStore``, creating the directory-backed store lazily on first call."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = DirectoryReportStore(get_reports_dir())
    yield _store


async def get_enricher() -> SourceContextEnricher:
    return SourceContextEnricher(EnricherSettings.from_env())
