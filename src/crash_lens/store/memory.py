import json
from typing import Any

from crash_lens.core.ports.reports import ReportNotFoundError


class InMemoryReportStore:
    def __init__(self, reports: dict[str, str] | None = None) -> None:
        self.reports: dict[str, str] = dict(reports or {})

    def add(self, report_id: str, document: dict[str, Any] | str) -> None:
        self.reports[report_id] = document if isinstance(document, str) else json.dumps(document)

    async def list_reports(self) -> list[str]:
        return sorted(self.reports)

    async def load_report(self, report_id: str) -> str:
        try:
            return self.reports[report_id]
        except KeyError:
            raise ReportNotFoundError(f"Report not found: {report_id}") from None
