from typing import Protocol


class ReportNotFoundError(LookupError):
    """Raised when a report id does not name a stored report."""


class ReportStore(Protocol):
    async def list_reports(self) -> list[str]: ...

    async def load_report(self, report_id: str) -> str: ...
