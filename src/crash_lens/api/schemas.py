from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"


class ReportListResponse(BaseModel):
    reports: list[str]
