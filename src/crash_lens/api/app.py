from __future__ import annotations

from fastapi import FastAPI

from crash_lens.api.routes.health import router as health_router
from crash_lens.api.routes.reports import router as reports_router


def create_app() -> FastAPI:
    app = FastAPI(
        title="Crash Lens API",
        description="Section-addressable access to crash analysis reports.",
        version="0.1.0",
    )
    app.include_router(health_router, include_in_schema=False)
    app.include_router(reports_router)
    return app
