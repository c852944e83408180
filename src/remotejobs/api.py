# src/remotejobs/api.py
"""
HTTP read endpoint.

GET /remote-jobs answers with the enveloped contract:
    {"jobs": [...], "metadata": {"lastUpdated", "jobCount",
                                 "cacheAgeMinutes", "cacheStatus"}}
A failure of the live-fetch fallback is the only error a client ever sees:
HTTP 500 with {"error", "message", "timestamp"}.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from remotejobs.config import Settings, load_settings
from remotejobs.errors import FatalPipelineError
from remotejobs.service import JobsPipeline, open_pipeline


def create_app(pipeline: Optional[JobsPipeline] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the app. Pass `pipeline` to serve a prebuilt one (tests); otherwise
    one is opened from `settings` at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if pipeline is not None:
            app.state.pipeline = pipeline
            yield
        else:
            async with open_pipeline(settings or load_settings()) as opened:
                app.state.pipeline = opened
                yield

    app = FastAPI(title="remote-jobs", lifespan=lifespan)

    @app.get("/remote-jobs")
    async def remote_jobs(request: Request):
        try:
            result = await request.app.state.pipeline.read()
        except FatalPipelineError as exc:
            return JSONResponse(status_code=500, content=exc.to_dict())
        return result.to_envelope()

    return app
