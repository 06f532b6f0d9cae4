from __future__ import annotations
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import UnsupportedLanguage
from ..core.models import ExecutionRequest
from ..engine import Engine, build_engine
from ..logging import setup_logging
from ..settings import load_settings


# --------- Schemas ---------
class SubmitRes(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")


class StatusRes(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    state: str
    progress: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = Field(default=None, alias="lastError")


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """App factory; serve with `uvicorn --factory codejudge.api.app:create_app`."""
    if engine is None:
        settings = load_settings()
        setup_logging(settings.log_level, json=settings.log_json)
        engine = build_engine(settings)
    svc = engine.service

    app = FastAPI(title="codejudge")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=engine.settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        ok, detail = engine.sandbox.check_health()
        return JSONResponse({"ok": ok, "sandbox": detail}, status_code=200 if ok else 503)

    @app.post("/executions", status_code=202, response_model=SubmitRes, response_model_by_alias=True)
    def submit(req: ExecutionRequest):
        try:
            job_id = svc.submit(req)
        except UnsupportedLanguage as e:
            raise HTTPException(status_code=400, detail=str(e))
        return SubmitRes(job_id=job_id)

    @app.get("/executions/{job_id}", response_model=StatusRes, response_model_by_alias=True)
    def status(job_id: str):
        st = svc.get_status(job_id)
        if st is None:
            raise HTTPException(status_code=404, detail="job_not_found")
        return StatusRes(
            job_id=st.job_id,
            state=st.state.value,
            progress=st.progress.name if st.progress is not None else None,
            attempts=st.attempts,
            last_error=st.last_error,
        )

    @app.get("/executions/{job_id}/result")
    def result(job_id: str):
        res = svc.get_result(job_id)
        if res is None:
            raise HTTPException(status_code=404, detail="result_not_available")
        return JSONResponse(res.model_dump(by_alias=True, mode="json"))

    return app
