"""FastAPI application entrypoint for prdgen service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..errors import PrdGenError
from ..logging import configure_logging
from ..orchestrator import Orchestrator


class ScanRequest(BaseModel):
    path: str


class ScanResponse(BaseModel):
    project: str
    file_count: int
    facts: Dict[str, Any]


class GenerateRequest(BaseModel):
    path: str
    brief: Optional[str] = None
    tier1_only: bool = False
    skip_sections: List[str] = []


class GenerateResponse(BaseModel):
    prd: Dict[str, Any]
    questionsForClient: Dict[str, Any]
    degraded: bool = False
    failed_sections: List[str] = []


class HealthResponse(BaseModel):
    status: str
    version: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing prdgen operations."""

    app = FastAPI(title="PRD Generator Service", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request to keep state predictable.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/scan", response_model=ScanResponse)
    def scan_repo(
        payload: ScanRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ScanResponse:
        tier1 = orchestrator.scan(Path(payload.path))
        return ScanResponse(
            project=tier1.project.name,
            file_count=tier1.file_count,
            facts=tier1.facts.to_dict(),
        )

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        payload: GenerateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        result = await orchestrator.generate(
            Path(payload.path),
            brief_text=payload.brief,
            tier1_only=payload.tier1_only,
            skip_sections=tuple(payload.skip_sections),
        )
        body = result.to_dict()
        return GenerateResponse(
            prd=body["prd"],
            questionsForClient=body["questionsForClient"],
            degraded=result.degraded,
            failed_sections=[failure.section for failure in result.failed_sections],
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PrdGenError)
    async def generation_error_handler(_: Any, exc: PrdGenError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000, *, verbose: bool = False
) -> None:  # pragma: no cover - integration path
    configure_logging(verbose=verbose)
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
