from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from pydantic import BaseModel, ConfigDict, Field

from config.settings import get_settings
from engine.errors import MissingField, ModelCallFailed, ResponseParseFailed
from engine.gateway import ModelGateway
from engine.phases import Directory, Gateway, build_dream_team, clarity_capture, interrogate
from engine.tools.expert_directory import build_expert_directory


settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("perspectivology")


class Phase1Request(BaseModel):
    challenge: Optional[str] = Field(None, description="The user's challenge, verbatim")


class Phase2Request(BaseModel):
    challenge: Optional[str] = None
    challengeType: Optional[str] = Field(None, description="Type identified in phase 1")


class TeamMemberIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[Any] = None


class Phase3Request(BaseModel):
    challenge: Optional[str] = None
    team: Optional[List[TeamMemberIn]] = Field(
        None,
        description="Team returned by phase 2 (client-managed, resent on every call)",
    )


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_directory(request: Request) -> Directory:
    return request.app.state.directory


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    gateway: Optional[Gateway] = None,
    directory: Optional[Directory] = None,
    preload_directory: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Perspectivology Engine starting on port %s", settings.port)
        logger.info(
            "Config: env=%s model=%s key_set=%s",
            settings.app_env,
            settings.gemini_model,
            bool(settings.google_api_key),
        )
        if preload_directory:
            experts = await run_in_threadpool(app.state.directory.get)
            logger.info("Expert database loaded: %s experts", len(experts))
        yield

    app = FastAPI(title="Perspectivology Engine", version="1.0.0", lifespan=lifespan)
    app.state.gateway = gateway or ModelGateway()
    app.state.directory = directory or build_expert_directory()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MissingField)
    async def missing_field_handler(request: Request, exc: MissingField):
        logger.info("Rejected %s: %s", request.url.path, exc.message)
        return _error(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request body")
        logger.info("Rejected %s: invalid body (%s)", request.url.path, message)
        return _error(400, f"{location}: {message}" if location else message)

    @app.exception_handler(ModelCallFailed)
    async def model_failed_handler(request: Request, exc: ModelCallFailed):
        return _error(500, exc.message)

    @app.exception_handler(ResponseParseFailed)
    async def parse_failed_handler(request: Request, exc: ResponseParseFailed):
        logger.warning("Unusable model reply on %s: %s", request.url.path, exc.message)
        return _error(500, exc.message)

    @app.exception_handler(Exception)
    async def unexpected_handler(request: Request, exc: Exception):
        logger.exception("Request to %s failed: %s", request.url.path, exc)
        return _error(500, str(exc))

    @app.post("/api/phase1")
    def phase1(req: Phase1Request, gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
        logger.info("Phase 1: challenge_len=%s", len(req.challenge or ""))
        return clarity_capture(gateway, req.challenge)

    @app.post("/api/phase2")
    def phase2(
        req: Phase2Request,
        gateway: Gateway = Depends(get_gateway),
        directory: Directory = Depends(get_directory),
    ) -> Dict[str, Any]:
        logger.info(
            "Phase 2: challenge_len=%s challenge_type=%s",
            len(req.challenge or ""),
            req.challengeType,
        )
        return build_dream_team(gateway, directory, req.challenge, req.challengeType)

    @app.post("/api/phase3")
    def phase3(req: Phase3Request, gateway: Gateway = Depends(get_gateway)) -> Dict[str, Any]:
        logger.info(
            "Phase 3: challenge_len=%s team_size=%s",
            len(req.challenge or ""),
            len(req.team or []),
        )
        return interrogate(gateway, req.challenge, req.team)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
