"""FastAPI backend for PastorAI."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routes import chat as chat_routes
from .. import config
from ..engine import completions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; completion requests will be rejected upstream.")
    timeout = httpx.Timeout(config.OPENAI_TIMEOUT_SECONDS)
    client = httpx.AsyncClient(timeout=timeout)
    completions.set_client(client)
    try:
        yield
    finally:
        completions.set_client(None)
        await client.aclose()


app = FastAPI(title="PastorAI API", lifespan=lifespan)

_cors_origins = config.cors_allow_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=False if _cors_origins == ["*"] else True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _safe_detail(detail: object) -> str:
    if isinstance(detail, str):
        return detail
    return "Request failed"


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "PastorAI API"}


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    detail = _safe_detail(exc.detail)
    logger.info("HTTPException %s request_id=%s detail=%s", exc.status_code, request_id, detail)
    resp = JSONResponse(status_code=exc.status_code, content={"error": detail, "request_id": request_id})
    resp.headers["X-Request-ID"] = request_id
    return resp


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    logger.exception("Unhandled exception request_id=%s", request_id)
    resp = JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "request_id": request_id},
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


app.include_router(chat_routes.router)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8001, log_level=config.LOG_LEVEL.lower())
