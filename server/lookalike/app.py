"""FastAPI 应用工厂 + lifespan。"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from lookalike.config import Settings, load_settings
from lookalike.relay.analyzer import Analyzer
from lookalike.relay.protocol import (
    BODY_TOO_LARGE_ERROR,
    INTERNAL_ERROR,
    NO_IMAGE_ERROR,
    AnalyzeResponse,
    ErrorResponse,
    parse_analyze_request,
)
from lookalike.relay.vision import VisionClient

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动/关闭生命周期管理。"""
    settings: Settings = app.state.settings

    # 1. 日志
    logging.basicConfig(
        level=getattr(logging, settings.server.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    # 2. 视觉模型
    vision: VisionClient = app.state.vision
    vision.start()

    # 3. 分析器
    app.state.analyzer = Analyzer(vision, settings.gemini.mime_type)

    logger.info("Serving frontend files from %s", settings.server.static_dir)
    yield


def create_app(settings: Settings | None = None, vision: VisionClient | None = None) -> FastAPI:
    """创建 FastAPI 应用。"""
    if settings is None:
        settings = load_settings()
    if vision is None:
        vision = VisionClient(settings.gemini)

    app = FastAPI(title="Look-alike Relay", lifespan=lifespan)
    app.state.settings = settings
    app.state.vision = vision
    static_dir = settings.server.static_dir

    @app.post("/api/analyze")
    async def analyze(request: Request):
        logger.info("Received request on POST /api/analyze")

        body = await request.body()
        if len(body) > settings.server.max_body_bytes:
            logger.error("Request body too large: %d bytes", len(body))
            return _error(413, BODY_TOO_LARGE_ERROR)

        try:
            payload = parse_analyze_request(json.loads(body or b"null"))
        except ValueError as exc:
            logger.error("No image data received in the request body: %s", exc)
            return _error(400, NO_IMAGE_ERROR)

        analyzer: Analyzer = app.state.analyzer
        try:
            text = await analyzer.analyze(payload.image)
        except Exception:
            logger.exception("Error during vision call or processing")
            return _error(500, INTERNAL_ERROR)

        logger.info("Sending successful JSON response back to client")
        return AnalyzeResponse(analysis=text).model_dump()

    @app.get("/")
    async def index():
        return FileResponse(static_dir / "index.html")

    @app.get("/health")
    async def health():
        return {"status": "ok", "model": app.state.vision.model_name}

    app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app
