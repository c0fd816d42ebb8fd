"""FastAPI application: POST /api/diagnose + serves the static frontend build."""
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from kiddoc.config import Settings, get_settings
from kiddoc.errors import DiagnosisError
from kiddoc.models import DiagnosisResponse, ErrorResponse
from kiddoc.ai.pipeline import DiagnosisPipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
# httpx logs full request URLs at INFO, which would include the Gemini key
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _first_validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    return errors[0]["msg"] if errors else "Invalid input payload."


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    with_http_client: bool = True,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if with_http_client:
            client = httpx.AsyncClient(timeout=settings.request_timeout, transport=transport)
        app.state.pipeline = DiagnosisPipeline(settings, client)
        if not settings.has_provider_key():
            logger.warning("No provider key configured; /api/diagnose will reject requests.")
        logger.info(f"Startup complete (env={settings.app_env}).")
        yield
        if client is not None:
            await client.aclose()
        logger.info("Shutting down.")

    app = FastAPI(
        title="KidDoc: Child Symptom Helper",
        description="Child-friendly symptom explanations with local triage and multi-provider fallback",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        if settings.enable_request_logging:
            logger.info(json.dumps({
                "requestId": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "durationMs": round((time.perf_counter() - started) * 1000, 1),
                "ip": request.client.host if request.client else None,
            }))
        return response

    @app.get("/api/health")
    async def health(request: Request):
        """Health check endpoint with pipeline status."""
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "pipeline_ready": request.app.state.pipeline.is_ready(),
        }

    @app.post(
        "/api/diagnose",
        response_model=DiagnosisResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    )
    async def diagnose(request: Request):
        pipeline: DiagnosisPipeline = request.app.state.pipeline
        try:
            pipeline.check_ready()
        except DiagnosisError as e:
            return _error(e.status_code, e.message)

        try:
            payload = await request.json()
        except ValueError:
            return _error(400, "Invalid input payload.")

        try:
            diagnosis_request = pipeline.parse(payload)
        except ValidationError as e:
            return _error(400, _first_validation_message(e))

        try:
            return await pipeline.diagnose(diagnosis_request)
        except DiagnosisError as e:
            return _error(e.status_code, e.message)
        except Exception:
            logger.exception("Unhandled error in /api/diagnose")
            return _error(500, "Unexpected server error.")

    static_dir = settings.static_dir
    if settings.is_production and static_dir.exists():
        assets_dir = static_dir / "assets"
        if assets_dir.exists():
            app.mount("/assets", StaticFiles(directory=str(assets_dir)), name="assets")

        @app.get("/{full_path:path}", include_in_schema=False)
        async def serve_frontend(full_path: str):
            # Serve index.html for all non-API routes (SPA fallback)
            if full_path.startswith("api/"):
                return _error(404, "Not found.")
            index = static_dir / "index.html"
            if index.exists():
                return FileResponse(str(index))
            return {"message": "Frontend not found"}
    elif settings.is_production:
        logger.warning(f"Static frontend not found at {static_dir}. Run 'npm run build' first.")

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("kiddoc.main:app", host="0.0.0.0", port=settings.port)
