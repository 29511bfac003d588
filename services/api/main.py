from __future__ import annotations

from fastapi import FastAPI
from loguru import logger

from r2gate.client import R2
from r2gate.exceptions import R2GateError
from r2gate.gateway import UploadCallback
from r2gate.logging_config import setup_logging
from r2gate.settings import Settings, get_settings
from services.api.exception_handlers import r2gate_exception_handler, unhandled_exception_handler
from services.api.middleware import SecurityHeadersMiddleware
from services.api.routes import router as v1_router


def create_app(
    settings: Settings | None = None,
    r2: R2 | None = None,
    on_upload: UploadCallback | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    setup_logging(
        level=settings.logging.resolved_level,
        json_format=settings.logging.resolved_json,
        log_file=settings.logging.resolved_file,
    )

    if r2 is None:
        r2 = R2(context=settings.store.context())

    app = FastAPI(
        title="r2gate",
        version="0.1.0",
        description="Signed URLs and proxied transfers for an S3-compatible bucket",
    )
    app.state.r2 = r2
    app.state.settings = settings

    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/healthz", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.add_exception_handler(R2GateError, r2gate_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(v1_router)
    r2.register_routes(
        app,
        path_prefix=settings.gateway.path_prefix,
        on_upload=on_upload,
        allowed_origin=settings.gateway.origin,
    )

    logger.info(
        "API initialised for bucket={bucket} endpoint={endpoint}",
        bucket=r2.bucket,
        endpoint=r2.endpoint,
    )
    return app


__all__ = ["create_app"]
