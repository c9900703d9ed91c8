"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fitlegal_api.config import Settings
from fitlegal_api.cors import install_cors
from fitlegal_api.db.repository import Repository
from fitlegal_api.drive.client import DriveClient
from fitlegal_api.payments.client import MercadoPagoClient
from fitlegal_api.payments.handler import router as payments_router
from fitlegal_api.webhook.handler import router as webhook_router
from fitlegal_api.webhook.processor import DriveNotificationProcessor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize clients
    repo = Repository(settings.database_url)
    await repo.init_db()

    drive_client = DriveClient(settings.google_drive_api_base)

    payment_client = None
    if settings.mercado_pago_access_token:
        payment_client = MercadoPagoClient(
            settings.mercado_pago_access_token, settings.mercado_pago_api_base
        )
    else:
        logger.warning("MERCADO_PAGO_ACCESS_TOKEN not set, payment endpoints disabled")

    app.state.repo = repo
    app.state.payment_client = payment_client
    app.state.processor = DriveNotificationProcessor(
        repo,
        drive_client,
        properties_as_modified=settings.classify_properties_as_modified,
    )

    logger.info("fitlegal API started (%s)", settings.environment)
    yield

    # Cleanup
    await drive_client.close()
    if payment_client is not None:
        await payment_client.close()
    await repo.close()
    logger.info("fitlegal API stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="fitlegal API", lifespan=lifespan)
    app.state.settings = settings
    install_cors(app)

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return JSONResponse(
                status_code=405,
                content={"error": "Method Not Allowed"},
                headers=exc.headers,
            )
        return await http_exception_handler(request, exc)

    app.include_router(webhook_router)
    app.include_router(payments_router)

    @app.get("/api/test")
    async def api_test():
        return {
            "success": True,
            "message": "API working correctly",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "env": settings.environment,
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "fitlegal_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
