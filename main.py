"""
SellPay checkout service entry point

Startup wires the PIX gateway, the notification dispatcher and the checkout session registry;
shutdown releases them in order: poll tasks, notifications, gateway connections, database.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import build_session_registry
from api.middleware import LocaleMiddleware, LoggingMiddleware, RequestIDMiddleware
from api.routes import catalog, checkout, finance, orders, webhooks
from application.services.notification_dispatcher import NotificationDispatcher
from core.config import settings
from core.exceptions import register_exception_handlers
from core.i18n import t
from core.logging_config import configure_logging, get_logger
from core.metrics import metrics_response
from core.response import success_response
from infrastructure.database import create_tables, dispose_engine
from infrastructure.external.notifications import get_attribution_sender, get_email_sender
from infrastructure.external.payments import get_pix_gateway
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # production schemas are provisioned outside the app
    if settings.DEBUG:
        await create_tables()

    gateway = get_pix_gateway()
    dispatcher = NotificationDispatcher(
        email_sender=get_email_sender(),
        attribution_sender=get_attribution_sender(),
    )
    registry = build_session_registry(SQLAlchemyUnitOfWork, gateway, dispatcher)
    app.state.gateway = gateway
    app.state.dispatcher = dispatcher
    app.state.checkout_registry = registry
    logger.info(
        "checkout_started",
        provider=gateway.provider,
        poll_interval=settings.checkout.poll_interval_seconds,
        env=settings.ENVIRONMENT,
    )

    yield

    await registry.aclose_all()
    await dispatcher.aclose()
    await gateway.aclose()
    await dispose_engine()
    logger.info("checkout_stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="SellPay PIX checkout and settlement API",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# the last middleware added runs first: RequestID -> Logging -> Locale -> CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LocaleMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

register_exception_handlers(app)

for module in (checkout, webhooks, orders, catalog, finance):
    app.include_router(module.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return success_response(
        data={"name": settings.PROJECT_NAME, "version": settings.VERSION, "docs": "/docs"},
        message=t("welcome"),
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return success_response(data={"status": "healthy"}, message=t("health.ok"))


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
