import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

import stripe
import uvicorn
from fastapi import FastAPI

from app.bus import MessageBus
from app.config import Settings, load_settings
from app.logger import configure_logging, get_logger
from app.routes import router
from app.stripe_service import (
    CREATE_PAYMENT_SESSION,
    PaymentsService,
    create_stripe_client,
)

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the bus producer and the bus listener alongside the HTTP server."""

    service: PaymentsService = app.state.service
    await service.bus.start()
    listener = asyncio.create_task(
        service.bus.listen(CREATE_PAYMENT_SESSION, service.on_create_payment_session)
    )
    logger.info("Payments Microservice Running on port %s", service.settings.port)
    yield
    listener.cancel()
    with suppress(asyncio.CancelledError):
        await listener
    await service.bus.stop()


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[stripe.StripeClient] = None,
    bus: Optional[MessageBus] = None,
) -> FastAPI:
    if settings is None:
        # uvicorn --factory app.main:create_app
        settings = load_settings()
        configure_logging(settings.log_level)
        logger.info("startup_config=%s", settings.redacted())
    client = client or create_stripe_client(settings)
    bus = bus or MessageBus(settings.kafka_servers)

    app = FastAPI(title="Payments Microservice", lifespan=lifespan)
    app.state.service = PaymentsService(client, bus, settings)
    app.include_router(router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


def run() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("startup_config=%s", settings.redacted())
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
