from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import stripe
from fastapi import BackgroundTasks
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.logger import get_logger
from app.models import PaymentSession, PaymentSessionResult, PaymentSucceeded

logger = get_logger("service")

PAYMENT_SUCCEEDED = "payment.succeeded"
CREATE_PAYMENT_SESSION = "create.payment.session"


def create_stripe_client(settings: Settings) -> stripe.StripeClient:
    return stripe.StripeClient(settings.stripe_secret)


def to_minor_units(price: float) -> int:
    # str() keeps 9.995 as written so it rounds to 1000, not 999
    cents = Decimal(str(price)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _lookup(obj, *keys):
    try:
        for key in keys:
            obj = obj[key]
        return obj
    except (KeyError, TypeError):
        return None


class PaymentsService:
    def __init__(self, client, bus, settings):
        self.stripe = client
        self.bus = bus
        self.settings = settings

    def create_payment_session(self, session: PaymentSession) -> PaymentSessionResult:
        line_items = [
            {
                "price_data": {
                    "currency": session.currency,
                    "product_data": {"name": item.name},
                    "unit_amount": to_minor_units(item.price),
                },
                "quantity": item.quantity,
            }
            for item in session.items
        ]

        checkout = self.stripe.v1.checkout.sessions.create(
            params={
                "payment_intent_data": {"metadata": {"orderId": session.orderId}},
                "line_items": line_items,
                "mode": "payment",
                "success_url": self.settings.stripe_success_url,
                "cancel_url": self.settings.stripe_cancel_url,
            }
        )

        return PaymentSessionResult(
            cancelUrl=checkout["cancel_url"],
            successUrl=checkout["success_url"],
            url=checkout["url"],
        )

    def payment_succeeded(self, event: Dict[str, Any]) -> Optional[PaymentSucceeded]:
        """Return the bus payload for a handled event, or None if it is ignored."""
        if event["type"] == "charge.succeeded":
            charge = event["data"]["object"]
            return PaymentSucceeded(
                stripePaymentId=charge["id"],
                orderId=_lookup(charge, "metadata", "orderId"),
                receiptUrl=_lookup(charge, "receipt_url"),
            )

        logger.info("Event %s not handled", event["type"])
        return None

    def handle_webhook(
        self,
        payload: bytes,
        sig: Optional[str],
        background_tasks: BackgroundTasks,
    ) -> Response:
        if not sig:
            return PlainTextResponse("Missing Stripe signature.", status_code=400)

        try:
            event = self.stripe.construct_event(
                payload, sig, self.settings.stripe_endpoint_secret
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("webhook_rejected error=%s", e)
            return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

        succeeded = self.payment_succeeded(event)
        if succeeded is not None:
            background_tasks.add_task(
                self.bus.emit, PAYMENT_SUCCEEDED, succeeded.model_dump()
            )

        # 200 for every verified event, handled or not; Stripe redelivers on non-2xx
        return JSONResponse({"sig": sig}, status_code=200)

    async def on_create_payment_session(self, message: Dict[str, Any]) -> None:
        """Bus handler for `create.payment.session` requests.

        The request is `{"data": <PaymentSession>, "replyTo": <channel>}`. The
        result (or `{"error": ...}`) is emitted on `replyTo` when one is given.
        """
        reply_to = message.get("replyTo")
        try:
            session = PaymentSession.model_validate(message.get("data"))
            result = await run_in_threadpool(self.create_payment_session, session)
            reply = {"data": result.model_dump()}
        except (ValidationError, stripe.StripeError) as e:
            logger.error("create_payment_session_failed error=%s", e)
            reply = {"error": str(e)}

        if reply_to:
            await self.bus.emit(reply_to, reply)
