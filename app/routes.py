from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request

from app.models import PaymentSession, PaymentSessionResult
from app.stripe_service import PaymentsService

router = APIRouter(prefix="/payments")


def get_service(request: Request) -> PaymentsService:
    return request.app.state.service


@router.post("/create-payment-session", response_model=PaymentSessionResult)
def create_payment_session(
    session: PaymentSession,
    service: PaymentsService = Depends(get_service),
):
    return service.create_payment_session(session)


@router.get("/success")
def success():
    return {"ok": True, "message": "Payment successful"}


@router.get("/cancel")
def cancel():
    return {"ok": False, "message": "Payment cancelled"}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    stripe_signature: str = Header(None),
    service: PaymentsService = Depends(get_service),
):
    # Signature is computed over the raw body, so it must not be parsed first
    payload = await request.body()
    return service.handle_webhook(payload, stripe_signature, background_tasks)
