from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    price: float = Field(gt=0, allow_inf_nan=False)


class PaymentSession(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currency: str = Field(min_length=1)
    orderId: str = Field(min_length=1)
    items: List[PaymentItem] = Field(min_length=1)


class PaymentSessionResult(BaseModel):
    cancelUrl: Optional[str] = None
    successUrl: Optional[str] = None
    url: Optional[str] = None


class PaymentSucceeded(BaseModel):
    # Payload of the payment.succeeded bus event
    stripePaymentId: str
    orderId: Optional[str] = None
    receiptUrl: Optional[str] = None
