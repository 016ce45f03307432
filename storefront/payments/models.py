from pydantic import BaseModel, Field


class PaymentCaptureIn(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentInitiateOut(BaseModel):
    order_id: str
    provider_order_id: str
    amount: float
    amount_minor: int
    currency: str
    payment_status: str


class PaymentCaptureOut(BaseModel):
    message: str
    success: bool
    signature_verified: bool
    order_id: str
    payment_status: str
