"""Pydantic models for the payment endpoints."""

from typing import Any

from pydantic import BaseModel


class BackUrls(BaseModel):
    success: str | None = None
    failure: str | None = None
    pending: str | None = None


class CreatePreferenceRequest(BaseModel):
    items: list[dict[str, Any]]
    payer: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    back_urls: BackUrls | None = None


class PreferenceResponse(BaseModel):
    id: str
    init_point: str


class VerifyPaymentRequest(BaseModel):
    payment_id: str | int | None = None


class PaymentStatusResponse(BaseModel):
    status: str | None
    status_detail: str | None
    date_approved: str | None
    payment_method_id: str | None
    transaction_amount: float | None
