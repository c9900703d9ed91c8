"""Mercado Pago checkout endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from fitlegal_api.payments.client import MercadoPagoClient
from fitlegal_api.payments.models import (
    CreatePreferenceRequest,
    PaymentStatusResponse,
    PreferenceResponse,
    VerifyPaymentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CREATE_PREFERENCE_PATH = "/api/create_preference"
VERIFY_PAYMENT_PATH = "/api/verify_payment"
PAYMENT_RESULT_PATH = "/payment/result"
LOCAL_FRONTEND_URL = "http://localhost:3000"
MISSING_TOKEN_ERROR = "Mercado Pago access token not configured"


def get_payment_client(request: Request) -> MercadoPagoClient | None:
    return getattr(request.app.state, "payment_client", None)


def get_frontend_url(request: Request) -> str | None:
    settings = getattr(request.app.state, "settings", None)
    return settings.frontend_url if settings else None


def resolve_base_url(frontend_url: str | None, request_headers) -> str:
    """Pick the frontend origin that payment return URLs point at.

    FRONTEND_URL wins; otherwise the forwarded or direct host is used unless
    it is local, in which case the dev server is assumed.
    """
    if frontend_url:
        base = frontend_url
    else:
        host = request_headers.get("x-forwarded-host") or request_headers.get("host")
        if host and "localhost" not in host:
            base = f"https://{host}"
        else:
            base = LOCAL_FRONTEND_URL
    return base.rstrip("/")


@router.post(CREATE_PREFERENCE_PATH, response_model=PreferenceResponse)
async def create_preference(
    body: CreatePreferenceRequest,
    request: Request,
    client: Annotated[MercadoPagoClient | None, Depends(get_payment_client)],
    frontend_url: Annotated[str | None, Depends(get_frontend_url)],
):
    if client is None:
        logger.error(MISSING_TOKEN_ERROR)
        return JSONResponse(status_code=500, content={"error": MISSING_TOKEN_ERROR})

    result_url = f"{resolve_base_url(frontend_url, request.headers)}{PAYMENT_RESULT_PATH}"
    back_urls = body.back_urls
    preference_body = {
        "items": body.items,
        "payer": body.payer,
        "metadata": body.metadata,
        "back_urls": {
            "success": (back_urls and back_urls.success) or result_url,
            "failure": (back_urls and back_urls.failure) or result_url,
            "pending": (back_urls and back_urls.pending) or result_url,
        },
        "auto_return": "approved",
    }
    logger.info("Creating preference with %d items", len(body.items))

    try:
        preference = await client.create_preference(preference_body)
    except Exception as exc:
        logger.exception("Error creating Mercado Pago preference")
        return JSONResponse(
            status_code=500,
            content={"error": "Error creating payment preference", "details": str(exc)},
        )

    return PreferenceResponse(id=preference.id, init_point=preference.init_point)


@router.post(VERIFY_PAYMENT_PATH, response_model=PaymentStatusResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    client: Annotated[MercadoPagoClient | None, Depends(get_payment_client)],
):
    if not body.payment_id:
        return JSONResponse(status_code=400, content={"error": "Payment ID required"})

    if client is None:
        logger.error(MISSING_TOKEN_ERROR)
        return JSONResponse(status_code=500, content={"error": MISSING_TOKEN_ERROR})

    try:
        payment = await client.get_payment(str(body.payment_id))
    except Exception as exc:
        logger.exception("Error verifying payment %s", body.payment_id)
        return JSONResponse(
            status_code=500,
            content={"error": "Error verifying payment", "details": str(exc)},
        )

    return PaymentStatusResponse(
        status=payment.status,
        status_detail=payment.status_detail,
        date_approved=payment.date_approved,
        payment_method_id=payment.payment_method_id,
        transaction_amount=payment.transaction_amount,
    )
