import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

MERCADO_PAGO_API_BASE = "https://api.mercadopago.com"


class MercadoPagoError(Exception):
    """Raised when Mercado Pago rejects a request."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"Mercado Pago returned {status_code}: {message}")


@dataclass
class Preference:
    id: str
    init_point: str


@dataclass
class PaymentInfo:
    status: str | None
    status_detail: str | None
    date_approved: str | None
    payment_method_id: str | None
    transaction_amount: float | None


class MercadoPagoClient:
    def __init__(
        self,
        access_token: str,
        base_url: str = MERCADO_PAGO_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if resp.is_success:
            return
        try:
            message = resp.json().get("message") or resp.text
        except ValueError:
            message = resp.text
        raise MercadoPagoError(resp.status_code, message)

    async def create_preference(self, body: dict) -> Preference:
        """Create a checkout preference and return its id and checkout URL."""
        resp = await self._client.post("/checkout/preferences", json=body)
        self._raise_for_error(resp)
        data = resp.json()
        logger.info("Created Mercado Pago preference %s", data["id"])
        return Preference(id=data["id"], init_point=data["init_point"])

    async def get_payment(self, payment_id: str) -> PaymentInfo:
        resp = await self._client.get(f"/v1/payments/{quote(payment_id, safe='')}")
        self._raise_for_error(resp)
        data = resp.json()
        return PaymentInfo(
            status=data.get("status"),
            status_detail=data.get("status_detail"),
            date_approved=data.get("date_approved"),
            payment_method_id=data.get("payment_method_id"),
            transaction_amount=data.get("transaction_amount"),
        )
