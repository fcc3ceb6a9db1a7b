"""Order submission against the order-creation endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from voice_intake.core.config import Settings
from voice_intake.core.errors import MissingProductName, NetworkUnavailable, SubmissionRejected
from voice_intake.dialogue.effects import EffectBus, OpenUrl, Speak
from voice_intake.memory.models import SlotState
from voice_intake.tools.urls import derive_url

logger = logging.getLogger("voice_intake.orders")


class ProductLine(BaseModel):
    name: str
    url: str
    quantity: int = Field(default=1, ge=1)
    price: float = 0


class ShippingAddress(BaseModel):
    first_name: str
    last_name: str
    address_line_1: str
    city: str
    state: str
    postal_code: str
    country: str


class CustomerProfile(BaseModel):
    """Fixed identity attached to voice orders."""

    name: str = "Demo User"
    email: str = "demo@example.com"
    shipping_address: ShippingAddress = ShippingAddress(
        first_name="Demo",
        last_name="User",
        address_line_1="123 Main St",
        city="Seattle",
        state="WA",
        postal_code="98109",
        country="US",
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> CustomerProfile:
        return cls(
            name=settings.demo_customer_name,
            email=settings.demo_email,
            shipping_address=ShippingAddress(
                first_name=settings.demo_first_name,
                last_name=settings.demo_last_name,
                address_line_1=settings.demo_address_line_1,
                city=settings.demo_city,
                state=settings.demo_state,
                postal_code=settings.demo_postal_code,
                country=settings.demo_country,
            ),
        )


class OrderPayload(BaseModel):
    retailer: str
    automation_method: str
    product: ProductLine
    customer_name: str
    customer_email: str
    shipping_address: ShippingAddress
    priority: str = "normal"


class OrderSubmitter:
    """Turn a completed slot state into one order-creation request."""

    def __init__(
        self,
        endpoint: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        automation_method: str = "strands",
        default_retailer: str = "Amazon",
        priority: str = "normal",
        customer: CustomerProfile | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = client
        self._timeout = timeout
        self.automation_method = automation_method
        self.default_retailer = default_retailer
        self.priority = priority
        self.customer = customer or CustomerProfile()

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> OrderSubmitter:
        return cls(
            str(settings.orders_endpoint),
            client=client,
            timeout=settings.submit_timeout_seconds,
            automation_method=settings.automation_method,
            default_retailer=settings.default_retailer,
            priority=settings.order_priority,
            customer=CustomerProfile.from_settings(settings),
        )

    def product_url(self, slots: SlotState) -> str:
        return derive_url(slots.product_name, slots.retailer, self.default_retailer)

    def build_payload(self, slots: SlotState, url: str | None = None) -> OrderPayload:
        if not slots.product_name:
            raise MissingProductName()
        return OrderPayload(
            retailer=slots.retailer or self.default_retailer,
            automation_method=self.automation_method,
            product=ProductLine(
                name=slots.product_name,
                url=url or self.product_url(slots),
                quantity=slots.quantity or 1,
                price=0,
            ),
            customer_name=self.customer.name,
            customer_email=self.customer.email,
            shipping_address=self.customer.shipping_address,
            priority=self.priority,
        )

    async def submit(self, slots: SlotState, effects: EffectBus | None = None) -> str:
        """Submit the order once and return the new order id.

        Raises ``MissingProductName`` before any I/O, ``SubmissionRejected`` on a
        non-success response and ``NetworkUnavailable`` on transport failure.
        """

        if not slots.product_name:
            raise MissingProductName()

        url = self.product_url(slots)
        if effects is not None:
            effects.emit(OpenUrl(url))
            effects.emit(Speak(f"Opening {slots.retailer or 'the store'} to show you the product."))

        payload = self.build_payload(slots, url)
        logger.info(
            "Submitting order for %s x%s at %s",
            payload.product.name,
            payload.product.quantity,
            payload.retailer,
        )

        try:
            response = await self._post(payload.model_dump(mode="json"))
        except httpx.HTTPError as exc:
            logger.error("Order endpoint unreachable at %s: %s", self.endpoint, exc)
            raise NetworkUnavailable() from exc

        if not response.is_success:
            detail = _error_detail(response)
            logger.warning("Order endpoint rejected submission [%s]: %s", response.status_code, detail)
            raise SubmissionRejected(detail, response.status_code)

        order_id = _order_id(response)
        if order_id is None:
            logger.warning("Order endpoint response carried no order id [%s]", response.status_code)
            raise SubmissionRejected("Response did not include an order id", response.status_code)

        logger.info("Order %s created", order_id)
        return order_id

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.endpoint, json=body, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self.endpoint, json=body)


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str | None:
    body = _json_body(response)
    if isinstance(body, dict) and body.get("detail"):
        detail = body["detail"]
        return detail if isinstance(detail, str) else str(detail)
    return None


def _order_id(response: httpx.Response) -> str | None:
    body = _json_body(response)
    if isinstance(body, dict) and body.get("order_id") is not None:
        return str(body["order_id"])
    return None
