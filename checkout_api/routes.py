import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkout_api.deps import get_gateway, get_settings, get_store
from checkout_api.models import OrderStatus
from checkout_api.store import OrderStoreError
from checkout_api.stripe_service import GatewayError, to_minor_units

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(min_length=1)
    # Fits orders.price, Numeric(12, 2)
    price: Decimal = Field(gt=0, lt=Decimal("10000000000"))
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    customer_id: str = Field(alias="customerId", min_length=1)

    @field_validator("price", mode="before")
    @classmethod
    def float_as_written(cls, value):
        # 19.99 must become Decimal("19.99"), not its binary expansion
        if isinstance(value, float):
            return repr(value)
        return value


@router.post("/create-checkout-session")
def create_checkout_session(
    request: CheckoutRequest,
    store=Depends(get_store),
    gateway=Depends(get_gateway),
    settings=Depends(get_settings),
):
    currency = (request.currency or settings.default_currency).lower()
    try:
        unit_amount = to_minor_units(request.price, currency)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        order = store.insert({
            "customer_id": request.customer_id,
            "product_name": request.name,
            "price": request.price,
            "currency": currency,
            "status": OrderStatus.PENDING.value,
        })
    except OrderStoreError as exc:
        logger.exception("Error storing order")
        raise HTTPException(status_code=500, detail=str(exc))

    try:
        product_id = gateway.create_product(request.name)
        price_id = gateway.create_price(product_id, unit_amount, currency)
        session_id = gateway.create_checkout_session(
            price_id,
            success_url=f"{settings.client_url}/order-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.client_url}/order-cancel?session_id={{CHECKOUT_SESSION_ID}}",
            client_reference_id=order.id,
        )
    except GatewayError as exc:
        logger.exception("Error creating checkout session for order %s", order.id)
        raise HTTPException(status_code=500, detail=str(exc))

    try:
        store.link_session(order.id, session_id)
    except OrderStoreError:
        # The session is usable; the order just stays pending and unlinked
        logger.exception("Order %s not linked to checkout session %s", order.id, session_id)

    return {"id": session_id}


@router.get("/get-checkout-session")
def get_checkout_session(session_id: Optional[str] = None, gateway=Depends(get_gateway)):
    if not session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")

    try:
        return gateway.retrieve_session(session_id)
    except GatewayError as exc:
        logger.exception("Error retrieving checkout session %s", session_id)
        raise HTTPException(status_code=500, detail=str(exc))
