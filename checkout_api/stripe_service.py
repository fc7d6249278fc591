import json
from decimal import Decimal
from typing import Optional

import stripe

from checkout_api.events import WebhookEvent, parse_event

# Currencies Stripe prices in whole units
ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})

# Priced in thousandths, but Stripe only accepts amounts divisible by 10
THREE_DECIMAL_CURRENCIES = frozenset({"bhd", "jod", "kwd", "omr", "tnd"})

# Largest unit_amount Stripe accepts
MAX_UNIT_AMOUNT = 99_999_999


class GatewayError(Exception):
    """A Stripe API call failed."""


class WebhookSignatureError(Exception):
    """A webhook payload could not be authenticated."""


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a decimal price to Stripe's integer unit_amount.

    Raises ValueError when the amount is finer than the currency's minor unit
    or larger than Stripe allows.
    """
    currency = currency.lower()
    if currency in ZERO_DECIMAL_CURRENCIES:
        exponent = 0
    elif currency in THREE_DECIMAL_CURRENCIES:
        exponent = 3
    else:
        exponent = 2

    scaled = Decimal(amount).scaleb(exponent)
    if scaled != scaled.to_integral_value() or (exponent == 3 and scaled % 10):
        raise ValueError(f"{amount} has more precision than {currency.upper()} allows")
    if scaled > MAX_UNIT_AMOUNT:
        raise ValueError(f"{amount} exceeds the largest {currency.upper()} amount Stripe accepts")
    return int(scaled)


class StripeGateway:
    """Stripe calls made with this gateway's own key, never the global one."""

    def __init__(self, api_key: str, webhook_secret: str, tolerance: int = 300):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

    def create_product(self, name: str) -> str:
        try:
            return stripe.Product.create(name=name, api_key=self.api_key).id
        except stripe.StripeError as exc:
            raise GatewayError(exc.user_message or str(exc)) from exc

    def create_price(self, product_id: str, unit_amount: int, currency: str) -> str:
        try:
            price = stripe.Price.create(
                product=product_id,
                unit_amount=unit_amount,
                currency=currency,
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise GatewayError(exc.user_message or str(exc)) from exc
        return price.id

    def create_checkout_session(
        self,
        price_id: str,
        success_url: str,
        cancel_url: str,
        client_reference_id: Optional[str] = None,
    ) -> str:
        params = {
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if client_reference_id:
            params["client_reference_id"] = client_reference_id

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            raise GatewayError(exc.user_message or str(exc)) from exc
        return session.id

    def retrieve_session(self, session_id: str) -> dict:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            raise GatewayError(exc.user_message or str(exc)) from exc
        # StripeObject renders itself as JSON
        return json.loads(str(session))

    def construct_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """Verify the raw payload against its signature, then parse it."""
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
                tolerance=self.tolerance,
            )
        except ValueError as exc:
            raise WebhookSignatureError("Invalid payload") from exc
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError("Invalid signature") from exc

        try:
            return parse_event(event)
        except (KeyError, TypeError) as exc:
            raise WebhookSignatureError("Invalid payload") from exc
