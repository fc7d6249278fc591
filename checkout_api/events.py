"""Stripe webhook events this service understands.

Verified events are narrowed to a closed set of kinds. Anything that is not
a completed checkout session becomes an ``UnhandledEvent``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class EventType(str, Enum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class CheckoutSessionCompleted:
    event_id: Optional[str]
    session_id: Optional[str]
    payment_status: Optional[str]

    @property
    def paid(self) -> bool:
        return self.payment_status == "paid"


@dataclass(frozen=True)
class UnhandledEvent:
    event_id: Optional[str]
    type: str


WebhookEvent = Union[CheckoutSessionCompleted, UnhandledEvent]


def _field(obj, key):
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def parse_event(event) -> WebhookEvent:
    """Narrow a Stripe event (or its dict form) to a WebhookEvent."""
    event_type = event["type"]
    event_id = _field(event, "id")

    if event_type == EventType.CHECKOUT_SESSION_COMPLETED.value:
        session = event["data"]["object"]
        return CheckoutSessionCompleted(
            event_id=event_id,
            session_id=_field(session, "id"),
            payment_status=_field(session, "payment_status"),
        )

    return UnhandledEvent(event_id=event_id, type=event_type)
