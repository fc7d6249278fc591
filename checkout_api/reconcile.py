"""Order reconciliation driven by verified Stripe webhook events.

Stripe delivers events at least once and in no guaranteed order, so every
branch here is safe to replay:

* a paid ``checkout.session.completed`` marks the linked order completed;
  replaying it finds the order already completed and writes nothing,
* a completed session that is not paid leaves the order pending,
* a session id with no linked order is acknowledged without mutation (the
  order may belong to another dataset or may not be linked yet),
* every other event type is acknowledged and ignored.

Store failures propagate so the caller can answer with a 5xx and let Stripe
redeliver.
"""

import logging
from enum import Enum
from typing import assert_never

from checkout_api.events import CheckoutSessionCompleted, UnhandledEvent, WebhookEvent
from checkout_api.models import OrderStatus
from checkout_api.store import OrderStore

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    COMPLETED = "completed"
    NOT_PAID = "not_paid"
    UNMATCHED = "unmatched"
    IGNORED = "ignored"


def reconcile(event: WebhookEvent, store: OrderStore) -> Outcome:
    if isinstance(event, CheckoutSessionCompleted):
        return complete_order(event, store)
    if isinstance(event, UnhandledEvent):
        logger.info("Unhandled event type %s", event.type)
        return Outcome.IGNORED
    assert_never(event)


def complete_order(event: CheckoutSessionCompleted, store: OrderStore) -> Outcome:
    if not event.session_id or not event.paid:
        logger.info(
            "Checkout session %s completed with payment status %s, order left pending",
            event.session_id,
            event.payment_status,
        )
        return Outcome.NOT_PAID

    order = store.find_by_session(event.session_id)
    if order is None:
        logger.warning("No order linked to checkout session %s", event.session_id)
        return Outcome.UNMATCHED
    if order.status == OrderStatus.COMPLETED.value:
        logger.info("Order %s already completed", order.id)
        return Outcome.COMPLETED

    store.mark_completed(event.session_id)

    logger.info("Order for checkout session %s completed", event.session_id)
    return Outcome.COMPLETED
