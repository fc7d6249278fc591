"""Order persistence.

Every operation runs in its own session and commits a single statement, so
concurrent invocations only ever race on single-row updates.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from checkout_api.models import Order, OrderStatus


class OrderStoreError(Exception):
    """A database call failed."""


class OrderStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def insert(self, values: dict) -> Order:
        """Insert an order row and return it with its assigned id."""
        try:
            with self._session_factory() as db:
                order = Order(**values)
                db.add(order)
                db.commit()
                db.refresh(order)
                return order
        except SQLAlchemyError as exc:
            raise OrderStoreError(str(exc)) from exc

    def update(self, filters: dict, patch: dict) -> int:
        """Apply `patch` to every order matching `filters`.

        Returns the number of matched rows.
        """
        if not filters:
            raise ValueError("update requires at least one filter")

        try:
            with self._session_factory() as db:
                result = db.execute(update(Order).filter_by(**filters).values(**patch))
                db.commit()
                return result.rowcount
        except SQLAlchemyError as exc:
            raise OrderStoreError(str(exc)) from exc

    def find_by_session(self, session_id: str) -> Optional[Order]:
        try:
            with self._session_factory() as db:
                return db.scalars(select(Order).filter_by(stripe_session_id=session_id)).first()
        except SQLAlchemyError as exc:
            raise OrderStoreError(str(exc)) from exc

    def link_session(self, order_id: str, session_id: str) -> int:
        return self.update({"id": order_id}, {"stripe_session_id": session_id})

    def mark_completed(self, session_id: str) -> int:
        # Writing the terminal state is safe to repeat
        return self.update({"stripe_session_id": session_id}, {"status": OrderStatus.COMPLETED.value})
