"""Order ledger: owns order records and their payment lifecycle.

All mutations are single conditional UPDATE statements, so two workers
racing on the same order can never both win. When an UPDATE matches no
row, the current row is read only to explain why.
"""
from uuid import uuid4

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from orderpay import errors
from orderpay.models import Order, OrderStatus

logger = structlog.get_logger(__name__)


class OrderLedger:
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def create_order(self, owner_id: str, product_ref: str, amount: int) -> Order:
        if not product_ref or not str(product_ref).strip():
            raise errors.ValidationError("product_ref is required")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise errors.ValidationError("amount must be a positive integer")

        order = Order(
            id=str(uuid4()),
            owner_id=owner_id,
            product_ref=product_ref,
            amount=amount,
            status=OrderStatus.PENDING,
            external_payment_ref=None,
        )
        with self._sessions.begin() as session:
            session.add(order)

        logger.info("order_created", order_id=order.id, owner_id=owner_id, amount=amount)
        return order

    def get(self, order_id: str) -> Order | None:
        with self._sessions() as session:
            return session.get(Order, order_id)

    def find_by_owner(self, owner_id: str) -> list[Order]:
        with self._sessions() as session:
            stmt = (
                select(Order)
                .where(Order.owner_id == owner_id)
                .order_by(Order.created_at.desc())
            )
            return list(session.scalars(stmt))

    def find_by_external_ref(self, ref: str) -> Order | None:
        with self._sessions() as session:
            stmt = select(Order).where(Order.external_payment_ref == ref)
            return session.scalars(stmt).first()

    def attach_external_ref(self, order_id: str, ref: str) -> None:
        """Store ``ref`` on the order iff no reference is stored yet.

        Re-attaching the same reference is a no-op; a different one raises
        ``AlreadyAttached`` and leaves the stored reference untouched.
        """
        if not ref:
            raise errors.ValidationError("payment reference is required")

        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.external_payment_ref.is_(None))
            .values(external_payment_ref=ref)
            .execution_options(synchronize_session=False)
        )
        try:
            with self._sessions.begin() as session:
                updated = session.execute(stmt).rowcount
        except IntegrityError:
            logger.warning("payment_ref_in_use", order_id=order_id, ref=ref)
            raise errors.AlreadyAttached(f"Payment reference {ref} belongs to another order")

        if updated == 1:
            logger.info("payment_ref_attached", order_id=order_id, ref=ref)
            return

        current = self.get(order_id)
        if current is None:
            raise errors.OrderNotFound(f"Order {order_id} not found")
        if current.external_payment_ref != ref:
            raise errors.AlreadyAttached(
                f"Order {order_id} already has payment reference {current.external_payment_ref}"
            )

    def transition(self, order_id: str, matching_ref: str, new_status: OrderStatus) -> Order:
        """Move a pending order to ``new_status`` if its stored ref matches.

        Raises ``RefMismatch`` when the stored reference differs (or is not
        attached yet) and ``AlreadyResolved`` when the order is terminal.
        A pending order whose ref got attached between the UPDATE and the
        re-read is retried once.
        """
        new_status = OrderStatus(new_status)
        if not new_status.terminal:
            raise errors.ValidationError("orders can only transition to a terminal status")

        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == OrderStatus.PENDING,
                Order.external_payment_ref == matching_ref,
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        for _ in range(2):
            with self._sessions.begin() as session:
                updated = session.execute(stmt).rowcount

            current = self.get(order_id)
            if current is None:
                raise errors.OrderNotFound(f"Order {order_id} not found")

            if updated == 1:
                logger.info("order_transitioned", order_id=order_id, status=new_status.value)
                return current

            if current.external_payment_ref != matching_ref:
                raise errors.RefMismatch(
                    f"Order {order_id} is bound to {current.external_payment_ref}, not {matching_ref}"
                )
            if current.status.terminal:
                raise errors.AlreadyResolved(current)

        raise errors.RefMismatch(f"Order {order_id} could not be bound to {matching_ref}")
