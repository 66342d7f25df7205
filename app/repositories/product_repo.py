# app/repositories/product_repo.py
import uuid
from collections.abc import Iterable

from sqlalchemy import bindparam, update
from sqlmodel import Session

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product inventory.

    - Pure DB operations.
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def apply_sale(
        self,
        session: Session,
        lines: Iterable[tuple[uuid.UUID, int]],
    ) -> None:
        """
        Decrement `quantity` and increment `sold` for every (product_id, qty)
        line in ONE batched UPDATE (executemany). No commit: it joins the
        caller's transaction with the order insert and the cart delete.
        """
        params = [{"b_id": product_id, "b_qty": qty} for product_id, qty in lines]
        if not params:
            return

        table = Product.__table__
        stmt = (
            update(table)
            .where(table.c.id == bindparam("b_id"))
            .values(
                quantity=table.c.quantity - bindparam("b_qty"),
                sold=table.c.sold + bindparam("b_qty"),
            )
        )
        session.connection().execute(stmt, params)
