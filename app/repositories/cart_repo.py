# app/repositories/cart_repo.py
import uuid

from sqlmodel import Session, delete, select

from app.models.cart import Cart, CartItem


class CartRepository:
    """
    Data access layer for carts and cart_items.

    NOTE:
      - No commits here; every cart mutation is a read-modify-write
        inside the request's transaction. The service commits.
      - `lock=True` reads the cart row with SELECT ... FOR UPDATE so two
        concurrent mutations of the same cart serialize on the database.
    """

    # ---- Carts ----

    def get_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        lock: bool = False,
    ) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id)
        if lock:
            stmt = stmt.with_for_update()
        return session.exec(stmt).first()

    def get_by_id(
        self,
        session: Session,
        cart_id: uuid.UUID,
        lock: bool = False,
    ) -> Cart | None:
        stmt = select(Cart).where(Cart.id == cart_id)
        if lock:
            stmt = stmt.with_for_update()
        return session.exec(stmt).first()

    def create(self, session: Session, user_id: uuid.UUID) -> Cart:
        cart = Cart(user_id=user_id)
        session.add(cart)
        session.flush()
        return cart

    def delete(self, session: Session, cart: Cart) -> None:
        session.exec(delete(CartItem).where(CartItem.cart_id == cart.id))
        session.delete(cart)
        session.flush()

    # ---- Cart items ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at, CartItem.id)
        )
        return session.exec(stmt).all()

    def find_line(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
        color: str | None,
    ) -> CartItem | None:
        """Line with the same product and color (None matches None)."""
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id,
            CartItem.product_id == product_id,
        )
        if color is None:
            stmt = stmt.where(CartItem.color.is_(None))
        else:
            stmt = stmt.where(CartItem.color == color)
        return session.exec(stmt).first()

    def get_item(
        self,
        session: Session,
        cart_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id,
            CartItem.id == item_id,
        )
        return session.exec(stmt).first()

    def add_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()
