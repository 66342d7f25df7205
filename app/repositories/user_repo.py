# app/repositories/user_repo.py
import uuid

from sqlmodel import Session, select

from app.models.user import Address, User


class UserRepository:
    """
    Data access layer for User and Address.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Users -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email (case-insensitive), or None."""
        stmt = select(User).where(User.email == email.strip().lower())
        return session.exec(stmt).first()

    def list_by_reset_code(self, session: Session, code_hash: str, limit: int = 2) -> list[User]:
        """Return up to `limit` Users holding this hashed reset code."""
        stmt = select(User).where(User.password_reset_code == code_hash).limit(limit)
        return list(session.exec(stmt).all())

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def delete(self, session: Session, user: User) -> None:
        """Delete a User."""
        session.delete(user)
        session.commit()

    # ----- Addresses -----

    def list_addresses(self, session: Session, user_id: uuid.UUID) -> list[Address]:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.created_at)
        )
        return session.exec(stmt).all()

    def get_address(
        self,
        session: Session,
        user_id: uuid.UUID,
        address_id: uuid.UUID,
    ) -> Address | None:
        stmt = select(Address).where(
            Address.user_id == user_id,
            Address.id == address_id,
        )
        return session.exec(stmt).first()

    def create_address(self, session: Session, address: Address) -> Address:
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    def delete_address(self, session: Session, address: Address) -> None:
        session.delete(address)
        session.commit()
