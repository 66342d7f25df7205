import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, func, select

from app.core.errors import BadRequestError, NotFoundError
from app.core.query_features import (
    Pagination,
    QueryParams,
    apply_query_spec,
    build_query_spec,
    compile_conditions,
    Condition,
    project,
)
from app.core.storage_utils import public_url

logger = logging.getLogger(__name__)


@dataclass
class Resource:
    """
    Entity definition consumed by the generic handlers.

    Hooks:
      - hidden_fields: stripped from every response, never filterable
      - image_fields: stored filename (or list of filenames) -> storage folder;
        turned into public URLs on serialization
      - before_create / before_update: payload transforms before persistence
      - after_write: runs once the create/update/delete is flushed,
        in the same transaction
      - populate: expands references on get-one
    """

    model: type[SQLModel]
    name: str
    default_limit: int = 50
    hidden_fields: tuple[str, ...] = ()
    image_fields: dict[str, str] = field(default_factory=dict)
    before_create: Callable[[dict[str, Any]], dict[str, Any]] | None = None
    before_update: Callable[[dict[str, Any]], dict[str, Any]] | None = None
    after_write: Callable[[Session, Any], None] | None = None
    populate: Callable[[Session, dict[str, Any]], dict[str, Any]] | None = None

    def serialize(self, obj: SQLModel) -> dict[str, Any]:
        data = obj.model_dump(mode="json")
        for name in self.hidden_fields:
            data.pop(name, None)
        for name, folder in self.image_fields.items():
            value = data.get(name)
            if isinstance(value, list):
                data[name] = [public_url(folder, v) for v in value]
            elif value:
                data[name] = public_url(folder, value)
        return data


class ResourceService:
    """
    Generic list / get / create / update / delete over one Resource.

    `base_filter` is the mandatory nested-route scope, e.g.
    {"category_id": <id>} for /categories/{id}/subcategories.
    """

    def __init__(self, resource: Resource):
        self.resource = resource
        self.model = resource.model

    # ---- helpers ----

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.resource.name} not found")

    def _commit(self, session: Session, obj: SQLModel) -> None:
        """Flush, run the after-write hook in the same transaction, commit once."""
        try:
            session.flush()
            if self.resource.after_write:
                self.resource.after_write(session, obj)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.info("%s write rejected: %s", self.resource.name, exc.orig)
            raise BadRequestError(
                f"{self.resource.name} conflicts with an existing record or references a missing one"
            )
        session.refresh(obj)

    def _settable(self, payload: dict[str, Any]) -> dict[str, Any]:
        columns = set(self.model.__table__.columns.keys()) - {"id", "created_at", "updated_at"}
        return {k: v for k, v in payload.items() if k in columns}

    def count(self, session: Session, base_filter: dict[str, Any] | None = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        clauses = compile_conditions(
            self.model,
            [Condition(k, "eq", v) for k, v in (base_filter or {}).items()],
        )
        if clauses:
            stmt = stmt.where(*clauses)
        return session.exec(stmt).one()

    # ---- operations ----

    def list(
        self,
        session: Session,
        params: QueryParams,
        base_filter: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], Pagination]:
        """
        Filter / search / sort / project / paginate a listing.

        The page count uses the collection size scoped by `base_filter`
        only; query-string filters don't shrink it.
        """
        total = self.count(session, base_filter)
        spec = build_query_spec(
            params,
            self.model,
            total_count=total,
            base_filter=base_filter,
            entity_type=self.resource.name,
            default_limit=self.resource.default_limit,
            hidden_fields=self.resource.hidden_fields,
        )
        rows = session.exec(apply_query_spec(select(self.model), self.model, spec)).all()
        data = [project(self.resource.serialize(row), spec) for row in rows]
        return data, spec.pagination

    def get_instance(
        self,
        session: Session,
        item_id: uuid.UUID,
        base_filter: dict[str, Any] | None = None,
    ) -> SQLModel:
        stmt = select(self.model).where(self.model.id == item_id)
        clauses = compile_conditions(
            self.model,
            [Condition(k, "eq", v) for k, v in (base_filter or {}).items()],
        )
        if clauses:
            stmt = stmt.where(*clauses)
        obj = session.exec(stmt).first()
        if obj is None:
            raise self._not_found()
        return obj

    def get_one(
        self,
        session: Session,
        item_id: uuid.UUID,
        base_filter: dict[str, Any] | None = None,
        populate: bool = False,
    ) -> dict[str, Any]:
        obj = self.get_instance(session, item_id, base_filter)
        data = self.resource.serialize(obj)
        if populate and self.resource.populate:
            data = self.resource.populate(session, data)
        return data

    def create_one(self, session: Session, payload: dict[str, Any]) -> dict[str, Any]:
        if self.resource.before_create:
            payload = self.resource.before_create(dict(payload))
        obj = self.model(**self._settable(payload))
        session.add(obj)
        self._commit(session, obj)
        return self.resource.serialize(obj)

    def update_one(
        self,
        session: Session,
        item_id: uuid.UUID,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Partial update. The generic path never writes a password.
        """
        payload = dict(payload)
        payload.pop("password", None)
        if self.resource.before_update:
            payload = self.resource.before_update(payload)

        obj = session.get(self.model, item_id)
        if obj is None:
            raise self._not_found()

        for key, value in self._settable(payload).items():
            setattr(obj, key, value)
        session.add(obj)
        self._commit(session, obj)
        return self.resource.serialize(obj)

    def delete_one(self, session: Session, item_id: uuid.UUID) -> None:
        obj = session.get(self.model, item_id)
        if obj is None:
            raise self._not_found()

        # Attributes are gone once the delete is committed
        snapshot = self.model(**obj.model_dump())
        session.delete(obj)
        try:
            session.flush()
            if self.resource.after_write:
                self.resource.after_write(session, snapshot)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.info("%s delete rejected: %s", self.resource.name, exc.orig)
            raise BadRequestError(f"{self.resource.name} is still referenced by other records")
