# app/routers/factory.py
import uuid
from collections.abc import Callable, Sequence

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session, SQLModel

from app.core.errors import BadRequestError
from app.core.query_features import query_params_to_dict
from app.database import get_session
from app.services.resource_service import ResourceService

ALL_OPERATIONS = ("list", "get", "create", "update", "delete")


def parent_filter(request: Request, parent_param: str | None) -> dict | None:
    """
    Mandatory nested-route scope, e.g. {"category_id": <uuid>} when the
    route is mounted under /categories/{category_id}/subcategories.
    """
    if parent_param is None:
        return None
    raw = request.path_params.get(parent_param)
    if raw is None:
        return None
    try:
        return {parent_param: uuid.UUID(raw)}
    except ValueError:
        raise BadRequestError(f"Invalid {parent_param}")


def list_envelope(data: list[dict], pagination) -> dict:
    return {
        "results": len(data),
        "pagination_result": pagination.as_dict(),
        "data": data,
    }


def build_crud_router(
    service: ResourceService,
    *,
    prefix: str,
    tags: list[str],
    create_schema: type[SQLModel] | None = None,
    update_schema: type[SQLModel] | None = None,
    auth: dict[str, Sequence[Callable]] | None = None,
    operations: Sequence[str] = ALL_OPERATIONS,
    parent_param: str | None = None,
    populate_on_get: bool = False,
) -> APIRouter:
    """
    Wire the generic handlers of one resource onto an APIRouter.

    Args:
        auth: operation name -> dependencies gating it, e.g.
              {"create": [require_staff], "delete": [require_admin]}.
              Operations without an entry are public.
        operations: subset of list/get/create/update/delete to expose.
        parent_param: path parameter of the enclosing route (nested routers);
              scopes list/get and fills the payload on create.
        populate_on_get: expand references on get-one.

    Response envelopes:
        list   -> {results, pagination_result, data}
        get    -> {data}
        create -> {data, message} (201)
        update -> {data, message}
        delete -> 204, no body
    """
    router = APIRouter(prefix=prefix, tags=tags)
    auth = auth or {}
    name = service.resource.name

    def deps(operation: str) -> list:
        return [Depends(d) for d in auth.get(operation, ())]

    if "list" in operations:

        @router.get("", dependencies=deps("list"), summary=f"List {name} records")
        def list_items(request: Request, session: Session = Depends(get_session)):
            params = query_params_to_dict(request.query_params.multi_items())
            data, pagination = service.list(
                session, params, parent_filter(request, parent_param)
            )
            return list_envelope(data, pagination)

    if "get" in operations:

        @router.get("/{item_id}", dependencies=deps("get"), summary=f"Get one {name}")
        def get_item(
            item_id: uuid.UUID,
            request: Request,
            session: Session = Depends(get_session),
        ):
            data = service.get_one(
                session,
                item_id,
                parent_filter(request, parent_param),
                populate=populate_on_get,
            )
            return {"data": data}

    if "create" in operations and create_schema is not None:

        @router.post(
            "",
            status_code=status.HTTP_201_CREATED,
            dependencies=deps("create"),
            summary=f"Create a {name}",
        )
        def create_item(
            payload: create_schema,
            request: Request,
            session: Session = Depends(get_session),
        ):
            body = payload.model_dump(exclude_unset=True)
            scope = parent_filter(request, parent_param)
            if scope:
                # Nested route: the parent in the path wins when the body omits it
                for key, value in scope.items():
                    if body.get(key) is None:
                        body[key] = value
            data = service.create_one(session, body)
            return {"data": data, "message": f"{name} created successfully"}

    if "update" in operations and update_schema is not None:

        @router.put("/{item_id}", dependencies=deps("update"), summary=f"Update a {name}")
        def update_item(
            item_id: uuid.UUID,
            payload: update_schema,
            session: Session = Depends(get_session),
        ):
            data = service.update_one(
                session, item_id, payload.model_dump(exclude_unset=True)
            )
            return {"data": data, "message": f"{name} updated successfully"}

    if "delete" in operations:

        @router.delete(
            "/{item_id}",
            status_code=status.HTTP_204_NO_CONTENT,
            dependencies=deps("delete"),
            summary=f"Delete a {name}",
        )
        def delete_item(
            item_id: uuid.UUID,
            session: Session = Depends(get_session),
        ):
            service.delete_one(session, item_id)
            return None

    return router
