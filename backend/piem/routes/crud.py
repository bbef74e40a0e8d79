"""
PIEM Backend — Resource Router Factory
=======================================

What:  Builds the five REST routes for one resource descriptor.
How:   Each resource module calls `build_resource_router` with its
       descriptor, pydantic models and one access dependency per verb.
       The handlers only translate HTTP ↔ ResourceService calls and wrap
       results in the response envelopes.
Who:   routes/users.py, categories.py, inventory.py, suppliers.py.

Routes produced (prefix = mount point):
    GET    {prefix}        → 200 {success, count, data[]}
    GET    {prefix}/{id}   → 200 {success, data}
    POST   {prefix}        → 201 {success, message, data}
    PUT    {prefix}/{id}   → 200 {success, message, data}
    DELETE {prefix}/{id}   → 200 {success, message}

Dependency order on `/{id}` routes:
    valid_object_id (400) → access gate (401/403) → body validation (400)
"""

from typing import Any, Callable, Dict, Optional, Type

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from piem.database import MongoStore, get_store
from piem.schemas.common import (
    CamelModel,
    DataEnvelope,
    ErrorResponse,
    ListEnvelope,
    MessageEnvelope,
)
from piem.security import get_caller
from piem.services.policies import Caller
from piem.services.resource_service import ListFilter, ResourceDescriptor, ResourceService
from piem.validation import valid_object_id


# Shared OpenAPI error documentation
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid ID format or validation failed"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Access denied"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    409: {"model": ErrorResponse, "description": "Natural key already in use"},
    500: {"model": ErrorResponse, "description": "Document store failure"},
}


def _responses(*codes: int) -> Dict[int, Dict[str, Any]]:
    return {code: ERROR_RESPONSES[code] for code in codes}


def _filter_param(list_filter: Optional[ListFilter]) -> Callable[..., Any]:
    """Dependency exposing the descriptor's list filter as a query parameter."""
    if list_filter is None:
        async def no_filter() -> None:
            return None

        return no_filter

    async def filter_value(
        value: Optional[str] = Query(
            default=None, alias=list_filter.param, description=list_filter.description
        ),
    ) -> Optional[str]:
        return value

    return filter_value


def build_resource_router(
    descriptor: ResourceDescriptor,
    *,
    prefix: str,
    tag: str,
    create_model: Type[CamelModel],
    update_model: Type[CamelModel],
    out_model: Type[CamelModel],
    list_access: Callable[..., Any] = get_caller,
    read_access: Callable[..., Any] = get_caller,
    create_access: Callable[..., Any] = get_caller,
    update_access: Callable[..., Any] = get_caller,
    delete_access: Callable[..., Any] = get_caller,
) -> APIRouter:
    """
    Create the CRUD router for `descriptor`.

    Access dependencies must return the Caller (or None for anonymous);
    ownership beyond that is enforced by the descriptor's policy.
    """
    router = APIRouter(prefix=prefix, tags=[tag])
    label = descriptor.label
    plural = tag.lower()

    def get_service(store: MongoStore = Depends(get_store)) -> ResourceService:
        return ResourceService(descriptor, store)

    @router.get(
        "",
        response_model=ListEnvelope[out_model],
        response_model_exclude_none=True,
        summary=f"List {plural}",
        responses=_responses(401, 403, 500),
    )
    async def list_resources(
        caller: Optional[Caller] = Depends(list_access),
        filter_value: Optional[str] = Depends(_filter_param(descriptor.list_filter)),
        service: ResourceService = Depends(get_service),
    ):
        docs = await service.present(await service.list(filter_value, caller))
        return {"success": True, "count": len(docs), "data": docs}

    @router.get(
        "/{id}",
        response_model=DataEnvelope[out_model],
        response_model_exclude_none=True,
        summary=f"Get a {descriptor.name} by id",
        responses=_responses(400, 401, 403, 404, 500),
    )
    async def get_resource(
        oid: ObjectId = Depends(valid_object_id),
        caller: Optional[Caller] = Depends(read_access),
        service: ResourceService = Depends(get_service),
    ):
        doc = await service.get(oid, caller)
        (doc,) = await service.present([doc])
        return {"success": True, "data": doc}

    @router.post(
        "",
        status_code=status.HTTP_201_CREATED,
        response_model=DataEnvelope[out_model],
        response_model_exclude_none=True,
        summary=f"Create a {descriptor.name}",
        responses=_responses(400, 401, 403, 409, 500),
    )
    async def create_resource(
        payload: create_model,
        caller: Optional[Caller] = Depends(create_access),
        service: ResourceService = Depends(get_service),
    ):
        doc = await service.create(payload.model_dump(by_alias=True, exclude_none=True), caller)
        (doc,) = await service.present([doc])
        return {"success": True, "message": f"{label} created successfully", "data": doc}

    @router.put(
        "/{id}",
        response_model=DataEnvelope[out_model],
        response_model_exclude_none=True,
        summary=f"Update a {descriptor.name}",
        responses=_responses(400, 401, 403, 404, 409, 500),
    )
    async def update_resource(
        payload: update_model,
        oid: ObjectId = Depends(valid_object_id),
        caller: Optional[Caller] = Depends(update_access),
        service: ResourceService = Depends(get_service),
    ):
        changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        doc = await service.update(oid, changes, caller)
        (doc,) = await service.present([doc])
        return {"success": True, "message": f"{label} updated successfully", "data": doc}

    @router.delete(
        "/{id}",
        response_model=MessageEnvelope,
        summary=f"Delete a {descriptor.name}",
        responses=_responses(400, 401, 403, 404, 500),
    )
    async def delete_resource(
        oid: ObjectId = Depends(valid_object_id),
        caller: Optional[Caller] = Depends(delete_access),
        service: ResourceService = Depends(get_service),
    ):
        await service.delete(oid, caller)
        return {"success": True, "message": f"{label} deleted successfully"}

    return router
