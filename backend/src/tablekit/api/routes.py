"""Table API endpoints."""

from typing import Any, Callable, Literal

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field

from tablekit.api.query_params import parse_query_options
from tablekit.auth.types import Caller
from tablekit.engine.service import TableService
from tablekit.engine.transfer import export_table, import_records


class CreateRequest(BaseModel):
    """Request body for create operations."""
    data: dict[str, Any]


class UpdateRequest(BaseModel):
    """Request body for update operations."""
    data: dict[str, Any]


class BulkUpdateRequest(BaseModel):
    ids: list[str]
    data: dict[str, Any]


class BulkDeleteRequest(BaseModel):
    ids: list[str]
    permanent: bool = False


class ImportRequest(BaseModel):
    data: list[dict[str, Any]] = Field(min_length=1)
    mode: Literal["create", "update", "upsert"] = "create"


def create_tables_router(
    get_service: Callable[[], TableService | None],
    get_caller: Callable[..., Caller],
) -> APIRouter:
    """Create the tables router with injected dependencies.

    Args:
        get_service: Function returning the table service
        get_caller: FastAPI dependency resolving the request's Caller

    Returns:
        Configured APIRouter
    """
    router = APIRouter(prefix="/api/tables", tags=["tables"])

    def _service() -> TableService:
        service = get_service()
        if not service:
            raise HTTPException(500, "Service not initialized")
        return service

    @router.get("")
    async def list_tables(caller: Caller = Depends(get_caller)) -> dict[str, Any]:
        """List the tables the caller can view."""
        return {"success": True, "data": _service().list_tables(caller)}

    @router.get("/{entity_key}")
    async def list_records(
        entity_key: str, request: Request, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        """One page of records, with table metadata."""
        options = parse_query_options(request.query_params)
        result = await _service().list(entity_key, options, caller)
        return result.to_dict()

    @router.get("/{entity_key}/config")
    async def get_config(entity_key: str, caller: Caller = Depends(get_caller)) -> dict[str, Any]:
        return {"success": True, "data": _service().get_config(entity_key, caller)}

    @router.get("/{entity_key}/stats")
    async def get_stats(entity_key: str, caller: Caller = Depends(get_caller)) -> dict[str, Any]:
        stats = await _service().stats(entity_key, caller)
        return {"success": True, "data": stats.to_dict()}

    @router.get("/{entity_key}/actions")
    async def get_actions(
        entity_key: str,
        type: str | None = None,
        caller: Caller = Depends(get_caller),
    ) -> dict[str, Any]:
        return {"success": True, "data": _service().get_actions(entity_key, caller, type)}

    @router.get("/{entity_key}/export")
    async def export(
        entity_key: str,
        request: Request,
        format: str = "json",
        caller: Caller = Depends(get_caller),
    ) -> Response:
        """Download matching records as JSON or CSV."""
        if format not in ("json", "csv"):
            raise HTTPException(400, f"Unsupported export format: {format}")
        options = parse_query_options(request.query_params)
        result = await export_table(_service(), entity_key, caller, format, options)
        return Response(
            content=result.content,
            media_type=result.media_type,
            headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
        )

    @router.post("/{entity_key}/import")
    async def import_(
        entity_key: str, body: ImportRequest, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        result = await import_records(_service(), entity_key, body.data, caller, body.mode)
        return {"success": True, "data": result.to_dict()}

    # Bulk routes are declared before /records/{record_id} so they aren't
    # captured as record ids.

    @router.put("/{entity_key}/records/bulk-update")
    async def bulk_update(
        entity_key: str, body: BulkUpdateRequest, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        result = await _service().bulk_update(entity_key, body.ids, body.data, caller)
        return {"success": True, "data": result.to_dict()}

    @router.delete("/{entity_key}/records/bulk-delete")
    async def bulk_delete(
        entity_key: str, body: BulkDeleteRequest, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        result = await _service().bulk_delete(entity_key, body.ids, body.permanent, caller)
        return {"success": True, "data": result.to_dict()}

    @router.get("/{entity_key}/records")
    async def list_records_alias(
        entity_key: str, request: Request, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        options = parse_query_options(request.query_params)
        result = await _service().list(entity_key, options, caller)
        return result.to_dict()

    @router.get("/{entity_key}/records/{record_id}")
    async def get_record(
        entity_key: str, record_id: str, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        record = await _service().get_one(entity_key, record_id, caller)
        return {"success": True, "data": record}

    @router.post("/{entity_key}/records", status_code=201)
    async def create_record(
        entity_key: str, body: CreateRequest, caller: Caller = Depends(get_caller)
    ) -> dict[str, Any]:
        record = await _service().create(entity_key, body.data, caller)
        return {"success": True, "data": record}

    @router.put("/{entity_key}/records/{record_id}")
    async def update_record(
        entity_key: str,
        record_id: str,
        body: UpdateRequest,
        caller: Caller = Depends(get_caller),
    ) -> dict[str, Any]:
        record = await _service().update(entity_key, record_id, body.data, caller)
        return {"success": True, "data": record}

    @router.delete("/{entity_key}/records/{record_id}")
    async def delete_record(
        entity_key: str,
        record_id: str,
        permanent: bool = False,
        caller: Caller = Depends(get_caller),
    ) -> dict[str, Any]:
        result = await _service().delete(entity_key, record_id, permanent, caller)
        return {"success": True, "data": result.to_dict()}

    return router
