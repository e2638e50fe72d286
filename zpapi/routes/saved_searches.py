"""
Saved search and execution history route handlers.
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from zpscraper.database import (
    db_add_execution,
    db_create_saved_search,
    db_delete_saved_search,
    db_get_execution,
    db_get_saved_search,
    db_list_executions,
    db_list_saved_searches,
    execution_records,
)
from zpscraper.export import records_to_csv
from zpscraper.models import ListingRecord

from ..database import get_db_connection
from ..models import ExecutionIn, ExecutionOut, SavedSearchIn, SavedSearchOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/saved-searches", tags=["saved-searches"])


def _require_search(conn, search_id: str) -> dict:
    search = db_get_saved_search(conn, search_id)
    if not search:
        raise HTTPException(status_code=404, detail="Saved search not found")
    return search


@router.get("", response_model=List[SavedSearchOut])
async def list_saved_searches():
    with get_db_connection() as conn:
        return [SavedSearchOut(**s) for s in db_list_saved_searches(conn)]


@router.post("", response_model=SavedSearchOut)
async def create_saved_search(body: SavedSearchIn):
    if not body.name.strip() or not body.url.strip():
        raise HTTPException(status_code=400, detail="Missing required fields")
    with get_db_connection() as conn:
        search = db_create_saved_search(conn, body.name.strip(), body.url.strip())
    logger.info(f"Saved search created: {search['id']} ({search['name']})")
    return SavedSearchOut(**search)


@router.get("/{search_id}", response_model=SavedSearchOut)
async def get_saved_search(search_id: str):
    with get_db_connection() as conn:
        return SavedSearchOut(**_require_search(conn, search_id))


@router.delete("/{search_id}")
async def delete_saved_search(search_id: str):
    with get_db_connection() as conn:
        if not db_delete_saved_search(conn, search_id):
            raise HTTPException(status_code=404, detail="Saved search not found")
    logger.info(f"Saved search deleted: {search_id}")
    return {"success": True}


@router.get("/{search_id}/executions", response_model=List[ExecutionOut])
async def list_executions(search_id: str):
    with get_db_connection() as conn:
        _require_search(conn, search_id)
        return [ExecutionOut(**e) for e in db_list_executions(conn, search_id)]


@router.post("/{search_id}/executions", response_model=ExecutionOut)
async def add_execution(search_id: str, body: ExecutionIn):
    records = [ListingRecord.from_dict(r.model_dump()) for r in body.results]
    with get_db_connection() as conn:
        _require_search(conn, search_id)
        execution = db_add_execution(conn, search_id, records)
    logger.info(f"Execution stored for {search_id}: {execution['results_count']} results")
    return ExecutionOut(**execution)


@router.get("/{search_id}/executions/{execution_id}/csv")
async def export_execution_csv(search_id: str, execution_id: str):
    """Download one execution's results as CSV."""
    with get_db_connection() as conn:
        _require_search(conn, search_id)
        execution = db_get_execution(conn, execution_id)
    if not execution or execution["saved_search_id"] != search_id:
        raise HTTPException(status_code=404, detail="Execution not found")

    csv_content = records_to_csv(execution_records(execution)).encode("utf-8")
    filename = f"zonaprop-busqueda-{execution['created_at'][:10]}.csv"
    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
