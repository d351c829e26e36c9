"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends

from data_services.routers.dependencies import get_row_registry
from data_services.rows.registry import RowRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
def health(registry: RowRegistry = Depends(get_row_registry)) -> dict:
    return {"status": "ok", "row_types": sorted(d.entity_type for d in registry)}
