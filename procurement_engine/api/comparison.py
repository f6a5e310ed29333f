"""
Item vendor comparison API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from procurement_engine.api.risk import service, _provider
from procurement_engine.engine.provider import Provider
from procurement_engine.storage import SnapshotStore

router = APIRouter(prefix="/comparison", tags=["comparison"])


def _analysis_input(item_id: str):
    store = SnapshotStore.get()
    if store.get_item(item_id) is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return service.item_analysis_input(store, item_id)


@router.get("/item/{item_id}")
async def compare_item_vendors(item_id: str, provider: Optional[Provider] = Query(None)):
    """Ranked scorecards of every vendor supplying the item."""
    comparison = await service.compare_item_vendors(_analysis_input(item_id), _provider(provider))
    return comparison.model_dump(mode="json")


@router.get("/item/{item_id}/analysis")
async def item_risk(item_id: str, provider: Optional[Provider] = Query(None)):
    """Sourcing risk of the item itself (higher score is safer)."""
    item = _analysis_input(item_id)
    result = await service.analyze_item(item, _provider(provider))
    return {"item_id": item_id, "item_name": item.item_name, **result.model_dump(mode="json")}
