"""
Vendor risk assessment API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from procurement_engine.config import settings
from procurement_engine.engine.assessment import RiskAssessmentService
from procurement_engine.engine.metrics import normalize_vendor_metrics
from procurement_engine.engine.provider import Provider
from procurement_engine.engine.risk_analyzer import RiskFactorAnalyzer, risk_distribution
from procurement_engine.storage import SnapshotStore
from procurement_engine.utils.helpers import paginate_results

router = APIRouter(prefix="/risk", tags=["risk"])

service = RiskAssessmentService()


def _provider(provider: Optional[Provider]) -> Provider:
    return provider or Provider(settings.RISK_PROVIDER)


@router.get("/vendor/{vendor_id}")
async def vendor_risk(vendor_id: str, provider: Optional[Provider] = Query(None)):
    """Risk assessment for one vendor, positioned against the rest of the vendor base."""
    store = SnapshotStore.get()
    vendor = store.get_vendor(vendor_id)
    if vendor is None:
        raise HTTPException(status_code=404, detail="Vendor not found")

    analyzer = RiskFactorAnalyzer()
    peer_scores = [
        analyzer.score_metrics(normalize_vendor_metrics(v, store.purchases_for_vendor(v.id)))
        for v in store.vendors if v.id != vendor_id
    ]
    assessment = await service.assess_vendor(
        vendor, store.purchases_for_vendor(vendor_id), _provider(provider), peer_scores=peer_scores,
    )
    return assessment.model_dump(mode="json")


@router.get("/vendors")
async def all_vendor_risks(
    provider: Optional[Provider] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    """Every vendor's assessment, highest risk first."""
    store = SnapshotStore.get()
    assessments = await service.assess_vendors(store.vendors, store.purchases, _provider(provider))
    result = paginate_results([a.model_dump(mode="json") for a in assessments], page, page_size)
    result["vendors"] = result.pop("items")
    return result


@router.get("/distribution")
async def distribution():
    """Count of vendors per risk level (local scoring)."""
    store = SnapshotStore.get()
    assessments = await service.assess_vendors(store.vendors, store.purchases, Provider.LOCAL)
    return {"total": len(assessments), "distribution": risk_distribution(assessments)}
