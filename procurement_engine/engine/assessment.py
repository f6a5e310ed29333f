"""
Assessment orchestration: local computation first, optional provider refinement,
validation against the local result, and batch fan-out.

The local result is always computed and is what callers get whenever the
provider is disabled, unconfigured, slow, failing, or talking nonsense.
"""

import asyncio
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from procurement_engine.config import Settings, settings as default_settings
from procurement_engine.engine.ai_validator import (
    validate_risk_response, validate_comparison_response, validate_item_analysis_response,
)
from procurement_engine.engine.item_analysis import ItemAnalysisBuilder, calculate_item_risk_locally
from procurement_engine.engine.metrics import normalize_vendor_metrics
from procurement_engine.engine.provider import Provider, RiskProviderClient, build_client, render_prompt
from procurement_engine.engine.ranker import ItemVendorRanker
from procurement_engine.engine.risk_analyzer import RiskFactorAnalyzer
from procurement_engine.errors import MalformedRecordError, ProcurementEngineError, ProviderError
from procurement_engine.models.comparison import ItemAnalysisInput, ItemComparison, ItemRiskResult
from procurement_engine.models.records import VendorProfile, PurchaseRecord
from procurement_engine.models.risk import RiskAssessment


class RiskAssessmentService:
    """Runs local analyzers and, when asked, an external provider behind a validator."""

    def __init__(
        self,
        settings: Settings = default_settings,
        analyzer: Optional[RiskFactorAnalyzer] = None,
        ranker: Optional[ItemVendorRanker] = None,
        client_factory: Callable[[Provider, Settings], Optional[RiskProviderClient]] = build_client,
    ):
        self.settings = settings
        self.analyzer = analyzer or RiskFactorAnalyzer()
        self.ranker = ranker or ItemVendorRanker()
        self.item_builder = ItemAnalysisBuilder(self.analyzer)
        self.client_factory = client_factory
        self._clients: Dict[Provider, Optional[RiskProviderClient]] = {}

    def client_for(self, provider: Provider) -> Optional[RiskProviderClient]:
        """One client (and HTTP session) per provider for the life of the service."""
        provider = Provider(provider)
        if provider not in self._clients:
            self._clients[provider] = self.client_factory(provider, self.settings)
        return self._clients[provider]

    def close(self) -> None:
        for client in self._clients.values():
            if client is not None:
                client.close()
        self._clients.clear()

    async def _complete(self, provider: Provider, prompt: str, subject: str) -> Optional[str]:
        """Provider text, or None on any provider failure (logged)."""
        client = self.client_for(provider)
        if client is None:
            return None
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(client.complete, prompt),
                timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Provider {Provider(provider).value} timed out after "
                f"{self.settings.PROVIDER_TIMEOUT_SECONDS}s for {subject}; using local result"
            )
        except ProviderError as e:
            logger.warning(f"Provider failure for {subject}: {e}; using local result")
        return None

    # ── Vendor risk ──

    async def assess_vendor(
        self,
        vendor: VendorProfile,
        purchases: Sequence[PurchaseRecord] = (),
        provider: Provider = Provider.LOCAL,
        as_of: Optional[date] = None,
        peer_scores: Optional[Sequence[float]] = None,
    ) -> RiskAssessment:
        local = self.analyzer.assess(vendor, purchases, as_of=as_of, peer_scores=peer_scores)
        if Provider(provider) == Provider.LOCAL:
            return local

        prompt = render_prompt(
            "risk_prompt.j2",
            vendor=vendor,
            metrics=normalize_vendor_metrics(vendor, purchases),
            expected_score=local.overall_risk_score,
        )
        text = await self._complete(provider, prompt, f"vendor {vendor.id}")
        if text is None:
            return local
        return validate_risk_response(text, local, self.settings.AI_SCORE_TOLERANCE)

    async def assess_vendors(
        self,
        vendors: Sequence[VendorProfile],
        purchases: Sequence[PurchaseRecord] = (),
        provider: Provider = Provider.LOCAL,
        as_of: Optional[date] = None,
    ) -> List[RiskAssessment]:
        """Assess every vendor concurrently; results sorted by risk score, highest first."""
        semaphore = asyncio.Semaphore(self.settings.MAX_CONCURRENT_ASSESSMENTS)

        async def run_one(vendor: VendorProfile) -> Optional[RiskAssessment]:
            async with semaphore:
                try:
                    return await self.assess_vendor(vendor, purchases, provider, as_of)
                except ProcurementEngineError as e:
                    logger.warning(f"Skipping vendor {getattr(vendor, 'id', '?')}: {e}")
                    return None
                except Exception as e:
                    logger.error(f"Provider path failed for vendor {vendor.id}: {e}; using local result")
                    return self.analyzer.assess(vendor, purchases, as_of=as_of)

        results = await asyncio.gather(*(run_one(v) for v in vendors))
        assessments = [a for a in results if a is not None]
        assessments.sort(key=lambda a: a.overall_risk_score, reverse=True)
        logger.info(f"Batch assessment complete: {len(assessments)}/{len(vendors)} vendors")
        return assessments

    # ── Items ──

    async def compare_item_vendors(
        self, item: ItemAnalysisInput, provider: Provider = Provider.LOCAL
    ) -> ItemComparison:
        local = self.ranker.compare(item)
        if Provider(provider) == Provider.LOCAL or not local.vendor_comparisons:
            return local

        prompt = render_prompt(
            "comparison_prompt.j2",
            item=item,
            expected_scores={vc.vendor_id: vc.overall_score for vc in local.vendor_comparisons},
        )
        text = await self._complete(provider, prompt, f"item '{item.item_name}' comparison")
        if text is None:
            return local
        return validate_comparison_response(text, item, local, self.settings.AI_SCORE_TOLERANCE)

    async def analyze_item(
        self, item: ItemAnalysisInput, provider: Provider = Provider.LOCAL
    ) -> ItemRiskResult:
        local = calculate_item_risk_locally(item)
        if Provider(provider) == Provider.LOCAL:
            return local

        prompt = render_prompt("item_prompt.j2", item=item, expected_score=local.score)
        text = await self._complete(provider, prompt, f"item '{item.item_name}' analysis")
        if text is None:
            return local
        return validate_item_analysis_response(text, local, self.settings.AI_SCORE_TOLERANCE)

    def item_analysis_input(self, store, item_id: str) -> ItemAnalysisInput:
        """Build the comparison input for ``item_id`` from a SnapshotStore."""
        item = store.get_item(item_id)
        if item is None:
            raise MalformedRecordError(f"unknown item {item_id}")
        vendors = {v.id: v for v in store.vendors}
        return self.item_builder.build(item, store.vendor_items_for_item(item_id), vendors, store.purchases)
