"""Read-only storage collaborator: an immutable snapshot of vendors, items and purchases."""

import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from procurement_engine.config import settings
from procurement_engine.engine.metrics import line_matches_item
from procurement_engine.models.records import VendorProfile, PurchaseRecord, Item, VendorItem


class StorageSnapshot(BaseModel):
    """Point-in-time copy of every record the engine reads."""
    model_config = ConfigDict(frozen=True)

    vendors: List[VendorProfile] = Field(default_factory=list)
    purchases: List[PurchaseRecord] = Field(default_factory=list)
    items: List[Item] = Field(default_factory=list)
    vendor_items: List[VendorItem] = Field(default_factory=list)


@retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    reraise=True,
)
def load_snapshot(path: str) -> StorageSnapshot:
    """Load a snapshot from a JSON document with vendors / purchases / items / vendor_items."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    snapshot = StorageSnapshot.model_validate(raw)
    logger.info(
        f"Loaded snapshot from {path}: {len(snapshot.vendors)} vendors, "
        f"{len(snapshot.items)} items, {len(snapshot.purchases)} purchases"
    )
    return snapshot


class SnapshotStore:
    """Indexed lookups over a StorageSnapshot. Never writes."""

    _instance: Optional["SnapshotStore"] = None

    def __init__(self, snapshot: StorageSnapshot):
        self.snapshot = snapshot
        self._vendors: Dict[str, VendorProfile] = {v.id: v for v in snapshot.vendors}
        self._items: Dict[str, Item] = {i.id: i for i in snapshot.items}
        self._purchases_by_vendor: Dict[str, List[PurchaseRecord]] = defaultdict(list)
        for p in snapshot.purchases:
            self._purchases_by_vendor[p.vendor_id].append(p)
        self._vendor_items_by_item: Dict[str, List[VendorItem]] = defaultdict(list)
        for vi in snapshot.vendor_items:
            self._vendor_items_by_item[vi.item_id].append(vi)

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> "SnapshotStore":
        path = path or settings.DATA_PATH
        if not Path(path).exists():
            logger.warning(f"No snapshot at {path}; starting with an empty store")
            return cls(StorageSnapshot())
        return cls(load_snapshot(path))

    @classmethod
    def get(cls) -> "SnapshotStore":
        if cls._instance is None:
            cls._instance = cls.from_file()
        return cls._instance

    @classmethod
    def install(cls, store: Optional["SnapshotStore"]):
        cls._instance = store

    # ── Lookups ──

    @property
    def vendors(self) -> List[VendorProfile]:
        return list(self.snapshot.vendors)

    @property
    def items(self) -> List[Item]:
        return list(self.snapshot.items)

    @property
    def purchases(self) -> List[PurchaseRecord]:
        return list(self.snapshot.purchases)

    def get_vendor(self, vendor_id: str) -> Optional[VendorProfile]:
        return self._vendors.get(vendor_id)

    def get_item(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def purchases_for_vendor(self, vendor_id: str) -> List[PurchaseRecord]:
        return list(self._purchases_by_vendor.get(vendor_id, []))

    def purchases_for_item(self, item: Item) -> List[PurchaseRecord]:
        """Purchases with at least one line referring to ``item``."""
        return [
            p for p in self.snapshot.purchases
            if any(line_matches_item(li.description, li.item_id, item) for li in p.items)
        ]

    def vendor_items_for_item(self, item_id: str) -> List[VendorItem]:
        return list(self._vendor_items_by_item.get(item_id, []))
