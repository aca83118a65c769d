# ukayvault/models.py
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from ukayvault.exceptions import ValidationError

# --- FILE CONFIGURATION ---
DB_FILE = os.getenv("UKAYVAULT_DB", "ukayvault.db")
BACKUP_DIR = os.getenv("UKAYVAULT_BACKUP_DIR", "backups")
LOG_LEVEL = os.getenv("UKAYVAULT_LOG_LEVEL", "INFO")

CURRENCY_SYMBOL = "₱"
DATE_FORMAT = "%Y-%m-%d"

# --- COLUMNS ---
BUNDLE_COLUMNS = ["id", "name", "category", "total_cost", "total_pieces", "created_at"]

ITEM_COLUMNS = [
    "id", "bundle_id", "name", "selling_price", "estimated_cost",
    "size", "condition", "issue_notes", "source", "status",
    "sold_date", "sold_price", "created_at"
]

DAILY_SALE_COLUMNS = ["id", "date", "items", "total_revenue", "created_at"]

# --- DATA MAPPING ---
CATEGORIES = ["Jackets", "Hoodies", "T-Shirts", "Mixed"]
CONDITIONS = ["As New", "Excellent", "Good", "With Issue", "Reject"]
SOURCES = ["Mine", "Gift", "Partial payment", "Credit"]

# issue_notes only matter for these
ISSUE_CONDITIONS = ["With Issue", "Reject"]

STATUS_AVAILABLE = "Available"
STATUS_SOLD = "Sold"
STATUSES = [STATUS_AVAILABLE, STATUS_SOLD]

DEFAULT_CONDITION = "Good"
DEFAULT_SOURCE = "Mine"


# --- RECORDS ---

@dataclass
class Bundle:
    id: str
    name: str
    category: str
    total_cost: float
    total_pieces: int
    created_at: Optional[datetime] = None


@dataclass
class Item:
    """
    One piece of clothing cut from a bundle.

    sold_date and sold_price are only set while status is "Sold".
    estimated_cost left as None means "derive it from the bundle".
    """
    id: str
    bundle_id: str
    name: str
    selling_price: float
    size: str = ""
    condition: str = DEFAULT_CONDITION
    source: str = DEFAULT_SOURCE
    status: str = STATUS_AVAILABLE
    estimated_cost: Optional[float] = None
    issue_notes: Optional[str] = None
    sold_date: Optional[date] = None
    sold_price: Optional[float] = None
    created_at: Optional[datetime] = None

    @property
    def is_sold(self) -> bool:
        return self.status == STATUS_SOLD

    @property
    def has_issue(self) -> bool:
        return self.condition in ISSUE_CONDITIONS


@dataclass
class DailySale:
    id: str
    date: date
    items: List[str]
    total_revenue: float
    created_at: Optional[datetime] = None


# --- DERIVED (never stored) ---

@dataclass
class BundleStats:
    total_sales: float
    remaining_to_breakeven: float
    is_breakeven: bool
    profit: float
    unsold_count: int
    progress_percent: float


@dataclass
class BundleSales:
    revenue: float = 0.0
    count: int = 0


@dataclass
class DailyStats:
    date: date
    sales: List[Item]
    revenue: float
    profit: float
    bundle_sales: Dict[str, BundleSales] = field(default_factory=dict)


@dataclass
class DashboardSummary:
    date: date
    today_sales: float
    today_profit: float
    active_bundles: int
    breakeven_bundles: int
    bundle_stats: Dict[str, BundleStats] = field(default_factory=dict)


# --- VALIDATION ---

def validate_bundle(bundle):
    if not bundle.name or not str(bundle.name).strip():
        raise ValidationError("Bundle name is required.")
    if bundle.category not in CATEGORIES:
        raise ValidationError(f"Unknown category: {bundle.category}")
    if bundle.total_cost is None or bundle.total_cost < 0:
        raise ValidationError("Total cost cannot be negative.")
    if isinstance(bundle.total_pieces, bool) or not isinstance(bundle.total_pieces, int):
        raise ValidationError("Total pieces must be a whole number.")
    if bundle.total_pieces <= 0:
        raise ValidationError("Total pieces must be at least 1.")


def validate_item(item):
    if not item.name or not str(item.name).strip():
        raise ValidationError("Item name is required.")
    if not item.bundle_id:
        raise ValidationError("Item must belong to a bundle.")
    if item.condition not in CONDITIONS:
        raise ValidationError(f"Unknown condition: {item.condition}")
    if item.source not in SOURCES:
        raise ValidationError(f"Unknown source: {item.source}")
    if item.status not in STATUSES:
        raise ValidationError(f"Unknown status: {item.status}")
    if item.selling_price is None or item.selling_price < 0:
        raise ValidationError("Selling price cannot be negative.")
    if item.estimated_cost is not None and item.estimated_cost < 0:
        raise ValidationError("Estimated cost cannot be negative.")
    if item.sold_price is not None and item.sold_price < 0:
        raise ValidationError("Sold price cannot be negative.")

    if item.is_sold:
        if item.sold_date is None:
            raise ValidationError("A sold item needs a sold date.")
    elif item.sold_date is not None or item.sold_price is not None:
        raise ValidationError("An available item cannot carry a sold date or sold price.")
