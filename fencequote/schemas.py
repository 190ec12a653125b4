"""
Pydantic records for the whole pipeline.

Input:    JobSpec (Runs → Panels, OptionalItems, rate overrides)
Derived:  MaterialQuantities, ComplianceResult, Financials
Outputs:  Quote, MaterialOrder, WorkOrder, GPAnalysis

Every record is frozen — engines return new values and never mutate what
they were handed.
"""

import enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from .catalog import OPTIONAL_ITEMS


class Severity(str, enum.Enum):
    STOP = "STOP"
    WARNING = "WARNING"
    FLAG = "FLAG"


AccessTier = Literal["easy", "moderate", "difficult"]
UrgencyTier = Literal["standard", "urgent", "rush", "emergency"]
FootingDepth = Literal["standard", "deep"]


# --- Input ---

class Panel(BaseModel):
    number: int = Field(ge=1)
    width: Optional[int] = None          # mm; None = supplier standard width
    sheet_height: Optional[int] = None   # mm; None = run sheet height
    slope_plinths: int = Field(default=0, ge=0)      # From slope profile, read-only here
    retaining_plinths: int = Field(default=0, ge=0)  # Manual input (neighbour height diff)
    step: str = ""                       # e.g. "↓150", "↑300"

    class Config:
        frozen = True

    @property
    def total_plinths(self) -> int:
        return self.slope_plinths + self.retaining_plinths


class Run(BaseModel):
    name: str
    length_m: float = Field(gt=0)
    sheet_height: int = Field(default=1800, gt=0)
    extension: Literal["none", "150mm"] = "none"
    location: Literal["front", "side", "rear"] = "rear"
    panels: List[Panel] = []

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_panels(self):
        numbers = [p.number for p in self.panels]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Run '{self.name}' has duplicate panel numbers")
        return self

    def panel(self, number: int) -> Optional[Panel]:
        for p in self.panels:
            if p.number == number:
                return p
        return None


class OptionalItem(BaseModel):
    id: str
    enabled: bool = True
    quantity: Optional[float] = None
    label: Optional[str] = None    # custom slots only
    price: Optional[float] = None  # custom slots only, sell price each
    cost: Optional[float] = None   # custom slots only; defaults to price

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_item(self):
        entry = OPTIONAL_ITEMS.get(self.id)
        if entry is None:
            raise ValueError(f"Unknown optional item: {self.id}")
        if self.quantity is not None and self.quantity < 0:
            raise ValueError(f"Optional item '{self.id}' quantity must be non-negative")
        if self.enabled and entry.get("qty_required") and self.quantity is None:
            raise ValueError(f"Optional item '{self.id}' requires a quantity when enabled")
        if self.enabled and entry.get("custom"):
            if not self.label or self.price is None:
                raise ValueError(f"Custom item '{self.id}' needs a label and price")
            if self.price < 0 or (self.cost is not None and self.cost < 0):
                raise ValueError(f"Custom item '{self.id}' price and cost must be non-negative")
        return self


class RateOverrides(BaseModel):
    sell: Dict[str, float] = {}
    cost: Dict[str, float] = {}
    urgency: Dict[str, float] = {}     # tier → fraction, 0.0-0.30
    access: Dict[str, float] = {}      # tier → fraction, 0.0-0.25

    class Config:
        frozen = True


class JobSpec(BaseModel):
    job_ref: str = ""
    client_name: str = ""
    site_address: str = ""
    supplier: str = ""                 # "metroll" | "rnr" — never mixed
    profile: str = ""                  # "Trimclad", "Harmony", ...
    colour: str = ""                   # e.g. "Surfmist"
    runs: List[Run] = []
    # (a, b): the end of run a and the start of run b share one corner post
    shared_corners: List[Tuple[int, int]] = []
    optional_items: List[OptionalItem] = []
    rate_overrides: RateOverrides = RateOverrides()
    access_difficulty: AccessTier = "easy"
    urgency: UrgencyTier = "standard"
    footing_depth: FootingDepth = "standard"
    include_delivery: bool = True
    asbestos_on_site: bool = False     # Rep flags asbestos seen on site
    special_notes: str = ""

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_corners(self):
        ends = set()
        for a, b in self.shared_corners:
            if a == b:
                raise ValueError(f"Shared corner ({a}, {b}) must join two different runs")
            for idx in (a, b):
                if idx < 0 or idx >= len(self.runs):
                    raise ValueError(f"Shared corner references unknown run index {idx}")
            for end in ((a, "end"), (b, "start")):
                if end in ends:
                    raise ValueError(f"Run {end[0]} {end[1]} already shares a corner")
                ends.add(end)
        return self

    def enabled_items(self) -> List[OptionalItem]:
        return [i for i in self.optional_items if i.enabled]

    def has_item(self, *item_ids: str) -> bool:
        return any(i.id in item_ids for i in self.enabled_items())

    def item_quantity(self, item_id: str) -> float:
        """Total enabled quantity for a catalog item (0 when absent)."""
        return sum(i.quantity or 0 for i in self.enabled_items() if i.id == item_id)


# --- Compliance ---

class ComplianceVerdict(BaseModel):
    severity: Severity
    message: str
    rule_id: str

    class Config:
        frozen = True


class ComplianceResult(BaseModel):
    verdicts: List[ComplianceVerdict] = []
    errors: List[str] = []     # STOP
    warnings: List[str] = []   # WARNING
    flags: List[str] = []      # FLAG

    class Config:
        frozen = True

    @property
    def blocked(self) -> bool:
        return len(self.errors) > 0

    def fired(self, rule_id: str) -> bool:
        return any(v.rule_id == rule_id for v in self.verdicts)


# --- Quantities ---

class PanelQuantities(BaseModel):
    number: int
    width: int
    sheet_height: int
    total_plinths: int
    needs_reinforcement: bool
    patio_tube: bool

    class Config:
        frozen = True


class RunQuantities(BaseModel):
    name: str
    location: str
    length_m: float
    sheet_height: int
    extension: str
    panel_count: int
    long_panel: bool
    long_panel_number: Optional[int] = None
    post_count: int                    # Before corner sharing
    panels: List[PanelQuantities]
    post_heights: List[int]            # One per post, left to right
    plinths: int
    patio_panels: int

    class Config:
        frozen = True


class MaterialQuantities(BaseModel):
    supplier: str
    supplier_name: str
    panel_width: int
    long_panel_width: int
    runs: List[RunQuantities]
    total_length_m: float
    total_panels: int
    shared_corners: int
    total_posts: int                   # Fence posts after corner sharing
    post_groups: Dict[int, int]        # Post height → post count, after corner sharing
    patio_panels: int
    patio_tubes: int
    reinforcement_panels: List[str]
    plinths: int
    gate_posts: int
    footing_depth: str
    concrete_bags: int
    screw_boxes: int

    class Config:
        frozen = True


# --- Financials ---

class LineItem(BaseModel):
    item_id: str
    category: str
    description: str
    quantity: float
    unit: str
    unit_price: float
    line_total: float
    unit_cost: float
    line_cost: float

    class Config:
        frozen = True


class CostBreakdown(BaseModel):
    categories: Dict[str, float]
    total_ex_gst: float

    class Config:
        frozen = True


class RevenueBreakdown(BaseModel):
    categories: Dict[str, float]
    labour_subtotal: float
    access_surcharge: float
    pre_urgency_subtotal: float
    urgency_surcharge: float
    total_ex_gst: float
    gst: float
    total_inc_gst: float

    class Config:
        frozen = True


class Financials(BaseModel):
    line_items: List[LineItem]
    costs: CostBreakdown
    revenue: RevenueBreakdown
    access_difficulty: str
    access_fraction: float
    urgency: str
    urgency_fraction: float
    deposit: float
    balance: float
    gross_profit: float
    gp_margin_percent: float
    gp_markup_percent: float
    sales_commission: float
    breakeven: float

    class Config:
        frozen = True


# --- Documents ---

class QuoteLine(BaseModel):
    description: str
    quantity: float
    unit: str
    unit_price: float
    line_total: float

    class Config:
        frozen = True


class Quote(BaseModel):
    header: Dict[str, str]
    client: Dict[str, str]
    description: str
    line_items: List[QuoteLine]
    surcharges: List[QuoteLine]
    subtotal: float
    gst: float
    total: float
    disclaimers: List[str]
    conditional_disclaimers: List[str]
    optional_addons: List[str]
    payment_terms: Dict[str, Any]
    validity_days: int

    class Config:
        frozen = True


class MaterialOrder(BaseModel):
    header: Dict[str, str]
    panel_group_lines: List[str]
    post_groups: Dict[int, int]
    post_group_lines: List[str]
    patio_tubing: Dict[str, Any]
    gate_posts: Dict[str, Any]
    plinths: int
    gate_kits: List[Dict[str, Any]]
    fixings: Dict[str, int]
    notes: str
    footer: str

    class Config:
        frozen = True


class RunBreakdown(BaseModel):
    name: str
    summary: str
    lines: List[str]

    class Config:
        frozen = True


class WorkOrder(BaseModel):
    header: Dict[str, str]
    fence_spec: Dict[str, Any]
    run_breakdowns: List[RunBreakdown]
    scope_of_work: List[str]
    safety_checklist: List[str]
    completion_reqs: List[str]
    internal_costs: CostBreakdown
    site_access: Dict[str, str]

    class Config:
        frozen = True


class GPAnalysis(BaseModel):
    job_ref: str
    client_name: str
    total_length_m: float
    total_panels: int
    costs: CostBreakdown
    revenue: RevenueBreakdown
    gross_profit: float
    gp_margin_percent: float
    gp_markup_percent: float
    sales_commission: float
    margin_above_20: bool
    job_above_3k: bool
    risk_factors: List[str]
    breakeven: float
    blocking_errors: List[str] = []

    class Config:
        frozen = True


class JobOutputs(BaseModel):
    quote: Quote
    material_order: MaterialOrder
    work_order: WorkOrder
    gp_analysis: GPAnalysis
    compliance: ComplianceResult

    class Config:
        frozen = True


class JobPreview(BaseModel):
    """Diagnostic view — always produced, even when a STOP blocks the documents."""
    compliance: ComplianceResult
    quantities: Optional[MaterialQuantities] = None
    financials: Optional[Financials] = None
    gp_analysis: Optional[GPAnalysis] = None
    suggestions: List[str] = []

    class Config:
        frozen = True
