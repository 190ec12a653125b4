"""
Rate tables, surcharge tables and supplier data.

All prices are ex GST. DEFAULT_RATES are SELL prices shown to the client,
COST_PRICES are internal and only used for GP analysis. Both tables carry
the same keys.

The module-level dicts are the shared defaults — never mutated. Every job
gets its own RateConfig, built by overlaying the job's overrides onto fresh
copies of the defaults (see build_rate_config).
"""

import logging
from typing import Dict, Optional

from pydantic import BaseModel

from .exceptions import InvalidQuantity, MissingRateKey

logger = logging.getLogger(__name__)


DEFAULT_RATES = {
    # Base fencing (per metre, supply & install)
    "fencing_1800_per_m": 120.00,
    "fencing_2100_per_m": 128.00,
    "extension_150_per_m": 110.00,     # Solid fill 150mm extension

    # Plinths
    "plinth_each": 80.00,

    # Gates
    "pedestrian_gate": 1100.00,        # Bundled with fence
    "pedestrian_gate_standalone": 1175.00,
    "double_gate": 2400.00,

    # Removal & disposal
    "remove_hardie_per_sheet": 30.00,
    "remove_timber_per_m": 45.00,
    "remove_asbestos_per_sheet": 90.00,
    "asbestos_removal_fee": 300.00,    # Flat fee per asbestos job

    # Additional services
    "delivery": 250.00,
    "vegetation_clear": 150.00,
    "additional_labour_per_hr": 85.00,

    # Ground finish (per m², fence length × 0.5m strip)
    "mulch_per_m2": 8.00,
    "white_stones_per_m2": 15.00,
    "turf_prep_per_m2": 12.00,

    # Rock excavation / core drilling
    "rock_per_hole": 45.00,

    # Installation labour
    "labour_base_per_m": 45.00,
    "plinth_install_each": 15.00,

    # Permits (passed through at cost)
    "building_permit": 350.00,
    "engineering_cert": 600.00,
    "dev_approval": 500.00,
}

COST_PRICES = {
    "fencing_1800_per_m": 95.00,
    "fencing_2100_per_m": 100.00,
    "extension_150_per_m": 73.00,
    "plinth_each": 55.00,
    "pedestrian_gate": 835.00,
    "pedestrian_gate_standalone": 885.00,
    "double_gate": 1830.00,
    "remove_hardie_per_sheet": 15.00,
    "remove_timber_per_m": 22.50,
    "remove_asbestos_per_sheet": 60.00,
    "asbestos_removal_fee": 300.00,
    "delivery": 200.00,
    "vegetation_clear": 100.00,
    "additional_labour_per_hr": 45.00,
    "mulch_per_m2": 5.00,
    "white_stones_per_m2": 10.00,
    "turf_prep_per_m2": 7.00,
    "rock_per_hole": 30.00,
    "labour_base_per_m": 35.00,
    "plinth_install_each": 10.00,
    "building_permit": 350.00,
    "engineering_cert": 600.00,
    "dev_approval": 500.00,
}

SURCHARGES = {
    # Urgency — applied to the whole subtotal before GST
    "urgency": {
        "standard": 0.0,     # 2-4 weeks
        "urgent": 0.10,      # 1-2 weeks
        "rush": 0.20,        # <1 week
        "emergency": 0.30,   # <3 days
    },
    # Access difficulty — applied to the LABOUR component only
    "access": {
        "easy": 0.0,
        "moderate": 0.10,
        "difficult": 0.25,
    },
}

SUPPLIERS = {
    "metroll": {
        "name": "Metroll",
        "panel_width": 2365,
        "long_panel_width": 3150,  # Max ONE per run
        "product_codes": {
            "posts": "FNP##",      # ## = height suffix (15/18/21/24/27/30)
            "rails": "FNR##",      # ## = length suffix (23=2365, 31=3125)
            "sheets_trimclad": "FNS##",
            "sheets_harmony": "FHS##",
            "plinths_std": "FSP2365##",
            "plinths_long": "FSP3125##",
            "tek_screws": "TK1016##",
        },
    },
    "rnr": {
        "name": "R&R Fencing",
        "panel_width": 2380,
        "long_panel_width": 3150,
        "product_codes": None,  # R&R uses own codes
    },
}

GST_RATE = 0.10


class RateConfig(BaseModel):
    """
    Effective rates for one job computation.

    Built fresh per job by build_rate_config(); treat as read-only.
    """

    sell: Dict[str, float]
    cost: Dict[str, float]
    urgency: Dict[str, float]
    access: Dict[str, float]

    class Config:
        frozen = True

    def sell_rate(self, key: str) -> float:
        if key not in self.sell:
            raise MissingRateKey(key, "sell")
        return self.sell[key]

    def cost_rate(self, key: str) -> float:
        if key not in self.cost:
            raise MissingRateKey(key, "cost")
        return self.cost[key]

    def urgency_fraction(self, tier: str) -> float:
        if tier not in self.urgency:
            raise MissingRateKey(tier, "urgency surcharge")
        return self.urgency[tier]

    def access_fraction(self, tier: str) -> float:
        if tier not in self.access:
            raise MissingRateKey(tier, "access surcharge")
        return self.access[tier]


# Per-job surcharge overrides must stay inside these bounds
SURCHARGE_BOUNDS = {
    "urgency": (0.0, 0.30),
    "access": (0.0, 0.25),
}


def build_rate_config(sell_overrides: Optional[dict] = None,
                      cost_overrides: Optional[dict] = None,
                      urgency_overrides: Optional[dict] = None,
                      access_overrides: Optional[dict] = None) -> RateConfig:
    """
    Overlay per-job overrides onto copies of the default tables.

    Overrides may only adjust existing keys — an unknown key is almost always
    a typo that would otherwise be silently ignored.
    """
    sell = dict(DEFAULT_RATES)
    cost = dict(COST_PRICES)
    urgency = dict(SURCHARGES["urgency"])
    access = dict(SURCHARGES["access"])

    for table_name, table, overrides in (("sell", sell, sell_overrides),
                                         ("cost", cost, cost_overrides),
                                         ("urgency", urgency, urgency_overrides),
                                         ("access", access, access_overrides)):
        low, high = SURCHARGE_BOUNDS.get(table_name, (0.0, None))
        for key, value in (overrides or {}).items():
            if key not in table:
                raise MissingRateKey(key, table_name)
            if value < low or (high is not None and value > high):
                limit = f"{low}-{high}" if high is not None else f">= {low}"
                raise InvalidQuantity(
                    f"{table_name} rate '{key}' must be {limit}, got {value}"
                )
            table[key] = float(value)
        if overrides:
            logger.debug("Applied %d %s rate override(s)", len(overrides), table_name)

    return RateConfig(sell=sell, cost=cost, urgency=urgency, access=access)


def get_supplier(supplier: str) -> dict:
    """Supplier record by key, or ValueError for an unknown supplier."""
    if supplier not in SUPPLIERS:
        raise ValueError(
            f"Unknown supplier: {supplier}. Available: {list(SUPPLIERS.keys())}"
        )
    return SUPPLIERS[supplier]


def fencing_rate_key(sheet_height: int) -> str:
    """Per-metre fencing rate key for a sheet height. 2100 pricing above 1800mm."""
    return "fencing_1800_per_m" if sheet_height <= 1800 else "fencing_2100_per_m"
