"""
Cost / revenue engine.

Combines MaterialQuantities + JobSpec + RateConfig into Financials.
Pure math — quantity × rate, subtotal × surcharge, never the other way round.

Surcharge order is fixed:
1. Labour subtotal (revenue side), before any surcharge
2. Access surcharge → labour subtotal ONLY, added back into the subtotal
3. All categories + access surcharge → pre-urgency subtotal
4. Urgency surcharge → the WHOLE pre-urgency subtotal
5. GST 10% on the post-urgency subtotal → grand total

NEVER use the markup formula to hit a target margin:
    WRONG: cost × 1.20 = $120 (only 16.7% margin)
    RIGHT: cost / 0.80 = $125 (exactly 20% margin)
"""

import logging

from .catalog import GROUND_FINISH_STRIP_M, OPTIONAL_ITEMS
from .exceptions import InvalidQuantity
from .rates import GST_RATE, RateConfig, fencing_rate_key
from .schemas import (
    CostBreakdown,
    Financials,
    JobSpec,
    LineItem,
    MaterialQuantities,
    RevenueBreakdown,
)

logger = logging.getLogger(__name__)


SALES_COMMISSION_RATE = 0.12
DEPOSIT_FRACTION = 0.50

# Fixed category order — every breakdown lists all of them, zero or not
CATEGORIES = (
    "materials",
    "labour",
    "gates",
    "removal",
    "ground_finish",
    "permits",
    "delivery",
    "extras",
)


def sell_price_for_margin(cost: float, target_margin: float) -> float:
    """Selling price that yields exactly target_margin: cost / (1 - margin)."""
    if cost < 0:
        raise InvalidQuantity(f"cost must not be negative, got {cost}")
    if not 0 <= target_margin < 1:
        raise InvalidQuantity(f"target margin must be in [0, 1), got {target_margin}")
    return cost / (1 - target_margin)


class CostRevenueEngine:
    """
    Builds Financials for one job from already-computed quantities.

    Stateless — all inputs arrive as arguments, a fresh result every call.
    """

    def calculate(self, job: JobSpec, quantities: MaterialQuantities,
                  rates: RateConfig) -> Financials:
        line_items = self.build_line_items(job, quantities, rates)

        costs = self._calculate_costs(line_items)
        revenue = self._calculate_revenue(line_items, rates, job)

        gross_profit = round(revenue.total_ex_gst - costs.total_ex_gst, 2)
        gp_margin = (
            round(gross_profit / revenue.total_ex_gst * 100, 2)
            if revenue.total_ex_gst > 0 else 0.0
        )
        gp_markup = (
            round(gross_profit / costs.total_ex_gst * 100, 2)
            if costs.total_ex_gst > 0 else 0.0
        )
        deposit = round(revenue.total_inc_gst * DEPOSIT_FRACTION, 2)

        logger.debug(
            "Job %s: revenue $%.2f ex GST, cost $%.2f, GP $%.2f (%.1f%%)",
            job.job_ref, revenue.total_ex_gst, costs.total_ex_gst, gross_profit, gp_margin,
        )

        return Financials(
            line_items=line_items,
            costs=costs,
            revenue=revenue,
            access_difficulty=job.access_difficulty,
            access_fraction=rates.access_fraction(job.access_difficulty),
            urgency=job.urgency,
            urgency_fraction=rates.urgency_fraction(job.urgency),
            deposit=deposit,
            balance=round(revenue.total_inc_gst - deposit, 2),
            gross_profit=gross_profit,
            gp_margin_percent=gp_margin,
            gp_markup_percent=gp_markup,
            sales_commission=round(gross_profit * SALES_COMMISSION_RATE, 2),
            breakeven=costs.total_ex_gst,
        )

    # --- Line items ---

    def build_line_items(self, job: JobSpec, quantities: MaterialQuantities,
                         rates: RateConfig) -> list:
        """Every priced line of the job, sell and cost side together."""
        items = []
        fence_desc = " ".join(x for x in (job.colour, "Colorbond fencing") if x)
        if job.profile:
            fence_desc += f" ({job.profile} profile)"

        for run in quantities.runs:
            items.append(self._make_line(
                "fencing", "materials",
                f"{run.name}: {run.sheet_height}mm {fence_desc}",
                run.length_m, "m", rates, fencing_rate_key(run.sheet_height),
            ))
            if run.extension == "150mm":
                items.append(self._make_line(
                    "extension", "materials",
                    f"{run.name}: 150mm solid fill extension",
                    run.length_m, "m", rates, "extension_150_per_m",
                ))

        if quantities.plinths > 0:
            items.append(self._make_line(
                "plinths", "materials", "Plinths (supply & install)",
                quantities.plinths, "ea", rates, "plinth_each",
            ))

        if quantities.total_length_m > 0:
            items.append(self._make_line(
                "labour_base", "labour", "Installation labour",
                quantities.total_length_m, "m", rates, "labour_base_per_m",
            ))
        if quantities.plinths > 0:
            items.append(self._make_line(
                "plinth_install", "labour", "Plinth installation labour",
                quantities.plinths, "ea", rates, "plinth_install_each",
            ))

        for item in job.enabled_items():
            line = self._optional_line(item, job, quantities, rates)
            if line is not None:
                items.append(line)

        if job.has_item("remove_asbestos"):
            items.append(self._make_line(
                "asbestos_removal_fee", "removal", "Asbestos removal fee (licensed disposal)",
                1, "job", rates, "asbestos_removal_fee",
            ))

        if job.include_delivery:
            items.append(self._make_line(
                "delivery", "delivery", "Delivery", 1, "job", rates, "delivery",
            ))

        return items

    def _optional_line(self, item, job, quantities, rates):
        entry = OPTIONAL_ITEMS[item.id]

        if entry.get("custom"):
            if not item.quantity:
                return None
            unit_cost = item.cost if item.cost is not None else item.price
            return LineItem(
                item_id=item.id,
                category=entry["category"],
                description=item.label,
                quantity=item.quantity,
                unit="ea",
                unit_price=round(item.price, 2),
                line_total=round(item.quantity * item.price, 2),
                unit_cost=round(unit_cost, 2),
                line_cost=round(item.quantity * unit_cost, 2),
            )

        qty = item.quantity
        if qty is None and entry.get("auto_calc"):
            qty = round(quantities.total_length_m * GROUND_FINISH_STRIP_M, 2)
        if qty is None:
            qty = entry.get("default_qty", 0)
        if not qty:
            return None

        rate_key = entry["rate_key"]
        if item.id == "pedestrian_gate" and not job.runs:
            rate_key = "pedestrian_gate_standalone"

        return self._make_line(item.id, entry["category"], entry["label"],
                               qty, entry["unit"], rates, rate_key)

    def _make_line(self, item_id: str, category: str, description: str,
                   quantity: float, unit: str, rates: RateConfig, rate_key: str) -> LineItem:
        unit_price = rates.sell_rate(rate_key)
        unit_cost = rates.cost_rate(rate_key)
        return LineItem(
            item_id=item_id,
            category=category,
            description=description,
            quantity=quantity,
            unit=unit,
            unit_price=round(unit_price, 2),
            line_total=round(quantity * unit_price, 2),
            unit_cost=round(unit_cost, 2),
            line_cost=round(quantity * unit_cost, 2),
        )

    # --- Breakdowns ---

    def _sum_by_category(self, line_items: list, attr: str) -> dict:
        totals = {c: 0.0 for c in CATEGORIES}
        for li in line_items:
            totals[li.category] += getattr(li, attr)
        return {c: round(v, 2) for c, v in totals.items()}

    def _calculate_costs(self, line_items: list) -> CostBreakdown:
        categories = self._sum_by_category(line_items, "line_cost")
        return CostBreakdown(
            categories=categories,
            total_ex_gst=round(sum(categories.values()), 2),
        )

    def _calculate_revenue(self, line_items: list, rates: RateConfig,
                           job: JobSpec) -> RevenueBreakdown:
        categories = self._sum_by_category(line_items, "line_total")

        # 1-2. Access difficulty applies to labour only
        labour_subtotal = categories["labour"]
        access_surcharge = round(labour_subtotal * rates.access_fraction(job.access_difficulty), 2)

        # 3. Everything, plus the access surcharge
        pre_urgency = round(sum(categories.values()) + access_surcharge, 2)

        # 4. Urgency applies to the whole subtotal
        urgency_surcharge = round(pre_urgency * rates.urgency_fraction(job.urgency), 2)
        total_ex_gst = round(pre_urgency + urgency_surcharge, 2)

        # 5. GST
        gst = round(total_ex_gst * GST_RATE, 2)

        return RevenueBreakdown(
            categories=categories,
            labour_subtotal=labour_subtotal,
            access_surcharge=access_surcharge,
            pre_urgency_subtotal=pre_urgency,
            urgency_surcharge=urgency_surcharge,
            total_ex_gst=total_ex_gst,
            gst=gst,
            total_inc_gst=round(total_ex_gst + gst, 2),
        )
