"""
Cost / revenue engine tests — line items, breakdowns, surcharge order,
GST, margin vs markup, commission, rate overrides.

Tests:
1-5.   Rate config (defaults, overrides, copy-on-read, missing keys, surcharge bounds)
6-10.  Line items and breakdowns for the sample job
11-14. Surcharge composition order
15-18. Margin / markup / commission
19-22. Optional items (gates, standalone gate, asbestos fee, custom)
"""

import pytest

from fencequote.calculators.fence import FenceCalculator
from fencequote.exceptions import InvalidQuantity, MissingRateKey
from fencequote.pricing_engine import CATEGORIES, CostRevenueEngine, sell_price_for_margin
from fencequote.pipeline import QuotePipeline
from fencequote.rates import COST_PRICES, DEFAULT_RATES, build_rate_config, fencing_rate_key
from fencequote.schemas import JobSpec


# --- Test fixtures ---

def _sample_job(**kwargs):
    """
    20m rear run, 8 plinths, 12 Hardie sheets removed, mulch finish.

    Revenue: fencing 2400 + plinths 640 + labour 900 + plinth labour 120
             + removal 360 + mulch 80 + delivery 250 = 4750
    Cost:    1900 + 440 + 700 + 80 + 180 + 50 + 200 = 3550
    """
    data = {
        "job_ref": "SW9248",
        "client_name": "Jane Citizen",
        "site_address": "12 Example St, Joondalup WA",
        "supplier": "metroll",
        "profile": "Harmony",
        "colour": "Surfmist",
        "runs": [{
            "name": "Rear",
            "length_m": 20,
            "sheet_height": 1800,
            "location": "rear",
            "panels": [
                {"number": 4, "slope_plinths": 1, "retaining_plinths": 1},
                {"number": 5, "retaining_plinths": 3},
                {"number": 6, "slope_plinths": 2, "retaining_plinths": 1},
            ],
        }],
        "optional_items": [
            {"id": "remove_hardie", "quantity": 12},
            {"id": "ground_mulch"},
        ],
    }
    data.update(kwargs)
    return JobSpec.model_validate(data)


def _financials(job):
    rates = QuotePipeline().rate_config_for(job)
    quantities = FenceCalculator().calculate(job)
    return CostRevenueEngine().calculate(job, quantities, rates)


def _line(financials, item_id):
    matches = [li for li in financials.line_items if li.item_id == item_id]
    assert len(matches) == 1, f"expected one {item_id} line"
    return matches[0]


# ============================================================
# Rate config
# ============================================================

def test_sell_and_cost_tables_keyed_identically():
    assert set(DEFAULT_RATES) == set(COST_PRICES)


def test_overrides_produce_new_table_and_leave_defaults_alone():
    rates = build_rate_config({"fencing_1800_per_m": 130}, {"delivery": 180})
    assert rates.sell_rate("fencing_1800_per_m") == 130
    assert rates.cost_rate("delivery") == 180
    assert DEFAULT_RATES["fencing_1800_per_m"] == 120
    assert COST_PRICES["delivery"] == 200
    assert build_rate_config().sell_rate("fencing_1800_per_m") == 120


def test_unknown_override_key_raises():
    with pytest.raises(MissingRateKey):
        build_rate_config({"fencing_1900_per_m": 130})


def test_missing_rate_key_is_fatal():
    rates = build_rate_config()
    with pytest.raises(MissingRateKey):
        rates.sell_rate("gold_plated_posts")
    with pytest.raises(MissingRateKey):
        rates.urgency_fraction("yesterday")


def test_fencing_rate_key_by_sheet_height():
    assert fencing_rate_key(1200) == "fencing_1800_per_m"
    assert fencing_rate_key(1800) == "fencing_1800_per_m"
    assert fencing_rate_key(2100) == "fencing_2100_per_m"


# ============================================================
# Line items and breakdowns
# ============================================================

def test_sample_job_line_items():
    f = _financials(_sample_job())
    assert [li.item_id for li in f.line_items] == [
        "fencing", "plinths", "labour_base", "plinth_install",
        "remove_hardie", "ground_mulch", "delivery",
    ]
    fencing = _line(f, "fencing")
    assert fencing.quantity == 20
    assert fencing.line_total == 2400.00
    assert fencing.line_cost == 1900.00
    mulch = _line(f, "ground_mulch")
    assert mulch.quantity == 10.0        # 20m × 0.5m strip
    assert mulch.line_total == 80.00


def test_sample_job_revenue_breakdown():
    f = _financials(_sample_job())
    assert list(f.revenue.categories) == list(CATEGORIES)
    assert f.revenue.categories["materials"] == 3040.00
    assert f.revenue.categories["labour"] == 1020.00
    assert f.revenue.categories["removal"] == 360.00
    assert f.revenue.categories["ground_finish"] == 80.00
    assert f.revenue.categories["delivery"] == 250.00
    assert f.revenue.total_ex_gst == 4750.00
    assert f.revenue.gst == 475.00
    assert f.revenue.total_inc_gst == 5225.00


def test_sample_job_cost_breakdown():
    f = _financials(_sample_job())
    assert f.costs.categories["materials"] == 2340.00
    assert f.costs.categories["labour"] == 780.00
    assert f.costs.total_ex_gst == 3550.00
    assert f.breakeven == 3550.00


def test_delivery_can_be_excluded():
    f = _financials(_sample_job(include_delivery=False))
    assert "delivery" not in [li.item_id for li in f.line_items]
    assert f.revenue.total_ex_gst == 4500.00


def test_rate_override_flows_into_line_items():
    job = _sample_job(rate_overrides={"sell": {"fencing_1800_per_m": 130}})
    f = _financials(job)
    assert _line(f, "fencing").line_total == 2600.00
    assert f.revenue.total_ex_gst == 4950.00


def test_negative_rate_override_rejected():
    with pytest.raises(InvalidQuantity):
        build_rate_config({"delivery": -5})
    with pytest.raises(InvalidQuantity):
        build_rate_config(cost_overrides={"plinth_each": -1})


def test_surcharge_overrides_change_surcharges():
    job = _sample_job(access_difficulty="difficult", urgency="rush",
                      rate_overrides={"urgency": {"rush": 0.05}, "access": {"difficult": 0.15}})
    f = _financials(job)
    assert f.urgency_fraction == 0.05
    assert f.revenue.access_surcharge == pytest.approx(153.00)      # 15% of 1020
    assert f.revenue.urgency_surcharge == pytest.approx(245.15)     # 5% of 4903
    assert build_rate_config().urgency_fraction("rush") == 0.20


@pytest.mark.parametrize("urgency,access", [
    ({"rush": 0.31}, None),
    ({"urgent": -0.01}, None),
    (None, {"difficult": 0.26}),
])
def test_surcharge_overrides_bounded(urgency, access):
    with pytest.raises(InvalidQuantity):
        build_rate_config(urgency_overrides=urgency, access_overrides=access)


def test_unknown_surcharge_tier_override_raises():
    with pytest.raises(MissingRateKey):
        build_rate_config(urgency_overrides={"yesterday": 0.3})


# ============================================================
# Surcharge composition order
# ============================================================

def test_access_surcharge_applies_to_labour_only():
    f = _financials(_sample_job(access_difficulty="difficult"))
    assert f.revenue.labour_subtotal == 1020.00
    assert f.revenue.access_surcharge == 255.00       # 25% of labour, not of 4750
    assert f.revenue.pre_urgency_subtotal == 5005.00
    assert f.revenue.urgency_surcharge == 0.0


def test_urgency_applies_to_subtotal_after_access():
    f = _financials(_sample_job(access_difficulty="difficult", urgency="rush"))
    assert f.revenue.access_surcharge == 255.00
    # 20% of (4750 + 255), not of 4750
    assert f.revenue.urgency_surcharge == pytest.approx(1001.00)
    assert f.revenue.total_ex_gst == pytest.approx(6006.00)
    assert f.revenue.gst == pytest.approx(600.60)
    assert f.revenue.total_inc_gst == pytest.approx(6606.60)


def test_moderate_urgent_surcharges():
    f = _financials(_sample_job(access_difficulty="moderate", urgency="urgent"))
    assert f.revenue.access_surcharge == pytest.approx(102.00)
    assert f.revenue.urgency_surcharge == pytest.approx(485.20)
    assert f.revenue.total_ex_gst == pytest.approx(5337.20)
    assert f.revenue.total_inc_gst == pytest.approx(5870.92)


def test_surcharges_never_touch_cost_side():
    plain = _financials(_sample_job())
    rushed = _financials(_sample_job(access_difficulty="difficult", urgency="emergency"))
    assert rushed.costs == plain.costs
    assert rushed.gross_profit > plain.gross_profit


# ============================================================
# Margin / markup / commission
# ============================================================

def test_scenario_e_margin_formula_not_markup():
    """$100 cost at 20% margin sells for $125, not $120."""
    assert sell_price_for_margin(100, 0.20) == pytest.approx(125.00)
    assert sell_price_for_margin(100, 0.20) != pytest.approx(120.00)


def test_margin_formula_hits_requested_margin():
    for cost in (1, 55.5, 100, 3550, 123456.78):
        for margin in (0.0, 0.05, 0.2, 0.35, 0.5, 0.9, 0.99):
            sell = sell_price_for_margin(cost, margin)
            assert (sell - cost) / sell == pytest.approx(margin)


def test_margin_formula_rejects_out_of_range():
    with pytest.raises(InvalidQuantity):
        sell_price_for_margin(100, 1.0)
    with pytest.raises(InvalidQuantity):
        sell_price_for_margin(100, -0.1)
    with pytest.raises(InvalidQuantity):
        sell_price_for_margin(-5, 0.2)


def test_sample_job_gp_margin_markup_commission():
    f = _financials(_sample_job())
    assert f.gross_profit == 1200.00
    assert f.gp_margin_percent == pytest.approx(25.26)     # 1200 / 4750
    assert f.gp_markup_percent == pytest.approx(33.80)     # 1200 / 3550
    assert f.sales_commission == 144.00
    assert f.deposit == 2612.50
    assert f.balance == 2612.50


# ============================================================
# Optional items
# ============================================================

def test_gates_priced_as_bundled_with_fence():
    f = _financials(_sample_job(optional_items=[
        {"id": "pedestrian_gate", "quantity": 1},
        {"id": "double_gate", "quantity": 1},
    ]))
    assert _line(f, "pedestrian_gate").line_total == 1100.00
    assert _line(f, "double_gate").line_total == 2400.00
    assert f.revenue.categories["gates"] == 3500.00


def test_standalone_gate_uses_standalone_rate():
    job = JobSpec.model_validate({
        "job_ref": "SW9300",
        "supplier": "metroll",
        "optional_items": [{"id": "pedestrian_gate", "quantity": 1}],
    })
    f = _financials(job)
    assert _line(f, "pedestrian_gate").unit_price == 1175.00
    assert f.revenue.categories["labour"] == 0.0


def test_asbestos_removal_adds_flat_fee_once():
    f = _financials(_sample_job(optional_items=[{"id": "remove_asbestos", "quantity": 4}]))
    assert _line(f, "remove_asbestos").line_total == 360.00
    assert _line(f, "asbestos_removal_fee").line_total == 300.00
    assert f.revenue.categories["removal"] == 660.00


def test_custom_item_cost_defaults_to_price():
    f = _financials(_sample_job(optional_items=[
        {"id": "custom_1", "quantity": 2, "label": "Letterbox relocation", "price": 95},
        {"id": "custom_2", "quantity": 1, "label": "Sleeper edging", "price": 200, "cost": 120},
    ]))
    relocation = _line(f, "custom_1")
    assert relocation.description == "Letterbox relocation"
    assert relocation.line_total == 190.00
    assert relocation.line_cost == 190.00
    assert _line(f, "custom_2").line_cost == 120.00
    assert f.revenue.categories["extras"] == 390.00


def test_disabled_items_are_ignored():
    f = _financials(_sample_job(optional_items=[
        {"id": "remove_timber", "enabled": False},
        {"id": "vegetation_clear"},
    ]))
    ids = [li.item_id for li in f.line_items]
    assert "remove_timber" not in ids
    assert _line(f, "vegetation_clear").line_total == 150.00
