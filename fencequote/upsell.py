"""
Upsell & cross-sell prompts, auto-suggested in the quote from scope.

Rules are independent and stateless; suggestions come out in the order the
rules are declared below.
"""

from .catalog import GROUND_FINISH_IDS, REMOVAL_IDS
from .rates import RateConfig
from .schemas import JobSpec

# Retaining height above which a retaining wall extension is worth offering
HIGH_RETAINING_MM = 300
PLINTH_HEIGHT_MM = 150


def _fmt(amount: float) -> str:
    return f"${amount:,.0f}" if float(amount).is_integer() else f"${amount:,.2f}"


def _asbestos_not_quoted(job: JobSpec, rates: RateConfig):
    if job.asbestos_on_site and not job.has_item("remove_asbestos"):
        return (
            f"Optional: Asbestos removal {_fmt(rates.sell_rate('remove_asbestos_per_sheet'))}/sheet "
            f"+ {_fmt(rates.sell_rate('asbestos_removal_fee'))} removal fee"
        )
    return None


def _no_ground_finish(job: JobSpec, rates: RateConfig):
    if not job.has_item(*GROUND_FINISH_IDS):
        return (
            f"Optional: Mulch {_fmt(rates.sell_rate('mulch_per_m2'))}/m², "
            f"White stones {_fmt(rates.sell_rate('white_stones_per_m2'))}/m², "
            f"Turf prep {_fmt(rates.sell_rate('turf_prep_per_m2'))}/m²"
        )
    return None


def _high_retaining(job: JobSpec, rates: RateConfig):
    for run in job.runs:
        for panel in run.panels:
            if panel.total_plinths * PLINTH_HEIGHT_MM > HIGH_RETAINING_MM:
                return "Note: Retaining wall extension available — quote separately"
    return None


def _patio_cross_sell(job: JobSpec, rates: RateConfig):
    return "Complementary patio quote available upon request"


def _removal_included(job: JobSpec, rates: RateConfig):
    if job.has_item(*REMOVAL_IDS):
        return "Full removal and licensed disposal included"
    return None


UPSELL_RULES = [
    ("asbestos_without_removal", _asbestos_not_quoted),
    ("no_ground_finish", _no_ground_finish),
    ("high_retaining", _high_retaining),
    ("patio_cross_sell", _patio_cross_sell),
    ("removal_present", _removal_included),
]


class UpsellAdvisor:

    def suggest(self, job: JobSpec, rates: RateConfig) -> list:
        suggestions = []
        for _rule_id, rule in UPSELL_RULES:
            text = rule(job, rates)
            if text:
                suggestions.append(text)
        return suggestions
