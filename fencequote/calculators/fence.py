"""
Colorbond fence material calculator.

Panel-based: run length / supplier panel width = panel count.
Posts between panels, corner posts shared between adjoining runs.
Plinths stack under a panel and drive post height and patio tubing.

NEVER:
- calculate post height from average plinths (use the MAXIMUM per span)
- double-count corner posts between runs
- round concrete bags down (always up to an even number)
- use C-channel posts for gates (always 90x90mm SHS)
"""

import logging
import math

from .base import (
    BaseCalculator,
    ceil_div,
    require_non_negative,
    require_positive,
    round_up_to_even,
)
from ..catalog import GATE_RULES
from ..exceptions import InvalidQuantity
from ..rates import get_supplier
from ..schemas import MaterialQuantities, PanelQuantities, RunQuantities

logger = logging.getLogger(__name__)


PLINTH_HEIGHT_MM = 150
POST_EMBED_MM = 600
POST_HEIGHTS = (2400, 2700, 3000)
MAX_PLINTHS_PER_PANEL = 4

# Patio tubing reinforces panels carrying 3-4 plinths
PATIO_TUBE_MIN_PLINTHS = 3
PATIO_TUBE_SPEC = "76x38mm × 3000mm"

BAGS_PER_POST = {"standard": 2, "deep": 3}
# × 1.1 waste, kept as a fraction so 10 posts is exactly 22 bags
CONCRETE_WASTE = (11, 10)

SCREWS_PER_PANEL = 4     # 2 top rail, 2 bottom rail
SCREWS_PER_BOX = 100


# --- Pure calculation functions ---

def panels_for_run(length_mm, panel_width_mm) -> int:
    """panels = ROUNDUP(run_length_mm / panel_width)"""
    require_positive(length_mm, "run length (mm)")
    require_positive(panel_width_mm, "panel width (mm)")
    return math.ceil(length_mm / panel_width_mm)


def long_panel_count(length_mm, panel_width_mm, long_panel_width_mm) -> int:
    """One long panel plus as many standard panels as the rest of the run needs."""
    require_positive(length_mm, "run length (mm)")
    require_positive(long_panel_width_mm, "long panel width (mm)")
    remainder = length_mm - long_panel_width_mm
    return 1 + (panels_for_run(remainder, panel_width_mm) if remainder > 0 else 0)


def panels_with_long_panel(length_mm, panel_width_mm, long_panel_width_mm) -> tuple:
    """
    Panel count for a run when one long panel is allowed.

    The long panel is used only when it strictly reduces the count versus
    all-standard panels — a tie keeps standard panels.

    Returns: (panel_count, uses_long_panel)
    """
    standard_count = panels_for_run(length_mm, panel_width_mm)
    long_count = long_panel_count(length_mm, panel_width_mm, long_panel_width_mm)
    if long_count < standard_count:
        return long_count, True
    return standard_count, False


def posts_for_panels(panel_count: int) -> int:
    """posts = panels + 1 on a straight run. Shared corners are subtracted at job level."""
    require_positive(panel_count, "panel count")
    return panel_count + 1


def post_height(sheet_height_mm, total_plinths) -> tuple:
    """
    Post height for a sheet height + plinth stack.

    required = sheet height + plinths × 150 + 600mm embedment
    Smallest available size that fits; over 3000 → 3000 + reinforcement tubing.

    Returns: (post_height_mm, needs_reinforcement)
    """
    require_positive(sheet_height_mm, "sheet height (mm)")
    require_non_negative(total_plinths, "plinth count")
    required = sheet_height_mm + total_plinths * PLINTH_HEIGHT_MM + POST_EMBED_MM
    for size in POST_HEIGHTS:
        if required <= size:
            return size, False
    return POST_HEIGHTS[-1], True


def patio_tube_count(panels) -> int:
    """
    Count panels with 3-4 plinths (slope + retaining).
    Quantity = count + 1 — adjacent panels share tubes.
    """
    qualifying = [
        p for p in panels
        if PATIO_TUBE_MIN_PLINTHS <= p.total_plinths <= MAX_PLINTHS_PER_PANEL
    ]
    if not qualifying:
        return 0
    return len(qualifying) + 1


def concrete_bags(post_count: int, depth_type: str = "standard") -> int:
    """
    2 bags per post (3 for deep footings), × 1.1 waste,
    rounded UP to the nearest even number.
    """
    require_positive(post_count, "post count")
    if depth_type not in BAGS_PER_POST:
        raise InvalidQuantity(
            f"Unknown footing depth: {depth_type}. Available: {list(BAGS_PER_POST.keys())}"
        )
    waste_num, waste_den = CONCRETE_WASTE
    return round_up_to_even(post_count * BAGS_PER_POST[depth_type] * waste_num, waste_den)


def screw_boxes(panel_count: int) -> int:
    """4 tek screws per sheet, sold in boxes of 100."""
    require_positive(panel_count, "panel count")
    return ceil_div(panel_count * SCREWS_PER_PANEL, SCREWS_PER_BOX)


def gate_post_count(pedestrian_gates, double_gates) -> int:
    """2 posts per pedestrian gate, 4 per double gate — all 90x90mm SHS."""
    require_non_negative(pedestrian_gates, "pedestrian gate count")
    require_non_negative(double_gates, "double gate count")
    return int(pedestrian_gates * GATE_RULES["pedestrian_gate"]["posts"]
               + double_gates * GATE_RULES["double_gate"]["posts"])


# --- Job calculator ---

class FenceCalculator(BaseCalculator):

    def calculate(self, job) -> MaterialQuantities:
        supplier = get_supplier(job.supplier)
        panel_width = supplier["panel_width"]
        long_width = supplier["long_panel_width"]

        runs = [self._calculate_run(run, panel_width, long_width) for run in job.runs]

        total_panels = sum(r.panel_count for r in runs)
        run_posts = sum(r.post_count for r in runs)
        shared = len(job.shared_corners)
        total_posts = run_posts - shared

        post_groups = self._post_groups(runs, job.shared_corners)

        reinforcement = [
            "%s panel %d" % (r.name, p.number)
            for r in runs for p in r.panels if p.needs_reinforcement
        ]

        # Tubes are counted once across the whole job
        all_panels = [p for r in runs for p in r.panels]
        patio_tubes = patio_tube_count(all_panels)

        gate_posts = gate_post_count(job.item_quantity("pedestrian_gate"),
                                     job.item_quantity("double_gate"))

        # Concrete covers fence posts only; gate posts come with the gate kits
        bags = concrete_bags(total_posts, job.footing_depth) if total_posts > 0 else 0
        screws = screw_boxes(total_panels) if total_panels > 0 else 0

        logger.debug(
            "Job %s: %d panels, %d posts (%d shared corners), %d gate posts",
            job.job_ref, total_panels, total_posts, shared, gate_posts,
        )

        return MaterialQuantities(
            supplier=job.supplier,
            supplier_name=supplier["name"],
            panel_width=panel_width,
            long_panel_width=long_width,
            runs=runs,
            total_length_m=round(sum(r.length_m for r in runs), 3),
            total_panels=total_panels,
            shared_corners=shared,
            total_posts=total_posts,
            post_groups=post_groups,
            patio_panels=sum(r.patio_panels for r in runs),
            patio_tubes=patio_tubes,
            reinforcement_panels=reinforcement,
            plinths=sum(r.plinths for r in runs),
            gate_posts=gate_posts,
            footing_depth=job.footing_depth,
            concrete_bags=bags,
            screw_boxes=screws,
        )

    def _post_groups(self, runs, shared_corners) -> dict:
        """
        Post height → physical post count.

        A corner (a, b) joins the last post of run a to the first post of
        run b. The shared post is the taller of the two, so the shorter one
        is dropped from the count.
        """
        groups = {}
        for r in runs:
            for h in r.post_heights:
                groups[h] = groups.get(h, 0) + 1
        for a, b in shared_corners:
            dropped = min(runs[a].post_heights[-1], runs[b].post_heights[0])
            groups[dropped] -= 1
        return {h: n for h, n in sorted(groups.items()) if n}

    def _calculate_run(self, run, panel_width: int, long_width: int) -> RunQuantities:
        length_mm = self.m_to_mm(run.length_m)

        marked = [p.number for p in run.panels if p.width and p.width > panel_width]
        if len(marked) > 1:
            raise InvalidQuantity(
                f"Run '{run.name}' has {len(marked)} long panels (max ONE per run): {marked}"
            )
        if marked:
            # Rep placed the long panel; honour it
            panel_count = long_panel_count(length_mm, panel_width, long_width)
            long_number = marked[0]
        else:
            panel_count, uses_long = panels_with_long_panel(length_mm, panel_width, long_width)
            long_number = panel_count if uses_long else None

        for p in run.panels:
            if p.number > panel_count:
                raise InvalidQuantity(
                    f"Run '{run.name}' panel {p.number} is beyond the run's {panel_count} panels"
                )

        panels = []
        for number in range(1, panel_count + 1):
            entered = run.panel(number)
            sheet = (entered.sheet_height if entered and entered.sheet_height else run.sheet_height)
            plinths = entered.total_plinths if entered else 0
            _, reinforce = post_height(sheet, plinths)
            panels.append(PanelQuantities(
                number=number,
                width=long_width if number == long_number else panel_width,
                sheet_height=sheet,
                total_plinths=plinths,
                needs_reinforcement=reinforce,
                patio_tube=PATIO_TUBE_MIN_PLINTHS <= plinths <= MAX_PLINTHS_PER_PANEL,
            ))

        # Each post takes the tallest requirement of the panels either side of it
        post_heights = []
        for i in range(panel_count + 1):
            span = panels[max(i - 1, 0):i + 1]
            height, _ = post_height(max(p.sheet_height for p in span),
                                    max(p.total_plinths for p in span))
            post_heights.append(height)

        return RunQuantities(
            name=run.name,
            location=run.location,
            length_m=run.length_m,
            sheet_height=run.sheet_height,
            extension=run.extension,
            panel_count=panel_count,
            long_panel=long_number is not None,
            long_panel_number=long_number,
            post_count=posts_for_panels(panel_count),
            panels=panels,
            post_heights=post_heights,
            plinths=sum(p.total_plinths for p in panels),
            patio_panels=sum(1 for p in panels if p.patio_tube),
        )
