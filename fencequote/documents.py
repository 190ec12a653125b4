"""
Document assembler — the four outputs of a job.

1. Client quote            (client-facing)
2. Supplier material order (client-facing: goes to Metroll / R&R)
3. Installer work order    (client-facing: goes to the install crew)
4. Gross profit analysis   (internal)

All four pull from the SAME computed model. What's in the quote = what's in
the material order = what's in the work order. Nothing here recomputes a
business number: every figure is read from MaterialQuantities or Financials.

Any STOP verdict blocks documents 1-3. The GP analysis is always available
for internal diagnostics.
"""

import logging

from .calculators.fence import PATIO_TUBE_SPEC
from .catalog import GATE_IDS, GATE_RULES, OPTIONAL_ITEMS
from .compliance import flags_asbestos
from .config import settings
from .exceptions import ComplianceStop
from .pricing_engine import DEPOSIT_FRACTION
from .rates import RateConfig
from .schemas import (
    ComplianceResult,
    Financials,
    GPAnalysis,
    JobOutputs,
    JobSpec,
    MaterialOrder,
    MaterialQuantities,
    Quote,
    QuoteLine,
    RunBreakdown,
    WorkOrder,
)

logger = logging.getLogger(__name__)


QUOTE_VALIDITY_DAYS = 30
MARGIN_TARGET_PERCENT = 20
JOB_SIZE_THRESHOLD = 3000

GATE_POST_SPEC = "90x90mm SHS"

SAFETY_CHECKLIST = [
    "DBYD plans reviewed before start",
    "Services marked on-site (hand dig exposure if high risk)",
    "Boundary pegs located and photographed",
    "Client notified 48h advance",
    "Weather checked day-before",
]

COMPLETION_REQUIREMENTS = [
    "Upload 10 QC photos (start, mid, end, gates, details, street)",
    "Client walkthrough and acceptance",
    'Mark "Ready for Sign-Off" in Tradify',
]

MATERIAL_ORDER_FOOTER = (
    "Payment: On receipt of itemized invoice\n"
    "Please confirm itemized invoice and delivery ETA within 24 hours."
)


def mandatory_disclaimers(rock_per_hole: float) -> list:
    """The 6 standard disclaimers — ALWAYS on every quote."""
    return [
        "BOUNDARY VERIFICATION: Client responsible for confirming boundary location via "
        "licensed surveyor. SecureWorks not liable for boundary disputes or encroachment.",
        "PERMITS & APPROVALS: Quote excludes council permits, engineering certification, "
        "and development approvals unless specifically itemized above.",
        "SITE CONDITIONS: Quote assumes standard digging in sand/loam. Rock, limestone, or "
        "difficult excavation will incur additional charges at $%s per hole." % _num(rock_per_hole),
        "NEIGHBOUR RELATIONS: Client responsible for Dividing Fences Act notice and neighbour "
        "cost-sharing agreements. This quote reflects full project cost.",
        "VARIATIONS: Changes to scope after acceptance will be quoted separately.",
        "UNDERGROUND SERVICES: Client responsible for locating services via Dial Before You "
        "Dig. Quote assumes DBYD plans reviewed and services marked on-site.",
    ]


def _num(value: float) -> str:
    """12.0 → '12', 12.5 → '12.5'."""
    return f"{value:g}"


def _ranges(numbers: list) -> list:
    """[1, 2, 3, 5] → ['1-3', '5']"""
    out = []
    start = prev = None
    for n in numbers:
        if start is None:
            start = prev = n
        elif n == prev + 1:
            prev = n
        else:
            out.append(f"{start}-{prev}" if prev != start else f"{start}")
            start = prev = n
    if start is not None:
        out.append(f"{start}-{prev}" if prev != start else f"{start}")
    return out


def _runs_of(values: list) -> list:
    """[0, 0, 2, 3, 3] → [(0, [1, 2]), (2, [3]), (3, [4, 5])], numbered from 1."""
    out = []
    for number, value in enumerate(values, 1):
        if out and out[-1][0] == value:
            out[-1][1].append(number)
        else:
            out.append((value, [number]))
    return out


class DocumentAssembler:
    """Pure projection of the computed job model into the four documents."""

    def assemble(self, job: JobSpec, quantities: MaterialQuantities,
                 compliance: ComplianceResult, financials: Financials,
                 suggestions: list, rates: RateConfig) -> JobOutputs:
        self._require_clear(compliance)
        return JobOutputs(
            quote=self.build_quote(job, quantities, compliance, financials, suggestions, rates),
            material_order=self.build_material_order(job, quantities, compliance),
            work_order=self.build_work_order(job, quantities, compliance, financials),
            gp_analysis=self.build_gp_analysis(job, quantities, compliance, financials),
            compliance=compliance,
        )

    def _require_clear(self, compliance: ComplianceResult):
        if compliance.blocked:
            logger.warning("Refusing client-facing documents: %s", "; ".join(compliance.errors))
            raise ComplianceStop(compliance.errors)

    # ============================================================
    # OUTPUT 1: CLIENT QUOTE
    # ============================================================

    def build_quote(self, job, quantities, compliance, financials, suggestions, rates) -> Quote:
        self._require_clear(compliance)
        revenue = financials.revenue

        surcharges = []
        if revenue.access_surcharge:
            surcharges.append(QuoteLine(
                description="Site access surcharge (%s, %s%% of labour)" % (
                    financials.access_difficulty, _num(financials.access_fraction * 100)),
                quantity=1, unit="job",
                unit_price=revenue.access_surcharge,
                line_total=revenue.access_surcharge,
            ))
        if revenue.urgency_surcharge:
            surcharges.append(QuoteLine(
                description="Urgency surcharge (%s, %s%%)" % (
                    financials.urgency, _num(financials.urgency_fraction * 100)),
                quantity=1, unit="job",
                unit_price=revenue.urgency_surcharge,
                line_total=revenue.urgency_surcharge,
            ))

        conditional = list(compliance.flags) + list(compliance.warnings)

        return Quote(
            header={
                "company": settings.COMPANY_NAME,
                "abn": settings.COMPANY_ABN,
                "email": settings.COMPANY_EMAIL,
                "phone": settings.COMPANY_PHONE,
                "job_ref": job.job_ref,
            },
            client={
                "name": job.client_name,
                "site_address": job.site_address,
            },
            description=self.build_job_description(job, quantities),
            line_items=[
                QuoteLine(
                    description=li.description,
                    quantity=li.quantity,
                    unit=li.unit,
                    unit_price=li.unit_price,
                    line_total=li.line_total,
                )
                for li in financials.line_items
            ],
            surcharges=surcharges,
            subtotal=revenue.total_ex_gst,
            gst=revenue.gst,
            total=revenue.total_inc_gst,
            disclaimers=mandatory_disclaimers(rates.sell_rate("rock_per_hole")) + conditional,
            conditional_disclaimers=conditional,
            optional_addons=list(suggestions),
            payment_terms={
                "deposit_percent": int(DEPOSIT_FRACTION * 100),
                "deposit": financials.deposit,
                "balance": financials.balance,
                "balance_due": "on completion",
            },
            validity_days=QUOTE_VALIDITY_DAYS,
        )

    def build_job_description(self, job: JobSpec, quantities: MaterialQuantities) -> str:
        """
        Plain English description from scope, e.g.
        "Supply and install 20 metres of 1800mm Surfmist Colorbond fencing
        (Harmony profile) to the rear boundary. Includes 6 plinths with
        4 lengths of patio tube reinforcement."
        """
        sentences = []
        colour = f"{job.colour} " if job.colour else ""
        profile = f" ({job.profile} profile)" if job.profile else ""

        for run in quantities.runs:
            ext = " with 150mm extension" if run.extension == "150mm" else ""
            sentences.append(
                f"Supply and install {_num(run.length_m)} metres of {run.sheet_height}mm "
                f"{colour}Colorbond fencing{profile}{ext} to the {run.location} boundary ({run.name})."
            )

        if quantities.plinths:
            text = f"Includes {quantities.plinths} plinths"
            if quantities.patio_tubes:
                text += f" with {quantities.patio_tubes} lengths of patio tube reinforcement"
            sentences.append(text + ".")

        for gate_id in GATE_IDS:
            count = job.item_quantity(gate_id)
            if count:
                name = GATE_RULES[gate_id]["name"].lower()
                sentences.append(f"Includes {_num(count)} × {name}{'s' if count > 1 else ''}.")

        removals = [
            OPTIONAL_ITEMS[i.id]["label"].lower() for i in job.enabled_items()
            if OPTIONAL_ITEMS[i.id]["category"] == "removal"
        ]
        if removals:
            sentences.append(
                "Existing fencing to be removed and disposed (%s)." % ", ".join(removals)
            )

        if not sentences:
            return "Supply and install as itemised below."
        return " ".join(sentences)

    # ============================================================
    # OUTPUT 2: MATERIAL ORDER
    # ============================================================

    def build_material_order(self, job, quantities, compliance) -> MaterialOrder:
        self._require_clear(compliance)

        # e.g. "9 × 1800H × 2365W panels | Surfmist | Harmony"
        grouped = {}
        for run in quantities.runs:
            for p in run.panels:
                key = (p.sheet_height, p.width)
                grouped[key] = grouped.get(key, 0) + 1
        group_lines = [
            " | ".join(x for x in (
                f"{count} × {sheet}H × {width}W panels",
                job.colour, job.profile) if x)
            for (sheet, width), count in sorted(grouped.items())
        ]
        # e.g. "6 × 2400H posts"
        post_lines = [
            f"{count} × {height}H posts" for height, count in quantities.post_groups.items()
        ]

        if quantities.patio_tubes:
            note = (f"{quantities.patio_panels} panels with 3-4 plinths + 1 = "
                    f"{quantities.patio_tubes} tubes")
        else:
            note = "No panels with 3-4 plinths — no patio tubing required"

        gate_kits = []
        for gate_id in GATE_IDS:
            count = job.item_quantity(gate_id)
            if count:
                rule = GATE_RULES[gate_id]
                gate_kits.append({
                    "type": rule["name"],
                    "qty": count,
                    "width": rule["width"],
                    "height": rule["height"],
                    "colour": job.colour,
                    "posts_per_gate": rule["posts"],
                })

        return MaterialOrder(
            header={
                "company": settings.ORDER_COMPANY_NAME,
                "job_ref": job.job_ref,
                "customer": job.client_name,
                "delivery_address": job.site_address,
                "site_contact": settings.SITE_CONTACT_PHONE,
                "delivery_date": "[DATE]",
                "delivery_time": settings.DELIVERY_TIME,
                "supplier": quantities.supplier_name,
            },
            panel_group_lines=group_lines,
            post_groups=quantities.post_groups,
            post_group_lines=post_lines,
            patio_tubing={
                "qty": quantities.patio_tubes,
                "calculation_note": note,
                "spec": PATIO_TUBE_SPEC,
                "reinforcement_panels": list(quantities.reinforcement_panels),
            },
            gate_posts={
                "qty": quantities.gate_posts,
                "spec": GATE_POST_SPEC,
                "note": "Gate posts only. NOT C-channel.",
            },
            plinths=quantities.plinths,
            gate_kits=gate_kits,
            fixings={
                "concrete_bags": quantities.concrete_bags,
                "screw_boxes": quantities.screw_boxes,
            },
            notes=job.special_notes,
            footer=MATERIAL_ORDER_FOOTER,
        )

    # ============================================================
    # OUTPUT 3: WORK ORDER
    # ============================================================

    def build_work_order(self, job, quantities, compliance, financials) -> WorkOrder:
        self._require_clear(compliance)

        return WorkOrder(
            header={
                "job_ref": job.job_ref,
                "client_name": job.client_name,
                "site_address": job.site_address,
                "client_phone": "[Phone]",
                "client_email": "[Email]",
                "scheduled_start": "[Date]",
                "expected_completion": "[Date]",
                "scoped_by": "Sales",
                "approved_by": "Admin",
            },
            fence_spec={
                "profile": job.profile,
                "colour": job.colour,
                "sheet_height": quantities.runs[0].sheet_height if quantities.runs else 1800,
                "total_length_m": quantities.total_length_m,
                "total_panels": quantities.total_panels,
                "total_posts": quantities.total_posts,
                "manufacturer": quantities.supplier_name,
            },
            run_breakdowns=[self._run_breakdown(r, quantities) for r in quantities.runs],
            scope_of_work=self._scope_checklist(quantities, financials),
            safety_checklist=SAFETY_CHECKLIST + list(compliance.flags) + list(compliance.warnings),
            completion_reqs=list(COMPLETION_REQUIREMENTS),
            internal_costs=financials.costs,
            site_access={"level": job.access_difficulty, "notes": ""},
        )

    def _run_breakdown(self, run, quantities) -> RunBreakdown:
        heights = "/".join(str(h) for h in sorted(set(run.post_heights)))
        head = f"{run.name}: {_num(run.length_m)}m | {run.panel_count} panels | {run.plinths} plinths"

        if run.plinths == 0:
            lines = []
            summary = f"{head} | {heights}mm posts"
        else:
            summary = head
            lines = []
            for plinths, numbers in _runs_of([p.total_plinths for p in run.panels]):
                each = " each" if plinths and len(numbers) > 1 else ""
                lines.append(self._range_line("Panel", numbers, f"{plinths} plinths{each}"))
            # Post heights come from the per-post model, not the panel's own stack
            for height, numbers in _runs_of(run.post_heights):
                lines.append(self._range_line("Post", numbers, f"{height}mm"))

            patio = [p.number for p in run.panels if p.patio_tube]
            if patio:
                lines.append("⚠ Patio tubing required for panels %s" % ", ".join(_ranges(patio)))

        reinforce = [p.number for p in run.panels if p.needs_reinforcement]
        if reinforce:
            lines.append(
                "⚠ Reinforcement tubing required for panels %s (post requirement exceeds 3000mm)"
                % ", ".join(_ranges(reinforce))
            )
        if run.long_panel:
            lines.append(
                f"Panel {run.long_panel_number} is a long panel ({quantities.long_panel_width}mm)"
            )

        return RunBreakdown(name=run.name, summary=summary, lines=lines)

    def _range_line(self, noun: str, numbers: list, detail: str) -> str:
        first, last = numbers[0], numbers[-1]
        label = f"{noun}s {first}-{last}" if last != first else f"{noun} {first}"
        return f"{label}: {detail}"

    def _scope_checklist(self, quantities, financials) -> list:
        scope = [
            f"Install {_num(quantities.total_length_m)}m of Colorbond fencing "
            f"({quantities.total_panels} panels total)",
            f"Total posts: {quantities.total_posts} standard C-channel + "
            f"{quantities.gate_posts} gate posts",
        ]
        if quantities.plinths:
            scope.append(f"Plinth installation: {quantities.plinths} plinths total")
        if quantities.patio_tubes:
            scope.append(f"Install {quantities.patio_tubes} × 76x38mm patio tubing")
        if quantities.gate_posts:
            scope.append(f"Install gates with {GATE_POST_SPEC} gate posts")
        for li in financials.line_items:
            if li.category == "removal" and li.item_id != "asbestos_removal_fee":
                scope.append(f"Remove and dispose {_num(li.quantity)} {li.unit} — {li.description}")
            elif li.category == "ground_finish":
                scope.append(f"Spread {li.description.lower()} along fence line "
                             f"({_num(li.quantity)}{li.unit})")
        return scope

    # ============================================================
    # OUTPUT 4: GROSS PROFIT ANALYSIS (internal)
    # ============================================================

    def build_gp_analysis(self, job, quantities, compliance, financials) -> GPAnalysis:
        return GPAnalysis(
            job_ref=job.job_ref,
            client_name=job.client_name,
            total_length_m=quantities.total_length_m,
            total_panels=quantities.total_panels,
            costs=financials.costs,
            revenue=financials.revenue,
            gross_profit=financials.gross_profit,
            gp_margin_percent=financials.gp_margin_percent,
            gp_markup_percent=financials.gp_markup_percent,
            sales_commission=financials.sales_commission,
            margin_above_20=financials.gp_margin_percent >= MARGIN_TARGET_PERCENT,
            job_above_3k=financials.revenue.total_ex_gst >= JOB_SIZE_THRESHOLD,
            risk_factors=self._risk_factors(job, compliance, financials),
            breakeven=financials.breakeven,
            blocking_errors=list(compliance.errors),
        )

    def _risk_factors(self, job, compliance, financials) -> list:
        risks = []
        if "rock" in job.special_notes.lower():
            risks.append("Rock likely (noted on site)")
        if flags_asbestos(job) or job.asbestos_on_site:
            risks.append("Asbestos removal")
        if job.access_difficulty == "difficult":
            risks.append("Difficult access")
        if compliance.fired("retaining_permit"):
            risks.append("Retaining permit required")
        if compliance.fired("front_fence"):
            risks.append("Front fence DA may be required")
        if compliance.fired("plinth_capacity_warning"):
            risks.append("Max plinth capacity reached")
        if compliance.fired("max_plinths"):
            risks.append("Plinth limit exceeded — re-scope as retaining wall")
        if financials.gross_profit < 0:
            risks.append("Negative margin — cost exceeds sell price")
        return risks
