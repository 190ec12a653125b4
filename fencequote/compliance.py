"""
Compliance checks — run ALL checks before generating any output.

Each rule is a pure predicate over one scope (a panel, a run, or the whole
job) tagged with a severity:

    STOP     — cannot generate client-facing documents
    WARNING  — generate, with the warning shown
    FLAG     — generate, message carried into the documents verbatim

Rules are independent of each other. The evaluator never short-circuits:
every rule runs against every item in its scope on every call.
"""

import logging
from typing import Callable, List, Optional

from .catalog import OPTIONAL_ITEMS
from .rates import SUPPLIERS
from .schemas import ComplianceResult, ComplianceVerdict, JobSpec, Severity

logger = logging.getLogger(__name__)


PLINTH_HEIGHT_MM = 150
MAX_PLINTHS = 4
RETAINING_PERMIT_MM = 500
FRONT_FENCE_MAX_SOLID_MM = 1200
MAX_RUN_LENGTH_M = 200
MAX_STANDARD_SHEET_MM = 2400

# Approx m² per asbestos sheet; >10m² needs a Class B licence
ASBESTOS_SHEET_M2 = 1.8 * 0.6
ASBESTOS_LICENCE_M2 = 10


# --- Panel rules: check(run, panel) ---

def _max_plinths(run, panel) -> Optional[str]:
    total = panel.total_plinths
    if total > MAX_PLINTHS:
        return (
            f"Panel {panel.number} in {run.name} has {total} plinths (max {MAX_PLINTHS}). "
            f"This requires post & panel retaining system. Re-scope as retaining wall "
            f"project, not Colorbond fencing."
        )
    return None


def _plinth_capacity(run, panel) -> Optional[str]:
    if panel.total_plinths == MAX_PLINTHS:
        return (
            f"Panel {panel.number} in {run.name} at maximum plinth capacity "
            f"({MAX_PLINTHS * PLINTH_HEIGHT_MM}mm). Retaining permit likely required."
        )
    return None


def _retaining_permit(run, panel) -> Optional[str]:
    if panel.total_plinths * PLINTH_HEIGHT_MM >= RETAINING_PERMIT_MM:
        return (
            "Building Permit required (retaining ≥500mm). "
            "Add ~$350 permit + ~$600 engineering cert to quote."
        )
    return None


# --- Run rules: check(run) ---

def _front_fence(run) -> Optional[str]:
    if run.location == "front" and run.sheet_height > FRONT_FENCE_MAX_SOLID_MM:
        return (
            f"{run.name}: front fences >1.2m solid require Development Approval per R-Codes. "
            f"Options: reduce to 1.2m, add permeable screen above 1.2m, or apply for DA (~$500)."
        )
    return None


def _measurement_sanity(run) -> Optional[str]:
    if run.length_m > MAX_RUN_LENGTH_M:
        return f"{run.name} run is {run.length_m:g}m — likely a typo. Please verify."
    return None


def _sheet_height_range(run) -> Optional[str]:
    if run.sheet_height > MAX_STANDARD_SHEET_MM:
        return (
            f"Sheet height {run.sheet_height}mm on {run.name} exceeds standard range. "
            f"Requires engineering."
        )
    return None


# --- Job rules: check(job) ---

def _supplier_selected(job) -> Optional[str]:
    if not job.supplier:
        return "Supplier not selected."
    if job.supplier not in SUPPLIERS:
        return f"Unknown supplier '{job.supplier}'. Select one of: {', '.join(SUPPLIERS)}."
    return None


def _client_name(job) -> Optional[str]:
    return None if job.client_name.strip() else "Client name missing."


def _site_address(job) -> Optional[str]:
    return None if job.site_address.strip() else "Site address missing."


def _job_ref(job) -> Optional[str]:
    return None if job.job_ref.strip() else "Job reference missing."


def _asbestos_licence(job) -> Optional[str]:
    sheets = job.item_quantity("remove_asbestos")
    area = sheets * ASBESTOS_SHEET_M2
    if area > ASBESTOS_LICENCE_M2:
        return (
            f"Class B Asbestos License required (>{ASBESTOS_LICENCE_M2}m², "
            f"~{area:.1f}m² quoted). Confirm in-house license or subcontract."
        )
    return None


class ComplianceRule:
    """A named predicate over one scope, tagged with a severity."""

    def __init__(self, rule_id: str, scope: str, severity: Severity, check: Callable):
        if scope not in ("panel", "run", "job"):
            raise ValueError(f"Unknown rule scope: {scope}")
        self.rule_id = rule_id
        self.scope = scope
        self.severity = severity
        self.check = check

    def evaluate(self, job: JobSpec) -> List[ComplianceVerdict]:
        if self.scope == "panel":
            messages = [self.check(run, panel) for run in job.runs for panel in run.panels]
        elif self.scope == "run":
            messages = [self.check(run) for run in job.runs]
        else:
            messages = [self.check(job)]
        return [
            ComplianceVerdict(severity=self.severity, message=m, rule_id=self.rule_id)
            for m in messages if m
        ]


# Evaluation order is fixed by this list
COMPLIANCE_RULES = [
    ComplianceRule("max_plinths", "panel", Severity.STOP, _max_plinths),
    ComplianceRule("plinth_capacity_warning", "panel", Severity.WARNING, _plinth_capacity),
    ComplianceRule("retaining_permit", "panel", Severity.FLAG, _retaining_permit),
    ComplianceRule("front_fence", "run", Severity.FLAG, _front_fence),
    ComplianceRule("measurement_sanity", "run", Severity.WARNING, _measurement_sanity),
    ComplianceRule("sheet_height_range", "run", Severity.WARNING, _sheet_height_range),
    ComplianceRule("supplier_selected", "job", Severity.STOP, _supplier_selected),
    ComplianceRule("client_name_missing", "job", Severity.WARNING, _client_name),
    ComplianceRule("site_address_missing", "job", Severity.WARNING, _site_address),
    ComplianceRule("job_ref_missing", "job", Severity.WARNING, _job_ref),
    ComplianceRule("asbestos_license", "job", Severity.FLAG, _asbestos_licence),
]


class ComplianceEngine:
    """
    Generic evaluator over an ordered rule table.

    Returns the full partitioned result — errors (STOP), warnings, flags.
    Identical messages (e.g. the same permit flag raised by several panels)
    are listed once, in order of first occurrence.
    """

    def __init__(self, rules: Optional[list] = None):
        self.rules = list(rules) if rules is not None else list(COMPLIANCE_RULES)

    def evaluate(self, job: JobSpec) -> ComplianceResult:
        verdicts = []
        for rule in self.rules:
            verdicts.extend(rule.evaluate(job))

        partitioned = {Severity.STOP: [], Severity.WARNING: [], Severity.FLAG: []}
        for v in verdicts:
            bucket = partitioned[v.severity]
            if v.message not in bucket:
                bucket.append(v.message)

        result = ComplianceResult(
            verdicts=verdicts,
            errors=partitioned[Severity.STOP],
            warnings=partitioned[Severity.WARNING],
            flags=partitioned[Severity.FLAG],
        )
        if result.blocked:
            logger.info("Job %s blocked by %d STOP verdict(s)", job.job_ref or "<no ref>",
                        len(result.errors))
        return result


def flags_asbestos(job: JobSpec) -> bool:
    """True when any enabled optional item is an asbestos removal line."""
    return any(OPTIONAL_ITEMS[i.id].get("flags_asbestos") for i in job.enabled_items())
