"""
Job pipeline — one JobSpec in, four documents out.

    JobSpec → FenceCalculator     → MaterialQuantities
    JobSpec → ComplianceEngine    → ComplianceResult
    (JobSpec, quantities, rates)  → CostRevenueEngine → Financials
    (everything above)            → DocumentAssembler → JobOutputs

Each run builds its own RateConfig from the defaults + the job's overrides,
so jobs share nothing and can be computed side by side.
"""

import logging

from .calculators.fence import FenceCalculator
from .compliance import ComplianceEngine
from .documents import DocumentAssembler
from .exceptions import ComplianceStop
from .pricing_engine import CostRevenueEngine
from .rates import RateConfig, build_rate_config
from .schemas import JobOutputs, JobPreview, JobSpec
from .upsell import UpsellAdvisor

logger = logging.getLogger(__name__)


class QuotePipeline:

    def __init__(self):
        self.calculator = FenceCalculator()
        self.compliance = ComplianceEngine()
        self.pricing = CostRevenueEngine()
        self.upsell = UpsellAdvisor()
        self.assembler = DocumentAssembler()

    def rate_config_for(self, job: JobSpec) -> RateConfig:
        overrides = job.rate_overrides
        return build_rate_config(overrides.sell, overrides.cost,
                                 overrides.urgency, overrides.access)

    def generate(self, job: JobSpec) -> JobOutputs:
        """
        Full generation. Raises ComplianceStop when any STOP verdict is
        present — no partial documents.
        """
        compliance = self.compliance.evaluate(job)
        if compliance.blocked:
            raise ComplianceStop(compliance.errors)

        rates = self.rate_config_for(job)
        quantities = self.calculator.calculate(job)
        financials = self.pricing.calculate(job, quantities, rates)
        suggestions = self.upsell.suggest(job, rates)

        outputs = self.assembler.assemble(job, quantities, compliance, financials,
                                          suggestions, rates)
        logger.info(
            "Generated outputs for job %s: $%.2f inc GST, %d panels, %d flag(s)",
            job.job_ref, financials.revenue.total_inc_gst, quantities.total_panels,
            len(compliance.flags),
        )
        return outputs

    def preview(self, job: JobSpec) -> JobPreview:
        """
        Diagnostic view of the computed figures, produced regardless of STOP
        verdicts. Quantities and pricing need a known supplier; without one
        only the compliance result comes back.
        """
        compliance = self.compliance.evaluate(job)
        rates = self.rate_config_for(job)
        suggestions = self.upsell.suggest(job, rates)

        if compliance.fired("supplier_selected"):
            return JobPreview(compliance=compliance, suggestions=suggestions)

        quantities = self.calculator.calculate(job)
        financials = self.pricing.calculate(job, quantities, rates)
        return JobPreview(
            compliance=compliance,
            quantities=quantities,
            financials=financials,
            gp_analysis=self.assembler.build_gp_analysis(job, quantities, compliance, financials),
            suggestions=suggestions,
        )


def generate_outputs(job: JobSpec) -> JobOutputs:
    return QuotePipeline().generate(job)


def preview_job(job: JobSpec) -> JobPreview:
    return QuotePipeline().preview(job)
