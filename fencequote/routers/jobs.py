"""
Job outputs API — thin HTTP edge over the pipeline.

POST /api/jobs/outputs   — all four documents; 422 with the STOP messages when blocked
POST /api/jobs/preview   — diagnostic quantities, compliance, financials, GP analysis
GET  /api/rates/defaults — default sell/cost/surcharge tables
"""

import logging

from fastapi import APIRouter, HTTPException

from ..exceptions import ComplianceStop, InvalidQuantity, MissingRateKey
from ..pipeline import QuotePipeline
from ..rates import COST_PRICES, DEFAULT_RATES, SUPPLIERS, SURCHARGES
from ..schemas import JobOutputs, JobPreview, JobSpec

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])

# Stateless — safe to share across requests
pipeline = QuotePipeline()


@router.post("/jobs/outputs", response_model=JobOutputs)
def generate_job_outputs(job: JobSpec):
    """
    Generate quote, material order, work order and GP analysis.

    STOP verdicts return 422 with the full blocking message set and no
    partial documents.
    """
    try:
        return pipeline.generate(job)
    except ComplianceStop as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    except (InvalidQuantity, MissingRateKey) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/jobs/preview", response_model=JobPreview)
def preview_job_outputs(job: JobSpec):
    """Computed figures for internal review — returned even when STOP verdicts block generation."""
    try:
        return pipeline.preview(job)
    except (InvalidQuantity, MissingRateKey) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/rates/defaults")
def get_default_rates():
    return {
        "sell": dict(DEFAULT_RATES),
        "cost": dict(COST_PRICES),
        "surcharges": {k: dict(v) for k, v in SURCHARGES.items()},
        "suppliers": {
            key: {"name": s["name"], "panel_width": s["panel_width"],
                  "long_panel_width": s["long_panel_width"]}
            for key, s in SUPPLIERS.items()
        },
    }
