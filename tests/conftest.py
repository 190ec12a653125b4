"""
Shared test fixtures — test client and a sample job payload.
"""

import copy

import pytest
from fastapi.testclient import TestClient

from fencequote.main import app


SAMPLE_JOB = {
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


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def sample_job_data():
    """
    20m rear run at Metroll widths: 9 panels, plinths on panels 4-6,
    12 Hardie sheets removed, mulch along the fence line.
    Totals $4,750 ex GST / $5,225 inc GST against $3,550 cost.
    """
    return copy.deepcopy(SAMPLE_JOB)
