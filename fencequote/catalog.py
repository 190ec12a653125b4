"""
Optional line-item catalog.

Sales rep toggles these on/off per job and sets quantities. Each entry says
which rate keys price it and which revenue/cost category it lands in.
"""

GROUND_FINISH_IDS = ("ground_mulch", "ground_stones", "ground_turf")
REMOVAL_IDS = ("remove_hardie", "remove_timber", "remove_asbestos")
GATE_IDS = ("pedestrian_gate", "double_gate")
PERMIT_IDS = ("building_permit", "engineering_cert", "dev_approval")
CUSTOM_IDS = ("custom_1", "custom_2", "custom_3")

# Ground finish strip width along the fence line (m)
GROUND_FINISH_STRIP_M = 0.5

OPTIONAL_ITEMS = {
    # Removal
    "remove_hardie": {"label": "Remove Hardie/Super6 sheets", "unit": "sheet",
                      "qty_required": True, "rate_key": "remove_hardie_per_sheet",
                      "category": "removal"},
    "remove_timber": {"label": "Remove timber lap fencing", "unit": "m",
                      "qty_required": True, "rate_key": "remove_timber_per_m",
                      "category": "removal"},
    "remove_asbestos": {"label": "Remove asbestos sheets", "unit": "sheet",
                        "qty_required": True, "rate_key": "remove_asbestos_per_sheet",
                        "category": "removal", "flags_asbestos": True},

    # Ground finish — quantity auto-calculated from fence length when omitted
    "ground_mulch": {"label": "Mulch ground finish", "unit": "m²",
                     "qty_required": False, "rate_key": "mulch_per_m2",
                     "category": "ground_finish", "auto_calc": True},
    "ground_stones": {"label": "White stones (20mm) ground finish", "unit": "m²",
                      "qty_required": False, "rate_key": "white_stones_per_m2",
                      "category": "ground_finish", "auto_calc": True},
    "ground_turf": {"label": "Turf prep ground finish", "unit": "m²",
                    "qty_required": False, "rate_key": "turf_prep_per_m2",
                    "category": "ground_finish", "auto_calc": True},

    # Additional
    "vegetation_clear": {"label": "Vegetation/site clear", "unit": "job",
                         "qty_required": False, "rate_key": "vegetation_clear",
                         "category": "extras", "default_qty": 1},
    "additional_labour": {"label": "Additional labour", "unit": "hr",
                          "qty_required": True, "rate_key": "additional_labour_per_hr",
                          "category": "labour"},
    "core_drilling": {"label": "Core drilling", "unit": "holes",
                      "qty_required": True, "rate_key": "rock_per_hole",
                      "category": "extras"},

    # Gates
    "pedestrian_gate": {"label": "Pedestrian gate (incl lock)", "unit": "ea",
                        "qty_required": True, "rate_key": "pedestrian_gate",
                        "category": "gates"},
    "double_gate": {"label": "Double swing gate", "unit": "ea",
                    "qty_required": True, "rate_key": "double_gate",
                    "category": "gates"},

    # Permits (auto-flagged by compliance checks, rep confirms)
    "building_permit": {"label": "Building Permit application", "unit": "job",
                        "qty_required": False, "rate_key": "building_permit",
                        "category": "permits", "default_qty": 1},
    "engineering_cert": {"label": "Structural Engineering cert", "unit": "job",
                         "qty_required": False, "rate_key": "engineering_cert",
                         "category": "permits", "default_qty": 1},
    "dev_approval": {"label": "Development Approval (front fence)", "unit": "job",
                     "qty_required": False, "rate_key": "dev_approval",
                     "category": "permits", "default_qty": 1},

    # Custom blank slots — rep supplies label and price
    "custom_1": {"label": "", "unit": "", "qty_required": True, "custom": True,
                 "category": "extras"},
    "custom_2": {"label": "", "unit": "", "qty_required": True, "custom": True,
                 "category": "extras"},
    "custom_3": {"label": "", "unit": "", "qty_required": True, "custom": True,
                 "category": "extras"},
}

# Gate geometry and post requirements. NEVER C-channel for gates.
GATE_RULES = {
    "pedestrian_gate": {
        "name": "Pedestrian gate",
        "width": 900,
        "height": 1750,
        "posts": 2,            # 2 × 90x90mm SHS
        "post_spec": "90x90mm SHS",
    },
    "double_gate": {
        "name": "Double swing gate",
        "width": 3255,         # Opening width
        "height": 1750,
        "posts": 4,            # 2 per leaf
        "post_spec": "90x90mm SHS",
    },
}
