"""Constants for Battle Plan.

This module centralizes all magic numbers and default values used throughout the application.
"""

# Rating ranges
ACE_MIN = 1
ACE_MAX = 5
LMT_MIN = 0
LMT_MAX = 2

# Time planning
ESTIMATE_BUCKETS = (15, 30, 60, 90, 120, 180)
CONFIDENCE_MULTIPLIERS = {"high": 1.1, "medium": 1.3, "low": 1.6}
DEFAULT_CONFIDENCE_MULTIPLIER = 1.3
BUFFER_ROUNDING_MINUTES = 5

# Calibration
DEFAULT_CALIBRATION_TAG = "Other"
CALIBRATION_WINDOW = 20
CALIBRATION_FACTOR_MIN = 1.0
CALIBRATION_FACTOR_MAX = 2.0

# Monsters
MONSTER_ESTIMATE_MINUTES = 90
MAX_TOP3 = 3
MAX_TOP3_MONSTERS = 1

# Tiered sort
URGENT_SCORE_BOOST = 10
RATED_SCORE_BOOST = 1
DUE_SOON_DAYS = 3

# Rerack
DENSITY_SHORT_TASK_BOOST = 10
LOW_DENSITY_THRESHOLD = 0.15
TOO_LONG_CAPACITY_SHARE = 0.7

# Rollover
PROTECTED_DUE_WINDOW_DAYS = 7

# Completion
MIN_INFERRED_ACTUAL_MINUTES = 1
MAX_INFERRED_ACTUAL_MINUTES = 480

# Snapshot format
EXPORT_VERSION = 4

# Rating presets (from the quick-rate menu)
PRESETS = {
    "mission-critical": {
        "name": "Mission-critical now",
        "impact": 5, "consequences": 5, "friction": 3,
        "leverage": 1, "energy_match": 1, "time_criticality": 1,
        "estimate_bucket": 60, "confidence": "medium",
    },
    "money-maker": {
        "name": "Money-maker",
        "impact": 5, "consequences": 4, "friction": 2,
        "leverage": 1, "energy_match": 2, "time_criticality": 1,
        "estimate_bucket": 60, "confidence": "medium",
    },
    "admin-tax": {
        "name": "Admin tax",
        "impact": 3, "consequences": 4, "friction": 4,
        "leverage": 0, "energy_match": 1, "time_criticality": 0,
        "estimate_bucket": 90, "confidence": "low",
    },
    "quick-win": {
        "name": "Quick win",
        "impact": 2, "consequences": 3, "friction": 1,
        "leverage": 0, "energy_match": 2, "time_criticality": 2,
        "estimate_bucket": 15, "confidence": "high",
    },
    "waiting-on-others": {
        "name": "Waiting on others",
        "impact": 3, "consequences": 3, "friction": 2,
        "leverage": 0, "energy_match": 0, "time_criticality": 2,
        "estimate_bucket": 15, "confidence": "high",
        "status": "waiting",
    },
}
