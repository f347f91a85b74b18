"""
ZZZ Damage Calculator - Core Constants
======================================
Single source of truth for all game constants, enums, and reference data.

All other modules should read their tables from here rather than
re-declaring them.
"""

from enum import Enum
from typing import Dict, List, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class DamageMode(Enum):
    """Which damage pipeline feeds the headline output."""
    STANDARD = "standard"
    ANOMALY = "anomaly"
    RUPTURE = "rupture"


class Attribute(Enum):
    """Agent damage attribute. Also keys the enemy's per-attribute RES map."""
    PHYSICAL = "physical"
    FIRE = "fire"
    ICE = "ice"
    ELECTRIC = "electric"
    ETHER = "ether"


class AnomalyKind(Enum):
    """How an anomaly deals its damage."""
    SINGLE = "single"   # One instance on proc
    DOT = "dot"         # Ticks every interval for the duration


class DeltaKind(Enum):
    """Unit of a marginal delta."""
    PCT = "pct"     # Percentage points
    FLAT = "flat"   # Raw stat value


MODES: Tuple[str, ...] = tuple(m.value for m in DamageMode)
ATTRIBUTES: Tuple[str, ...] = tuple(a.value for a in Attribute)

# Sentinel used by the anomaly type / Disorder previous-type selectors
AUTO = "auto"


# =============================================================================
# LEVEL FACTOR (DEFENSE SCALING)
# =============================================================================
# Formula: def_mult = k / (k + effective_def), k = LEVEL_FACTOR_TABLE[agent level]

LEVEL_FACTOR_TABLE: Dict[int, int] = {
    1: 50, 2: 54, 3: 58, 4: 62, 5: 66, 6: 71, 7: 76, 8: 82, 9: 88, 10: 94,
    11: 100, 12: 107, 13: 114, 14: 121, 15: 129, 16: 137, 17: 145, 18: 153, 19: 162, 20: 172,
    21: 181, 22: 191, 23: 201, 24: 211, 25: 222, 26: 233, 27: 245, 28: 256, 29: 268, 30: 281,
    31: 293, 32: 306, 33: 319, 34: 333, 35: 347, 36: 361, 37: 375, 38: 390, 39: 405, 40: 421,
    41: 436, 42: 452, 43: 469, 44: 485, 45: 502, 46: 519, 47: 537, 48: 555, 49: 573, 50: 592,
    51: 610, 52: 629, 53: 649, 54: 669, 55: 689, 56: 709, 57: 730, 58: 751, 59: 772, 60: 794,
}

MAX_LEVEL = 60
MAX_LEVEL_FACTOR = LEVEL_FACTOR_TABLE[MAX_LEVEL]

# Fallback for a level missing from the table: level + offset
LEVEL_FACTOR_FALLBACK_OFFSET = 100


# =============================================================================
# ANOMALY METADATA
# =============================================================================

ANOMALY_META: Dict[str, Dict] = {
    "assault": {
        "label": "Assault",
        "kind": AnomalyKind.SINGLE,
        "instances": 1,
        "interval_sec": 0.0,
        "per_instance_mult_pct": 713.0,
    },
    "shatter": {
        "label": "Shatter",
        "kind": AnomalyKind.SINGLE,
        "instances": 1,
        "interval_sec": 0.0,
        "per_instance_mult_pct": 500.0,
    },
    "burn": {
        "label": "Burn",
        "kind": AnomalyKind.DOT,
        "instances": 20,
        "interval_sec": 0.5,
        "per_instance_mult_pct": 50.0,
    },
    "shock": {
        "label": "Shock",
        "kind": AnomalyKind.DOT,
        "instances": 10,
        "interval_sec": 1.0,
        "per_instance_mult_pct": 125.0,
    },
    "corruption": {
        "label": "Corruption",
        "kind": AnomalyKind.DOT,
        "instances": 20,
        "interval_sec": 0.5,
        "per_instance_mult_pct": 62.5,
    },
}

DEFAULT_ANOMALY_TYPE = "assault"
ANOMALY_TYPES: List[str] = list(ANOMALY_META.keys())

# Anomaly applied by each attribute when the type is left on "auto"
ANOMALY_FROM_ATTRIBUTE: Dict[str, str] = {
    "physical": "assault",
    "fire": "burn",
    "electric": "shock",
    "ice": "shatter",
    "ether": "corruption",
}

# Anomaly proficiency: 1 point = 1% of the anomaly multiplier
ANOMALY_PROF_SCALE = 0.01

# Anomaly level multiplier is truncated to this many decimal places
ANOMALY_LEVEL_MULT_PRECISION = 10_000


# =============================================================================
# DISORDER
# =============================================================================
# Disorder% = DISORDER_BASE_PCT + floor(remaining * steps_per_sec) * pct_per_step
# where remaining = DISORDER_WINDOW_SEC - clamp(time_passed, 0, DISORDER_WINDOW_SEC)

DISORDER_BASE_PCT = 450.0
DISORDER_WINDOW_SEC = 10.0

# previous anomaly -> (steps per second, pct per step)
DISORDER_DECAY: Dict[str, Tuple[int, float]] = {
    "burn": (2, 50.0),
    "shock": (1, 125.0),
    "corruption": (2, 62.5),
    "shatter": (1, 7.5),
    "assault": (1, 7.5),
}


# =============================================================================
# INPUT DEFAULTS
# =============================================================================

DEFAULT_AGENT_LEVEL = 60
DEFAULT_ENEMY_LEVEL = 70
DEFAULT_CRIT_RATE = 0.05    # Fraction
DEFAULT_CRIT_DMG = 0.50     # Fraction
DEFAULT_SKILL_MULT_PCT = 100.0
DEFAULT_STUN_PCT = 150.0

# Parsed numbers are capped to this magnitude so products of stats stay finite
MAX_INPUT_MAGNITUDE = 1e12


# =============================================================================
# MARGINAL ANALYSIS
# =============================================================================

# Step applied to each stat when the user has not overridden it.
# "pct" is in percentage points, the rest are flat stat values.
DEFAULT_DELTA: Dict[str, float] = {
    "pct": 1.0,
    "atk": 100.0,
    "penFlat": 10.0,
    "sheerForce": 100.0,
}

# Stats still in play when rupture (which ignores DEF) is active
RUPTURE_ALLOWED_STATS = frozenset({
    "dmgGenericPct", "dmgAttrPct", "dmgSkillTypePct",
    "critRatePct", "critDmgPct",
    "dmgTakenPct", "stunPct",
    "sheerForce", "sheerDmgBonusPct",
})

# Stats that do not feed anomaly/Disorder math
ANOMALY_HIDDEN_STATS = frozenset({"dmgSkillTypePct", "critRatePct", "critDmgPct"})

# Stats that only matter in anomaly mode
ANOMALY_ONLY_STATS = frozenset({"anomDmgPct", "disorderDmgPct"})

# Stats that only matter in rupture mode
RUPTURE_ONLY_STATS = frozenset({"sheerForce", "sheerDmgBonusPct"})
