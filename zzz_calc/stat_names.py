"""
ZZZ Damage Calculator - Standardized Stat Definitions
=====================================================
Central catalog of every stat the marginal analyzer can perturb.

The keys are the ones stored in saved builds under
`marginal.customApplied`, so they must never be renamed.

Naming Conventions:
- Percentage stats end in Pct and are stepped in percentage points
- Flat stats (atk, penFlat, sheerForce) are stepped in raw stat units
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .core.constants import DeltaKind


class StatCategory(Enum):
    """Categories of stats for grouping in UI."""
    ATTACK = "attack"
    DAMAGE = "damage"
    CRITICAL = "critical"
    PENETRATION = "penetration"
    ENEMY = "enemy"
    ANOMALY = "anomaly"
    RUPTURE = "rupture"


@dataclass(frozen=True)
class StatDefinition:
    """Definition of a tunable stat."""
    key: str                          # Stored key (e.g., "dmgGenericPct")
    label: str                        # Display name (e.g., "Generic DMG")
    kind: str                         # "pct" or "flat"
    category: StatCategory
    description: str = ""

    @property
    def is_flat(self) -> bool:
        return self.kind == DeltaKind.FLAT.value

    def format_value(self, value: float) -> str:
        """Format a value for display."""
        if self.is_flat:
            return f"{value:,.0f}"
        return f"{value:.1f}%"


# =============================================================================
# STAT KEY CONSTANTS (use these for consistency)
# =============================================================================

ATK = "atk"

DMG_GENERIC_PCT = "dmgGenericPct"
DMG_ATTR_PCT = "dmgAttrPct"
DMG_SKILL_TYPE_PCT = "dmgSkillTypePct"

CRIT_RATE_PCT = "critRatePct"
CRIT_DMG_PCT = "critDmgPct"

PEN_RATIO_PCT = "penRatioPct"
PEN_FLAT = "penFlat"

DEF_REDUCTION_PCT = "defReductionPct"
DEF_IGNORE_PCT = "defIgnorePct"

DMG_TAKEN_PCT = "dmgTakenPct"
STUN_PCT = "stunPct"

ANOM_DMG_PCT = "anomDmgPct"
DISORDER_DMG_PCT = "disorderDmgPct"

SHEER_FORCE = "sheerForce"
SHEER_DMG_BONUS_PCT = "sheerDmgBonusPct"


# =============================================================================
# STAT DEFINITIONS REGISTRY
# =============================================================================
# Order here is the tie-break order of the marginal table.

_PCT = DeltaKind.PCT.value
_FLAT = DeltaKind.FLAT.value

STAT_LIST: List[StatDefinition] = [
    StatDefinition(ATK, "Total ATK", _FLAT, StatCategory.ATTACK,
                   "Flat attack, base of Standard and Anomaly damage"),

    StatDefinition(DMG_GENERIC_PCT, "Generic DMG", _PCT, StatCategory.DAMAGE,
                   "Additive DMG% bonus"),
    StatDefinition(DMG_ATTR_PCT, "Attribute DMG", _PCT, StatCategory.DAMAGE,
                   "Additive DMG% for the agent's attribute"),
    StatDefinition(DMG_SKILL_TYPE_PCT, "Skill DMG", _PCT, StatCategory.DAMAGE,
                   "Additive DMG% for the skill type; not applied to anomalies"),

    StatDefinition(CRIT_RATE_PCT, "Crit Rate", _PCT, StatCategory.CRITICAL,
                   "Chance to crit (capped at 100%)"),
    StatDefinition(CRIT_DMG_PCT, "Crit DMG", _PCT, StatCategory.CRITICAL,
                   "Extra damage on critical hits"),

    StatDefinition(PEN_RATIO_PCT, "PEN Ratio", _PCT, StatCategory.PENETRATION,
                   "Ignores a share of the remaining enemy DEF"),
    StatDefinition(PEN_FLAT, "PEN", _FLAT, StatCategory.PENETRATION,
                   "Flat DEF removed after PEN Ratio"),

    StatDefinition(DEF_REDUCTION_PCT, "DEF Reduction", _PCT, StatCategory.ENEMY,
                   "Enemy DEF shred"),
    StatDefinition(DEF_IGNORE_PCT, "DEF Ignore", _PCT, StatCategory.ENEMY,
                   "Enemy DEF ignore (adds to DEF Reduction)"),

    StatDefinition(DMG_TAKEN_PCT, "DMG Taken", _PCT, StatCategory.ENEMY,
                   "Enemy vulnerability"),
    StatDefinition(STUN_PCT, "Stunned Multiplier", _PCT, StatCategory.ENEMY,
                   "Damage multiplier while the enemy is stunned"),

    StatDefinition(ANOM_DMG_PCT, "Anomaly DMG", _PCT, StatCategory.ANOMALY,
                   "DMG% for anomaly procs"),
    StatDefinition(DISORDER_DMG_PCT, "Disorder DMG", _PCT, StatCategory.ANOMALY,
                   "DMG% for Disorder hits"),

    StatDefinition(SHEER_FORCE, "Sheer Force", _FLAT, StatCategory.RUPTURE,
                   "Base stat of Rupture damage"),
    StatDefinition(SHEER_DMG_BONUS_PCT, "Sheer DMG Bonus", _PCT, StatCategory.RUPTURE,
                   "Separate multiplier for Rupture damage"),
]

STAT_DEFINITIONS: Dict[str, StatDefinition] = {defn.key: defn for defn in STAT_LIST}

# Stats stepped in raw units instead of percentage points
FLAT_STATS = frozenset(defn.key for defn in STAT_LIST if defn.is_flat)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def stat_registry() -> List[StatDefinition]:
    """The fixed, ordered catalog."""
    return list(STAT_LIST)


def get_stat_definition(stat_key: str) -> Optional[StatDefinition]:
    """Get the definition for a stat key."""
    return STAT_DEFINITIONS.get(stat_key)


def is_known_stat(stat_key: str) -> bool:
    return stat_key in STAT_DEFINITIONS


def expected_delta_kind(stat_key: str) -> str:
    """Delta kind a stat accepts: flat for atk/penFlat/sheerForce, pct otherwise."""
    return _FLAT if stat_key in FLAT_STATS else _PCT


def format_stat_value(stat_key: str, value: float) -> str:
    """Format a stat value for display."""
    defn = get_stat_definition(stat_key)
    if defn:
        return defn.format_value(value)
    # Fallback
    return f"{value:.1f}"
