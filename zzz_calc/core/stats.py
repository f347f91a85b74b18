"""
ZZZ Damage Calculator - Input Record
====================================
Dataclasses describing one build (agent) against one target (enemy), plus the
sanitising parser that turns a raw document (saved JSON, UI widgets) into them.

Percentage fields are stored as plain percentage points (12.5 means +12.5%).
They are only turned into multipliers inside core/damage.py.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .constants import (
    ATTRIBUTES,
    AUTO,
    DEFAULT_AGENT_LEVEL,
    DEFAULT_CRIT_DMG,
    DEFAULT_CRIT_RATE,
    DEFAULT_ENEMY_LEVEL,
    DEFAULT_SKILL_MULT_PCT,
    DEFAULT_STUN_PCT,
    MAX_INPUT_MAGNITUDE,
    DamageMode,
    DeltaKind,
)


# =============================================================================
# NUMERIC HELPERS
# =============================================================================

def _cap(n: float) -> float:
    return max(-MAX_INPUT_MAGNITUDE, min(MAX_INPUT_MAGNITUDE, n))


def to_number(value: Any, fallback: float = 0.0) -> float:
    """Coerce to a finite float within +-MAX_INPUT_MAGNITUDE, or return `fallback`."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str) and not value.strip():
        return fallback
    try:
        n = float(value)
    except (TypeError, ValueError):
        return fallback
    return _cap(n) if math.isfinite(n) else fallback


def to_optional_number(value: Any) -> Optional[float]:
    """Like to_number(), but None when missing/blank/non-finite."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return _cap(n) if math.isfinite(n) else None


def clamp(value: Any, low: float, high: float) -> float:
    """Clamp to [low, high]. Non-finite input returns `low`."""
    n = to_number(value, fallback=math.nan)
    if math.isnan(n):
        return low
    return max(low, min(high, n))


def _section(data: Any, key: str) -> Dict[str, Any]:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, dict) else {}


def _text(value: Any, fallback: str) -> str:
    if value is None:
        return fallback
    return str(value)


# =============================================================================
# DELTA
# =============================================================================

@dataclass(frozen=True)
class AppliedDelta:
    """A marginal-analysis step: `value` in percentage points or flat units."""
    kind: str
    value: float

    @property
    def is_flat(self) -> bool:
        return self.kind == DeltaKind.FLAT.value

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AppliedDelta"]:
        """Parse `{kind, value}`; None for a bad kind or a non-finite value."""
        if not isinstance(data, dict):
            return None
        kind = data.get("kind")
        if kind not in (DeltaKind.PCT.value, DeltaKind.FLAT.value):
            return None
        value = to_optional_number(data.get("value"))
        if value is None:
            return None
        return cls(kind=kind, value=value)


# =============================================================================
# AGENT
# =============================================================================

@dataclass
class CritStats:
    """Crit rate and crit damage, both as fractions (0.5 = 50%)."""
    rate: float = DEFAULT_CRIT_RATE
    dmg: float = DEFAULT_CRIT_DMG


@dataclass
class DamageBuckets:
    """Additive DMG% buckets. All sum into one (1 + total/100) multiplier."""
    generic: float = 0
    attribute: float = 0
    skill_type: float = 0   # Excluded from anomaly/Disorder
    other: float = 0
    vs_stunned: float = 0   # Only while the enemy is stunned


@dataclass
class Penetration:
    ratio_pct: float = 0
    flat: float = 0


@dataclass
class AnomalyConfig:
    """Anomaly and Disorder settings."""
    type: str = AUTO
    prof: float = 0
    dmg_pct: float = 0
    disorder_pct: float = 0
    tick_count_override: Optional[float] = None
    tick_interval_sec_override: Optional[float] = None
    allow_crit: bool = False
    crit_rate_pct_override: Optional[float] = None
    crit_dmg_pct_override: Optional[float] = None
    disorder_prev_type: str = AUTO
    disorder_time_passed_sec: float = 0


@dataclass
class RuptureConfig:
    sheer_force: float = 0
    sheer_dmg_bonus_pct: float = 0


@dataclass
class AgentStats:
    """Everything about the attacker."""
    level: int = DEFAULT_AGENT_LEVEL
    attribute: str = "physical"
    atk: float = 0
    crit: CritStats = field(default_factory=CritStats)
    dmg_buckets: DamageBuckets = field(default_factory=DamageBuckets)
    pen: Penetration = field(default_factory=Penetration)
    skill_mult_pct: float = DEFAULT_SKILL_MULT_PCT
    anomaly: AnomalyConfig = field(default_factory=AnomalyConfig)
    rupture: RuptureConfig = field(default_factory=RuptureConfig)


# =============================================================================
# ENEMY
# =============================================================================

def _empty_res_by_attr() -> Dict[str, Optional[float]]:
    return {attr: None for attr in ATTRIBUTES}


@dataclass
class EnemyStats:
    """
    Everything about the target.

    `res_by_attr` entries are None when the enemy has no attribute-specific
    resistance; a number there ADDS to `res_all_pct`.
    """
    level: int = DEFAULT_ENEMY_LEVEL
    defense: float = 0
    res_all_pct: float = 0
    res_by_attr: Dict[str, Optional[float]] = field(default_factory=_empty_res_by_attr)
    res_reduction_pct: float = 0
    res_ignore_pct: float = 0
    def_reduction_pct: float = 0
    def_ignore_pct: float = 0
    dmg_taken_pct: float = 0
    dmg_taken_stunned_pct: float = 0
    is_stunned: bool = False
    stun_pct: float = DEFAULT_STUN_PCT


# =============================================================================
# INPUT RECORD
# =============================================================================

@dataclass
class Inputs:
    """One build + one opponent. The unit every calculator works on."""
    json_name: str = ""
    mode: str = DamageMode.STANDARD.value
    agent: AgentStats = field(default_factory=AgentStats)
    enemy: EnemyStats = field(default_factory=EnemyStats)

    @classmethod
    def defaults(cls) -> "Inputs":
        """Fresh record used for reset."""
        return cls()

    @classmethod
    def from_dict(cls, data: Any) -> "Inputs":
        """
        Build an Inputs from a persisted/exported document.

        Never raises: missing or non-finite numbers fall back to their
        defaults, fractions and non-negative stats are clamped, unknown
        attributes fall back to physical. The `marginal` section is not
        part of the record; MarginalAppliedStore.load_from_data() reads it.
        """
        if not isinstance(data, dict):
            data = {}

        agent_data = _section(data, "agent")
        crit_data = _section(agent_data, "crit")
        bucket_data = _section(agent_data, "dmgBuckets")
        pen_data = _section(agent_data, "pen")
        anom_data = _section(agent_data, "anomaly")
        rup_data = _section(agent_data, "rupture")
        enemy_data = _section(data, "enemy")
        res_data = _section(enemy_data, "resByAttr")

        attribute = _text(agent_data.get("attribute"), "physical")
        if attribute not in ATTRIBUTES:
            attribute = "physical"

        agent = AgentStats(
            level=max(1, math.floor(to_number(agent_data.get("level"), DEFAULT_AGENT_LEVEL))),
            attribute=attribute,
            atk=max(0.0, to_number(agent_data.get("atk"), 0)),
            crit=CritStats(
                rate=clamp(to_number(crit_data.get("rate"), DEFAULT_CRIT_RATE), 0, 1),
                dmg=max(0.0, to_number(crit_data.get("dmg"), DEFAULT_CRIT_DMG)),
            ),
            dmg_buckets=DamageBuckets(
                generic=to_number(bucket_data.get("generic")),
                attribute=to_number(bucket_data.get("attribute")),
                skill_type=to_number(bucket_data.get("skillType")),
                other=to_number(bucket_data.get("other")),
                vs_stunned=to_number(bucket_data.get("vsStunned")),
            ),
            pen=Penetration(
                ratio_pct=to_number(pen_data.get("ratioPct")),
                flat=max(0.0, to_number(pen_data.get("flat"))),
            ),
            skill_mult_pct=max(0.0, to_number(agent_data.get("skillMultPct"), DEFAULT_SKILL_MULT_PCT)),
            anomaly=AnomalyConfig(
                type=_text(anom_data.get("type"), AUTO) or AUTO,
                prof=max(0.0, to_number(anom_data.get("prof"))),
                dmg_pct=to_number(anom_data.get("dmgPct")),
                disorder_pct=to_number(anom_data.get("disorderPct")),
                tick_count_override=to_optional_number(anom_data.get("tickCountOverride")),
                tick_interval_sec_override=to_optional_number(anom_data.get("tickIntervalSecOverride")),
                allow_crit=_parse_bool(anom_data.get("allowCrit", False)),
                crit_rate_pct_override=to_optional_number(anom_data.get("critRatePctOverride")),
                crit_dmg_pct_override=to_optional_number(anom_data.get("critDmgPctOverride")),
                disorder_prev_type=_text(anom_data.get("disorderPrevType"), AUTO) or AUTO,
                disorder_time_passed_sec=max(0.0, to_number(anom_data.get("disorderTimePassedSec"))),
            ),
            rupture=RuptureConfig(
                sheer_force=max(0.0, to_number(rup_data.get("sheerForce"))),
                sheer_dmg_bonus_pct=to_number(rup_data.get("sheerDmgBonusPct")),
            ),
        )

        enemy = EnemyStats(
            level=max(1, math.floor(to_number(enemy_data.get("level"), DEFAULT_ENEMY_LEVEL))),
            defense=max(0.0, to_number(enemy_data.get("def"))),
            res_all_pct=to_number(enemy_data.get("resAllPct")),
            res_by_attr={attr: to_optional_number(res_data.get(attr)) for attr in ATTRIBUTES},
            res_reduction_pct=to_number(enemy_data.get("resReductionPct")),
            res_ignore_pct=to_number(enemy_data.get("resIgnorePct")),
            def_reduction_pct=to_number(enemy_data.get("defReductionPct")),
            def_ignore_pct=to_number(enemy_data.get("defIgnorePct")),
            dmg_taken_pct=to_number(enemy_data.get("dmgTakenPct")),
            dmg_taken_stunned_pct=to_number(enemy_data.get("dmgTakenStunnedPct")),
            is_stunned=_parse_bool(enemy_data.get("isStunned")),
            stun_pct=to_number(enemy_data.get("stunPct"), DEFAULT_STUN_PCT),
        )

        return cls(
            json_name=_text(data.get("jsonName"), "").strip(),
            mode=_text(data.get("mode"), DamageMode.STANDARD.value),
            agent=agent,
            enemy=enemy,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Build part of the persisted document (camelCase, mirrors the record)."""
        a = self.agent
        e = self.enemy
        return {
            "jsonName": self.json_name,
            "mode": self.mode,
            "agent": {
                "level": a.level,
                "attribute": a.attribute,
                "atk": a.atk,
                "crit": {"rate": a.crit.rate, "dmg": a.crit.dmg},
                "dmgBuckets": {
                    "generic": a.dmg_buckets.generic,
                    "attribute": a.dmg_buckets.attribute,
                    "skillType": a.dmg_buckets.skill_type,
                    "other": a.dmg_buckets.other,
                    "vsStunned": a.dmg_buckets.vs_stunned,
                },
                "pen": {"ratioPct": a.pen.ratio_pct, "flat": a.pen.flat},
                "skillMultPct": a.skill_mult_pct,
                "anomaly": {
                    "type": a.anomaly.type,
                    "prof": a.anomaly.prof,
                    "dmgPct": a.anomaly.dmg_pct,
                    "disorderPct": a.anomaly.disorder_pct,
                    "tickCountOverride": a.anomaly.tick_count_override,
                    "tickIntervalSecOverride": a.anomaly.tick_interval_sec_override,
                    "allowCrit": a.anomaly.allow_crit,
                    "critRatePctOverride": a.anomaly.crit_rate_pct_override,
                    "critDmgPctOverride": a.anomaly.crit_dmg_pct_override,
                    "disorderPrevType": a.anomaly.disorder_prev_type,
                    "disorderTimePassedSec": a.anomaly.disorder_time_passed_sec,
                },
                "rupture": {
                    "sheerForce": a.rupture.sheer_force,
                    "sheerDmgBonusPct": a.rupture.sheer_dmg_bonus_pct,
                },
            },
            "enemy": {
                "level": e.level,
                "def": e.defense,
                "resAllPct": e.res_all_pct,
                "resByAttr": dict(e.res_by_attr),
                "resReductionPct": e.res_reduction_pct,
                "resIgnorePct": e.res_ignore_pct,
                "defReductionPct": e.def_reduction_pct,
                "defIgnorePct": e.def_ignore_pct,
                "dmgTakenPct": e.dmg_taken_pct,
                "dmgTakenStunnedPct": e.dmg_taken_stunned_pct,
                "isStunned": e.is_stunned,
                "stunPct": e.stun_pct,
            },
        }


def _parse_bool(value: Any) -> bool:
    """Accept real booleans and the "true"/"false" strings a select box yields."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)
