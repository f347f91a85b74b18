"""
ZZZ Damage Calculator - Core Damage Calculation
===============================================
Single source of truth for all damage formulas.

Three independent pipelines share the same multiplier primitives:
    Standard  - ATK based direct hit
    Anomaly   - ATK based anomaly proc (single hit or DoT) plus a Disorder hit
    Rupture   - Sheer Force based hit that ignores DEF entirely

compute_preview() picks the pipeline for the active mode and republishes it
under one normalized shape.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .constants import (
    ANOMALY_FROM_ATTRIBUTE,
    ANOMALY_LEVEL_MULT_PRECISION,
    ANOMALY_META,
    ANOMALY_PROF_SCALE,
    AUTO,
    DEFAULT_ANOMALY_TYPE,
    DISORDER_BASE_PCT,
    DISORDER_DECAY,
    DISORDER_WINDOW_SEC,
    LEVEL_FACTOR_FALLBACK_OFFSET,
    LEVEL_FACTOR_TABLE,
    MAX_LEVEL,
    MAX_LEVEL_FACTOR,
    AnomalyKind,
    DamageMode,
)
from .stats import Inputs, clamp, to_number


# =============================================================================
# RESULT DATACLASSES
# =============================================================================

@dataclass
class DamageResult:
    """Standard / Rupture hit with its multiplier breakdown."""
    non_crit: float
    crit: float
    expected: float
    base_stat: float
    skill_mult: float
    dmg_mult: float
    res_mult: float
    vuln_mult: float
    stun_mult: float
    def_mult: Optional[float] = None    # None for rupture (no DEF term)
    sheer_mult: float = 1.0

    def breakdown(self) -> str:
        """Return formatted breakdown of damage calculation."""
        lines = [
            "Damage Calculation Breakdown",
            "============================",
            f"Base Stat:          {self.base_stat:,.0f}",
            f"x Skill Mult:       {self.skill_mult:.4f}",
            f"x DMG Bonus:        {self.dmg_mult:.4f}",
        ]
        if self.sheer_mult != 1.0:
            lines.append(f"x Sheer Bonus:      {self.sheer_mult:.4f}")
        if self.def_mult is not None:
            lines.append(f"x Defense:          {self.def_mult:.4f}")
        lines += [
            f"x Resistance:       {self.res_mult:.4f}",
            f"x DMG Taken:        {self.vuln_mult:.4f}",
            f"x Stun:             {self.stun_mult:.4f}",
            "----------------------------",
            f"= Non-Crit:         {self.non_crit:,.0f}",
            f"= Crit:             {self.crit:,.0f}",
            f"= Expected:         {self.expected:,.0f}",
        ]
        return "\n".join(lines)


@dataclass
class HitDamage:
    """Non-crit, crit and crit-weighted average of one damage instance."""
    non_crit: float
    crit: float
    avg: float

    def scaled(self, factor: float) -> "HitDamage":
        return HitDamage(self.non_crit * factor, self.crit * factor, self.avg * factor)

    def to_dict(self) -> Dict[str, float]:
        return {"nonCrit": self.non_crit, "crit": self.crit, "avg": self.avg}


@dataclass
class AnomalyResult:
    """Anomaly proc + Disorder hit detail."""
    anom_type: str
    kind: str
    tick_count: int
    tick_interval_sec: float
    duration_sec: float
    per_tick: HitDamage
    per_proc: HitDamage
    disorder_prev_type: str
    disorder_time_passed_sec: float
    disorder_mult_pct: float
    disorder: HitDamage
    combined_avg: float

    @property
    def label(self) -> str:
        meta = ANOMALY_META.get(self.anom_type)
        if meta:
            return meta["label"]
        return str(self.anom_type or "").capitalize()

    @property
    def is_dot(self) -> bool:
        return self.kind == AnomalyKind.DOT.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anomType": self.anom_type,
            "kind": self.kind,
            "tickCount": self.tick_count,
            "tickIntervalSec": self.tick_interval_sec,
            "durationSec": self.duration_sec,
            "anomalyPerTick": self.per_tick.to_dict(),
            "anomalyPerProc": self.per_proc.to_dict(),
            "disorderPrevType": self.disorder_prev_type,
            "disorderTimePassedSec": self.disorder_time_passed_sec,
            "disorderMultPct": self.disorder_mult_pct,
            "disorder": self.disorder.to_dict(),
            "combinedAvg": self.combined_avg,
        }


@dataclass
class PreviewResult:
    """Mode-agnostic headline numbers."""
    mode: str
    output: float
    output_noncrit: float
    output_crit: float
    output_expected: float
    anom: Optional[AnomalyResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "output": self.output,
            "output_noncrit": self.output_noncrit,
            "output_crit": self.output_crit,
            "output_expected": self.output_expected,
            "anom": self.anom.to_dict() if self.anom else None,
        }


# =============================================================================
# LEVEL FACTOR
# =============================================================================

def level_factor(level: Any) -> int:
    """
    Level-dependent constant used in the DEF formula.

    50 at level 1, 794 at level 60 and above. Input is floored and clamped
    to >= 1; a level missing from the table falls back to level + 100.
    """
    lv = max(1, math.floor(to_number(level, 1)))
    if lv >= MAX_LEVEL:
        return MAX_LEVEL_FACTOR
    return LEVEL_FACTOR_TABLE.get(lv, lv + LEVEL_FACTOR_FALLBACK_OFFSET)


# =============================================================================
# MULTIPLIER PRIMITIVES
# =============================================================================

def pct_to_mult(pct: Any) -> float:
    """
    Convert percentage points to a multiplier.

    Example: 23.2 -> 1.232
    """
    return 1 + to_number(pct) / 100


def resistance_pct_for_attribute(inputs: Inputs) -> float:
    """All-attribute RES plus the attribute-specific override when set."""
    all_res = to_number(inputs.enemy.res_all_pct)
    specific = inputs.enemy.res_by_attr.get(inputs.agent.attribute)
    if specific is not None and math.isfinite(specific):
        return all_res + specific
    return all_res


def calculate_res_multiplier(inputs: Inputs) -> float:
    """
    Resistance multiplier.

    Formula:
        EffRes = (ResAll + ResAttr) - ResReduction - ResIgnore
        Multiplier = 1 - EffRes / 100

    Negative effective resistance amplifies damage (multiplier > 1).
    """
    eff_res = (
        resistance_pct_for_attribute(inputs)
        - to_number(inputs.enemy.res_reduction_pct)
        - to_number(inputs.enemy.res_ignore_pct)
    )
    return 1 - eff_res / 100


def calculate_vulnerability_multiplier(inputs: Inputs) -> float:
    """
    DMG Taken multiplier.

    Formula:
        Multiplier = 1 + (DmgTaken% + (stunned ? DmgTakenStunned% : 0)) / 100
    """
    total = to_number(inputs.enemy.dmg_taken_pct)
    if inputs.enemy.is_stunned:
        total += to_number(inputs.enemy.dmg_taken_stunned_pct)
    return pct_to_mult(total)


def calculate_effective_defense(
    enemy_def: float,
    def_reduction_pct: float,
    def_ignore_pct: float,
    pen_ratio_pct: float,
    pen_flat: float,
) -> float:
    """
    Enemy DEF after shred, PEN Ratio and flat PEN.

    Order is fixed:
        1. DEF Reduction + DEF Ignore, as one additive % drop (clamped 0..1)
        2. PEN Ratio (clamped 0..1)
        3. Flat PEN, floored at 0
    """
    defense = max(0.0, to_number(enemy_def))

    def_pct_down = clamp((to_number(def_reduction_pct) + to_number(def_ignore_pct)) / 100, 0, 1)
    defense *= 1 - def_pct_down

    ratio = clamp(to_number(pen_ratio_pct) / 100, 0, 1)
    defense *= 1 - ratio

    pen = max(0.0, to_number(pen_flat))
    return max(0.0, defense - pen)


def calculate_defense_multiplier(inputs: Inputs) -> float:
    """
    Defense multiplier.

    Formula:
        Multiplier = k / (k + EffDef), k = level_factor(agent level)

    Bounded in (0, 1]; strictly decreasing in enemy DEF.
    """
    k = level_factor(inputs.agent.level)
    eff_def = calculate_effective_defense(
        inputs.enemy.defense,
        inputs.enemy.def_reduction_pct,
        inputs.enemy.def_ignore_pct,
        inputs.agent.pen.ratio_pct,
        inputs.agent.pen.flat,
    )
    return k / (k + eff_def)


def calculate_stun_multiplier(inputs: Inputs) -> float:
    """Stun% / 100 while stunned, otherwise 1."""
    if inputs.enemy.is_stunned:
        return to_number(inputs.enemy.stun_pct) / 100
    return 1.0


def calculate_damage_bonus_pct(inputs: Inputs, include_skill_type: bool = True) -> float:
    """
    Total additive DMG% across buckets.

    Generic + Attribute + Other always count. Skill-type DMG only when
    requested (Standard/Rupture yes, Anomaly/Disorder no). Vs-stunned DMG
    only while the enemy is stunned.
    """
    b = inputs.agent.dmg_buckets
    total = to_number(b.generic) + to_number(b.attribute) + to_number(b.other)
    if include_skill_type:
        total += to_number(b.skill_type)
    if inputs.enemy.is_stunned:
        total += to_number(b.vs_stunned)
    return total


# =============================================================================
# CRIT
# =============================================================================

def calculate_crit_hit(non_crit: float, crit_rate: float, crit_dmg: float) -> HitDamage:
    """
    Crit damage and crit-rate weighted average of a hit.

    Formula:
        Crit = NonCrit * (1 + CritDmg)
        Avg  = NonCrit * (1 - CR) + Crit * CR      (CR clamped to 0..1)
    """
    crit = non_crit * (1 + to_number(crit_dmg))
    cr = clamp(crit_rate, 0, 1)
    return HitDamage(non_crit=non_crit, crit=crit, avg=non_crit * (1 - cr) + crit * cr)


# =============================================================================
# STANDARD
# =============================================================================

def calculate_standard(inputs: Inputs) -> DamageResult:
    """
    Standard (direct hit) damage.

    Master Formula:
        Damage = ATK * Skill% * DMG_Mult * Def_Mult * Res_Mult * Vuln_Mult * Stun_Mult
    """
    atk = to_number(inputs.agent.atk)
    skill = to_number(inputs.agent.skill_mult_pct) / 100

    dmg_mult = pct_to_mult(calculate_damage_bonus_pct(inputs, include_skill_type=True))
    def_mult = calculate_defense_multiplier(inputs)
    res_mult = calculate_res_multiplier(inputs)
    vuln_mult = calculate_vulnerability_multiplier(inputs)
    stun_mult = calculate_stun_multiplier(inputs)

    base = atk * skill * dmg_mult * def_mult * res_mult * vuln_mult * stun_mult
    hit = calculate_crit_hit(base, inputs.agent.crit.rate, inputs.agent.crit.dmg)

    return DamageResult(
        non_crit=hit.non_crit,
        crit=hit.crit,
        expected=hit.avg,
        base_stat=atk,
        skill_mult=skill,
        dmg_mult=dmg_mult,
        res_mult=res_mult,
        vuln_mult=vuln_mult,
        stun_mult=stun_mult,
        def_mult=def_mult,
    )


# =============================================================================
# ANOMALY
# =============================================================================

def anomaly_level_mult(level: Any) -> float:
    """
    Anomaly level multiplier, truncated (not rounded) to 4 decimals.

    Formula:
        floor((1 + (clamp(level, 1, 60) - 1) / 59) * 10000) / 10000
    """
    lv = clamp(math.floor(to_number(level, 1)), 1, MAX_LEVEL)
    raw = 1 + (lv - 1) / (MAX_LEVEL - 1)
    return math.floor(raw * ANOMALY_LEVEL_MULT_PRECISION) / ANOMALY_LEVEL_MULT_PRECISION


def anomaly_prof_mult(prof: Any) -> float:
    """Anomaly Proficiency multiplier: 1 point = 1%."""
    return max(0.0, to_number(prof) * ANOMALY_PROF_SCALE)


def infer_anomaly_type(inputs: Inputs) -> str:
    """Explicit anomaly type, or the attribute's default when on auto."""
    t = inputs.agent.anomaly.type
    if t and t != AUTO:
        return t
    return ANOMALY_FROM_ATTRIBUTE.get(inputs.agent.attribute, DEFAULT_ANOMALY_TYPE)


def infer_disorder_prev_type(inputs: Inputs, current_type: str) -> str:
    """Previous anomaly for Disorder; auto means the current anomaly."""
    v = inputs.agent.anomaly.disorder_prev_type
    return v if (v and v != AUTO) else current_type


def disorder_mult_pct(prev_type: str, time_passed_sec: Any) -> float:
    """
    Disorder multiplier (% of ATK) for the previous anomaly.

    Formula:
        450% + floor((10 - t) * steps_per_sec) * pct_per_step

    burn 2/s x 50%, shock 1/s x 125%, corruption 2/s x 62.5%,
    shatter/assault 1/s x 7.5%, anything else flat 450%.
    """
    t = clamp(time_passed_sec, 0, DISORDER_WINDOW_SEC)
    decay = DISORDER_DECAY.get(prev_type)
    if decay is None:
        return DISORDER_BASE_PCT
    steps_per_sec, pct_per_step = decay
    return DISORDER_BASE_PCT + math.floor((DISORDER_WINDOW_SEC - t) * steps_per_sec) * pct_per_step


def _anomaly_crit_stats(inputs: Inputs) -> Tuple[float, float]:
    """Crit rate/dmg for anomaly instances: overrides win over agent stats."""
    an = inputs.agent.anomaly
    if an.crit_rate_pct_override is None:
        crit_rate = inputs.agent.crit.rate
    else:
        crit_rate = clamp(an.crit_rate_pct_override / 100, 0, 1)
    if an.crit_dmg_pct_override is None:
        crit_dmg = inputs.agent.crit.dmg
    else:
        crit_dmg = max(0.0, an.crit_dmg_pct_override / 100)
    return clamp(crit_rate, 0, 1), to_number(crit_dmg)


def _anomaly_hit(non_crit: float, crit_enabled: bool, crit_rate: float, crit_dmg: float) -> HitDamage:
    hit = calculate_crit_hit(non_crit, crit_rate, crit_dmg)
    if not crit_enabled:
        # Anomalies cannot crit unless the special-case toggle is on
        return HitDamage(non_crit=hit.non_crit, crit=hit.crit, avg=hit.non_crit)
    return hit


def calculate_anomaly(inputs: Inputs) -> AnomalyResult:
    """
    Anomaly proc and Disorder damage.

    Per-instance formula:
        ATK * Anom% * Prof_Mult * Level_Mult * (1 + (DMG% excl. skill + AnomDMG%) / 100)
            * Def_Mult * Res_Mult * Vuln_Mult * Stun_Mult

    Per-proc = per-instance * ticks. Disorder uses the same chain with its own
    Disorder% multiplier and DisorderDMG% bucket.
    """
    an = inputs.agent.anomaly
    anom_type = infer_anomaly_type(inputs)
    meta = ANOMALY_META.get(anom_type, ANOMALY_META[DEFAULT_ANOMALY_TYPE])

    tick_source = meta["instances"] if an.tick_count_override is None else an.tick_count_override
    ticks = max(1, math.floor(to_number(tick_source, meta["instances"])))
    interval_source = meta["interval_sec"] if an.tick_interval_sec_override is None else an.tick_interval_sec_override
    interval_sec = max(0.0, to_number(interval_source, meta["interval_sec"]))
    duration_sec = ticks * interval_sec if meta["kind"] == AnomalyKind.DOT else 0.0

    atk = to_number(inputs.agent.atk)
    prof_mult = anomaly_prof_mult(an.prof)
    lv_mult = anomaly_level_mult(inputs.agent.level)

    # Skill-type DMG% does not apply to anomalies
    dmg_pct_base = calculate_damage_bonus_pct(inputs, include_skill_type=False)
    anomaly_bonus_mult = pct_to_mult(dmg_pct_base + to_number(an.dmg_pct))
    disorder_bonus_mult = pct_to_mult(dmg_pct_base + to_number(an.disorder_pct))

    shared = (
        prof_mult
        * lv_mult
        * calculate_defense_multiplier(inputs)
        * calculate_res_multiplier(inputs)
        * calculate_vulnerability_multiplier(inputs)
        * calculate_stun_multiplier(inputs)
    )

    crit_enabled = bool(an.allow_crit)
    crit_rate, crit_dmg = _anomaly_crit_stats(inputs)

    per_inst_non_crit = atk * (meta["per_instance_mult_pct"] / 100) * anomaly_bonus_mult * shared
    per_tick = _anomaly_hit(per_inst_non_crit, crit_enabled, crit_rate, crit_dmg)
    per_proc = per_tick.scaled(ticks)

    prev_type = infer_disorder_prev_type(inputs, anom_type)
    t = clamp(an.disorder_time_passed_sec, 0, DISORDER_WINDOW_SEC)
    dis_pct = disorder_mult_pct(prev_type, t)

    disorder_non_crit = atk * (dis_pct / 100) * disorder_bonus_mult * shared
    disorder = _anomaly_hit(disorder_non_crit, crit_enabled, crit_rate, crit_dmg)

    return AnomalyResult(
        anom_type=anom_type,
        kind=meta["kind"].value,
        tick_count=ticks,
        tick_interval_sec=interval_sec,
        duration_sec=duration_sec,
        per_tick=per_tick,
        per_proc=per_proc,
        disorder_prev_type=prev_type,
        disorder_time_passed_sec=t,
        disorder_mult_pct=dis_pct,
        disorder=disorder,
        combined_avg=per_proc.avg + disorder.avg,
    )


# =============================================================================
# RUPTURE
# =============================================================================

def calculate_rupture(inputs: Inputs) -> DamageResult:
    """
    Rupture (Sheer) damage. DEF plays no part at all.

    Formula:
        Damage = SheerForce * Skill% * DMG_Mult * Sheer_Mult * Res_Mult * Vuln_Mult * Stun_Mult
    """
    sheer_force = max(0.0, to_number(inputs.agent.rupture.sheer_force))
    skill = to_number(inputs.agent.skill_mult_pct) / 100

    dmg_mult = pct_to_mult(calculate_damage_bonus_pct(inputs, include_skill_type=True))
    sheer_mult = pct_to_mult(inputs.agent.rupture.sheer_dmg_bonus_pct)
    res_mult = calculate_res_multiplier(inputs)
    vuln_mult = calculate_vulnerability_multiplier(inputs)
    stun_mult = calculate_stun_multiplier(inputs)

    base = sheer_force * skill * dmg_mult * sheer_mult * res_mult * vuln_mult * stun_mult
    hit = calculate_crit_hit(base, inputs.agent.crit.rate, inputs.agent.crit.dmg)

    return DamageResult(
        non_crit=hit.non_crit,
        crit=hit.crit,
        expected=hit.avg,
        base_stat=sheer_force,
        skill_mult=skill,
        dmg_mult=dmg_mult,
        res_mult=res_mult,
        vuln_mult=vuln_mult,
        stun_mult=stun_mult,
        sheer_mult=sheer_mult,
    )


# =============================================================================
# PREVIEW
# =============================================================================

def compute_preview(inputs: Inputs) -> PreviewResult:
    """
    Headline numbers for the active mode.

    anomaly: the Standard hit plus the full anomaly proc and Disorder hit make
    up `output`; non-crit/crit stay the Standard hit's. Unknown modes fall
    back to Standard.
    """
    mode = inputs.mode

    if mode == DamageMode.RUPTURE.value:
        rup = calculate_rupture(inputs)
        return PreviewResult(mode, rup.expected, rup.non_crit, rup.crit, rup.expected)

    std = calculate_standard(inputs)

    if mode == DamageMode.ANOMALY.value:
        anom = calculate_anomaly(inputs)
        combined = std.expected + anom.combined_avg
        return PreviewResult(mode, combined, std.non_crit, std.crit, combined, anom=anom)

    return PreviewResult(mode, std.expected, std.non_crit, std.crit, std.expected)
