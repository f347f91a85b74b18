# marginal.py - Marginal Stat Value Analyzer
# Ranks which single stat step gives the biggest damage gain for the active mode.
# Every step is evaluated on a deep copy so the caller's build is never touched.

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .core.constants import (
    ANOMALY_HIDDEN_STATS,
    ANOMALY_ONLY_STATS,
    DEFAULT_DELTA,
    RUPTURE_ALLOWED_STATS,
    RUPTURE_ONLY_STATS,
    DamageMode,
    DeltaKind,
)
from .core.damage import PreviewResult, compute_preview
from .core.stats import AppliedDelta, Inputs, clamp, to_optional_number
from .stat_names import (
    ANOM_DMG_PCT,
    ATK,
    CRIT_DMG_PCT,
    CRIT_RATE_PCT,
    DEF_IGNORE_PCT,
    DEF_REDUCTION_PCT,
    DISORDER_DMG_PCT,
    DMG_ATTR_PCT,
    DMG_GENERIC_PCT,
    DMG_SKILL_TYPE_PCT,
    DMG_TAKEN_PCT,
    PEN_FLAT,
    PEN_RATIO_PCT,
    SHEER_DMG_BONUS_PCT,
    SHEER_FORCE,
    STUN_PCT,
    StatDefinition,
    expected_delta_kind,
    is_known_stat,
    stat_registry,
)

logger = logging.getLogger(__name__)

_VALID_KINDS = (DeltaKind.PCT.value, DeltaKind.FLAT.value)


# =============================================================================
# OVERRIDE STORE
# =============================================================================

class MarginalAppliedStore:
    """
    Per-stat delta overrides the user typed into the marginal table.

    Owned by the caller (Streamlit session state, or one CLI run). Only
    registered stat keys are ever stored.
    """

    def __init__(self):
        self._store: Dict[str, AppliedDelta] = {}

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def get(self, key: str) -> Optional[AppliedDelta]:
        return self._store.get(key)

    def set(self, key: str, kind: str, value: Any) -> None:
        """Store an override. Unknown keys are ignored; a non-finite value deletes."""
        if not is_known_stat(key):
            return
        n = to_optional_number(value)
        if n is None:
            self._store.pop(key, None)
            return
        self._store[key] = AppliedDelta(kind=kind, value=n)

    def clear(self) -> None:
        self._store.clear()

    def clone_for_persistence(self) -> Dict[str, Dict[str, Any]]:
        """Serializable copy: known keys, valid kinds, finite values only."""
        out = {}
        for key, delta in self._store.items():
            if not is_known_stat(key) or delta.kind not in _VALID_KINDS:
                continue
            if not math.isfinite(delta.value):
                continue
            out[key] = delta.to_dict()
        return out

    def load_from_data(self, data: Any) -> None:
        """
        Replace the contents from a saved document's `marginal.customApplied`.

        Unknown keys, bad kinds and non-finite values are dropped silently.
        """
        self.clear()
        marginal = data.get("marginal") if isinstance(data, dict) else None
        src = marginal.get("customApplied") if isinstance(marginal, dict) else None
        if not isinstance(src, dict):
            return
        for key, raw in src.items():
            delta = AppliedDelta.from_dict(raw)
            if delta is None or not is_known_stat(key):
                continue
            self._store[key] = delta


# =============================================================================
# RESULT DATACLASSES
# =============================================================================

@dataclass
class MarginalRow:
    """One perturbed stat."""
    key: str
    label: str
    applied: AppliedDelta
    out2: float             # Output after the step
    gain: float             # out2 - base output
    pct_gain: float         # gain as % of base output
    orig_val: float         # Current value, in display units
    total_val: float        # orig_val + step
    display_kind: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "applied": self.applied.to_dict(),
            "out2": self.out2,
            "gain": self.gain,
            "pctGain": self.pct_gain,
            "origVal": self.orig_val,
            "totalVal": self.total_val,
            "displayKind": self.display_kind,
        }


@dataclass
class MarginalResult:
    """Baseline preview plus rows sorted by % gain (highest first)."""
    base: PreviewResult
    rows: List[MarginalRow] = field(default_factory=list)

    @property
    def best(self) -> Optional[MarginalRow]:
        return self.rows[0] if self.rows else None


# =============================================================================
# DELTAS
# =============================================================================

def default_applied(stat_key: str) -> AppliedDelta:
    """Default step for a stat (flat stats have their own sizes)."""
    if stat_key in DEFAULT_DELTA:
        return AppliedDelta(kind=DeltaKind.FLAT.value, value=DEFAULT_DELTA[stat_key])
    return AppliedDelta(kind=DeltaKind.PCT.value, value=DEFAULT_DELTA[DeltaKind.PCT.value])


def resolve_delta(stat_key: str, override: Optional[AppliedDelta]) -> AppliedDelta:
    """The override when finite and of the kind the stat expects, else the default."""
    if override is not None and math.isfinite(override.value):
        if override.kind == expected_delta_kind(stat_key):
            return override
    return default_applied(stat_key)


# =============================================================================
# STAT ACCESSORS
# =============================================================================
# Each stat key maps to (reader, writer) on an Inputs record. Values are in the
# record's own units: crit rate/dmg are fractions, everything else as stored.

def _attr(path: str):
    parts = path.split(".")

    def read(i: Inputs) -> float:
        obj = i
        for p in parts:
            obj = getattr(obj, p)
        return obj

    def write(i: Inputs, value: float) -> None:
        obj = i
        for p in parts[:-1]:
            obj = getattr(obj, p)
        setattr(obj, parts[-1], value)

    return read, write


_STAT_FIELDS: Dict[str, tuple] = {
    ATK: _attr("agent.atk"),
    DMG_GENERIC_PCT: _attr("agent.dmg_buckets.generic"),
    DMG_ATTR_PCT: _attr("agent.dmg_buckets.attribute"),
    DMG_SKILL_TYPE_PCT: _attr("agent.dmg_buckets.skill_type"),
    CRIT_RATE_PCT: _attr("agent.crit.rate"),
    CRIT_DMG_PCT: _attr("agent.crit.dmg"),
    PEN_RATIO_PCT: _attr("agent.pen.ratio_pct"),
    PEN_FLAT: _attr("agent.pen.flat"),
    DEF_REDUCTION_PCT: _attr("enemy.def_reduction_pct"),
    DEF_IGNORE_PCT: _attr("enemy.def_ignore_pct"),
    DMG_TAKEN_PCT: _attr("enemy.dmg_taken_pct"),
    STUN_PCT: _attr("enemy.stun_pct"),
    ANOM_DMG_PCT: _attr("agent.anomaly.dmg_pct"),
    DISORDER_DMG_PCT: _attr("agent.anomaly.disorder_pct"),
    SHEER_FORCE: _attr("agent.rupture.sheer_force"),
    SHEER_DMG_BONUS_PCT: _attr("agent.rupture.sheer_dmg_bonus_pct"),
}


def stat_display_value(inputs: Inputs, stat_key: str) -> float:
    """
    Current value of a stat in display units.

    Crit rate/dmg are stored as fractions and shown x100.
    """
    read, _ = _STAT_FIELDS[stat_key]
    value = read(inputs)
    if stat_key in (CRIT_RATE_PCT, CRIT_DMG_PCT):
        return value * 100
    return value


def apply_delta(inputs: Inputs, stat_key: str, delta: AppliedDelta) -> Inputs:
    """
    Return a deep copy of `inputs` with one stat stepped by `delta`.

    A pct step only moves pct stats and a flat step only moves flat stats.
    Crit rate moves by pct/100 and stays in [0, 1]; crit dmg moves by pct/100.
    """
    modified = copy.deepcopy(inputs)
    if stat_key not in _STAT_FIELDS:
        return modified

    dp = delta.value if delta.kind == DeltaKind.PCT.value else 0.0
    df = delta.value if delta.kind == DeltaKind.FLAT.value else 0.0

    read, write = _STAT_FIELDS[stat_key]
    prev = read(modified)

    if stat_key == CRIT_RATE_PCT:
        write(modified, clamp(prev + dp / 100, 0, 1))
    elif stat_key == CRIT_DMG_PCT:
        write(modified, prev + dp / 100)
    elif expected_delta_kind(stat_key) == DeltaKind.FLAT.value:
        write(modified, prev + df)
    else:
        write(modified, prev + dp)
    return modified


# =============================================================================
# ELIGIBILITY
# =============================================================================

def is_stat_eligible(stat_key: str, mode: str) -> bool:
    """Whether a stat gets a row in the given mode."""
    if mode == DamageMode.ANOMALY.value and stat_key in ANOMALY_HIDDEN_STATS:
        return False
    if mode == DamageMode.RUPTURE.value:
        if stat_key not in RUPTURE_ALLOWED_STATS:
            return False
    elif stat_key in RUPTURE_ONLY_STATS:
        return False
    if mode == DamageMode.STANDARD.value and stat_key in ANOMALY_ONLY_STATS:
        return False
    return True


def eligible_stats(mode: str) -> List[StatDefinition]:
    """Registry entries that get a row in `mode`, in registry order."""
    return [defn for defn in stat_registry() if is_stat_eligible(defn.key, mode)]


# =============================================================================
# MARGINAL ANALYSIS
# =============================================================================

def compute_marginals(
    inputs: Inputs,
    store: Optional[MarginalAppliedStore] = None,
    preview_func: Callable[[Inputs], PreviewResult] = compute_preview,
) -> MarginalResult:
    """
    Output gain from stepping each eligible stat once.

    Args:
        inputs: Build to analyze (left unchanged)
        store: Per-stat overrides (a document's `marginal.customApplied`
            reaches the analysis only through it); defaults are used where
            it has none
        preview_func: Function computing the headline numbers

    Returns:
        MarginalResult with rows sorted by pct_gain, highest first. Ties keep
        registry order. pct_gain is 0 when the baseline output is exactly 0.
    """
    base = preview_func(inputs)
    base_out = base.output

    rows = []
    for defn in eligible_stats(inputs.mode):
        override = store.get(defn.key) if store is not None else None
        applied = resolve_delta(defn.key, override)

        out2 = preview_func(apply_delta(inputs, defn.key, applied)).output
        gain = out2 - base_out
        pct_gain = (gain / base_out) * 100 if base_out != 0 else 0.0
        if not math.isfinite(pct_gain):
            pct_gain = 0.0

        orig_val = stat_display_value(inputs, defn.key)
        total_val = orig_val + applied.value
        if defn.key == CRIT_RATE_PCT:
            total_val = clamp(total_val, 0, 100)

        logger.debug("marginal %s: %+g %s -> %.2f (%+.3f%%)",
                     defn.key, applied.value, applied.kind, out2, pct_gain)

        rows.append(MarginalRow(
            key=defn.key,
            label=defn.label,
            applied=applied,
            out2=out2,
            gain=gain,
            pct_gain=pct_gain,
            orig_val=orig_val,
            total_val=total_val,
            display_kind=defn.kind,
        ))

    # sorted() is stable, so equal gains keep registry order
    rows = sorted(rows, key=lambda r: -r.pct_gain)
    return MarginalResult(base=base, rows=rows)
