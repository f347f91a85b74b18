"""
ZZZ Damage Calculator - Core Math Module
========================================
Single source of truth for all damage calculations, the input record, and
game constants.

All other modules should import from here rather than implementing their own formulas.
"""

from .constants import (
    # Enums
    DamageMode,
    Attribute,
    AnomalyKind,
    DeltaKind,
    MODES,
    ATTRIBUTES,
    AUTO,
    # Tables
    LEVEL_FACTOR_TABLE,
    ANOMALY_META,
    ANOMALY_TYPES,
    ANOMALY_FROM_ATTRIBUTE,
    DISORDER_DECAY,
    DEFAULT_DELTA,
)

from .stats import (
    Inputs,
    AgentStats,
    EnemyStats,
    CritStats,
    DamageBuckets,
    Penetration,
    AnomalyConfig,
    RuptureConfig,
    AppliedDelta,
    clamp,
    to_number,
    to_optional_number,
)

from .damage import (
    # Results
    DamageResult,
    HitDamage,
    AnomalyResult,
    PreviewResult,
    # Primitives
    level_factor,
    pct_to_mult,
    resistance_pct_for_attribute,
    calculate_res_multiplier,
    calculate_vulnerability_multiplier,
    calculate_effective_defense,
    calculate_defense_multiplier,
    calculate_stun_multiplier,
    calculate_damage_bonus_pct,
    calculate_crit_hit,
    # Mode calculators
    calculate_standard,
    calculate_anomaly,
    calculate_rupture,
    anomaly_level_mult,
    anomaly_prof_mult,
    infer_anomaly_type,
    infer_disorder_prev_type,
    disorder_mult_pct,
    # Preview
    compute_preview,
)

__all__ = [
    # Constants
    'DamageMode',
    'Attribute',
    'AnomalyKind',
    'DeltaKind',
    'MODES',
    'ATTRIBUTES',
    'AUTO',
    'LEVEL_FACTOR_TABLE',
    'ANOMALY_META',
    'ANOMALY_TYPES',
    'ANOMALY_FROM_ATTRIBUTE',
    'DISORDER_DECAY',
    'DEFAULT_DELTA',
    # Input record
    'Inputs',
    'AgentStats',
    'EnemyStats',
    'CritStats',
    'DamageBuckets',
    'Penetration',
    'AnomalyConfig',
    'RuptureConfig',
    'AppliedDelta',
    'clamp',
    'to_number',
    'to_optional_number',
    # Damage calculation
    'DamageResult',
    'HitDamage',
    'AnomalyResult',
    'PreviewResult',
    'level_factor',
    'pct_to_mult',
    'resistance_pct_for_attribute',
    'calculate_res_multiplier',
    'calculate_vulnerability_multiplier',
    'calculate_effective_defense',
    'calculate_defense_multiplier',
    'calculate_stun_multiplier',
    'calculate_damage_bonus_pct',
    'calculate_crit_hit',
    'calculate_standard',
    'calculate_anomaly',
    'calculate_rupture',
    'anomaly_level_mult',
    'anomaly_prof_mult',
    'infer_anomaly_type',
    'infer_disorder_prev_type',
    'disorder_mult_pct',
    'compute_preview',
]
