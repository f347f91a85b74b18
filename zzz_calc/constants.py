"""
ZZZ Damage Calculator - Shared Display Constants
================================================
Labels, option lists, and number formatting shared by the Streamlit app and
the CLI report.
"""

import math
from typing import Dict, List, Tuple

from .core.constants import (
    ANOMALY_META,
    ANOMALY_TYPES,
    AUTO,
    DamageMode,
)
from .core.damage import PreviewResult


# =============================================================================
# LABELS
# =============================================================================

MODE_LABELS: Dict[str, str] = {
    DamageMode.STANDARD.value: "Standard",
    DamageMode.ANOMALY.value: "Anomaly / Disorder",
    DamageMode.RUPTURE.value: "Rupture (Sheer)",
}

ATTRIBUTE_LABELS: Dict[str, str] = {
    "physical": "Physical",
    "fire": "Fire",
    "ice": "Ice",
    "electric": "Electric",
    "ether": "Ether",
}

# Select-box options: "auto" first, then every known anomaly
ANOMALY_TYPE_OPTIONS: List[str] = [AUTO] + ANOMALY_TYPES

PLACEHOLDER = "—"


def get_mode_label(mode: str) -> str:
    """Display name for a damage mode."""
    return MODE_LABELS.get(mode, mode.title())


def get_attribute_label(attribute: str) -> str:
    return ATTRIBUTE_LABELS.get(attribute, attribute.title())


def get_anomaly_label(anom_type: str) -> str:
    """Display name for an anomaly type ("auto" -> "Auto")."""
    meta = ANOMALY_META.get(anom_type)
    if meta:
        return meta["label"]
    return str(anom_type or "").capitalize()


def mode_from_string(s: str) -> str:
    """Parse a mode (case-insensitive). Unknown values fall back to standard."""
    value = (s or "").strip().lower()
    if value in MODE_LABELS:
        return value
    return DamageMode.STANDARD.value



# =============================================================================
# NUMBER FORMATTING
# =============================================================================

def fmt0(x: float) -> str:
    """Integer display, placeholder for non-finite."""
    if not isinstance(x, (int, float)) or not math.isfinite(x):
        return PLACEHOLDER
    return f"{x:.0f}"


def fmt1(x: float) -> str:
    """One decimal, placeholder for non-finite."""
    if not isinstance(x, (int, float)) or not math.isfinite(x):
        return PLACEHOLDER
    return f"{x:.1f}"


def fmt_smart(x: float) -> str:
    """Show one decimal only when the value is fractional."""
    if not isinstance(x, (int, float)) or not math.isfinite(x):
        return PLACEHOLDER
    r = round(x)
    if abs(x - r) < 1e-9:
        return str(int(r))
    return f"{x:.1f}"


# =============================================================================
# KPI LIST
# =============================================================================

def preview_kpis(preview: PreviewResult) -> List[Tuple[str, str]]:
    """
    Headline (title, value) pairs for a preview.

    Always: expected, non-crit, crit. Anomaly mode adds the anomaly type,
    the DoT tick breakdown (or the single hit), and the Disorder hit.
    """
    items = [
        ("Expected DMG", fmt0(preview.output_expected)),
        ("DMG (Non-Crit)", fmt0(preview.output_noncrit)),
        ("DMG (Crit)", fmt0(preview.output_crit)),
    ]

    anom = preview.anom
    if anom is None:
        return items

    items.append(("Anomaly Type", anom.label))
    if anom.is_dot:
        items += [
            ("Expected Tick DMG", fmt0(anom.per_tick.avg)),
            ("Ticks / Proc", fmt0(anom.tick_count)),
            ("Tick Interval (Sec)", fmt_smart(anom.tick_interval_sec)),
            ("DoT Duration (Sec)", fmt_smart(anom.duration_sec)),
            ("Anomaly Total / Proc", fmt0(anom.per_proc.avg)),
        ]
    else:
        items.append(("Anomaly Hit", fmt0(anom.per_proc.avg)))
    items.append(("Disorder Hit", fmt0(anom.disorder.avg)))
    return items
