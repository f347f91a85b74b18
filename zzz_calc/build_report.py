"""
ZZZ Damage Calculator - Build Report
====================================
Prints the damage preview and the marginal stat ranking for a build.

Usage:
    zzz-report                      # the locally saved build (or defaults)
    zzz-report my_build.json        # an exported build file
    zzz-report my_build.json --mode rupture --verbose
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .constants import (
    MODE_LABELS,
    fmt0,
    fmt_smart,
    get_attribute_label,
    get_mode_label,
    preview_kpis,
)
from .core.damage import compute_preview
from .core.stats import Inputs
from .marginal import MarginalAppliedStore, MarginalResult, compute_marginals
from .stat_names import format_stat_value
from .streamlit_app.utils.data_manager import (
    apply_build_data,
    import_build_json,
    load_saved_build,
)

logger = logging.getLogger(__name__)


def load_build(path: Optional[str], store: MarginalAppliedStore) -> Inputs:
    """
    Build from a JSON file, or from the save slot when no path is given.

    Raises:
        OSError: the file cannot be read
        ValueError: the file is not an acceptable build document
    """
    if path is None:
        data = load_saved_build()
        if data is None:
            logger.info("No saved build, using defaults")
            data = Inputs.defaults().to_dict()
        return apply_build_data(data, store)

    with open(path, 'rb') as f:
        ok, result = import_build_json(f.read())
    if not ok:
        raise ValueError(result)
    return apply_build_data(result, store)


def format_report(inputs: Inputs, result: MarginalResult) -> str:
    """Plain-text report: header, KPI list, marginal table."""
    a = inputs.agent
    lines = [
        "=" * 70,
        f"ZZZ DAMAGE REPORT - {inputs.json_name or 'Unnamed build'}",
        f"Mode: {get_mode_label(inputs.mode)} | "
        f"Agent Lv.{a.level} {get_attribute_label(a.attribute)} | "
        f"Enemy Lv.{inputs.enemy.level}",
        "=" * 70,
        "",
    ]

    for title, value in preview_kpis(result.base):
        lines.append(f"  {title:<24}{value:>14}")

    lines += [
        "",
        "MARGINAL STAT VALUE",
        "-" * 70,
        f"  {'Stat':<20}{'Current':>10}{'Step':>9}{'Total':>10}{'Output':>11}{'Gain %':>9}",
    ]
    for r in result.rows:
        step = fmt_smart(r.applied.value) if r.applied.is_flat else f"{fmt_smart(r.applied.value)}%"
        lines.append(
            f"  {r.label:<20}"
            f"{format_stat_value(r.key, r.orig_val):>10}"
            f"{'+' + step:>9}"
            f"{format_stat_value(r.key, r.total_val):>10}"
            f"{fmt0(r.out2):>11}"
            f"{r.pct_gain:>+8.2f}%"
        )
    if not result.rows:
        lines.append("  (no stats apply to this mode)")
    return "\n".join(lines)


def report_json(result: MarginalResult) -> str:
    return json.dumps({
        "preview": result.base.to_dict(),
        "rows": [r.to_dict() for r in result.rows],
    }, indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="ZZZ damage preview and marginal stat ranking for a build",
    )
    parser.add_argument("build", nargs="?", help="Exported build JSON (default: saved build)")
    parser.add_argument("--mode", "-m", choices=list(MODE_LABELS.keys()),
                        help="Override the build's damage mode")
    parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = MarginalAppliedStore()
    try:
        inputs = load_build(args.build, store)
    except (OSError, ValueError) as e:
        print(f"Error loading build: {e}", file=sys.stderr)
        return 1

    if args.mode:
        inputs.mode = args.mode

    result = compute_marginals(inputs, store, preview_func=compute_preview)

    if args.json:
        print(report_json(result))
    else:
        print(format_report(inputs, result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
