"""
ZZZ Damage Calculator - Streamlit Web App
Single page: build inputs in the sidebar, damage preview and marginal stat
ranking in the main area.
"""
import pandas as pd
import streamlit as st

from zzz_calc.constants import (
    ANOMALY_TYPE_OPTIONS,
    MODE_LABELS,
    fmt1,
    fmt_smart,
    get_anomaly_label,
    get_attribute_label,
    get_mode_label,
    mode_from_string,
    preview_kpis,
)
from zzz_calc.core import (
    ATTRIBUTES,
    DamageMode,
    Inputs,
    calculate_anomaly,
    calculate_rupture,
    calculate_standard,
    compute_preview,
)
from zzz_calc.marginal import MarginalAppliedStore, compute_marginals
from zzz_calc.stat_names import expected_delta_kind
from zzz_calc.streamlit_app.utils.data_manager import (
    MAX_IMPORT_BYTES,
    apply_build_data,
    build_export_data,
    delete_saved_build,
    export_build_json,
    has_saved_build,
    import_build_json,
    load_saved_build,
    save_build,
)
from zzz_calc.streamlit_app.utils.marginal_chart import create_marginal_chart

# Page config
st.set_page_config(
    page_title="ZZZ Damage Calculator",
    page_icon="⚡",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-title {
        color: #f5c542;
        font-size: 2.2em;
        font-weight: bold;
        margin-bottom: 10px;
    }
    .sub-title {
        color: #888;
        margin-bottom: 20px;
    }
</style>
""", unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables."""
    if 'inputs' not in st.session_state:
        st.session_state.inputs = Inputs.defaults()
    if 'marginal_store' not in st.session_state:
        st.session_state.marginal_store = MarginalAppliedStore()
    # Bumped whenever the build is replaced wholesale so widgets pick up new values
    if 'form_version' not in st.session_state:
        st.session_state.form_version = 0
    if 'editor_version' not in st.session_state:
        st.session_state.editor_version = 0
    if 'last_import_id' not in st.session_state:
        st.session_state.last_import_id = None
    if 'flash' not in st.session_state:
        st.session_state.flash = None


def replace_build(data):
    """Load a document into the session (inputs + overrides) and refresh widgets."""
    store = st.session_state.marginal_store
    st.session_state.inputs = apply_build_data(data, store)
    st.session_state.form_version += 1
    st.session_state.editor_version += 1


def wkey(name: str) -> str:
    return f"{name}_{st.session_state.form_version}"


def flash(kind: str, msg: str):
    """Message shown after the next rerun."""
    st.session_state.flash = (kind, msg)


# =============================================================================
# SIDEBAR INPUTS
# =============================================================================

def _num(label, value, key, step=1.0, min_value=None, max_value=None, help=None):
    return st.number_input(
        label, value=float(value), step=step, min_value=min_value, max_value=max_value,
        key=wkey(key), help=help,
    )


def _optional_num(label, value, key, step=1.0, help=None):
    return st.number_input(
        label, value=None if value is None else float(value), step=step,
        key=wkey(key), placeholder="none", help=help,
    )


def sidebar_inputs(current: Inputs) -> dict:
    """Render the build form and return it as a raw document."""
    a = current.agent
    e = current.enemy

    with st.sidebar:
        st.markdown("### Build")
        json_name = st.text_input("Build Name", value=current.json_name, key=wkey("json_name"))

        modes = list(MODE_LABELS.keys())
        mode = st.selectbox(
            "Damage Mode",
            options=modes,
            index=modes.index(mode_from_string(current.mode)),
            format_func=get_mode_label,
            key=wkey("mode"),
        )

        st.divider()
        st.markdown("### Agent")
        col1, col2 = st.columns(2)
        with col1:
            level = st.number_input("Level", 1, 60, int(min(a.level, 60)), key=wkey("agent_level"))
        with col2:
            attribute = st.selectbox(
                "Attribute",
                options=ATTRIBUTES,
                index=ATTRIBUTES.index(a.attribute),
                format_func=get_attribute_label,
                key=wkey("attribute"),
            )

        atk = _num("Total ATK", a.atk, "atk", step=10.0, min_value=0.0)
        skill_mult = _num("Skill Multiplier %", a.skill_mult_pct, "skill_mult", step=10.0, min_value=0.0)

        col1, col2 = st.columns(2)
        with col1:
            crit_rate = _num("Crit Rate %", a.crit.rate * 100, "crit_rate", step=0.5, min_value=0.0, max_value=100.0)
        with col2:
            crit_dmg = _num("Crit DMG %", a.crit.dmg * 100, "crit_dmg", step=1.0, min_value=0.0)

        with st.expander("DMG% Buckets", expanded=True):
            generic = _num("Generic DMG %", a.dmg_buckets.generic, "dmg_generic")
            attr_dmg = _num("Attribute DMG %", a.dmg_buckets.attribute, "dmg_attr")
            skill_type = _num("Skill DMG %", a.dmg_buckets.skill_type, "dmg_skill_type",
                              help="Not applied to Anomaly or Disorder")
            other = _num("Other DMG %", a.dmg_buckets.other, "dmg_other")
            vs_stunned = _num("DMG % vs Stunned", a.dmg_buckets.vs_stunned, "dmg_vs_stunned",
                              help="Only counts while the enemy is stunned")

        col1, col2 = st.columns(2)
        with col1:
            pen_ratio = _num("PEN Ratio %", a.pen.ratio_pct, "pen_ratio", step=0.5)
        with col2:
            pen_flat = _num("PEN", a.pen.flat, "pen_flat", step=1.0, min_value=0.0)

        anomaly = {
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
        }
        if mode == DamageMode.ANOMALY.value:
            st.divider()
            st.markdown("### Anomaly / Disorder")
            anomaly = anomaly_inputs(current)

        rupture = {
            "sheerForce": a.rupture.sheer_force,
            "sheerDmgBonusPct": a.rupture.sheer_dmg_bonus_pct,
        }
        if mode == DamageMode.RUPTURE.value:
            st.divider()
            st.markdown("### Rupture")
            rupture = {
                "sheerForce": _num("Sheer Force", a.rupture.sheer_force, "sheer_force", step=10.0, min_value=0.0),
                "sheerDmgBonusPct": _num("Sheer DMG Bonus %", a.rupture.sheer_dmg_bonus_pct, "sheer_bonus"),
            }

        st.divider()
        st.markdown("### Enemy")
        col1, col2 = st.columns(2)
        with col1:
            enemy_level = st.number_input("Enemy Level", min_value=1, value=int(e.level), key=wkey("enemy_level"))
        with col2:
            enemy_def = _num("DEF", e.defense, "enemy_def", step=10.0, min_value=0.0)

        with st.expander("Resistance", expanded=False):
            res_all = _num("RES (All) %", e.res_all_pct, "res_all")
            res_by_attr = {}
            for attr in ATTRIBUTES:
                res_by_attr[attr] = _optional_num(
                    f"{get_attribute_label(attr)} RES %", e.res_by_attr.get(attr), f"res_{attr}",
                    help="Adds to RES (All) when set",
                )
            res_reduction = _num("RES Reduction %", e.res_reduction_pct, "res_reduction")
            res_ignore = _num("RES Ignore %", e.res_ignore_pct, "res_ignore")

        with st.expander("DEF Shred / Vulnerability", expanded=False):
            def_reduction = _num("DEF Reduction %", e.def_reduction_pct, "def_reduction")
            def_ignore = _num("DEF Ignore %", e.def_ignore_pct, "def_ignore")
            dmg_taken = _num("DMG Taken %", e.dmg_taken_pct, "dmg_taken")
            dmg_taken_stunned = _num("DMG Taken % (Stunned)", e.dmg_taken_stunned_pct, "dmg_taken_stunned")

        is_stunned = st.checkbox("Enemy Stunned", value=e.is_stunned, key=wkey("is_stunned"))
        stun_pct = _num("Stunned Multiplier %", e.stun_pct, "stun_pct", step=5.0)

    return {
        "jsonName": json_name,
        "mode": mode,
        "agent": {
            "level": level,
            "attribute": attribute,
            "atk": atk,
            "crit": {"rate": crit_rate / 100, "dmg": crit_dmg / 100},
            "dmgBuckets": {
                "generic": generic,
                "attribute": attr_dmg,
                "skillType": skill_type,
                "other": other,
                "vsStunned": vs_stunned,
            },
            "pen": {"ratioPct": pen_ratio, "flat": pen_flat},
            "skillMultPct": skill_mult,
            "anomaly": anomaly,
            "rupture": rupture,
        },
        "enemy": {
            "level": enemy_level,
            "def": enemy_def,
            "resAllPct": res_all,
            "resByAttr": res_by_attr,
            "resReductionPct": res_reduction,
            "resIgnorePct": res_ignore,
            "defReductionPct": def_reduction,
            "defIgnorePct": def_ignore,
            "dmgTakenPct": dmg_taken,
            "dmgTakenStunnedPct": dmg_taken_stunned,
            "isStunned": is_stunned,
            "stunPct": stun_pct,
        },
    }


def anomaly_inputs(current: Inputs) -> dict:
    """Anomaly / Disorder section (anomaly mode only)."""
    an = current.agent.anomaly
    types = ANOMALY_TYPE_OPTIONS

    anom_type = st.selectbox(
        "Anomaly Type",
        options=types,
        index=types.index(an.type) if an.type in types else 0,
        format_func=get_anomaly_label,
        key=wkey("anom_type"),
        help="Auto picks the attribute's anomaly",
    )
    prof = _num("Anomaly Proficiency", an.prof, "anom_prof", step=1.0, min_value=0.0)

    col1, col2 = st.columns(2)
    with col1:
        dmg_pct = _num("Anomaly DMG %", an.dmg_pct, "anom_dmg")
    with col2:
        disorder_pct = _num("Disorder DMG %", an.disorder_pct, "disorder_dmg")

    with st.expander("DoT Overrides", expanded=False):
        tick_count = _optional_num("Ticks / Proc", an.tick_count_override, "tick_count")
        tick_interval = _optional_num("Tick Interval (Sec)", an.tick_interval_sec_override, "tick_interval", step=0.1)

    allow_crit = st.checkbox("Anomaly Can Crit", value=an.allow_crit, key=wkey("allow_crit"))
    crit_rate_override = an.crit_rate_pct_override
    crit_dmg_override = an.crit_dmg_pct_override
    if allow_crit:
        col1, col2 = st.columns(2)
        with col1:
            crit_rate_override = _optional_num("Crit Rate % Override", an.crit_rate_pct_override, "anom_cr")
        with col2:
            crit_dmg_override = _optional_num("Crit DMG % Override", an.crit_dmg_pct_override, "anom_cd")

    prev_type = st.selectbox(
        "Disorder: Previous Anomaly",
        options=types,
        index=types.index(an.disorder_prev_type) if an.disorder_prev_type in types else 0,
        format_func=get_anomaly_label,
        key=wkey("disorder_prev"),
    )
    time_passed = _num("Disorder: Time Passed (Sec)", an.disorder_time_passed_sec, "disorder_t",
                       step=0.5, min_value=0.0,
                       help="Clamped to 0-10 seconds")

    return {
        "type": anom_type,
        "prof": prof,
        "dmgPct": dmg_pct,
        "disorderPct": disorder_pct,
        "tickCountOverride": tick_count,
        "tickIntervalSecOverride": tick_interval,
        "allowCrit": allow_crit,
        "critRatePctOverride": crit_rate_override,
        "critDmgPctOverride": crit_dmg_override,
        "disorderPrevType": prev_type,
        "disorderTimePassedSec": time_passed,
    }


def sidebar_file_controls(inputs: Inputs):
    """Save / load / reset / export / import."""
    store = st.session_state.marginal_store

    with st.sidebar:
        st.divider()
        st.markdown("### Save & Share")

        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button("💾 Save"):
                if save_build(inputs, store):
                    flash("success", "Build saved!")
                else:
                    flash("error", "Failed to save")
                st.rerun()
        with col2:
            if st.button("📂 Load", disabled=not has_saved_build()):
                data = load_saved_build()
                if data is None:
                    flash("warning", "No saved build found")
                else:
                    replace_build(data)
                    flash("success", "Saved build loaded")
                st.rerun()
        with col3:
            if st.button("↺ Reset"):
                replace_build(Inputs.defaults().to_dict())
                flash("info", "Reset to defaults")
                st.rerun()

        if has_saved_build() and st.button("🗑️ Delete Saved Build"):
            if delete_saved_build():
                flash("info", "Saved build deleted")
            st.rerun()

        file_name, payload = export_build_json(inputs, store)
        st.download_button(
            "⬇️ Export JSON",
            data=payload,
            file_name=file_name,
            mime="application/json",
        )

        uploaded = st.file_uploader(
            "Import JSON",
            type=['json'],
            help=f"Exported build file (max {MAX_IMPORT_BYTES // 1_000_000} MB)",
        )
        if uploaded is not None:
            file_id = f"{uploaded.name}_{uploaded.size}"
            if st.session_state.last_import_id != file_id:
                st.session_state.last_import_id = file_id
                ok, result = import_build_json(uploaded.getvalue())
                if ok:
                    replace_build(result)
                    flash("success", f"Imported {uploaded.name}")
                else:
                    flash("error", result)
                st.rerun()


# =============================================================================
# MAIN AREA
# =============================================================================

def render_kpis(inputs: Inputs):
    preview = compute_preview(inputs)
    items = preview_kpis(preview)

    per_row = 4
    for start in range(0, len(items), per_row):
        cols = st.columns(per_row)
        for col, (title, value) in zip(cols, items[start:start + per_row]):
            with col:
                st.metric(title, value)

    with st.expander("Calculation Breakdown", expanded=False):
        if inputs.mode == DamageMode.RUPTURE.value:
            st.code(calculate_rupture(inputs).breakdown())
        else:
            st.code(calculate_standard(inputs).breakdown())
        if inputs.mode == DamageMode.ANOMALY.value:
            anom = calculate_anomaly(inputs)
            st.caption(
                f"{anom.label}: {anom.tick_count} x {fmt_smart(anom.per_tick.avg)} per proc | "
                f"Disorder after {get_anomaly_label(anom.disorder_prev_type)} at "
                f"{fmt1(anom.disorder_time_passed_sec)}s = {fmt_smart(anom.disorder_mult_pct)}% ATK"
            )


def render_marginals(inputs: Inputs):
    """Marginal table with editable steps, plus the gain chart."""
    store = st.session_state.marginal_store
    result = compute_marginals(inputs, store)

    st.markdown("### Marginal Stat Value")
    st.caption("Edit a Step to change how much of that stat is added. Sorted by gain.")

    df = pd.DataFrame([{
        "key": r.key,
        "Stat": r.label,
        "Current": r.orig_val,
        "Step": r.applied.value,
        "Total": r.total_val,
        "Output": r.out2,
        "Gain": r.gain,
        "Gain %": r.pct_gain,
    } for r in result.rows])

    if df.empty:
        st.info("No stats apply to this mode.")
        return

    edited = st.data_editor(
        df,
        hide_index=True,
        use_container_width=True,
        disabled=["key", "Stat", "Current", "Total", "Output", "Gain", "Gain %"],
        column_config={
            "key": None,
            "Current": st.column_config.NumberColumn(format="%.1f"),
            "Step": st.column_config.NumberColumn(format="%.2f"),
            "Total": st.column_config.NumberColumn(format="%.1f"),
            "Output": st.column_config.NumberColumn(format="%.0f"),
            "Gain": st.column_config.NumberColumn(format="%+.0f"),
            "Gain %": st.column_config.NumberColumn(format="%+.3f%%"),
        },
        key=f"marginal_editor_{st.session_state.editor_version}",
    )

    changed = False
    for row in edited.itertuples(index=False):
        previous_step = df.loc[df["key"] == row.key, "Step"].iloc[0]
        if row.Step != previous_step:
            store.set(row.key, expected_delta_kind(row.key), row.Step)
            changed = True
    if changed:
        st.session_state.editor_version += 1
        st.rerun()

    fig = create_marginal_chart(result.rows, result.base.output)
    st.plotly_chart(fig, use_container_width=True)


def main():
    """Main entry point."""
    init_session_state()

    raw = sidebar_inputs(st.session_state.inputs)
    inputs = Inputs.from_dict(raw)
    st.session_state.inputs = inputs

    sidebar_file_controls(inputs)

    st.markdown('<div class="main-title">⚡ ZZZ Damage Calculator</div>', unsafe_allow_html=True)
    st.markdown(
        f'<div class="sub-title">{get_mode_label(inputs.mode)} | '
        f'{inputs.json_name or "Unnamed build"}</div>',
        unsafe_allow_html=True,
    )

    if st.session_state.flash:
        kind, msg = st.session_state.flash
        getattr(st, kind)(msg)
        st.session_state.flash = None

    render_kpis(inputs)
    st.divider()
    render_marginals(inputs)

    with st.expander("Build JSON", expanded=False):
        st.json(build_export_data(inputs, st.session_state.marginal_store))


if __name__ == "__main__":
    main()
