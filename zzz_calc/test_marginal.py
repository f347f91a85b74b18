"""
Unit tests for marginal.py - override store, delta resolution and the marginal ranking.
"""
import copy
import math

import pytest

from zzz_calc.core import AppliedDelta, Inputs
from zzz_calc.core.constants import RUPTURE_ALLOWED_STATS
from zzz_calc.marginal import (
    MarginalAppliedStore,
    apply_delta,
    compute_marginals,
    default_applied,
    eligible_stats,
    resolve_delta,
    stat_display_value,
)
from zzz_calc.stat_names import stat_registry


def make_inputs(agent=None, enemy=None, mode="standard"):
    agent_data = {"atk": 1000, "skillMultPct": 100, "crit": {"rate": 0, "dmg": 0}}
    agent_data.update(agent or {})
    return Inputs.from_dict({"mode": mode, "agent": agent_data, "enemy": enemy or {}})


def registry_index(key):
    return [d.key for d in stat_registry()].index(key)


class TestOverrideStore:
    """Tests for MarginalAppliedStore."""

    def test_set_and_get(self):
        store = MarginalAppliedStore()
        store.set("atk", "flat", 250)
        assert store.get("atk") == AppliedDelta("flat", 250)
        assert "atk" in store
        assert len(store) == 1

    def test_unknown_key_ignored(self):
        store = MarginalAppliedStore()
        store.set("luck", "pct", 5)
        assert store.get("luck") is None
        assert len(store) == 0

    def test_non_finite_deletes(self):
        store = MarginalAppliedStore()
        store.set("critDmgPct", "pct", 10)
        store.set("critDmgPct", "pct", float("nan"))
        assert store.get("critDmgPct") is None

    def test_clear(self):
        store = MarginalAppliedStore()
        store.set("atk", "flat", 1)
        store.clear()
        assert len(store) == 0

    def test_load_drops_unknown_and_invalid(self):
        store = MarginalAppliedStore()
        store.set("penFlat", "flat", 30)
        store.load_from_data({"marginal": {"customApplied": {
            "atk": {"kind": "flat", "value": 200},
            "notAStat": {"kind": "pct", "value": 5},
            "critRatePct": {"kind": "percent", "value": 5},
            "critDmgPct": {"kind": "pct", "value": "abc"},
            "dmgGenericPct": {"kind": "pct", "value": "2.5"},
        }}})
        assert store.clone_for_persistence() == {
            "atk": {"kind": "flat", "value": 200.0},
            "dmgGenericPct": {"kind": "pct", "value": 2.5},
        }
        # Load replaces the previous contents
        assert store.get("penFlat") is None

    def test_load_from_garbage_empties_store(self):
        store = MarginalAppliedStore()
        store.set("atk", "flat", 1)
        store.load_from_data({"marginal": "nope"})
        assert len(store) == 0
        store.load_from_data(None)
        assert len(store) == 0

    def test_clone_skips_invalid_kind(self):
        store = MarginalAppliedStore()
        store.set("atk", "weird", 100)
        store.set("stunPct", "pct", 10)
        assert store.clone_for_persistence() == {"stunPct": {"kind": "pct", "value": 10.0}}

    def test_loaded_overrides_drive_analysis(self):
        doc = {"agent": {"atk": 1000}, "marginal": {"customApplied": {
            "atk": {"kind": "flat", "value": 400}, "bogus": {"kind": "pct", "value": 1},
        }}}
        store = MarginalAppliedStore()
        store.load_from_data(doc)
        rows = {r.key: r for r in compute_marginals(Inputs.from_dict(doc), store).rows}
        assert rows["atk"].applied == AppliedDelta("flat", 400)
        assert "bogus" not in store


class TestDeltas:
    """Tests for default and resolved deltas."""

    def test_defaults(self):
        assert default_applied("atk") == AppliedDelta("flat", 100)
        assert default_applied("penFlat") == AppliedDelta("flat", 10)
        assert default_applied("sheerForce") == AppliedDelta("flat", 100)
        assert default_applied("critRatePct") == AppliedDelta("pct", 1)

    def test_override_used_when_kind_matches(self):
        assert resolve_delta("atk", AppliedDelta("flat", 42)) == AppliedDelta("flat", 42)
        assert resolve_delta("dmgGenericPct", AppliedDelta("pct", 3)) == AppliedDelta("pct", 3)

    def test_wrong_kind_falls_back(self):
        assert resolve_delta("atk", AppliedDelta("pct", 42)) == default_applied("atk")
        assert resolve_delta("dmgGenericPct", AppliedDelta("flat", 3)) == default_applied("dmgGenericPct")

    def test_non_finite_falls_back(self):
        assert resolve_delta("atk", AppliedDelta("flat", float("inf"))) == default_applied("atk")

    def test_missing_override(self):
        assert resolve_delta("atk", None) == default_applied("atk")


class TestApplyDelta:
    """Tests for apply_delta()."""

    def test_returns_copy(self):
        inputs = make_inputs()
        modified = apply_delta(inputs, "atk", AppliedDelta("flat", 100))
        assert modified.agent.atk == 1100
        assert inputs.agent.atk == 1000
        assert modified is not inputs

    def test_crit_rate_clamped(self):
        inputs = make_inputs(agent={"crit": {"rate": 0.99, "dmg": 0}})
        modified = apply_delta(inputs, "critRatePct", AppliedDelta("pct", 5))
        assert modified.agent.crit.rate == 1

    def test_crit_dmg_in_fraction(self):
        modified = apply_delta(make_inputs(), "critDmgPct", AppliedDelta("pct", 50))
        assert modified.agent.crit.dmg == pytest.approx(0.5)

    def test_wrong_kind_is_no_op(self):
        modified = apply_delta(make_inputs(), "atk", AppliedDelta("pct", 50))
        assert modified.agent.atk == 1000

    def test_enemy_and_nested_fields(self):
        inputs = make_inputs()
        assert apply_delta(inputs, "defIgnorePct", AppliedDelta("pct", 4)).enemy.def_ignore_pct == 4
        assert apply_delta(inputs, "anomDmgPct", AppliedDelta("pct", 4)).agent.anomaly.dmg_pct == 4
        assert apply_delta(inputs, "sheerForce", AppliedDelta("flat", 4)).agent.rupture.sheer_force == 4

    def test_display_value_scales_crit(self):
        inputs = make_inputs(agent={"crit": {"rate": 0.25, "dmg": 1.2}})
        assert stat_display_value(inputs, "critRatePct") == pytest.approx(25)
        assert stat_display_value(inputs, "critDmgPct") == pytest.approx(120)
        assert stat_display_value(inputs, "atk") == 1000


class TestEligibility:
    """Tests for per-mode row filtering."""

    def test_standard(self):
        keys = {d.key for d in eligible_stats("standard")}
        assert "atk" in keys
        assert "critRatePct" in keys
        assert not keys & {"anomDmgPct", "disorderDmgPct", "sheerForce", "sheerDmgBonusPct"}
        assert len(keys) == 12

    def test_anomaly(self):
        keys = {d.key for d in eligible_stats("anomaly")}
        assert not keys & {"dmgSkillTypePct", "critRatePct", "critDmgPct"}
        assert {"anomDmgPct", "disorderDmgPct"} <= keys
        assert "sheerForce" not in keys

    def test_rupture(self):
        keys = {d.key for d in eligible_stats("rupture")}
        assert keys == set(RUPTURE_ALLOWED_STATS)

    def test_registry_order_kept(self):
        keys = [d.key for d in eligible_stats("rupture")]
        assert keys == sorted(keys, key=registry_index)


class TestComputeMarginals:
    """Tests for compute_marginals()."""

    def test_default_gains(self):
        result = compute_marginals(make_inputs())
        rows = {r.key: r for r in result.rows}
        assert result.base.output == pytest.approx(1000)
        assert rows["atk"].pct_gain == pytest.approx(10)
        assert rows["atk"].gain == pytest.approx(100)
        assert rows["dmgGenericPct"].pct_gain == pytest.approx(1)
        # No DEF to pierce, no crit damage to scale
        assert rows["penRatioPct"].pct_gain == pytest.approx(0)
        assert rows["critRatePct"].pct_gain == pytest.approx(0)

    def test_sorted_by_gain(self):
        store = MarginalAppliedStore()
        store.set("dmgGenericPct", "pct", 5)
        store.set("atk", "flat", 120)
        rows = compute_marginals(make_inputs(), store).rows
        assert rows[0].key == "atk"
        assert rows[0].pct_gain == pytest.approx(12)
        assert rows[1].key == "dmgGenericPct"
        assert rows[1].pct_gain == pytest.approx(5)
        gains = [r.pct_gain for r in rows]
        assert gains == sorted(gains, reverse=True)

    def test_ties_keep_registry_order(self):
        rows = compute_marginals(make_inputs()).rows
        zero_keys = [r.key for r in rows if r.pct_gain == 0]
        assert len(zero_keys) > 1
        assert zero_keys == sorted(zero_keys, key=registry_index)

    def test_idempotent_and_non_mutating(self):
        inputs = make_inputs(
            agent={"crit": {"rate": 0.5, "dmg": 1.0}, "pen": {"ratioPct": 20}},
            enemy={"def": 900, "isStunned": True},
        )
        before = copy.deepcopy(inputs)
        store = MarginalAppliedStore()
        store.set("critRatePct", "pct", 10)

        first = compute_marginals(inputs, store)
        second = compute_marginals(inputs, store)

        assert [r.to_dict() for r in first.rows] == [r.to_dict() for r in second.rows]
        assert inputs == before

    def test_crit_rate_total_clamped(self):
        inputs = make_inputs(agent={"crit": {"rate": 0.995, "dmg": 1.0}})
        rows = {r.key: r for r in compute_marginals(inputs).rows}
        assert rows["critRatePct"].orig_val == pytest.approx(99.5)
        assert rows["critRatePct"].total_val == 100

    def test_zero_baseline_gives_zero_pct(self):
        result = compute_marginals(make_inputs(agent={"atk": 0}))
        assert result.base.output == 0
        assert all(r.pct_gain == 0 for r in result.rows)
        assert {r.key: r for r in result.rows}["atk"].gain > 0

    def test_anomaly_rows(self):
        inputs = make_inputs(agent={"anomaly": {"prof": 100}}, mode="anomaly")
        rows = {r.key: r for r in compute_marginals(inputs).rows}
        assert "critRatePct" not in rows
        assert rows["anomDmgPct"].pct_gain > 0
        assert rows["disorderDmgPct"].pct_gain > 0

    def test_rupture_rows(self):
        inputs = make_inputs(agent={"rupture": {"sheerForce": 1000}}, mode="rupture")
        rows = {r.key: r for r in compute_marginals(inputs).rows}
        assert "atk" not in rows
        assert rows["sheerForce"].pct_gain == pytest.approx(10)
        assert rows["sheerForce"].display_kind == "flat"

    def test_best(self):
        assert compute_marginals(make_inputs()).best.key == "atk"

    def test_extreme_inputs_keep_finite_gains(self):
        inputs = make_inputs(agent={"atk": 1e308, "skillMultPct": 1000})
        rows = compute_marginals(inputs).rows
        assert all(math.isfinite(r.pct_gain) for r in rows)
        gains = [r.pct_gain for r in rows]
        assert gains == sorted(gains, reverse=True)
