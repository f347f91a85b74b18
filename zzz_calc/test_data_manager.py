"""
Unit tests for streamlit_app/utils/data_manager.py - save slot, export and import.
"""
import json

import pytest

from zzz_calc.core import Inputs
from zzz_calc.marginal import MarginalAppliedStore
from zzz_calc.streamlit_app.utils.data_manager import (
    MAX_IMPORT_BYTES,
    SAVE_FILE_NAME,
    ERR_INVALID_JSON,
    ERR_NOT_OBJECT,
    ERR_READ_FAILED,
    ERR_TOO_LARGE,
    apply_build_data,
    build_export_data,
    delete_saved_build,
    export_build_json,
    get_data_dir,
    has_saved_build,
    import_build_json,
    load_saved_build,
    safe_file_name,
    save_build,
)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the save slot at a temp directory."""
    monkeypatch.setenv("ZZZ_CALC_DATA_DIR", str(tmp_path))
    return tmp_path


def sample_build():
    inputs = Inputs.from_dict({
        "jsonName": "Miyabi vs Boss",
        "mode": "anomaly",
        "agent": {"atk": 3200, "attribute": "ice", "anomaly": {"prof": 115}},
        "enemy": {"def": 953, "resByAttr": {"ice": -10}},
    })
    store = MarginalAppliedStore()
    store.set("atk", "flat", 250)
    store.set("anomDmgPct", "pct", 5)
    return inputs, store


class TestDataDir:
    """Tests for data directory configuration."""

    def test_env_override(self, data_dir):
        assert get_data_dir() == str(data_dir)

    def test_default(self, monkeypatch):
        monkeypatch.delenv("ZZZ_CALC_DATA_DIR", raising=False)
        assert get_data_dir().endswith("data")


class TestSaveSlot:
    """Tests for save / load / delete."""

    def test_nothing_saved(self, data_dir):
        assert not has_saved_build()
        assert load_saved_build() is None

    def test_save_and_load(self, data_dir):
        inputs, store = sample_build()
        assert save_build(inputs, store)
        assert has_saved_build()
        assert (data_dir / SAVE_FILE_NAME).exists()

        data = load_saved_build()
        restored_store = MarginalAppliedStore()
        restored = apply_build_data(data, restored_store)
        assert restored.agent == inputs.agent
        assert restored.enemy == inputs.enemy
        assert restored_store.clone_for_persistence() == store.clone_for_persistence()

    def test_corrupt_file(self, data_dir):
        (data_dir / SAVE_FILE_NAME).write_text("{not json", encoding="utf-8")
        assert load_saved_build() is None

    def test_non_object_file(self, data_dir):
        (data_dir / SAVE_FILE_NAME).write_text("[1, 2]", encoding="utf-8")
        assert load_saved_build() is None

    def test_save_failure_returns_false(self, tmp_path, monkeypatch):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        monkeypatch.setenv("ZZZ_CALC_DATA_DIR", str(blocker / "sub"))
        inputs, store = sample_build()
        assert save_build(inputs, store) is False

    def test_delete(self, data_dir):
        inputs, store = sample_build()
        save_build(inputs, store)
        assert delete_saved_build()
        assert not delete_saved_build()


class TestExport:
    """Tests for export document and file name."""

    def test_overrides_come_from_store(self):
        inputs, store = sample_build()
        data = build_export_data(inputs, store)
        assert data["marginal"]["customApplied"] == {
            "atk": {"kind": "flat", "value": 250.0},
            "anomDmgPct": {"kind": "pct", "value": 5.0},
        }
        assert data["enemy"]["def"] == 953

    def test_unknown_keys_never_exported(self):
        doc = {"jsonName": "x", "marginal": {"customApplied": {
            "mystery": {"kind": "pct", "value": 3},
            "atk": {"kind": "flat", "value": 400},
        }}}
        assert build_export_data(Inputs.from_dict(doc))["marginal"] == {"customApplied": {}}

        store = MarginalAppliedStore()
        inputs = apply_build_data(doc, store)
        _, text = export_build_json(inputs, store)
        assert json.loads(text)["marginal"]["customApplied"] == {
            "atk": {"kind": "flat", "value": 400.0},
        }

    def test_export_pretty_json(self):
        inputs, store = sample_build()
        file_name, text = export_build_json(inputs, store)
        assert file_name == "Miyabi_vs_Boss.json"
        assert text.startswith("{\n  ")
        assert json.loads(text)["jsonName"] == "Miyabi vs Boss"

    @pytest.mark.parametrize("name,expected", [
        ("My Build #1!", "My_Build_1"),
        ("  spaced   out  ", "spaced_out"),
        ("ok-name_2", "ok-name_2"),
        ("日本語", "zzz_build"),
        ("", "zzz_build"),
        (None, "zzz_build"),
        ("a" * 80, "a" * 60),
    ])
    def test_safe_file_name(self, name, expected):
        assert safe_file_name(name) == expected


class TestImport:
    """Tests for import_build_json()."""

    def test_round_trip(self):
        inputs, store = sample_build()
        _, text = export_build_json(inputs, store)

        ok, data = import_build_json(text.encode("utf-8"))
        assert ok
        restored_store = MarginalAppliedStore()
        restored = apply_build_data(data, restored_store)
        assert restored == Inputs.from_dict(build_export_data(inputs, store))
        assert restored_store.get("atk").value == 250

    def test_accepts_text(self):
        ok, data = import_build_json('{"mode": "rupture"}')
        assert ok
        assert data == {"mode": "rupture"}

    def test_too_large(self):
        payload = b'{"jsonName": "' + b"x" * MAX_IMPORT_BYTES + b'"}'
        assert import_build_json(payload) == (False, ERR_TOO_LARGE)

    def test_invalid_json(self):
        assert import_build_json(b"{oops") == (False, ERR_INVALID_JSON)

    def test_invalid_utf8(self):
        assert import_build_json(b"\xff\xfe\xfa") == (False, ERR_READ_FAILED)

    def test_not_an_object(self):
        assert import_build_json(b"[1, 2, 3]") == (False, ERR_NOT_OBJECT)

    def test_unknown_override_keys_dropped(self):
        ok, data = import_build_json(json.dumps({
            "marginal": {"customApplied": {"mystery": {"kind": "pct", "value": 3}}},
        }))
        assert ok
        store = MarginalAppliedStore()
        apply_build_data(data, store)
        assert store.clone_for_persistence() == {}
