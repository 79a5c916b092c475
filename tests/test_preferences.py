from __future__ import annotations

import pytest

from analyzer.preferences import (
    CREDENTIAL_KEY,
    GAS_URL_KEY,
    PreferenceStore,
    save_credential,
    save_telemetry_url,
)


def test_values_persist_across_instances(tmp_path):
    path = tmp_path / "prefs.json"
    PreferenceStore(path).set(CREDENTIAL_KEY, "sk-123")
    assert PreferenceStore(path).get(CREDENTIAL_KEY) == "sk-123"


def test_uid_is_created_once(tmp_path):
    path = tmp_path / "prefs.json"
    uid = PreferenceStore(path).get_or_create_uid()
    assert uid
    assert PreferenceStore(path).get_or_create_uid() == uid


def test_unreadable_file_behaves_as_empty(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    assert PreferenceStore(path).get(CREDENTIAL_KEY) is None


def test_save_credential_strips_and_rejects_blank(tmp_path):
    store = PreferenceStore(tmp_path / "prefs.json")
    assert save_credential(store, "  sk-abc  ") == "API key saved."
    assert store.get(CREDENTIAL_KEY) == "sk-abc"
    with pytest.raises(ValueError):
        save_credential(store, "   ")


def test_save_telemetry_url_requires_exec_suffix(tmp_path):
    store = PreferenceStore(tmp_path / "prefs.json")
    with pytest.raises(ValueError, match="/exec"):
        save_telemetry_url(store, "https://script.google.com/macros/s/abc/dev")
    assert store.get(GAS_URL_KEY) is None

    save_telemetry_url(store, "https://script.google.com/macros/s/abc/exec")
    assert store.get(GAS_URL_KEY) == "https://script.google.com/macros/s/abc/exec"

    assert save_telemetry_url(store, "") == "GAS URL removed. Logging disabled."
    assert store.get(GAS_URL_KEY) is None
