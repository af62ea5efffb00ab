"""Unit tests for the persisted credential store."""

import json

import pytest
from unittest.mock import Mock

from tasklink.settings_store import TOKEN_KEY, CredentialStore


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "settings" / "settings.json"


class TestCredentialStore:
    def test_env_seed_used_until_something_is_saved(self, store_path):
        store = CredentialStore(store_path, default_token="  seeded  ")

        assert store.get_token() == "seeded"
        assert store.is_configured() is True

    def test_saved_empty_token_overrides_seed(self, store_path):
        store = CredentialStore(store_path, default_token="seeded")
        store.set_token("")

        assert store.get_token() == ""
        assert store.is_configured() is False

    def test_set_token_trims_and_persists(self, store_path):
        store = CredentialStore(store_path, default_token="")

        assert store.set_token("  abc123  ") is True
        assert json.loads(store_path.read_text(encoding="utf-8")) == {TOKEN_KEY: "abc123"}
        assert CredentialStore(store_path, default_token="").get_token() == "abc123"

    def test_listeners_notified_on_change_only(self, store_path):
        store = CredentialStore(store_path, default_token="")
        listener = Mock()
        store.subscribe(listener)

        store.set_token("abc")
        store.set_token(" abc ")
        store.set_token("def")

        assert [c.args[0] for c in listener.call_args_list] == ["abc", "def"]

    def test_unsubscribe(self, store_path):
        store = CredentialStore(store_path, default_token="")
        listener = Mock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        unsubscribe()

        store.set_token("abc")

        listener.assert_not_called()

    def test_corrupt_file_reads_as_unconfigured(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json", encoding="utf-8")

        store = CredentialStore(store_path, default_token="seeded")

        assert store.get_token() == ""

    def test_other_keys_preserved(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

        CredentialStore(store_path, default_token="").set_token("abc")

        assert json.loads(store_path.read_text(encoding="utf-8")) == {"theme": "dark", TOKEN_KEY: "abc"}

    def test_default_path_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr("tasklink.settings_store.get_config", lambda: Mock(settings_file=str(tmp_path / "s.json"), todoist_api_token="env"))

        store = CredentialStore()

        assert store.path == tmp_path / "s.json"
        assert store.get_token() == "env"
