"""Tests for bootstrap configuration and identity resolution."""

from career_roadmap.auth import resolve_identity
from career_roadmap.config import DEFAULT_STORE_CONFIG, BootstrapConfig, Config


def test_bootstrap_from_env(monkeypatch):
    monkeypatch.setenv("INITIAL_AUTH_TOKEN", " token-123 ")
    monkeypatch.setenv("FIREBASE_CONFIG", '{"projectId": "careers-prod"}')

    bootstrap = BootstrapConfig.from_env()

    assert bootstrap.identity_token == "token-123"
    assert bootstrap.effective_store_config() == {"projectId": "careers-prod"}


def test_bootstrap_defaults(monkeypatch):
    monkeypatch.delenv("INITIAL_AUTH_TOKEN", raising=False)
    monkeypatch.setenv("FIREBASE_CONFIG", "{not json")

    bootstrap = BootstrapConfig.from_env()

    assert bootstrap.identity_token is None
    assert bootstrap.store_config is None
    assert bootstrap.effective_store_config() == DEFAULT_STORE_CONFIG


def test_validate_reports_missing_key(monkeypatch):
    monkeypatch.setattr(Config, "GEMINI_API_KEY", None)
    monkeypatch.setattr(Config, "STORE_BACKEND", "memory")
    missing = Config.validate()
    assert len(missing) == 1
    assert missing[0].startswith("GEMINI_API_KEY")


def test_verified_token_gives_uid():
    assert resolve_identity("tok", verifier=lambda token: {"uid": "user-42"}) == "user-42"


def test_rejected_token_falls_back_to_anonymous():
    def reject(token):
        raise ValueError("expired")

    identity = resolve_identity("tok", verifier=reject)
    assert identity.startswith("anon-")


def test_no_token_is_anonymous_and_unique():
    first, second = resolve_identity(None), resolve_identity(None)
    assert first.startswith("anon-") and second.startswith("anon-")
    assert first != second


def test_required_auth_without_identity_disables_persistence():
    assert resolve_identity(None, require_auth=True) is None


def test_anonymous_identity_is_kept_across_restarts(tmp_path):
    id_file = tmp_path / ".anonymous_id"

    first = resolve_identity(None, anonymous_id_file=id_file)
    second = resolve_identity(None, anonymous_id_file=id_file)

    assert first.startswith("anon-")
    assert second == first
    assert id_file.read_text().strip() == first


def test_configured_anonymous_id_wins(tmp_path):
    id_file = tmp_path / ".anonymous_id"
    assert resolve_identity(None, anonymous_id="anon-fixed", anonymous_id_file=id_file) == "anon-fixed"
    assert not id_file.exists()


def test_unwritable_identity_file_still_signs_in(tmp_path):
    id_file = tmp_path / "missing-dir" / ".anonymous_id"
    assert resolve_identity(None, anonymous_id_file=id_file).startswith("anon-")
