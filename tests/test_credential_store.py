import pytest

from services.credential_store import ANTHROPIC_API_KEY, CredentialStore, redact_credential


def test_missing_key_returns_none(tmp_path):
    assert CredentialStore(tmp_path / ".env").get(ANTHROPIC_API_KEY) is None


def test_set_persists_to_file(tmp_path, monkeypatch):
    path = tmp_path / "config" / ".env"
    CredentialStore(path).set(ANTHROPIC_API_KEY, "  sk-ant-secret  ")
    monkeypatch.delenv(ANTHROPIC_API_KEY)

    assert "sk-ant-secret" in path.read_text()
    assert CredentialStore(path).get(ANTHROPIC_API_KEY) == "sk-ant-secret"


def test_environment_wins_over_file(tmp_path, monkeypatch):
    path = tmp_path / ".env"
    path.write_text(f"{ANTHROPIC_API_KEY}=from-file\n")
    monkeypatch.setenv(ANTHROPIC_API_KEY, "from-env")

    assert CredentialStore(path).get(ANTHROPIC_API_KEY) == "from-env"


def test_empty_secret_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        CredentialStore(tmp_path / ".env").set(ANTHROPIC_API_KEY, "   ")


def test_redaction():
    assert redact_credential(None) == ""
    assert redact_credential("short") == "***"
    assert redact_credential("sk-ant-api03-abcdefgh") == "sk-a...efgh"
