"""Tests for the credential gate."""

from dreamcolor.ai_generation import CredentialGate, default_credential_gate


def test_has_credential_does_not_prompt(empty_gate, selector):
    assert empty_gate.has_credential() is False
    assert selector.calls == 0


def test_request_credential_trusts_selected_token(empty_gate, selector):
    assert empty_gate.request_credential() is True
    assert selector.calls == 1
    assert empty_gate.has_credential()
    assert empty_gate.token == "r8_selected"


def test_cancelled_selection_keeps_previous_state(make_selector):
    cancelled = make_selector(answer=None)
    gate = CredentialGate(selector=cancelled, use_environment=False)

    assert gate.request_credential() is False
    assert gate.has_credential() is False

    gate_with_token = CredentialGate(token="r8_old", selector=cancelled, use_environment=False)
    assert gate_with_token.request_credential() is True
    assert gate_with_token.token == "r8_old"


def test_request_without_selector_reports_current_state():
    gate = CredentialGate(use_environment=False)
    assert gate.request_credential() is False


def test_gate_reads_environment_token(monkeypatch):
    monkeypatch.setenv("REPLICATE_API_TOKEN", "r8_from_env")
    assert CredentialGate().token == "r8_from_env"

    monkeypatch.setenv("REPLICATE_API_TOKEN", "   ")
    assert CredentialGate().has_credential() is False


def test_clear_removes_token(gate):
    gate.clear()
    assert gate.has_credential() is False


def test_default_gate_is_process_wide():
    assert default_credential_gate() is default_credential_gate()
