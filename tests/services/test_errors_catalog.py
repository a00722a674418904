import pytest

from fluxstage.errors_catalog import actionable_error


def test_actionable_error_includes_next_step():
    message = actionable_error("missing_setting", name="GH_AUTH_TOKEN")

    assert "Missing required setting: GH_AUTH_TOKEN" in message
    assert "Suggested action:" in message


def test_unknown_error_code_raises_key_error():
    with pytest.raises(KeyError):
        actionable_error("not_a_code")
