from fluxstage.services.redaction import redact_secrets


def test_long_hex_runs_are_masked():
    token = "0123456789abcdef0123456789ABCDEF"
    output = f"Cloning into 'gcp-flux-dev'...\nremote: https://{token}@github.com/org/repo.git"

    redacted = redact_secrets(output)

    assert token not in redacted
    assert "https://[secret]@github.com/org/repo.git" in redacted


def test_short_hex_runs_are_kept():
    assert redact_secrets("commit abc1234 pushed") == "commit abc1234 pushed"
    assert redact_secrets("a" * 31) == "a" * 31


def test_known_secrets_are_masked_even_when_not_hex():
    redacted = redact_secrets("push to https://ghp_notHexToken@github.com", ["ghp_notHexToken"])

    assert redacted == "push to https://[secret]@github.com"


def test_empty_text_is_returned_as_empty_string():
    assert redact_secrets(None) == ""
    assert redact_secrets("") == ""
