from __future__ import annotations

from pyhomemind._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "idToken": "eyJhbGciOi",
        "refreshToken": "AMf-vB",
        "returnSecureToken": True,
        "postBody": "id_token=abc&providerId=google.com",
        "nested": {"apiKey": "AIza", "name": "Kitchen"},
    }

    redacted = redact_for_log(payload)
    assert redacted["idToken"] == "<redacted>"
    assert redacted["refreshToken"] == "<redacted>"
    assert redacted["postBody"] == "<redacted>"
    assert redacted["returnSecureToken"] is True
    assert redacted["nested"]["apiKey"] == "<redacted>"
    assert redacted["nested"]["name"] == "Kitchen"


def test_redact_for_log_shortens_data_urls() -> None:
    image = "data:image/png;base64," + "A" * 4000
    redacted = redact_for_log({"spaces": [{"id": "1", "image": image}]})

    assert redacted["spaces"][0]["image"] == f"<data:image/png;base64:{len(image)}b>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_handles_query_param_pairs() -> None:
    redacted = redact_for_log([("key", "AIza"), ("updateMask.fieldPaths", "items")])

    assert redacted == [["key", "<redacted>"], ["updateMask.fieldPaths", "items"]]
