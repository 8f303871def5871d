from __future__ import annotations

from hydrai._redact import redact_for_log, redact_url


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "source": "client",
        "token": "abc",
        "headers": {"Authorization": "Bearer abc", "content-type": "application/json"},
    }

    redacted = redact_for_log(payload)
    assert redacted["source"] == "client"
    assert redacted["token"] == "<redacted>"
    assert redacted["headers"]["Authorization"] == "<redacted>"
    assert redacted["headers"]["content-type"] == "application/json"


def test_redact_for_log_walks_lists_and_keeps_scalars() -> None:
    payload = {"sequence": [[1.0, 14], [2.0, 15]], "items": [{"token": "abc", "n": 3}], "modo": "hora"}

    redacted = redact_for_log(payload)
    assert redacted["sequence"] == [[1.0, 14], [2.0, 15]]
    assert redacted["items"] == [{"token": "<redacted>", "n": 3}]
    assert redacted["modo"] == "hora"


def test_redact_url_hides_token_query_parameter() -> None:
    url = redact_url("wss://hydrai.test/ws?token=secret%2Fvalue&room=kitchen")
    assert "secret" not in url
    assert "token=<redacted>" in url
    assert "room=kitchen" in url


def test_redact_url_without_query_is_unchanged() -> None:
    assert redact_url("wss://hydrai.test/ws") == "wss://hydrai.test/ws"
