"""
Unit tests for webhook signature verification
"""

import base64

import pytest

from shopsync.core.webhook_signature import (
    WebhookVerificationError,
    compute_signature,
    sign,
    verify,
)

SECRET = "whsec_" + base64.b64encode(b"another-signing-key").decode("ascii")
NOW = 1_700_000_000
BODY = b'{"type":"user.created","data":{"id":"user_1"}}'


def test_sign_and_verify():
    """A header produced by sign() verifies"""
    header = sign(SECRET, "msg_1", NOW, BODY)
    assert header.startswith("v1,")

    verify(SECRET, BODY, "msg_1", str(NOW), header, now=NOW)


def test_verify_accepts_any_matching_entry():
    """Secret rotation: one of several signatures is enough"""
    stale = sign("whsec_" + base64.b64encode(b"old-key").decode("ascii"), "msg_1", NOW, BODY)
    current = sign(SECRET, "msg_1", NOW, BODY)

    verify(SECRET, BODY, "msg_1", str(NOW), f"{stale} {current}", now=NOW)


def test_verify_ignores_other_versions():
    signature = compute_signature(SECRET, "msg_1", str(NOW), BODY)

    with pytest.raises(WebhookVerificationError, match="No matching signature"):
        verify(SECRET, BODY, "msg_1", str(NOW), f"v2,{signature}", now=NOW)


def test_verify_rejects_tampered_body():
    header = sign(SECRET, "msg_1", NOW, BODY)

    with pytest.raises(WebhookVerificationError, match="No matching signature"):
        verify(SECRET, BODY.replace(b"user_1", b"user_2"), "msg_1", str(NOW), header, now=NOW)


def test_verify_rejects_other_message_id():
    header = sign(SECRET, "msg_1", NOW, BODY)

    with pytest.raises(WebhookVerificationError):
        verify(SECRET, BODY, "msg_2", str(NOW), header, now=NOW)


@pytest.mark.parametrize("msg_id,timestamp,header", [
    (None, str(NOW), "v1,abc"),
    ("msg_1", None, "v1,abc"),
    ("msg_1", str(NOW), None),
    ("msg_1", str(NOW), ""),
])
def test_verify_requires_all_headers(msg_id, timestamp, header):
    with pytest.raises(WebhookVerificationError, match="Missing required headers"):
        verify(SECRET, BODY, msg_id, timestamp, header, now=NOW)


def test_verify_timestamp_window():
    """Timestamps outside the tolerance are rejected both ways"""
    old = NOW - 301
    new = NOW + 301

    with pytest.raises(WebhookVerificationError, match="too old"):
        verify(SECRET, BODY, "msg_1", str(old), sign(SECRET, "msg_1", old, BODY), now=NOW)

    with pytest.raises(WebhookVerificationError, match="too new"):
        verify(SECRET, BODY, "msg_1", str(new), sign(SECRET, "msg_1", new, BODY), now=NOW)

    edge = NOW - 300
    verify(SECRET, BODY, "msg_1", str(edge), sign(SECRET, "msg_1", edge, BODY), now=NOW)


def test_verify_rejects_non_numeric_timestamp():
    with pytest.raises(WebhookVerificationError, match="Invalid timestamp"):
        verify(SECRET, BODY, "msg_1", "yesterday", "v1,abc", now=NOW)


def test_malformed_secret():
    with pytest.raises(WebhookVerificationError, match="not valid base64"):
        sign("whsec_***not-base64***", "msg_1", NOW, BODY)

    with pytest.raises(WebhookVerificationError, match="empty"):
        sign("", "msg_1", NOW, BODY)


def test_str_and_bytes_payloads_sign_identically():
    assert sign(SECRET, "msg_1", NOW, BODY) == sign(SECRET, "msg_1", NOW, BODY.decode("utf-8"))
