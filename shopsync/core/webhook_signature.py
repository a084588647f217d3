"""
Webhook signature verification for identity provider deliveries

Deliveries are signed the Svix way: HMAC-SHA256 over
"{msg_id}.{timestamp}.{raw_body}" with the base64 key behind the
"whsec_" prefix of the signing secret. The signature header holds one or
more space-separated "v1,<base64 digest>" entries.
"""

import base64
import binascii
import hashlib
import hmac
import time
from typing import Optional, Union

SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"
DEFAULT_TOLERANCE_SECONDS = 300

MSG_ID_HEADER = "svix-id"
TIMESTAMP_HEADER = "svix-timestamp"
SIGNATURE_HEADER = "svix-signature"


class WebhookVerificationError(Exception):
    """Delivery could not be authenticated"""


def _decode_secret(secret: str) -> bytes:
    if not secret:
        raise WebhookVerificationError("Signing secret is empty")

    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]

    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise WebhookVerificationError("Signing secret is not valid base64") from e


def _as_text(payload: Union[bytes, str]) -> str:
    if isinstance(payload, bytes):
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WebhookVerificationError("Payload is not valid UTF-8") from e
    return payload


def compute_signature(secret: str, msg_id: str, timestamp: str, payload: Union[bytes, str]) -> str:
    """Base64 HMAC-SHA256 digest of the signed content"""
    key = _decode_secret(secret)
    signed_content = f"{msg_id}.{timestamp}.{_as_text(payload)}".encode("utf-8")
    digest = hmac.new(key, signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def sign(secret: str, msg_id: str, timestamp: Union[int, str], payload: Union[bytes, str]) -> str:
    """Build a signature header value for a delivery"""
    signature = compute_signature(secret, msg_id, str(timestamp), payload)
    return f"{SIGNATURE_VERSION},{signature}"


def _check_timestamp(timestamp: str, tolerance: int, now: Optional[float]) -> None:
    try:
        sent_at = int(timestamp)
    except (TypeError, ValueError) as e:
        raise WebhookVerificationError("Invalid timestamp header") from e

    current = int(now if now is not None else time.time())
    if sent_at < current - tolerance:
        raise WebhookVerificationError("Message timestamp too old")
    if sent_at > current + tolerance:
        raise WebhookVerificationError("Message timestamp too new")


def verify(
    secret: str,
    payload: Union[bytes, str],
    msg_id: Optional[str],
    timestamp: Optional[str],
    signature_header: Optional[str],
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> None:
    """
    Verify a delivery against the signing secret

    Raises:
        WebhookVerificationError: if any header is missing, the timestamp is
            outside the tolerance window, or no v1 signature matches
    """
    if not msg_id or not timestamp or not signature_header:
        raise WebhookVerificationError("Missing required headers")

    _check_timestamp(timestamp, tolerance, now)

    expected = compute_signature(secret, msg_id, timestamp, payload)

    for entry in signature_header.split():
        version, _, candidate = entry.partition(",")
        if version != SIGNATURE_VERSION:
            continue
        if hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8")):
            return

    raise WebhookVerificationError("No matching signature found")
