"""Security helpers for webhook signature verification."""
import hashlib
import hmac
import logging
from typing import Mapping, Optional
from platforms.exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)


def validate_signature(
    secret: Optional[str],
    raw_body: bytes,
    provided_signature: Optional[str],
    algorithm: str = "sha1",
    prefix: str = "sha1="
) -> bool:
    """
    Verify an HMAC webhook signature.

    Args:
        secret: Shared app secret. Empty or None disables the check.
        raw_body: Request body exactly as received
        provided_signature: Signature header value, e.g. ``sha1=<hex>``
        algorithm: hashlib algorithm name
        prefix: Prefix the platform puts before the hex digest

    Returns:
        True if the signature is valid or no secret is configured
    """
    if not secret:
        logger.debug("No app secret configured, skipping signature check")
        return True

    if not provided_signature:
        return False

    if isinstance(raw_body, str):
        raw_body = raw_body.encode()

    try:
        digest = hmac.new(secret.encode(), raw_body, getattr(hashlib, algorithm)).hexdigest()
        return hmac.compare_digest(
            provided_signature.encode(),
            f"{prefix}{digest}".encode()
        )
    except (TypeError, ValueError, AttributeError, UnicodeEncodeError) as e:
        logger.warning(f"Error verifying signature: {e}")
        return False


def get_header(headers: Mapping[str, str], name: str, default: str = "") -> str:
    """
    Look up a header ignoring case and treating '-' and '_' alike.

    ``X_HUB_SIGNATURE`` and ``X-Hub-Signature`` resolve to the same header.
    """
    wanted = name.lower().replace("_", "-")
    for key, value in headers.items():
        if key.lower().replace("_", "-") == wanted:
            return value
    return default


def verify_webhook_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: Optional[str],
    signature_header: str = "X-Hub-Signature"
) -> bool:
    """
    Strict signature check for single-platform endpoints.

    Returns:
        True if verified, raises AuthenticationFailed if not
    """
    if not secret:
        return True

    signature = get_header(headers, signature_header)
    if not signature:
        raise AuthenticationFailed("Missing signature header")

    if not validate_signature(secret, raw_body, signature):
        raise AuthenticationFailed("Invalid signature")

    return True
