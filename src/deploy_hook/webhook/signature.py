"""GitHub webhook HMAC-SHA256 signatures."""

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value GitHub would send for ``body``."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def signature_from_headers(hub_signature: str | None, github_signature: str | None) -> str | None:
    """Pick X-Hub-Signature-256, falling back to X-GitHub-Signature-256."""
    return hub_signature or github_signature or None


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Verify a webhook signature against the raw, unparsed request body.

    The ``sha256=`` prefix is optional. Returns False for a missing,
    malformed or mismatched signature; never raises.
    """
    if not signature:
        logger.warning("No signature header found")
        return False

    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]

    expected = compute_signature(body, secret)[len(SIGNATURE_PREFIX):]
    try:
        provided = signature.encode("ascii")
    except UnicodeEncodeError:
        logger.warning("Signature header is not ASCII")
        return False

    return hmac.compare_digest(expected.encode("ascii"), provided)
