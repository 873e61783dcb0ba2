# sprintboard/services/github.py
"""Pull request webhook helpers"""
import hashlib
import hmac
from typing import Optional

from sprintboard.db.models.enums import CiStatus

SIGNATURE_PREFIX = "sha256="


def derive_ci_status(action: str, merged: Optional[bool]) -> Optional[CiStatus]:
    """CI badge implied by a pull_request action, or None to leave it as is.

    `synchronize` (new commits pushed) and every other action carry no
    badge change.
    """
    if action in ("opened", "reopened"):
        return CiStatus.PENDING
    if action == "closed":
        return CiStatus.MERGED if merged else CiStatus.CLOSED
    return None


def generate_signature(secret: str, payload: bytes) -> str:
    """HMAC-SHA256 signature in GitHub's X-Hub-Signature-256 format"""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, payload: bytes, signature_header: Optional[str]) -> bool:
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(generate_signature(secret, payload), signature_header)
