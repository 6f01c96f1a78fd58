"""Password check for the dashboard session gate."""

from __future__ import annotations

import hmac


def verify_password(candidate: str | None, expected: str) -> bool:
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
