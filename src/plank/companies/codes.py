"""Company access codes.

Codes are chosen by admins, may contain letters, digits, hyphens and
underscores, and are stored upper-case. Lookups are case-insensitive.
"""

from __future__ import annotations

import re

CODE_PATTERN = re.compile(r"^[A-Z0-9_-]+$", re.IGNORECASE)
CODE_MAX_LENGTH = 32


def normalize_company_code(code: str) -> str:
    """Trim and upper-case a code for storage and lookup."""
    return code.strip().upper()


def validate_company_code(code: str) -> str:
    """Return the normalized code or raise ValueError."""
    normalized = normalize_company_code(code)
    if not normalized:
        msg = "Company code is required"
        raise ValueError(msg)
    if len(normalized) > CODE_MAX_LENGTH:
        msg = f"Company code must be at most {CODE_MAX_LENGTH} characters"
        raise ValueError(msg)
    if not CODE_PATTERN.match(normalized):
        msg = "Company code can only contain letters, numbers, hyphens, and underscores"
        raise ValueError(msg)
    return normalized
