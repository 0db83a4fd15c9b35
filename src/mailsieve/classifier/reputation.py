"""Sender reputation signal for spam scoring.

Looks only at the From address and display name. No network lookups are
made; the checks are cheap string tests.
"""

from __future__ import annotations

import regex

WEIGHT_NOREPLY = 10
WEIGHT_DIGIT_RUN = 20
WEIGHT_MISSING_NAME = 15
WEIGHT_BRAND_MISMATCH = 50
REPUTATION_SCORE_CAP = 100

NOREPLY_MARKER = "noreply@"
DIGIT_RUN_PATTERN = regex.compile(r"\d{5,}")

# Display-name brands commonly spoofed in phishing
IMPERSONATED_BRANDS = ("paypal", "bank")


def score_sender_reputation(from_address: str | None, from_name: str | None) -> int:
    """Score how untrustworthy a sender looks.

    Args:
        from_address: Sender email address
        from_name: Sender display name (None or empty when absent)

    Returns:
        Reputation score in [0, 100]
    """
    address = from_address or ""
    score = 0

    if NOREPLY_MARKER in address:
        score += WEIGHT_NOREPLY

    # Digit runs anywhere in the address, e.g. user123456@ or @random123456.com
    if DIGIT_RUN_PATTERN.search(address):
        score += WEIGHT_DIGIT_RUN

    if not from_name:
        score += WEIGHT_MISSING_NAME
    elif address:
        name_lower = from_name.lower()
        address_lower = address.lower()
        for brand in IMPERSONATED_BRANDS:
            if brand in name_lower and brand not in address_lower:
                score += WEIGHT_BRAND_MISMATCH

    return min(REPUTATION_SCORE_CAP, score)
