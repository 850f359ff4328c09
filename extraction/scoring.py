"""
extraction.scoring — Additive confidence rules, one small function each.

Every rule returns the term it contributes; the field extractors add
them up and rank candidates by the raw sum.  Reported confidences are
the sum clamped to ``[0, 1]``.
"""

from __future__ import annotations

from decimal import Decimal

from normalization.utils import clamp01

from .patterns import KNOWN_MERCHANT_RE, MERCHANT_NOISE_RE

# -----------------------------
# Total amount
# -----------------------------

TOTAL_KEYWORD_BONUS = 0.3
CURRENCY_SYMBOL_BONUS = 0.1
PLAUSIBLE_AMOUNT_BONUS = 0.1
SMALL_AMOUNT_PENALTY = -0.2


def total_keyword_bonus(has_keyword: bool) -> float:
    return TOTAL_KEYWORD_BONUS if has_keyword else 0.0


def total_position_bonus(block_index: int) -> float:
    """``block_index`` counts from the bottom of the page."""
    if block_index < 3:
        return 0.2
    if block_index < 5:
        return 0.1
    return 0.0


def currency_symbol_bonus(has_symbol: bool) -> float:
    return CURRENCY_SYMBOL_BONUS if has_symbol else 0.0


def amount_plausibility(value: Decimal) -> float:
    term = 0.0
    if Decimal("0.01") < value < Decimal("10000"):
        term += PLAUSIBLE_AMOUNT_BONUS
    if value < Decimal("1.0"):
        term += SMALL_AMOUNT_PENALTY
    return term


def total_score(
    line_confidence: float,
    has_keyword: bool,
    block_index: int,
    has_symbol: bool,
    value: Decimal,
) -> float:
    return (
        line_confidence
        + total_keyword_bonus(has_keyword)
        + total_position_bonus(block_index)
        + currency_symbol_bonus(has_symbol)
        + amount_plausibility(value)
    )


# -----------------------------
# Merchant name
# -----------------------------

def merchant_keyword_bonus(text: str) -> float:
    return 0.4 if KNOWN_MERCHANT_RE.search(text) else 0.0


def merchant_position_bonus(block_index: int, window: int = 5) -> float:
    return max(0, window - block_index) * 0.1


def merchant_shape_bonus(text: str) -> float:
    term = 0.0
    if len(text) > 3 and text.isupper():
        term += 0.2
    if 4 <= len(text) <= 50:
        term += 0.1
    return term


def merchant_noise_penalty(text: str) -> float:
    return -0.3 if MERCHANT_NOISE_RE.search(text) else 0.0


def merchant_score(text: str, block_index: int, window: int = 5) -> float:
    return (
        merchant_keyword_bonus(text)
        + merchant_position_bonus(block_index, window)
        + merchant_shape_bonus(text)
        + merchant_noise_penalty(text)
    )


# -----------------------------
# Date
# -----------------------------

DATE_BASE = 0.5


def date_score(has_context: bool, block_index: int, line_confidence: float, window: int = 8) -> float:
    return (
        DATE_BASE
        + (0.3 if has_context else 0.0)
        + max(0, window - block_index) * 0.05
        + line_confidence * 0.2
    )


def confidence(score: float) -> float:
    return clamp01(score)
