"""
extraction.patterns — Keyword tables and compiled regular expressions.

Keywords match on word boundaries and case-insensitively, so
``"SUBTOTAL"`` does not count as a ``"total"`` line while
``"SUB TOTAL"`` does.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Pattern, Tuple


def keyword_regex(words: Iterable[str]) -> Pattern[str]:
    """Compile a case-insensitive alternation bounded by non-alphanumerics."""
    alts = sorted({w.lower() for w in words}, key=len, reverse=True)
    body = "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in alts)
    return re.compile(r"(?<![a-z0-9])(?:" + body + r")(?![a-z0-9])", re.IGNORECASE)


# -----------------------------
# Amount keywords
# -----------------------------

TOTAL_KEYWORDS: Tuple[str, ...] = (
    "total", "totai", "tota1", "amount due", "amt due", "balance", "paid",
    "amt", "grand total", "final total", "net total", "sum", "due", "owing",
    "charge", "payment", "invoice total", "bill total", "order total",
)
SUBTOTAL_KEYWORDS = ("subtotal", "sub total", "sub-total", "merchandise", "items")
TAX_KEYWORDS = ("tax", "gst", "hst", "pst", "vat", "sales tax")
TIP_KEYWORDS = ("tip", "gratuity")
DISCOUNT_KEYWORDS = ("discount", "disc", "coupon", "promo", "savings")

TOTAL_RE = keyword_regex(TOTAL_KEYWORDS)
SUBTOTAL_RE = keyword_regex(SUBTOTAL_KEYWORDS)
TAX_RE = keyword_regex(TAX_KEYWORDS)
TIP_RE = keyword_regex(TIP_KEYWORDS)
DISCOUNT_RE = keyword_regex(DISCOUNT_KEYWORDS)


# -----------------------------
# Merchant
# -----------------------------

KNOWN_MERCHANTS = (
    "walmart", "target", "starbucks", "mcdonalds", "mcdonald's", "subway",
    "cvs", "walgreens", "kroger", "publix", "costco", "best buy",
    "home depot", "lowes", "lowe's", "amazon", "safeway", "albertsons",
    "whole foods", "trader joes", "trader joe's", "aldi", "wegmans",
    "dunkin", "burger king", "kfc", "pizza hut", "dominos", "domino's",
    "taco bell", "shell", "exxon", "bp", "chevron", "mobil", "citgo",
    "marathon",
)
KNOWN_MERCHANT_RE = keyword_regex(KNOWN_MERCHANTS)

# Lines that look like boilerplate rather than a store name
MERCHANT_NOISE_RE = re.compile(
    r"\d{2}[/\-]\d{2}|\d{3}[\-\s]\d{3}|receipt|transaction", re.IGNORECASE,
)


# -----------------------------
# Date / time context
# -----------------------------

DATE_CONTEXT_RE = re.compile(r"(?<![a-z])(?:date|time|tran)", re.IGNORECASE)
TIME_CONTEXT_RE = re.compile(r"(?<![a-z])(?:time|tran)", re.IGNORECASE)


# -----------------------------
# Contact details
# -----------------------------

PHONE_RE = re.compile(r"(?<!\d)\(?\d{3}\)?[-\s.]?\d{3}[-\s.]?\d{4}(?!\d)")

STREET_SUFFIXES = (
    "street", "st", "avenue", "ave", "road", "rd", "boulevard", "blvd",
    "drive", "dr", "lane", "ln", "way", "court", "ct", "place", "pl",
    "highway", "hwy", "parkway", "pkwy", "suite", "ste", "plaza", "square",
)
STREET_RE = keyword_regex(STREET_SUFFIXES)
HOUSE_NUMBER_RE = re.compile(r"^\s*\d{1,6}[a-z]?\s+[a-z]", re.IGNORECASE)
ZIP_RE = re.compile(r"(?<!\d)\d{5}(?:-\d{4})?(?!\d)")


# -----------------------------
# Payment methods (checked in this order)
# -----------------------------

PAYMENT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "cash": ("cash", "change", "tendered"),
    "credit": ("credit", "visa", "mastercard", "amex", "discover", "american express"),
    "debit": ("debit", "pin", "chip"),
    "gift": ("gift card", "store credit", "rewards"),
    "mobile": ("apple pay", "google pay", "samsung pay", "paypal", "venmo"),
}
PAYMENT_RES: Tuple[Tuple[str, Pattern[str]], ...] = tuple(
    (label, keyword_regex(words)) for label, words in PAYMENT_KEYWORDS.items()
)


# -----------------------------
# Line items
# -----------------------------

NON_ITEM_KEYWORDS = (
    "total", "subtotal", "tax", "change", "cash", "credit", "debit",
    "thank you", "receipt", "store", "cashier", "date", "time", "phone",
    "address", "welcome", "visit", "again", "transaction", "refund",
    "return", "policy", "hours", "open", "closed", "customer", "service",
    "manager", "associate", "trainee", "balance", "amount due", "tip",
)
NON_ITEM_RE = keyword_regex(NON_ITEM_KEYWORDS)
DIGITS_PUNCT_ONLY_RE = re.compile(r"^[\d\s\-:/.,$]+$")
SEPARATOR_ONLY_RE = re.compile(r"^[*\-=_+#~.\s]+$")

QUANTITY_RES: Tuple[Pattern[str], ...] = (
    re.compile(r"(?<![\d.])(\d+)\s*x(?![a-z])", re.IGNORECASE),
    re.compile(r"(?<![\d.])(\d+)\s*@", re.IGNORECASE),
    re.compile(r"\bqty\s*:?\s*(\d+)", re.IGNORECASE),
    re.compile(r"\bquantity\s*:?\s*(\d+)", re.IGNORECASE),
)
QUANTITY_MARKER_RE = re.compile(
    r"(?<![\d.])\d+\s*x(?![a-z])\s*|(?<![\d.])\d+\s*@\s*|\bqty\s*:?\s*\d+|\bquantity\s*:?\s*\d+",
    re.IGNORECASE,
)


# -----------------------------
# Currency
# -----------------------------

CURRENCY_BY_SYMBOL: Dict[str, str] = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "₹": "INR",
    "Rs": "INR",
    "Rs.": "INR",
    "₨": "INR",
    "¥": "JPY",
    "₩": "KRW",
    "₽": "RUB",
    "₱": "PHP",
}
CURRENCY_CODE_RE = re.compile(r"\b(USD|EUR|GBP|INR|JPY|CAD|AUD)\b")
CURRENCY_SYMBOL_RE = re.compile(r"[$€£₹₨¥₩₽₱]|\bRs\.?(?=\s*\d)")
