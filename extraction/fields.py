"""
extraction.fields — One extractor per receipt field.

Scanning order conventions:

* *top-down*: blocks sorted by the top edge of their box, lines in the
  same direction; used for header fields (merchant, date, time, phone,
  address) and line items.
* *bottom-up*: blocks sorted by the bottom edge, descending; used for
  amounts and payment method, which live near the foot of a receipt.

Blocks and lines without a bounding box keep their original order and
sort after those that have one.  All sorts are stable, so identical
input always yields identical output.

Multi-candidate fields (total, merchant, date) return every candidate;
:func:`select_winner` picks the highest score and, on ties, the one seen
first in scan order.  Single-pass fields return the first match.

Recognition engines report no usable per-line confidence, so every
line starts from ``default_line_confidence`` whichever adapter produced
it.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Iterator, List, Optional, Pattern, Sequence, Tuple

from recognition.models import RecognitionResult, TextBlock, TextLine

from . import patterns as P
from . import scoring
from .categories import PaymentMethod, payment_method_from_label
from .config import ExtractionConfig
from .dates import find_date, find_time
from .models import ExtractionCandidate, LineItem
from .money import PriceMatch, find_prices, is_valid_price

logger = logging.getLogger(__name__)


# -----------------------------
# Ordering
# -----------------------------

def blocks_top_down(result: RecognitionResult) -> List[TextBlock]:
    return sorted(
        result.blocks,
        key=lambda b: (b.bounding_box is None, b.bounding_box.top if b.bounding_box else 0.0),
    )


def blocks_bottom_up(result: RecognitionResult) -> List[TextBlock]:
    return sorted(
        result.blocks,
        key=lambda b: (b.bounding_box is None, -b.bounding_box.bottom if b.bounding_box else 0.0),
    )


def _lines(block: TextBlock, bottom_up: bool) -> List[TextLine]:
    if bottom_up:
        return sorted(
            block.lines,
            key=lambda ln: (ln.bounding_box is None, -ln.bounding_box.bottom if ln.bounding_box else 0.0),
        )
    return sorted(
        block.lines,
        key=lambda ln: (ln.bounding_box is None, ln.bounding_box.top if ln.bounding_box else 0.0),
    )


def iter_lines(
    blocks: Sequence[TextBlock],
    bottom_up: bool = False,
    limit: Optional[int] = None,
) -> Iterator[Tuple[int, int, TextLine]]:
    """Yield ``(block_index, line_index, line)`` over the first *limit* blocks."""
    for bi, block in enumerate(blocks):
        if limit is not None and bi >= limit:
            return
        for li, line in enumerate(_lines(block, bottom_up)):
            yield bi, li, line


def select_winner(candidates: Sequence[ExtractionCandidate]) -> Optional[ExtractionCandidate]:
    """Highest raw score wins; ties keep the first candidate in scan order.

    Ranking uses the unclamped score, not the reported confidence.  Two
    strong candidates that both clamp to 1.0 are still told apart, so
    ``TOTAL $42.50`` beats a ``CHANGE $5.00`` line below it.  Comparing
    clamped confidences would tie them and fall back to the bottom-most
    line instead.
    """
    best = None
    for cand in candidates:
        if best is None or cand.score > best.score:
            best = cand
    return best


def _last_valid_price(text: str, allow_negative: bool = False) -> Optional[PriceMatch]:
    found = None
    for pm in find_prices(text):
        value = abs(pm.value) if allow_negative else pm.value
        if is_valid_price(value):
            found = pm
    return found


# -----------------------------
# Amounts
# -----------------------------

def find_total_candidates(
    blocks_bu: Sequence[TextBlock], cfg: ExtractionConfig,
) -> List[ExtractionCandidate]:
    out: List[ExtractionCandidate] = []
    for bi, li, line in iter_lines(blocks_bu, bottom_up=True):
        has_keyword = bool(P.TOTAL_RE.search(line.text))
        base = cfg.default_line_confidence
        for pm in find_prices(line.text):
            if not pm.is_valid:
                continue
            score = scoring.total_score(base, has_keyword, bi, pm.symbol is not None, pm.value)
            out.append(ExtractionCandidate(
                field="total",
                value=pm,
                confidence=scoring.confidence(score),
                position=(bi, li),
                score=score,
            ))
    logger.debug("Found %d total candidates", len(out))
    return out


def find_keyword_amount(
    blocks_bu: Sequence[TextBlock],
    keyword_re: Pattern[str],
    exclude_re: Optional[Pattern[str]] = None,
    allow_negative: bool = False,
) -> Optional[Decimal]:
    """First bottom-up keyword line carrying a valid price; returns its last price."""
    for _, _, line in iter_lines(blocks_bu, bottom_up=True):
        if not keyword_re.search(line.text):
            continue
        if exclude_re is not None and exclude_re.search(line.text):
            continue
        pm = _last_valid_price(line.text, allow_negative=allow_negative)
        if pm is not None:
            return abs(pm.value) if allow_negative else pm.value
    return None


def find_subtotal(blocks_bu: Sequence[TextBlock]) -> Optional[Decimal]:
    # "TAX ON 2 ITEMS" is a tax line even though "items" is a subtotal keyword
    return find_keyword_amount(blocks_bu, P.SUBTOTAL_RE, exclude_re=P.TAX_RE)


def find_tax(blocks_bu: Sequence[TextBlock]) -> Optional[Decimal]:
    return find_keyword_amount(blocks_bu, P.TAX_RE)


def find_tip(blocks_bu: Sequence[TextBlock]) -> Optional[Decimal]:
    return find_keyword_amount(blocks_bu, P.TIP_RE)


def find_discount(blocks_bu: Sequence[TextBlock]) -> Optional[Decimal]:
    return find_keyword_amount(blocks_bu, P.DISCOUNT_RE, allow_negative=True)


# -----------------------------
# Header fields
# -----------------------------

def find_merchant_candidates(
    blocks_td: Sequence[TextBlock], cfg: ExtractionConfig,
) -> List[ExtractionCandidate]:
    out: List[ExtractionCandidate] = []
    for bi, li, line in iter_lines(blocks_td, limit=cfg.merchant_blocks):
        text = line.text.strip()
        if len(text) < cfg.min_merchant_len:
            continue
        score = scoring.merchant_score(text, bi, cfg.merchant_blocks)
        out.append(ExtractionCandidate("merchant_name", text, scoring.confidence(score), (bi, li), score))
    return out


def find_merchant(
    blocks_td: Sequence[TextBlock], cfg: ExtractionConfig,
) -> Optional[ExtractionCandidate]:
    winner = select_winner(find_merchant_candidates(blocks_td, cfg))
    if winner is not None and winner.score > 0:
        return winner
    for bi, li, line in iter_lines(blocks_td):
        if line.text.strip():
            return ExtractionCandidate("merchant_name", line.text.strip(), 0.0, (bi, li), 0.0)
    return None


def find_date_candidates(
    blocks_td: Sequence[TextBlock], cfg: ExtractionConfig,
) -> List[ExtractionCandidate]:
    out: List[ExtractionCandidate] = []
    for bi, li, line in iter_lines(blocks_td, limit=cfg.date_blocks):
        hit = find_date(line.text)
        if hit is None:
            continue
        has_context = bool(P.DATE_CONTEXT_RE.search(line.text))
        score = scoring.date_score(has_context, bi, cfg.default_line_confidence, cfg.date_blocks)
        out.append(ExtractionCandidate("date", hit[0], scoring.confidence(score), (bi, li), score))
    return out


def find_time_of_day(blocks_td: Sequence[TextBlock], cfg: ExtractionConfig) -> Optional[str]:
    for _, _, line in iter_lines(blocks_td):
        if P.TIME_CONTEXT_RE.search(line.text):
            t = find_time(line.text)
            if t is not None:
                return t
    for _, _, line in iter_lines(blocks_td, limit=cfg.time_fallback_blocks):
        t = find_time(line.text)
        if t is not None:
            return t
    return None


def find_phone(blocks_td: Sequence[TextBlock], cfg: ExtractionConfig) -> Optional[str]:
    for _, _, line in iter_lines(blocks_td, limit=cfg.phone_blocks):
        m = P.PHONE_RE.search(line.text)
        if m:
            return m.group(0).strip()
    return None


def find_address(blocks_td: Sequence[TextBlock], cfg: ExtractionConfig) -> Optional[str]:
    """Street line (house number + street suffix), joined with a following zip line."""
    lines = [ln.text.strip() for _, _, ln in iter_lines(blocks_td, limit=cfg.address_blocks)]
    for i, text in enumerate(lines):
        if not (P.HOUSE_NUMBER_RE.search(text) and P.STREET_RE.search(text)):
            continue
        if P.ZIP_RE.search(text) or i + 1 >= len(lines):
            return text
        nxt = lines[i + 1]
        if P.ZIP_RE.search(nxt):
            return f"{text}, {nxt}"
        return text
    return None


# -----------------------------
# Payment
# -----------------------------

def find_payment_method(blocks_bu: Sequence[TextBlock]) -> Optional[PaymentMethod]:
    for _, _, line in iter_lines(blocks_bu, bottom_up=True):
        for label, regex in P.PAYMENT_RES:
            if regex.search(line.text):
                return payment_method_from_label(label)
    return None


# -----------------------------
# Line items
# -----------------------------

def _is_item_line(text: str, min_len: int) -> bool:
    if len(text) < min_len:
        return False
    if P.DIGITS_PUNCT_ONLY_RE.match(text) or P.SEPARATOR_ONLY_RE.match(text):
        return False
    return not P.NON_ITEM_RE.search(text)


def _quantity(text: str) -> Optional[Decimal]:
    for regex in P.QUANTITY_RES:
        m = regex.search(text)
        if m:
            return Decimal(m.group(1))
    return None


def _item_name(text: str, prices: Sequence[PriceMatch]) -> str:
    parts = []
    cursor = 0
    for pm in prices:
        parts.append(text[cursor:pm.start])
        cursor = pm.end
    parts.append(text[cursor:])
    name = " ".join(parts)
    name = P.QUANTITY_MARKER_RE.sub(" ", name)
    name = re.sub(r"\s+", " ", name)
    return name.strip(" \t:-*.,@")


def parse_line_item(text: str, cfg: ExtractionConfig) -> Optional[LineItem]:
    text = text.strip()
    if not _is_item_line(text, cfg.min_item_name_len):
        return None
    prices = find_prices(text)
    if not prices or any(pm.value < 0 for pm in prices):
        return None
    total_price = prices[-1].value
    unit_price = prices[0].value if len(prices) > 1 else None
    name = _item_name(text, prices)
    if len(name) < cfg.min_item_name_len:
        return None
    return LineItem(
        name=name,
        total_price=total_price,
        quantity=_quantity(text),
        unit_price=unit_price,
    )


def find_line_items(blocks_td: Sequence[TextBlock], cfg: ExtractionConfig) -> List[LineItem]:
    stop = len(blocks_td) - cfg.item_footer_skip
    region = list(blocks_td[cfg.item_header_skip:max(cfg.item_header_skip, stop)])
    items = []
    for _, _, line in iter_lines(region):
        item = parse_line_item(line.text, cfg)
        if item is not None:
            items.append(item)
    logger.debug("Found %d line items in %d middle blocks", len(items), len(region))
    return items


# -----------------------------
# Currency
# -----------------------------

def detect_currency(total: Optional[PriceMatch], full_text: str, default: str) -> str:
    if total is not None and total.symbol:
        return P.CURRENCY_BY_SYMBOL.get(total.symbol, default)
    m = P.CURRENCY_CODE_RE.search(full_text)
    if m:
        return m.group(1)
    m = P.CURRENCY_SYMBOL_RE.search(full_text)
    if m:
        return P.CURRENCY_BY_SYMBOL.get(m.group(0), default)
    return default
