"""Selector fallback chains and value parsing for listing markup.

Every field is read with an ordered tuple of CSS selectors, newest layout
first and legacy fallbacks last. The first selector that yields a usable value
wins; results of different selectors are never merged.

Prices are the awkward part. Marketplaces render them as a single text node
("$23.94"), split across sibling nodes ("$" "23" "94") or as a bare digit
blob ("2394"). `parse_price_parts` handles all three and reports how the value
was obtained through `PriceConfidence`, so a guessed decimal point is visible
to callers.
"""

import re
from collections.abc import Iterable, Sequence
from decimal import Decimal, InvalidOperation

from bs4 import Tag

from ..models import ParsedPrice, PriceConfidence

STANDARD_PRICE_RE = re.compile(r"\$\s*([\d,]+\.\d{2})")
WHOLE_DOLLARS_RE = re.compile(r"^\$\s*([\d,]+)$")
BARE_DECIMAL_RE = re.compile(r"(\d[\d,]*\.\d{2})(?!\d)")
DIGIT_BLOB_RE = re.compile(r"^\$?\s*(\d+)$")
DOLLARS_SPAN_RE = re.compile(r"^\$\s*(\d[\d,]*)$")
CENTS_SPAN_RE = re.compile(r"^\d{2}$")

RATING_TEXT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:out of\s*5|stars?)", re.I)
LEADING_NUMBER_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")
WIDTH_RE = re.compile(r"width:\s*(\d+(?:\.\d+)?)%")
REVIEW_COUNT_RE = re.compile(r"(\d[\d,]*)")


def try_selectors(root: Tag, selectors: Iterable[str]) -> list[Tag]:
    """Return the matches of the first selector that matches anything.

    Args:
        root: Element or document to search under.
        selectors: CSS selectors in priority order.

    Returns:
        Matching elements of the first productive selector, or an empty list.
    """
    for selector in selectors:
        found = root.select(selector)
        if found:
            return found
    return []


def select_first(root: Tag, selectors: Iterable[str]) -> Tag | None:
    for selector in selectors:
        tag = root.select_one(selector)
        if tag is not None:
            return tag
    return None


def extract_text(root: Tag, selectors: Iterable[str]) -> str | None:
    """Return the first non-empty text found by the selector chain."""
    for selector in selectors:
        tag = root.select_one(selector)
        if tag is None:
            continue
        text = " ".join(tag.get_text(" ", strip=True).split())
        if text:
            return text
    return None


def extract_attribute(root: Tag, selectors: Iterable[str], attribute: str) -> str | None:
    """Return the first non-empty attribute value found by the selector chain."""
    for selector in selectors:
        tag = root.select_one(selector)
        if tag is None:
            continue
        value = tag.get(attribute)
        if isinstance(value, list):
            value = " ".join(value)
        if value and value.strip():
            return value.strip()
    return None


def _to_decimal(raw: str) -> Decimal | None:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None


def _insert_decimal(digits: str) -> Decimal:
    """Guess a price from a digit blob with no separator.

    Three and four digit blobs are read as dollars and cents ("2394" becomes
    23.94, "999" becomes 9.99). Anything else is taken as whole dollars.
    """
    if 3 <= len(digits) <= 4:
        return Decimal(f"{digits[:-2]}.{digits[-2:]}")
    return Decimal(digits)


def parse_price_parts(parts: Sequence[str]) -> ParsedPrice | None:
    """Parse a price from the text fragments of one price element.

    Args:
        parts: Text of the element, one entry per text node. A plain string
            price is passed as a single-entry sequence.

    Returns:
        Parsed price with its confidence, or None when nothing looks like a
        price.
    """
    parts = [part.strip() for part in parts if part and part.strip()]
    if not parts:
        return None
    text = " ".join(parts)

    match = STANDARD_PRICE_RE.search(text)
    if match:
        amount = _to_decimal(match.group(1))
        if amount is not None:
            return ParsedPrice(amount=amount, confidence=PriceConfidence.EXACT)

    if len(parts) >= 2:
        numeric = [re.sub(r"[^\d.]", "", part) for part in parts]
        numeric = [part for part in numeric if re.search(r"\d", part)]
        for part in numeric:
            if re.fullmatch(r"\d+\.\d+", part):
                return ParsedPrice(amount=Decimal(part), confidence=PriceConfidence.EXACT)
        if len(numeric) >= 2 and re.fullmatch(r"\d{2}", numeric[-1]):
            whole = "".join(numeric[:-1]).replace(".", "")
            if whole:
                return ParsedPrice(
                    amount=Decimal(f"{whole}.{numeric[-1]}"), confidence=PriceConfidence.SPLIT
                )

    match = WHOLE_DOLLARS_RE.match(text)
    if match:
        amount = _to_decimal(match.group(1))
        if amount is not None:
            return ParsedPrice(amount=amount, confidence=PriceConfidence.EXACT)

    match = BARE_DECIMAL_RE.search(text)
    if match:
        amount = _to_decimal(match.group(1))
        if amount is not None:
            return ParsedPrice(amount=amount, confidence=PriceConfidence.EXACT)

    match = DIGIT_BLOB_RE.match(text.replace(",", ""))
    if match:
        return ParsedPrice(
            amount=_insert_decimal(match.group(1)), confidence=PriceConfidence.HEURISTIC
        )

    return None


def parse_price(value: str | Sequence[str]) -> Decimal | None:
    """Parse a price from a string or from split text fragments.

    >>> parse_price("$23.94")
    Decimal('23.94')
    >>> parse_price(["$", "23", "94"])
    Decimal('23.94')
    """
    parts = [value] if isinstance(value, str) else list(value)
    parsed = parse_price_parts(parts)
    return parsed.amount if parsed else None


def price_parts(tag: Tag) -> list[str]:
    """Text fragments of a price element, one per text node."""
    return list(tag.stripped_strings)


def _price_from_spans(root: Tag) -> ParsedPrice | None:
    """Last resort: a "$" span for the dollars followed by a two digit span."""
    dollars = None
    for span in root.find_all("span"):
        text = span.get_text(strip=True)
        if dollars is None:
            match = DOLLARS_SPAN_RE.match(text)
            if match:
                dollars = match.group(1).replace(",", "")
        elif CENTS_SPAN_RE.match(text):
            return ParsedPrice(amount=Decimal(f"{dollars}.{text}"), confidence=PriceConfidence.SPLIT)
    if dollars is not None:
        return ParsedPrice(amount=Decimal(dollars), confidence=PriceConfidence.EXACT)
    return None


def extract_price(root: Tag, selectors: Iterable[str]) -> ParsedPrice | None:
    """Read a price with the selector chain, then fall back to loose spans.

    A `content` attribute (microdata `itemprop="price"`) is preferred over the
    element text when present.
    """
    for selector in selectors:
        tag = root.select_one(selector)
        if tag is None:
            continue
        content = tag.get("content")
        if isinstance(content, str) and content.strip():
            parsed = parse_price_parts([content])
            if parsed:
                return parsed
        parsed = parse_price_parts(price_parts(tag))
        if parsed:
            return parsed
    return _price_from_spans(root)


def parse_shipping(text: str | None) -> Decimal | None:
    """Shipping cost from a fulfilment badge. "Free" reads as zero."""
    if not text:
        return None
    if "free" in text.lower():
        return Decimal("0")
    match = STANDARD_PRICE_RE.search(text)
    if match:
        return _to_decimal(match.group(1))
    return None


def parse_rating(tag: Tag | None) -> float | None:
    """Average star rating from an `aria-label`, the text or a CSS width.

    Handles "4.5 out of 5 stars", "4.5 Stars" and `style="width: 90%"`
    (100% meaning five stars).
    """
    if tag is None:
        return None

    for source in (tag.get("aria-label"), tag.get("title"), tag.get_text(" ", strip=True)):
        if not isinstance(source, str) or not source:
            continue
        match = RATING_TEXT_RE.search(source)
        if match:
            return float(match.group(1))

    style = tag.get("style")
    if not style:
        styled = tag.find(style=WIDTH_RE)
        style = styled.get("style") if styled else None
    if isinstance(style, str):
        match = WIDTH_RE.search(style)
        if match:
            return round(float(match.group(1)) / 20, 1)

    match = LEADING_NUMBER_RE.match(tag.get_text(strip=True))
    if match and float(match.group(1)) <= 5:
        return float(match.group(1))
    return None


def parse_review_count(text: str | None) -> int | None:
    """Review count from text such as "(1,234)" or "1,234 ratings"."""
    if not text:
        return None
    match = REVIEW_COUNT_RE.search(text)
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def extract_image_url(root: Tag, selectors: Iterable[str]) -> str | None:
    """Image address from `src`, then `data-src`, then the first `srcset` entry."""
    tag = select_first(root, selectors)
    if tag is None:
        return None
    for attribute in ("src", "data-src"):
        value = tag.get(attribute)
        if isinstance(value, str) and value and not value.startswith("data:"):
            return value
    srcset = tag.get("srcset")
    if isinstance(srcset, str) and srcset.strip():
        return srcset.split(",")[0].strip().split(" ")[0]
    return None
