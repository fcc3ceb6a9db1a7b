"""Rule-based extraction of order slots from a single utterance.

Stages run in a fixed order on a lower-cased copy of the utterance: quantity,
then retailer, then product name. Each stage removes the span it matched so a
later stage never reads it again (a retailer is not mistaken for part of the
product description).
"""

from __future__ import annotations

import re

from voice_intake.memory.models import SlotState

DIGITS_PATTERN = re.compile(r"\d+")
MAX_QUANTITY_DIGITS = 6

NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

# Multi-word phrases must precede their single-word prefixes.
RETAILER_PHRASES = (
    "amazon grocery",
    "amazon fresh",
    "amazon",
    "walmart",
    "target",
    "costco",
)

RETAILER_ALIASES = {
    "amazon grocery": "Amazon Grocery",
    "amazon fresh": "Amazon Grocery",
}

FILLER_PHRASES = (
    "i want",
    "i need",
    "buy",
    "purchase",
    "order",
    "can i get",
    "please",
    "looking for",
    "search for",
    "find",
    "from",
    "a",
    "an",
    "the",
)

# Narrower set applied to the raw utterance when the full strip leaves nothing.
FALLBACK_FILLER_PHRASES = (
    "i want",
    "i need",
    "buy",
    "purchase",
    "order",
    "please",
)

_PUNCTUATION = re.compile(r"[.,?!]")
_WHITESPACE = re.compile(r"\s+")


def _word_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)


_NUMBER_WORD_PATTERNS = {word: _word_pattern(word) for word in NUMBER_WORDS}
_FILLER_PATTERNS = [_word_pattern(phrase) for phrase in FILLER_PHRASES]
_FALLBACK_PATTERNS = [_word_pattern(phrase) for phrase in FALLBACK_FILLER_PHRASES]


def _cut(text: str, start: int, end: int) -> str:
    return text[:start] + text[end:]


def _tidy(text: str) -> str:
    return _WHITESPACE.sub(" ", _PUNCTUATION.sub("", text)).strip()


def normalize_retailer(phrase: str) -> str:
    return RETAILER_ALIASES.get(phrase, phrase.title())


def extract_quantity(text: str) -> tuple[int | None, str]:
    """Return the first quantity mentioned and the text with its span removed."""

    match = DIGITS_PATTERN.search(text)
    if match:
        digits = match.group()
        value = int(digits) if len(digits) <= MAX_QUANTITY_DIGITS else 0
        return (value if value > 0 else None), _cut(text, match.start(), match.end())

    for word, value in NUMBER_WORDS.items():
        match = _NUMBER_WORD_PATTERNS[word].search(text)
        if match:
            return value, _cut(text, match.start(), match.end())

    return None, text


def extract_retailer(text: str) -> tuple[str | None, str]:
    """Return the canonical retailer for the first known phrase and the remaining text."""

    for phrase in RETAILER_PHRASES:
        index = text.find(phrase)
        if index >= 0:
            return normalize_retailer(phrase), _cut(text, index, index + len(phrase))
    return None, text


def extract_product_name(text: str, original: str, *, allow_fallback: bool = True) -> str | None:
    """Strip filler words from ``text``; optionally fall back to a light strip of ``original``."""

    stripped = text
    for pattern in _FILLER_PATTERNS:
        stripped = pattern.sub("", stripped)
    candidate = _tidy(stripped)
    if candidate:
        return candidate

    if not allow_fallback:
        return None

    fallback = original
    for pattern in _FALLBACK_PATTERNS:
        fallback = pattern.sub("", fallback)
    return _tidy(fallback) or None


def extract_delta(utterance: str | None, *, include_product: bool = True) -> SlotState:
    """Extract whatever slots a single utterance mentions, without any prior state."""

    original = utterance or ""
    text = original.lower()

    quantity, text = extract_quantity(text)
    retailer, text = extract_retailer(text)

    product_name = None
    if include_product:
        # Only fall back to the raw utterance when nothing else was recognised
        # in it; otherwise "three" or "amazon" would become the product.
        product_name = extract_product_name(
            text,
            original,
            allow_fallback=text == original.lower(),
        )

    return SlotState(product_name=product_name, quantity=quantity, retailer=retailer)


def extract(utterance: str | None, prior: SlotState | None = None) -> SlotState:
    """Return ``prior`` merged with the slots found in ``utterance``.

    Values already present in ``prior`` always win. ``prior`` is not modified.
    """

    prior = prior or SlotState()
    delta = extract_delta(utterance, include_product=prior.product_name is None)
    return prior.merged(delta)
