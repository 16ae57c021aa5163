"""Extract brand mentions, rank and tone from assistant responses."""

import re
from typing import Iterable, List, Optional

NUMBERED_ITEM = re.compile(r"\d+\.")
LIST_LINE = re.compile(r"^(\d+[.)]\s|[-*•]\s)")

POSITIVE_WORDS = [
    "excellent", "great", "recommend", "best", "quality", "trusted",
    "popular", "leading", "top", "premium", "outstanding", "innovative",
]
NEGATIVE_WORDS = [
    "avoid", "poor", "bad", "issue", "problem", "complaint", "expensive",
    "overpriced", "disappointing", "unreliable",
]
ENDORSEMENT_PHRASES = ["recommend", "great option", "excellent", "top choice"]

ECOMMERCE_BRANDS = [
    "amazon", "ebay", "walmart", "target", "etsy", "alibaba", "aliexpress",
    "shopify", "wayfair", "overstock", "zappos", "asos", "nordstrom", "macys",
    "best buy", "nike", "adidas", "zara",
]
COMMON_BRANDS = [
    "amazon", "google", "apple", "microsoft", "meta", "nike", "adidas",
    "shopify", "stripe", "salesforce", "hubspot", "mailchimp", "canva",
]


def brand_variants(name: str) -> List[str]:
    """Spellings of a brand an assistant might use, longer than two characters.

    >>> brand_variants("Blue Bottle")
    ['blue bottle', 'bluebottle', 'blue-bottle']
    """
    lower = name.lower().strip()
    variants = []
    for variant in (lower, re.sub(r"\s+", "", lower), re.sub(r"\s+", "-", lower)):
        if len(variant) > 2 and variant not in variants:
            variants.append(variant)
    return variants


def find_mention(text: str, terms: Iterable[str]) -> Optional[str]:
    """First term (case-insensitive) that occurs in text."""
    lower = text.lower()
    for term in terms:
        if term and term.lower() in lower:
            return term
    return None


def extract_context(text: str, term: str, before: int = 50, after: int = 150) -> Optional[str]:
    """Text around the first mention of term, or None when absent."""
    index = text.lower().find(term.lower())
    if index == -1:
        return None
    return text[max(0, index - before): index + after].strip()


def extract_position(text: str, term: str) -> Optional[int]:
    """Rank of a mention: numbered items seen before it, 1 when it precedes any list."""
    index = text.lower().find(term.lower())
    if index == -1:
        return None
    return len(NUMBERED_ITEM.findall(text[:index])) or 1


def extract_list_position(text: str, variants: Iterable[str]) -> Optional[int]:
    """Index (from 1) of the first list line naming the brand."""
    variants = [v.lower() for v in variants]
    position = 0
    for line in text.split("\n"):
        if LIST_LINE.match(line.strip()):
            position += 1
            lower = line.lower()
            if any(v in lower for v in variants):
                return position
    return None


def detect_sentiment(text: str) -> str:
    """positive, negative or neutral from simple word lists."""
    lower = text.lower()
    has_positive = any(word in lower for word in POSITIVE_WORDS)
    has_negative = any(word in lower for word in NEGATIVE_WORDS)
    if has_positive and not has_negative:
        return "positive"
    if has_negative and not has_positive:
        return "negative"
    return "neutral"


def response_quality(text: str, mentioned: bool) -> str:
    """good when the brand is mentioned with an endorsement, partial when only mentioned."""
    if not mentioned:
        return "none"
    lower = text.lower()
    return "good" if any(phrase in lower for phrase in ENDORSEMENT_PHRASES) else "partial"


def extract_competitors(text: str, brand_terms: Iterable[str], candidates: Iterable[str] = ECOMMERCE_BRANDS) -> List[str]:
    """Known brands named in text, excluding the brand itself."""
    lower = text.lower()
    own = {t.lower() for t in brand_terms}
    return [c for c in candidates if c in lower and c not in own]
