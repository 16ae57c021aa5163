"""Duplicate and templated product description detection."""

import re
from datetime import datetime
from typing import Any, Dict, List

from rapidfuzz import fuzz

from ..shopify.graphql import ShopifyProduct

MIN_DESCRIPTION_LENGTH = 50
SIMILARITY_THRESHOLD = 0.7
TEMPLATE_MATCH_THRESHOLD = 80
SUGGESTION_THRESHOLD = 0.5

TEMPLATE_INDICATORS = [
    re.compile(r"\[product\s*name\]", re.IGNORECASE),
    re.compile(r"\[brand\]", re.IGNORECASE),
    re.compile(r"\{\{.*?\}\}"),
    re.compile(r"INSERT\s+.*?\s+HERE", re.IGNORECASE),
    re.compile(r"lorem ipsum", re.IGNORECASE),
    re.compile(r"placeholder", re.IGNORECASE),
]


def _words(text: str) -> set:
    cleaned = re.sub(r"[^a-z0-9\s]", "", text.lower())
    return {word for word in cleaned.split() if len(word) > 2}


def word_similarity(first: str, second: str) -> float:
    """Jaccard similarity over words longer than two characters."""
    words1, words2 = _words(first), _words(second)
    if not words1 or not words2:
        return 0.0
    return len(words1 & words2) / len(words1 | words2)


def has_template_marker(text: str) -> bool:
    return any(pattern.search(text) for pattern in TEMPLATE_INDICATORS)


def _entry(product: ShopifyProduct) -> Dict[str, str]:
    return {
        "id": product.numeric_id,
        "title": product.title,
        "handle": product.handle,
        "description": product.description or "",
    }


def find_duplicate_groups(products: List[ShopifyProduct]) -> List[Dict[str, Any]]:
    """Group products sharing exact, similar or templated descriptions.

    Args:
        products: Catalog products

    Returns:
        List of groups with type, similarity, products, issue and recommendation
    """
    entries = [_entry(p) for p in products]
    groups: List[Dict[str, Any]] = []
    processed = set()

    by_description: Dict[str, List[Dict[str, str]]] = {}
    for entry in entries:
        if len(entry["description"]) < MIN_DESCRIPTION_LENGTH:
            continue
        by_description.setdefault(entry["description"].lower().strip(), []).append(entry)

    for members in by_description.values():
        if len(members) > 1:
            groups.append({
                "type": "exact",
                "similarity": 100,
                "products": members,
                "issue": f"{len(members)} products have identical descriptions",
                "recommendation": "Create unique descriptions for each product to help AI distinguish them",
            })
            processed.update(m["id"] for m in members)

    remaining = [
        e for e in entries
        if e["id"] not in processed and len(e["description"]) >= MIN_DESCRIPTION_LENGTH
    ]
    for i, anchor in enumerate(remaining):
        if anchor["id"] in processed:
            continue

        similar = [anchor]
        scores = []
        for other in remaining[i + 1:]:
            if other["id"] in processed:
                continue
            similarity = word_similarity(anchor["description"], other["description"])
            if similarity > SIMILARITY_THRESHOLD:
                similar.append(other)
                scores.append(similarity)

        if len(similar) > 1:
            average = round(sum(scores) / len(scores) * 100)
            groups.append({
                "type": "similar",
                "similarity": average,
                "products": similar,
                "issue": f"{len(similar)} products have very similar descriptions ({average}% similar)",
                "recommendation": "Differentiate these descriptions by highlighting unique features of each product",
            })
            processed.update(m["id"] for m in similar)

    templates = [e["description"][:100] for e in entries if e["description"] and has_template_marker(e["description"])]
    if templates:
        members = [
            e for e in entries
            if e["description"]
            and any(fuzz.partial_ratio(e["description"], template) > TEMPLATE_MATCH_THRESHOLD for template in templates)
        ]
        if members:
            groups.append({
                "type": "template",
                "similarity": TEMPLATE_MATCH_THRESHOLD,
                "products": members,
                "issue": f"{len(members)} products appear to use template descriptions",
                "recommendation": "Replace template text with unique, specific product information",
            })

    return groups


def analyze_duplicate_content(products: List[ShopifyProduct]) -> Dict[str, Any]:
    """Build the duplicate content report for a catalog.

    The score is the share of products not caught in any group, 0-100.
    """
    groups = find_duplicate_groups(products)

    def members_of(kind: str) -> int:
        return sum(len(g["products"]) for g in groups if g["type"] == kind)

    affected = len({p["id"] for g in groups for p in g["products"]})
    score = round((1 - affected / len(products)) * 100) if products else 100

    return {
        "total_products": len(products),
        "analyzed_products": sum(1 for p in products if len(p.description or "") >= MIN_DESCRIPTION_LENGTH),
        "duplicate_groups": groups,
        "summary": {
            "exact_duplicates": members_of("exact"),
            "similar_descriptions": members_of("similar"),
            "template_descriptions": members_of("template"),
            "affected_products": affected,
        },
        "score": score,
        "generated_at": datetime.utcnow().isoformat(),
    }


def product_duplicate_suggestions(products: List[ShopifyProduct], product_id: str) -> Dict[str, Any]:
    """List products resembling one product and suggest fixes.

    Raises:
        KeyError: If product_id is not in the catalog
    """
    target = next((p for p in products if p.numeric_id == product_id or p.id == product_id), None)
    if target is None:
        raise KeyError(product_id)

    similar = []
    for product in products:
        if product.id == target.id or not product.description or not target.description:
            continue
        similarity = word_similarity(target.description, product.description)
        if similarity > SUGGESTION_THRESHOLD:
            similar.append({"id": product.numeric_id, "title": product.title, "similarity": round(similarity * 100)})
    similar.sort(key=lambda s: s["similarity"], reverse=True)

    recommendations = []
    if similar:
        recommendations.extend([
            f"Found {len(similar)} products with similar descriptions",
            "Consider adding unique selling points to differentiate this product",
            "Include specific features, dimensions, or use cases unique to this product",
        ])
    if len(target.description or "") < 100:
        recommendations.append("Add a more detailed product description (aim for 150+ characters)")

    return {
        "product": {"id": target.numeric_id, "title": target.title, "description": target.description or ""},
        "similar_products": similar[:5],
        "recommendations": recommendations,
    }
