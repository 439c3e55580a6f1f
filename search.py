"""
Search-as-you-type suggestions over the catalog.

Only the first CANDIDATE_LIMIT catalog documents are examined, so a
product outside that window never shows up as a suggestion. This keeps
each keystroke to one small read; full-catalog search is /api/products.
"""
from typing import Any, Dict, Iterable, List, Optional

CANDIDATE_LIMIT = 50
MAX_SUGGESTIONS = 8


def normalize_query(q: Optional[str]) -> str:
    return (q or "").strip().lower()


def _cover_image(product: Dict[str, Any]) -> Optional[str]:
    images = product.get("images") or []
    return images[0] if images else product.get("image")


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return " ".join(_text(v) for v in value)
    return "" if value is None else str(value)


def rank_suggestions(query: str, candidates: Iterable[Dict[str, Any]], limit: int = MAX_SUGGESTIONS) -> List[Dict[str, Any]]:
    """
    Filter candidates whose name or category contains `query`, put name-prefix
    matches first and keep catalog order otherwise.

    `query` must already be normalized; an empty query matches nothing.
    """
    if not query:
        return []
    matches = []
    for product in candidates:
        name = _text(product.get("name"))
        category = _text(product.get("category"))
        if query in name.lower() or query in category.lower():
            matches.append({
                "id": str(product["_id"]) if "_id" in product else None,
                "name": name,
                "category": category,
                "price": product.get("price"),
                "image": _cover_image(product),
                "type": "product",
            })
    # sort() is stable, so ties keep catalog order
    matches.sort(key=lambda m: not m["name"].lower().startswith(query))
    return matches[:limit]
