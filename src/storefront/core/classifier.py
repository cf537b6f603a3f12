"""
Map Etsy listing data onto the four store categories.

Rules are checked in order and the first match wins. Every rule looks at each
term on its own (tags, materials, title, taxonomy name/path and property
values), lowercased. Misclassification is accepted: the shop owner fixes it by
tagging the listing.
"""

import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from storefront.core.models import Category

DEFAULT_CATEGORY = Category.BRACELETS

EARRING_TERMS = ("earring", "oorring")
NECKLACE_TERMS = ("necklace", "pendant", "chain", "choker", "ketting", "hanger", "collier")
# Plus the whole word "ear"; a substring match would file "pearl" bracelets under earrings
EARRING_LIKE_TERMS = ("earring", "stud", "hoop", "oorbel", "oorknop", "creool", "creolen")
BRACELET_TERMS = ("bracelet", "bangle", "wrist", "anklet", "armband", "enkelband")

_EAR_WORD = re.compile(r"\bear\b")


def _is_ring(term: str) -> bool:
    return "ring" in term and not any(t in term for t in EARRING_TERMS)


def _is_necklace(term: str) -> bool:
    return any(t in term for t in NECKLACE_TERMS)


def _is_earring(term: str) -> bool:
    return any(t in term for t in EARRING_LIKE_TERMS) or bool(_EAR_WORD.search(term))


def _is_bracelet(term: str) -> bool:
    return any(t in term for t in BRACELET_TERMS)


RULES: List[Tuple[Callable[[str], bool], Category]] = [
    (_is_ring, Category.RINGS),
    (_is_necklace, Category.NECKLACES),
    (_is_earring, Category.EARRINGS),
    (_is_bracelet, Category.BRACELETS),
]


def collect_terms(
    tags: Iterable[str],
    title: str,
    taxonomy_name: Optional[str] = None,
    taxonomy_path: Optional[Sequence[str]] = None,
    materials: Optional[Iterable[str]] = None,
    properties: Optional[Iterable[str]] = None,
) -> List[str]:
    """Lowercased, stripped, non-empty terms the rules are evaluated against."""
    raw: List[str] = []
    if taxonomy_name:
        raw.append(taxonomy_name)
    raw.extend(taxonomy_path or [])
    raw.extend(properties or [])
    raw.extend(tags)
    raw.extend(materials or [])
    raw.append(title)
    return [term.strip().lower() for term in raw if term and term.strip()]


def match_rule(terms: Sequence[str]) -> Optional[Tuple[Category, str]]:
    """
    Find the first rule that matches any term.

    Returns:
        tuple[Category, str] | None: The category and the term that triggered it.
    """
    for predicate, category in RULES:
        for term in terms:
            if predicate(term):
                return category, term
    return None


def classify(
    tags: Iterable[str],
    title: str,
    taxonomy_name: Optional[str] = None,
    taxonomy_path: Optional[Sequence[str]] = None,
    materials: Optional[Iterable[str]] = None,
    properties: Optional[Iterable[str]] = None,
) -> Category:
    """
    Classify a listing into one of the store categories.

    Args:
        tags (Iterable[str]): Listing tags, often Dutch ("oorbellen", "armband").
        title (str): Listing title.
        taxonomy_name (str | None): Name of the listing's Etsy taxonomy node.
        taxonomy_path (Sequence[str] | None): Names of the node's ancestors.
        materials (Iterable[str] | None): Listing materials.
        properties (Iterable[str] | None): Listing property values.

    Returns:
        Category: The matched category, bracelets when nothing matches.
    """
    terms = collect_terms(tags, title, taxonomy_name, taxonomy_path, materials, properties)
    match = match_rule(terms)
    return match[0] if match else DEFAULT_CATEGORY
