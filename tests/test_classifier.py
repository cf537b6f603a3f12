"""Test the category classifier."""

import pytest

from storefront.core.classifier import classify, collect_terms, match_rule
from storefront.core.models import Category


def test_dutch_ring_tag() -> None:
    assert classify(["gouden ring", "sieraad"], "Handgemaakt") == Category.RINGS


def test_dutch_earring_tag_without_ring() -> None:
    assert classify(["oorbellen", "goud"], "Handgemaakt") == Category.EARRINGS


def test_earring_is_not_a_ring() -> None:
    assert classify(["gold earrings"], "Pearl drop earrings") == Category.EARRINGS


def test_ring_rule_wins_over_later_rules() -> None:
    assert classify(["ring", "chain"], "Stacking set") == Category.RINGS


@pytest.mark.parametrize(
    "tags, title, expected",
    [
        (["ketting"], "Maan hanger", Category.NECKLACES),
        (["pendant"], "Crescent", Category.NECKLACES),
        (["hoop"], "Gold hoops", Category.EARRINGS),
        (["studs"], "Tiny studs", Category.EARRINGS),
        (["ear cuff"], "Cuff", Category.EARRINGS),
        (["armband"], "Kralen", Category.BRACELETS),
        (["bangle"], "Helix", Category.BRACELETS),
        (["sieraad", "goud"], "Cadeau", Category.BRACELETS),
    ],
)
def test_rules(tags: list[str], title: str, expected: Category) -> None:
    assert classify(tags, title) == expected


def test_pearl_does_not_mean_ear() -> None:
    assert classify(["pearl", "armband"], "Pearl bracelet") == Category.BRACELETS


def test_default_is_bracelets() -> None:
    assert classify([], "Something else") == Category.BRACELETS


def test_title_is_used() -> None:
    assert classify([], "Zilveren Ketting") == Category.NECKLACES


def test_taxonomy_path_is_used() -> None:
    category = classify(
        ["handgemaakt"],
        "Goud",
        taxonomy_name="Hoops",
        taxonomy_path=["Jewelry", "Earrings"],
    )
    assert category == Category.EARRINGS


def test_materials_and_properties_are_used() -> None:
    assert classify([], "Goud", materials=["chain"]) == Category.NECKLACES
    assert classify([], "Goud", properties=["Bangle"]) == Category.BRACELETS


def test_classify_is_deterministic() -> None:
    tags = ["oorbellen", "ring", "ketting"]
    results = {classify(tags, "Set") for _ in range(10)}
    assert len(results) == 1


def test_match_rule_reports_trigger() -> None:
    terms = collect_terms(["  Oorbellen ", ""], "Goud")
    assert terms == ["oorbellen", "goud"]
    assert match_rule(terms) == (Category.EARRINGS, "oorbellen")
    assert match_rule(["goud"]) is None
