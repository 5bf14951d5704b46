"""Tests for candidate scoring and ranking."""

from allegro_listing.models import CatalogCandidate
from allegro_listing.ranking import description_length, rank_products, score_product, top_candidates


def make_candidate(product_id="p-1", images=0, description=None, parameters=()):
    detail = {
        "id": product_id,
        "name": f"Product {product_id}",
        "images": [{"url": f"https://img/{product_id}/{i}.jpg"} for i in range(images)],
        "parameters": list(parameters),
    }
    if description is not None:
        detail["description"] = description
    return CatalogCandidate.from_detail(detail)


def test_score_worked_example():
    """Test 3 images, 100 chars, 2 params with a brand: 30 + 2 + 4 + 10."""
    candidate = make_candidate(
        images=3,
        description="x" * 100,
        parameters=[{"name": "Marka", "values": ["Acme"]}, {"name": "Kolor", "values": ["czarny"]}],
    )

    score, reasons = score_product(candidate)

    assert score == 46
    assert reasons == [
        "Zdjęcia: 3",
        "Opis: 100 znaków (+2.0)",
        "Parametry: 2",
        "Zawiera markę",
    ]


def test_each_image_adds_ten():
    """Test that one more image raises the score by exactly 10."""
    base, _ = score_product(make_candidate(images=2, description="abc"))
    more, _ = score_product(make_candidate(images=3, description="abc"))
    assert more - base == 10


def test_no_images_penalty():
    """Test the -20 penalty on top of the lost image credit."""
    with_one, _ = score_product(make_candidate(images=1))
    without, reasons = score_product(make_candidate(images=0))
    assert with_one - without == 30
    assert without == -20
    assert reasons[-1] == "Brak zdjęć (-20)"


def test_description_is_capped():
    """Test that description credit stops at 2000 characters."""
    capped, reasons = score_product(make_candidate(images=1, description="y" * 5000))
    assert capped == 10 + 40
    assert reasons[1] == "Opis: 5000 znaków (+40.0)"


def test_model_parameter_matched_by_id():
    """Test brand and model detection case-insensitively, by id when name is empty."""
    candidate = make_candidate(images=1, parameters=[{"id": "MODEL_NAME", "name": ""}, {"name": "marka producenta"}])
    score, reasons = score_product(candidate)
    assert score == 10 + 2 * 2 + 10 + 10
    assert "Zawiera markę" in reasons
    assert "Zawiera model" in reasons


def test_description_length_of_sections():
    """Test structured descriptions count their text items."""
    description = {
        "sections": [
            {"items": [{"type": "TEXT", "content": "<p>abc</p>"}, {"type": "IMAGE", "url": "u"}]},
            {"items": [{"text": "12345"}]},
        ]
    }
    assert description_length(description) == len("<p>abc</p>") + 5


def test_description_length_fallbacks():
    """Test plain strings, empty values and JSON fallback for other shapes."""
    assert description_length("hello") == 5
    assert description_length(None) == 0
    assert description_length("") == 0
    assert description_length({"a": 1}) == len('{"a":1}')
    assert description_length(["ąę"]) == len('["ąę"]')


def test_rank_orders_by_score():
    """Test best-first ordering."""
    low = make_candidate("low", images=1)
    high = make_candidate("high", images=3, description="x" * 100, parameters=[{"name": "Marka"}, {"name": "Kolor"}])

    ranked = rank_products([low, high])

    assert [r.product_id for r in ranked] == ["high", "low"]
    assert [r.score for r in ranked] == [46, 10]


def test_rank_keeps_input_order_on_ties():
    """Test that equal scores keep their relative order."""
    candidates = [make_candidate(f"p-{i}", images=1) for i in range(5)]
    ranked = rank_products(candidates)
    assert [r.product_id for r in ranked] == ["p-0", "p-1", "p-2", "p-3", "p-4"]


def test_rank_empty():
    assert rank_products([]) == []


def test_top_candidates():
    """Test truncation to the first n, and fewer when fewer exist."""
    ranked = rank_products([make_candidate(f"p-{i}", images=i) for i in range(5)])
    assert [r.product_id for r in top_candidates(ranked)] == ["p-4", "p-3", "p-2"]
    assert len(top_candidates(ranked[:2])) == 2
