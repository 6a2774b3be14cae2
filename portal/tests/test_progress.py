import random
from types import SimpleNamespace

import pytest

from portal.services.progress import calculate_progress, can_submit, document_status, find_item

def make_config(categories):
    return SimpleNamespace(id="cfg", categories=categories)

def make_doc(category, name, is_extra=False):
    return SimpleNamespace(category=category, name=name, is_extra=is_extra)

TWO_CATEGORIES = [
    {
        "id": "cat-a",
        "name": "Categoria A",
        "documents": [
            {"id": "a1", "name": "Obrigatório A", "required": True},
            {"id": "a2", "name": "Opcional A", "required": False},
        ],
    },
    {
        "id": "cat-b",
        "name": "Categoria B",
        "documents": [
            {"id": "b1", "name": "Obrigatório B", "required": True},
            {"id": "b2", "name": "Opcional B", "required": False},
        ],
    },
]

def test_no_required_documents_is_complete() -> None:
    config = make_config([{"id": "c", "name": "C", "documents": [{"id": "x", "name": "X", "required": False}]}])
    report = calculate_progress(config, [])
    assert report.percent == 100
    assert report.categories[0].percent == 100
    assert report.total_required == 0
    assert can_submit(report)

def test_empty_config_is_complete() -> None:
    report = calculate_progress(make_config([]), [])
    assert report.percent == 100
    assert report.categories == []

def test_missing_config_is_zero() -> None:
    report = calculate_progress(None, [make_doc("cat-a", "a1")])
    assert report.percent == 0
    assert report.categories == []
    assert report.config_id is None
    assert not can_submit(report)

def test_both_required_uploaded_is_complete() -> None:
    report = calculate_progress(make_config(TWO_CATEGORIES), [make_doc("cat-a", "a1"), make_doc("cat-b", "b1")])
    assert report.percent == 100
    assert report.uploaded_required == 2
    assert report.missing_items == []

def test_optional_uploads_do_not_count() -> None:
    report = calculate_progress(make_config(TWO_CATEGORIES), [make_doc("cat-a", "a2"), make_doc("cat-b", "b2")])
    assert report.percent == 0

def test_partial_progress_per_category() -> None:
    report = calculate_progress(make_config(TWO_CATEGORIES), [make_doc("cat-a", "a1")])
    assert report.percent == 50
    by_id = {c.category_id: c for c in report.categories}
    assert by_id["cat-a"].percent == 100
    assert by_id["cat-b"].percent == 0
    assert report.uploaded_items == ["Categoria A: Obrigatório A"]
    assert report.missing_items == ["Categoria B: Obrigatório B"]

def test_extra_documents_never_count() -> None:
    documents = [make_doc("cat-a", "a1", is_extra=True), make_doc("cat-b", "b1", is_extra=True)]
    report = calculate_progress(make_config(TWO_CATEGORIES), documents)
    assert report.percent == 0

def test_item_id_must_match_within_its_category() -> None:
    # Item com o mesmo id em outra categoria não conta
    report = calculate_progress(make_config(TWO_CATEGORIES), [make_doc("cat-b", "a1")])
    assert report.percent == 0

@pytest.mark.parametrize("total,uploaded", [(1, 0), (3, 1), (3, 2), (7, 5), (10, 10)])
def test_percent_is_k_over_n_regardless_of_order(total: int, uploaded: int) -> None:
    items = [{"id": f"i{n}", "name": f"Item {n}", "required": True} for n in range(total)]
    documents = [make_doc("cat", f"i{n}") for n in range(uploaded)]
    expected = round(uploaded * 100 / total, 2)

    for seed in range(3):
        shuffled = list(items)
        random.Random(seed).shuffle(shuffled)
        config = make_config([{"id": "cat", "name": "Cat", "documents": shuffled}])
        assert calculate_progress(config, documents).percent == expected

def test_document_status_labels() -> None:
    uploaded, missing = document_status(make_config(TWO_CATEGORIES), [make_doc("cat-b", "b1")])
    assert uploaded == ["Categoria B: Obrigatório B"]
    assert missing == ["Categoria A: Obrigatório A"]

def test_find_item() -> None:
    config = make_config(TWO_CATEGORIES)
    assert find_item(config, "cat-a", "a2")["name"] == "Opcional A"
    assert find_item(config, "cat-a", "b1") is None
    assert find_item(None, "cat-a", "a1") is None
