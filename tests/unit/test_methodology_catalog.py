from scripts.methodology_catalog import METHODOLOGY_CATALOG


def test_catalog_ids_are_unique():
    ids = [item["id"] for item in METHODOLOGY_CATALOG]
    assert len(ids) == len(set(ids))
    assert "methodology-123" in ids


def test_active_methodologies_are_usable():
    for item in METHODOLOGY_CATALOG:
        if item["active"]:
            assert item["max_units"] >= 1
            assert item["required_documents_count"] >= 0
            assert item["review_period_days"] > 0
