import pytest

from cesizen.backend.app import stress_catalog
from cesizen.backend.app.stress_engine import EventCategory, StressEvent


def test_default_catalog_is_complete():
    catalog = stress_catalog.default_catalog()
    assert len(catalog) == 42
    assert all(event.weight > 0 for event in catalog.values())
    assert catalog[1].label == "Décès du conjoint"
    assert catalog[1].weight == 100
    assert min(event.weight for event in catalog.values()) == 11


def test_duplicate_ids_rejected():
    events = [StressEvent(id=1, label="a", weight=10), StressEvent(id=1, label="b", weight=20)]
    with pytest.raises(ValueError):
        stress_catalog.build_catalog(events)


def test_questionnaire_order_groups_by_category_then_weight():
    ordered = stress_catalog.order_for_questionnaire(stress_catalog.default_events())
    categories = [event.category for event in ordered]
    assert categories[0] == EventCategory.FAMILIAL
    positions = [list(EventCategory).index(c) for c in categories]
    assert positions == sorted(positions)
    familial = [e.weight for e in ordered if e.category == EventCategory.FAMILIAL]
    assert familial == sorted(familial, reverse=True)


def test_unknown_category_maps_to_other():
    assert stress_catalog.parse_category("Loisirs") == EventCategory.AUTRE
    assert stress_catalog.parse_category("Santé") == EventCategory.SANTE
