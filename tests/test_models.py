from __future__ import annotations

import pytest
from pydantic import ValidationError

from pyhomemind.models.checklist import ChecklistEntry
from pyhomemind.models.document import HomeDocument
from pyhomemind.models.identity import Identity
from pyhomemind.models.item import Item, Option
from pyhomemind.models.space import Space, default_spaces


def test_item_parses_camel_case_keys_and_drops_nulls() -> None:
    item = Item.model_validate(
        {
            "id": "i1",
            "spaceId": "2",
            "name": "Toaster",
            "image": None,
            "order": 3,
            "options": [{"id": "o1", "model": "T-1000", "price": None, "winner": True}],
        }
    )

    assert item.space_id == "2"
    assert item.image is None
    assert item.options[0].price == ""
    assert item.winner is not None and item.winner.id == "o1"


def test_item_to_wire_uses_camel_case() -> None:
    item = Item(id="i1", space_id="3", name="Mirror", order=1)

    wire = item.to_wire()

    assert wire["spaceId"] == "3"
    assert "space_id" not in wire
    assert wire["options"] == []


def test_legacy_document_without_repairs_parses_as_empty() -> None:
    document = HomeDocument.from_wire(
        {
            "spaces": [{"id": "1", "name": "Living Room"}],
            "items": [],
            "groceries": [{"id": "g1", "text": "Milk", "completed": False}],
            "lastUpdated": 1_700_000_000_000,
        }
    )

    assert document.repairs == ()
    assert document.groceries == (ChecklistEntry(id="g1", text="Milk"),)
    assert document.last_updated == 1_700_000_000_000
    assert document.schema_version == 0


def test_document_ignores_unknown_keys() -> None:
    document = HomeDocument.from_wire({"spaces": [], "theme": "dark"})

    assert document.spaces == ()


def test_models_are_frozen() -> None:
    space = Space(id="1", name="Kitchen")

    with pytest.raises(ValidationError):
        space.name = "Pantry"  # type: ignore[misc]


def test_option_id_may_be_missing_for_legacy_documents() -> None:
    item = Item.model_validate({"id": "i1", "spaceId": "1", "options": [{"model": "A"}, {"id": "o2"}]})

    assert item.options[0].id is None
    assert item.needs_option_ids is True


@pytest.mark.parametrize(
    ("price", "expected"),
    [("129.99", 129.99), ("$1,299", 1299.0), ("", None), ("ask in store", None)],
)
def test_option_price_value(price: str, expected: float | None) -> None:
    assert Option(id="o", price=price).price_value == expected


def test_default_spaces() -> None:
    spaces = default_spaces()

    assert [space.id for space in spaces] == ["1", "2", "3", "4", "5", "6", "7"]
    assert spaces[0].name == "Living Room"
    assert spaces[-1].name == "Garden"


def test_documents_items_in_space() -> None:
    document = HomeDocument(
        items=(Item(id="a", space_id="1"), Item(id="b", space_id="2"), Item(id="c", space_id="1")),
    )

    assert [item.id for item in document.items_in("1")] == ["a", "c"]


def test_identity_accepts_provider_field_names() -> None:
    identity = Identity.model_validate({"localId": "u1", "isAnonymous": False, "displayName": "Sam"})

    assert identity.uid == "u1"
    assert identity.is_anonymous is False
    assert identity.display_name == "Sam"
