import pytest

from stockledger.exceptions import NotFoundError, ValidationError
from stockledger.service import InventoryService


def _create(service: InventoryService, name: str, **fields) -> int:
    return service.products.create({"name": name, **fields})


def test_create_assigns_ids_and_lists_by_name(service: InventoryService) -> None:
    screw = _create(service, "screw", quantity=10, min_quantity=2, category="fasteners", location="A1")
    anchor = _create(service, "anchor")

    assert screw != anchor
    products = service.products.list_all()
    assert [p.name for p in products] == ["anchor", "screw"]
    assert products[1].model_dump() == {
        "id": screw,
        "name": "screw",
        "quantity": 10,
        "min_quantity": 2,
        "category": "fasteners",
        "location": "A1",
    }


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_requires_a_name(service: InventoryService, name) -> None:
    with pytest.raises(ValidationError):
        service.products.create({"name": name, "quantity": 1})
    assert service.products.list_all() == []


def test_create_without_name_key_is_rejected(service: InventoryService) -> None:
    with pytest.raises(ValidationError, match="name"):
        service.products.create({"quantity": 1})


def test_numeric_fields_default_to_zero(service: InventoryService) -> None:
    first = _create(service, "gasket")
    second = _create(service, "hinge", quantity="abc", min_quantity="")
    third = _create(service, "latch", quantity="12", min_quantity=3.0)

    assert service.products.get(first).quantity == 0
    hinge = service.products.get(second)
    assert (hinge.quantity, hinge.min_quantity) == (0, 0)
    latch = service.products.get(third)
    assert (latch.quantity, latch.min_quantity) == (12, 3)


def test_blank_optional_text_is_stored_as_null(service: InventoryService) -> None:
    product_id = _create(service, "rivet", category="  ", location="")
    product = service.products.get(product_id)
    assert product.category is None
    assert product.location is None


def test_update_replaces_every_field(service: InventoryService) -> None:
    product_id = _create(service, "bracket", quantity=5, min_quantity=1, category="metal", location="B2")

    service.products.update(
        {
            "id": product_id,
            "name": "corner bracket",
            "quantity": 8,
            "min_quantity": 4,
            "category": None,
            "location": "C3",
        }
    )

    product = service.products.get(product_id)
    assert product.name == "corner bracket"
    assert product.quantity == 8
    assert product.min_quantity == 4
    assert product.category is None
    assert product.location == "C3"


def test_update_missing_product_raises_not_found(service: InventoryService) -> None:
    with pytest.raises(NotFoundError):
        service.products.update({"id": 404, "name": "ghost"})


def test_update_validates_name(service: InventoryService) -> None:
    product_id = _create(service, "spring")
    with pytest.raises(ValidationError):
        service.products.update({"id": product_id, "name": ""})
    assert service.products.get(product_id).name == "spring"


def test_delete_removes_product_and_its_movements(service: InventoryService) -> None:
    keep = _create(service, "keep")
    drop = _create(service, "drop")
    service.ledger.add_movement({"product_id": keep, "type": "INBOUND", "quantity": 3})
    service.ledger.add_movement({"product_id": drop, "type": "INBOUND", "quantity": 5})
    service.ledger.add_movement({"product_id": drop, "type": "OUTBOUND", "quantity": 2})

    service.products.delete(drop)

    assert [p.id for p in service.products.list_all()] == [keep]
    assert service.ledger.list_for_product(drop) == []
    assert all(m.product_id != drop for m in service.ledger.list())
    assert len(service.ledger.list()) == 1


def test_delete_missing_product_raises_not_found(service: InventoryService) -> None:
    with pytest.raises(NotFoundError):
        service.products.delete(12345)


def test_delete_rejects_malformed_id(service: InventoryService) -> None:
    with pytest.raises(ValidationError):
        service.products.delete("twelve")


def test_get_missing_product_raises_not_found(service: InventoryService) -> None:
    with pytest.raises(NotFoundError):
        service.products.get(7)


def test_list_all_is_repeatable(service: InventoryService) -> None:
    for name in ("delta", "alpha", "charlie", "bravo"):
        _create(service, name)

    assert service.products.list_all() == service.products.list_all()
    assert service.products.count() == 4
