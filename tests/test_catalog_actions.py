"""Customer and product actions."""
import pytest

import actions


JANE = {"name": "Jane Doe", "email": "jane@example.com"}
LAMP = {
    "name": "Desk Lamp",
    "description": "LED desk lamp",
    "category": "FURNITURE",
    "unit": "PIECE",
    "price": 49.5,
}


def test_admin_creates_customer_and_sees_it_listed(admin):
    result = actions.create_customer(admin, JANE)
    assert result["success"] is True
    assert result.status_code == 201

    listed = actions.list_customers(admin)
    assert [c["id"] for c in listed["data"]] == [result["customer"]["id"]]


@pytest.mark.parametrize("role_fixture", ["manager", "agent"])
def test_non_admin_cannot_mutate_customers(request, store, admin, make_customer, role_fixture):
    caller = request.getfixturevalue(role_fixture)
    existing = make_customer("Kept Customer", email="kept@example.com")

    assert actions.create_customer(caller, JANE)["success"] is False
    assert actions.update_customer(caller, existing, JANE)["success"] is False
    denied = actions.delete_customer(caller, existing)
    assert denied["success"] is False
    assert denied.status_code == 403
    assert denied["message"] == "You don't have access to this action"

    assert store["customer"].count_documents({}) == 1
    assert store["customer"].find_one({})["name"] == "Kept Customer"


def test_customer_validation_errors_are_per_field(admin):
    result = actions.create_customer(admin, {"name": "", "email": "not-an-email"})
    assert result["success"] is False
    assert result.status_code == 422
    assert set(result["errors"]) == {"name", "email"}


def test_duplicate_customer_email_is_rejected(admin):
    actions.create_customer(admin, JANE)
    again = actions.create_customer(admin, {**JANE, "name": "Other Jane"})
    assert again["success"] is False
    assert again.status_code == 409
    assert "email" in again["errors"]


def test_update_customer(admin, make_customer):
    customer_id = make_customer()
    result = actions.update_customer(admin, customer_id, {**JANE, "phone": "555-1234"})
    assert result["success"] is True
    assert result["customer"]["phone"] == "555-1234"


def test_update_missing_customer(admin):
    result = actions.update_customer(admin, "0" * 24, JANE)
    assert result["success"] is False
    assert result["message"] == "Customer not found"


def test_customer_with_orders_cannot_be_deleted(admin, make_customer, make_product):
    customer_id = make_customer()
    actions.create_order(admin, {"customerId": customer_id, "productIds": [make_product()]})

    result = actions.delete_customer(admin, customer_id)
    assert result["success"] is False
    assert result.status_code == 409
    assert actions.get_customer(admin, customer_id)["success"] is True


def test_customer_with_orders_is_protected_for_any_id_casing(admin, store, make_customer, make_product):
    customer_id = make_customer()
    actions.create_order(admin, {"customerId": customer_id, "productIds": [make_product()]})

    result = actions.delete_customer(admin, customer_id.upper())
    assert result["success"] is False
    assert result.status_code == 409
    assert store["customer"].count_documents({}) == 1


def test_delete_customer(admin, make_customer):
    customer_id = make_customer()
    assert actions.delete_customer(admin, customer_id)["success"] is True
    assert actions.get_customer(admin, customer_id).status_code == 404


def test_malformed_id_is_not_found(admin):
    assert actions.delete_customer(admin, "nope").status_code == 404


def test_customer_search(admin, make_customer):
    make_customer("Jane Doe", email="jane@example.com")
    make_customer("Bob Stone", email="bob@stone.io")
    assert [c["name"] for c in actions.list_customers(admin, q="STONE")["data"]] == ["Bob Stone"]
    assert [c["name"] for c in actions.list_customers(admin, q="jane@")["data"]] == ["Jane Doe"]


def test_lists_require_a_caller():
    result = actions.list_customers(None)
    assert result["success"] is False
    assert result.status_code == 401


# ===================== Products =====================
def test_admin_product_lifecycle(admin):
    created = actions.create_product(admin, LAMP)
    assert created["success"] is True
    product_id = created["product"]["id"]

    edited = actions.update_product(admin, product_id, {**LAMP, "price": 55})
    assert edited["product"]["price"] == 55

    assert actions.delete_product(admin, product_id)["success"] is True
    assert actions.get_product(admin, product_id)["success"] is False


@pytest.mark.parametrize("role_fixture", ["manager", "agent"])
def test_non_admin_cannot_mutate_products(request, store, make_product, role_fixture):
    caller = request.getfixturevalue(role_fixture)
    product_id = make_product()

    assert actions.create_product(caller, LAMP)["success"] is False
    assert actions.update_product(caller, product_id, LAMP)["success"] is False
    assert actions.delete_product(caller, product_id)["success"] is False
    assert store["product"].find_one({})["name"] == "Widget"
    assert store["product"].count_documents({}) == 1


@pytest.mark.parametrize("field,value", [("category", "WEAPONS"), ("unit", "BUSHEL"), ("price", -1)])
def test_product_enums_and_price_are_validated(admin, field, value):
    result = actions.create_product(admin, {**LAMP, field: value})
    assert result["success"] is False
    assert field in result["errors"]


def test_product_category_filter(admin, make_product):
    make_product("Phone", category="ELECTRONICS")
    make_product("Bread", category="GROCERY")
    make_product("Cable", category="ELECTRONICS")

    electronics = actions.list_products(admin, category="ELECTRONICS")
    assert sorted(p["name"] for p in electronics["data"]) == ["Cable", "Phone"]

    everything = actions.list_products(admin, category="ALL")
    assert everything["data"] == actions.list_products(admin)["data"]
    assert everything["pagination"]["total"] == 3
    assert everything["pagination"]["limit"] == 12

    bad = actions.list_products(admin, category="SNACKS")
    assert bad["success"] is False
    assert "category" in bad["errors"]
