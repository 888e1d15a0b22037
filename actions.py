"""
Entity actions for customers, products, orders and users.

Every action takes the calling Actor first, runs its guard before touching the
store, and returns an ActionResult; see errors.action for how failures are
normalized.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from passlib.context import CryptContext
from pymongo.errors import DuplicateKeyError

from access import Actor, can_create_role, require_admin, require_admin_or_manager, require_authenticated
from database import (
    count_documents,
    create_document,
    delete_document,
    get_document_by_id,
    get_documents,
    get_documents_by_ids,
    to_object_id,
    update_document,
    utcnow,
)
from errors import AccessDenied, ActionResult, Conflict, InvalidInput, NotFound, Unauthenticated, action, success
from queries import (
    DEFAULT_LIMITS,
    customer_filter,
    order_filter,
    paginate,
    product_filter,
    time_window_bound,
    user_filter,
)
from schemas import (
    Customer,
    CustomerIn,
    LoginRequest,
    Order,
    OrderIn,
    OrderItem,
    OrderStatusIn,
    Product,
    ProductIn,
    Role,
    TimeWindow,
    User,
    UserCreate,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Never read password hashes back out of the store for display.
USER_PUBLIC = {"password_hash": 0}

TOTAL_TOLERANCE = 0.01

Payload = Union[Dict[str, Any], Any]


# ===================== Customers =====================
def _email_taken(email: str, exclude_id: Optional[str] = None) -> bool:
    filt: Dict[str, Any] = {"email": email}
    if exclude_id:
        filt["_id"] = {"$ne": ObjectId(exclude_id)}
    return bool(get_documents("customer", filt, limit=1))


@action("Invalid customer data")
def create_customer(actor: Optional[Actor], data: Payload) -> ActionResult:
    require_admin(actor)
    payload = CustomerIn.model_validate(data)
    if _email_taken(payload.email):
        raise Conflict("A customer with this email already exists", {"email": "Email already in use"})
    try:
        customer_id = create_document("customer", Customer(**payload.model_dump()))
    except DuplicateKeyError:
        raise Conflict("A customer with this email already exists", {"email": "Email already in use"})
    logger.info("Customer %s created by %s", customer_id, actor.id)
    return success("Customer created successfully", 201, customer=get_document_by_id("customer", customer_id))


@action("Invalid customer data")
def update_customer(actor: Optional[Actor], customer_id: str, data: Payload) -> ActionResult:
    require_admin(actor)
    payload = CustomerIn.model_validate(data)
    if get_document_by_id("customer", customer_id) is None:
        raise NotFound("Customer not found")
    if _email_taken(payload.email, exclude_id=customer_id):
        raise Conflict("A customer with this email already exists", {"email": "Email already in use"})
    update_document("customer", customer_id, Customer(**payload.model_dump()))
    return success("Customer updated successfully", customer=get_document_by_id("customer", customer_id))


@action()
def delete_customer(actor: Optional[Actor], customer_id: str) -> ActionResult:
    require_admin(actor)
    customer = get_document_by_id("customer", customer_id)
    if customer is None:
        raise NotFound("Customer not found")
    # orders hold the canonical id, which may differ in case from the caller's
    if count_documents("order", {"customer_id": customer["id"]}):
        raise Conflict("Customer has orders and cannot be deleted")
    delete_document("customer", customer_id)
    logger.info("Customer %s deleted by %s", customer_id, actor.id)
    return success("Customer deleted successfully")


@action()
def get_customer(actor: Optional[Actor], customer_id: str) -> ActionResult:
    require_authenticated(actor)
    customer = get_document_by_id("customer", customer_id)
    if customer is None:
        raise NotFound("Customer not found")
    return success(customer=customer)


@action("Invalid query")
def list_customers(actor: Optional[Actor], q: str = "", page: int = 1, limit: int = DEFAULT_LIMITS["customer"]) -> ActionResult:
    require_authenticated(actor)
    return success(**paginate("customer", customer_filter(q), page, limit))


# ===================== Products =====================
@action("Invalid product data")
def create_product(actor: Optional[Actor], data: Payload) -> ActionResult:
    require_admin(actor)
    payload = ProductIn.model_validate(data)
    product_id = create_document("product", Product(**payload.model_dump()))
    logger.info("Product %s created by %s", product_id, actor.id)
    return success("Product created successfully", 201, product=get_document_by_id("product", product_id))


@action("Invalid product data")
def update_product(actor: Optional[Actor], product_id: str, data: Payload) -> ActionResult:
    require_admin(actor)
    payload = ProductIn.model_validate(data)
    if not update_document("product", product_id, Product(**payload.model_dump())):
        raise NotFound("Product not found")
    return success("Product edited successfully", product=get_document_by_id("product", product_id))


@action()
def delete_product(actor: Optional[Actor], product_id: str) -> ActionResult:
    require_admin(actor)
    if not delete_document("product", product_id):
        raise NotFound("Product not found")
    logger.info("Product %s deleted by %s", product_id, actor.id)
    return success("Product deleted successfully")


@action()
def get_product(actor: Optional[Actor], product_id: str) -> ActionResult:
    require_authenticated(actor)
    product = get_document_by_id("product", product_id)
    if product is None:
        raise NotFound("Product not found")
    return success(product=product)


@action("Invalid query")
def list_products(
    actor: Optional[Actor],
    q: str = "",
    category: str = "ALL",
    page: int = 1,
    limit: int = DEFAULT_LIMITS["product"],
) -> ActionResult:
    require_authenticated(actor)
    return success(**paginate("product", product_filter(q, category), page, limit))


# ===================== Orders =====================
def new_order_number() -> str:
    return f"ORD-{str(ObjectId())[-6:].upper()}"


def price_items(product_ids: List[str]) -> List[OrderItem]:
    """
    Resolve products in one batch and snapshot their current name and price.
    Every requested id must resolve to its own product, so a repeated id fails
    the same way a missing one does. Quantity is always 1.
    """
    products = get_documents_by_ids("product", product_ids)
    if len(products) != len(product_ids):
        raise NotFound("Some products not found")
    by_id = {p["id"]: p for p in products}
    items = []
    for pid in product_ids:
        product = by_id[str(to_object_id(pid))]
        items.append(OrderItem(product_id=product["id"], name=product["name"], price=product["price"]))
    return items


def order_total(items: List[OrderItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


def _compose(payload: OrderIn):
    customer = get_document_by_id("customer", payload.customer_id)
    if customer is None:
        raise NotFound("Customer not found")
    items = price_items(payload.product_ids)
    total = order_total(items)
    if payload.total_amount is not None and abs(payload.total_amount - total) > TOTAL_TOLERANCE:
        raise InvalidInput(
            "Order total does not match product prices",
            {"totalAmount": f"Expected {total:.2f} for the selected products"},
        )
    return customer, items, total


def _with_customers(orders: List[dict]) -> List[dict]:
    ids = {o["customer_id"] for o in orders}
    customers = {c["id"]: c for c in get_documents_by_ids("customer", ids)}
    for o in orders:
        o.pop("id_text", None)
        o["customer"] = customers.get(o["customer_id"])
    return orders


def _load_order(order_id: str) -> dict:
    order = get_document_by_id("order", order_id)
    if order is None:
        raise NotFound("Order not found")
    return _with_customers([order])[0]


@action("Invalid order data")
def create_order(actor: Optional[Actor], data: Payload) -> ActionResult:
    require_admin_or_manager(actor)
    payload = OrderIn.model_validate(data)
    customer, items, total = _compose(payload)
    order = Order(
        customer_id=customer["id"],
        order_number=new_order_number(),
        status=payload.status,
        total_amount=total,
        items=items,
    )
    oid = ObjectId()
    # id_text backs substring search on the order id
    order_id = create_document("order", {**order.model_dump(mode="json"), "_id": oid, "id_text": str(oid)})
    logger.info("Order %s (%s) created by %s, total %.2f", order_id, order.order_number, actor.id, total)
    return success("Order created successfully", 201, order=_load_order(order_id))


@action("Invalid order data")
def update_order(actor: Optional[Actor], order_id: str, data: Payload) -> ActionResult:
    require_admin_or_manager(actor)
    payload = OrderIn.model_validate(data)
    if get_document_by_id("order", order_id) is None:
        raise NotFound("Order not found")
    customer, items, total = _compose(payload)
    # items and scalars go in one $set so the order is never left without items
    update_document("order", order_id, {
        "customer_id": customer["id"],
        "status": payload.status.value,
        "total_amount": total,
        "items": [item.model_dump() for item in items],
    })
    return success("Order updated successfully", order=_load_order(order_id))


@action("Invalid order status")
def update_order_status(actor: Optional[Actor], order_id: str, status: Any) -> ActionResult:
    require_admin_or_manager(actor)
    payload = OrderStatusIn.model_validate({"status": status})
    if not update_document("order", order_id, {"status": payload.status.value}):
        raise NotFound("Order not found")
    return success(f"Order marked as {payload.status.value.lower()}.", order=_load_order(order_id))


@action()
def delete_order(actor: Optional[Actor], order_id: str) -> ActionResult:
    require_admin_or_manager(actor)
    if not delete_document("order", order_id):
        raise NotFound("Order not found")
    logger.info("Order %s deleted by %s", order_id, actor.id)
    return success("Order deleted successfully")


@action()
def get_order(actor: Optional[Actor], order_id: str) -> ActionResult:
    require_authenticated(actor)
    return success(order=_load_order(order_id))


@action("Invalid query")
def list_orders(
    actor: Optional[Actor],
    q: str = "",
    status: str = "ALL",
    time: str = "ALL",
    page: int = 1,
    limit: int = DEFAULT_LIMITS["order"],
) -> ActionResult:
    require_authenticated(actor)
    result = paginate("order", order_filter(q, status, time), page, limit)
    _with_customers(result["data"])
    return success(**result)


# ===================== Users =====================
def load_actor(user_id: Optional[str]) -> Optional[Actor]:
    """Resolve a caller id to an Actor, taking the role from the store."""
    if not user_id:
        return None
    user = get_document_by_id("user", user_id, projection=USER_PUBLIC)
    if user is None:
        return None
    return Actor(id=user["id"], role=user["role"])


@action("Invalid user data")
def create_user(actor: Optional[Actor], data: Payload) -> ActionResult:
    require_admin_or_manager(actor)
    payload = UserCreate.model_validate(data)
    if not can_create_role(actor.role, payload.role):
        raise AccessDenied("You only have access to create sales agent")
    if get_documents("user", {"username": payload.username}, limit=1, projection={"_id": 1}):
        raise Conflict("Username already taken.", {"username": "Username already taken"})
    user = User(
        username=payload.username,
        password_hash=pwd_context.hash(payload.password),
        name=payload.name,
        role=payload.role,
    )
    try:
        user_id = create_document("user", user)
    except DuplicateKeyError:
        raise Conflict("Username already taken.", {"username": "Username already taken"})
    logger.info("User %s (%s) created by %s", payload.username, payload.role.value, actor.id)
    return success("User created successfully.", 201, user=get_document_by_id("user", user_id, USER_PUBLIC))


@action()
def delete_user(actor: Optional[Actor], user_id: str) -> ActionResult:
    require_admin(actor)
    user = get_document_by_id("user", user_id, USER_PUBLIC)
    if user is None:
        raise NotFound("User not found")
    if user["role"] == Role.ADMIN.value:
        raise AccessDenied("You can't delete an admin user")
    delete_document("user", user_id)
    logger.info("User %s deleted by %s", user["username"], actor.id)
    return success("User deleted successfully")


@action("Invalid query")
def list_users(
    actor: Optional[Actor],
    q: str = "",
    role: str = "ALL",
    page: int = 1,
    limit: int = DEFAULT_LIMITS["user"],
) -> ActionResult:
    require_authenticated(actor)
    return success(**paginate("user", user_filter(q, role), page, limit, projection=USER_PUBLIC))


@action("Missing or invalid credentials")
def authenticate(data: Payload) -> ActionResult:
    payload = LoginRequest.model_validate(data)
    users = get_documents("user", {"username": payload.username}, limit=1)
    if not users or not pwd_context.verify(payload.password, users[0]["password_hash"]):
        logger.info("Failed login for %s", payload.username)
        raise Unauthenticated("Invalid credentials")
    user = users[0]
    user.pop("password_hash")
    return success(user=user)


# ===================== Dashboard =====================
@action()
def dashboard_summary(actor: Optional[Actor]) -> ActionResult:
    require_authenticated(actor)
    today = time_window_bound(TimeWindow.TODAY, utcnow())
    return success(data={
        "totalOrders": count_documents("order"),
        "totalCustomers": count_documents("customer"),
        "totalProducts": count_documents("product"),
        "todaysOrders": count_documents("order", {"created_at": {"$gte": today}}),
    })
