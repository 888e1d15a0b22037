import os
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
from fastapi import FastAPI, Depends, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import actions
import database
from access import Actor
from errors import ActionResult, GENERIC_FAILURE, failure, field_errors
from queries import DEFAULT_LIMITS

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is None:
        logger.warning("Database not configured; set DATABASE_URL and DATABASE_NAME")
    else:
        database.ensure_indexes()
    yield


app = FastAPI(title="Order Management Admin API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================== Plumbing =====================
def respond(result: ActionResult) -> JSONResponse:
    return JSONResponse(jsonable_encoder(dict(result)), status_code=result.status_code)


def current_actor(x_user_id: Optional[str] = Header(None)) -> Optional[Actor]:
    # identity is issued upstream; only the id is trusted, the role comes from the store
    return actions.load_actor(x_user_id)


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError):
    result = failure("Invalid request", 422, field_errors(exc))
    return respond(result)


@app.exception_handler(Exception)
def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return respond(failure(GENERIC_FAILURE, 500))


# ===================== Public Endpoints =====================
@app.get("/")
def root():
    return {"message": "Order Management Admin API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            response["collections"] = database.db.list_collection_names()
        else:
            response["database"] = "⚠️  Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    return response


# ===================== Auth =====================
@app.post("/auth/login")
def login(payload: Dict[str, Any]):
    return respond(actions.authenticate(payload))


@app.get("/dashboard")
def dashboard(actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.dashboard_summary(actor))


# ===================== Customers =====================
@app.get("/customers")
def list_customers(q: str = "", page: int = 1, limit: int = DEFAULT_LIMITS["customer"],
                   actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.list_customers(actor, q=q, page=page, limit=limit))


@app.get("/customers/{customer_id}")
def get_customer(customer_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.get_customer(actor, customer_id))


@app.post("/customers")
def create_customer(payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.create_customer(actor, payload))


@app.put("/customers/{customer_id}")
def update_customer(customer_id: str, payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.update_customer(actor, customer_id, payload))


@app.delete("/customers/{customer_id}")
def delete_customer(customer_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.delete_customer(actor, customer_id))


# ===================== Products =====================
@app.get("/products")
def list_products(q: str = "", category: str = "ALL", page: int = 1, limit: int = DEFAULT_LIMITS["product"],
                  actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.list_products(actor, q=q, category=category, page=page, limit=limit))


@app.get("/products/{product_id}")
def get_product(product_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.get_product(actor, product_id))


@app.post("/products")
def create_product(payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.create_product(actor, payload))


@app.put("/products/{product_id}")
def update_product(product_id: str, payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.update_product(actor, product_id, payload))


@app.delete("/products/{product_id}")
def delete_product(product_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.delete_product(actor, product_id))


# ===================== Orders =====================
@app.get("/orders")
def list_orders(q: str = "", status: str = "ALL", time: str = "ALL", page: int = 1,
                limit: int = DEFAULT_LIMITS["order"], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.list_orders(actor, q=q, status=status, time=time, page=page, limit=limit))


@app.get("/orders/{order_id}")
def get_order(order_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.get_order(actor, order_id))


@app.post("/orders")
def create_order(payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.create_order(actor, payload))


@app.put("/orders/{order_id}")
def update_order(order_id: str, payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.update_order(actor, order_id, payload))


@app.patch("/orders/{order_id}/status")
def update_order_status(order_id: str, payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.update_order_status(actor, order_id, payload.get("status")))


@app.delete("/orders/{order_id}")
def delete_order(order_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.delete_order(actor, order_id))


# ===================== Users =====================
@app.get("/users")
def list_users(q: str = "", role: str = "ALL", page: int = 1, limit: int = DEFAULT_LIMITS["user"],
               actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.list_users(actor, q=q, role=role, page=page, limit=limit))


@app.post("/users")
def create_user(payload: Dict[str, Any], actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.create_user(actor, payload))


@app.delete("/users/{user_id}")
def delete_user(user_id: str, actor: Optional[Actor] = Depends(current_actor)):
    return respond(actions.delete_user(actor, user_id))


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
