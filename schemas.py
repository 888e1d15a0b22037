"""
Database Schemas for the Order Management Panel

Each stored model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., Customer -> "customer").
Order items are embedded in their order document rather than kept in a collection
of their own, so an order and its items are always written together.

The *In models validate what callers send; they keep the camelCase names the
admin forms post (customerId, productIds, totalAmount).
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, EmailStr


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SALES_AGENT = "SALES_AGENT"


class Category(str, Enum):
    ELECTRONICS = "ELECTRONICS"
    GROCERY = "GROCERY"
    CLOTHING = "CLOTHING"
    STATIONERY = "STATIONERY"
    BEAUTY = "BEAUTY"
    FURNITURE = "FURNITURE"
    TOYS = "TOYS"
    MEDICINE = "MEDICINE"
    OTHER = "OTHER"


class Unit(str, Enum):
    PIECE = "PIECE"
    GRAM = "GRAM"
    KILOGRAM = "KILOGRAM"
    LITRE = "LITRE"
    MILLILITRE = "MILLILITRE"
    METER = "METER"
    CENTIMETER = "CENTIMETER"
    BOX = "BOX"
    PACK = "PACK"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class TimeWindow(str, Enum):
    ALL = "ALL"
    TODAY = "TODAY"
    LAST_7_DAYS = "7_DAYS"
    LAST_30_DAYS = "30_DAYS"


# ===================== Stored documents =====================
class Customer(BaseModel):
    name: str = Field(..., description="Customer name")
    email: EmailStr = Field(..., description="Contact email, unique across customers")
    phone: Optional[str] = None
    address: Optional[str] = None


class Product(BaseModel):
    name: str = Field(..., description="Product name")
    description: str = Field(..., description="Short description")
    category: Category
    unit: Unit
    price: float = Field(..., ge=0, description="Current unit price")


class OrderItem(BaseModel):
    product_id: str = Field(..., description="Product _id as string")
    name: str = Field(..., description="Snapshot of product name at order time")
    price: float = Field(..., ge=0, description="Unit price at order time")
    quantity: int = Field(1, ge=1)


class Order(BaseModel):
    customer_id: str = Field(..., description="Reference to customer _id")
    order_number: str = Field(..., description="Human-friendly order number")
    status: OrderStatus = OrderStatus.PENDING
    total_amount: float = Field(..., ge=0)
    items: List[OrderItem] = Field(..., min_length=1)


class User(BaseModel):
    username: str = Field(..., description="Unique login name")
    password_hash: str = Field(..., description="BCrypt password hash")
    name: str
    role: Role


# ===================== Action inputs =====================
class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: Category
    unit: Unit
    price: float = Field(..., ge=0)


class OrderIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_id: str = Field(..., alias="customerId", min_length=1)
    product_ids: List[str] = Field(..., alias="productIds", min_length=1)
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Optional[float] = Field(None, alias="totalAmount", ge=0)


class OrderStatusIn(BaseModel):
    status: OrderStatus


class UserCreate(BaseModel):
    username: str = Field(..., min_length=5)
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=4)
    role: Role


class LoginRequest(BaseModel):
    username: str
    password: str
