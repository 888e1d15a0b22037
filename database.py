"""
Database Helper Functions

MongoDB helpers shared by the entity actions and list queries.
Every document gets `created_at` / `updated_at` stamped here, never by callers.
"""

from pymongo import MongoClient, ASCENDING, DESCENDING
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timezone
import os
from dotenv import load_dotenv
from typing import Union, Optional, Dict, Any, List, Iterable
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]

COLLECTIONS = ("customer", "product", "order", "user")


def _ensure_db():
    if db is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return dict(data)


def utcnow() -> datetime:
    # naive UTC, which is what pymongo hands back on reads
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def ensure_indexes():
    _ensure_db()
    db["user"].create_index("username", unique=True)
    db["customer"].create_index("email", unique=True)
    for name in COLLECTIONS:
        db[name].create_index([("created_at", DESCENDING)])
    db["order"].create_index([("customer_id", ASCENDING)])


# CRUD helpers

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    _ensure_db()
    payload = _to_dict(data)
    now = utcnow()
    payload['created_at'] = now
    payload['updated_at'] = now
    result = db[collection_name].insert_one(payload)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    sort: Optional[list] = None,
    skip: Optional[int] = None,
    projection: Optional[dict] = None,
) -> List[dict]:
    _ensure_db()
    cursor = db[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(int(skip))
    if limit:
        cursor = cursor.limit(int(limit))
    return [serialize_doc(doc) for doc in cursor]


def count_documents(collection_name: str, filter_dict: Optional[dict] = None) -> int:
    _ensure_db()
    return db[collection_name].count_documents(filter_dict or {})


def get_document_by_id(collection_name: str, _id: str, projection: Optional[dict] = None) -> Optional[dict]:
    _ensure_db()
    oid = to_object_id(_id)
    if oid is None:
        return None
    doc = db[collection_name].find_one({"_id": oid}, projection)
    return serialize_doc(doc) if doc else None


def get_documents_by_ids(collection_name: str, ids: Iterable[str], projection: Optional[dict] = None) -> List[dict]:
    """Resolve many ids in a single `$in` lookup. Malformed ids simply never match."""
    _ensure_db()
    oids = [oid for oid in (to_object_id(i) for i in ids) if oid is not None]
    if not oids:
        return []
    return [serialize_doc(doc) for doc in db[collection_name].find({"_id": {"$in": oids}}, projection)]


def update_document(collection_name: str, _id: str, update_data: Union[BaseModel, Dict[str, Any]]) -> bool:
    """Returns True when the document exists, whether or not a field changed."""
    _ensure_db()
    oid = to_object_id(_id)
    if oid is None:
        return False
    update = {"$set": _to_dict(update_data)}
    update["$set"]["updated_at"] = utcnow()
    result = db[collection_name].update_one({"_id": oid}, update)
    return result.matched_count > 0


def delete_document(collection_name: str, _id: str) -> bool:
    _ensure_db()
    oid = to_object_id(_id)
    if oid is None:
        return False
    result = db[collection_name].delete_one({"_id": oid})
    return result.deleted_count > 0


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))  # convert ObjectId to string
    return d
