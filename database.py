"""
MongoDB access helpers.

The connection is opened once at import time from DATABASE_URL/DATABASE_NAME.
Route handlers never touch the module-level handle directly: they receive it
through the get_db dependency. Tests swap in another database by overriding
get_optional_db, which get_db builds on.
"""

import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument

from config import DATABASE_URL, DATABASE_NAME
from errors import InternalError

logger = logging.getLogger(__name__)

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def get_optional_db():
    return db


def get_db(database=Depends(get_optional_db)):
    if database is None:
        raise InternalError("Database not configured")
    return database


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Replace Mongo's _id with a string id."""
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def create_document(database, collection: str, data) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", exclude_none=False)
    else:
        data = dict(data)
    now = datetime.utcnow()
    data["created_at"] = now
    data["updated_at"] = now
    result = database[collection].insert_one(data)
    data["_id"] = result.inserted_id
    logger.debug("Inserted %s into %s", result.inserted_id, collection)
    return serialize(data)


def get_documents(database, collection: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None):
    cursor = database[collection].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(doc) for doc in cursor]


def get_document(database, collection: str, doc_id: str) -> Optional[dict]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    return serialize(database[collection].find_one({"_id": oid}))


def update_document(database, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    changes = dict(changes)
    changes["updated_at"] = datetime.utcnow()
    doc = database[collection].find_one_and_update(
        {"_id": oid},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return serialize(doc)
