"""
MongoDB access for the construction manager.

Collections are named after the schema in lowercase (``Task`` -> ``task``).
Documents use camelCase keys and carry ``createdAt``/``updatedAt`` timestamps
maintained by the helpers below. Handlers are stateless; the only shared
object is the client, which owns its own connection pool.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

from config import settings

log = structlog.get_logger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None


def connect(mongo_client: Optional[MongoClient] = None) -> Database:
    """Open the client (or adopt the given one), select the database and create indexes."""
    global client, db
    client = mongo_client or MongoClient(settings.mongo_uri, serverSelectionTimeoutMS=settings.mongo_timeout_ms)
    db = client[settings.database_name]
    ensure_indexes(db)
    log.info("database_connected", database=settings.database_name)
    return db


def disconnect() -> None:
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None


def ensure_indexes(database: Database) -> None:
    database["task"].create_index([("taskCode", ASCENDING)], unique=True)
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["revokedtoken"].create_index([("jti", ASCENDING)], unique=True)
    database["revokedtoken"].create_index([("expiresAt", ASCENDING)], expireAfterSeconds=0)


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id format")


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    return doc


def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a document stamped with createdAt/updatedAt and return it with a string ``_id``."""
    doc = _as_dict(data)
    stamp = now()
    doc.setdefault("createdAt", stamp)
    doc["updatedAt"] = stamp
    result = get_db()[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return serialize(doc)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    skip: int = 0,
    limit: int = 0,
) -> List[Dict[str, Any]]:
    cursor = get_db()[collection_name].find(filter_dict or {})
    cursor = cursor.sort(sort or [("createdAt", DESCENDING)])
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(d) for d in cursor]


def get_document_or_404(collection_name: str, doc_id: str, label: str) -> Dict[str, Any]:
    doc = get_db()[collection_name].find_one({"_id": oid(doc_id)})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return serialize(doc)


def update_document(collection_name: str, doc_id: str, changes: Dict[str, Any], label: str) -> Dict[str, Any]:
    """Apply ``$set`` with a fresh updatedAt; 404 when the document is gone."""
    update = dict(changes)
    update["updatedAt"] = now()
    doc = get_db()[collection_name].find_one_and_update(
        {"_id": oid(doc_id)},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return serialize(doc)


def delete_document(collection_name: str, doc_id: str, label: str) -> Dict[str, Any]:
    """Delete and return the removed document; 404 when nothing matched."""
    doc = get_db()[collection_name].find_one_and_delete({"_id": oid(doc_id)})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return serialize(doc)


def require_reference(collection_name: str, doc_id: str, label: str) -> None:
    """Reject a write whose soft reference points at a missing document."""
    try:
        key = ObjectId(doc_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {label} id")
    if get_db()[collection_name].find_one({"_id": key}, {"_id": 1}) is None:
        raise HTTPException(status_code=400, detail=f"{label} {doc_id} does not exist")
