"""
Database helpers

One MongoClient per process. Route handlers receive the database through the
`get_db` dependency so tests can swap in another backend.

Collections:
- contents            localized page copy, one per locale
- projects            portfolio entries, one per (locale, id)
- projecttranslations shared project page strings, one per locale
- siteconfigs         singleton site settings
- contactforms        inbound contact messages
- users               admin accounts
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

import settings

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL:
    _client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=5000, maxPoolSize=10)
    db = _client[settings.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id as a string."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    stamp = now()
    data_dict.setdefault("createdAt", stamp)
    data_dict.setdefault("updatedAt", stamp)
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a raw document JSON friendly (ObjectId -> str)."""
    if doc is None:
        return None
    out = dict(doc)
    if "_id" in out:
        out["_id"] = str(out["_id"])
    return out


def ensure_indexes(database: Database) -> None:
    database["contents"].create_index("locale", unique=True)
    database["projecttranslations"].create_index("locale", unique=True)
    database["users"].create_index("username", unique=True)
    database["projects"].create_index([("locale", ASCENDING), ("id", ASCENDING)], unique=True)
    database["projects"].create_index("originalId")
    database["contactforms"].create_index([("createdAt", ASCENDING)])
    logger.info("Database indexes ensured on %s", database.name)
