"""
Database helpers

Connection to MongoDB plus the small set of helpers the routes and the seed
script share. The client is created once at import time; MongoClient connects
lazily, so importing this module never blocks on the network.
"""
import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "lendify")

client: Optional[MongoClient] = None
db = None

if DATABASE_URL:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def _require_db():
    if db is None:
        raise RuntimeError("Database not available")
    return db


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping createdAt/updatedAt. Returns the new id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    result = _require_db()[collection_name].insert_one(doc)
    return str(result.inserted_id)


def ensure_indexes():
    database = _require_db()
    database["users"].create_index([("walletAddress", ASCENDING)], unique=True)
    database["nfts"].create_index(
        [("contractAddress", ASCENDING), ("tokenId", ASCENDING), ("chainId", ASCENDING)],
        unique=True,
    )
    logger.info("Indexes ensured on %s", database.name)


def serialize_doc(value: Any) -> Any:
    """Convert a raw Mongo document into JSON-friendly data (_id -> id)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize_doc(v) for v in value]
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if k == "_id":
                out["id"] = str(v)
            else:
                out[k] = serialize_doc(v)
        return out
    return value
