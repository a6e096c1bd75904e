"""
Database Helper Functions

MongoDB access shared by the collection gateways. Documents are stored as
plain JSON-compatible dicts plus created_at/updated_at timestamps; the
document `_id` is generated by the store and handed back as a string.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConfigurationError

from config import settings

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL:
    client = MongoClient(settings.DATABASE_URL)
    db = client[settings.DATABASE_NAME]


def _resolve(database: Optional[Database]) -> Database:
    database = database if database is not None else db
    if database is None:
        raise ConfigurationError("Database not available. Set DATABASE_URL.")
    return database


def _to_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return dict(data)


def _object_id(document_id: str) -> Optional[ObjectId]:
    return ObjectId(document_id) if ObjectId.is_valid(document_id) else None


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]],
                    database: Optional[Database] = None) -> str:
    """Insert a single document with timestamps and return its id"""
    data_dict = _to_dict(data)
    now = datetime.now(timezone.utc)
    data_dict['created_at'] = now
    data_dict['updated_at'] = now

    result = _resolve(database)[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, database: Optional[Database] = None) -> List[Dict[str, Any]]:
    """Get documents from collection, `_id` converted to a string"""
    cursor = _resolve(database)[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)

    documents = []
    for doc in cursor:
        doc['_id'] = str(doc['_id'])
        documents.append(doc)
    return documents


def get_document(collection_name: str, document_id: str,
                 database: Optional[Database] = None) -> Optional[Dict[str, Any]]:
    """Point read; None when the id is unknown or not a valid ObjectId"""
    oid = _object_id(document_id)
    if oid is None:
        return None
    doc = _resolve(database)[collection_name].find_one({'_id': oid})
    if doc is None:
        return None
    doc['_id'] = str(doc['_id'])
    return doc


def update_document(collection_name: str, document_id: str, fields: Dict[str, Any],
                    database: Optional[Database] = None) -> bool:
    """$set the given top-level fields, leaving every other field untouched"""
    oid = _object_id(document_id)
    if oid is None:
        return False
    changes = dict(fields)
    changes['updated_at'] = datetime.now(timezone.utc)
    result = _resolve(database)[collection_name].update_one({'_id': oid}, {'$set': changes})
    return result.matched_count > 0


def delete_document(collection_name: str, document_id: str,
                    database: Optional[Database] = None) -> bool:
    """Remove a document; False (not an error) when nothing matched"""
    oid = _object_id(document_id)
    if oid is None:
        return False
    result = _resolve(database)[collection_name].delete_one({'_id': oid})
    return result.deleted_count > 0
