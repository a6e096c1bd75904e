"""
Collection gateway: typed create/list/get/update/delete over one collection.

Documents are decoded into their record schema on the way out; anything that
does not match is refused instead of being passed along. Store failures are
re-raised as StoreTransportError with the driver error chained, never retried.
"""

import asyncio
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

import database as store
from errors import MalformedDocumentError, StoreTransportError
from logging_config import get_logger

logger = get_logger("gateway")

R = TypeVar("R", bound=BaseModel)


class CollectionGateway(Generic[R]):

    def __init__(self, record_type: Type[R], database: Optional[Database] = None):
        self.record_type = record_type
        self.collection: str = record_type.collection
        self.database = database

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, self.collection, *args, database=self.database)
        except PyMongoError as e:
            logger.error(f"{operation} on '{self.collection}' failed: {e}", exc_info=True)
            raise StoreTransportError(operation, self.collection) from e

    def _decode(self, doc: Dict[str, Any]) -> R:
        doc = dict(doc)
        doc_id = str(doc.pop("_id"))
        try:
            return self.record_type.model_validate({**doc, "id": doc_id})
        except ValidationError as e:
            raise MalformedDocumentError(self.collection, doc_id, str(e)) from e

    def _encode_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        encoded = {}
        for name, value in fields.items():
            info = self.record_type.model_fields.get(name)
            if info is None or name == "id":
                raise ValueError(f"'{name}' is not an updatable field of {self.collection}")
            adapter = TypeAdapter(info.annotation)
            encoded[name] = adapter.dump_python(adapter.validate_python(value), mode="json")
        return encoded

    async def create(self, record: R) -> str:
        """Persist a new record; the store picks the id"""
        data = record.model_dump(mode="json", exclude={"id"})
        record_id = await self._call("create", store.create_document, data)
        logger.info(f"Created {self.collection} {record_id}")
        return record_id

    async def list(self) -> List[R]:
        """Every document in the collection, in store order.

        A malformed document is skipped (and logged) so one bad entry does
        not hide the rest of the list.
        """
        docs = await self._call("list", store.get_documents)
        records = []
        for doc in docs:
            try:
                records.append(self._decode(doc))
            except MalformedDocumentError as e:
                logger.warning(e.message, extra={"reason": e.details["reason"]})
        return records

    async def get_by_id(self, record_id: str) -> Optional[R]:
        doc = await self._call("read", store.get_document, record_id)
        if doc is None:
            return None
        return self._decode(doc)

    async def update(self, record_id: str, fields: Dict[str, Any]) -> bool:
        """Patch the given top-level fields; returns False if nothing matched"""
        if not fields:
            return True
        encoded = self._encode_fields(fields)
        matched = await self._call("update", store.update_document, record_id, encoded)
        logger.info(f"Updated {self.collection} {record_id}: {', '.join(sorted(encoded))}")
        return matched

    async def delete(self, record_id: str) -> None:
        """Idempotent: deleting an unknown id is not an error"""
        deleted = await self._call("delete", store.delete_document, record_id)
        if deleted:
            logger.info(f"Deleted {self.collection} {record_id}")
