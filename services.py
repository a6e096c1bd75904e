"""
Record services: validate -> upload -> assemble/merge -> persist.

Nothing is written to the store unless every earlier step succeeded. A failed
submit raises; the caller turns the error into a message for the user.
"""

import asyncio
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from assembly import assemble_for_create, assemble_for_update, changed_fields, split_sub_lists
from drafts import Draft
from exporter import DocumentExporter, ExportedDocument
from gateway import CollectionGateway
from images import RawImage
from logging_config import get_logger
from schemas import Report
from uploads import PhotoSet, UploadCoordinator, require_complete_set, require_unlocked
from validation import validate

logger = get_logger("services")

R = TypeVar("R", bound=BaseModel)


class RecordService(Generic[R]):

    def __init__(self, gateway: CollectionGateway[R], exporter: Optional[DocumentExporter] = None):
        self.gateway = gateway
        self.exporter = exporter or DocumentExporter()
        self.kind: str = gateway.collection

    async def create(self, draft: Draft) -> R:
        fields, sub_lists = split_sub_lists(self.kind, validate(draft))
        record = assemble_for_create(self.gateway.record_type, fields, sub_lists)
        record_id = await self.gateway.create(record)
        return record.model_copy(update={"id": record_id})

    async def update(self, record_id: str, draft: Draft) -> Optional[R]:
        """Apply the draft's set fields; None when the record does not exist"""
        fields, sub_lists = split_sub_lists(self.kind, validate(draft, partial=True))
        existing = await self.gateway.get_by_id(record_id)
        if existing is None:
            return None
        updated = assemble_for_update(existing, fields, sub_lists)
        return await self._save(existing, updated)

    async def _save(self, existing: R, updated: R) -> Optional[R]:
        matched = await self.gateway.update(existing.id, changed_fields(existing, updated))
        return updated if matched else None

    async def get(self, record_id: str) -> Optional[R]:
        return await self.gateway.get_by_id(record_id)

    async def list(self) -> List[R]:
        return await self.gateway.list()

    async def search(self, term: str) -> List[R]:
        """Case-insensitive match on the project name over a fresh full list"""
        records = await self.gateway.list()
        needle = term.strip().lower()
        if not needle:
            return records
        return [r for r in records if needle in r.project_name.lower()]

    async def delete(self, record_id: str) -> None:
        await self.gateway.delete(record_id)

    async def export(self, record_id: str) -> Optional[ExportedDocument]:
        record = await self.gateway.get_by_id(record_id)
        if record is None:
            return None
        return await asyncio.to_thread(self.exporter.export, record)


class ReportService(RecordService[Report]):
    """Reports also carry photographs, uploaded before the document is written"""

    def __init__(self, gateway: CollectionGateway[Report], uploader: UploadCoordinator,
                 base_path: str, exporter: Optional[DocumentExporter] = None):
        super().__init__(gateway, exporter)
        self.uploader = uploader
        self.base_path = base_path

    async def create(self, draft: Draft, photos: Optional[PhotoSet] = None) -> Report:
        fields, sub_lists = split_sub_lists(self.kind, validate(draft))
        photos = photos or {}
        require_complete_set(photos)

        uploaded = await self.uploader.upload(photos, self.base_path)
        record = assemble_for_create(Report, fields, sub_lists, uploaded)
        record_id = await self.gateway.create(record)
        return record.model_copy(update={"id": record_id})

    async def update(self, record_id: str, draft: Draft,
                     photos: Optional[PhotoSet] = None) -> Optional[Report]:
        fields, sub_lists = split_sub_lists(self.kind, validate(draft, partial=True))
        photos = photos or {}
        self.uploader.check_cardinality(photos)

        existing = await self.gateway.get_by_id(record_id)
        if existing is None:
            return None
        require_unlocked(photos, existing.photographs.locked_categories())

        uploaded: Dict[str, List[str]] = {}
        if any(photos.values()):
            uploaded = await self.uploader.upload(photos, self.base_path)
        updated = assemble_for_update(existing, fields, sub_lists, uploaded)
        return await self._save(existing, updated)


def photo_set(before: List[RawImage], during: List[RawImage], after: List[RawImage]) -> Dict[str, List[RawImage]]:
    return {"before": before, "during": during, "after": after}
