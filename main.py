import os
from functools import lru_cache
from typing import List, Optional, Type
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config import settings
from database import db
from drafts import BudgetDraft, Draft, PlanDraft, ProfileDraft, ReportDraft
from errors import (
    ExportError,
    MalformedDocumentError,
    RecordsError,
    RecordValidationError,
    StoreTransportError,
    UploadCardinalityError,
    UploadTransportError,
)
from exporter import DocumentExporter, ExportedDocument
from gateway import CollectionGateway
from images import RawImage
from logging_config import logger
from schemas import Budget, Plan, Profile, Report
from services import RecordService, ReportService, photo_set
from storage import StorageClient
from uploads import UploadCoordinator
from validation import field_errors

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Wiring ----------

class Services:
    """One service per record kind, sharing the store, storage and exporter"""

    def __init__(self, database=None, storage: Optional[StorageClient] = None,
                 exporter: Optional[DocumentExporter] = None):
        exporter = exporter or DocumentExporter()
        self.profiles = RecordService(CollectionGateway(Profile, database), exporter)
        self.plans = RecordService(CollectionGateway(Plan, database), exporter)
        self.budgets = RecordService(CollectionGateway(Budget, database), exporter)
        self.reports = ReportService(
            CollectionGateway(Report, database),
            UploadCoordinator(storage or StorageClient()),
            base_path=settings.REPORT_PHOTO_PREFIX,
            exporter=exporter,
        )


@lru_cache()
def get_services() -> Services:
    return Services(database=db)


# ---------- Errors ----------

ERROR_STATUS = [
    (RecordValidationError, 422),
    (UploadCardinalityError, 400),
    (UploadTransportError, 502),
    (StoreTransportError, 503),
    (MalformedDocumentError, 500),
    (ExportError, 500),
]


@app.exception_handler(RecordsError)
async def records_error_handler(request: Request, exc: RecordsError):
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ---------- Helpers ----------

def not_found(kind: str, record_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind.capitalize()} {record_id} not found")


def pdf_response(document: ExportedDocument) -> Response:
    ascii_name = document.filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(document.filename)}"
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": disposition},
    )


def parse_draft(draft_type: Type[Draft], payload: str) -> Draft:
    """Multipart forms carry the draft as a JSON string"""
    try:
        return draft_type.model_validate_json(payload)
    except ValidationError as e:
        raise RecordValidationError(field_errors(e), kind=draft_type.kind)


async def read_images(files: List[UploadFile]) -> List[RawImage]:
    return [
        RawImage(filename=f.filename or "image", data=await f.read(), content_type=f.content_type)
        for f in files
    ]


def register_routes(prefix: str, attr: str, draft_type: Type[Draft], json_body: bool = True):
    kind = draft_type.kind

    def service_of(services: Services = Depends(get_services)) -> RecordService:
        return getattr(services, attr)

    if json_body:
        @app.post(f"/{prefix}", status_code=201, name=f"create_{kind}")
        async def create_record(draft: draft_type, service: RecordService = Depends(service_of)):
            record = await service.create(draft)
            return record.model_dump()

        @app.patch(f"/{prefix}/{{record_id}}", name=f"update_{kind}")
        async def update_record(record_id: str, draft: draft_type,
                                service: RecordService = Depends(service_of)):
            record = await service.update(record_id, draft)
            if record is None:
                raise not_found(kind, record_id)
            return record.model_dump()

    @app.get(f"/{prefix}", name=f"list_{kind}s")
    async def list_records(q: Optional[str] = None, service: RecordService = Depends(service_of)):
        records = await service.search(q) if q else await service.list()
        return [r.model_dump() for r in records]

    @app.get(f"/{prefix}/{{record_id}}", name=f"get_{kind}")
    async def get_record(record_id: str, service: RecordService = Depends(service_of)):
        record = await service.get(record_id)
        if record is None:
            raise not_found(kind, record_id)
        return record.model_dump()

    @app.delete(f"/{prefix}/{{record_id}}", status_code=204, name=f"delete_{kind}")
    async def delete_record(record_id: str, service: RecordService = Depends(service_of)):
        await service.delete(record_id)
        return Response(status_code=204)

    @app.get(f"/{prefix}/{{record_id}}/export", name=f"export_{kind}")
    async def export_record(record_id: str, service: RecordService = Depends(service_of)):
        document = await service.export(record_id)
        if document is None:
            raise not_found(kind, record_id)
        return pdf_response(document)


# ---------- Public Routes ----------

@app.get("/")
def root():
    return {"message": f"{settings.APP_NAME} running"}


@app.get("/test")
def test_database():
    try:
        cols = db.list_collection_names() if db is not None else []
        return {"backend": "ok", "db": "ok" if db is not None else "not_configured", "collections": cols}
    except Exception as e:
        return {"backend": "ok", "db": f"error: {str(e)}"}


# ---------- Reports (multipart: JSON payload + photographs) ----------

@app.post("/reports", status_code=201)
async def create_report(
    payload: str = Form(...),
    before: List[UploadFile] = File(default=[]),
    during: List[UploadFile] = File(default=[]),
    after: List[UploadFile] = File(default=[]),
    services: Services = Depends(get_services),
):
    draft = parse_draft(ReportDraft, payload)
    photos = photo_set(await read_images(before), await read_images(during), await read_images(after))
    record = await services.reports.create(draft, photos)
    return record.model_dump()


@app.patch("/reports/{record_id}")
async def update_report(
    record_id: str,
    payload: str = Form("{}"),
    before: List[UploadFile] = File(default=[]),
    during: List[UploadFile] = File(default=[]),
    after: List[UploadFile] = File(default=[]),
    services: Services = Depends(get_services),
):
    draft = parse_draft(ReportDraft, payload)
    photos = photo_set(await read_images(before), await read_images(during), await read_images(after))
    record = await services.reports.update(record_id, draft, photos)
    if record is None:
        raise not_found("report", record_id)
    return record.model_dump()


register_routes("profiles", "profiles", ProfileDraft)
register_routes("reports", "reports", ReportDraft, json_body=False)
register_routes("plans", "plans", PlanDraft)
register_routes("budgets", "budgets", BudgetDraft)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", settings.PORT))
    uvicorn.run(app, host="0.0.0.0", port=port)
