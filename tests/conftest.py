"""
Test configuration and fixtures
"""
import os

# No real document store or object store in tests
os.environ.pop('DATABASE_URL', None)
os.environ['ENVIRONMENT'] = 'testing'
os.environ['S3_PUBLIC_BASE_URL'] = 'https://storage.test'

from datetime import date, datetime
from io import BytesIO
from typing import AsyncGenerator, Callable, Dict, List

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from drafts import BudgetDraft, PlanDraft, ProfileDraft, ReportDraft
from exporter import DocumentExporter
from gateway import CollectionGateway
from images import RawImage
from main import Services, app, get_services
from schemas import Activity, Beneficiaries, CostBreakdown, Participant, Report, Resource
from services import ReportService
from tests.mocks.fake_store import FakeDatabase, RecordingStorage
from uploads import UploadCoordinator


def png_bytes(color: str = "red", size=(64, 48)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def exporter() -> DocumentExporter:
    """Exporter whose image fetcher serves a generated picture"""
    return DocumentExporter(fetch_image=lambda url: png_bytes("blue"))


@pytest.fixture
def services(fake_db, storage, exporter) -> Services:
    return Services(database=fake_db, storage=storage, exporter=exporter)


@pytest.fixture
def report_service(fake_db, storage, exporter) -> ReportService:
    return ReportService(
        CollectionGateway(Report, fake_db),
        UploadCoordinator(storage),
        base_path="reports",
        exporter=exporter,
    )


@pytest.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_services] = lambda: services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_image() -> Callable[[str], RawImage]:
    def _make(filename: str, color: str = "green") -> RawImage:
        return RawImage(filename=filename, data=png_bytes(color), content_type="image/png")
    return _make


@pytest.fixture
def photos(make_image) -> Dict[str, List[RawImage]]:
    """Two images per category, distinct names"""
    return {
        category: [make_image(f"{category}-{i}.png") for i in (1, 2)]
        for category in ("before", "during", "after")
    }


@pytest.fixture
def participant() -> Participant:
    return Participant(full_name="Ana Martinez", national_id="0801-1990-12345", phone="9999-0000")


@pytest.fixture
def profile_draft(participant) -> ProfileDraft:
    draft = ProfileDraft(
        project_name="Community Garden",
        project_types=["Environment", "Education"],
        location="San Pedro Sula",
        beneficiary_count=120,
        implementation_dates=[date(2024, 2, 1), date(2024, 6, 30)],
        problem_description="No green spaces in the neighbourhood.",
        action_description="Build and maintain a shared garden.",
        leader="Carlos Lopez",
    )
    draft.set_financed_amount(1500)
    draft.set_other_contributions(250)
    draft.add_participant(participant)
    return draft


@pytest.fixture
def report_draft(participant) -> ReportDraft:
    return ReportDraft(
        project_name="Community Garden",
        project_types=["Environment"],
        leader="Carlos Lopez",
        beneficiaries=Beneficiaries(count=120, description="Families of the neighbourhood"),
        improvement_description="The garden now supplies vegetables.",
        environmental_risks=["Water runoff"],
        mitigation_measures=["Drainage channels"],
        participants=[participant],
    )


@pytest.fixture
def plan_draft() -> PlanDraft:
    draft = PlanDraft(project_name="Literacy", objective="Teach adults to read", total_hours=40)
    draft.add_activity(Activity(
        description="Workshop",
        hours=40,
        scheduled_date=datetime(2024, 1, 10),
        required_resources=["Books"],
        responsible_parties=["Teacher"],
    ))
    return draft


@pytest.fixture
def budget_draft() -> BudgetDraft:
    draft = BudgetDraft(project_name="Clean Water")
    draft.add_resource(Resource(
        description="Pipes", quantity=10, amount_covered_primary=500, amount_covered_other=100
    ))
    return draft


@pytest.fixture
def cost() -> CostBreakdown:
    return CostBreakdown(financed_amount=1500, other_contributions=250, total=1750)
