"""
Unit Tests for PDF Export
"""
import pytest

from assembly import assemble_for_create
from exporter import DocumentExporter, _safe_filename, to_jpeg
from errors import ExportError
from schemas import Budget, Plan, Profile, Report
from tests.conftest import png_bytes
from validation import validate

PHOTOS = {c: [f"https://storage.test/reports/{c}/{c}-{i}.webp" for i in (1, 2)]
          for c in ("before", "during", "after")}


@pytest.fixture
def stored(profile_draft, report_draft, plan_draft, budget_draft):
    """One stored record of every kind"""
    return {
        "profile": assemble_for_create(Profile, validate(profile_draft)),
        "report": assemble_for_create(Report, validate(report_draft), uploaded=PHOTOS),
        "plan": assemble_for_create(Plan, validate(plan_draft)),
        "budget": assemble_for_create(Budget, validate(budget_draft)),
    }


class TestExport:

    @pytest.mark.parametrize("kind,filename", [
        ("profile", "Profile - Community Garden.pdf"),
        ("report", "Report - Community Garden.pdf"),
        ("plan", "Plan - Literacy.pdf"),
        ("budget", "Budget - Clean Water.pdf"),
    ])
    def test_every_kind_renders(self, exporter, stored, kind, filename):
        record = stored[kind].model_copy(update={"id": "abc"})

        document = exporter.export(record)

        assert document.filename == filename
        assert document.media_type == "application/pdf"
        assert document.content.startswith(b"%PDF")

    def test_unsaved_record_is_refused(self, exporter, stored):
        with pytest.raises(ExportError):
            exporter.export(stored["plan"])

    def test_not_a_record(self, exporter):
        with pytest.raises(ExportError):
            exporter.export(type("Other", (), {"id": "x"})())

    def test_unreachable_images_are_skipped(self, stored):
        fetched = []

        def fetch(url):
            fetched.append(url)
            return None if "during" in url else png_bytes("yellow")

        report = stored["report"].model_copy(update={"id": "abc"})
        document = DocumentExporter(fetch_image=fetch).export(report)

        assert document.content.startswith(b"%PDF")
        assert fetched == [url for c in ("before", "during", "after") for url in PHOTOS[c]]

    def test_empty_lists_still_render(self, exporter, stored):
        profile = stored["profile"].model_copy(update={"id": "abc", "participants": []})

        assert exporter.export(profile).content.startswith(b"%PDF")


class TestHelpers:

    def test_to_jpeg(self):
        buffer = to_jpeg(png_bytes())

        assert buffer.read(3) == b"\xff\xd8\xff"

    def test_to_jpeg_rejects_garbage(self):
        assert to_jpeg(b"not an image") is None

    @pytest.mark.parametrize("name,expected", [
        ("Clean Water", "Clean Water"),
        ("Roads 2024/2025", "Roads 2024-2025"),
        ('  "quoted"  ', '-quoted-'),
        ("///", "-"),
    ])
    def test_safe_filename(self, name, expected):
        assert _safe_filename(name) == expected
