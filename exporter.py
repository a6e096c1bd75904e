"""
PDF export of fully assembled records.

One document per record: a centered title, the labelled fields, a table for
the embedded list and, for reports, the photographs of each category two per
row. Photographs are fetched from their public URLs and converted to JPEG; an
image that cannot be fetched or decoded is skipped.
"""

import re
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, List, Optional, Sequence
from xml.sax.saxutils import escape

import httpx
from PIL import Image as PILImage, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from errors import ExportError
from logging_config import get_logger
from schemas import PHOTO_CATEGORIES, Budget, Plan, Profile, Report

logger = get_logger("exporter")

PDF_MEDIA_TYPE = "application/pdf"
NOT_SPECIFIED = "Not specified"

CATEGORY_TITLES = {
    "before": "Photos Before:",
    "during": "Photos During:",
    "after": "Photos After:",
}


@dataclass
class ExportedDocument:
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE


def fetch_image_bytes(url: str) -> Optional[bytes]:
    try:
        response = httpx.get(url, timeout=15.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Could not fetch image {url}: {e}")
        return None
    return response.content


def to_jpeg(data: bytes) -> Optional[BytesIO]:
    """WebP (or any Pillow format) -> JPEG buffer reportlab can embed"""
    try:
        with PILImage.open(BytesIO(data)) as img:
            buffer = BytesIO()
            img.convert("RGB").save(buffer, format="JPEG", quality=85)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not convert image: {e}")
        return None
    buffer.seek(0)
    return buffer


def _safe_filename(name: str) -> str:
    return re.sub(r'[\\/:*?"<>|]+', "-", name).strip() or "record"


class DocumentExporter:

    def __init__(self, fetch_image: Callable[[str], Optional[bytes]] = fetch_image_bytes):
        self.fetch_image = fetch_image
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='DocTitle',
            parent=self.styles['Title'],
            fontSize=16,
            alignment=TA_CENTER,
            spaceAfter=12,
            fontName='Helvetica-Bold'
        ))
        self.styles.add(ParagraphStyle(
            name='Field',
            parent=self.styles['Normal'],
            fontSize=11,
            leading=15,
            spaceAfter=4,
            fontName='Helvetica'
        ))
        self.styles.add(ParagraphStyle(
            name='Section',
            parent=self.styles['Normal'],
            fontSize=12,
            spaceBefore=10,
            spaceAfter=6,
            fontName='Helvetica-Bold',
            keepWithNext=True
        ))

    def export(self, record) -> ExportedDocument:
        if getattr(record, "id", None) is None:
            raise ExportError("Only stored records can be exported")

        builders = {
            Profile: ("Profile", self._profile_story),
            Report: ("Report", self._report_story),
            Plan: ("Plan", self._plan_story),
            Budget: ("Budget", self._budget_story),
        }
        if type(record) not in builders:
            raise ExportError(f"No document layout for {type(record).__name__}")
        kind, build_story = builders[type(record)]

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=f"{kind} - {record.project_name}",
            leftMargin=18 * mm,
            rightMargin=18 * mm,
            topMargin=18 * mm,
            bottomMargin=18 * mm,
        )
        story = [Paragraph(f"Community Social Project {kind}", self.styles['DocTitle'])]
        story.extend(build_story(record))
        doc.build(story)

        logger.info(f"Exported {kind.lower()} {record.id}")
        return ExportedDocument(
            filename=f"{kind} - {_safe_filename(record.project_name)}.pdf",
            content=buffer.getvalue(),
        )

    # ---------- Building blocks ----------

    def _field(self, label: str, value) -> Paragraph:
        if value is None or value == "" or value == []:
            text = NOT_SPECIFIED
        elif isinstance(value, (list, tuple)):
            text = ", ".join(str(v) for v in value)
        else:
            text = str(value)
        return Paragraph(f"<b>{escape(label)}:</b> {escape(text)}", self.styles['Field'])

    def _table(self, title: str, header: Sequence[str], rows: List[Sequence]) -> list:
        cell = self.styles['BodyText']
        data = [list(header)] + [[Paragraph(escape(str(v)), cell) for v in row] for row in rows]
        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), HexColor('#0068b1')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        return [Paragraph(title, self.styles['Section']), table]

    def _photos(self, title: str, urls: List[str]) -> list:
        images = []
        for url in urls:
            data = self.fetch_image(url)
            jpeg = to_jpeg(data) if data else None
            if jpeg is None:
                logger.warning(f"Skipping image {url}")
                continue
            images.append(Image(jpeg, width=70 * mm, height=50 * mm))

        flowables = [Paragraph(title, self.styles['Section'])]
        for i in range(0, len(images), 2):
            flowables.append(Table([images[i:i + 2]], hAlign='LEFT'))
            flowables.append(Spacer(1, 4 * mm))
        return flowables

    # ---------- Per kind ----------

    def _profile_story(self, profile: Profile) -> list:
        dates = [d.isoformat() for d in profile.implementation_dates]
        story = [
            self._field("Project Name", profile.project_name),
            self._field("Project Type", profile.project_types),
            self._field("Implementation Place", profile.location),
            self._field("Number of Beneficiaries", profile.beneficiary_count),
            self._field("Implementation Dates", dates),
            self._field("Financed Amount", f"{profile.cost.financed_amount:.2f}"),
            self._field("Other Contributions", f"{profile.cost.other_contributions:.2f}"),
            self._field("Total Cost", f"{profile.cost.total:.2f}"),
            self._field("Leader/Coordinator", profile.leader),
            self._field("Problem Description", profile.problem_description),
            self._field("Description of Actions", profile.action_description),
        ]
        story += self._participants(profile.participants)
        return story

    def _report_story(self, report: Report) -> list:
        story = [
            self._field("Project Name", report.project_name),
            self._field("Project Type", report.project_types),
            self._field("Leader/Coordinator", report.leader),
            self._field("Number of Beneficiaries", report.beneficiaries.count),
            self._field("Beneficiaries Description", report.beneficiaries.description),
            self._field("Improvement Description", report.improvement_description),
            self._field("Environmental Risks", report.environmental_risks),
            self._field("Environmental Mitigation Measures", report.mitigation_measures),
        ]
        story += self._participants(report.participants)
        for category in PHOTO_CATEGORIES:
            story += self._photos(CATEGORY_TITLES[category], getattr(report.photographs, category))
        return story

    def _plan_story(self, plan: Plan) -> list:
        story = [
            self._field("Project Name", plan.project_name),
            self._field("Project Objective", plan.objective),
            self._field("Total Hours", plan.total_hours),
        ]
        rows = [
            [a.description, a.hours, a.scheduled_date.strftime("%Y-%m-%d"),
             ", ".join(a.required_resources), ", ".join(a.responsible_parties)]
            for a in plan.activities
        ]
        story += self._table(
            "Activities:", ["Description", "Hours", "Date", "Resources", "Responsible"], rows
        )
        return story

    def _budget_story(self, budget: Budget) -> list:
        story = [
            self._field("Project Name", budget.project_name),
            self._field("Subtotal Financing Program", f"{budget.sub_total_primary:.2f}"),
            self._field("Subtotal Contributions", f"{budget.sub_total_other:.2f}"),
            self._field("Total", f"{budget.total:.2f}"),
        ]
        rows = [
            [r.description, r.quantity, f"{r.amount_covered_primary:.2f}", f"{r.amount_covered_other:.2f}"]
            for r in budget.resources
        ]
        story += self._table(
            "Resources:", ["Description", "Quantity", "Covered by Program", "Other Contributions"], rows
        )
        return story

    def _participants(self, participants) -> list:
        rows = [[p.full_name, p.national_id, p.phone] for p in participants]
        return self._table("Participants:", ["Full Name", "ID", "Phone"], rows)
