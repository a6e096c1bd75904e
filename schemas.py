"""
Database Schemas for the Community Project Records app

Each top-level Pydantic model represents a collection in the document store.
The collection name is the lowercased class name. Example: class Budget ->
collection "budget".

The *Base classes hold the fields a form submits; the record classes add the
store-assigned id (and, for reports, the photographs that come from uploads).
"""

from datetime import date, datetime
from typing import ClassVar, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

PROJECT_TYPES = [
    "Education",
    "Violence prevention",
    "Environment",
    "Elderly care",
    "Health",
    "Child care",
    "Other",
]

PHOTO_CATEGORIES = ("before", "during", "after")
PHOTOS_PER_CATEGORY = 2


# ---------- Embedded ----------

class Participant(BaseModel):
    """Person taking part in a project"""
    full_name: str
    national_id: str = Field(..., description="National identity document number")
    phone: str


class Activity(BaseModel):
    """One scheduled activity of a plan"""
    description: str
    hours: float = Field(..., description="Hours dedicated to the activity")
    scheduled_date: datetime
    required_resources: List[str] = Field(default_factory=list)
    responsible_parties: List[str] = Field(default_factory=list)


class Resource(BaseModel):
    """Budget line"""
    description: str
    quantity: float
    amount_covered_primary: float = Field(0, description="Amount covered by the financing program")
    amount_covered_other: float = Field(0, description="Amount covered by other contributions")


class CostBreakdown(BaseModel):
    """Project cost; total is financed_amount + other_contributions"""
    financed_amount: float = 0
    other_contributions: float = 0
    total: float = 0


class Beneficiaries(BaseModel):
    count: int = 0
    description: str = ""


class Photographs(BaseModel):
    """Image URLs per category; a populated category is locked"""
    before: List[str] = Field(default_factory=list)
    during: List[str] = Field(default_factory=list)
    after: List[str] = Field(default_factory=list)

    def locked_categories(self) -> Set[str]:
        return {c for c in PHOTO_CATEGORIES if getattr(self, c)}


# ---------- Profile ----------

class ProfileBase(BaseModel):
    project_name: str
    project_types: List[str]
    location: str
    beneficiary_count: int
    implementation_dates: List[date] = Field(..., description="Start and end date")
    cost: CostBreakdown
    problem_description: str
    action_description: str
    participants: List[Participant]
    leader: str = Field(..., description="Leader or coordinator")

    @field_validator("implementation_dates")
    @classmethod
    def _two_dates(cls, v: List[date]) -> List[date]:
        if len(v) != 2:
            raise ValueError("implementation_dates must hold a start and an end date")
        return v


class Profile(ProfileBase):
    """Project profile collection schema"""
    collection: ClassVar[str] = "profile"
    id: Optional[str] = None


# ---------- Report ----------

class ReportBase(BaseModel):
    project_name: str
    project_types: List[str]
    leader: str
    beneficiaries: Beneficiaries
    improvement_description: str
    environmental_risks: List[str]
    mitigation_measures: List[str]
    participants: List[Participant]


class Report(ReportBase):
    """Progress report collection schema"""
    collection: ClassVar[str] = "report"
    id: Optional[str] = None
    photographs: Photographs = Field(default_factory=Photographs)


# ---------- Plan ----------

class PlanBase(BaseModel):
    project_name: str
    objective: str
    total_hours: float = Field(..., description="Declared, not derived from the activities")
    activities: List[Activity]


class Plan(PlanBase):
    """Activity plan collection schema"""
    collection: ClassVar[str] = "plan"
    id: Optional[str] = None


# ---------- Budget ----------

class BudgetBase(BaseModel):
    project_name: str
    resources: List[Resource]
    sub_total_primary: float = 0
    sub_total_other: float = 0
    total: float = 0


class Budget(BudgetBase):
    """Budget collection schema"""
    collection: ClassVar[str] = "budget"
    id: Optional[str] = None
