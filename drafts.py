"""
In-progress form state for each record kind.

A draft is a plain, serializable value: every field is optional and pydantic
remembers which ones were actually set. A field never set is absent and is
left alone by an update; a field set to None is present and will be checked
(and rejected if required) by the validation rules.
"""

from datetime import date
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel

from schemas import (
    Activity,
    Beneficiaries,
    CostBreakdown,
    Participant,
    Resource,
)


class Draft(BaseModel):
    kind: ClassVar[str] = "record"

    def changes(self) -> Dict[str, Any]:
        """Fields that were set, i.e. the patch this draft represents"""
        return self.model_dump(exclude_unset=True)

    @classmethod
    def from_record(cls, record: BaseModel) -> "Draft":
        """Seed an edit draft with every editable field of a stored record"""
        data = record.model_dump(include=set(cls.model_fields))
        return cls(**data)


class _ParticipantsMixin:

    def add_participant(self, participant: Participant) -> None:
        self.participants = [*(self.participants or []), participant]

    def remove_participant(self, index: int) -> Participant:
        participants = list(self.participants or [])
        removed = participants.pop(index)
        self.participants = participants
        return removed


class ProfileDraft(_ParticipantsMixin, Draft):
    kind: ClassVar[str] = "profile"

    project_name: Optional[str] = None
    project_types: Optional[List[str]] = None
    location: Optional[str] = None
    beneficiary_count: Optional[int] = None
    implementation_dates: Optional[List[date]] = None
    cost: Optional[CostBreakdown] = None
    problem_description: Optional[str] = None
    action_description: Optional[str] = None
    participants: Optional[List[Participant]] = None
    leader: Optional[str] = None

    # cost.total follows every edit of either addend
    def set_financed_amount(self, amount: float) -> None:
        other = self.cost.other_contributions if self.cost else 0
        self.cost = CostBreakdown(financed_amount=amount, other_contributions=other, total=amount + other)

    def set_other_contributions(self, amount: float) -> None:
        financed = self.cost.financed_amount if self.cost else 0
        self.cost = CostBreakdown(financed_amount=financed, other_contributions=amount, total=financed + amount)


class ReportDraft(_ParticipantsMixin, Draft):
    kind: ClassVar[str] = "report"

    project_name: Optional[str] = None
    project_types: Optional[List[str]] = None
    leader: Optional[str] = None
    beneficiaries: Optional[Beneficiaries] = None
    improvement_description: Optional[str] = None
    environmental_risks: Optional[List[str]] = None
    mitigation_measures: Optional[List[str]] = None
    participants: Optional[List[Participant]] = None


class PlanDraft(Draft):
    kind: ClassVar[str] = "plan"

    project_name: Optional[str] = None
    objective: Optional[str] = None
    total_hours: Optional[float] = None
    activities: Optional[List[Activity]] = None

    def add_activity(self, activity: Activity) -> None:
        self.activities = [*(self.activities or []), activity]

    def remove_activity(self, index: int) -> Activity:
        activities = list(self.activities or [])
        removed = activities.pop(index)
        self.activities = activities
        return removed


class BudgetDraft(Draft):
    kind: ClassVar[str] = "budget"

    project_name: Optional[str] = None
    resources: Optional[List[Resource]] = None
    sub_total_primary: Optional[float] = None
    sub_total_other: Optional[float] = None
    total: Optional[float] = None

    # Subtotals are adjusted by the delta of each add/remove
    def add_resource(self, resource: Resource) -> None:
        self.resources = [*(self.resources or []), resource]
        self._shift_totals(resource.amount_covered_primary, resource.amount_covered_other)

    def remove_resource(self, index: int) -> Resource:
        resources = list(self.resources or [])
        removed = resources.pop(index)
        self.resources = resources
        self._shift_totals(-removed.amount_covered_primary, -removed.amount_covered_other)
        return removed

    def _shift_totals(self, primary: float, other: float) -> None:
        self.sub_total_primary = (self.sub_total_primary or 0) + primary
        self.sub_total_other = (self.sub_total_other or 0) + other
        self.total = self.sub_total_primary + self.sub_total_other
