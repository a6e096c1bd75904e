"""
Declarative form rules per record kind.

`validate(draft)` fails closed: every missing required field, empty required
collection or badly shaped value becomes a FieldError, and the whole batch is
raised at once so the form can show them next to the offending fields.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Type

from pydantic import BaseModel, TypeAdapter, ValidationError

from drafts import Draft
from errors import FieldError, RecordValidationError
from schemas import PROJECT_TYPES, BudgetBase, PlanBase, ProfileBase, ReportBase

Check = Callable[[Dict[str, Any]], List[FieldError]]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _known_project_types(data: Dict[str, Any]) -> List[FieldError]:
    unknown = [t for t in data.get("project_types") or [] if t not in PROJECT_TYPES]
    if unknown:
        return [FieldError(field="project_types", message=f"Unknown project type(s): {', '.join(unknown)}.")]
    return []


def _date_range(data: Dict[str, Any]) -> List[FieldError]:
    dates = data.get("implementation_dates")
    if dates is None:
        return []
    if len(dates) != 2:
        return [FieldError(field="implementation_dates", message="Select the start and end dates.")]
    if dates[0] > dates[1]:
        return [FieldError(field="implementation_dates", message="The end date must not precede the start date.")]
    return []


def _filled_entries(name: str, keys: Tuple[str, ...], label: str) -> Check:
    """Text fields of embedded entries must not be blank.

    Only keys present in an entry are checked, so a partial nested object
    sent with an update is judged on what it carries.
    """
    def check(data: Dict[str, Any]) -> List[FieldError]:
        value = data.get(name)
        if value is None:
            return []
        entries = value if isinstance(value, list) else [value]
        errors = []
        for i, entry in enumerate(entries):
            prefix = f"{name}.{i}" if isinstance(value, list) else name
            for key in keys:
                if key in entry and _is_blank(entry[key]):
                    errors.append(FieldError(
                        field=f"{prefix}.{key}",
                        message=f"Enter the {key.replace('_', ' ')} of the {label}.",
                    ))
        return errors
    return check


_participants_filled = _filled_entries("participants", ("full_name", "national_id", "phone"), "participant")


@dataclass(frozen=True)
class RuleSet:
    kind: str
    base: Type[BaseModel]
    required: Tuple[str, ...]
    non_empty: Tuple[str, ...] = ()
    messages: Dict[str, str] = field(default_factory=dict)
    checks: Tuple[Check, ...] = ()

    def message(self, name: str) -> str:
        return self.messages.get(name, f"Enter the {name.replace('_', ' ')}.")

    def presence_errors(self, data: Dict[str, Any], partial: bool) -> List[FieldError]:
        errors = []
        for name in self.required:
            if partial and name not in data:
                continue
            value = data.get(name)
            if _is_blank(value) or (name in self.non_empty and len(value) == 0):
                errors.append(FieldError(field=name, message=self.message(name)))
        return errors

    def shape_errors(self, data: Dict[str, Any], partial: bool) -> List[FieldError]:
        if not partial:
            try:
                self.base.model_validate(data)
            except ValidationError as e:
                return field_errors(e)
            return []

        errors = []
        for name, value in data.items():
            info = self.base.model_fields.get(name)
            if info is None:
                continue
            try:
                TypeAdapter(info.annotation).validate_python(value)
            except ValidationError as e:
                errors.extend(field_errors(e, prefix=name))
        return errors


def field_errors(exc: ValidationError, prefix: str = "") -> List[FieldError]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        name = f"{prefix}.{loc}" if prefix and loc else (prefix or loc)
        errors.append(FieldError(field=name, message=err["msg"]))
    return errors


RULES: Dict[str, RuleSet] = {
    "profile": RuleSet(
        kind="profile",
        base=ProfileBase,
        required=(
            "project_name", "project_types", "location", "beneficiary_count",
            "implementation_dates", "cost", "problem_description",
            "action_description", "participants", "leader",
        ),
        non_empty=("project_types", "participants", "implementation_dates"),
        messages={
            "project_name": "Enter the project name.",
            "project_types": "Select at least one project type.",
            "location": "Enter the implementation place.",
            "beneficiary_count": "Enter the number of beneficiaries.",
            "implementation_dates": "Select the start and end dates.",
            "cost": "Enter the financed amount and other contributions.",
            "problem_description": "Enter the problem description.",
            "action_description": "Enter the description of the actions.",
            "participants": "Add at least one participant.",
            "leader": "Enter the name of the leader or coordinator.",
        },
        checks=(_known_project_types, _date_range, _participants_filled),
    ),
    "report": RuleSet(
        kind="report",
        base=ReportBase,
        required=(
            "project_name", "project_types", "leader", "beneficiaries",
            "improvement_description", "environmental_risks",
            "mitigation_measures", "participants",
        ),
        non_empty=("project_types", "participants", "environmental_risks", "mitigation_measures"),
        messages={
            "project_name": "Enter the project name.",
            "project_types": "Select at least one project type.",
            "leader": "Enter the name of the leader or coordinator.",
            "beneficiaries": "Enter the beneficiaries description.",
            "improvement_description": "Enter the description of the improvement.",
            "environmental_risks": "Enter the environmental risks.",
            "mitigation_measures": "Enter the environmental mitigation measures.",
            "participants": "Add at least one participant.",
        },
        checks=(
            _known_project_types,
            _participants_filled,
            _filled_entries("beneficiaries", ("description",), "beneficiaries"),
        ),
    ),
    "plan": RuleSet(
        kind="plan",
        base=PlanBase,
        required=("project_name", "objective", "total_hours", "activities"),
        non_empty=("activities",),
        messages={
            "project_name": "Enter the project name.",
            "objective": "Enter the project objective.",
            "total_hours": "Enter the total hours.",
            "activities": "Add at least one activity.",
        },
        checks=(_filled_entries("activities", ("description",), "activity"),),
    ),
    "budget": RuleSet(
        kind="budget",
        base=BudgetBase,
        required=("project_name", "resources"),
        non_empty=("resources",),
        messages={
            "project_name": "Enter the project name.",
            "resources": "Add at least one resource.",
        },
        checks=(_filled_entries("resources", ("description",), "resource"),),
    ),
}


def validate(draft: Draft, partial: bool = False) -> Dict[str, Any]:
    """Check a draft against its kind's rules.

    With partial=False (create) every required field must be there; the
    result is the full, typed field mapping. With partial=True (update) only
    the fields present in the draft are checked and returned.
    """
    rules = RULES[draft.kind]
    data = draft.changes() if partial else draft.model_dump(exclude_none=True)

    errors = rules.presence_errors(data, partial)
    if not errors:
        errors = rules.shape_errors(data, partial)
    if not errors:
        for check in rules.checks:
            errors.extend(check(data))
    if errors:
        raise RecordValidationError(errors, kind=draft.kind)

    if partial:
        return {name: value for name, value in data.items() if name in rules.base.model_fields}
    return rules.base.model_validate(data).model_dump()
