"""
Record assembly and update merge.

Creation composes validated form fields, sub-lists and upload results into a
new record. Updates patch an existing record: a key present in the changes
replaces the stored value (even when the new value is None), a key absent
from the changes keeps the stored value. Photographs merge one level deeper,
per category, so categories that received no upload keep their URLs, and the
embedded cost and beneficiaries objects merge per field.

Derived amounts (budget subtotals/total, profile cost total) are recomputed
here from their addends rather than trusted from the form.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from errors import UploadCardinalityError
from schemas import PHOTO_CATEGORIES, PHOTOS_PER_CATEGORY, CostBreakdown, Report, Resource

R = TypeVar("R", bound=BaseModel)

SUB_LISTS = {
    "profile": ("participants",),
    "report": ("participants",),
    "plan": ("activities",),
    "budget": ("resources",),
}

# Embedded objects patched field by field rather than replaced whole
NESTED = {
    "profile": ("cost",),
    "report": ("beneficiaries",),
}


def patch(existing: Mapping[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Shallow merge; presence in `changes` decides, not truthiness"""
    merged = dict(existing)
    for key, value in changes.items():
        merged[key] = value
    return merged


def split_sub_lists(kind: str, fields: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Separate embedded lists (participants, activities, resources) from plain fields"""
    names = SUB_LISTS.get(kind, ())
    plain = {k: v for k, v in fields.items() if k not in names}
    sub_lists = {k: v for k, v in fields.items() if k in names}
    return plain, sub_lists


def budget_totals(resources: List[Any]) -> Dict[str, float]:
    items = [Resource.model_validate(r) for r in resources]
    primary = sum(r.amount_covered_primary for r in items)
    other = sum(r.amount_covered_other for r in items)
    return {"sub_total_primary": primary, "sub_total_other": other, "total": primary + other}


def cost_with_total(cost: Any) -> Dict[str, float]:
    cost = CostBreakdown.model_validate(cost)
    return {
        "financed_amount": cost.financed_amount,
        "other_contributions": cost.other_contributions,
        "total": cost.financed_amount + cost.other_contributions,
    }


def _derive(kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    if kind == "budget" and data.get("resources") is not None:
        data.update(budget_totals(data["resources"]))
    elif kind == "profile" and data.get("cost") is not None:
        data["cost"] = cost_with_total(data["cost"])
    return data


def _photographs_for_create(uploaded: Mapping[str, List[str]]) -> Dict[str, List[str]]:
    photographs = {}
    for category in PHOTO_CATEGORIES:
        urls = list(uploaded.get(category) or [])
        if len(urls) != PHOTOS_PER_CATEGORY:
            raise UploadCardinalityError(
                f"A new report needs {PHOTOS_PER_CATEGORY} photographs in '{category}', got {len(urls)}.",
                category=category,
                count=len(urls),
            )
        photographs[category] = urls
    return photographs


def assemble_for_create(record_type: Type[R], fields: Mapping[str, Any],
                        sub_lists: Optional[Mapping[str, Any]] = None,
                        uploaded: Optional[Mapping[str, List[str]]] = None) -> R:
    data = patch(fields, sub_lists or {})
    data.pop("id", None)

    if issubclass(record_type, Report):
        data["photographs"] = _photographs_for_create(uploaded or {})
    elif uploaded:
        raise ValueError(f"{record_type.__name__} records do not hold photographs")

    return record_type.model_validate(_derive(record_type.collection, data))


def assemble_for_update(existing: R, fields: Mapping[str, Any],
                        sub_lists: Optional[Mapping[str, Any]] = None,
                        uploaded: Optional[Mapping[str, List[str]]] = None) -> R:
    stored = existing.model_dump(exclude={"id"})
    changes = patch(fields, sub_lists or {})
    changes.pop("id", None)

    for name in NESTED.get(existing.collection, ()):
        value = changes.get(name)
        if isinstance(value, BaseModel):
            value = value.model_dump(exclude_unset=True)
        if isinstance(value, Mapping) and stored.get(name) is not None:
            changes[name] = patch(stored[name], value)

    if uploaded:
        if not isinstance(existing, Report):
            raise ValueError(f"{type(existing).__name__} records do not hold photographs")
        changes["photographs"] = patch(stored["photographs"], uploaded)

    merged = _derive(existing.collection, patch(stored, changes))
    return type(existing).model_validate({**merged, "id": existing.id})


def changed_fields(existing: BaseModel, updated: BaseModel) -> Dict[str, Any]:
    """Top-level fields whose value differs, i.e. the patch to send to the store"""
    before = existing.model_dump(exclude={"id"})
    after = updated.model_dump(exclude={"id"})
    return {name: value for name, value in after.items() if before.get(name) != value}
