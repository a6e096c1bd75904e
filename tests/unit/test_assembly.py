"""
Unit Tests for Record Assembly & Merge
"""
import pytest

from assembly import (
    assemble_for_create,
    assemble_for_update,
    changed_fields,
    patch,
    split_sub_lists,
)
from errors import UploadCardinalityError
from schemas import Budget, Photographs, Plan, Profile, Report, Resource
from validation import validate

URLS = {
    "before": ["https://s/before-1.webp", "https://s/before-2.webp"],
    "during": ["https://s/during-1.webp", "https://s/during-2.webp"],
    "after": ["https://s/after-1.webp", "https://s/after-2.webp"],
}


@pytest.fixture
def stored_report(report_draft) -> Report:
    fields, sub_lists = split_sub_lists("report", validate(report_draft))
    report = assemble_for_create(Report, fields, sub_lists, URLS)
    return report.model_copy(update={"id": "r1"})


class TestPatch:

    def test_absent_keys_keep_existing_values(self):
        assert patch({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_present_none_replaces(self):
        assert patch({"a": 1, "b": 2}, {"b": None}) == {"a": 1, "b": None}

    def test_falsy_values_replace(self):
        assert patch({"a": [1], "b": "x"}, {"a": [], "b": ""}) == {"a": [], "b": ""}

    def test_inputs_are_not_mutated(self):
        existing = {"a": 1}
        patch(existing, {"a": 2})
        assert existing == {"a": 1}


class TestAssembleForCreate:

    def test_report_photographs_in_submitted_order(self, stored_report):
        for category, urls in URLS.items():
            assert getattr(stored_report.photographs, category) == urls

    def test_report_missing_category(self, report_draft):
        fields, sub_lists = split_sub_lists("report", validate(report_draft))
        uploaded = {k: v for k, v in URLS.items() if k != "during"}

        with pytest.raises(UploadCardinalityError) as exc_info:
            assemble_for_create(Report, fields, sub_lists, uploaded)

        assert exc_info.value.details["category"] == "during"

    def test_sub_lists_are_merged_in(self, plan_draft):
        fields, sub_lists = split_sub_lists("plan", validate(plan_draft))

        assert "activities" not in fields
        plan = assemble_for_create(Plan, fields, sub_lists)

        assert plan.activities[0].description == "Workshop"
        assert plan.id is None

    def test_budget_totals_recomputed_from_resources(self):
        fields = {"project_name": "Clean Water", "sub_total_primary": 1, "sub_total_other": 2, "total": 3}
        sub_lists = {"resources": [
            Resource(description="Pipes", quantity=10, amount_covered_primary=500, amount_covered_other=100),
            Resource(description="Taps", quantity=2, amount_covered_primary=50, amount_covered_other=0),
        ]}

        budget = assemble_for_create(Budget, fields, sub_lists)

        assert budget.sub_total_primary == 550
        assert budget.sub_total_other == 100
        assert budget.total == 650

    def test_profile_cost_total_recomputed(self, profile_draft):
        fields = validate(profile_draft)
        fields["cost"]["total"] = 0

        profile = assemble_for_create(Profile, fields)

        assert profile.cost.total == 1750

    def test_uploads_rejected_for_kinds_without_photographs(self, plan_draft):
        with pytest.raises(ValueError):
            assemble_for_create(Plan, validate(plan_draft), uploaded=URLS)


class TestAssembleForUpdate:

    @pytest.mark.parametrize("locked", ["before", "during", "after"])
    def test_omitted_category_is_untouched(self, locked):
        existing = Report.model_validate({
            "id": "r1",
            "project_name": "Garden",
            "project_types": ["Environment"],
            "leader": "Carlos",
            "beneficiaries": {"count": 3, "description": "Families"},
            "improvement_description": "Better",
            "environmental_risks": ["Runoff"],
            "mitigation_measures": ["Drains"],
            "participants": [],
            "photographs": {locked: URLS[locked]},
        })
        uploaded = {c: [f"https://s/new-{c}.webp"] for c in URLS if c != locked}

        updated = assemble_for_update(existing, {}, uploaded=uploaded)

        assert getattr(updated.photographs, locked) == URLS[locked]
        for category in uploaded:
            assert getattr(updated.photographs, category) == [f"https://s/new-{category}.webp"]

    def test_fields_patch_keeps_everything_else(self, stored_report):
        updated = assemble_for_update(stored_report, {"improvement_description": "Now with a well"})

        assert updated.improvement_description == "Now with a well"
        assert updated.id == "r1"
        assert updated.participants == stored_report.participants
        assert updated.photographs == stored_report.photographs

    def test_partial_nested_object_keeps_stored_fields(self, stored_report):
        updated = assemble_for_update(stored_report, {"beneficiaries": {"count": 5}})

        assert updated.beneficiaries.count == 5
        assert updated.beneficiaries.description == stored_report.beneficiaries.description

    def test_partial_cost_recomputes_total(self, profile_draft):
        profile = assemble_for_create(Profile, validate(profile_draft)).model_copy(update={"id": "p1"})

        updated = assemble_for_update(profile, {"cost": {"other_contributions": 500}})

        assert (updated.cost.financed_amount, updated.cost.other_contributions, updated.cost.total) == (1500, 500, 2000)

    def test_budget_totals_follow_new_resources(self):
        existing = Budget(
            id="b1",
            project_name="Clean Water",
            resources=[Resource(description="Pipes", quantity=10, amount_covered_primary=500, amount_covered_other=100)],
            sub_total_primary=500,
            sub_total_other=100,
            total=600,
        )
        sub_lists = {"resources": [
            Resource(description="Tank", quantity=1, amount_covered_primary=900, amount_covered_other=300),
        ]}

        updated = assemble_for_update(existing, {}, sub_lists)

        assert (updated.sub_total_primary, updated.sub_total_other, updated.total) == (900, 300, 1200)

    def test_plan_total_hours_is_not_derived(self, plan_draft):
        plan = assemble_for_create(Plan, validate(plan_draft)).model_copy(update={"id": "p1"})

        updated = assemble_for_update(plan, {"total_hours": 99})

        assert updated.total_hours == 99
        assert sum(a.hours for a in updated.activities) == 40


class TestChangedFields:

    def test_only_differences(self, stored_report):
        updated = assemble_for_update(stored_report, {"leader": "Maria"}, uploaded=None)

        assert changed_fields(stored_report, updated) == {"leader": "Maria"}

    def test_photograph_merge_sends_whole_object(self):
        existing = Report.model_validate({
            "id": "r1", "project_name": "Garden", "project_types": ["Health"], "leader": "C",
            "beneficiaries": {"count": 1, "description": "d"}, "improvement_description": "i",
            "environmental_risks": ["r"], "mitigation_measures": ["m"], "participants": [],
            "photographs": Photographs(before=URLS["before"]),
        })
        updated = assemble_for_update(existing, {}, uploaded={"after": URLS["after"]})

        changes = changed_fields(existing, updated)

        assert list(changes) == ["photographs"]
        assert changes["photographs"] == {"before": URLS["before"], "during": [], "after": URLS["after"]}
