"""Tests for update request validation and command building."""
import pytest
from pydantic import ValidationError

from youtrack_core.commands import (
    UpdateValidationError,
    build_commands,
    format_duration,
    parse_duration,
    project_from_issue_id,
    validate_issue_id,
)
from youtrack_core.models import CommandKind
from youtrack_core.schemas import UpdateRequest


def queries(plan):
    return [command.render() for command in plan.commands]


class TestDurationFormatting:
    """Estimates are rendered in YouTrack duration grammar."""

    def test_zero_renders_explicit_zero(self):
        assert format_duration(0) == "0m"

    def test_whole_hours_drop_minutes(self):
        assert format_duration(60) == "1h"
        assert format_duration(120) == "2h"

    def test_hours_and_minutes(self):
        assert format_duration(90) == "1h 30m"

    def test_minutes_only(self):
        assert format_duration(45) == "45m"

    def test_negative_rejected(self):
        with pytest.raises(UpdateValidationError):
            format_duration(-5)


class TestDurationParsing:
    """Work item durations accept the usual shorthand."""

    def test_hours_and_minutes(self):
        assert parse_duration("2h 30m") == 150

    def test_day_is_eight_hours(self):
        assert parse_duration("1d") == 480

    def test_fractional_hours(self):
        assert parse_duration("1.5h") == 90

    def test_bare_number_is_minutes(self):
        assert parse_duration("45") == 45

    def test_minimum_one_minute(self):
        assert parse_duration("0.1m") == 1

    def test_garbage_rejected(self):
        with pytest.raises(UpdateValidationError) as exc_info:
            parse_duration("a while")
        assert exc_info.value.field == "duration"


class TestIssueIds:
    """Issue IDs are checked before any request is made."""

    @pytest.mark.parametrize("issue_id", ["PROJ-1", "ab_c-42", "2-15"])
    def test_valid_ids(self, issue_id):
        assert validate_issue_id(issue_id) == issue_id

    @pytest.mark.parametrize("issue_id", ["", "PROJ", "PROJ-", "-12", "PROJ-1/comments", None, 12])
    def test_malformed_ids(self, issue_id):
        with pytest.raises(UpdateValidationError) as exc_info:
            validate_issue_id(issue_id)
        assert exc_info.value.field == "issue_id"

    def test_project_from_readable_id(self):
        assert project_from_issue_id("PROJ-123") == "PROJ"

    def test_internal_id_has_no_project(self):
        assert project_from_issue_id("2-15") is None


class TestBuildCommands:
    """Test splitting a request into basic fields and commands."""

    def test_empty_request_rejected(self):
        with pytest.raises(UpdateValidationError):
            build_commands(UpdateRequest())

    def test_empty_tags_and_custom_fields_count_as_absent(self):
        with pytest.raises(UpdateValidationError):
            build_commands(UpdateRequest(tags=[], custom_fields={}))

    def test_basic_fields_are_not_commands(self):
        plan = build_commands(UpdateRequest(summary="New title", description=""))
        assert plan.basic_fields == {"summary": "New title", "description": ""}
        assert plan.commands == []

    def test_one_command_per_attribute(self):
        plan = build_commands(UpdateRequest(state="Testing", priority="Critical", type="Bug"))
        assert queries(plan) == ["State: Testing", "Priority: Critical", "Type: Bug"]
        assert all(command.kind == CommandKind.COMMAND for command in plan.commands)

    def test_caller_order_is_kept(self):
        plan = build_commands(UpdateRequest(**{"priority": "High", "state": "Open"}))
        assert queries(plan) == ["Priority: High", "State: Open"]

    def test_enumerated_fields_are_constrained(self):
        plan = build_commands(UpdateRequest(state="Open", assignee="jane", estimation=30))
        constrained = {command.field: command.constrained for command in plan.commands}
        assert constrained == {"State": True, "Assignee": False, "Estimation": False}

    def test_estimation_zero_is_explicit(self):
        plan = build_commands(UpdateRequest(estimation=0))
        assert queries(plan) == ["Estimation: 0m"]

    def test_estimation_rendered_as_duration(self):
        plan = build_commands(UpdateRequest(estimation=90))
        assert queries(plan) == ["Estimation: 1h 30m"]

    def test_estimation_alias_parsed_as_duration(self):
        plan = build_commands(UpdateRequest(custom_fields={"Estimation": "90"}))
        assert queries(plan) == ["Estimation: 1h 30m"]

    def test_estimation_alias_accepts_duration_text(self):
        plan = build_commands(UpdateRequest(custom_fields={"estimation": "1d 2h"}))
        assert queries(plan) == ["Estimation: 10h"]

    def test_estimation_alias_zero(self):
        plan = build_commands(UpdateRequest(custom_fields={"Estimation": "0"}))
        assert queries(plan) == ["Estimation: 0m"]

    def test_estimation_alias_garbage_rejected(self):
        with pytest.raises(UpdateValidationError) as exc_info:
            build_commands(UpdateRequest(custom_fields={"Estimation": "soon"}))
        assert exc_info.value.field == "estimation"

    def test_negative_estimation_rejected_by_model(self):
        with pytest.raises(ValidationError):
            UpdateRequest(estimation=-1)

    def test_empty_assignee_unassigns(self):
        plan = build_commands(UpdateRequest(assignee=""))
        assert queries(plan) == ["Assignee: Unassigned"]

    def test_tags_become_one_command(self):
        plan = build_commands(UpdateRequest(tags=["urgent", "needs review"]))
        assert queries(plan) == ["tag urgent tag {needs review}"]

    def test_blank_tags_rejected(self):
        with pytest.raises(UpdateValidationError):
            build_commands(UpdateRequest(tags=["  "]))

    def test_custom_field_command(self):
        plan = build_commands(UpdateRequest(custom_fields={"Subsystem": "Backend"}))
        command = plan.commands[0]
        assert command.render() == "Subsystem: Backend"
        assert command.constrained is True

    def test_custom_field_alias_maps_to_attribute(self):
        plan = build_commands(UpdateRequest(custom_fields={"Status": "Fixed"}))
        assert queries(plan) == ["State: Fixed"]
        assert plan.commands[0].attribute == "Status"

    def test_custom_summary_alias_goes_to_basic_fields(self):
        plan = build_commands(UpdateRequest(custom_fields={"Summary": "Renamed"}))
        assert plan.basic_fields == {"summary": "Renamed"}
        assert plan.commands == []

    def test_same_field_twice_rejected(self):
        with pytest.raises(UpdateValidationError) as exc_info:
            build_commands(UpdateRequest(state="Open", custom_fields={"State": "Fixed"}))
        assert exc_info.value.field == "state"

    def test_two_aliases_for_same_field_rejected(self):
        with pytest.raises(UpdateValidationError):
            build_commands(UpdateRequest(custom_fields={"State": "Open", "status": "Fixed"}))

    def test_tags_as_custom_field_rejected(self):
        with pytest.raises(UpdateValidationError) as exc_info:
            build_commands(UpdateRequest(custom_fields={"Tags": "urgent"}))
        assert exc_info.value.field == "tags"

    def test_unknown_attribute_rejected_by_model(self):
        with pytest.raises(ValidationError):
            UpdateRequest(severity="High")
