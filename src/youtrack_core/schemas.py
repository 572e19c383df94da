"""Pydantic schemas for the field update pipeline."""
from typing import Any, Optional

from pydantic import BaseModel, Field, ConfigDict, model_validator

from .models import CommandKind, FailureKind, UpdateStatus


# Attributes an UpdateRequest may carry, in declaration order
UPDATE_ATTRIBUTES = (
    "summary",
    "description",
    "state",
    "priority",
    "type",
    "assignee",
    "estimation",
    "tags",
    "custom_fields",
)


# Update Request

class UpdateRequest(BaseModel):
    """Sparse set of issue attributes to change.

    Only attributes that are present are mutated. The order in which the caller
    supplied them is kept in ``field_order`` and becomes the order in which
    commands are applied.

    ``assignee`` takes a login; an empty string unassigns the issue.
    ``estimation`` is expressed in minutes.
    ``custom_fields`` covers any project field without a dedicated attribute
    (e.g. {"Subsystem": "Backend"}).
    """

    summary: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    state: Optional[str] = Field(None, min_length=1)
    priority: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    assignee: Optional[str] = None
    estimation: Optional[int] = Field(None, ge=0, description="Estimate in minutes")
    tags: Optional[list[str]] = None
    custom_fields: dict[str, str] = Field(default_factory=dict)

    field_order: list[str] = Field(default_factory=list, exclude=True)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def record_field_order(cls, data: Any) -> Any:
        """Capture the caller's attribute order before pydantic reorders it."""
        if isinstance(data, dict) and "field_order" not in data:
            data = dict(data)
            data["field_order"] = [
                key for key in data
                if key in UPDATE_ATTRIBUTES and data[key] is not None
            ]
        return data

    def is_set(self, attribute: str) -> bool:
        value = getattr(self, attribute)
        if attribute in ("tags", "custom_fields"):
            return bool(value)
        return value is not None

    def present_attributes(self) -> list[str]:
        """Attributes that carry a value, in the caller's order."""
        present = [name for name in UPDATE_ATTRIBUTES if self.is_set(name)]
        ordered = [name for name in self.field_order if name in present]
        return ordered + [name for name in present if name not in ordered]


# Commands and Outcomes

class Command(BaseModel):
    """One atomic mutation of a single issue field."""

    field: str = Field(..., description="Backend field name, e.g. 'Priority'")
    value: str = Field(..., description="Formatted value, e.g. '1h 30m'")
    attribute: str = Field(..., description="Request attribute the command was built from")
    kind: CommandKind = CommandKind.COMMAND
    query: Optional[str] = Field(None, description="Command grammar string sent to /commands")
    constrained: bool = False

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        if self.kind == CommandKind.BASIC:
            return f"Update {self.field}"
        return self.query or f"{self.field}: {self.value}"


class CommandOutcome(BaseModel):
    """Result of attempting a single Command."""

    command: Command
    succeeded: bool
    error_detail: Optional[str] = None
    status_code: Optional[int] = None
    failure_kind: Optional[FailureKind] = None

    model_config = ConfigDict(frozen=True)


class UpdatePlan(BaseModel):
    """Output of the command builder: the two update channels."""

    basic_fields: dict[str, str] = Field(default_factory=dict)
    commands: list[Command] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.basic_fields and not self.commands


# Field Values

class FieldValue(BaseModel):
    """One legal value of an enumerated project field."""

    name: str
    localized_name: Optional[str] = None
    ordinal: int = 0
    is_resolved: Optional[bool] = None
    archived: bool = False

    @property
    def display_name(self) -> str:
        return self.localized_name or self.name


class FieldValueSet(BaseModel):
    """Legal values for one field in one project, in declared order."""

    project_id: str
    field_name: str
    values: list[FieldValue] = Field(default_factory=list)
    available: bool = True
    reason: Optional[str] = None

    @classmethod
    def unavailable(cls, project_id: str, field_name: str, reason: str) -> "FieldValueSet":
        return cls(
            project_id=project_id,
            field_name=field_name,
            values=[],
            available=False,
            reason=reason,
        )

    def names(self) -> list[str]:
        return [value.display_name for value in self.values]


# Update Result

class Diagnostic(BaseModel):
    """Human-readable explanation of one failed command."""

    command: str
    error: str
    hint: Optional[str] = None
    allowed_values: list[str] = Field(default_factory=list)


class UpdateResult(BaseModel):
    """Terminal artifact of an issue update.

    ``issue`` is the snapshot fetched after all commands ran. It is None when
    the refresh failed: the command outcomes are known but the final state is not.
    """

    issue_id: str
    status: UpdateStatus
    issue: Optional[dict[str, Any]] = None
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)

    @model_validator(mode="after")
    def check_counts(self):
        if self.succeeded + self.failed != self.attempted:
            raise ValueError(
                f"Outcome counts do not add up: {self.succeeded} succeeded + "
                f"{self.failed} failed != {self.attempted} attempted"
            )
        return self
