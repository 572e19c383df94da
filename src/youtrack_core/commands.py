"""Command builder for issue field updates.

Splits an UpdateRequest into the two channels YouTrack handles differently:
- basic fields (summary, description) replaced through a direct issue update
- everything else rendered as command grammar strings ("Priority: High"),
  one command per attribute, applied independently

The builder is pure: it performs no I/O and rejects malformed requests before
any network call is made.
"""
import logging
import re
from typing import Any, Optional

from .schemas import Command, UpdatePlan, UpdateRequest

logger = logging.getLogger("youtrack-core.commands")


class UpdateValidationError(ValueError):
    """Raised when an update request is rejected before any call is made."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


# Attributes applied through the direct issue update
BASIC_ATTRIBUTES = ("summary", "description")

# Request attribute -> (YouTrack field name, constrained to a project value set)
COMMAND_FIELDS: dict[str, tuple[str, bool]] = {
    "state": ("State", True),
    "priority": ("Priority", True),
    "type": ("Type", True),
    "assignee": ("Assignee", False),
    "estimation": ("Estimation", False),
    "tags": ("Tags", False),
}

# Custom field names (lowercased) that address a direct attribute
FIELD_ALIASES: dict[str, str] = {
    "summary": "summary",
    "description": "description",
    "state": "state",
    "status": "state",
    "priority": "priority",
    "type": "type",
    "issue type": "type",
    "assignee": "assignee",
    "estimation": "estimation",
}

UNASSIGNED = "Unassigned"

# Readable IDs (PROJ-123) or internal database IDs (2-15)
ISSUE_ID_PATTERN = re.compile(r"^(?:[A-Za-z][A-Za-z0-9_]*-\d+|\d+-\d+)$")

_DURATION_UNITS = (("d", 8 * 60), ("h", 60), ("m", 1))


def validate_issue_id(issue_id: Any) -> str:
    """Return the issue ID if well-formed, raise UpdateValidationError otherwise."""
    if not isinstance(issue_id, str) or not ISSUE_ID_PATTERN.match(issue_id):
        raise UpdateValidationError(
            f"Malformed issue ID: {issue_id!r}. Expected a readable ID like 'PROJ-123' "
            f"or an internal ID like '2-15'.",
            field="issue_id",
        )
    return issue_id


def project_from_issue_id(issue_id: str) -> Optional[str]:
    """Project short name encoded in a readable issue ID (PROJ-123 -> PROJ)."""
    prefix, _, number = issue_id.rpartition("-")
    if prefix and number.isdigit() and prefix[0].isalpha():
        return prefix
    return None


def format_duration(minutes: int) -> str:
    """Render minutes in YouTrack duration grammar.

    Zero components are dropped (60 -> "1h", 45 -> "45m"). A zero total renders
    as "0m" so that clearing an estimate is distinguishable from no change.
    """
    if minutes < 0:
        raise UpdateValidationError(f"Duration cannot be negative: {minutes}", field="estimation")

    hours, remaining = divmod(minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if remaining:
        parts.append(f"{remaining}m")
    return " ".join(parts) or "0m"


def parse_duration(text: str, minimum: int = 1, field: str = "duration") -> int:
    """Parse a duration like "2h 30m", "1d", "45m" or "1.5h" into minutes.

    A day counts as 8 hours. A bare number is read as minutes. The result is
    at least ``minimum`` minutes.
    """
    normalized = text.lower().strip()
    total = 0.0

    for unit, factor in _DURATION_UNITS:
        match = re.search(rf"(\d+(?:\.\d+)?)\s*{unit}", normalized)
        if match:
            total += float(match.group(1)) * factor

    if total == 0:
        match = re.search(r"(\d+(?:\.\d+)?)", normalized)
        if not match:
            raise UpdateValidationError(f"Cannot parse duration: {text!r}", field=field)
        total = float(match.group(1))

    return max(minimum, round(total))


def _format_tag(name: str) -> str:
    # Multi-word values must be braced in command grammar
    return f"{{{name}}}" if re.search(r"\s", name) else name


def _format_value(attribute: str, raw: Any) -> str:
    if attribute == "estimation":
        minutes = raw if isinstance(raw, int) else parse_duration(str(raw), minimum=0, field="estimation")
        return format_duration(minutes)
    if attribute == "assignee":
        return raw or UNASSIGNED
    return str(raw)


def _field_command(attribute: str, raw: Any, source: str) -> Command:
    field_name, constrained = COMMAND_FIELDS[attribute]
    value = _format_value(attribute, raw)
    return Command(
        field=field_name,
        value=value,
        attribute=source,
        query=f"{field_name}: {value}",
        constrained=constrained,
    )


def _tags_command(tags: list[str]) -> Command:
    names = [tag.strip() for tag in tags if tag.strip()]
    if not names:
        raise UpdateValidationError("Tag names must not be empty", field="tags")
    return Command(
        field="Tags",
        value=", ".join(names),
        attribute="tags",
        query=" ".join(f"tag {_format_tag(name)}" for name in names),
    )


def _resolve_custom_fields(request: UpdateRequest) -> list[tuple[str, Optional[str], str]]:
    """Resolve custom fields to (name, aliased attribute or None, value).

    Two entries addressing the same logical field are rejected rather than
    guessing which one should win.
    """
    resolved = []
    seen: dict[str, str] = {}

    for name, value in request.custom_fields.items():
        clean_name = name.strip()
        key = clean_name.lower()
        if not key:
            raise UpdateValidationError("Custom field names must not be empty", field="custom_fields")
        if key in ("tag", "tags"):
            raise UpdateValidationError(
                f"Custom field '{clean_name}' is not supported. Use the tags attribute instead.",
                field="tags",
            )

        target = FIELD_ALIASES.get(key)
        identity = target or key
        if identity in seen:
            raise UpdateValidationError(
                f"Custom fields '{seen[identity]}' and '{clean_name}' target the same field",
                field=identity,
            )
        if target and request.is_set(target):
            raise UpdateValidationError(
                f"Field '{target}' is set both directly and as custom field '{clean_name}'",
                field=target,
            )
        seen[identity] = clean_name
        resolved.append((clean_name, target, value))

    return resolved


def build_commands(request: UpdateRequest) -> UpdatePlan:
    """Convert an update request into basic fields and an ordered command list.

    Commands follow the caller's attribute order. No ordering between commands
    is implied: each one is applied and judged on its own.

    Raises:
        UpdateValidationError: If the request carries no attributes or addresses
            the same field twice
    """
    attributes = request.present_attributes()
    if not attributes:
        raise UpdateValidationError("Update request has no attributes to change")

    custom_fields = _resolve_custom_fields(request)

    basic_fields: dict[str, str] = {}
    commands: list[Command] = []

    for attribute in attributes:
        if attribute in BASIC_ATTRIBUTES:
            basic_fields[attribute] = getattr(request, attribute)
        elif attribute == "tags":
            commands.append(_tags_command(request.tags))
        elif attribute == "custom_fields":
            for name, target, value in custom_fields:
                if target in BASIC_ATTRIBUTES:
                    basic_fields[target] = value
                elif target:
                    commands.append(_field_command(target, value, source=name))
                else:
                    commands.append(Command(
                        field=name,
                        value=value,
                        attribute=name,
                        query=f"{name}: {value}",
                        constrained=True,
                    ))
        else:
            commands.append(_field_command(attribute, getattr(request, attribute), source=attribute))

    plan = UpdatePlan(basic_fields=basic_fields, commands=commands)
    logger.debug(
        f"Built update plan: basic={sorted(basic_fields)} "
        f"commands={[command.render() for command in commands]}"
    )
    return plan
