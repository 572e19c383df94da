"""Shared formatting functions for MCP responses."""
from typing import Any, Optional

from youtrack_core.schemas import FieldValueSet, UpdateResult


def _field_value_text(value: Any) -> str:
    """Render a YouTrack custom field value (enum, user, period, list...)."""
    if value is None:
        return "(none)"
    if isinstance(value, list):
        return ", ".join(_field_value_text(item) for item in value) or "(none)"
    if isinstance(value, dict):
        for key in ("presentation", "fullName", "name", "login"):
            if value.get(key):
                return str(value[key])
        if value.get("minutes") is not None:
            return f"{value['minutes']}m"
        return "(none)"
    return str(value)


def issue_field(issue: dict, name: str) -> Optional[str]:
    """Display value of a custom field on an issue, or None if absent."""
    for field in issue.get("customFields") or []:
        if (field.get("name") or "").lower() == name.lower():
            return _field_value_text(field.get("value"))
    return None


def format_issue(issue: dict) -> str:
    """Format an issue for display with custom fields and description."""
    readable_id = issue.get("idReadable") or issue.get("id", "NO-ID")
    summary = issue.get("summary") or "(no summary)"
    project = issue.get("project") or {}
    project_info = f"\nProject: {project.get('name') or project.get('shortName')}" if project else ""

    fields_info = ""
    custom_fields = issue.get("customFields") or []
    if custom_fields:
        fields_info = "\n" + " | ".join(
            f"{field.get('name')}: {_field_value_text(field.get('value'))}"
            for field in custom_fields
        )

    tags = [tag.get("name") for tag in issue.get("tags") or [] if tag.get("name")]
    tags_info = f"\nTags: {', '.join(tags)}" if tags else ""
    desc_info = f"\n\n{issue['description']}" if issue.get("description") else ""

    return f"""[{readable_id}] **{summary}**
ID: {issue.get('id', 'unknown')}{project_info}{fields_info}{tags_info}{desc_info}"""


def format_issue_summary(issue: dict) -> str:
    """Format an issue as a compact one-liner for list views."""
    readable_id = issue.get("idReadable") or issue.get("id", "NO-ID")
    state = issue_field(issue, "State") or "unknown"
    priority = issue_field(issue, "Priority") or "-"
    return f"[{readable_id}] {state}/{priority}: {issue.get('summary') or '(no summary)'}"


def format_project(project: dict) -> str:
    """Format a project for display."""
    desc_info = f"\n{project['description']}" if project.get("description") else ""
    archived_info = " (archived)" if project.get("archived") else ""
    return f"**{project.get('name')}** ({project.get('shortName')}){archived_info}\nID: {project.get('id')}{desc_info}"


def format_comment(comment: dict) -> str:
    author = (comment.get("author") or {}).get("login", "unknown")
    return f"Comment {comment.get('id')} by {author}:\n{comment.get('text', '')}"


def format_work_item(item: dict) -> str:
    duration = item.get("duration") or {}
    minutes = duration.get("minutes")
    amount = duration.get("presentation") or (f"{minutes}m" if minutes is not None else "?")
    work_type = (item.get("type") or {}).get("name")
    type_info = f" ({work_type})" if work_type else ""
    text = item.get("text") or item.get("description")
    return f"Logged {amount}{type_info}" + (f": {text}" if text else "")


def format_field_values(value_set: FieldValueSet) -> str:
    """Format the legal values of a field, in project-declared order."""
    if not value_set.available:
        return (f"No values available for {value_set.field_name} in project {value_set.project_id}"
                f"{': ' + value_set.reason if value_set.reason else ''}")

    lines = []
    for value in value_set.values:
        canonical = f" ({value.name})" if value.localized_name and value.localized_name != value.name else ""
        resolved = " [resolved]" if value.is_resolved else ""
        lines.append(f"- {value.display_name}{canonical}{resolved}")
    return f"**{value_set.field_name}** values in {value_set.project_id}:\n" + "\n".join(lines)


def format_update_result(result: UpdateResult) -> str:
    """Format an update result: status line, diagnostics, warnings and issue."""
    status_emoji = {
        "success": "✅",
        "partial": "⚠️",
        "failure": "❌",
        "noop": "➖",
    }.get(result.status, "📋")

    headline = {
        "success": f"Updated {result.issue_id}",
        "partial": f"Partially updated {result.issue_id}",
        "failure": f"No changes applied to {result.issue_id}",
        "noop": f"Nothing to change on {result.issue_id}",
    }.get(result.status, f"Update of {result.issue_id}")

    parts = [f"{status_emoji} {headline} ({result.succeeded}/{result.attempted} changes applied)"]

    if result.diagnostics:
        diag_lines = []
        for diagnostic in result.diagnostics:
            diag_lines.append(f"- `{diagnostic.command}`: {diagnostic.error}")
            if diagnostic.hint:
                diag_lines.append(f"  Hint: {diagnostic.hint}")
        parts.append("Failed changes:\n" + "\n".join(diag_lines))

    if result.warnings:
        parts.append("Warnings:\n" + "\n".join(f"- {warning}" for warning in result.warnings))

    if result.issue is not None:
        parts.append(format_issue(result.issue))

    return "\n\n".join(parts)
