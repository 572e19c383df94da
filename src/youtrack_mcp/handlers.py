"""MCP tool handlers for YouTrack.

All handlers follow a consistent pattern:
- Accept: arguments dict, httpx.AsyncClient, and optional current_scope
- Return: tuple of (list[TextContent], Optional[dict]) where second element is updated scope
- Use formatters for consistent output
- Log all operations for debugging

Pass-through handlers call raise_for_status() and let the server report HTTP
errors. Update handlers go through the field update pipeline, which reports
rejected changes in its result instead of raising.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

import httpx
from mcp.types import TextContent

from youtrack_core.commands import UpdateValidationError, build_commands, parse_duration, project_from_issue_id, validate_issue_id
from youtrack_core.field_discovery import list_field_values
from youtrack_core.issue_update import refresh_issue, update_issue, update_issues
from youtrack_core.schemas import UpdateRequest, UpdateResult

from . import formatters

logger = logging.getLogger("youtrack-mcp.handlers")


def _present(arguments: dict) -> dict:
    """Drop arguments the client sent as null."""
    return {k: v for k, v in arguments.items() if v is not None}


def _update_result_content(result: UpdateResult) -> list[TextContent]:
    return [
        TextContent(type="text", text=formatters.format_update_result(result)),
        TextContent(type="text", text=result.model_dump_json(indent=2)),
    ]


# ============================================================================
# Project Scope Handlers
# ============================================================================

async def handle_select_project(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Validate a project and make it the session default."""
    project_id = arguments["project_id"]

    response = await client.get(f"/admin/projects/{project_id}", params={"fields": "id,name,shortName"})
    response.raise_for_status()
    result = response.json()

    new_scope = {
        "project_id": result["shortName"],
        "id": result["id"],
        "name": result["name"],
    }
    logger.info(f"Set project scope to: {result['name']} ({result['shortName']})")

    text = (f"✅ Project scope set to {result['name']} ({result['shortName']})\n\n"
            f"query_issues and get_field_values now default to this project, and update "
            f"diagnostics use it when the issue ID does not name a project.")
    return [TextContent(type="text", text=text)], new_scope


async def handle_get_project_scope(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Report the session default project."""
    if current_scope is None:
        text = ("No project scope is currently set.\n\n"
                "Use select_project(project_id='...') to set a default project.")
    else:
        text = f"📁 Current project: {current_scope['name']} ({current_scope['project_id']})"
    return [TextContent(type="text", text=text)], current_scope


async def handle_clear_project_scope(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Forget the session default project."""
    if current_scope is None:
        text = "✅ Project scope cleared (no scope was set)."
    else:
        logger.info(f"Cleared project scope (was: {current_scope['name']})")
        text = f"✅ Project scope cleared (was: {current_scope['name']})."
    return [TextContent(type="text", text=text)], None


async def apply_project_scope_defaults(
    tool_name: str,
    arguments: dict,
    current_scope: Optional[dict] = None
) -> dict:
    """Default project_id from the session scope for tools that accept it.

    For update_issue the scope only applies when the issue ID carries no
    project prefix (internal IDs such as 2-15).
    """
    scoped_tools = {"query_issues", "get_field_values", "update_issue", "create_issue"}

    if tool_name not in scoped_tools or current_scope is None:
        return arguments
    if arguments.get("project_id"):
        return arguments

    if tool_name == "update_issue":
        issue_id = arguments.get("issue_id")
        if isinstance(issue_id, str) and project_from_issue_id(issue_id):
            return arguments

    arguments["project_id"] = current_scope["project_id"]
    logger.info(f"Using session project scope for {tool_name}: {current_scope['name']}")
    return arguments


# ============================================================================
# Project Handlers
# ============================================================================

async def handle_list_projects(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """List projects (archived ones hidden by default)."""
    params = {
        "fields": "id,name,shortName,description,archived",
        "$top": arguments.get("limit") or 50,
    }
    response = await client.get("/admin/projects", params=params)
    response.raise_for_status()
    projects = response.json()

    if not arguments.get("include_archived"):
        projects = [project for project in projects if not project.get("archived")]
    logger.info(f"Successfully listed {len(projects)} projects")

    if not projects:
        return [TextContent(type="text", text="No projects found.")], current_scope

    items_text = "\n\n".join(formatters.format_project(project) for project in projects)
    return [TextContent(type="text", text=f"Found {len(projects)} projects\n\n{items_text}")], current_scope


async def handle_get_field_values(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """List legal values of a project field in declared order."""
    project_id = arguments.get("project_id")
    field_name = arguments["field_name"]
    if not project_id:
        text = "Error: project_id is required (or set a default with select_project)."
        return [TextContent(type="text", text=text)], current_scope

    value_set = await list_field_values(client, project_id, field_name)
    return [TextContent(type="text", text=formatters.format_field_values(value_set))], current_scope


# ============================================================================
# Issue Handlers
# ============================================================================

async def handle_get_issue(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Get an issue with custom fields, tags and description."""
    issue_id = validate_issue_id(arguments["issue_id"])
    issue = await refresh_issue(client, issue_id)
    logger.info(f"Successfully retrieved issue {issue_id}")
    return [TextContent(type="text", text=formatters.format_issue(issue))], current_scope


async def handle_query_issues(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Search issues with YouTrack query syntax."""
    query = arguments["query"]
    if arguments.get("project_id"):
        query = f"project: {arguments['project_id']} {query}"

    params = {
        "query": query,
        "fields": "id,idReadable,summary,customFields(name,value(name,login,fullName,presentation))",
        "$top": arguments.get("limit") or 50,
        "$skip": arguments.get("skip") or 0,
    }
    response = await client.get("/issues", params=params)
    response.raise_for_status()
    issues = response.json()
    logger.info(f"Query '{query}' returned {len(issues)} issues")

    if not issues:
        return [TextContent(type="text", text=f"No issues match: {query}")], current_scope

    items_text = "\n".join(formatters.format_issue_summary(issue) for issue in issues)
    return [TextContent(type="text", text=f"Found {len(issues)} issues for: {query}\n\n{items_text}")], current_scope


async def handle_create_issue(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Create an issue, then set its other fields through the update pipeline.

    The issue is created with summary and description only. State, priority,
    type and the rest are applied afterwards so that a rejected value is
    reported per field instead of failing the creation.
    """
    fields = _present(arguments)
    project_id = fields.pop("project_id", None)
    if not project_id:
        text = "Error: project_id is required (or set a default with select_project)."
        return [TextContent(type="text", text=text)], current_scope

    summary = fields.pop("summary", None)
    if not summary:
        raise UpdateValidationError("A new issue needs a summary", field="summary")
    payload = {"summary": summary}
    if "description" in fields:
        payload["description"] = fields.pop("description")

    # Validate the follow-up fields before anything is created
    request = UpdateRequest(**fields)
    if request.present_attributes():
        build_commands(request)
    else:
        request = None

    response = await client.get(f"/admin/projects/{project_id}", params={"fields": "id,shortName"})
    response.raise_for_status()
    project = response.json()
    payload["project"] = {"id": project["id"]}

    response = await client.post("/issues", json=payload, params={"fields": "id,idReadable"})
    response.raise_for_status()
    created = response.json()
    issue_id = created.get("idReadable") or created["id"]
    logger.info(f"Successfully created issue {issue_id} in {project['shortName']}")

    if request is None:
        issue = await refresh_issue(client, issue_id)
        return [TextContent(type="text", text=f"✅ Created {issue_id}\n\n{formatters.format_issue(issue)}")], current_scope

    result = await update_issue(client, issue_id, request, project_id=project["shortName"])
    content = _update_result_content(result)
    content[0] = TextContent(type="text", text=f"✅ Created {issue_id}\n\n{content[0].text}")
    return content, current_scope


async def handle_update_issue(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Update issue fields through the command pipeline.

    A partial update is reported as success with diagnostics: the issue was
    modified, so the caller should retry only the failed fields.
    """
    fields = _present(arguments)
    issue_id = fields.pop("issue_id")
    project_id = fields.pop("project_id", None)

    request = UpdateRequest(**fields)
    result = await update_issue(client, issue_id, request, project_id=project_id)
    return _update_result_content(result), current_scope


async def handle_bulk_update_issues(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Apply one update to several issues sequentially."""
    fields = _present(arguments)
    issue_ids = fields.pop("issue_ids")
    project_id = fields.pop("project_id", None)

    request = UpdateRequest(**fields)
    results = await update_issues(client, issue_ids, request, project_id=project_id)

    counts = {}
    for result in results:
        counts[result.status] = counts.get(result.status, 0) + 1
    summary = ", ".join(f"{count} {status}" for status, count in counts.items())

    sections = "\n\n---\n\n".join(formatters.format_update_result(result) for result in results)
    envelope = "[" + ",\n".join(result.model_dump_json(indent=2) for result in results) + "]"
    return [
        TextContent(type="text", text=f"Bulk update of {len(results)} issues: {summary}\n\n{sections}"),
        TextContent(type="text", text=envelope),
    ], current_scope


async def handle_change_issue_state(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Move an issue to a new state and optionally comment on it."""
    issue_id = arguments["issue_id"]
    comment = arguments.get("comment")

    result = await update_issue(client, issue_id, UpdateRequest(state=arguments["state"]))

    if comment:
        if result.failed:
            result.warnings.append("Comment not added because the state change was not applied.")
        else:
            try:
                response = await client.post(f"/issues/{issue_id}/comments", json={"text": comment})
                response.raise_for_status()
                logger.info(f"Added state change comment to {issue_id}")
            except httpx.HTTPError as e:
                logger.warning(f"Comment on {issue_id} failed after state change: {e}")
                result.warnings.append(f"State changed but the comment could not be added: {e}")

    return _update_result_content(result), current_scope


async def handle_add_issue_comment(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Add a comment to an issue."""
    issue_id = validate_issue_id(arguments["issue_id"])
    response = await client.post(
        f"/issues/{issue_id}/comments",
        json={"text": arguments["text"]},
        params={"fields": "id,text,author(login)"},
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Successfully added comment {result.get('id')} to {issue_id}")

    return [TextContent(type="text", text=f"Added comment to {issue_id}\n\n{formatters.format_comment(result)}")], current_scope


# ============================================================================
# Time Tracking Handlers
# ============================================================================

async def handle_log_work_item(
    arguments: dict,
    client: httpx.AsyncClient,
    current_scope: Optional[dict] = None
) -> tuple[list[TextContent], Optional[dict]]:
    """Log time spent on an issue."""
    issue_id = validate_issue_id(arguments["issue_id"])
    minutes = parse_duration(arguments["duration"])

    if arguments.get("date"):
        work_date = datetime.strptime(arguments["date"], "%Y-%m-%d").replace(tzinfo=timezone.utc)
    else:
        work_date = datetime.now(timezone.utc)

    payload = {
        "duration": {"minutes": minutes},
        "date": int(work_date.timestamp() * 1000),
        "text": arguments.get("description") or f"Work logged for {issue_id}",
    }
    if arguments.get("work_type"):
        payload["type"] = {"name": arguments["work_type"]}

    response = await client.post(
        f"/issues/{issue_id}/timeTracking/workItems",
        json=payload,
        params={"fields": "id,duration(minutes,presentation),text,type(name)"},
    )
    response.raise_for_status()
    result = response.json()
    logger.info(f"Logged {minutes} minutes on {issue_id}")

    return [TextContent(type="text", text=f"{issue_id}: {formatters.format_work_item(result)}")], current_scope
