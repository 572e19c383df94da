"""MCP tool definitions for YouTrack.

This module provides the definitive list of tools exposed by the server.
"""

from mcp.types import Tool


# Attribute schema shared by update_issue and bulk_update_issues
UPDATE_PROPERTIES = {
    "summary": {"type": "string", "description": "New summary (title)"},
    "description": {"type": "string", "description": "New description (markdown). Empty string clears it."},
    "state": {"type": "string", "description": "Workflow state, e.g. 'In Progress'"},
    "priority": {"type": "string", "description": "Priority, e.g. 'Critical'"},
    "type": {"type": "string", "description": "Issue type, e.g. 'Bug'"},
    "assignee": {"type": "string", "description": "Assignee login. Empty string unassigns."},
    "estimation": {"type": "integer", "minimum": 0, "description": "Estimate in minutes (0 clears to zero)"},
    "tags": {"type": "array", "items": {"type": "string"}, "description": "Tags to add"},
    "custom_fields": {
        "type": "object",
        "additionalProperties": {"type": "string"},
        "description": "Other project fields by name, e.g. {\"Subsystem\": \"Backend\"}",
    },
}


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for YouTrack."""
    return [
        # ============================================================================
        # Project Scope Tools
        # ============================================================================
        Tool(
            name="select_project",
            description="Set the default project for this session. "
                       "Used by query_issues and as the project context for update diagnostics "
                       "when it cannot be read from the issue ID.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {"type": "string", "description": "Project short name (e.g. 'PROJ') or ID"}
                },
                "required": ["project_id"]
            }
        ),
        Tool(
            name="get_project_scope",
            description="Show the session's default project.",
            inputSchema={"type": "object", "properties": {}}
        ),
        Tool(
            name="clear_project_scope",
            description="Clear the session's default project.",
            inputSchema={"type": "object", "properties": {}}
        ),

        # ============================================================================
        # Project Tools
        # ============================================================================
        Tool(
            name="list_projects",
            description="List YouTrack projects. Archived projects are hidden unless include_archived is true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "include_archived": {"type": "boolean", "description": "Include archived projects (default: false)"},
                    "limit": {"type": "integer", "description": "Max projects to return (default: 50)"}
                }
            }
        ),
        Tool(
            name="get_field_values",
            description="List the legal values of a project field (State, Priority, Type, Subsystem...) "
                       "in the order the project declares them. "
                       "\n\nUse before update_issue to pick a valid value.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {"type": "string", "description": "Project short name or ID (defaults to session project)"},
                    "field_name": {"type": "string", "description": "Field name, e.g. 'Priority'"}
                },
                "required": ["field_name"]
            }
        ),

        # ============================================================================
        # Issue Tools
        # ============================================================================
        Tool(
            name="get_issue",
            description="Get an issue with its custom fields, tags and description.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issue_id": {"type": "string", "description": "Readable ID (PROJ-123) or internal ID"}
                },
                "required": ["issue_id"]
            }
        ),
        Tool(
            name="query_issues",
            description="Search issues with YouTrack query syntax, e.g. 'State: Open assignee: me'. "
                       "The project_id (or the session project) is prepended as 'project: X'.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "YouTrack search query"},
                    "project_id": {"type": "string", "description": "Restrict to a project"},
                    "limit": {"type": "integer", "description": "Max issues to return (default: 50)"},
                    "skip": {"type": "integer", "description": "Issues to skip (default: 0)"}
                },
                "required": ["query"]
            }
        ),
        Tool(
            name="create_issue",
            description="Create an issue in a project. "
                       "\n\nSummary and description are set on creation; state, priority, type and other "
                       "fields are applied right after, one by one, with the same per-field diagnostics "
                       "as update_issue. A rejected value does not undo the creation.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {"type": "string", "description": "Project short name (defaults to session project)"},
                    **UPDATE_PROPERTIES,
                },
                "required": ["summary"]
            }
        ),
        Tool(
            name="update_issue",
            description="Update an issue's fields. Each field change is applied separately, so an invalid "
                       "value for one field does not block the others. "
                       "\n\nRETURNS: status (success | partial | failure), the refreshed issue, and one "
                       "diagnostic per rejected change. Rejected State/Priority/Type values include the "
                       "project's allowed values as a hint."
                       "\n\nA partial result means the issue WAS modified: retry only the failed fields.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issue_id": {"type": "string", "description": "Readable ID (PROJ-123) or internal ID"},
                    "project_id": {"type": "string", "description": "Project for value hints (defaults to the ID prefix)"},
                    **UPDATE_PROPERTIES,
                },
                "required": ["issue_id"]
            }
        ),
        Tool(
            name="bulk_update_issues",
            description="Apply the same field update to several issues, one issue at a time. "
                       "Each issue gets its own result; a failure on one issue does not affect the others.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issue_ids": {"type": "array", "items": {"type": "string"}, "description": "Issue IDs to update"},
                    **UPDATE_PROPERTIES,
                },
                "required": ["issue_ids"]
            }
        ),
        Tool(
            name="change_issue_state",
            description="Move an issue to a new workflow state, optionally adding a comment. "
                       "On rejection, the diagnostics list the states available in the project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issue_id": {"type": "string", "description": "Readable ID (PROJ-123) or internal ID"},
                    "state": {"type": "string", "description": "Target state, e.g. 'Fixed'"},
                    "comment": {"type": "string", "description": "Optional comment to add"}
                },
                "required": ["issue_id", "state"]
            }
        ),
        Tool(
            name="add_issue_comment",
            description="Add a comment to an issue.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issue_id": {"type": "string", "description": "Readable ID (PROJ-123) or internal ID"},
                    "text": {"type": "string", "description": "Comment text (markdown)"}
                },
                "required": ["issue_id", "text"]
            }
        ),

        # ============================================================================
        # Time Tracking Tools
        # ============================================================================
        Tool(
            name="log_work_item",
            description="Log time spent on an issue. "
                       "\n\nDURATION FORMATS: '2h 30m', '1d' (8 hours), '45m', '1.5h', or a bare number of minutes.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issue_id": {"type": "string", "description": "Readable ID (PROJ-123) or internal ID"},
                    "duration": {"type": "string", "description": "Time spent"},
                    "description": {"type": "string", "description": "What was done"},
                    "date": {"type": "string", "description": "Work date (YYYY-MM-DD, default: today)"},
                    "work_type": {"type": "string", "description": "Work item type, e.g. 'Development'"}
                },
                "required": ["issue_id", "duration"]
            }
        ),
    ]
