"""YouTrack MCP Server - Expose YouTrack issues to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any, Optional

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    TextContent,
    ImageContent,
    EmbeddedResource,
)
from pydantic import ValidationError

from youtrack_core.commands import UpdateValidationError
from youtrack_core.config import Settings, get_settings

from . import tools
from . import handlers


settings = get_settings()

# Configure logging to stderr (stdout carries the MCP protocol)
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("youtrack-mcp")

logger.info(f"MCP Server starting with YOUTRACK_URL: {settings.youtrack_url}")
if settings.youtrack_token:
    logger.info("MCP Server configured with permanent token authentication")
else:
    logger.warning("MCP Server running without YOUTRACK_TOKEN (guest access only)")


# MCP Server instance
app = Server("youtrack-mcp")

# Session project scope, per MCP connection (stdio runs one process per connection)
# Stores {project_id, id, name}
_session_project_scope: Optional[dict] = None
if settings.youtrack_default_project:
    _session_project_scope = {
        "project_id": settings.youtrack_default_project,
        "id": None,
        "name": settings.youtrack_default_project,
    }


def create_client(config: Settings) -> httpx.AsyncClient:
    """Build a YouTrack API client with auth, timeout and connection retries."""
    headers = {"Accept": "application/json"}
    if config.youtrack_token:
        headers["Authorization"] = f"Bearer {config.youtrack_token}"

    return httpx.AsyncClient(
        base_url=config.youtrack_url,
        timeout=config.request_timeout,
        headers=headers,
        transport=httpx.AsyncHTTPTransport(retries=config.max_retries),
    )


HANDLER_MAP = {
    # Project scope handlers
    "select_project": handlers.handle_select_project,
    "get_project_scope": handlers.handle_get_project_scope,
    "clear_project_scope": handlers.handle_clear_project_scope,
    # Project handlers
    "list_projects": handlers.handle_list_projects,
    "get_field_values": handlers.handle_get_field_values,
    # Issue handlers
    "get_issue": handlers.handle_get_issue,
    "query_issues": handlers.handle_query_issues,
    "create_issue": handlers.handle_create_issue,
    "update_issue": handlers.handle_update_issue,
    "bulk_update_issues": handlers.handle_bulk_update_issues,
    "change_issue_state": handlers.handle_change_issue_state,
    "add_issue_comment": handlers.handle_add_issue_comment,
    # Time tracking handlers
    "log_work_item": handlers.handle_log_work_item,
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools for YouTrack."""
    return tools.get_tools()


# ============================================================================
# Tool Handlers
# ============================================================================


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent | ImageContent | EmbeddedResource]:
    """Handle MCP tool calls by delegating to shared handlers."""
    global _session_project_scope

    logger.info(f"Tool call: {name} with arguments: {arguments}")

    handler = HANDLER_MAP.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    arguments = await handlers.apply_project_scope_defaults(name, dict(arguments or {}), _session_project_scope)

    async with create_client(settings) as client:
        try:
            # Handlers return (content, scope_update); a changed scope replaces the session scope
            content, scope_update = await handler(arguments, client, _session_project_scope)
            if scope_update is not _session_project_scope:
                _session_project_scope = scope_update
            return content

        except UpdateValidationError as e:
            logger.warning(f"Rejected {name} request: {e.message} (field: {e.field})")
            return [TextContent(type="text", text=f"Error: {e.message}")]

        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
                for error in e.errors()
            )
            logger.warning(f"Invalid arguments for {name}: {problems}")
            return [TextContent(type="text", text=f"Error: Invalid arguments - {problems}")]

        except httpx.HTTPStatusError as e:
            # Log detailed HTTP error information
            logger.error(f"HTTP error during {name} call:")
            logger.error(f"  Status: {e.response.status_code}")
            logger.error(f"  URL: {e.request.url}")
            logger.error(f"  Request body: {e.request.content}")
            try:
                response_body = e.response.json()
                logger.error(f"  Response body: {response_body}")
                error_detail = response_body.get("error_description") or response_body.get("error") or str(e)
            except (ValueError, AttributeError):
                response_text = e.response.text
                logger.error(f"  Response text: {response_text}")
                error_detail = response_text or str(e)
            logger.error(f"  Traceback: {traceback.format_exc()}")
            return [TextContent(type="text", text=f"Error: {error_detail}")]

        except httpx.RequestError as e:
            # Network/connection errors
            logger.error(f"Request error during {name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            logger.error(f"  Traceback: {traceback.format_exc()}")
            return [TextContent(type="text", text=f"Error: Connection failed - {str(e)}")]

        except Exception as e:
            # Catch-all for unexpected errors
            logger.error(f"Unexpected error during {name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            logger.error(f"  Arguments: {arguments}")
            logger.error(f"  Traceback:\n{traceback.format_exc()}")
            return [TextContent(type="text", text=f"Error: {type(e).__name__}: {str(e)}")]


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
