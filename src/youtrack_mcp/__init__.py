"""YouTrack MCP Server - Model Context Protocol integration.

This package exposes YouTrack issue operations to AI assistants, with field
updates that report per-field outcomes and allowed-value hints.

Modules:
- server: stdio MCP server implementation
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
