"""MCP server exposing the prompt store as tools over stdio."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from prompt_store import operations
from prompt_store.config import SERVER_NAME

logger = logging.getLogger(__name__)


def _dump(result: dict[str, Any]) -> str:
    return json.dumps(result)


class PromptStoreMcpServer:
    """MCP server for the prompt store."""

    def __init__(self) -> None:
        self.mcp = FastMCP(SERVER_NAME)
        self._register_tools()

    def run(self) -> None:
        logger.info("Starting %s MCP server on stdio", SERVER_NAME)
        self.mcp.run()

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="add_prompt")
        def add_prompt(title: str, content: str, tags: Optional[list[str]] = None) -> str:
            """Store a new prompt.
            Args:
                title: Unique title for the prompt (1-200 characters)
                content: Full prompt content
                tags: Optional tag names (letters, numbers, dash, underscore; stored lowercase)
            """
            return _dump(operations.add_prompt(title, content, tags or []))

        @self.mcp.tool(name="list_prompts")
        def list_prompts(limit: int = 10, offset: int = 0) -> str:
            """List prompts, most recently updated first.
            Args:
                limit: Maximum number of prompts to return (1-100)
                offset: Number of prompts to skip
            """
            return _dump(operations.list_prompts(limit, offset))

        @self.mcp.tool(name="get_prompt")
        def get_prompt(id: str) -> str:
            """Get the full content of a prompt.
            Args:
                id: Prompt UUID
            """
            return _dump(operations.get_prompt(id))

        @self.mcp.tool(name="update_prompt")
        def update_prompt(
            id: str,
            title: str,
            content: str,
            tags: Optional[list[str]] = None,
        ) -> str:
            """Replace a prompt's title, content and tags.
            Args:
                id: Prompt UUID to update
                title: New title for the prompt
                content: New prompt content
                tags: New tag names; tags left out are removed from the prompt
            """
            return _dump(operations.update_prompt(id, title, content, tags or []))

        @self.mcp.tool(name="delete_prompt")
        def delete_prompt(id: str) -> str:
            """Delete a prompt.
            Args:
                id: Prompt UUID to delete
            """
            return _dump(operations.delete_prompt(id))

        @self.mcp.tool(name="search_prompts")
        def search_prompts(query: str, limit: int = 10, offset: int = 0) -> str:
            """Search prompt titles and content.
            Args:
                query: Search term (case-insensitive partial match)
                limit: Maximum number of prompts to return (1-100)
                offset: Number of prompts to skip
            """
            return _dump(operations.search_prompts(query, limit, offset))

        @self.mcp.tool(name="filter_by_tags")
        def filter_by_tags(tags: list[str], limit: int = 10, offset: int = 0) -> str:
            """Find prompts carrying any of the given tags.
            Args:
                tags: Tag names to filter by
                limit: Maximum number of prompts to return (1-100)
                offset: Number of prompts to skip
            """
            return _dump(operations.filter_by_tags(tags, limit, offset))

        @self.mcp.tool(name="list_tags")
        def list_tags() -> str:
            """List every tag with the number of prompts using it."""
            return _dump(operations.list_tags())
