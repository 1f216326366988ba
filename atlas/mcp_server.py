"""MCP Server for Atlas listings.

Exposes the project, task and knowledge listings as MCP tools so any
MCP-compliant agent can browse them natively. Tool arguments are converted
into the same raw parameter mapping the HTTP API receives, so both front
doors return identical projections.

Transports:
    - stdio: ``python -m atlas.mcp_server`` (local / Docker exec)
    - Streamable HTTP: mounted at ``/mcp`` on the FastAPI server (remote)

The ``mcp_app`` Server instance is importable for mounting into other
ASGI applications (see ``atlas/server.py``).
"""

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
)
from pydantic import BaseModel

from .config import Config
from .listing import service
from .listing.errors import ListingError
from .listing.models import EncodedResponse
from .listing.storage.factory import create_record_store, set_record_store
from .mcp_schemas import (
    KnowledgeListInput,
    ProjectGetInput,
    ProjectListInput,
    TaskListInput,
)


def _deref_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Dereference $ref/$defs in a JSON Schema for LLM API compatibility.

    Many LLM APIs don't support $ref references in tool schemas. This
    function inlines all $ref references and removes the $defs block,
    producing a flat schema.
    """
    defs = schema.get("$defs", {})
    if not defs:
        return schema

    result = {k: v for k, v in schema.items() if k != "$defs"}

    def _resolve(node: Any, seen: frozenset[str] = frozenset()) -> Any:
        if isinstance(node, dict):
            if "$ref" in node:
                ref_name = node["$ref"].rsplit("/", 1)[-1]
                if ref_name in seen:
                    # Circular reference
                    return {"type": "object"}
                if ref_name in defs:
                    return _resolve(dict(defs[ref_name]), seen | {ref_name})
                return node
            return {k: _resolve(v, seen) for k, v in node.items()}
        if isinstance(node, list):
            return [_resolve(item, seen) for item in node]
        return node

    return _resolve(result)


# Configure logging to stderr (stdout is reserved for MCP protocol)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("atlas-mcp")

# Server instance, importable for mounting in ASGI apps (see atlas/server.py)
mcp_app = Server("atlas-listing")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _build_listing_params(args: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    """Convert tool input to the raw camelCase parameter mapping used by HTTP."""
    data = args.model_dump(exclude_none=True, exclude=exclude or set())
    return {_camel(key): value for key, value in data.items()}


def _default_format() -> str:
    return Config.from_env().listing.default_format


def _text(encoded: EncodedResponse) -> list[TextContent]:
    return [TextContent(type="text", text=encoded.body)]


@mcp_app.list_tools()
async def list_tools() -> list[Tool]:
    """List available Atlas tools for MCP discovery."""
    return [
        Tool(
            name="atlas_project_list",
            description=(
                "List projects with pagination, filtering (status, taskType, search) "
                "and sorting. Use verbosity or fields to control which fields are "
                "returned, includeStats for task completion statistics, and "
                "format=compact for token-efficient output."
            ),
            inputSchema=_deref_schema(ProjectListInput.model_json_schema()),
        ),
        Tool(
            name="atlas_project_get",
            description=(
                "Fetch a single project by ID with every field by default. Optionally "
                "embed its tasks and knowledge items and attach statistics."
            ),
            inputSchema=_deref_schema(ProjectGetInput.model_json_schema()),
        ),
        Tool(
            name="atlas_task_list",
            description=(
                "List the tasks of one project with pagination, filtering (status, "
                "priority, assignee, tags, taskType) and sorting. Priority sorts by "
                "rank (low < medium < high < critical)."
            ),
            inputSchema=_deref_schema(TaskListInput.model_json_schema()),
        ),
        Tool(
            name="atlas_knowledge_list",
            description=(
                "List knowledge items, optionally scoped to one project, with "
                "filtering by domain, tags and text search."
            ),
            inputSchema=_deref_schema(KnowledgeListInput.model_json_schema()),
        ),
    ]


@mcp_app.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Dispatch tool calls to the listing service."""
    logger.info("Tool called: %s", name)

    try:
        if name == "atlas_project_list":
            return await _handle_project_list(arguments)

        if name == "atlas_project_get":
            return await _handle_project_get(arguments)

        if name == "atlas_task_list":
            return await _handle_task_list(arguments)

        if name == "atlas_knowledge_list":
            return await _handle_knowledge_list(arguments)

        raise ValueError(f"Unknown tool: {name}")

    except ListingError as e:
        logger.warning("Tool %s failed: %s", name, e.message)
        return [TextContent(type="text", text=json.dumps(e.to_dict()))]
    except ValueError as e:
        # Includes pydantic.ValidationError for malformed required arguments
        logger.warning("Validation error in tool %s: %s", name, e)
        return [
            TextContent(
                type="text",
                text=json.dumps({"error": {"code": "VALIDATION_ERROR", "message": str(e)}}),
            )
        ]
    except Exception as e:
        logger.error("Tool %s failed (%s): %s", name, type(e).__name__, e, exc_info=True)
        return [
            TextContent(
                type="text",
                text=json.dumps(
                    {"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}}
                ),
            )
        ]


async def _handle_project_list(arguments: dict[str, Any]) -> list[TextContent]:
    """Handle atlas_project_list tool call."""
    args = ProjectListInput(**arguments)
    encoded = await service.list_projects(
        _build_listing_params(args),
        default_format=_default_format(),
    )
    return _text(encoded)


async def _handle_project_get(arguments: dict[str, Any]) -> list[TextContent]:
    """Handle atlas_project_get tool call."""
    args = ProjectGetInput(**arguments)
    encoded = await service.get_project(
        args.project_id,
        _build_listing_params(args, exclude={"project_id"}),
        default_format=_default_format(),
    )
    return _text(encoded)


async def _handle_task_list(arguments: dict[str, Any]) -> list[TextContent]:
    """Handle atlas_task_list tool call."""
    args = TaskListInput(**arguments)
    encoded = await service.list_tasks(
        args.project_id,
        _build_listing_params(args, exclude={"project_id"}),
        default_format=_default_format(),
    )
    return _text(encoded)


async def _handle_knowledge_list(arguments: dict[str, Any]) -> list[TextContent]:
    """Handle atlas_knowledge_list tool call."""
    args = KnowledgeListInput(**arguments)
    encoded = await service.list_knowledge(
        args.project_id,
        _build_listing_params(args, exclude={"project_id"}),
        default_format=_default_format(),
    )
    return _text(encoded)


async def run_stdio() -> None:
    """Run the MCP server with stdio transport."""
    logger.info("Starting Atlas MCP server (stdio transport)")

    config = Config.from_env()
    store = create_record_store(config.storage.backend, config.storage.seed_path)
    await store.initialize()
    set_record_store(store)

    try:
        async with stdio_server() as (read_stream, write_stream):
            await mcp_app.run(
                read_stream,
                write_stream,
                mcp_app.create_initialization_options(),
            )
    finally:
        await store.close()


def main() -> None:
    """Entry point for the MCP server."""
    asyncio.run(run_stdio())


if __name__ == "__main__":
    main()
