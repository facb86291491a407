"""MCP Server initialization and tool registration."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from project_health.config import AnalyzerSettings
from project_health.core import AnalysisOrchestrator, AnalysisPool
from project_health.tools import analyze_target, classify_package

# Load environment variables
load_dotenv()

# Tool definitions with JSON schemas
TOOLS: dict[str, dict[str, Any]] = {
    "analyze_target": {
        "description": "Analyze a GitHub repository or a live deployment URL. Returns evidence-based scores (capped at 95), a confidence level, a verdict, issues, deduplicated suggestions and prioritized next steps.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "GitHub repository URL (e.g., https://github.com/user/repo) or deployment URL (e.g., https://example.com)",
                },
                "include_pagespeed": {
                    "type": "boolean",
                    "description": "Run the page-speed probe for deployment URLs (default: true)",
                    "default": True,
                },
            },
            "required": ["url"],
        },
        "handler": analyze_target,
        "uses_pool": True,
    },
    "classify_package": {
        "description": "Classify a package.json as application, library, framework, cli or monorepo and show which scoring policy applies.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "manifest_json": {
                    "type": "string",
                    "description": "Contents of a package.json file",
                },
            },
            "required": ["manifest_json"],
        },
        "handler": classify_package,
    },
}


def create_server(pool: AnalysisPool | None = None) -> Server:
    """Create and configure the MCP server.

    The server owns the analysis pool, so the concurrency limit applies
    across every tool call it serves.
    """
    server = Server("project-health")

    if pool is None:
        settings = AnalyzerSettings.from_env()
        pool = AnalysisPool(
            AnalysisOrchestrator(settings),
            max_concurrent=settings.max_concurrent,
        )

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List all available tools."""
        return [
            Tool(
                name=name,
                description=config["description"],
                inputSchema=config["inputSchema"],
            )
            for name, config in TOOLS.items()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Handle tool invocations."""
        return await dispatch(name, arguments, pool)

    return server


async def dispatch(name: str, arguments: dict, pool: AnalysisPool | None = None) -> list[TextContent]:
    """Run a registered tool and serialize its result or error as JSON text."""
    if name not in TOOLS:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    config = TOOLS[name]
    handler = config["handler"]
    if config.get("uses_pool") and pool is not None:
        arguments = {**arguments, "pool": pool}

    try:
        logger.info(f"Executing tool: {name}")
        result = await handler(**arguments)

        # Serialize result to JSON
        if isinstance(result, dict):
            output = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        else:
            output = str(result)

        return [TextContent(type="text", text=output)]

    except Exception as e:
        logger.error(f"Tool execution failed: {e}")
        error_msg = json.dumps({
            "error": True,
            "message": str(e),
            "tool": name,
        })
        return [TextContent(type="text", text=error_msg)]


async def run_server() -> None:
    """Run the MCP server via stdio."""
    server = create_server()

    logger.info("Starting Project Health server...")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main() -> None:
    """CLI entry point."""
    import asyncio
    import sys

    # Configure logging
    log_level = os.getenv("LOG_LEVEL", "INFO")
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )

    asyncio.run(run_server())


if __name__ == "__main__":
    main()
