#!/usr/bin/env python
"""
Canvas Agent MCP Server

Main entry point for the MCP server that exposes the canvas document and
model-backed agent threads to MCP clients.
"""
import argparse
import logging
from typing import Dict

from fastmcp import FastMCP

from canvas_agent import config
from canvas_agent.config import ExecutionContextMode, load_environment_config
from canvas_agent.core.workspace import DesignWorkspace, reset_workspace
from canvas_agent.tools import register_all_tools, get_tool_info


def _configure_logging() -> logging.Logger:
    load_environment_config()
    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL), format=config.LOG_FORMAT)
    logger = logging.getLogger(__name__)
    if config.DEBUG_ENABLED:
        logger.setLevel(logging.DEBUG)
        logging.getLogger("fastmcp").setLevel(logging.DEBUG)
    return logger


class CanvasAgentServer:
    """Main Canvas Agent MCP Server class."""

    def __init__(self, mode: ExecutionContextMode = None) -> None:
        self.mcp = FastMCP("canvas-agent")
        self.mode = mode or config.EXECUTION_MODE
        self.workspace = None
        self.logger = logging.getLogger(__name__)

    def start(self) -> None:
        """Start the Canvas Agent MCP Server."""
        try:
            self._log_startup_banner()
            self.workspace = DesignWorkspace(mode=self.mode)
            reset_workspace(self.workspace)
            self._register_tools()
            self.logger.info("MCP server ready. Listening on stdio.")
            self._run_server()
        except Exception as e:  # pragma: no cover - startup path
            self.logger.error(f"Failed to start server: {e}")
            raise
        finally:
            if self.workspace is not None:
                self.workspace.close()

    def _log_startup_banner(self) -> None:
        tool_info: Dict = get_tool_info()
        self.logger.info("Canvas Agent MCP Server")
        self.logger.info("=" * 40)
        self.logger.info(f"Execution mode: {self.mode.value}")
        self.logger.info(f"Total tools: {tool_info['total_tools']}")
        self.logger.info("Tool categories:")
        for category, details in tool_info["categories"].items():
            self.logger.info(f"  {category}: {len(details['tools'])} tools")

    def _register_tools(self) -> None:
        self.logger.debug("Registering tools...")
        register_all_tools(self.mcp)

    def _run_server(self) -> None:
        try:
            self.mcp.run()
        except KeyboardInterrupt:
            pass


def main(argv: list[str] | None = None) -> int:
    _configure_logging()
    parser = argparse.ArgumentParser(prog="canvas-agent", description="Canvas Agent MCP server")
    parser.add_argument("--list-tools", action="store_true", help="Print available tools and exit")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--bridged", action="store_true",
                        help="Run commands through the cross-context bridge instead of directly")
    args = parser.parse_args(argv)

    if args.version:
        from canvas_agent import __version__
        print(__version__)
        return 0

    if args.list_tools:
        info = get_tool_info()
        print(f"Total tools: {info['total_tools']}")
        for cat, details in info["categories"].items():
            print(f"- {cat}: {', '.join(details['tools'])}")
        return 0

    mode = ExecutionContextMode.BRIDGED if args.bridged else config.EXECUTION_MODE
    server = CanvasAgentServer(mode=mode)
    server.start()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
