"""MCP Server exposing Ember CLI build coordination."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from mcp.server.fastmcp import Context, FastMCP

from .build import AppManager, DependencyChecker, EmberCliError
from .config import Configuration

logger = logging.getLogger(__name__)

# Global app manager (one host process, one manager)
_manager: AppManager | None = None


def get_manager() -> AppManager:
    """Get or create the app manager.

    Falls back to the current directory as host root when the server was not
    created through ``create_server``.
    """
    global _manager
    if _manager is None:
        _manager = AppManager(Path.cwd(), configuration=Configuration.from_env())
    return _manager


def set_manager(manager: AppManager | None) -> None:
    """Replace the global app manager (used at startup and in tests)."""
    global _manager
    _manager = manager


def error_payload(error: Exception) -> dict:
    """Tool error response, with structured details for known errors."""
    payload: dict = {"success": False, "error": str(error)}
    if isinstance(error, EmberCliError):
        payload["details"] = error.to_dict()
    return payload


def create_server(manager: AppManager | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        manager: App manager owning the configured apps. The global manager
            is used (and created) when omitted.
    """
    if manager is not None:
        set_manager(manager)
    manager = get_manager()
    mcp = FastMCP("embercli-mcp")

    async def report(ctx: Context | None, progress: float, message: str) -> None:
        """Report tool progress to the client, if it is listening."""
        if ctx is None:
            return
        try:
            await ctx.report_progress(progress=progress, total=100, message=message)
        except Exception:
            logger.debug("Progress notification failed", exc_info=True)

    # ============== Status Tools ==============

    @mcp.tool()
    async def list_apps() -> dict:
        """List configured Ember apps with their lifecycle state."""
        return {
            "success": True,
            "data": {app.name: app.state.value for app in manager.apps},
        }

    @mcp.tool()
    async def app_status(app: str) -> dict:
        """
        Detailed status of one Ember app.

        Includes: state, whether a build is in progress (lock file present),
        whether the last build failed, the watch process PID and resolved paths.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            data = ember_app.to_dict()
            data["paths"] = ember_app.paths.to_dict()
            return {"success": True, "data": data}
        except Exception as e:
            return error_payload(e)

    @mcp.tool()
    async def check_dependencies(app: str) -> dict:
        """
        Check that node_modules, bower_components, bower, ember-cli and
        ember-cli-rails-addon are installed at compatible versions.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            await asyncio.to_thread(DependencyChecker(ember_app.paths).check)
            return {"success": True, "data": {"satisfied": True}}
        except Exception as e:
            return error_payload(e)

    # ============== Build Tools ==============

    @mcp.tool()
    async def install_dependencies(ctx: Context, app: str) -> dict:
        """
        Install the app's bundler (if it has a Gemfile), npm and bower dependencies.

        A failing install stops the server; there is nothing consistent to
        continue from.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            await report(ctx, 0, f"Installing dependencies for {app}...")
            await asyncio.to_thread(ember_app.install_dependencies)
            await report(ctx, 100, "Dependencies installed")
            return {"success": True, "data": ember_app.to_dict()}
        except Exception as e:
            return error_payload(e)

    @mcp.tool()
    async def compile_app(ctx: Context, app: str) -> dict:
        """
        Build the app once (ember build) and wait for it to finish.

        Calling it again after a successful build does not rebuild.
        Fails while a watch build (run_app) is active.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            await report(ctx, 0, f"Compiling {app}...")
            compiled = await asyncio.to_thread(ember_app.compile)
            await report(ctx, 100, "Compiled")
            return {"success": compiled, "data": ember_app.to_dict()}
        except Exception as e:
            return error_payload(e)

    @mcp.tool()
    async def run_app(app: str) -> dict:
        """
        Start ember build in watch mode in the background.

        Use wait_for_build to block until the first build is done, and
        stop_app to end it.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            process = await asyncio.to_thread(ember_app.run)
            return {"success": True, "data": {**ember_app.to_dict(), "pid": process.pid}}
        except Exception as e:
            return error_payload(e)

    @mcp.tool()
    async def wait_for_build(app: str, timeout: float | None = None) -> dict:
        """
        Wait until the current build of the app finishes.

        Returns with finished=false (not an error) when the timeout passes
        first; the build keeps running. A failed build is reported as an error
        with the build tool output.

        Args:
            app: App name
            timeout: Seconds to wait (default: the app's build timeout)
        """
        try:
            ember_app = manager.find_app(app)
            finished = await asyncio.to_thread(ember_app.wait, timeout)
            return {"success": True, "data": {"finished": finished}}
        except Exception as e:
            return error_payload(e)

    @mcp.tool()
    async def stop_app(app: str) -> dict:
        """
        Stop the app's watch build (SIGINT). Does nothing if none is running.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            stopped = ember_app.stop()
            return {"success": True, "data": {"stopped": stopped}}
        except Exception as e:
            return error_payload(e)

    @mcp.tool()
    async def run_tests(ctx: Context, app: str) -> dict:
        """
        Run ember test for the app and wait for it to finish.

        Args:
            app: App name
        """
        try:
            ember_app = manager.find_app(app)
            await report(ctx, 0, f"Running tests for {app}...")
            await asyncio.to_thread(ember_app.run_tests)
            await report(ctx, 100, "Tests passed")
            return {"success": True, "data": ember_app.to_dict()}
        except Exception as e:
            return error_payload(e)

    # ============== Resources ==============

    @mcp.resource("ember://apps", mime_type="application/json")
    async def apps_resource() -> str:
        """Status of every configured app (JSON).

        Contains: state, build in progress, build error flag, watch PID.
        """
        return json.dumps(manager.to_dict(), indent=2)

    logger.info("EmberCLI MCP Server initialized")
    return mcp
