"""Tests for CLI entry point - argument parsing and manager setup."""

import argparse
from unittest.mock import patch

import pytest

from embercli_mcp.__main__ import build_manager, main, parse_app_spec, parse_args


class TestParseAppSpec:
    """Tests for NAME[=PATH] app specs."""

    def test_name_only(self):
        assert parse_app_spec("storefront") == ("storefront", None)

    def test_name_and_path(self):
        assert parse_app_spec("admin=frontend/admin") == ("admin", "frontend/admin")

    def test_empty_path(self):
        assert parse_app_spec("admin=") == ("admin", None)

    def test_empty_name(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_app_spec("=frontend")


class TestParseArgs:
    """Tests for command line parsing."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("EMBER_CLI_ENV", raising=False)

        args = parse_args([])

        assert args.root is None
        assert args.environment == "development"
        assert args.apps == []
        assert not args.watch

    def test_repeated_apps(self):
        args = parse_args(["--app", "storefront", "--app", "admin=frontend/admin"])

        assert args.apps == [("storefront", None), ("admin", "frontend/admin")]

    def test_environment_from_env_var(self, monkeypatch):
        monkeypatch.setenv("EMBER_CLI_ENV", "production")

        assert parse_args([]).environment == "production"

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--watch", "--install"])


class TestBuildManager:
    """Tests for manager construction from arguments."""

    def test_apps_configured(self, host_root):
        args = parse_args(
            ["--root", str(host_root), "--app", "storefront", "--app", "admin=frontend/admin"]
        )

        manager = build_manager(args)

        assert [app.name for app in manager.apps] == ["storefront", "admin"]
        assert manager.find_app("admin").paths.root == host_root / "frontend" / "admin"

    def test_overrides(self, host_root):
        args = parse_args(
            [
                "--root",
                str(host_root),
                "--environment",
                "production",
                "--build-timeout",
                "20",
                "--watcher",
                "polling",
            ]
        )

        manager = build_manager(args)

        assert manager.environment == "production"
        assert manager.configuration.build_timeout == 20.0
        assert manager.configuration.watcher == "polling"


class TestMain:
    """Tests for one-shot CLI modes."""

    @pytest.mark.asyncio
    async def test_compile_mode(self, host_root):
        with patch("embercli_mcp.build.app.EmberApp.compile") as mock_compile:
            await main(["--root", str(host_root), "--app", "storefront", "--compile"])

        mock_compile.assert_called_once()

    @pytest.mark.asyncio
    async def test_dependency_error_exits(self, host_root):
        with pytest.raises(SystemExit) as exc_info:
            await main(["--root", str(host_root), "--app", "storefront", "--compile"])

        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_server_stops_apps_on_exit(self, host_root):
        with patch("embercli_mcp.__main__.create_server") as mock_create, patch(
            "embercli_mcp.build.manager.AppManager.stop_all"
        ) as mock_stop_all:
            mock_create.return_value.run_stdio_async.side_effect = RuntimeError("closed")

            with pytest.raises(RuntimeError):
                await main(["--root", str(host_root), "--app", "storefront"])

        mock_stop_all.assert_called_once()
