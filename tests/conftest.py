"""Pytest fixtures for embercli-mcp tests."""

import json
import os
import stat
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from embercli_mcp.config import Configuration  # noqa: E402


def make_executable(path, content="#!/bin/sh\nexit 0\n"):
    """Write a shell script and mark it executable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_manifest(path, **fields):
    """Write a package.json manifest."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(fields))
    return path


@pytest.fixture
def host_root(tmp_path):
    """Root directory of the host application."""
    root = tmp_path / "host"
    root.mkdir()
    return root


@pytest.fixture
def bin_dir(tmp_path):
    """Directory with stub global executables (bower, npm, bundle)."""
    directory = tmp_path / "bin"
    for name in ("bower", "npm", "bundle"):
        make_executable(directory / name)
    return directory


@pytest.fixture
def configuration(bin_dir):
    """Configuration pointing at stub executables, without a log tee."""
    return Configuration(
        build_timeout=2.0,
        tee_path=None,
        bower_path=str(bin_dir / "bower"),
        npm_path=str(bin_dir / "npm"),
        bundler_path=str(bin_dir / "bundle"),
    )


@pytest.fixture
def app_root(host_root):
    """A fully installed "storefront" Ember app."""
    root = host_root / "storefront"
    write_manifest(root / "package.json", name="storefront", version="0.0.0")
    (root / "bower_components").mkdir(parents=True)
    (root / "tmp").mkdir()
    make_executable(root / "node_modules" / ".bin" / "ember")
    write_manifest(root / "node_modules" / "ember-cli" / "package.json", version="1.13.2")
    write_manifest(
        root / "node_modules" / "ember-cli-rails-addon" / "package.json", version="0.0.13"
    )
    return root
