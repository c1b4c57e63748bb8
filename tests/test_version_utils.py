"""Tests for version range matching."""

import json

import pytest
from packaging.specifiers import InvalidSpecifier, SpecifierSet

from embercli_mcp.utils.version import read_manifest_version, satisfies, to_specifier

EMBER_CLI_RANGES = ["~>0.1.5", "~>0.2.0", "~>1.13"]


class TestSatisfies:
    """Tests for satisfies()."""

    def test_matches_first_range(self):
        """0.1.5 matches ~>0.1.5."""
        assert satisfies("0.1.5", EMBER_CLI_RANGES) is True

    def test_matches_later_range(self):
        """Any one matching range is enough."""
        assert satisfies("1.13.2", EMBER_CLI_RANGES) is True
        assert satisfies("0.2.7", EMBER_CLI_RANGES) is True

    def test_no_range_matches(self):
        """2.0.0 is outside every range."""
        assert satisfies("2.0.0", EMBER_CLI_RANGES) is False

    def test_pessimistic_patch_range(self):
        """~>0.1.5 allows patch updates only."""
        assert satisfies("0.1.9", "~> 0.1.5") is True
        assert satisfies("0.1.4", "~> 0.1.5") is False
        assert satisfies("0.2.0", "~> 0.1.5") is False

    def test_pessimistic_minor_range(self):
        """~>1.13 allows minor updates within the major version."""
        assert satisfies("1.13.0", "~> 1.13") is True
        assert satisfies("1.20.1", "~> 1.13") is True
        assert satisfies("1.12.9", "~> 1.13") is False

    def test_addon_range(self):
        """~>0.0.13 pins the addon to 0.0.x >= 0.0.13."""
        assert satisfies("0.0.13", ["~>0.0.13"]) is True
        assert satisfies("0.0.12", ["~>0.0.13"]) is False
        assert satisfies("0.1.0", ["~>0.0.13"]) is False

    def test_single_string_requirement(self):
        """A single range string is accepted."""
        assert satisfies("1.13.2", "~>1.13") is True

    def test_bare_version_is_exact(self):
        """A bare version requires an exact match."""
        assert satisfies("0.0.13", "0.0.13") is True
        assert satisfies("0.0.14", "0.0.13") is False

    def test_pep440_specifiers(self):
        """Native specifiers pass through."""
        assert satisfies("2.1.0", ">=2.0,<3") is True

    def test_missing_version(self):
        """None or empty versions never match."""
        assert satisfies(None, EMBER_CLI_RANGES) is False
        assert satisfies("", EMBER_CLI_RANGES) is False

    def test_unparseable_version(self):
        """Garbage versions never match."""
        assert satisfies("not-a-version", EMBER_CLI_RANGES) is False

    def test_invalid_range_is_skipped(self):
        """An invalid range is ignored, the others still apply."""
        assert satisfies("1.13.2", ["~~nope", "~>1.13"]) is True

    def test_empty_ranges(self):
        """No ranges, no match."""
        assert satisfies("1.0.0", []) is False


class TestToSpecifier:
    """Tests for range expression conversion."""

    def test_pessimistic(self):
        assert to_specifier("~> 1.13") == SpecifierSet("~=1.13")

    def test_pessimistic_single_component(self):
        assert to_specifier("~> 1") == SpecifierSet("~=1.0")

    def test_bare(self):
        assert to_specifier("0.0.13") == SpecifierSet("==0.0.13")

    def test_invalid(self):
        with pytest.raises(InvalidSpecifier):
            to_specifier("~~nope")


class TestReadManifestVersion:
    """Tests for reading versions from package.json."""

    def test_reads_version(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_text(json.dumps({"name": "ember-cli", "version": "1.13.2"}))

        assert read_manifest_version(path) == "1.13.2"

    def test_missing_version_field(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_text(json.dumps({"name": "ember-cli"}))

        assert read_manifest_version(path) is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_text("{not json")

        with pytest.raises(json.JSONDecodeError):
            read_manifest_version(path)
