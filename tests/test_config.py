"""
Tests for configuration parsing and runtime options (idea_download/config.py).
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from idea_download.config import (
    Config,
    Options,
    PathSettings,
    RepositorySettings,
    load_config,
    load_config_file,
    _load_yaml,
)
from idea_download.editions import Edition
from idea_download.errors import ConfigError
from idea_download.patterns import VersionPattern


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("IDEA_DOWNLOAD_CONFIG", raising=False)
    monkeypatch.delenv("IDEA_DOWNLOAD_INSTALL_ROOT", raising=False)
    monkeypatch.delenv("IDEA_DOWNLOAD_DEBUG", raising=False)


def write_yaml(path: Path, text: str) -> str:
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestPathSettings:
    """Tests for PathSettings."""

    def test_defaults(self):
        paths = PathSettings()
        assert paths.install_root == "/opt/idea"
        assert paths.applications_dir == "/usr/local/share/applications"
        assert paths.version_root == Path("/opt/idea/version")
        assert paths.desktop_root == Path("/opt/idea/desktop")
        assert paths.download_dir == Path("/opt/idea/download")

    def test_relative_root_is_made_absolute(self):
        """Relative install roots resolve against the working directory."""
        paths = PathSettings(install_root="idea")
        assert paths.root.is_absolute()
        assert paths.root == Path.cwd() / "idea"

    def test_empty_root_rejected(self):
        with pytest.raises(ValueError):
            PathSettings(install_root="")

    def test_immutable(self):
        paths = PathSettings()
        with pytest.raises(AttributeError):
            paths.install_root = "/tmp"


class TestRepositorySettings:
    """Tests for RepositorySettings."""

    def test_build_url_derived_from_listing(self):
        settings = RepositorySettings(listing_url="https://repo.example.com/releases/")
        assert settings.build_url == "https://repo.example.com/releases/com/jetbrains/intellij/idea/BUILD"

    def test_explicit_build_url_kept(self):
        settings = RepositorySettings(build_url="https://mirror.example.com/BUILD")
        assert settings.build_url == "https://mirror.example.com/BUILD"

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="Invalid timeout_seconds"):
            RepositorySettings(timeout_seconds=0)
        with pytest.raises(ValueError, match="Invalid timeout_seconds"):
            RepositorySettings(timeout_seconds=301)

    def test_invalid_status_count(self):
        with pytest.raises(ValueError, match="Invalid status_count"):
            RepositorySettings(status_count=0)

    def test_from_dict_partial(self):
        settings = RepositorySettings.from_dict({"timeout_seconds": 5, "sort_candidates": True})
        assert settings.timeout_seconds == 5
        assert settings.sort_candidates is True
        assert settings.status_count == 20


class TestConfig:
    """Tests for Config."""

    def test_from_dict(self):
        config = Config.from_dict(
            {
                "version": 1,
                "paths": {"install_root": "/srv/idea"},
                "repository": {"status_count": 5},
            },
            source="test.yml",
        )
        assert config.paths.install_root == "/srv/idea"
        assert config.repository.status_count == 5
        assert config.source == "test.yml"

    def test_from_dict_empty_sections(self):
        """Empty YAML sections fall back to defaults."""
        config = Config.from_dict({"paths": None, "repository": None})
        assert config == Config()

    def test_unsupported_version(self):
        with pytest.raises(ValueError, match="Unsupported config version"):
            Config(version=2)

    def test_merge_prefers_non_default_values(self):
        """Primary wins field by field; defaults defer to the secondary config."""
        primary = Config(paths=PathSettings(install_root="/srv/idea"), source="project.yml")
        secondary = Config(
            paths=PathSettings(install_root="/home/idea", applications_dir="/apps"),
            repository=RepositorySettings(status_count=3),
            source="user.yml",
        )
        merged = primary.merge_with(secondary)
        assert merged.paths.install_root == "/srv/idea"
        assert merged.paths.applications_dir == "/apps"
        assert merged.repository.status_count == 3
        assert merged.source == "project.yml"

    def test_with_install_root(self):
        config = Config(paths=PathSettings(applications_dir="/apps"))
        moved = config.with_install_root("/data/idea")
        assert moved.paths.install_root == "/data/idea"
        assert moved.paths.applications_dir == "/apps"


class TestOptions:
    """Tests for runtime options."""

    def test_defaults(self):
        options = Options()
        assert options.action is None
        assert options.pattern.is_unset
        assert options.edition is Edition.COMMUNITY
        assert options.label is None
        assert options.dry_run is False

    def test_unknown_action(self):
        with pytest.raises(ValueError, match="Unknown command"):
            Options(action="upgrade")

    @pytest.mark.parametrize("label", ["", "a/b"])
    def test_invalid_label(self, label):
        with pytest.raises(ValueError, match="Invalid label"):
            Options(action="install", label=label)

    def test_valid(self):
        options = Options(action="install", pattern=VersionPattern.stable(), label="current")
        assert options.label == "current"


class TestLoadConfigFile:
    """Tests for loading single files."""

    def test_missing_file(self, tmp_path):
        assert load_config_file(str(tmp_path / "missing.yml")) is None

    def test_yaml_file(self, tmp_path):
        path = write_yaml(
            tmp_path / "config.yml",
            "version: 1\npaths:\n  install_root: /srv/idea\nrepository:\n  timeout_seconds: 10\n",
        )
        config = load_config_file(path)
        assert config.paths.install_root == "/srv/idea"
        assert config.repository.timeout_seconds == 10
        assert config.source == path

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"paths": {"applications_dir": "/apps"}}))
        config = load_config_file(str(path))
        assert config.paths.applications_dir == "/apps"

    def test_invalid_yaml(self, tmp_path):
        path = write_yaml(tmp_path / "broken.yml", "paths: [unclosed\n")
        assert _load_yaml(path) is None
        assert load_config_file(path) is None

    def test_invalid_values(self, tmp_path):
        path = write_yaml(tmp_path / "bad.yml", "repository:\n  timeout_seconds: 0\n")
        assert load_config_file(path) is None

    def test_non_mapping_yaml(self, tmp_path):
        """A YAML scalar is treated as an empty configuration."""
        path = write_yaml(tmp_path / "scalar.yml", "just a string\n")
        assert load_config_file(path) == Config(source=path)


class TestLoadConfig:
    """Tests for merged configuration loading."""

    @patch("idea_download.config.CONFIG_LOCATIONS", [])
    def test_defaults_when_nothing_found(self):
        assert load_config() == Config()

    @patch("idea_download.config.CONFIG_LOCATIONS", [])
    def test_custom_path(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yml", "paths:\n  install_root: /srv/idea\n")
        assert load_config(path).paths.install_root == "/srv/idea"

    @patch("idea_download.config.CONFIG_LOCATIONS", [])
    def test_custom_path_missing(self, tmp_path):
        """An explicitly requested file must load."""
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.yml"))

    @patch("idea_download.config.CONFIG_LOCATIONS", [])
    def test_custom_path_from_environment(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path / "env.yml", "repository:\n  status_count: 7\n")
        monkeypatch.setenv("IDEA_DOWNLOAD_CONFIG", path)
        assert load_config().repository.status_count == 7

    def test_locations_merged_by_priority(self, tmp_path):
        project = write_yaml(tmp_path / "project.yml", "paths:\n  install_root: /srv/idea\n")
        user = write_yaml(
            tmp_path / "user.yml",
            "paths:\n  install_root: /home/idea\n  applications_dir: /apps\n",
        )
        with patch("idea_download.config.CONFIG_LOCATIONS", [project, user]):
            config = load_config()
        assert config.paths.install_root == "/srv/idea"
        assert config.paths.applications_dir == "/apps"

    @patch("idea_download.config.CONFIG_LOCATIONS", [])
    def test_install_root_environment_override(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path / "custom.yml", "paths:\n  install_root: /srv/idea\n")
        monkeypatch.setenv("IDEA_DOWNLOAD_INSTALL_ROOT", str(tmp_path / "root"))
        config = load_config(path)
        assert config.paths.install_root == str(tmp_path / "root")
