"""
Tests for the command-line front end (idea.py).
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from idea import build_parser, main, parse_options
from idea_download.editions import Edition
from idea_download.errors import NetworkError, OptionError, StateError
from idea_download.patterns import PatternMode

from conftest import make_archive

BUILD_URL = "https://www.jetbrains.com/intellij-repository/releases/com/jetbrains/intellij/idea/BUILD"
LISTING = "\n".join(
    f'<a href="{BUILD_URL}/{v}/BUILD-{v}.zip">{v}</a>' for v in ("163.123", "162.456", "145.789")
).encode()


@pytest.fixture
def install_root(tmp_path, monkeypatch):
    """Point the program at a temporary install root with no config files."""
    root = tmp_path / "idea"
    monkeypatch.setenv("IDEA_DOWNLOAD_INSTALL_ROOT", str(root))
    monkeypatch.delenv("IDEA_DOWNLOAD_CONFIG", raising=False)
    monkeypatch.delenv("IDEA_DOWNLOAD_DEBUG", raising=False)
    with patch("idea_download.config.CONFIG_LOCATIONS", []):
        yield root


def parse(*argv):
    return parse_options(build_parser().parse_args(list(argv)))


class TestParseOptions:
    """Tests for turning arguments into options."""

    def test_defaults(self):
        options = parse("status")
        assert options.action == "status"
        assert options.pattern.mode is PatternMode.UNSET
        assert options.edition is Edition.COMMUNITY
        assert options.label is None

    def test_literal_version(self):
        options = parse("-v", "15.0.6", "install")
        assert options.pattern.mode is PatternMode.LITERAL
        assert options.pattern.text == "15.0.6"

    def test_stable_and_ultimate(self):
        options = parse("--stable", "--ultimate", "install")
        assert options.pattern.mode is PatternMode.STABLE
        assert options.edition is Edition.ULTIMATE

    def test_make_current(self):
        assert parse("-m", "install").label == "current"

    def test_label_and_dry_run(self):
        options = parse("--label", "15", "--dryrun", "install")
        assert options.label == "15"
        assert options.dry_run is True

    def test_options_after_command(self):
        options = parse("install", "-s", "-q")
        assert options.action == "install"
        assert options.quiet is True

    def test_unknown_command(self):
        with pytest.raises(StateError, match="Unknown command 'upgrade'"):
            parse("upgrade")

    def test_two_commands(self):
        with pytest.raises(StateError, match="Already chosen action"):
            parse("install", "clean")

    def test_invalid_regex(self):
        with pytest.raises(OptionError):
            parse("-p", "(unclosed", "install")

    def test_conflicting_version_options(self):
        with pytest.raises(OptionError):
            parse("-s", "-v", "15", "install")

    def test_invalid_label(self):
        with pytest.raises(OptionError):
            parse("-l", "a/b", "install")


class TestMain:
    """Tests for exit codes and output."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage:" in capsys.readouterr().out

    def test_unknown_option(self, capsys):
        assert main(["--bogus", "status"]) == 11
        err = capsys.readouterr().err
        assert "[ERROR] Failed to parse options" in err
        assert "--help" in err

    def test_unknown_command(self, capsys):
        assert main(["upgrade"]) == 12
        assert "[ERROR] Unknown command 'upgrade'" in capsys.readouterr().err

    def test_duplicate_command(self):
        assert main(["install", "install"]) == 12

    @patch("idea_download.reconciler.is_root", return_value=False)
    def test_install_requires_root(self, mock_is_root, install_root, capsys):
        assert main(["-s", "install"]) == 13
        assert "[ERROR] Must be run in sudo session." in capsys.readouterr().err
        assert not install_root.exists()

    @patch("idea_download.repository.http_get", return_value=LISTING)
    @patch("idea_download.reconciler.is_root", return_value=True)
    def test_quiet_install_prints_path(self, mock_is_root, mock_http_get, install_root, capsys):
        """Quiet mode prints only the installation directory."""
        make_archive(install_root / "download" / "ideaIC-163.123.tar.gz", root="idea-IC-163.123")

        assert main(["-q", "-s", "install"]) == 0

        expected = install_root / "version" / "ideaIC-163.123" / "idea-IC-163.123"
        captured = capsys.readouterr()
        assert captured.out.strip() == str(expected)
        assert captured.err == ""
        assert (expected / "bin" / "idea.sh").is_file()

    @patch("idea_download.repository.http_get", return_value=LISTING)
    @patch("idea_download.reconciler.is_root", return_value=True)
    def test_no_match_is_general_failure(self, mock_is_root, mock_http_get, install_root, capsys):
        assert main(["-v", "999", "install"]) == 10
        assert "[ERROR] No version matching 999 available." in capsys.readouterr().err

    @patch("idea_download.repository.http_get")
    def test_status_survives_network_failure(self, mock_http_get, install_root, capsys):
        mock_http_get.side_effect = NetworkError("Failed to fetch listing: timed out")

        assert main(["status"]) == 0
        out = capsys.readouterr().out
        assert "[WARN] Cannot determine most recent available version" in out
        assert "[INFO] Status Done." in out

    @patch("idea_download.repository.http_get", return_value=LISTING)
    def test_dry_run_install_without_root(self, mock_http_get, install_root, capsys):
        with patch("idea_download.reconciler.is_root", return_value=False):
            assert main(["-n", "-s", "-m", "install"]) == 0
        out = capsys.readouterr().out
        assert "[INFO] Dry Run" in out
        assert "Downloading IntelliJ Idea (community, 163.123)." in out
        assert not install_root.exists()

    def test_missing_config_file(self, install_root, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.yml"), "status"]) == 11
        assert "[ERROR] Could not load config" in capsys.readouterr().err

    @patch("idea_download.repository.http_get", return_value=LISTING)
    def test_log_file(self, mock_http_get, install_root, tmp_path):
        log_file = tmp_path / "logs" / "idea.log"
        assert main(["--log-file", str(log_file), "status"]) == 0
        assert "Status Done." in log_file.read_text()

    @patch("idea_download.repository.http_get", return_value=LISTING)
    def test_json_status(self, mock_http_get, install_root, capsys):
        """JSON output replaces the console log on stdout."""
        assert main(["--json", "status"]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["action"] == "status"
        assert report["version"] == "163.123"
        assert report["remote_candidates"] == ["163.123", "162.456", "145.789"]
        assert report["installed"] == []

    @patch("idea.Reconciler", side_effect=KeyboardInterrupt)
    def test_interrupt_exit_code(self, mock_reconciler, install_root, capsys):
        assert main(["status"]) == 130
        assert "Interrupted" in capsys.readouterr().err


class TestPackaging:
    """Tests for the project metadata."""

    def test_project_metadata(self):
        """The metadata names no project documentation as readme and exposes main."""
        tomllib = pytest.importorskip("tomllib")
        pyproject = Path(__file__).resolve().parent.parent / "pyproject.toml"
        project = tomllib.loads(pyproject.read_text())["project"]

        assert "readme" not in project
        assert project["scripts"]["idea-download"] == "idea:main"
