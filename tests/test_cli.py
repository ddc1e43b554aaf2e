"""Tests for emoquiz.cli — click commands.

Server start-up, PID handling and health checks are patched out; nothing
binds a port or forks.
"""

from unittest.mock import MagicMock, patch

import click.testing
import pytest

from emoquiz.cli import _resolve_port, _validate_port, cli


@pytest.fixture
def runner() -> click.testing.CliRunner:
    return click.testing.CliRunner()


@pytest.fixture
def pid_file():
    with patch("emoquiz.cli.PID_FILE") as mock_pid, patch("emoquiz.cli.EMOQUIZ_DIR"):
        mock_pid.write_text = MagicMock()
        mock_pid.unlink = MagicMock()
        yield mock_pid


# ---------------------------------------------------------------------------
# Port helpers
# ---------------------------------------------------------------------------


class TestPortHelpers:
    """Tests for _resolve_port() and _validate_port()."""

    def test_explicit_port_wins(self):
        assert _resolve_port(9000) == 9000

    def test_env_var_port(self, monkeypatch):
        monkeypatch.setenv("EMOQUIZ_PORT", "9100")
        assert _resolve_port(None) == 9100

    def test_bad_env_var_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("EMOQUIZ_PORT", "not-a-port")
        assert _resolve_port(None) == 7870

    @pytest.mark.parametrize("port", [80, 70000])
    def test_out_of_range_port_is_rejected(self, port):
        with pytest.raises(click.BadParameter):
            _validate_port(port)


# ---------------------------------------------------------------------------
# start
# ---------------------------------------------------------------------------


class TestStart:
    """Tests for ``emoquiz start``."""

    def test_start_runs_server_with_source(self, runner, pid_file):
        with patch("emoquiz.cli._run_server") as run_server, \
             patch("emoquiz.cli._read_pid", return_value=None):
            result = runner.invoke(cli, ["start", "--port", "9001", "--source", "stream"])

        assert result.exit_code == 0
        assert "Starting Emoquiz on port 9001" in result.output
        run_server.assert_called_once_with(9001, "stream")
        pid_file.write_text.assert_called_once()
        pid_file.unlink.assert_called_once()

    def test_start_daemon(self, runner, pid_file, monkeypatch):
        monkeypatch.delenv("EMOQUIZ_PORT", raising=False)
        with patch("emoquiz.cli._daemonize") as daemonize, \
             patch("emoquiz.cli._run_server") as run_server, \
             patch("emoquiz.cli._read_pid", return_value=None):
            result = runner.invoke(cli, ["start", "--daemon"])

        assert result.exit_code == 0
        daemonize.assert_called_once_with(7870, None)
        run_server.assert_not_called()

    def test_start_refuses_when_already_running(self, runner, pid_file):
        with patch("emoquiz.cli._run_server") as run_server, \
             patch("emoquiz.cli._read_pid", return_value=4242), \
             patch("emoquiz.cli._is_process_running", return_value=True):
            result = runner.invoke(cli, ["start"])

        assert result.exit_code == 1
        assert "already running (PID 4242)" in result.output
        run_server.assert_not_called()

    def test_start_rejects_unknown_source(self, runner):
        result = runner.invoke(cli, ["start", "--source", "telepathy"])
        assert result.exit_code != 0

    def test_port_in_use(self, runner, pid_file):
        with patch(
            "emoquiz.cli._run_server", side_effect=OSError("Address already in use")
        ), patch("emoquiz.cli._read_pid", return_value=None):
            result = runner.invoke(cli, ["start"])

        assert result.exit_code == 1
        assert "already in use" in result.output


# ---------------------------------------------------------------------------
# stop / status
# ---------------------------------------------------------------------------


class TestStopAndStatus:
    """Tests for ``emoquiz stop`` and ``emoquiz status``."""

    def test_stop_without_pid_file(self, runner):
        with patch("emoquiz.cli._read_pid", return_value=None):
            result = runner.invoke(cli, ["stop"])
        assert result.exit_code == 1
        assert "No PID file" in result.output

    def test_stop_cleans_stale_pid(self, runner, pid_file):
        with patch("emoquiz.cli._read_pid", return_value=4242), \
             patch("emoquiz.cli._is_process_running", return_value=False):
            result = runner.invoke(cli, ["stop"])
        assert result.exit_code == 0
        assert "stale PID file" in result.output
        pid_file.unlink.assert_called_once()

    def test_stop_sends_sigterm(self, runner, pid_file):
        with patch("emoquiz.cli._read_pid", return_value=4242), \
             patch("emoquiz.cli._is_process_running", side_effect=[True, False]), \
             patch("emoquiz.cli.os.kill") as kill:
            result = runner.invoke(cli, ["stop"])
        assert result.exit_code == 0
        assert "Server stopped" in result.output
        kill.assert_called_once()

    def test_status_healthy(self, runner):
        health = {
            "version": "0.1.0",
            "speech_source": "browser",
            "speech_available": True,
            "session_state": "listening",
            "game_active": True,
        }
        with patch("emoquiz.cli._read_pid", return_value=4242), \
             patch("emoquiz.cli._is_process_running", return_value=True), \
             patch("emoquiz.cli._fetch_health", return_value=health):
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Server is healthy" in result.output
        assert "browser (available=True)" in result.output
        assert "listening" in result.output

    def test_status_not_responding(self, runner):
        with patch("emoquiz.cli._read_pid", return_value=4242), \
             patch("emoquiz.cli._is_process_running", return_value=True), \
             patch("emoquiz.cli._fetch_health", return_value=None):
            result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "not responding" in result.output

    def test_status_not_running(self, runner):
        with patch("emoquiz.cli._read_pid", return_value=None):
            result = runner.invoke(cli, ["status"])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# match
# ---------------------------------------------------------------------------


class TestMatch:
    """Tests for ``emoquiz match``."""

    def test_match_single_question(self, runner):
        result = runner.invoke(cli, ["match", "joss", "--question", "6"])
        assert result.exit_code == 0
        assert "6. Jaws: matched 'jaws' (phonetic" in result.output

    def test_match_reports_strategy(self, runner):
        result = runner.invoke(cli, ["match", "titenic", "--question", "2"])
        assert result.exit_code == 0
        assert "containment" in result.output

    def test_no_match_exits_nonzero(self, runner):
        result = runner.invoke(cli, ["match", "casablanca", "--question", "2"])
        assert result.exit_code == 1
        assert "No match for Titanic" in result.output

    def test_match_searches_whole_catalog(self, runner):
        result = runner.invoke(cli, ["match", "batman"])
        assert result.exit_code == 0
        assert "The Dark Knight" in result.output

    def test_question_out_of_range(self, runner):
        result = runner.invoke(cli, ["match", "titanic", "--question", "99"])
        assert result.exit_code != 0
