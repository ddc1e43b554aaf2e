"""Command-line interface for Emoquiz.

Provides ``emoquiz start``, ``stop``, ``status`` and ``match`` commands.
The entry point is registered via ``pyproject.toml`` as
``emoquiz = "emoquiz.cli:cli"``.
"""

import logging
import os
import signal
import sys
import time

import click
import httpx

from emoquiz.config import EMOQUIZ_DIR, PID_FILE, get_port

logger = logging.getLogger(__name__)

# Log file lives alongside the PID file.
_LOG_FILE = EMOQUIZ_DIR / "server.log"

_MIN_PORT = 1024
_MAX_PORT = 65535


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_port(port: int | None) -> int:
    """Return the port to use, falling back to env var / default."""
    if port is not None:
        return port
    return get_port()


def _validate_port(port: int) -> None:
    """Raise ``click.BadParameter`` if *port* is out of range."""
    if not (_MIN_PORT <= port <= _MAX_PORT):
        raise click.BadParameter(
            f"Port must be between {_MIN_PORT} and {_MAX_PORT}, got {port}."
        )


def _read_pid() -> int | None:
    """Read the PID from the PID file, or return ``None``."""
    try:
        return int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None


def _is_process_running(pid: int) -> bool:
    """Return ``True`` if a process with *pid* is alive."""
    try:
        os.kill(pid, 0)
        return True
    except OSError:
        return False


def _fetch_health(port: int) -> dict | None:
    """Return the ``/health`` payload, or ``None`` if the server is not up."""
    try:
        resp = httpx.get(f"http://127.0.0.1:{port}/health", timeout=2.0)
    except (httpx.ConnectError, httpx.TimeoutException, OSError):
        return None
    if resp.status_code != 200:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def _setup_logging_to_file() -> None:
    """Configure the root logger to write to the server log file.

    Called in daemon mode so that log output is persisted instead of
    being lost after the terminal detaches.
    """
    EMOQUIZ_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(_LOG_FILE)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)


def _run_server(port: int, source: str | None) -> None:
    """Start uvicorn with the Emoquiz FastAPI app.

    This blocks until the server shuts down.
    """
    import uvicorn

    from emoquiz.server.app import create_app

    app = create_app(source)
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="info")


def _daemonize(port: int, source: str | None) -> None:
    """Fork into a background daemon process.

    The parent writes the child PID to the PID file and returns.  The child
    redirects stdout/stderr to the log file and starts the server.
    Unix-only (macOS / Linux).
    """
    EMOQUIZ_DIR.mkdir(parents=True, exist_ok=True)

    pid = os.fork()
    if pid > 0:
        PID_FILE.write_text(str(pid))
        click.echo(
            click.style(f"Server started in background (PID {pid})", fg="green")
        )
        click.echo(f"  Logs: {_LOG_FILE}")
        click.echo(f"  PID file: {PID_FILE}")
        return

    os.setsid()

    log_fd = os.open(str(_LOG_FILE), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
    os.dup2(log_fd, sys.stdout.fileno())
    os.dup2(log_fd, sys.stderr.fileno())
    os.close(log_fd)

    devnull = os.open(os.devnull, os.O_RDONLY)
    os.dup2(devnull, sys.stdin.fileno())
    os.close(devnull)

    _setup_logging_to_file()

    try:
        _run_server(port, source)
    except Exception:
        logger.exception("Daemon server crashed")
        sys.exit(1)
    finally:
        try:
            PID_FILE.unlink(missing_ok=True)
        except OSError:
            pass


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
def cli() -> None:
    """Emoquiz -- guess the movie from emoji, out loud."""


# ---------------------------------------------------------------------------
# start
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--port", default=None, type=int, help="Server port (default: 7870)")
@click.option("--daemon", is_flag=True, help="Run as background process")
@click.option(
    "--source",
    type=click.Choice(["browser", "stream"]),
    default=None,
    help="Speech source (default: EMOQUIZ_SPEECH_SOURCE or browser)",
)
def start(port: int | None, daemon: bool, source: str | None) -> None:
    """Start the Emoquiz server."""
    port = _resolve_port(port)
    _validate_port(port)

    existing_pid = _read_pid()
    if existing_pid is not None and _is_process_running(existing_pid):
        click.echo(
            click.style(
                f"Server is already running (PID {existing_pid}). "
                "Use 'emoquiz stop' first.",
                fg="yellow",
            )
        )
        raise SystemExit(1)

    click.echo(f"Starting Emoquiz on port {port}...")

    if daemon:
        _daemonize(port, source)
        return

    EMOQUIZ_DIR.mkdir(parents=True, exist_ok=True)
    PID_FILE.write_text(str(os.getpid()))
    try:
        _run_server(port, source)
    except OSError as exc:
        if "address already in use" in str(exc).lower():
            click.echo(
                click.style(
                    f"Port {port} is already in use. "
                    "Choose a different port with --port.",
                    fg="red",
                )
            )
            raise SystemExit(1)
        raise
    finally:
        PID_FILE.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# stop
# ---------------------------------------------------------------------------


@cli.command()
def stop() -> None:
    """Stop the background Emoquiz server."""
    pid = _read_pid()

    if pid is None:
        click.echo(click.style("No PID file found — server may not be running.", fg="yellow"))
        raise SystemExit(1)

    if not _is_process_running(pid):
        click.echo(
            click.style(
                f"Process {pid} is not running. Cleaning up stale PID file.", fg="yellow"
            )
        )
        PID_FILE.unlink(missing_ok=True)
        return

    click.echo(f"Stopping Emoquiz server (PID {pid})...")
    os.kill(pid, signal.SIGTERM)

    for _ in range(50):
        if not _is_process_running(pid):
            break
        time.sleep(0.1)
    else:
        click.echo(
            click.style(
                f"Process {pid} did not exit in time — sending SIGKILL.", fg="red"
            )
        )
        try:
            os.kill(pid, signal.SIGKILL)
        except OSError:
            pass

    PID_FILE.unlink(missing_ok=True)
    click.echo(click.style("Server stopped.", fg="green"))


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--port", default=None, type=int, help="Server port to check")
def status(port: int | None) -> None:
    """Show Emoquiz server status."""
    port = _resolve_port(port)
    pid = _read_pid()

    if pid is None:
        click.echo(click.style("Server is not running (no PID file).", fg="yellow"))
        raise SystemExit(1)

    if not _is_process_running(pid):
        click.echo(
            click.style(
                f"PID file exists ({pid}) but process is not running.", fg="yellow"
            )
        )
        PID_FILE.unlink(missing_ok=True)
        raise SystemExit(1)

    click.echo(f"Server process is running (PID {pid}).")

    data = _fetch_health(port)
    if data is None:
        click.echo(
            click.style(
                f"Server process is running but not responding on port {port}.",
                fg="yellow",
            )
        )
        return

    click.echo(click.style("Server is healthy.", fg="green"))
    click.echo(f"  Version:       {data.get('version', '?')}")
    click.echo(f"  Port:          {port}")
    click.echo(
        f"  Speech source: {data.get('speech_source', '?')} "
        f"(available={data.get('speech_available', '?')})"
    )
    click.echo(f"  Session:       {data.get('session_state', '?')}")
    click.echo(f"  Game active:   {data.get('game_active', '?')}")


# ---------------------------------------------------------------------------
# match
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("utterance")
@click.option(
    "--question",
    "question_number",
    default=None,
    type=int,
    help="Catalog question number (1-based); default checks every question",
)
def match(utterance: str, question_number: int | None) -> None:
    """Check how UTTERANCE would be graded against the catalog."""
    from emoquiz.quiz.answer_matcher import AnswerMatcher
    from emoquiz.quiz.catalog import MOVIE_QUESTIONS

    if question_number is not None and not (1 <= question_number <= len(MOVIE_QUESTIONS)):
        raise click.BadParameter(
            f"Question must be between 1 and {len(MOVIE_QUESTIONS)}, got {question_number}."
        )

    numbers = (
        [question_number]
        if question_number is not None
        else range(1, len(MOVIE_QUESTIONS) + 1)
    )
    matcher = AnswerMatcher()
    any_match = False
    for number in numbers:
        question = MOVIE_QUESTIONS[number - 1]
        result = matcher.match(utterance, question)
        if result is None:
            if question_number is not None:
                click.echo(
                    click.style(f"No match for {question.canonical_answer}.", fg="red")
                )
            continue
        any_match = True
        click.echo(
            click.style(
                f"{number}. {question.canonical_answer}: matched {result.answer!r} "
                f"({result.strategy.value}, similarity {result.similarity:.2f})",
                fg="green",
            )
        )

    if not any_match:
        raise SystemExit(1)
