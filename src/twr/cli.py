from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich_argparse import RawTextRichHelpFormatter
from taskwire import (
    CancellationTokenSource,
    ConfigError,
    RequestCancelledError,
    RequestError,
    RequestOptions,
    RequestResult,
    RuntimeSettings,
    UnsupportedEngineError,
)
from taskwire.execution import (
    EngineSelector,
    TaskEvent,
    TerminalEngine,
    WorkspaceFolder,
    WorkspaceFolderConfiguration,
    capabilities_for_mode,
    find_task,
    resolve_execution_mode,
    resolve_workspace_configuration,
)
from taskwire.request import request

_CONSOLE = Console(no_color=False)
_ERR_CONSOLE = Console(stderr=True)
EXIT_CANCELLED = 130


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="python -m twr")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for taskwire requests and workspace tasks.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="python -m twr",
        description=(
            "taskwire CLI\n"
            "Issue cancellable HTTP requests and run workspace tasks\n"
            "through the cached terminal task engine."
        ),
        epilog=(
            "Quick Examples:\n"
            "  python -m twr fetch https://example.com\n"
            "  python -m twr fetch https://example.com -H 'X-Trace: abc' --timeout-ms 5000\n"
            "  python -m twr run build --workspace ./app\n"
            "  python -m twr engine --workspace ./app\n\n"
            "Press Ctrl-C during fetch to cancel the in-flight request."
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to a taskwire TOML settings file.\n"
            "Tables: [request] and [tasks]."
        ),
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output to stderr.",
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    fetch_cmd = sub.add_parser(
        "fetch",
        help="Issue one cancellable HTTP request.",
        description=(
            "Send one request and print status, headers and body.\n"
            "User-Agent, Accept-Encoding and Content-Length headers are never forwarded."
        ),
        epilog=(
            "Examples:\n"
            "  python -m twr fetch https://example.com\n"
            "  python -m twr fetch https://example.com/api -X POST --data '{}' -H 'Content-Type: application/json'\n"
            "  python -m twr fetch https://example.com/file.bin --output file.bin"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    fetch_cmd.add_argument("url")
    fetch_cmd.add_argument("-X", "--method", default="GET", help="HTTP method (default: GET).")
    fetch_cmd.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Request header; repeat for several headers.",
    )
    fetch_cmd.add_argument("--data", help="Request body sent as UTF-8 bytes.")
    fetch_cmd.add_argument("--timeout-ms", type=int, help="Overall request deadline in milliseconds.")
    fetch_cmd.add_argument("--user", help="Basic auth user name.")
    fetch_cmd.add_argument("--password", help="Basic auth password.")
    fetch_cmd.add_argument("--proxy-authorization", help="Value sent as Proxy-Authorization.")
    fetch_cmd.add_argument("--trace", action="store_true", help="Print request lifecycle notes.")
    fetch_cmd.add_argument("--output", help="Write the body to this file instead of printing it.")

    run_cmd = sub.add_parser(
        "run",
        help="Run a workspace task by label.",
        description=(
            "Resolve tasks.toml in each workspace folder and run one task\n"
            "in the terminal task engine, printing its lifecycle events."
        ),
        epilog=(
            "Examples:\n"
            "  python -m twr run build\n"
            "  python -m twr run test --workspace ./api --workspace ./web"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("label")
    run_cmd.add_argument(
        "--workspace",
        action="append",
        help="Workspace folder; repeat for multi-root workspaces (default: current directory).",
    )

    engine_cmd = sub.add_parser(
        "engine",
        help="Show the execution mode and its capabilities.",
        description="Show the execution mode declared by the workspace and whether it is supported.",
        formatter_class=_HELP_FORMATTER,
    )
    engine_cmd.add_argument(
        "--workspace",
        action="append",
        help="Workspace folder; repeat for multi-root workspaces (default: current directory).",
    )

    return parser


def configure_logging(verbose: bool) -> None:
    """Route library logs to stderr through Rich when verbose output is requested.

    Example:
        ```python
        configure_logging(True)
        ```
    """
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=_ERR_CONSOLE, show_path=False)],
        force=True,
    )


def load_settings(args: argparse.Namespace) -> RuntimeSettings:
    """Return runtime settings from --config, or bundled defaults.

    Example:
        ```python
        settings = load_settings(args)
        ```
    """
    if args.config:
        return RuntimeSettings.from_file(args.config)
    return RuntimeSettings()


def parse_header_args(values: Sequence[str]) -> dict[str, str]:
    """Parse repeated `Name: value` arguments into a header mapping.

    Example:
        ```python
        headers = parse_header_args(["X-Trace: abc"])
        ```
    """
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Header must look like 'Name: value': {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def build_options(args: argparse.Namespace) -> RequestOptions:
    """Create request options from fetch arguments.

    Example:
        ```python
        options = build_options(args)
        ```
    """
    return RequestOptions(
        url=args.url,
        method=args.method.upper(),
        data=args.data.encode("utf-8") if args.data is not None else None,
        headers=parse_header_args(args.header),
        user=args.user,
        password=args.password,
        proxy_authorization=args.proxy_authorization,
        timeout=args.timeout_ms,
    )


def _print_trace(message: str) -> None:
    """Print one request lifecycle note to stderr.

    Example:
        ```python
        _print_trace("load start")
        ```
    """
    _ERR_CONSOLE.print(f"[dim]{message}[/dim]", markup=True, highlight=False)


async def _fetch(
    options: RequestOptions,
    settings: RuntimeSettings,
    trace: bool,
) -> tuple[RequestResult, bytes]:
    """Run one request with Ctrl-C wired to its cancellation token.

    Example:
        ```python
        result, body = asyncio.run(_fetch(options, RuntimeSettings(), trace=False))
        ```
    """
    source = CancellationTokenSource()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, source.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        handler_installed = False
    try:
        result = await request(
            options,
            source.token,
            _print_trace if trace else None,
            settings=settings,
        )
        body = await result.stream.read()
        return result, body
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
        source.dispose()


def _print_response(result: RequestResult, body: bytes, output: str | None) -> None:
    """Render status, headers and body of a completed request.

    Example:
        ```python
        _print_response(result, b"ok", None)
        ```
    """
    style = "bold green" if 200 <= result.status_code < 400 else "bold yellow"
    _CONSOLE.print(Panel.fit(f"Status {result.status_code}", style=style))
    table = Table(title="Response Headers")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    for name, value in result.headers.items():
        table.add_row(name, value)
    _CONSOLE.print(table)
    if output:
        Path(output).write_bytes(body)
        _CONSOLE.print(Panel.fit(f"Wrote {len(body)} bytes to {output}", style="bold green"))
        return
    _CONSOLE.print(body.decode("utf-8", errors="replace"), markup=False, highlight=False)


def _workspace_folders(paths: Sequence[str] | None) -> list[WorkspaceFolder]:
    """Turn --workspace arguments into named workspace folders.

    Example:
        ```python
        folders = _workspace_folders(["./app"])
        ```
    """
    folders: list[WorkspaceFolder] = []
    for raw in paths or ["."]:
        path = Path(raw).expanduser().resolve()
        folders.append(WorkspaceFolder(name=path.name or str(path), path=path))
    return folders


def build_selector(
    configurations: dict[str, WorkspaceFolderConfiguration],
    settings: RuntimeSettings,
) -> EngineSelector:
    """Create the engine selector for the resolved workspace.

    Example:
        ```python
        selector = build_selector(configs, RuntimeSettings())
        ```
    """
    return EngineSelector(
        resolve_execution_mode(configurations),
        configuration_provider=lambda: configurations,
        engine_factory=partial(TerminalEngine, shell=settings.shell),
    )


def _print_task_event(event: Any) -> None:
    """Render one relayed state-change event.

    Example:
        ```python
        _print_task_event(TaskEvent(TaskEventKind.START, "build", "Task - build"))
        ```
    """
    if not isinstance(event, TaskEvent):
        _CONSOLE.print(f"[dim]{event!r}[/dim]")
        return
    suffix = f" (exit {event.exit_code})" if event.exit_code is not None else ""
    _CONSOLE.print(f"[cyan]{event.terminal_id}[/cyan] {event.kind.value}{suffix}", highlight=False)


def _run_fetch(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    """Handle the fetch command.

    Example:
        ```python
        code = _run_fetch(args, RuntimeSettings())
        ```
    """
    options = build_options(args)
    try:
        result, body = asyncio.run(_fetch(options, settings, args.trace))
    except RequestCancelledError:
        _CONSOLE.print(Panel.fit("Request cancelled", style="bold yellow"))
        return EXIT_CANCELLED
    except RequestError as exc:
        _CONSOLE.print(Panel.fit(f"[bold red]{type(exc).__name__}:[/bold red] {exc}", border_style="red"))
        return 1
    _print_response(result, body, args.output)
    return 0


def _run_task(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    """Handle the run command.

    Example:
        ```python
        code = _run_task(args, RuntimeSettings())
        ```
    """
    configurations = resolve_workspace_configuration(_workspace_folders(args.workspace), settings.tasks_file)
    selector = build_selector(configurations, settings)
    config, task = find_task(configurations, args.label)
    selector.on_state_change(_print_task_event)
    outcome = selector.run_task(task, folder=config.folder.name)
    if outcome.stdout:
        _CONSOLE.print(outcome.stdout, markup=False, highlight=False, end="")
    if outcome.stderr:
        _ERR_CONSOLE.print(outcome.stderr, markup=False, highlight=False, end="")
    if outcome.error:
        _CONSOLE.print(Panel.fit(outcome.error, style="bold red"))
    return outcome.returncode


def _show_engine(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    """Handle the engine command.

    Example:
        ```python
        code = _show_engine(args, RuntimeSettings())
        ```
    """
    configurations = resolve_workspace_configuration(_workspace_folders(args.workspace), settings.tasks_file)
    selector = build_selector(configurations, settings)
    caps = capabilities_for_mode(selector.mode)
    table = Table(title="Task Engine")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("mode", selector.mode.value)
    table.add_row("compatible", str(selector.version_and_engine_compatible()))
    table.add_row("supported", str(caps.supported))
    table.add_row("reconnect", str(caps.supports_reconnect))
    table.add_row("timeout", str(caps.supports_timeout))
    table.add_row("folders", ", ".join(configurations) or "-")
    _CONSOLE.print(table)
    return 0 if caps.supported else 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `twr` CLI command handler.

    Example:
        ```python
        code = main(["fetch", "https://example.com"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(args.verbose)

    try:
        settings = load_settings(args)
        if args.command == "fetch":
            return _run_fetch(args, settings)
        if args.command == "run":
            return _run_task(args, settings)
        if args.command == "engine":
            return _show_engine(args, settings)
    except (ConfigError, ValueError) as exc:
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {exc}", border_style="red"))
        return 1
    except UnsupportedEngineError as exc:
        _CONSOLE.print(Panel.fit(str(exc), style="bold red"))
        return 1

    parser.error("Unhandled command")
    return 2
