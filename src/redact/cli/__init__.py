"""Redact CLI — run a server or list its routes.

Entry point registered as ``redact`` in ``pyproject.toml``::

    [project.scripts]
    redact = "redact.cli:main"

Subcommand modules are imported only when their command runs.
"""

import argparse
import sys

_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def _build_parser() -> argparse.ArgumentParser:
    from redact import __version__

    parser = argparse.ArgumentParser(
        prog="redact",
        description="Serve a redact app, or print the routes it registers.",
    )
    parser.add_argument("--version", action="version", version=f"redact {__version__}")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    run = commands.add_parser("run", help="Serve an app until interrupted")
    run.add_argument("app", help="module:attribute of the App or its factory (e.g. server:app)")
    run.add_argument("--host", help="Interface to bind (default: AppConfig.host)")
    run.add_argument("--port", type=int, help="Port to bind (default: AppConfig.port)")
    run.add_argument("--log-level", choices=_LOG_LEVELS, help="Default: AppConfig.log_level")

    routes = commands.add_parser("routes", help="Print the HTTP and socket route table")
    routes.add_argument("app", help="module:attribute of the App or its factory")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``redact`` command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    match args.command:
        case "run":
            from redact.cli._run import run_server

            run_server(args)
        case "routes":
            from redact.cli._routes import run_routes

            run_routes(args)
        case _:
            parser.print_help()
            sys.exit(0)
