"""``redact run`` — start the server for an app import string."""

import argparse
import logging
import sys

from redact.cli._resolve import resolve_app


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app``, configure logging, and serve until interrupted.

    CLI flags override the app's config for host, port, and log level.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    level = (args.log_level or app.config.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    app.listen(args.port, host=args.host)
