# gateway/cli/main.py
from __future__ import annotations

import logging
import sys
from typing import Optional

from gateway.app.config import load_config
from gateway.app.runner import start_run
from gateway.cli.args import build_parser
from gateway.core.errors import GatewayError


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

VERBOSITY_LEVELS = {
    1: logging.CRITICAL,
    2: logging.ERROR,
    3: logging.WARNING,
    4: logging.INFO,
    5: logging.DEBUG,
}


def configure_logging(verbosity: int, log_file: Optional[str] = None) -> None:
    """Route root logging to stderr or to `log_file` (truncated)."""
    level = VERBOSITY_LEVELS.get(int(verbosity), logging.INFO)

    handler: logging.Handler
    open_error: Optional[OSError] = None
    if log_file:
        try:
            handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        except OSError as e:
            open_error = e
            handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    if open_error is not None:
        logging.getLogger(__name__).error("LOG_FILE_OPEN_FAILED path=%s err=%s", log_file, open_error)


def _print_error(e: GatewayError) -> None:
    print(f"ERROR: {e.message}")
    if e.hint:
        print(f"Hint: {e.hint}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except GatewayError as e:
        _print_error(e)
        return -1

    if args.help:
        parser.print_help()
        return 0

    configure_logging(args.verbosity, args.log_file)
    log = logging.getLogger("gateway")

    try:
        cfg = load_config(args.config)
        app = start_run(cfg)
        app.supervisor.run()
    except GatewayError as e:
        log.critical("GATEWAY_EXIT code=%s err=%s", e.code, e.message)
        _print_error(e)
        return -1
    except KeyboardInterrupt:
        log.info("GATEWAY_INTERRUPTED")
        return 0
    return 0


def run() -> None:
    sys.exit(main())
