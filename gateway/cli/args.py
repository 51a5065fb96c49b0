# gateway/cli/args.py
from __future__ import annotations

import argparse
from typing import NoReturn, Optional

from gateway.core.errors import ConfigError


PROG = "flow-button-gateway"

VERBOSITY_CHOICES = (1, 2, 3, 4, 5)
DEFAULT_VERBOSITY = 4


class GatewayArgumentParser(argparse.ArgumentParser):
    """Raises ConfigError instead of exiting the interpreter."""

    def error(self, message: str) -> NoReturn:
        raise ConfigError(
            f"Invalid arguments: {message}",
            hint=f"Run '{self.prog} -h' for usage.",
        )


def build_parser() -> GatewayArgumentParser:
    parser = GatewayArgumentParser(
        prog=PROG,
        add_help=False,
        description="Mirror a button counter onto an LED and notify the device owner.",
    )
    parser.add_argument(
        "-l", "--logFile",
        dest="log_file",
        default=None,
        metavar="FILE",
        help="Write log output to FILE (truncated on start).",
    )
    parser.add_argument(
        "-v", "--verbose",
        dest="verbosity",
        type=int,
        choices=VERBOSITY_CHOICES,
        default=DEFAULT_VERBOSITY,
        metavar="LEVEL",
        help="Debug level 1..5: fatal, error, warning, info, debug (default: 4).",
    )
    parser.add_argument(
        "-c", "--config",
        dest="config",
        default=None,
        metavar="FILE",
        help="YAML file overriding the built-in settings.",
    )
    parser.add_argument(
        "-h", "--help",
        dest="help",
        action="store_true",
        help="Show this help and exit.",
    )
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
