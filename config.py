"""Server configuration parsed from the command line with argparse."""
from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Sequence

from juggler import Juggler

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


@dataclass
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    throw_interval: float = Juggler.THROW_INTERVAL
    flight_tick: float = Juggler.FLIGHT_TICK

    def validate(self) -> None:
        if self.port <= 0 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")
        if self.throw_interval <= 0 or self.flight_tick <= 0:
            raise ValueError("tick intervals must be positive")

    def __str__(self) -> str:
        return f"Port: {self.port}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Juggling simulator with a web control panel",
        epilog="Juggling settings (number of balls, time) are set via the web interface.",
    )
    parser.add_argument("port", type=int, nargs="?", default=DEFAULT_PORT,
                        help=f"Port for the web server (default {DEFAULT_PORT})")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Interface to bind")
    parser.add_argument("--throw-interval", type=float, default=Juggler.THROW_INTERVAL,
                        help="Seconds between scheduler ticks")
    parser.add_argument("--flight-tick", type=float, default=Juggler.FLIGHT_TICK,
                        help="Wall-clock seconds per simulated flight second")
    return parser


def load_config(argv: Sequence[str] | None = None) -> ServerConfig:
    """Parse argv into a validated ServerConfig.

    argparse exits with status 2 on an unparseable port; range errors
    surface as ValueError from validate().
    """
    args = build_parser().parse_args(argv)
    cfg = ServerConfig(
        host=args.host,
        port=args.port,
        throw_interval=args.throw_interval,
        flight_tick=args.flight_tick,
    )
    cfg.validate()
    return cfg
