"""
JugglerController: Layer 2 (Control Surface)

Translates start/stop commands and stats queries into calls on the
injected Juggler (Layer 1). Layer 3 (server.py) only ever talks to this
class, and never sees Ball objects directly: query_snapshot() renders
plain dicts ready for JSON.

Layer 3 calls:
  ctrl.configure_and_start(n, m): validate, reset, start the scheduler
  ctrl.request_stop()           : halt throwing (always succeeds)
  ctrl.query_snapshot()         : dict view of the current generation
"""

from typing import Optional

from juggler import Juggler, SECONDS_PER_MINUTE


class InvalidParameters(ValueError):
    """Non-positive (or non-integer) ball count or duration."""


def _check_positive(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameters(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidParameters(f"{name} must be positive, got {value}")
    return value


class JugglerController:
    """Layer 2: validation + snapshot rendering around a shared Juggler."""

    def __init__(self, juggler: Optional[Juggler] = None):
        self.juggler = juggler if juggler is not None else Juggler()

    # ──────────────────────────────────────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────────────────────────────────────

    def configure_and_start(self, total_balls: int, duration_minutes: int) -> str:
        """Reset to a new generation and launch its throw scheduler.

        Raises InvalidParameters before touching the juggler. Must run on
        the event loop that will own the scheduler task.
        """
        _check_positive("total_balls", total_balls)
        _check_positive("duration_minutes", duration_minutes)

        self.juggler.reset(total_balls, duration_minutes)
        self.juggler.start()

        msg = f"Juggling started with {total_balls} balls for {duration_minutes} minutes"
        print(f"[CTRL] {msg} (generation {self.juggler.generation})")
        return msg

    def request_stop(self) -> str:
        self.juggler.stop()
        print("[CTRL] Juggling stopped")
        print(self.juggler.format_stats())
        return "Juggling stopped"

    # ──────────────────────────────────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────────────────────────────────

    def query_snapshot(self) -> dict:
        snap = self.juggler.snapshot()

        return {
            "in_hand": snap.in_hand,
            "in_air": snap.in_air,
            "balls": [
                {
                    "id": b.id,
                    "status": b.status.value,
                    "flight_duration": b.flight_duration,
                    "elapsed": b.elapsed,
                }
                for b in snap.balls
            ],
            "elapsed_seconds": int(snap.elapsed) if snap.is_running else 0,
            "is_finished": snap.is_finished,
            "is_running": snap.is_running,
            "total_balls": snap.total_balls,
            "total_minutes": int(snap.target_duration // SECONDS_PER_MINUTE),
        }
