"""
Controller Tests: parameter validation and snapshot rendering.

InvalidParameters must be raised before the juggler is touched, and the
snapshot must be plain JSON-ready data.
"""

import sys
import os
import asyncio
import json
import threading

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from controller import JugglerController, InvalidParameters
from juggler import Juggler


def make_controller() -> JugglerController:
    return JugglerController(Juggler(throw_interval=0.01, flight_tick=0.01))


class TestValidation:
    """Bad parameters never reach the juggler."""

    @pytest.mark.parametrize("balls, minutes", [
        (0, 2), (-1, 2), (3, 0), (3, -1), (0, 0),
        (2.5, 2), (3, 1.5), (True, 2), ("3", 2), (None, 2),
    ])
    def test_rejects_bad_parameters(self, balls, minutes):
        ctrl = make_controller()
        with pytest.raises(InvalidParameters):
            ctrl.configure_and_start(balls, minutes)
        assert ctrl.juggler.generation == 0
        assert ctrl.juggler.is_finished()

    def test_invalid_parameters_is_value_error(self):
        assert issubclass(InvalidParameters, ValueError)


class TestStartStop:

    def test_start_resets_and_launches_scheduler(self):
        async def scenario():
            ctrl = make_controller()
            msg = ctrl.configure_and_start(3, 2)
            running = ctrl.juggler.is_running()
            tasks = ctrl.juggler.pending_tasks()
            await ctrl.juggler.shutdown()
            return msg, running, tasks, ctrl.query_snapshot()

        msg, running, tasks, snap = asyncio.run(scenario())
        assert msg == "Juggling started with 3 balls for 2 minutes"
        assert running
        assert tasks == 1
        assert snap["total_balls"] == 3
        assert snap["total_minutes"] == 2
        assert len(snap["balls"]) == 3

    def test_stop_always_succeeds(self):
        ctrl = make_controller()
        assert ctrl.request_stop() == "Juggling stopped"
        assert ctrl.request_stop() == "Juggling stopped"
        assert ctrl.juggler.is_finished()

    def test_stop_after_start_halts_running(self):
        async def scenario():
            ctrl = make_controller()
            ctrl.configure_and_start(2, 1)
            ctrl.request_stop()
            snap = ctrl.query_snapshot()
            await ctrl.juggler.shutdown()
            return snap

        snap = asyncio.run(scenario())
        assert not snap["is_running"]
        assert snap["is_finished"]
        assert snap["elapsed_seconds"] == 0


class TestSnapshot:

    def test_fresh_snapshot(self):
        snap = make_controller().query_snapshot()
        assert snap == {
            "in_hand": 0,
            "in_air": 0,
            "balls": [],
            "elapsed_seconds": 0,
            "is_finished": True,
            "is_running": False,
            "total_balls": 0,
            "total_minutes": 0,
        }

    def test_snapshot_is_json_serialisable(self):
        async def scenario():
            ctrl = make_controller()
            ctrl.juggler.reset(3, 1)
            ctrl.juggler.throw_ball()
            return ctrl.query_snapshot()

        snap = asyncio.run(scenario())
        decoded = json.loads(json.dumps(snap))
        assert decoded["in_hand"] == 2
        assert decoded["in_air"] == 1
        statuses = sorted(b["status"] for b in decoded["balls"])
        assert statuses == ["in_flight", "in_hand", "in_hand"]
        assert set(decoded["balls"][0]) == {"id", "status", "flight_duration", "elapsed"}

    def test_elapsed_seconds_zero_when_not_running(self):
        ctrl = make_controller()
        ctrl.juggler.reset(2, 0)
        assert ctrl.query_snapshot()["elapsed_seconds"] == 0

    def test_snapshot_never_mixes_generations(self):
        """Resets between 3- and 5-ball generations while a thread polls."""
        ctrl = make_controller()
        ctrl.juggler.reset(3, 1)
        done = threading.Event()
        torn = []

        def poll():
            while not done.is_set():
                snap = ctrl.query_snapshot()
                n = len(snap["balls"])
                if n != snap["total_balls"] or snap["in_hand"] + snap["in_air"] != n:
                    torn.append((snap["total_balls"], n))
                if snap["is_running"] and snap["is_finished"]:
                    torn.append("running and finished")

        reader = threading.Thread(target=poll)
        reader.start()
        try:
            for i in range(5000):
                ctrl.juggler.reset(5 if i % 2 else 3, 1)
                if i % 7 == 0:
                    ctrl.juggler.stop()
        finally:
            done.set()
            reader.join()

        assert not torn
