"""
Juggler Web Server: Layer 3 (FastAPI)

Serves the browser control panel and a small JSON API on top of
JugglerController. The scheduler and flight timers run as asyncio tasks
on this server's event loop; /api/stats is a sync handler so that
pollers are served from the threadpool and read through the juggler's
RWLock.
"""

import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from config import ServerConfig, load_config
from controller import InvalidParameters, JugglerController
from juggler import Juggler

STATIC_DIR = Path(__file__).resolve().parent / "static"


class StartRequest(BaseModel):
    total_balls: int
    time_minutes: int


# ── App factory ─────────────────────────────────────────────────────────────

def create_app(ctrl: Optional[JugglerController] = None) -> FastAPI:
    """Build the app around one controller (and its single Juggler)."""
    if ctrl is None:
        ctrl = JugglerController()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await ctrl.juggler.shutdown()

    app = FastAPI(lifespan=lifespan)
    app.state.ctrl = ctrl

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request body"})

    # ── API ─────────────────────────────────────────────────────────────────

    @app.get("/api/stats")
    def stats():
        return ctrl.query_snapshot()

    @app.post("/api/start")
    async def start(req: StartRequest):
        try:
            msg = ctrl.configure_and_start(req.total_balls, req.time_minutes)
        except InvalidParameters:
            raise HTTPException(status_code=400, detail="Balls and time must be positive")
        return {"status": "started", "message": msg}

    @app.post("/api/stop")
    async def stop():
        msg = ctrl.request_stop()
        return {"status": "stopped", "message": msg}

    # ── Static files + root route ───────────────────────────────────────────

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/")
    async def root():
        return FileResponse(STATIC_DIR / "index.html")

    return app


def build_app(cfg: ServerConfig) -> FastAPI:
    juggler = Juggler(throw_interval=cfg.throw_interval, flight_tick=cfg.flight_tick)
    return create_app(JugglerController(juggler))


app = create_app()


# ── Run with uvicorn ────────────────────────────────────────────────────────

def main(argv=None) -> int:
    try:
        cfg = load_config(argv)
    except ValueError as exc:
        print(f"[SERVER] Configuration error: {exc}", file=sys.stderr)
        return 1

    import uvicorn

    print("[SERVER] Juggler is ready!")
    print(f"[SERVER] {cfg}. Web interface: http://localhost:{cfg.port}")
    print("[SERVER] Use the web interface to configure and control juggling.")
    uvicorn.run(build_app(cfg), host=cfg.host, port=cfg.port, reload=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
