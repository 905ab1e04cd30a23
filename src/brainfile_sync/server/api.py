"""FastAPI server exposing one live board session."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from ..clock import AsyncioClock
from ..commands import COMMANDS
from ..config import SyncSettings
from ..constants import ERROR_TYPE_IO, ERROR_TYPE_PARSE, ERROR_TYPE_UNEXPECTED, ERROR_TYPE_VALIDATION
from ..coordinator import CommandOutcome
from ..io_utils import BoardIOError
from ..session import BoardSession
from ..state_store import KeyValueStore
from .models import BoardStateResponse, CommandRequest, LintResponse, NoticeInfo
from .ws_hub import ViewHub

_STATUS_BY_ERROR_TYPE = {
    ERROR_TYPE_VALIDATION: 400,
    ERROR_TYPE_PARSE: 409,
    ERROR_TYPE_IO: 503,
    ERROR_TYPE_UNEXPECTED: 500,
}


def _outcome_response(outcome: CommandOutcome) -> JSONResponse:
    status = 200 if outcome.success else _STATUS_BY_ERROR_TYPE.get(outcome.error_type or "", 400)
    return JSONResponse(status_code=status, content=outcome.to_dict())


def create_app(
    board_path: Path,
    settings: Optional[SyncSettings] = None,
    state: Optional[KeyValueStore] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The board session starts lazily on the first request so its timers bind
    to the serving event loop.

    Args:
        board_path: Board file to serve.
        settings: Session tunables; defaults apply when omitted.
        state: Key-value store for command state (e.g. last used agent).
        enable_cors: Whether to enable CORS.

    Returns:
        Configured FastAPI app.
    """
    hub = ViewHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await hub.drain()
        session = app.state.session
        if session is not None:
            session.dispose()
            app.state.session = None

    app = FastAPI(
        title="Brainfile Sync",
        description="Live view and command API for a brainfile board",
        version="0.1.0",
        lifespan=lifespan,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.board_path = Path(board_path)
    app.state.hub = hub
    app.state.session = None

    def _session() -> BoardSession:
        session: Optional[BoardSession] = app.state.session
        if session is None:
            session = BoardSession(
                app.state.board_path,
                AsyncioClock(),
                hub.publish_sync,
                settings=settings,
                state=state,
            )
            session.start()
            app.state.session = session
        return session

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {"name": "Brainfile Sync", "board": str(app.state.board_path), "status": "running"}

    @app.get("/api/board")
    async def get_board() -> BoardStateResponse:
        cache = _session().coordinator.cache
        board = cache.board
        return BoardStateResponse(
            path=str(app.state.board_path),
            state=cache.state.value,
            failures=cache.failures,
            board=board.to_dict() if board else None,
        )

    @app.get("/api/lint")
    async def get_lint() -> LintResponse:
        try:
            lint = _session().coordinator.lint()
        except BoardIOError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return LintResponse(**lint.to_dict())

    @app.get("/api/notices")
    async def get_notices() -> list[NoticeInfo]:
        return [NoticeInfo(**n.to_dict()) for n in _session().notifications.notices]

    @app.post("/api/commands/{name}")
    async def run_command(name: str, request: CommandRequest) -> JSONResponse:
        if name not in COMMANDS:
            raise HTTPException(status_code=404, detail=f"Unknown command: {name}")
        outcome = _session().execute(name, request.payload, actor=request.actor)
        return _outcome_response(outcome)

    @app.post("/api/fix/preview")
    async def preview_fix() -> LintResponse:
        try:
            lint = _session().coordinator.preview_fix()
        except BoardIOError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return LintResponse(**lint.to_dict())

    @app.post("/api/fix/apply")
    async def apply_fix() -> JSONResponse:
        return _outcome_response(_session().coordinator.apply_fix())

    async def _on_view_message(websocket: WebSocket, msg: dict[str, Any]) -> None:
        session = _session()
        kind = msg.get("type")
        if kind == "ready":
            session.mark_view_ready()
        elif kind == "command":
            name = str(msg.get("name") or "")
            payload = msg.get("payload") if isinstance(msg.get("payload"), dict) else {}
            outcome = session.execute(name, payload, actor=str(msg.get("actor") or "user"))
            await hub.send_to(websocket, {"type": "commandResult", "name": name, **outcome.to_dict()})
        else:
            logger.debug("Ignoring view message of type {}", kind)

    @app.websocket("/ws")
    async def view_socket(websocket: WebSocket) -> None:
        _session()
        await hub.handle_connection(websocket, _on_view_message)

    return app
