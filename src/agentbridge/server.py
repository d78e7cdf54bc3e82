"""FastAPI app exposing chat windows over WebSocket."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from agentbridge.app import AgentBridgeApp
from agentbridge.logging import get_logger
from agentbridge.project import Project
from agentbridge.ui.surface import WebSocketSurface

log = get_logger("server")


class SelectionPayload(BaseModel):
    project: str = Field(min_length=1)
    text: str


def get_static_dir() -> Path:
    return Path(__file__).parent / "static"


def create_app(agent_app: AgentBridgeApp | None = None) -> FastAPI:
    """Create the FastAPI application.

    ``agent_app`` is closed when the server shuts down; one is created from
    the loaded config if not given.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.agent_app = agent_app or AgentBridgeApp()
        app.state.start_time = time.time()
        try:
            yield
        finally:
            await app.state.agent_app.aclose()

    app = FastAPI(
        title="agentbridge",
        description="Chat UI bridge to AI agent backends",
        version="0.1.0",
        lifespan=lifespan,
    )
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    async def index() -> FileResponse:
        index_path = get_static_dir() / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="UI not found")
        return FileResponse(index_path)

    @app.get("/api/status")
    async def api_status() -> dict[str, Any]:
        agent_app: AgentBridgeApp = app.state.agent_app
        return {
            "status": "ok",
            "uptime": time.time() - app.state.start_time,
            "windows": [window.project.root for window in agent_app.registry],
            "backends": sorted(agent_app.bridges),
        }

    @app.get("/api/sessions")
    async def api_sessions(project: str = Query(min_length=1)) -> list[dict[str, Any]]:
        agent_app: AgentBridgeApp = app.state.agent_app
        root = Project.from_path(project).root
        summaries = await agent_app.history.list_sessions(root)
        return [summary.to_dict() for summary in summaries]

    @app.post("/api/windows/selection")
    async def api_selection(payload: SelectionPayload) -> dict[str, Any]:
        agent_app: AgentBridgeApp = app.state.agent_app
        key = Project.from_path(payload.project).key
        if not await agent_app.registry.add_selection(key, payload.text):
            raise HTTPException(status_code=404, detail=f"No window for {payload.project}")
        return {"status": "ok"}

    @app.delete("/api/windows")
    async def api_close_window(project: str = Query(min_length=1)) -> dict[str, Any]:
        agent_app: AgentBridgeApp = app.state.agent_app
        if not await agent_app.close_window(project):
            raise HTTPException(status_code=404, detail=f"No window for {project}")
        return {"status": "closed"}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket, project: str = Query(...)) -> None:
        agent_app: AgentBridgeApp = app.state.agent_app
        surface = WebSocketSurface(websocket)
        window = None
        try:
            await surface.start()
            window = await agent_app.open_window(project)
            window.attach_surface(surface)
            log.debug("UI connected for %s", window.project.root)
            while True:
                try:
                    data = await websocket.receive_text()
                except WebSocketDisconnect:
                    break
                window.handle_ui_message(data)
        finally:
            if window is not None:
                window.detach_surface(surface)
                log.debug("UI disconnected from %s", window.project.root)
            await surface.aclose()


def serve(host: str, port: int, agent_app: AgentBridgeApp | None = None) -> None:
    """Run the server in the foreground."""
    import uvicorn

    log.info("Serving on http://%s:%d", host, port)
    uvicorn.run(create_app(agent_app), host=host, port=port, log_level="warning", access_log=False)
