"""
PanelDeck - FastAPI Application
=================================
Creates and configures the FastAPI web application that hosts the live
server console for the dashboard.

Responsibilities:
    - Create the FastAPI app instance with CORS and metadata
    - Initialize the config manager, diagnostic logger and view manager
    - Register API routes and the console websocket endpoint
    - Close every console session on shutdown

Architecture:
    API endpoints are prefixed with /api/.
    Console views connect to /ws/console/{server_id}. The websocket lives
    exactly as long as the view: its session is closed in a finally block
    however the view ends.
"""

import asyncio
import os
from contextlib import asynccontextmanager

import httpx

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from console.logger import ConsoleLogger
from console.transport import Connector
from server.config import ConfigManager
from server.manager import ConsoleManager
from server.routes import create_router
from server.websocket import ConsoleViewChannel, handle_view_message


def create_app(
    project_dir: str | None = None,
    connector: Connector | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Application factory: create and configure the FastAPI instance.

    Args:
        project_dir: Root directory of the PanelDeck project.
                     If None, auto-detected from this file's location.
        connector:   Websocket connector override for console sessions.
        http_transport: httpx transport for panel requests.

    Returns:
        Configured FastAPI application ready to run with uvicorn.
    """
    # -- Resolve directories ---------------------------------------------------
    if project_dir is None:
        project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    # -- Initialize managers ---------------------------------------------------
    config_manager = ConfigManager(project_dir)
    config = config_manager.load()
    logger = ConsoleLogger(config_manager.resolve_path(config["console"]["log_dir"]))
    console_manager = ConsoleManager(
        config_manager, logger, connector=connector, http_transport=http_transport,
    )

    if "_config_error" in config:
        logger.warn(f"config.yaml could not be read, using defaults: {config['_config_error']}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await console_manager.shutdown()

    # -- Create FastAPI app ----------------------------------------------------
    app = FastAPI(
        title="PanelDeck",
        description="Live server console for the PanelDeck game-server dashboard",
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # -- CORS middleware -------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Store managers on app state -------------------------------------------
    app.state.config_manager = config_manager
    app.state.console_manager = console_manager
    app.state.logger = logger

    # -- Register API routes ---------------------------------------------------
    app.include_router(create_router(
        config_manager=config_manager,
        console_manager=console_manager,
    ))

    # -- Console websocket endpoint --------------------------------------------
    @app.websocket("/ws/console/{server_id}")
    async def console_endpoint(websocket: WebSocket, server_id: str):
        """
        One browser console view.

        Sends the scrollback snapshot, connects the console, then streams
        notifications while applying commands sent by the browser.
        """
        await websocket.accept()
        channel = ConsoleViewChannel(websocket)
        view_id, session = console_manager.open_view(server_id)
        unsubscribe = session.subscribe(channel.push)
        pump = asyncio.create_task(channel.pump())

        try:
            channel.push_message({
                "type": "snapshot",
                "data": {
                    "view_id": view_id,
                    "status": session.status,
                    "lines": [line.to_dict() for line in session.snapshot()],
                },
            })
            await session.start()
            while True:
                raw = await websocket.receive_text()
                await handle_view_message(session, channel, raw)
        except WebSocketDisconnect:
            pass
        finally:
            unsubscribe()
            await console_manager.close_view(view_id)
            channel.stop()
            await asyncio.wait([pump])

    @app.get("/")
    async def index():
        return {"name": "PanelDeck", "console": "/ws/console/{server_id}", "docs": "/docs"}

    return app
