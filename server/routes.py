"""
PanelDeck - REST API Routes
=============================
HTTP endpoints for console views opened in the dashboard.

Route groups:
    /api/health                          - liveness and panel configuration state
    /api/console/sessions                - list open console views
    /api/console/sessions/{id}           - status and scrollback of one view
    /api/console/sessions/{id}/command   - send a console command
    /api/console/sessions/{id}/power     - send a power action
    /api/console/sessions/{id}/reconnect - reconnect a disconnected view

Views themselves are created by the /ws/console/{server_id} websocket
endpoint (see main.py); these routes act on views that are already open.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from console import ConsoleSession, InvalidStateError, NotConnectedError, TransportError
from server.config import ConfigManager
from server.manager import ConsoleManager


# =============================================================================
# Request/Response Models (Pydantic)
# =============================================================================

class CommandRequest(BaseModel):
    """Operator console command."""
    text: str = Field(..., description="Command text, e.g. 'say hi'")

class PowerRequest(BaseModel):
    """Power action for the server process."""
    action: str = Field(..., description="One of start, stop, restart, kill")

class ConnectionStatus(BaseModel):
    """Connection status of one console view."""
    server_id: str
    state: str
    transport_state: str
    message: str
    can_reconnect: bool

class ViewSummary(ConnectionStatus):
    view_id: str

class ConsoleSnapshot(BaseModel):
    """Status plus retained scrollback of one view."""
    status: ConnectionStatus
    lines: list[dict]

class HealthResponse(BaseModel):
    status: str = "ok"
    panel_configured: bool
    open_views: int


# =============================================================================
# Router Factory
# =============================================================================

def create_router(
    config_manager: ConfigManager,
    console_manager: ConsoleManager,
) -> APIRouter:
    """
    Create the API router.

    Args:
        config_manager:  Reads configuration files.
        console_manager: Registry of open console views.

    Returns:
        Configured APIRouter with all endpoints registered.
    """
    router = APIRouter(prefix="/api")

    def _view(view_id: str) -> ConsoleSession:
        try:
            return console_manager.get(view_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Console view not found")

    @router.get("/health", response_model=HealthResponse)
    async def health():
        config = config_manager.load()
        return HealthResponse(
            panel_configured=bool(config["panel"]["url"] and config_manager.get_panel_api_key()),
            open_views=len(console_manager.views),
        )

    @router.get("/console/sessions", response_model=list[ViewSummary])
    async def list_sessions():
        return console_manager.list_views()

    @router.get("/console/sessions/{view_id}", response_model=ConsoleSnapshot)
    async def get_session(view_id: str):
        session = _view(view_id)
        return ConsoleSnapshot(
            status=ConnectionStatus(**session.status),
            lines=[line.to_dict() for line in session.snapshot()],
        )

    @router.post("/console/sessions/{view_id}/command")
    async def send_command(view_id: str, req: CommandRequest):
        """
        Send a command on the view's current session.
        Returns the echoed line, or null for blank input.
        """
        session = _view(view_id)
        try:
            line = await session.send_command(req.text)
        except NotConnectedError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except TransportError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"line": line.to_dict() if line else None}

    @router.post("/console/sessions/{view_id}/power")
    async def set_power(view_id: str, req: PowerRequest):
        session = _view(view_id)
        try:
            line = await session.set_power(req.action)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NotConnectedError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except TransportError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"line": line.to_dict()}

    @router.post("/console/sessions/{view_id}/reconnect", response_model=ConnectionStatus)
    async def reconnect(view_id: str):
        """Reconnect a view that ended in "disconnected"."""
        session = _view(view_id)
        try:
            await session.reconnect()
        except InvalidStateError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return ConnectionStatus(**session.status)

    return router
