"""
PanelDeck - Server Package
==========================
The web server hosting live console views for the PanelDeck dashboard.

This package provides:
- FastAPI web application
- WebSocket endpoint, one per browser console view
- REST API endpoints acting on open console views
- Configuration loading from config.yaml and .env

Architecture:
    main.py      -> FastAPI app creation, console websocket endpoint
    config.py    -> Read config.yaml and .env files
    routes.py    -> REST API endpoint handlers
    websocket.py -> Ordered message channel to one browser view
    manager.py   -> Console view registry and teardown
"""
