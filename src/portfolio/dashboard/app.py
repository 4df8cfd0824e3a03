"""FastAPI dashboard application factory with Jinja2 templates."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from portfolio.dashboard.routes import api, pages

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _format_money(value: Any, places: int = 2) -> str:
    """Format a decimal string with thousands separators (e.g. '1,234.50')."""
    if value is None:
        return "-"
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    return f"{amount:,.{places}f}"


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application with templates and routes. Route
        handlers expect ``service``, ``aggregator`` and ``vs_currency`` on
        ``app.state``.
    """
    app = FastAPI(
        title="Crypto Portfolio Tracker",
        lifespan=lifespan,
    )

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["money"] = _format_money
    app.state.templates = templates

    app.include_router(pages.router)
    app.include_router(api.router, prefix="/api")

    return app
