"""Page routes serving the dashboard HTML template."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from portfolio.exceptions import UpstreamError

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def dashboard_index(request: Request) -> HTMLResponse:
    """Main page: ledger positions with P&L and portfolio totals.

    A price API outage still renders the page, with positions pending.
    """
    templates: Jinja2Templates = request.app.state.templates
    service = request.app.state.service
    aggregator = request.app.state.aggregator

    error = None
    stale = False
    try:
        report = await service.reconcile()
        pairs = report.pairs
        stale = report.stale
    except UpstreamError as e:
        log.error("dashboard_reconcile_failed", error=e.message)
        error = e.message
        pairs = [(t, None) for t in service.ledger.list()]

    context = {
        "positions": aggregator.positions_view(pairs),
        "summary": aggregator.summary(pairs),
        "vs_currency": request.app.state.vs_currency,
        "stale": stale,
        "error": error,
    }
    return templates.TemplateResponse(request, "index.html", context)
