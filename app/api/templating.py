"""Jinja2 template environment for the HTML pages."""
from pathlib import Path
from typing import Any, Dict

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from app.core.flash import clear_flash, read_flash

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render_page(
    request: Request,
    template_name: str,
    secret: str,
    context: Dict[str, Any] | None = None,
    status_code: int = 200
) -> Response:
    """Render a page with any pending flash messages, consuming them."""
    page_context = dict(context or {})
    page_context["flash_messages"] = read_flash(request, secret)
    response = templates.TemplateResponse(request, template_name, page_context, status_code=status_code)
    if page_context["flash_messages"]:
        clear_flash(response)
    return response
