"""Public landing page with the subscription form."""
from fastapi import APIRouter, Depends, Request

from app.api.templating import render_page
from app.core.config import Settings, get_app_settings

router = APIRouter(tags=["home"])


@router.get("/")
async def home(request: Request, settings: Settings = Depends(get_app_settings)):
    return render_page(request, "home.html", settings.hmac_secret)
