from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from editing_desk.api_routes import router as api_router
from editing_desk.core.logging import configure_logging
from editing_desk.core.settings import Settings
from editing_desk.schemas.analysis import HEADLINE_COUNT_CHOICES
from editing_desk.services.identity import IdentityBootstrap
from editing_desk.services.pipeline import build_pipeline
from editing_desk.services.session import EditingSession

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap: IdentityBootstrap = app.state.identity
    task = asyncio.create_task(bootstrap.start())
    try:
        yield
    finally:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        elif not task.cancelled() and task.exception() is not None:
            logger.error("Identity bootstrap crashed: %r", task.exception())
        await bootstrap.teardown()


def create_app(settings: Settings | None = None, pipeline=None, bootstrap: IdentityBootstrap | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Reporter's AI Editing Desk (Gemini)", lifespan=lifespan)
    app.state.settings = settings
    app.state.session = EditingSession(pipeline or build_pipeline(settings))
    app.state.identity = bootstrap or IdentityBootstrap.from_settings(settings)

    app.mount("/static", StaticFiles(directory=str(PACKAGE_DIR / "static")), name="static")
    app.include_router(api_router)

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        default_count = settings.default_headline_count
        if default_count not in HEADLINE_COUNT_CHOICES:
            default_count = HEADLINE_COUNT_CHOICES[0]
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "app_id": settings.APP_ID,
                "headline_choices": HEADLINE_COUNT_CHOICES,
                "default_headline_count": default_count,
            },
        )

    return app


app = create_app()
