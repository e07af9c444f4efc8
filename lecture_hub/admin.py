from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
import os

from . import config

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))

router = APIRouter()


@router.get("/admin", response_class=HTMLResponse)
def admin_dashboard(request: Request):
    """Serve a minimal admin UI for uploading, listing and deleting lectures."""
    return templates.TemplateResponse(
        request,
        "admin.html",
        {"default_subject": config.DEFAULT_SUBJECT, "max_file_size": config.MAX_FILE_SIZE},
    )
