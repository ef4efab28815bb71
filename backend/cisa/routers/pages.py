"""Admin page shells.

The real UI is a separate front end; these routes give the session gate
concrete targets and show who is signed in.
"""
from __future__ import annotations

from html import escape

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(prefix="/admin", tags=["pages"], include_in_schema=False)

_PAGE = """<!doctype html>
<html lang="th">
<head><meta charset="utf-8"><title>{title} · CISA</title></head>
<body data-page="{slug}">
<h1>{title}</h1>
{body}
</body>
</html>
"""


def _render(request: Request, slug: str, title: str) -> HTMLResponse:
    principal = getattr(request.state, "principal", None)
    body = ""
    if principal is not None:
        body = f'<p class="principal">{escape(principal.username)} ({escape(principal.role)})</p>'
    return HTMLResponse(_PAGE.format(title=escape(title), slug=slug, body=body))


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request) -> HTMLResponse:
    return _render(request, "login", "Admin login")


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard_page(request: Request) -> HTMLResponse:
    return _render(request, "dashboard", "Dashboard")


@router.get("/registrations", response_class=HTMLResponse)
async def registrations_page(request: Request) -> HTMLResponse:
    return _render(request, "registrations", "Registrations")


@router.get("/faculty-programs", response_class=HTMLResponse)
async def faculty_programs_page(request: Request) -> HTMLResponse:
    return _render(request, "faculty-programs", "Faculties and departments")
