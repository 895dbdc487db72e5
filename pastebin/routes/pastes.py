"""
Paste routes.
Handles create, fetch (API), and view (HTML) operations.
"""
import html
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse

from pastebin.config import Settings
from pastebin.database import current_time_ms
from pastebin.dependencies import get_paste_service, get_settings
from pastebin.exceptions import PasteNotFoundError, StorageUnavailableError
from pastebin.models import ErrorResponse, PasteCreate, PasteFetched, PasteResponse
from pastebin.service import PasteService

router = APIRouter()
logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _get_current_time(settings: Settings, x_test_now_ms: Optional[str] = None) -> int:
    """
    Get current time in milliseconds, respecting TEST_MODE for deterministic testing.

    Args:
        settings: Application settings
        x_test_now_ms: Test timestamp header (milliseconds since epoch)

    Returns:
        Milliseconds since epoch
    """
    if settings.TEST_MODE and x_test_now_ms:
        try:
            return int(x_test_now_ms)
        except ValueError as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")

    return current_time_ms()


def _format_timestamp(timestamp_ms: Optional[int]) -> Optional[str]:
    """ISO 8601 UTC with millisecond precision, e.g. 2024-01-01T00:00:10.000Z."""
    if timestamp_ms is None:
        return None
    moment = EPOCH + timedelta(milliseconds=timestamp_ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _base_url(settings: Settings, request: Request) -> str:
    if settings.APP_DOMAIN:
        return settings.APP_DOMAIN.rstrip("/")
    protocol = request.headers.get("x-forwarded-proto", "http")
    host = request.headers.get("host", "localhost:8000")
    return f"{protocol}://{host}"


@router.post(
    "/api/pastes",
    response_model=PasteResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def create_paste(
    paste: PasteCreate,
    request: Request,
    service: PasteService = Depends(get_paste_service),
    settings: Settings = Depends(get_settings),
) -> PasteResponse:
    """
    Create a new paste.

    Args:
        paste: Paste data (content, optional ttl_seconds, optional max_views)
        request: HTTP request context

    Returns:
        Paste ID and shareable URL
    """
    paste_id = service.submit(
        content=paste.content,
        ttl_seconds=paste.ttl_seconds,
        max_views=paste.max_views,
    )
    url = f"{_base_url(settings, request)}/p/{paste_id}"
    return PasteResponse(id=paste_id, url=url)


@router.get(
    "/api/pastes/{paste_id}",
    response_model=PasteFetched,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def fetch_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
    settings: Settings = Depends(get_settings),
) -> PasteFetched:
    """
    Fetch a paste (API endpoint).
    Each fetch increments the view count.

    Missing, expired and view-exhausted pastes all raise PasteNotFoundError,
    which the app turns into the same 404 body.
    """
    view = service.consume(paste_id, _get_current_time(settings, x_test_now_ms))
    return PasteFetched(
        content=view.content,
        remaining_views=view.remaining_views,
        expires_at=_format_timestamp(view.expires_at),
    )


@router.get("/p/{paste_id}", response_class=HTMLResponse)
def view_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    """
    View a paste as HTML.
    Each view increments the view count.
    """
    try:
        view = service.consume(paste_id, _get_current_time(settings, x_test_now_ms))
    except PasteNotFoundError:
        return HTMLResponse(_render_404_page(), status_code=404)
    except StorageUnavailableError as e:
        logger.error(f"Storage unavailable while rendering paste {paste_id}: {e}")
        return HTMLResponse(_render_error_page(), status_code=500)
    except Exception:
        logger.exception(f"Unexpected error while rendering paste {paste_id}")
        return HTMLResponse(_render_error_page(), status_code=500)

    return HTMLResponse(_render_paste_page(paste_id, view.content))


PAGE_STYLE = """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            background: #f5f5f5;
            min-height: 100vh;
            padding: 40px 20px;
        }
        .container {
            background: white;
            border-radius: 8px;
            box-shadow: 0 2px 4px rgba(0, 0, 0, 0.1);
            max-width: 900px;
            margin: 0 auto;
            padding: 24px;
        }
        h1 { color: #666; font-size: 18px; margin-bottom: 16px; }
        .content {
            font-family: "Courier New", monospace;
            font-size: 14px;
            line-height: 1.6;
            white-space: pre-wrap;
            word-wrap: break-word;
            color: #333;
        }
        a { color: #1976d2; text-decoration: none; }
        .footer { margin-top: 20px; text-align: center; font-size: 12px; }
"""


def _render_paste_page(paste_id: str, content: str) -> str:
    """Render a paste; the content is HTML-escaped and shown verbatim."""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Paste - Pastebin Lite</title>
    <style>{PAGE_STYLE}</style>
</head>
<body>
    <div class="container">
        <h1>Paste #{html.escape(paste_id)}</h1>
        <div class="content">{html.escape(content)}</div>
        <div class="footer"><a href="/">Create a new paste</a></div>
    </div>
</body>
</html>"""


def _render_404_page() -> str:
    """Render a 404 error page."""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Paste Not Found - Pastebin Lite</title>
    <style>{PAGE_STYLE}</style>
</head>
<body>
    <div class="container">
        <h1>404 - Paste Not Found</h1>
        <p>This paste was not found, has expired, or its view limit has been exceeded.</p>
        <div class="footer"><a href="/">Create a new paste</a></div>
    </div>
</body>
</html>"""


def _render_error_page() -> str:
    """Render a generic 500 page; no error detail reaches the browser."""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Something Went Wrong - Pastebin Lite</title>
    <style>{PAGE_STYLE}</style>
</head>
<body>
    <div class="container">
        <h1>500 - Something Went Wrong</h1>
        <p>The paste could not be loaded right now. Please try again later.</p>
        <div class="footer"><a href="/">Create a new paste</a></div>
    </div>
</body>
</html>"""
