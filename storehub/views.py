"""
StoreHub Backend: View & Flash Collaborators
=============================================

What:  The two narrow interfaces page routes talk to instead of a template
       engine and a session store:

    ViewRenderer.render(request, template, context) → Response
    FlashMessenger.flash(request, severity, message)

How:   The defaults shipped here keep the backend usable on its own.
       JSONViewRenderer answers with the view name and its context as JSON
       for a front end (or tests) to render. CookieFlashMessenger carries
       flashes across one redirect in a short-lived cookie and hands them to
       the next rendered view. Either can be replaced on `app.state` at
       startup without touching the routes.
"""

import base64
import json
import logging
from typing import Any, Dict, List, Mapping, Protocol

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse, Response

logger = logging.getLogger(__name__)

FLASH_COOKIE = "flashes"
SEVERITIES = {"success", "info", "warning", "error"}


class FlashMessenger(Protocol):
    def flash(self, request: Request, severity: str, message: str) -> None: ...

    def attach(self, request: Request, response: Response) -> None: ...

    def collect(self, request: Request) -> List[Dict[str, str]]: ...

    def clear(self, request: Request, response: Response) -> None: ...


class ViewRenderer(Protocol):
    def render(
        self,
        request: Request,
        template: str,
        context: Mapping[str, Any],
        status_code: int = 200,
    ) -> Response: ...


class CookieFlashMessenger:
    """Flashes queued on request.state, delivered through a one-shot cookie."""

    def __init__(self, cookie_name: str = FLASH_COOKIE, max_age: int = 60):
        self.cookie_name = cookie_name
        self.max_age = max_age

    def flash(self, request: Request, severity: str, message: str) -> None:
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown flash severity '{severity}'")
        queued = getattr(request.state, "flashes", None)
        if queued is None:
            queued = request.state.flashes = []
        queued.append({"severity": severity, "message": message})

    def pending(self, request: Request) -> List[Dict[str, str]]:
        return list(getattr(request.state, "flashes", None) or [])

    def decode(self, raw: str) -> List[Dict[str, str]]:
        """Flashes from a cookie value; unreadable values yield none."""
        padded = raw + "=" * (-len(raw) % 4)
        try:
            flashes = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        except ValueError:
            logger.debug("Ignoring unreadable flash cookie")
            return []
        if not isinstance(flashes, list):
            return []
        return [f for f in flashes if isinstance(f, dict) and f.get("severity") in SEVERITIES]

    def attach(self, request: Request, response: Response) -> None:
        """Store queued flashes on a redirect so the next page can show them."""
        flashes = self.pending(request)
        if not flashes:
            return
        # Unpadded so the value needs no cookie quoting
        encoded = base64.urlsafe_b64encode(json.dumps(flashes).encode("utf-8")).decode("ascii")
        encoded = encoded.rstrip("=")
        response.set_cookie(
            self.cookie_name,
            encoded,
            max_age=self.max_age,
            httponly=True,
            samesite="lax",
        )

    def collect(self, request: Request) -> List[Dict[str, str]]:
        """Flashes delivered by the previous redirect plus this request's."""
        raw = request.cookies.get(self.cookie_name)
        delivered = self.decode(raw) if raw else []
        return delivered + self.pending(request)

    def clear(self, request: Request, response: Response) -> None:
        if self.cookie_name in request.cookies:
            response.delete_cookie(self.cookie_name)


class JSONViewRenderer:
    """Renders a view as {"view": ..., "flashes": [...], **context}."""

    def __init__(self, flashes: FlashMessenger):
        self.flashes = flashes

    def render(
        self,
        request: Request,
        template: str,
        context: Mapping[str, Any],
        status_code: int = 200,
    ) -> Response:
        payload = {"view": template, **context, "flashes": self.flashes.collect(request)}
        response = JSONResponse(content=jsonable_encoder(payload), status_code=status_code)
        self.flashes.clear(request, response)
        return response


def redirect(request: Request, url: str, flashes: FlashMessenger) -> RedirectResponse:
    """303 redirect carrying the request's queued flashes."""
    response = RedirectResponse(url=url, status_code=303)
    flashes.attach(request, response)
    return response
