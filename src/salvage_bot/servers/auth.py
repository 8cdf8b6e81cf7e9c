"""OAuth callback endpoint for Discord account linking.

Handlers are intentionally thin:

1. Parse HTTP-layer parameters.
2. Delegate business logic to ``LinkService``.
3. Return an appropriate Starlette ``Response`` type: plain text for browsers,
   the error payload as JSON when the caller only accepts JSON.

The base path is configurable (default: ``/auth``) so that reverse-proxies can
mount the application under arbitrary prefixes.  The full callback URL must be
registered in the Supabase redirect allow-list and set as ``BOT_CALLBACK_URL``.

SECURITY NOTE
-------------
• No raw secrets (codes, verifiers, access / refresh tokens) are ever logged
  or echoed back; the success redirect carries nothing.
• Correlation IDs, if present in ``request.state.correlation_id``, are included
  in logs to aid troubleshooting.
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route

from salvage_bot.linking.errors import LinkError
from salvage_bot.linking.service import LinkService

_LOG = logging.getLogger("salvage-bot.auth.routes")

INTERNAL_ERROR_MESSAGE = "Internal server error"


def auth_routes(
    svc: LinkService, *, success_url: str, base_path: str = "/auth"
) -> list[Route]:
    """Return the OAuth routes mounted under *base_path*."""

    # ----- GET /auth/callback --------------------------------------------- #
    async def _oauth_callback(request: Request) -> Response:  # noqa: D401
        correlation_id = getattr(request.state, "correlation_id", None)
        params = request.query_params
        try:
            await svc.complete_link(
                code=params.get("code"),
                state=params.get("state"),
                error=params.get("error"),
                error_description=params.get("error_description"),
                correlation_id=correlation_id,
            )
        except LinkError as exc:
            _LOG.info(
                "OAuth callback rejected kind=%s status=%s correlation_id=%s",
                exc.kind,
                exc.status_code,
                correlation_id or "-",
            )
            accept = (request.headers.get("accept") or "").lower()
            if "application/json" in accept and "text/html" not in accept:
                return JSONResponse(exc.to_payload(), status_code=exc.status_code)
            return PlainTextResponse(exc.detail, status_code=exc.status_code)
        except Exception:  # broad: mapped to an opaque 500
            _LOG.exception(
                "OAuth callback error correlation_id=%s", correlation_id or "-"
            )
            return PlainTextResponse(INTERNAL_ERROR_MESSAGE, status_code=500)

        _LOG.info("OAuth success correlation_id=%s", correlation_id or "-")
        return RedirectResponse(success_url, status_code=302)

    return [
        Route(f"{base_path}/callback", _oauth_callback, methods=["GET"]),
    ]
