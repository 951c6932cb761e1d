"""Security middleware: response hardening headers and early upload rejection."""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from salescoach.config.settings import settings
from salescoach.services.storage import UploadTooLargeError

logger = logging.getLogger(__name__)

SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

# Room for multipart boundaries and part headers around the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class SecurityMiddleware(BaseHTTPMiddleware):
    """Add hardening headers to every response and refuse declared oversize uploads.

    The upload check only trusts ``Content-Length``; chunked bodies still go
    through the byte-counting copy in ``store_upload``.
    """

    def __init__(
        self,
        app,
        *,
        max_upload_bytes: int | None = None,
        upload_paths: Iterable[str] = ("/start",),
    ) -> None:
        super().__init__(app)
        self._max_upload_bytes = max_upload_bytes
        self.upload_paths = frozenset(upload_paths)

    @property
    def max_upload_bytes(self) -> int:
        """Fixed limit if given, else the live ``UPLOAD_MAX_BYTES`` setting."""

        if self._max_upload_bytes is not None:
            return self._max_upload_bytes
        return settings.upload.max_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        rejection = self._reject_oversized_upload(request)
        response = rejection if rejection is not None else await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    def _reject_oversized_upload(self, request: Request) -> Response | None:
        if request.method != "POST" or request.url.path not in self.upload_paths:
            return None

        content_length = request.headers.get("content-length")
        if not content_length or not content_length.isdigit():
            return None
        if int(content_length) <= self.max_upload_bytes + MULTIPART_OVERHEAD_BYTES:
            return None

        client_ip = request.client.host if request.client else "-"
        logger.warning(
            "Rejected upload of %s bytes from %s before reading the body",
            content_length,
            client_ip,
        )
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"detail": f"File upload error: {UploadTooLargeError(self.max_upload_bytes)}"},
        )


__all__ = ["MULTIPART_OVERHEAD_BYTES", "SECURITY_HEADERS", "SecurityMiddleware"]
