"""
Security Headers Middleware
Adds response headers suited to a JSON API that serves patient data.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


API_HEADERS = {
    # Prevent MIME type sniffing
    "X-Content-Type-Options": "nosniff",
    # Responses are never meant to be framed
    "X-Frame-Options": "DENY",
    # Nothing but JSON is served, so no resource loading is allowed
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
}

# Documentation pages load their own scripts and styles
DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Everything under ``/api`` is additionally marked ``Cache-Control: no-store``
    since it carries tokens, profiles and appointment details.
    """

    def __init__(self, app, hsts_max_age: int = 31536000):
        super().__init__(app)
        self.hsts_max_age = hsts_max_age

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        path = request.url.path

        for header, value in API_HEADERS.items():
            if header == "Content-Security-Policy" and path.startswith(DOCS_PATHS):
                continue
            response.headers.setdefault(header, value)

        if path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"

        # HSTS only makes sense over HTTPS (X-Forwarded-Proto for proxied requests)
        forwarded_proto = request.headers.get("X-Forwarded-Proto", "")
        if request.url.scheme == "https" or forwarded_proto == "https":
            response.headers["Strict-Transport-Security"] = f"max-age={self.hsts_max_age}; includeSubDomains"

        return response
