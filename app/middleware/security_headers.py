"""
Security headers middleware.

The service only answers JSON, so the policy is locked down: no content
sources, no framing, no MIME sniffing, plus HSTS, Referrer-Policy and
Permissions-Policy on every response.

Usage:
    from app.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
}


def init_security_headers(app):
    """Register after_request handler that injects security headers."""

    @app.after_request
    def _add_security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        # Remove server identification
        response.headers.pop("Server", None)
        return response
