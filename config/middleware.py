from __future__ import annotations

from django.utils.deprecation import MiddlewareMixin


DOCS_PATHS = ("/docs/", "/redoc/")
DOCS_CDN = "https://cdn.jsdelivr.net"


class ContentSecurityPolicyMiddleware(MiddlewareMixin):
    """Add a Content-Security-Policy header to every response.

    Checkout loads Stripe.js, so Stripe's script and frame origins are
    allowed. The interactive API docs pull Swagger UI / ReDoc assets from
    the jsDelivr CDN; only those two paths widen the policy to include it.
    """

    def process_response(self, request, response):  # noqa: D401
        script_src = "'self' https://js.stripe.com"
        style_src = "'self'"
        if request.path in DOCS_PATHS:
            script_src = f"{script_src} {DOCS_CDN}"
            style_src = f"{style_src} {DOCS_CDN}"

        csp = (
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            f"script-src {script_src}; "
            f"style-src {style_src}; "
            "frame-src https://js.stripe.com https://checkout.stripe.com; "
            "connect-src 'self' ws: wss: https://api.stripe.com; "
            "frame-ancestors 'none'"
        )
        response["Content-Security-Policy"] = csp
        response.setdefault("X-Content-Type-Options", "nosniff")
        return response
