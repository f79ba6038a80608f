from flask_talisman import Talisman


def init_security(app):
    """
    Production/staging security headers with a conservative CSP.
    The back office is a JSON API; the SPA is served from its own origin.
    """
    csp = {
        "default-src": ["'self'"],
        "script-src":  ["'self'"],
        "style-src":   ["'self'"],
        "img-src":     ["'self'", "data:"],
        "connect-src": ["'self'"],
        "frame-ancestors": ["'none'"],
        "base-uri":    ["'self'"],
        "form-action": ["'self'"],
    }

    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        session_cookie_secure=True,
        frame_options="DENY",
        referrer_policy="strict-origin-when-cross-origin",
    )
