"""
Write access checks for the ledger API.

Sign-in itself happens with the external identity provider, whose callback
stores the signed-in user in the Flask session. The API only checks that a
session (or a configured API key) is present before accepting a write.
"""

import hmac

from flask import current_app, request, session


def current_user() -> dict | None:
    """The signed-in user stored in the session, or None."""
    return session.get('user') or None


def verify_api_key() -> bool:
    """Verify the API key from request header. Returns True if valid."""
    expected_key = current_app.config.get('LEDGER_API_KEY')
    if not expected_key:
        # No key configured = API key access disabled
        return False
    api_key = request.headers.get('X-API-Key') or ''
    return hmac.compare_digest(api_key, expected_key)


def is_authenticated() -> bool:
    return current_user() is not None or verify_api_key()
