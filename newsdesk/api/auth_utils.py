"""
Access token verification.

Tokens are issued by the site's auth service and signed with the shared
NEWSDESK_SECRET_KEY; this API only verifies them.
"""

import os
from typing import Any, cast

from jose import jwt

SECRET_KEY = os.environ.get("NEWSDESK_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired token, or None."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return cast(dict[str, Any], payload)
    except jwt.JWTError:
        return None
