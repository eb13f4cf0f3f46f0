from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from config.settings import Settings, get_settings


logger = logging.getLogger("prospect_demo.auth")

REALM = "Admin Access"


class AccessDenied(Exception):
    """Admin credentials missing, malformed or wrong."""


class AdminBasic(HTTPBasic):
    """HTTP Basic that treats an undecodable header like a missing one."""

    async def __call__(self, request: Request) -> Optional[HTTPBasicCredentials]:
        try:
            return await super().__call__(request)
        except HTTPException:
            logger.warning("Malformed admin Authorization header")
            return None


# require_admin issues the 401 challenge itself
security = AdminBasic(auto_error=False, realm=REALM)


def access_denied_response() -> PlainTextResponse:
    return PlainTextResponse(
        "Access denied",
        status_code=401,
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """Per-request shared-credential check. No session is ever created."""
    if credentials is not None:
        if not settings.admin_configured:
            logger.warning("Admin login attempted but ADMIN_USERNAME/ADMIN_PASSWORD are not set")
        else:
            name_ok = _matches(credentials.username, settings.admin_username)
            pass_ok = _matches(credentials.password, settings.admin_password)
            if name_ok and pass_ok:
                return credentials.username
            logger.warning("Rejected admin credentials for user=%s", credentials.username)

    raise AccessDenied()
