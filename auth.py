# auth.py
import logging
import secrets

from fastapi import Request

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An error that ends the request with `status_code`."""

    status_code = 500
    plain_text = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(ApiError):
    status_code = 401
    plain_text = True


class Forbidden(ApiError):
    status_code = 403
    plain_text = True


async def verify_token(request: Request) -> None:
    """Reject the request unless the Authorization header carries the server token."""
    token = request.headers.get("Authorization", "")
    if not token:
        logger.info("Missing Authorization header on %s", request.url.path)
        raise Unauthorized("Authorization token is required")

    expected = request.app.state.settings.auth_token
    if not secrets.compare_digest(token.encode(), expected.encode()):
        logger.info("Invalid Authorization token on %s", request.url.path)
        raise Forbidden("Invalid authorization token")

    logger.debug("Authorization successful")
