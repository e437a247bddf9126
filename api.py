# api.py
import json
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

from auth import ApiError, verify_token
from bulk import dispatch
from config import Settings
from models import BulkVerificationRequest
from verifier import Verifier, VerificationError

logger = logging.getLogger(__name__)

INVALID_SYNTAX_NOTICE = "email address syntax is invalid"


class BadRequest(ApiError):
    status_code = 400


class InternalError(ApiError):
    status_code = 500


def _render_error(request: Request, exc: ApiError) -> Response:
    if exc.plain_text:
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def create_app(settings: Settings, verifier: Optional[Verifier] = None) -> FastAPI:
    """
    Build the API around one Settings instance.
    `verifier` is anything with an async `verify(email)`; defaults to a
    Verifier configured from `settings`.
    """
    app = FastAPI(title="Email Verifier API", version="0.2.0")
    app.state.settings = settings
    app.state.verifier = verifier or Verifier.from_settings(settings)
    app.add_exception_handler(ApiError, _render_error)

    @app.get("/v1/{email}/verification", dependencies=[Depends(verify_token)])
    async def verify_single(email: str):
        if not settings.has_sender_identity:
            return PlainTextResponse(
                "FROM_EMAIL and HELO_NAME must be set in environment variables",
                status_code=500,
            )
        try:
            result = await app.state.verifier.verify(email)
        except VerificationError as e:
            raise InternalError(str(e)) from e
        except Exception as e:
            logger.exception("unexpected error verifying %s", email)
            raise InternalError(str(e) or e.__class__.__name__) from e
        if not result.syntax.valid:
            return PlainTextResponse(INVALID_SYNTAX_NOTICE)
        return JSONResponse(result.to_dict())

    @app.post("/v1/bulk", dependencies=[Depends(verify_token)])
    async def verify_bulk(request: Request):
        try:
            payload = BulkVerificationRequest.model_validate_json(await request.body())
        except ValidationError:
            raise BadRequest("Invalid request format") from None

        emails = payload.emails
        if not emails:
            raise BadRequest("No emails provided")
        if len(emails) > settings.max_batch:
            raise BadRequest(f"Too many emails provided (max {settings.max_batch})")

        logger.info("bulk verification of %d addresses", len(emails))
        outcomes = await dispatch(emails, app.state.verifier.verify, timeout=settings.verify_timeout)

        try:
            body = json.dumps([o.to_dict() for o in outcomes])
        except (TypeError, ValueError) as e:
            logger.error("could not serialize bulk response: %s", e)
            raise InternalError("Failed to format response") from e
        return Response(body, status_code=200, media_type="application/json")

    return app
