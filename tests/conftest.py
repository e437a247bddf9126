import asyncio

import pytest

from config import Settings
from models import REACHABLE_UNKNOWN, REACHABLE_YES, SMTPResult, Syntax, VerificationResult

TOKEN = "s3cret-token"


def make_result(email: str, valid: bool = True) -> VerificationResult:
    if not valid:
        return VerificationResult(email=email, reachable=REACHABLE_UNKNOWN, syntax=Syntax("", "", False))
    local, domain = email.split("@", 1)
    return VerificationResult(
        email=email,
        reachable=REACHABLE_YES,
        syntax=Syntax(local, domain, True),
        smtp=SMTPResult(host_exists=True, deliverable=True),
        has_mx_records=True,
    )


class FakeVerifier:
    """Answers from a script: exceptions are raised, numbers are delays."""

    def __init__(self, errors=None, delays=None, invalid=()):
        self.errors = errors or {}
        self.delays = delays or {}
        self.invalid = set(invalid)
        self.calls = []

    async def verify(self, email):
        self.calls.append(email)
        await asyncio.sleep(self.delays.get(email, 0))
        if email in self.errors:
            raise self.errors[email]
        return make_result(email, valid=email not in self.invalid)


@pytest.fixture
def settings():
    return Settings(
        auth_token=TOKEN,
        proxy_url="socks5://127.0.0.1:1080",
        from_email="verify@example.com",
        helo_name="mail.example.com",
        verify_timeout=5.0,
    )


@pytest.fixture
def auth_headers():
    return {"Authorization": TOKEN}
