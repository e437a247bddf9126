import asyncio

import aiosmtplib
import dns.asyncresolver
import dns.resolver
import pytest

import verifier
from models import SMTPResult
from verifier import (
    Verifier,
    VerificationError,
    calculate_reachable,
    classify_rejection,
    lookup_mx,
    parse_syntax,
)


def make_verifier() -> Verifier:
    return Verifier(from_email="verify@example.com", helo_name="mail.example.com")


class FakeSMTP:
    """Accepts every recipient except those in `refuse` (address -> (code, message))."""

    def __init__(self, refuse=None, catch_all=False):
        self.refuse = refuse or {}
        self.catch_all = catch_all
        self.rcpts = []
        self.quit_called = False

    async def ehlo(self):
        pass

    async def helo(self):
        pass

    async def mail(self, sender):
        self.sender = sender

    async def rcpt(self, recipient):
        self.rcpts.append(recipient)
        if recipient in self.refuse:
            code, message = self.refuse[recipient]
            raise aiosmtplib.SMTPRecipientRefused(code, message, recipient)
        if len(self.rcpts) == 1 and not self.catch_all:
            raise aiosmtplib.SMTPRecipientRefused(550, "5.1.1 user unknown", recipient)
        return 250, "OK"

    async def quit(self):
        self.quit_called = True


# --- helpers ---

def test_parse_syntax() -> None:
    s = parse_syntax("John.Doe@Example.com")
    assert s.valid
    assert s.username == "John.Doe"
    assert s.domain == "example.com"
    assert not parse_syntax("no-at-sign").valid


@pytest.mark.parametrize("smtp,expected", [
    (None, "unknown"),
    (SMTPResult(host_exists=False), "unknown"),
    (SMTPResult(host_exists=True, deliverable=True), "yes"),
    (SMTPResult(host_exists=True, catch_all=True), "unknown"),
    (SMTPResult(host_exists=True), "no"),
])
def test_calculate_reachable(smtp, expected) -> None:
    assert calculate_reachable(smtp) == expected


def test_classify_rejection() -> None:
    assert classify_rejection(552, "requested action aborted") == {"full_inbox": True}
    assert classify_rejection(550, "Mailbox quota exceeded") == {"full_inbox": True}
    assert classify_rejection(550, "account disabled") == {"disabled": True}
    assert classify_rejection(550, "5.1.1 user unknown") == {}


# --- MX ---

class MX:
    def __init__(self, preference, exchange):
        self.preference = preference
        self.exchange = exchange


def test_lookup_mx_orders_by_preference(monkeypatch) -> None:
    async def resolve(domain, rdtype, lifetime):
        return [MX(20, "mx2.example.com."), MX(10, "mx1.example.com.")]

    monkeypatch.setattr(dns.asyncresolver, "resolve", resolve)
    assert asyncio.run(lookup_mx("example.com")) == ["mx1.example.com", "mx2.example.com"]


@pytest.mark.parametrize("exc,fragment", [
    (dns.resolver.NXDOMAIN, "does not exist"),
    (dns.resolver.NoAnswer, "no MX records"),
    (dns.resolver.LifetimeTimeout, "timed out"),
])
def test_lookup_mx_failures(monkeypatch, exc, fragment) -> None:
    async def resolve(domain, rdtype, lifetime):
        raise exc()

    monkeypatch.setattr(dns.asyncresolver, "resolve", resolve)
    with pytest.raises(VerificationError, match=fragment):
        asyncio.run(lookup_mx("example.com"))


def test_lookup_mx_null_mx(monkeypatch) -> None:
    async def resolve(domain, rdtype, lifetime):
        return [MX(0, ".")]

    monkeypatch.setattr(dns.asyncresolver, "resolve", resolve)
    with pytest.raises(VerificationError, match="no MX records"):
        asyncio.run(lookup_mx("example.com"))


# --- SMTP ---

def run_check(monkeypatch, smtp, username="jane"):
    v = make_verifier()

    async def connect(mx_host):
        return smtp

    monkeypatch.setattr(v, "connect", connect)
    return asyncio.run(v.check_smtp("example.com", username, ["mx1.example.com"]))


def test_smtp_deliverable(monkeypatch) -> None:
    smtp = FakeSMTP()
    result = run_check(monkeypatch, smtp)
    assert result == SMTPResult(host_exists=True, deliverable=True)
    assert smtp.rcpts[-1] == "jane@example.com"
    assert smtp.sender == "verify@example.com"
    assert smtp.quit_called


def test_smtp_catch_all_skips_real_address(monkeypatch) -> None:
    smtp = FakeSMTP(catch_all=True)
    result = run_check(monkeypatch, smtp)
    assert result == SMTPResult(host_exists=True, catch_all=True)
    assert len(smtp.rcpts) == 1


def test_smtp_full_inbox(monkeypatch) -> None:
    smtp = FakeSMTP(refuse={"jane@example.com": (552, "5.2.2 mailbox full")})
    result = run_check(monkeypatch, smtp)
    assert result == SMTPResult(host_exists=True, full_inbox=True)


def test_smtp_unreachable_hosts(monkeypatch) -> None:
    v = make_verifier()
    tried = []

    async def connect(mx_host):
        tried.append(mx_host)
        raise aiosmtplib.SMTPConnectError("connection refused")

    monkeypatch.setattr(v, "connect", connect)
    hosts = ["mx1.example.com", "mx2.example.com", "mx3.example.com", "mx4.example.com"]
    result = asyncio.run(v.check_smtp("example.com", "jane", hosts))
    assert result == SMTPResult(host_exists=False)
    assert tried == hosts[:3]


# --- end to end with the network stubbed ---

def stub_network(monkeypatch, v, smtp_result=SMTPResult(host_exists=True, deliverable=True)):
    calls = {"mx": 0, "smtp": 0}

    async def fake_lookup_mx(domain, timeout=5.0):
        calls["mx"] += 1
        return ["mx1." + domain]

    async def fake_check_smtp(domain, username, mx_hosts):
        calls["smtp"] += 1
        return smtp_result

    monkeypatch.setattr(verifier, "lookup_mx", fake_lookup_mx)
    monkeypatch.setattr(v, "check_smtp", fake_check_smtp)
    return calls


def test_verify_full_result(monkeypatch) -> None:
    v = make_verifier()
    stub_network(monkeypatch, v)
    result = asyncio.run(v.verify("support@gmail.com"))

    assert result.email == "support@gmail.com"
    assert result.reachable == "yes"
    assert result.has_mx_records
    assert result.role_account
    assert result.free
    assert not result.disposable


def test_verify_invalid_syntax_skips_network(monkeypatch) -> None:
    v = make_verifier()
    calls = stub_network(monkeypatch, v)
    result = asyncio.run(v.verify("definitely not an email"))

    assert not result.syntax.valid
    assert result.reachable == "unknown"
    assert calls == {"mx": 0, "smtp": 0}


def test_verify_disposable_skips_smtp(monkeypatch) -> None:
    v = make_verifier()
    calls = stub_network(monkeypatch, v)
    result = asyncio.run(v.verify("someone@mailinator.com"))

    assert result.disposable
    assert result.smtp is None
    assert calls == {"mx": 1, "smtp": 0}


def test_from_settings(settings) -> None:
    v = Verifier.from_settings(settings)
    assert v.proxy_url == settings.proxy_url
    assert v.helo_name == "mail.example.com"
    assert v.smtp_timeout == settings.smtp_timeout
