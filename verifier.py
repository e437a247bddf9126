# verifier.py
import asyncio
import logging
import random
import string
from typing import List, Optional

import aiosmtplib
import dns.asyncresolver
import dns.exception
import dns.resolver
from email_validator import EmailNotValidError, validate_email
from python_socks import ProxyConnectionError, ProxyError, ProxyTimeoutError
from python_socks.async_.asyncio import Proxy

from models import (
    REACHABLE_NO,
    REACHABLE_UNKNOWN,
    REACHABLE_YES,
    SMTPResult,
    Syntax,
    VerificationResult,
)

logger = logging.getLogger(__name__)

ROLE_PREFIXES = {
    "admin","administrator","billing","contact","dev","dns","enquiry","finance","help","hello","hr",
    "info","it","jobs","marketing","news","noreply","no-reply","office","postmaster","root","sales",
    "security","service","staff","support","team","webmaster"
}

DISPOSABLE = set(d.strip() for d in """
mailinator.com
yopmail.com
temp-mail.org
guerillamail.com
guerrillamail.com
10minutemail.com
trashmail.com
sharklasers.com
dispostable.com
getnada.com
maildrop.cc
""".splitlines() if d.strip())

FREE_PROVIDERS = set(d.strip() for d in """
gmail.com
googlemail.com
yahoo.com
hotmail.com
outlook.com
live.com
msn.com
aol.com
icloud.com
me.com
gmx.com
mail.com
proton.me
protonmail.com
yandex.com
zoho.com
""".splitlines() if d.strip())

SMTP_PORT = 25
MAX_MX_HOSTS = 3

# rejection texts that say something about the mailbox rather than its existence
FULL_INBOX_HINTS = ("full", "quota", "insufficient", "over limit")
DISABLED_HINTS = ("disabled", "discontinued", "not allowed", "inactive", "suspended")

_CONNECT_ERRORS = (
    aiosmtplib.SMTPException,
    ProxyError,
    ProxyConnectionError,
    ProxyTimeoutError,
    OSError,
    asyncio.TimeoutError,
)


class VerificationError(Exception):
    """The address could not be verified (DNS or transport failure)."""


# ----------------- helpers -----------------

def random_local(n: int = 12) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return ''.join(random.choice(alphabet) for _ in range(n))

def is_role_account(local: str) -> bool:
    return local.lower() in ROLE_PREFIXES

def parse_syntax(email: str) -> Syntax:
    try:
        info = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        logger.debug("syntax check failed for %r: %s", email, e)
        return Syntax(username="", domain="", valid=False)
    return Syntax(username=info.local_part, domain=info.ascii_domain, valid=True)

def calculate_reachable(smtp: Optional[SMTPResult]) -> str:
    if smtp is None or not smtp.host_exists:
        return REACHABLE_UNKNOWN
    if smtp.deliverable:
        return REACHABLE_YES
    if smtp.catch_all:
        return REACHABLE_UNKNOWN
    return REACHABLE_NO

def classify_rejection(code: int, message: str) -> dict:
    """Map an RCPT rejection onto the full_inbox / disabled flags."""
    text = (message or "").lower()
    if code in (452, 552) or any(h in text for h in FULL_INBOX_HINTS):
        return {"full_inbox": True}
    if any(h in text for h in DISABLED_HINTS):
        return {"disabled": True}
    return {}

async def lookup_mx(domain: str, timeout: float = 5.0) -> List[str]:
    """
    Return MX hosts ordered by preference (best first).
    Raises VerificationError when the domain has no usable mail exchanger.
    """
    try:
        answers = await dns.asyncresolver.resolve(domain, "MX", lifetime=timeout)
    except dns.resolver.NXDOMAIN:
        raise VerificationError(f"domain {domain} does not exist") from None
    except dns.resolver.NoAnswer:
        raise VerificationError(f"no MX records found for {domain}") from None
    except dns.resolver.NoNameservers as e:
        raise VerificationError(f"MX lookup failed for {domain}: {e}") from None
    except dns.exception.Timeout:
        raise VerificationError(f"MX lookup timed out for {domain}") from None

    hosts = [str(r.exchange).rstrip('.') for r in sorted(answers, key=lambda r: r.preference)]
    hosts = [h for h in hosts if h]  # RFC 7505 null MX
    if not hosts:
        raise VerificationError(f"no MX records found for {domain}")
    return hosts


# ----------------- verifier -----------------

class Verifier:
    """
    Syntax + MX + SMTP verifier.

    SMTP sessions identify as `helo_name` / `from_email` and are tunnelled
    through `proxy_url` (socks5://, socks4:// or http://) when one is set.
    """

    def __init__(
        self,
        from_email: str,
        helo_name: str,
        proxy_url: Optional[str] = None,
        smtp_timeout: float = 10.0,
        dns_timeout: float = 5.0,
        smtp_port: int = SMTP_PORT,
    ):
        self.from_email = from_email
        self.helo_name = helo_name
        self.proxy_url = proxy_url
        self.smtp_timeout = smtp_timeout
        self.dns_timeout = dns_timeout
        self.smtp_port = smtp_port

    @classmethod
    def from_settings(cls, settings) -> "Verifier":
        return cls(
            from_email=settings.from_email,
            helo_name=settings.helo_name,
            proxy_url=settings.proxy_url,
            smtp_timeout=settings.smtp_timeout,
        )

    async def verify(self, email: str) -> VerificationResult:
        syntax = parse_syntax(email)
        if not syntax.valid:
            return VerificationResult(email=email, reachable=REACHABLE_UNKNOWN, syntax=syntax)

        domain = syntax.domain.lower()
        disposable = domain in DISPOSABLE
        mx_hosts = await lookup_mx(domain, self.dns_timeout)

        smtp = None
        if not disposable:
            smtp = await self.check_smtp(domain, syntax.username, mx_hosts)

        return VerificationResult(
            email=email,
            reachable=calculate_reachable(smtp),
            syntax=syntax,
            smtp=smtp,
            disposable=disposable,
            role_account=is_role_account(syntax.username),
            free=domain in FREE_PROVIDERS,
            has_mx_records=True,
        )

    async def connect(self, mx_host: str) -> aiosmtplib.SMTP:
        if self.proxy_url:
            proxy = Proxy.from_url(self.proxy_url)
            sock = await proxy.connect(
                dest_host=mx_host, dest_port=self.smtp_port, timeout=self.smtp_timeout
            )
            client = aiosmtplib.SMTP(
                sock=sock,
                local_hostname=self.helo_name,
                timeout=self.smtp_timeout,
                start_tls=False,
            )
        else:
            client = aiosmtplib.SMTP(
                hostname=mx_host,
                port=self.smtp_port,
                local_hostname=self.helo_name,
                timeout=self.smtp_timeout,
                start_tls=False,
            )
        await client.connect()
        return client

    async def _open_session(self, mx_hosts: List[str]) -> Optional[aiosmtplib.SMTP]:
        for mx in mx_hosts[:MAX_MX_HOSTS]:
            try:
                client = await self.connect(mx)
            except _CONNECT_ERRORS as e:
                logger.debug("could not connect to %s: %s", mx, e)
                continue
            try:
                try:
                    await client.ehlo()
                except aiosmtplib.SMTPHeloError:
                    await client.helo()
                await client.mail(self.from_email)
            except aiosmtplib.SMTPException as e:
                logger.debug("%s refused the session: %s", mx, e)
                await _quit(client)
                continue
            return client
        return None

    async def check_smtp(self, domain: str, username: str, mx_hosts: List[str]) -> SMTPResult:
        """
        Probe a random mailbox first; a server that accepts it is catch-all
        and the real address is not checked.
        """
        client = await self._open_session(mx_hosts)
        if client is None:
            return SMTPResult(host_exists=False)

        flags = {}
        try:
            try:
                await client.rcpt(f"{random_local(16)}@{domain}")
                return SMTPResult(host_exists=True, catch_all=True)
            except aiosmtplib.SMTPRecipientRefused as e:
                flags.update(classify_rejection(e.code, e.message))

            if not username:
                return SMTPResult(host_exists=True, **flags)

            try:
                await client.rcpt(f"{username}@{domain}")
            except aiosmtplib.SMTPRecipientRefused as e:
                flags.update(classify_rejection(e.code, e.message))
                return SMTPResult(host_exists=True, **flags)
            return SMTPResult(host_exists=True, deliverable=True, **flags)
        except (aiosmtplib.SMTPException, asyncio.TimeoutError) as e:
            logger.debug("SMTP session with %s aborted: %s", domain, e)
            return SMTPResult(host_exists=True, **flags)
        finally:
            await _quit(client)


async def _quit(client: aiosmtplib.SMTP) -> None:
    try:
        await client.quit()
    except (aiosmtplib.SMTPException, OSError):
        client.close()
