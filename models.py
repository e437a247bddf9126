# models.py
"""Result payloads returned by the verifier and the per-address bulk outcome."""
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

REACHABLE_YES = "yes"
REACHABLE_NO = "no"
REACHABLE_UNKNOWN = "unknown"


@dataclass(frozen=True)
class Syntax:
    username: str
    domain: str
    valid: bool


@dataclass(frozen=True)
class SMTPResult:
    host_exists: bool = False
    full_inbox: bool = False
    catch_all: bool = False
    deliverable: bool = False
    disabled: bool = False


@dataclass(frozen=True)
class VerificationResult:
    email: str
    reachable: str
    syntax: Syntax
    smtp: Optional[SMTPResult] = None  # None -> no probe was run
    disposable: bool = False
    role_account: bool = False
    free: bool = False
    has_mx_records: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "VerificationResult":
        smtp = data.get("smtp")
        return cls(
            email=data["email"],
            reachable=data["reachable"],
            syntax=Syntax(**data["syntax"]),
            smtp=SMTPResult(**smtp) if smtp is not None else None,
            disposable=data.get("disposable", False),
            role_account=data.get("role_account", False),
            free=data.get("free", False),
            has_mx_records=data.get("has_mx_records", False),
        )


@dataclass(frozen=True)
class VerificationOutcome:
    """One address of a bulk request: a result or an error, never both."""

    email: str
    result: Optional[VerificationResult] = None
    error: Optional[str] = None

    def __post_init__(self):
        if (self.result is None) == (self.error is None):
            raise ValueError("outcome needs exactly one of result or error")

    def to_dict(self) -> Dict:
        out = {"email": self.email}
        if self.result is not None:
            out["result"] = self.result.to_dict()
        else:
            out["error"] = self.error
        return out

    @classmethod
    def from_dict(cls, data: Dict) -> "VerificationOutcome":
        result = data.get("result")
        return cls(
            email=data["email"],
            result=VerificationResult.from_dict(result) if result is not None else None,
            error=data.get("error"),
        )


class BulkVerificationRequest(BaseModel):
    emails: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _null_is_empty(cls, data):
        # `null` body or `"emails": null` decode to an empty batch
        if data is None:
            return {}
        if isinstance(data, dict) and data.get("emails", []) is None:
            return {**data, "emails": []}
        return data
