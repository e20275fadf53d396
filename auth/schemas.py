"""
auth/schemas.py -- Input schemas for the auth core operations.

These Pydantic v2 models validate raw payloads (whatever JSON the client
sent) before the service touches any store. Field aliases match the wire
names (fullName, organizationName) so validation issues name the fields the
client actually sent.

parse_input() is the single entry point: it returns a validated model or
raises core.errors.ValidationError with one FieldIssue per offending field.
"""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from core.errors import FieldIssue, ValidationError

PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128
NAME_MIN_LEN = 2
NAME_MAX_LEN = 255

_Model = TypeVar("_Model", bound=BaseModel)


class SignupInput(BaseModel):
    """Payload for register()."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    full_name: str = Field(alias="fullName", min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)


class NgoSignupInput(BaseModel):
    """Payload for register_ngo(). organizationName becomes the user's full_name."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    organization_name: str = Field(alias="organizationName", min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)


class LoginInput(BaseModel):
    """Payload for authenticate()."""

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


def issues_from_errors(errors: list[dict[str, Any]]) -> list[FieldIssue]:
    """Flatten Pydantic error dicts into FieldIssue records.

    loc is a tuple like ("body", "email") or ("fullName",). The first issue per
    field wins so the client gets one message per offending field.
    """
    issues: list[FieldIssue] = []
    seen: set[str] = set()
    for err in errors:
        if err.get("type") == "json_invalid":
            field = "body"
        else:
            loc = [str(part) for part in err.get("loc", ()) if part != "body"]
            field = ".".join(loc) or "body"
        if field in seen:
            continue
        seen.add(field)
        issues.append(FieldIssue(field=field, message=err.get("msg", "Invalid value")))
    return issues


def parse_input(model: type[_Model], payload: Any, message: str = "Invalid input") -> _Model:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(message, issues=issues_from_errors(exc.errors())) from exc
