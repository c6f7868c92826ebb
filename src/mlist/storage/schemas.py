"""Pydantic schemas for the browsing and auth API."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ListEntry(CamelModel):
    """Directory listing entry."""

    name: str
    path: str = Field(description="Path relative to the served root")
    kind: Literal["dir", "file"]
    size: int | None = Field(default=None, description="File size in bytes")
    mtime: int | None = Field(default=None, description="Modification unix time")
    mime_type: str | None = None
    requires_auth: bool
    authorized: bool


class ListResponse(CamelModel):
    """Directory listing response."""

    path: str
    entries: list[ListEntry]
    requires_auth: bool
    authorized: bool


class LoginRequest(BaseModel):
    """Request body for unlocking a protected path."""

    path: str
    password: str


class LoginResponse(CamelModel):
    ok: bool
    scope: str
    expires_at: str


class MeResponse(CamelModel):
    """Current session state."""

    authenticated: bool
    scopes: list[str]
    expires_at: str | None = None


class OkResponse(BaseModel):
    ok: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    code: str
    message: str
