"""Strict response schemas for the Pinata REST API.

Every JSON body the client consumes is validated against one of these
models; anything that does not fit is rejected as ``MalformedResponse``
instead of being poked at with dict lookups.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class PinMetadata(BaseModel):
    """``metadata`` object of a pin row."""

    name: str | None = None
    keyvalues: dict[str, Any] | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class PinRow(BaseModel):
    """One row of ``GET /data/pinList``."""

    id: str | None = None
    ipfs_pin_hash: str = Field(min_length=1)
    size: int | None = None
    date_pinned: str | None = None
    metadata: PinMetadata = Field(default_factory=PinMetadata)

    model_config = ConfigDict(extra="ignore", frozen=True)


class PinListResponse(BaseModel):
    """Body of ``GET /data/pinList``."""

    count: int | None = None
    rows: list[PinRow]

    model_config = ConfigDict(extra="ignore", frozen=True)


class PinFileResponse(BaseModel):
    """Body of ``POST /pinning/pinFileToIPFS``."""

    IpfsHash: str = Field(min_length=1)
    PinSize: int | None = None
    Timestamp: str | None = None
    isDuplicate: bool | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class GroupRow(BaseModel):
    """One group as returned by ``GET /groups`` and ``POST /groups``."""

    id: str = Field(min_length=1)
    name: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class AuthResponse(BaseModel):
    """Body of ``GET /data/testAuthentication``."""

    message: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class ApiErrorBody(BaseModel):
    """Best-effort error body; Pinata uses several shapes."""

    message: str | None = None
    error: Any = None

    model_config = ConfigDict(extra="ignore")

    def describe(self) -> str | None:
        if isinstance(self.error, dict):
            return self.error.get("details") or self.error.get("reason")
        if isinstance(self.error, str):
            return self.error
        return self.message


GroupList = TypeAdapter(list[GroupRow])
