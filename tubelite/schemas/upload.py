from __future__ import annotations

from typing import Literal

from pydantic import Field

from tubelite.schemas.common import CamelModel

AssetKind = Literal["video", "image"]


class UploadPresignRequest(CamelModel):
    filename: str = Field(min_length=1)
    size_bytes: int = Field(ge=1)
    kind: AssetKind = Field(default="video")


class UploadPresignResponse(CamelModel):
    upload_url: str
    file_key: str
    public_url: str
    expires_in: int


class AssetUploadResponse(CamelModel):
    url: str
    file_key: str
    size_bytes: int
