from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Business error codes; the leading three digits are the HTTP status."""

    INVALID_PARAMETER = 40001
    INVALID_DURATION_FORMAT = 40002
    UNSUPPORTED_FILE_FORMAT = 40003
    FILE_TOO_LARGE = 40004
    COMMENT_EMPTY = 40005
    COMMENT_TOO_LONG = 40006
    CANNOT_SUBSCRIBE_SELF = 40007
    INVALID_VOTE = 40008
    INVALID_ENGAGEMENT_KIND = 40009

    AUTH_TOKEN_NOT_PROVIDED = 40101
    AUTH_TOKEN_INVALID = 40102
    AUTH_TOKEN_EXPIRED = 40103
    AUTH_TOKEN_REVOKED = 40104
    AUTH_SYNC_FORBIDDEN = 40105

    PERMISSION_DENIED = 40301

    VIDEO_NOT_FOUND = 40401
    CHANNEL_NOT_FOUND = 40402
    ENTRY_NOT_FOUND = 40403

    INTERNAL_ERROR = 50000
    UPLOAD_FAILED = 50201
    STORE_UNAVAILABLE = 50301
    CONFIGURATION_ERROR = 50302
    REQUEST_TIMEOUT = 50401

    @property
    def http_status(self) -> int:
        return self.value // 100
