from __future__ import annotations

from tubelite.i18n.codes import ErrorCode


class BusinessError(Exception):
    def __init__(self, code: ErrorCode, **kwargs: str) -> None:
        super().__init__(str(code))
        self.code = code
        self.kwargs = kwargs


class ConfigurationError(RuntimeError):
    """Raised when backend credentials are missing or unusable."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"missing configuration: {', '.join(missing)}")
        self.missing = missing
