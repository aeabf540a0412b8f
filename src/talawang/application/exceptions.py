from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class InvalidInputError(AppError):
    pass


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class IllegalTransitionError(AppError):
    """Requested workflow action is not allowed from the record's current status."""


class AlreadyCancelledError(IllegalTransitionError):
    pass


class UpstreamAuthError(AppError):
    """Identity-provider token or admin API failure."""


class UpstreamCredentialError(UpstreamAuthError):
    pass


class UpstreamUnavailableError(UpstreamAuthError):
    pass


class StorageError(AppError):
    """Database failure; ``code`` carries the vendor error code when known."""

    def __init__(self, detail: str = "", *, code: str | None = None, cause: str | None = None) -> None:
        super().__init__(detail)
        self.code = code
        self.cause = cause

    @classmethod
    def from_exception(cls, exc: BaseException, detail: str = "Kesalahan basis data") -> StorageError:
        orig = getattr(exc, "orig", None)
        code = getattr(orig, "sqlstate", None) or getattr(exc, "code", None)
        return cls(detail, code=str(code) if code else None, cause=str(orig or exc))
