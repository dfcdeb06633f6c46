"""Error taxonomy and structured error payload helpers."""
from __future__ import annotations

from typing import Any, Dict, Optional


class DocMirrorError(Exception):
    """Base class for every failure the sync engine reports to callers."""

    code = "DOCMIRROR_ERROR"
    hint: Optional[str] = None

    def __init__(self, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        if hint:
            self.hint = hint


class RemoteUnavailable(DocMirrorError):
    code = "DOCMIRROR_NETWORK"


class RemoteNotFound(DocMirrorError):
    code = "DOCMIRROR_NOT_FOUND"


class RemoteRateLimited(DocMirrorError):
    code = "DOCMIRROR_GH_RATE_LIMIT"
    hint = "Set GITHUB_TOKEN for higher rate limits, then retry later."


class RemoteRequestFailed(DocMirrorError):
    code = "DOCMIRROR_GH_REQUEST"

    def __init__(self, message: str, *, status: int, hint: Optional[str] = None):
        super().__init__(message, hint=hint)
        self.status = status


class LocalIOFailure(DocMirrorError):
    code = "DOCMIRROR_IO"


class ConfigurationInvalid(DocMirrorError):
    code = "DOCMIRROR_INVALID_CONFIG"


class ConfigNotFound(ConfigurationInvalid):
    code = "DOCMIRROR_NO_CONFIG"
    hint = "Run 'docmirror init' first."


class SourceConflict(DocMirrorError):
    code = "DOCMIRROR_SOURCE_CONFLICT"


class BlockMarkerMismatch(DocMirrorError):
    code = "DOCMIRROR_BLOCK_UNTERMINATED"


def error_payload(
    code: str,
    message: str,
    *,
    source: Optional[str] = None,
    hint: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return a consistent error body for reports and structured logs."""
    payload: Dict[str, Any] = {"code": code, "message": message}
    if source:
        payload["source"] = source
    if hint:
        payload["hint"] = hint
    if extra:
        payload.update(extra)
    return payload


def payload_for(exc: BaseException, *, source: Optional[str] = None) -> Dict[str, Any]:
    """Build an error payload from any exception, keeping taxonomy codes."""
    if isinstance(exc, DocMirrorError):
        extra = {"status": exc.status} if isinstance(exc, RemoteRequestFailed) else None
        return error_payload(exc.code, str(exc), source=source, hint=exc.hint, extra=extra)
    return error_payload("DOCMIRROR_UNEXPECTED", str(exc) or type(exc).__name__, source=source)


def format_error(exc: BaseException) -> str:
    """One-line, user-facing rendering of an error (hint appended when known)."""
    if isinstance(exc, RemoteUnavailable):
        message = f"Network error: {exc}"
    elif isinstance(exc, ConfigurationInvalid) and not isinstance(exc, ConfigNotFound):
        message = f"Invalid configuration: {exc}"
    else:
        message = str(exc) or type(exc).__name__
    hint = getattr(exc, "hint", None)
    return f"{message} ({hint})" if hint else message
