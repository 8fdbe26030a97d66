"""cfpass -- HTTP client that clears Cloudflare "I'm Under Attack" pages."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cfpass")
except PackageNotFoundError:
    __version__ = "0.0.0"

from cfpass._base import DEFAULT_HEADERS
from cfpass._challenge import extract_refresh_path, is_challenge
from cfpass._errors import (
    CfpassError,
    CfpassHTTPError,
    ChallengeLoopExceeded,
    ConfigurationError,
    ConnectionFailed,
    ResolutionError,
    ScriptExecutionError,
    TooManyRedirects,
)
from cfpass._executor import NodeExecutor
from cfpass._middleware import ChallengeAttempt, ChallengeMiddleware
from cfpass._request import Request, rewrite_request
from cfpass._response import CfpassResponse
from cfpass._solver import ScriptChallengeSolver
from cfpass._sync import SyncSession

__all__ = [
    "__version__",
    "SyncSession",
    "CfpassResponse",
    "Request",
    "ChallengeMiddleware",
    "ChallengeAttempt",
    "ScriptChallengeSolver",
    "NodeExecutor",
    "is_challenge",
    "extract_refresh_path",
    "rewrite_request",
    "CfpassError",
    "CfpassHTTPError",
    "ConfigurationError",
    "ResolutionError",
    "ScriptExecutionError",
    "ChallengeLoopExceeded",
    "ConnectionFailed",
    "TooManyRedirects",
    "DEFAULT_HEADERS",
    "get",
    "post",
    "put",
    "delete",
    "head",
    "options",
    "patch",
]

# Silent by default; callers opt in via logging.getLogger("cfpass").setLevel(...)
logging.getLogger("cfpass").addHandler(logging.NullHandler())


def get(url: str, **kwargs):
    """Module-level convenience: one-shot sync GET."""
    with SyncSession() as s:
        return s.get(url, **kwargs)


def post(url: str, **kwargs):
    """Module-level convenience: one-shot sync POST."""
    with SyncSession() as s:
        return s.post(url, **kwargs)


def put(url: str, **kwargs):
    """Module-level convenience: one-shot sync PUT."""
    with SyncSession() as s:
        return s.put(url, **kwargs)


def delete(url: str, **kwargs):
    """Module-level convenience: one-shot sync DELETE."""
    with SyncSession() as s:
        return s.delete(url, **kwargs)


def head(url: str, **kwargs):
    """Module-level convenience: one-shot sync HEAD."""
    with SyncSession() as s:
        return s.head(url, **kwargs)


def options(url: str, **kwargs):
    """Module-level convenience: one-shot sync OPTIONS."""
    with SyncSession() as s:
        return s.options(url, **kwargs)


def patch(url: str, **kwargs):
    """Module-level convenience: one-shot sync PATCH."""
    with SyncSession() as s:
        return s.patch(url, **kwargs)
