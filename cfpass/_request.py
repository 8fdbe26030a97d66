"""Outgoing request value and the post-challenge rewrite."""

from dataclasses import dataclass, field, replace
from urllib.parse import urljoin, urlsplit, urlunsplit


@dataclass(frozen=True)
class Request:
    """An HTTP request as it flows through the handler pipeline."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def strip_userinfo(url: str) -> str:
    """Drop ``user:password@`` from a URL's authority."""
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit(parts._replace(netloc=netloc))


def rewrite_request(original: Request, target: str) -> Request:
    """Build the follow-up request for a resolved challenge target.

    ``target`` is resolved against the original URL (relative paths
    keep scheme and host, absolute URLs replace them). The result is a
    bodiless GET whose only changed header is Referer. Cookies are not
    touched here; they live on the shared client.
    """
    headers = {
        k: v for k, v in original.headers.items() if k.lower() != "referer"
    }
    headers["Referer"] = strip_userinfo(original.url)
    return replace(
        original,
        method="GET",
        url=strip_userinfo(urljoin(original.url, target)),
        headers=headers,
        body=b"",
    )
