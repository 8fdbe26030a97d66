"""BaseSession -- session configuration and request preparation, zero I/O."""

import base64
import datetime
import json as jsonlib
import logging
import platform
import subprocess
from urllib.parse import unquote, urlencode, urljoin, urlsplit

from rnet import CertStore, Emulation, Method

from cfpass._executor import DEFAULT_SCRIPT_TIMEOUT
from cfpass._middleware import DEFAULT_MAX_ROUNDS, ChallengeMiddleware
from cfpass._request import Request, strip_userinfo

logger = logging.getLogger("cfpass")

_METHOD_MAP: dict[str, Method] = {
    "GET": Method.GET,
    "POST": Method.POST,
    "PUT": Method.PUT,
    "DELETE": Method.DELETE,
    "HEAD": Method.HEAD,
    "OPTIONS": Method.OPTIONS,
    "PATCH": Method.PATCH,
    "TRACE": Method.TRACE,
}


def _to_method(method: str) -> Method:
    """Convert a string HTTP method to rnet Method enum."""
    try:
        return _METHOD_MAP[method.upper()]
    except KeyError:
        raise ValueError(f"Unknown HTTP method: {method}") from None


def _load_system_cert_store() -> CertStore | None:
    """Load system CA certificates into an rnet CertStore."""
    try:
        if platform.system() == "Darwin":
            result = subprocess.run(
                [
                    "security",
                    "find-certificate",
                    "-a",
                    "-p",
                    "/System/Library/Keychains/"
                    "SystemRootCertificates.keychain",
                ],
                capture_output=True,
            )
            if result.returncode == 0 and result.stdout:
                return CertStore.from_pem_stack(result.stdout)
        elif platform.system() == "Linux":
            for path in [
                "/etc/ssl/certs/ca-certificates.crt",
                "/etc/pki/tls/certs/ca-bundle.crt",
                "/etc/ssl/ca-bundle.pem",
            ]:
                try:
                    with open(path, "rb") as f:
                        return CertStore.from_pem_stack(f.read())
                except FileNotFoundError:
                    continue
    except Exception:
        logger.debug("Failed to load system certs", exc_info=True)
    return None


_SYSTEM_CERT_STORE = _load_system_cert_store()

DEFAULT_EMULATION = Emulation.Chrome145

DEFAULT_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br, zstd",
    "Upgrade-Insecure-Requests": "1",
}

DEFAULT_CONNECT_TIMEOUT = datetime.timedelta(seconds=10)
DEFAULT_TIMEOUT = datetime.timedelta(seconds=30)

# Dropped when a redirect leaves the original origin
_CREDENTIAL_HEADERS = frozenset({"authorization", "cookie", "proxy-authorization"})
# Dropped when a redirect turns the request into a bodiless GET
_BODY_HEADERS = frozenset({"content-type", "content-length", "content-encoding"})


def _normalize_timeout(val) -> datetime.timedelta:
    if isinstance(val, datetime.timedelta):
        return val
    return datetime.timedelta(seconds=float(val))


def _decode_headers(header_map) -> dict[str, str]:
    """Decode rnet HeaderMap to lowercase string dict.

    Multi-value headers (Set-Cookie) are joined with "; ".
    """
    result: dict[str, str] = {}
    for raw_key in header_map.keys():
        k = raw_key.decode("ascii", errors="replace").lower()
        parts = [
            v.decode("utf-8", errors="replace")
            for v in header_map.get_all(k)
        ]
        result[k] = "; ".join(parts)
    return result


def _extract_location(header_map) -> str:
    """Read Location from a raw HeaderMap without decoding everything."""
    raw = header_map.get("location")
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


class BaseSession:
    """Shared configuration for sessions. No I/O."""

    def __init__(
        self,
        emulation: Emulation | None = None,
        headers: dict[str, str] | None = None,
        connect_timeout: datetime.timedelta | float | int | None = None,
        timeout: datetime.timedelta | float | int | None = None,
        proxy: str | None = None,
        cookies: bool = True,
        follow_redirects: bool = True,
        max_redirects: int = 10,
        solve_challenges: bool = True,
        max_challenge_rounds: int = DEFAULT_MAX_ROUNDS,
        node_path: str | None = None,
        node_modules_path: str | None = None,
        script_timeout: float | None = DEFAULT_SCRIPT_TIMEOUT,
        solver=None,
    ):
        self.emulation = emulation or DEFAULT_EMULATION
        self.headers = headers if headers is not None else dict(DEFAULT_HEADERS)
        self.connect_timeout = (
            _normalize_timeout(connect_timeout)
            if connect_timeout is not None
            else DEFAULT_CONNECT_TIMEOUT
        )
        self.timeout = (
            _normalize_timeout(timeout)
            if timeout is not None
            else DEFAULT_TIMEOUT
        )
        self.cookies = cookies
        self.follow_redirects = follow_redirects
        self.max_redirects = max_redirects
        self.solve_challenges = solve_challenges
        self.max_challenge_rounds = max_challenge_rounds
        self.node_path = node_path
        self.node_modules_path = node_modules_path
        self.script_timeout = script_timeout
        self._solver = solver

        self._proxy = None
        if proxy:
            from rnet import Proxy

            self._proxy = Proxy.all(proxy)

        logger.debug(
            "Session created with emulation=%s, timeout=%s, "
            "solve_challenges=%s",
            self.emulation,
            self.timeout,
            solve_challenges,
        )

    def _build_handler(self, transport):
        """Compose the request pipeline around a transport handler."""
        if not self.solve_challenges:
            return transport
        middleware = ChallengeMiddleware.create(
            solver=self._solver,
            max_rounds=self.max_challenge_rounds,
            node_path=self.node_path,
            node_modules_path=self.node_modules_path,
            timeout=self.script_timeout,
        )
        return middleware(transport)

    def _build_options(self, allow_redirects: bool | None, timeout) -> dict:
        return {
            "cookies": self.cookies,
            "allow_redirects": (
                self.follow_redirects
                if allow_redirects is None
                else allow_redirects
            ),
            "timeout": (
                _normalize_timeout(timeout) if timeout is not None else None
            ),
        }

    def _prepare_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        body: bytes | str | None = None,
        json=None,
        form: dict[str, str] | None = None,
    ) -> Request:
        """Build the pipeline Request for a user call.

        URL credentials move into a Basic Authorization header so that
        rewritten and redirected URLs never carry them.
        """
        url = self._apply_params(url, params)
        headers = dict(headers) if headers else {}
        lower = {k.lower() for k in headers}

        parts = urlsplit(url)
        if parts.username is not None:
            if "authorization" not in lower:
                user = unquote(parts.username)
                password = unquote(parts.password or "")
                token = base64.b64encode(
                    f"{user}:{password}".encode("utf-8")
                ).decode("ascii")
                headers["Authorization"] = f"Basic {token}"
            url = strip_userinfo(url)

        if json is not None:
            body = jsonlib.dumps(json).encode("utf-8")
            if "content-type" not in lower:
                headers["Content-Type"] = "application/json"
        elif form is not None:
            body = urlencode(form).encode("utf-8")
            if "content-type" not in lower:
                headers["Content-Type"] = "application/x-www-form-urlencoded"
        if isinstance(body, str):
            body = body.encode("utf-8")

        return Request(
            method=method.upper(), url=url, headers=headers, body=body or b""
        )

    @staticmethod
    def _apply_params(url: str, params: dict[str, str] | None) -> str:
        """Append query parameters to a URL.

        rnet doesn't support a params= kwarg, so the query string is
        built into the URL before it reaches rnet.
        """
        if not params:
            return url
        sep = "&" if "?" in url else "?"
        return url + sep + urlencode(params)

    @staticmethod
    def _resolve_redirect_url(base_url: str, location: str) -> str:
        """Resolve a Location header value to an absolute URL.

        Handles absolute, protocol-relative (//host/path) and relative
        locations.
        """
        location = location.strip()
        if location.startswith("//"):
            scheme = urlsplit(base_url).scheme or "https"
            location = f"{scheme}:{location}"
        resolved = urljoin(base_url, location)
        # Some servers omit the path entirely
        parts = urlsplit(resolved)
        if not parts.path:
            resolved = parts._replace(path="/").geturl()
        return resolved

    @staticmethod
    def _is_cross_origin(url_a: str, url_b: str) -> bool:
        a, b = urlsplit(url_a), urlsplit(url_b)
        return (a.scheme, a.hostname, a.port) != (b.scheme, b.hostname, b.port)

    @staticmethod
    def _strip_sensitive_headers(
        headers: dict[str, str], cross_origin: bool, method_changed: bool
    ) -> dict[str, str]:
        """Drop headers that must not follow a redirect (Fetch spec)."""
        drop = set()
        if cross_origin:
            drop |= _CREDENTIAL_HEADERS
        if method_changed:
            drop |= _BODY_HEADERS
        return {k: v for k, v in headers.items() if k.lower() not in drop}

    def _build_client_kwargs(self) -> dict:
        """Build kwargs for rnet Client construction."""
        kwargs = {
            "emulation": self.emulation,
            "headers": dict(self.headers),
            "connect_timeout": self.connect_timeout,
            "timeout": self.timeout,
            "cookie_store": self.cookies,
        }
        if _SYSTEM_CERT_STORE is not None:
            kwargs["verify"] = _SYSTEM_CERT_STORE
        if self._proxy is not None:
            kwargs["proxies"] = [self._proxy]
        return kwargs
