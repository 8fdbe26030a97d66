"""SyncSession -- synchronous HTTP client wrapping rnet.blocking.Client."""

import logging
import time

import rnet.blocking
from rnet import Method

from cfpass._base import (
    BaseSession,
    _decode_headers,
    _extract_location,
    _to_method,
)
from cfpass._errors import ConnectionFailed, TooManyRedirects
from cfpass._request import Request
from cfpass._response import CfpassResponse

logger = logging.getLogger("cfpass")


class SyncSession(BaseSession):
    """Synchronous HTTP session that clears Cloudflare wait pages.

    All requests share one rnet client, so cookies earned while solving
    a challenge (cf_clearance) are sent on the follow-up request.

    Not thread-safe - use one instance per thread.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._client = rnet.blocking.Client(**self._build_client_kwargs())
        self._handler = self._build_handler(self._send)

    def _send(self, request: Request, options: dict) -> CfpassResponse:
        """Transport handler: one request, plus redirects if allowed."""
        start_time = time.monotonic()
        m = _to_method(request.method)
        current_url = request.url
        headers = dict(request.headers)
        body = request.body
        redirects_followed = 0

        while True:
            kwargs = {"headers": headers}
            if body:
                kwargs["body"] = body
            if options.get("timeout") is not None:
                kwargs["timeout"] = options["timeout"]

            logger.debug("%s %s", m, current_url)
            try:
                resp = self._client.request(m, current_url, **kwargs)
            except Exception as e:
                raise ConnectionFailed(current_url, str(e)) from e

            status = resp.status.as_int()

            if (
                options.get("allow_redirects")
                and 300 <= status < 400
                and status != 304
            ):
                location = _extract_location(resp.headers)
                if location:
                    if redirects_followed >= self.max_redirects:
                        raise TooManyRedirects(
                            current_url, self.max_redirects
                        )
                    new_url = self._resolve_redirect_url(
                        current_url, location
                    )
                    redirects_followed += 1
                    logger.debug(
                        "%d redirect %d/%d: %s -> %s",
                        status,
                        redirects_followed,
                        self.max_redirects,
                        current_url,
                        new_url,
                    )
                    cross_origin = self._is_cross_origin(current_url, new_url)
                    current_url = new_url
                    # POST redirects (301, 302, 303) -> GET per RFC
                    method_changed = False
                    if status in (301, 302, 303) and m != Method.GET:
                        m = Method.GET
                        body = b""
                        method_changed = True
                    if cross_origin or method_changed:
                        headers = self._strip_sensitive_headers(
                            headers, cross_origin, method_changed
                        )
                    continue

            try:
                text = resp.text()
            except Exception as e:
                raise ConnectionFailed(
                    current_url, f"body decode: {e}"
                ) from e

            return CfpassResponse(
                status_code=status,
                headers=_decode_headers(resp.headers),
                url=current_url,
                text=text,
                elapsed=time.monotonic() - start_time,
            )

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        body: bytes | str | None = None,
        json=None,
        form: dict[str, str] | None = None,
        allow_redirects: bool | None = None,
        timeout=None,
    ) -> CfpassResponse:
        """Send a request, resolving any Cloudflare wait pages on the way.

        Raises:
            ConfigurationError: cookies or redirects are disabled while
                challenge solving is on.
            ResolutionError: a wait page's script could not be run.
            ChallengeLoopExceeded: the origin kept challenging.
        """
        start_time = time.monotonic()
        req = self._prepare_request(
            method, url, headers=headers, params=params,
            body=body, json=json, form=form,
        )
        options = self._build_options(allow_redirects, timeout)
        resp = self._handler(req, options)
        resp.elapsed = time.monotonic() - start_time
        return resp

    def get(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("PUT", url, **kwargs)

    def delete(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("DELETE", url, **kwargs)

    def head(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("HEAD", url, **kwargs)

    def options(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("OPTIONS", url, **kwargs)

    def patch(self, url: str, **kwargs) -> CfpassResponse:
        return self.request("PATCH", url, **kwargs)

    def add_cookie(self, raw_set_cookie: str, url: str) -> None:
        """Inject a Set-Cookie header value into the session's cookie jar."""
        self._client.cookie_jar.add(raw_set_cookie, url)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass
