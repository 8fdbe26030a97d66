"""Cloudflare wait-page detection and Refresh header parsing.

Pure logic, no I/O. A wait page is a 503 served by a Cloudflare edge
server. Old edges also put the follow-up URL in a Refresh header, which
lets us skip script execution entirely.
"""

import logging
import re

logger = logging.getLogger("cfpass")

# Status code Cloudflare answers with while "I'm Under Attack" is on
WAIT_STATUS_CODE = 503

# Values of the Server header sent by Cloudflare edges (exact match)
SERVER_NAMES = frozenset({
    "cloudflare-nginx",
    "cloudflare",
})

REFRESH_PATTERN = re.compile(
    r"8;URL=(/cdn-cgi/l/chk_jschl\?pass=[0-9]+\.[0-9]+-.*)"
)


def is_challenge(status_code: int, headers: dict[str, str]) -> bool:
    """Check whether a response is a Cloudflare wait page.

    Args:
        status_code: HTTP status code.
        headers: Response headers with lowercase keys.
    """
    if status_code != WAIT_STATUS_CODE:
        return False
    server = headers.get("server", "")
    if server not in SERVER_NAMES:
        return False
    logger.info("Challenge detected: %d from %s", status_code, server)
    return True


def extract_refresh_path(headers: dict[str, str]) -> str | None:
    """Return the chk_jschl path from the Refresh header, or None.

    The path is returned as-is (relative); resolving it against the
    request URL is the rewriter's job.
    """
    match = REFRESH_PATTERN.search(headers.get("refresh", ""))
    if not match:
        return None
    return match.group(1)
