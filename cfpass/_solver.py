"""JS challenge solver: bundle the page, run it, read back the URL."""

import logging
from urllib.parse import urlsplit

from cfpass._bundle import build_bundle
from cfpass._errors import ResolutionError, ScriptExecutionError
from cfpass._executor import DEFAULT_SCRIPT_TIMEOUT, NodeExecutor

logger = logging.getLogger("cfpass")


class ScriptChallengeSolver:
    """Resolve a wait page by executing its scripts out of process.

    ``executor`` defaults to a NodeExecutor built from ``node_path``,
    ``node_modules_path`` and ``timeout``.
    """

    def __init__(
        self,
        executor=None,
        node_path: str | None = None,
        node_modules_path: str | None = None,
        timeout: float | None = DEFAULT_SCRIPT_TIMEOUT,
    ):
        self.executor = executor or NodeExecutor(
            node_path=node_path,
            node_modules_path=node_modules_path,
            timeout=timeout,
        )

    def solve(self, request, response) -> str:
        """Return the follow-up URI the page's form would submit to.

        Raises:
            ResolutionError: the script failed or printed no usable URI.
        """
        bundle = build_bundle(request.url, response.text)
        try:
            output = self.executor.execute(bundle)
        except ScriptExecutionError as e:
            raise ResolutionError(request.url, str(e)) from e

        target = output.strip()
        if not target:
            raise ResolutionError(request.url, "script printed nothing")
        if any(c.isspace() for c in target):
            raise ResolutionError(
                request.url, f"script output is not a URI: {target!r}"
            )
        try:
            urlsplit(target)
        except ValueError as e:
            raise ResolutionError(
                request.url, f"script output is not a URI: {target!r}"
            ) from e

        logger.debug("Script solver resolved %s -> %s", request.url, target)
        return target
