"""Challenge-resolving middleware for the request handler pipeline.

A handler is any callable ``(request, options) -> response`` where the
response exposes ``status_code``, ``headers`` (lowercase keys) and
``text``. ChallengeMiddleware wraps one and keeps re-sending until the
origin stops answering with a wait page. When any wait page was cleared,
the final response gets a ``challenge_attempts`` list; a response that
was never challenged is returned untouched.
"""

import logging
from dataclasses import dataclass

from cfpass._challenge import extract_refresh_path, is_challenge
from cfpass._errors import ChallengeLoopExceeded, ConfigurationError
from cfpass._request import rewrite_request
from cfpass._solver import ScriptChallengeSolver

logger = logging.getLogger("cfpass")

DEFAULT_MAX_ROUNDS = 5

# Options that must be on for cf_clearance to survive the round trip
REQUIRED_OPTIONS = ("cookies", "allow_redirects")


@dataclass
class ChallengeAttempt:
    """One resolved wait page."""

    url: str  # URL that was challenged
    strategy: str  # "refresh" or "script"
    target: str  # follow-up URI, unresolved


def check_options(options: dict) -> None:
    """Raise ConfigurationError unless cookies and redirects are enabled."""
    for option in REQUIRED_OPTIONS:
        if not options.get(option):
            raise ConfigurationError(option)


class ChallengeMiddleware:
    """Resolve Cloudflare wait pages transparently.

    Not thread-safe if the solver isn't; the default NodeExecutor is.
    """

    def __init__(
        self,
        next_handler,
        solver=None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ):
        self._next = next_handler
        self._solver = solver or ScriptChallengeSolver()
        self.max_rounds = max_rounds

    @classmethod
    def create(
        cls,
        solver=None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        **solver_kwargs,
    ):
        """Return a ``handler -> middleware`` factory for handler stacks.

        ``solver_kwargs`` (node_path, node_modules_path, timeout) build
        the default ScriptChallengeSolver when ``solver`` is None.
        """
        if solver is None:
            solver = ScriptChallengeSolver(**solver_kwargs)

        def factory(handler):
            return cls(handler, solver=solver, max_rounds=max_rounds)

        return factory

    def resolve_target(self, request, response) -> tuple[str, str]:
        """Return (target URI, strategy) for a challenge response."""
        path = extract_refresh_path(response.headers)
        if path is not None:
            logger.info("Resolved challenge at %s via Refresh header", request.url)
            return path, "refresh"
        logger.info("No Refresh header at %s, running challenge script", request.url)
        return self._solver.solve(request, response), "script"

    def __call__(self, request, options: dict | None = None):
        options = options or {}
        check_options(options)

        attempts: list[ChallengeAttempt] = []
        while True:
            response = self._next(request, options)
            if not is_challenge(response.status_code, response.headers):
                if attempts:
                    logger.info(
                        "Challenge cleared at %s after %d round(s)",
                        request.url,
                        len(attempts),
                    )
                    response.challenge_attempts = attempts
                return response

            if len(attempts) >= self.max_rounds:
                logger.warning(
                    "Giving up on %s: still challenged after %d round(s)",
                    request.url,
                    len(attempts),
                )
                raise ChallengeLoopExceeded(
                    request.url, self.max_rounds, attempts
                )

            target, strategy = self.resolve_target(request, response)
            attempts.append(ChallengeAttempt(request.url, strategy, target))
            request = rewrite_request(request, target)
            logger.debug(
                "Challenge round %d/%d: %s %s",
                len(attempts),
                self.max_rounds,
                request.method,
                request.url,
            )
