"""Final response handed back to the caller of a SyncSession."""


class CfpassResponse:
    """Decoded response plus the challenge rounds it took to get it.

    ``challenge_attempts`` lists every wait page the middleware resolved
    on the way, oldest first; empty when the origin answered directly.
    Headers use lowercase keys.
    """

    __slots__ = (
        "status_code",
        "headers",
        "url",
        "text",
        "elapsed",
        "challenge_attempts",
    )

    def __init__(
        self,
        *,
        status_code: int,
        headers: dict[str, str],
        url: str,
        text: str = "",
        elapsed: float = 0.0,
        challenge_attempts: list | None = None,
    ):
        self.status_code = status_code
        self.headers = headers
        self.url = url
        self.text = text
        self.elapsed = elapsed
        self.challenge_attempts = challenge_attempts or []

    @property
    def content(self) -> bytes:
        return self.text.encode("utf-8")

    @property
    def challenged(self) -> bool:
        """True if at least one wait page was cleared for this response."""
        return bool(self.challenge_attempts)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def raise_for_status(self) -> None:
        from cfpass._errors import CfpassHTTPError

        if not self.ok:
            raise CfpassHTTPError(self.status_code, self.url)

    def __repr__(self) -> str:
        rounds = len(self.challenge_attempts)
        if rounds:
            return f"<CfpassResponse [{self.status_code}] after {rounds} challenge(s)>"
        return f"<CfpassResponse [{self.status_code}]>"
