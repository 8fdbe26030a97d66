"""Typed exceptions for cfpass."""


class CfpassError(Exception):
    """Base exception for all cfpass errors."""


class ConfigurationError(CfpassError):
    """A session option required for challenge handling is disabled."""

    def __init__(self, option: str):
        self.option = option
        super().__init__(
            f"Challenge handling requires the {option!r} option to be enabled"
        )


class ScriptExecutionError(CfpassError):
    """The challenge script could not run or exited abnormally."""

    def __init__(
        self, reason: str, returncode: int | None = None, stderr: str = ""
    ):
        self.reason = reason
        self.returncode = returncode
        self.stderr = stderr
        msg = reason
        if returncode is not None:
            msg += f" (exit code {returncode})"
        if stderr:
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class ResolutionError(CfpassError):
    """The challenge page could not be resolved to a follow-up URL."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Challenge resolution failed at {url}: {reason}")


class ChallengeLoopExceeded(CfpassError):
    """The origin kept answering with challenge pages."""

    def __init__(self, url: str, max_rounds: int, attempts: list):
        self.url = url
        self.max_rounds = max_rounds
        self.attempts = attempts
        super().__init__(
            f"Still challenged at {url} after {max_rounds} "
            f"resolved round(s)"
        )


class ConnectionFailed(CfpassError):
    """Failed to establish a connection."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Connection failed to {url}: {reason}")


class TooManyRedirects(CfpassError):
    """Exceeded the maximum number of redirects."""

    def __init__(self, url: str, max_redirects: int):
        self.url = url
        self.max_redirects = max_redirects
        super().__init__(
            f"Too many redirects ({max_redirects}) for {url}"
        )


class CfpassHTTPError(CfpassError):
    """HTTP error raised by raise_for_status()."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(
            f"HTTP {status_code} at {url}"
        )
