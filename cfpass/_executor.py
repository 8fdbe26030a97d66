"""Out-of-process JavaScript execution for challenge bundles.

Any object with ``execute(script: str) -> str`` that raises
``ScriptExecutionError`` on failure can stand in for NodeExecutor.
"""

import logging
import os
import subprocess
import tempfile

from cfpass._errors import ScriptExecutionError

logger = logging.getLogger("cfpass")

DEFAULT_NODE = "node"
DEFAULT_SCRIPT_TIMEOUT = 30.0


class NodeExecutor:
    """Run a script file with Node.js and return its stdout.

    Each call writes its own temp file and removes it afterwards,
    whatever the outcome. Blocks until the child exits or the timeout
    kills it.
    """

    def __init__(
        self,
        node_path: str | None = None,
        node_modules_path: str | None = None,
        timeout: float | None = DEFAULT_SCRIPT_TIMEOUT,
    ):
        self.node_path = node_path
        self.node_modules_path = node_modules_path
        self.timeout = timeout

    def command(self, script_path: str) -> list[str]:
        return [self.node_path or DEFAULT_NODE, script_path]

    def environment(self) -> dict[str, str] | None:
        """Child environment, or None to inherit ours unchanged."""
        if self.node_modules_path is None:
            return None
        env = dict(os.environ)
        env["NODE_PATH"] = self.node_modules_path
        return env

    def describe(self, script_path: str) -> str:
        """Shell-style rendering of the command, for logs and errors."""
        prefix = ""
        if self.node_modules_path is not None:
            prefix = f"NODE_PATH={self.node_modules_path} "
        return prefix + " ".join(self.command(script_path))

    def execute(self, script: str) -> str:
        fd, path = tempfile.mkstemp(prefix="cfpass_", suffix=".js")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(script)
            logger.debug("Running challenge script: %s", self.describe(path))
            try:
                result = subprocess.run(
                    self.command(path),
                    env=self.environment(),
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=self.timeout,
                    check=True,
                )
            except subprocess.CalledProcessError as e:
                raise ScriptExecutionError(
                    f"{self.describe(path)} failed",
                    returncode=e.returncode,
                    stderr=e.stderr or "",
                ) from e
            except subprocess.TimeoutExpired as e:
                raise ScriptExecutionError(
                    f"{self.describe(path)} timed out after {self.timeout}s"
                ) from e
            except OSError as e:
                raise ScriptExecutionError(
                    f"{self.describe(path)} could not start: {e}"
                ) from e
            return result.stdout
        finally:
            try:
                os.unlink(path)
            except OSError:
                pass
