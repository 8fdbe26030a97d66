"""Shared mock objects and session factories for cfpass tests."""

from cfpass._base import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_EMULATION,
    DEFAULT_HEADERS,
    DEFAULT_TIMEOUT,
)
from cfpass._errors import ScriptExecutionError

# ---------------------------------------------------------------------------
# Mock rnet types
# ---------------------------------------------------------------------------


class MockStatus:
    def __init__(self, code: int):
        self._code = code

    def as_int(self) -> int:
        return self._code


class MockHeaderMap:
    """Mock rnet HeaderMap with bytes keys and bytes values.

    - keys() returns unique bytes keys
    - get()/[] returns first value only
    - get_all() returns list of all values for a key
    """

    def __init__(self, data: dict[str, str] | None = None):
        self._raw: dict[bytes, list[bytes]] = {}
        for k, v in (data or {}).items():
            bk = k.lower().encode("ascii")
            self._raw.setdefault(bk, []).append(v.encode("utf-8"))

    def keys(self):
        return list(self._raw.keys())

    def __getitem__(self, key):
        if isinstance(key, str):
            key = key.lower().encode("ascii")
        return self._raw[key][0]

    def get(self, key):
        try:
            return self[key]
        except KeyError:
            return None

    def get_all(self, key):
        if isinstance(key, str):
            key = key.lower().encode("ascii")
        return list(self._raw.get(key, []))


class MockResponse:
    def __init__(
        self,
        status_code: int,
        headers: dict[str, str] | None = None,
        body: str = "",
    ):
        self.status = MockStatus(status_code)
        self.headers = MockHeaderMap(headers)
        self._body = body

    def text(self):
        return self._body

    def bytes(self):
        return self._body.encode("utf-8")


class MockJar:
    """Mock cookie jar that records add() calls."""

    def __init__(self):
        self.added = []

    def add(self, cookie_str, url):
        self.added.append((cookie_str, url))


class MockClient:
    """Mock rnet client that returns responses from a sequence."""

    def __init__(self, responses: list[MockResponse | Exception]):
        self._responses = responses
        self._index = 0
        self.request_count = 0
        self.request_log: list[tuple] = []
        self.cookie_jar = MockJar()

    def request(self, method, url, **kwargs):
        resp = self._responses[
            min(self._index, len(self._responses) - 1)
        ]
        self._index += 1
        self.request_count += 1
        self.request_log.append((method, url, kwargs))
        if isinstance(resp, Exception):
            raise resp
        return resp


# ---------------------------------------------------------------------------
# Fake challenge collaborators
# ---------------------------------------------------------------------------


class FakeExecutor:
    """Executor that records scripts and returns canned output."""

    def __init__(self, output: str = "", error: str | None = None):
        self.output = output
        self.error = error
        self.scripts: list[str] = []

    def execute(self, script: str) -> str:
        self.scripts.append(script)
        if self.error is not None:
            raise ScriptExecutionError(self.error, returncode=1)
        return self.output


class FakeSolver:
    """Solver that returns a fixed target and counts calls."""

    def __init__(self, target: str = "/cdn-cgi/l/chk_jschl?jschl_answer=42"):
        self.target = target
        self.calls: list[tuple] = []

    def solve(self, request, response) -> str:
        self.calls.append((request, response))
        return self.target


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CF_HEADERS = {"server": "cloudflare", "content-type": "text/html"}

CHALLENGE_PAGE = """<!DOCTYPE html>
<html>
<head><title>Just a moment...</title></head>
<body>
<script type="text/javascript">
  (function(){
    var a = document.getElementById('cf-content');
    setTimeout(function(){ document.getElementById('challenge-form').submit(); }, 4000);
  })();
</script>
<form id="challenge-form" action="/cdn-cgi/l/chk_jschl" method="get">
  <input type="hidden" name="jschl_vc" value="abc123"/>
  <input type="hidden" name="pass" value="1500000000.123-xyz"/>
  <input type="hidden" id="jschl-answer" name="jschl_answer"/>
</form>
</body>
</html>
"""


def challenge_response(headers=None, body=CHALLENGE_PAGE):
    return MockResponse(503, headers or dict(CF_HEADERS), body)


def make_sync_session(responses, **session_kwargs):
    """Create a SyncSession with a mocked rnet client.

    Override via session_kwargs: cookies, follow_redirects,
    max_redirects, solve_challenges, max_challenge_rounds, solver.
    """
    from cfpass._sync import SyncSession

    session = SyncSession.__new__(SyncSession)

    session.emulation = DEFAULT_EMULATION
    session.headers = dict(DEFAULT_HEADERS)
    session.connect_timeout = DEFAULT_CONNECT_TIMEOUT
    session.timeout = DEFAULT_TIMEOUT
    session.cookies = session_kwargs.get("cookies", True)
    session.follow_redirects = session_kwargs.get("follow_redirects", True)
    session.max_redirects = session_kwargs.get("max_redirects", 10)
    session.solve_challenges = session_kwargs.get("solve_challenges", True)
    session.max_challenge_rounds = session_kwargs.get(
        "max_challenge_rounds", 5
    )
    session.node_path = None
    session.node_modules_path = None
    session.script_timeout = 30.0
    session._solver = session_kwargs.get("solver", FakeSolver())
    session._proxy = None

    mock = MockClient(responses)
    session._client = mock
    session._handler = session._build_handler(session._send)
    return session, mock
