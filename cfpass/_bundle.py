"""Assemble a Node.js program that replays a challenge page's scripts.

The wait page computes its answer in obfuscated JS and then submits a
form. We copy the page's forms and inline scripts into a browser-env
DOM, hijack ``HTMLFormElement.prototype.submit`` so submission prints
the target URL instead of navigating, and fire DOMContentLoaded.

Required node modules: ``browser-env`` and ``sandbox.js``.
"""

import json
import re
from html.parser import HTMLParser

# <form ...id="x"...>...</form>, id required on the start tag
_FORM_RE = re.compile(
    r"<form\b[^>]*?\sid\s*=\s*[\"'](?P<form_id>[\w-]+)[\"'][^>]*>.*?</form>",
    re.DOTALL | re.IGNORECASE,
)

_PRELUDE = """\
var sandbox = require('sandbox.js'),
    console_log = function(o){console.log(o);},
    context = {
        require: require,
        DOMParser: DOMParser,
        document: document,
        HTMLFormElement: HTMLFormElement,
        CustomEvent: CustomEvent,
        window: window,
        setTimeout: setTimeout,
        location: location,
        console_log: console_log
    },
    code = function(){
(function(){
    var parser = new DOMParser(),
        content = 'text/html',
        container = document.createElement('div'),
        form;
    container.setAttribute('id', 'cf-content');
    document.body.appendChild(container);
    HTMLFormElement.prototype.submit = function(){
        var params = [];
        for (var el of this.elements) {
            params.push(encodeURIComponent(el.name) + '=' + encodeURIComponent(el.value));
        }
        params.push('f=1');
        this.action += '?' + params.join('&');
        this.dispatchEvent(new CustomEvent('submit', {detail: this.action}));
    };
"""

_FINALE = """
(function(){document.dispatchEvent(new CustomEvent('DOMContentLoaded', {}));})();
};
sandbox.runInSandbox(code, context);
"""


class _ScriptParser(HTMLParser):
    """Collect inline <script> bodies in document order."""

    def __init__(self):
        super().__init__()
        self.scripts: list[str] = []
        self._current: list[str] | None = None

    def handle_starttag(self, tag, attrs):
        if tag != "script":
            return
        # External scripts are never fetched
        if "src" in dict(attrs):
            self._current = None
            return
        self._current = []

    def handle_endtag(self, tag):
        if tag == "script" and self._current is not None:
            script = "".join(self._current)
            if script.strip():
                self.scripts.append(script)
            self._current = None

    def handle_data(self, data):
        if self._current is not None:
            self._current.append(data)


def find_forms(body: str) -> list[tuple[str, str]]:
    """Find all <form> elements that carry an id attribute.

    Returns (form_html, form_id) pairs in document order, with CR/LF
    removed from the HTML so it parses as a single node.
    """
    forms = []
    for match in _FORM_RE.finditer(body):
        html = match.group(0).replace("\r", "").replace("\n", "")
        forms.append((html, match.group("form_id")))
    return forms


def find_scripts(body: str) -> list[str]:
    """Return the contents of every inline <script> block, in order."""
    parser = _ScriptParser()
    parser.feed(body)
    parser.close()
    return parser.scripts


def form_statements(forms: list[tuple[str, str]]) -> str:
    """JS statements that mount each form and print its submit target."""
    statements = []
    for html, form_id in forms:
        statements.append(
            f"form = parser.parseFromString({json.dumps(html)}, content)"
            ".body.childNodes[0];\n"
            "container.appendChild(form);\n"
            f"document.getElementById({json.dumps(form_id)})"
            ".addEventListener('submit', function(e){console_log(e.detail)});"
        )
    return "\n".join(statements)


def build_bundle(url: str, body: str) -> str:
    """Build the complete Node.js program for one challenge page.

    Args:
        url: URL of the request that got challenged; the emulated DOM's
            location is set to it.
        body: Challenge page HTML.
    """
    scripts = ";\n".join(find_scripts(body))
    return "".join([
        f"require('browser-env')({{url: {json.dumps(url)}}});\n",
        _PRELUDE,
        form_statements(find_forms(body)),
        "\n})();\n",
        scripts,
        ";",
        _FINALE,
    ])
