"""JSON loading that tolerates ``//`` and ``/* */`` comments and trailing commas.

The .NET tooling writes and accepts commented JSON in ``global.json`` and
``*.runtimeconfig.json``; the stdlib parser does not.
"""

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r',(\s*[}\]])')


def strip_comments(text: str) -> str:
    """Remove comments outside of string literals."""
    out = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == '\\' and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith('//', i):
            end = text.find('\n', i)
            i = n if end == -1 else end
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return ''.join(out)


def loads(text: str) -> Any:
    """Parse commented JSON text."""
    cleaned = _TRAILING_COMMA_RE.sub(r'\1', strip_comments(text))
    return json.loads(cleaned)


def load_file(path: str) -> Any:
    """Parse a commented JSON file, accepting a UTF-8 byte order mark."""
    with open(path, "r", encoding="utf-8-sig") as f:
        return loads(f.read())
