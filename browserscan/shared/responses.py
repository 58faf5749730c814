"""
JSON response that escapes non-ASCII text.

Decoded payloads may carry lone surrogates (valid JSON escapes that are not
encodable as UTF-8). Escaping keeps every stored value renderable.
"""

import json
from typing import Any

from fastapi.responses import JSONResponse


class EscapedJSONResponse(JSONResponse):

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=True,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("ascii")
