from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel

from sitebuilder.errors import NormalizationError

ASSET_FIELDS = ("html", "css", "js")

# Greedy on purpose: first "{" through last "}" of the whole reply
_OBJECT_SPAN_RE = re.compile(r"\{.*\}", re.DOTALL)


class GeneratedSiteAssets(BaseModel):
    html: str
    css: str
    js: str


def _json_candidate(text: str) -> str:
    m = _OBJECT_SPAN_RE.search(text)
    return m.group(0) if m else text


def normalize(raw_text: str) -> GeneratedSiteAssets:
    """Extract the html/css/js object from a provider reply; raise NormalizationError.

    Strategy:
    - Trim the reply and take the widest {...} span so prose or fences around
      the object are ignored; without braces the whole text is tried.
    - Parse strictly; no repair of trailing commas or truncated output.
      Nesting too deep for the decoder counts as a parse failure.
    - Every asset field must be present and truthy, and must be text.
    """
    t = (raw_text or "").strip()
    candidate = _json_candidate(t)
    try:
        parsed: Any = json.loads(candidate)
    except (json.JSONDecodeError, RecursionError) as e:
        raise NormalizationError(f"AI response is not valid JSON: {e}") from e

    if not isinstance(parsed, dict) or not all(parsed.get(k) for k in ASSET_FIELDS):
        raise NormalizationError("AI response missing html/css/js keys.")

    wrong = [k for k in ASSET_FIELDS if not isinstance(parsed[k], str)]
    if wrong:
        raise NormalizationError(f"AI response fields must be strings: {', '.join(wrong)}")

    return GeneratedSiteAssets(html=parsed["html"], css=parsed["css"], js=parsed["js"])
