"""Parsing and sanitization of language-model output.

Model replies are untrusted. ``parse_llm_json`` recovers a JSON object from
loosely formatted replies, and ``sanitize_html`` reduces any text to a small
allow-list of formatting tags before it is shown to a user or persisted.
"""

import json
import re
from html import escape, unescape
from html.parser import HTMLParser
from typing import Any

from kasku_core.results import Invalid, Parsed, ParseResult

ALLOWED_TAGS = frozenset({"p", "strong", "b", "u", "em", "i", "br", "ul", "ol", "li"})
DROPPED_CONTENT_TAGS = frozenset({"script", "style", "iframe", "object", "embed"})
VOID_TAGS = frozenset({"br"})

_CURRENCY_WORDS = re.compile(
    r"\b(usd|dollar|dolar|eur|euro|sgd|myr|jpy|yen|gbp|pound)\b", re.IGNORECASE
)
_CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")
_WHITESPACE = re.compile(r"\s+")
_TAG = re.compile(r"<[^>]+>")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def _loads_object(text: str) -> ParseResult[dict[str, Any]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return Invalid(f"invalid JSON: {e.msg}")
    except (ValueError, RecursionError) as e:
        # oversized integer literals and pathological nesting
        return Invalid(f"unparsable JSON: {type(e).__name__}")
    if not isinstance(data, dict):
        return Invalid(f"expected a JSON object, got {type(data).__name__}")
    return Parsed(data)


def parse_llm_json(content: Any) -> ParseResult[dict[str, Any]]:
    """
    Recover a JSON object from a model reply.

    Tries, in order: the reply without code fences, the slice between the
    first ``{`` and the last ``}``, and that slice with trailing commas
    removed.

    Returns:
        Parsed(dict) or Invalid; never raises.
    """
    raw = str(content or "").strip()
    if not raw:
        return Invalid("empty reply")

    unfenced = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", raw)).strip()
    outcome = _loads_object(unfenced)
    if outcome.ok:
        return outcome

    start = unfenced.find("{")
    end = unfenced.rfind("}")
    if start < 0 or end <= start:
        return Invalid("no JSON object found in reply")

    candidate = unfenced[start : end + 1]
    outcome = _loads_object(candidate)
    if outcome.ok:
        return outcome

    return _loads_object(_TRAILING_COMMA.sub(r"\1", candidate))


class _AllowListParser(HTMLParser):
    """Re-emits a fragment keeping only allow-listed tags without attributes."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._dropping = 0

    def handle_starttag(self, tag, attrs):
        if tag in DROPPED_CONTENT_TAGS:
            # <embed> has no closing tag in practice
            if tag != "embed":
                self._dropping += 1
            return
        if self._dropping:
            return
        if tag in ALLOWED_TAGS:
            self.parts.append(f"<{tag}>")

    def handle_startendtag(self, tag, attrs):
        if self._dropping or tag in DROPPED_CONTENT_TAGS:
            return
        if tag in ALLOWED_TAGS:
            self.parts.append(f"<{tag}>")

    def handle_endtag(self, tag):
        if tag in DROPPED_CONTENT_TAGS:
            if tag != "embed" and self._dropping:
                self._dropping -= 1
            return
        if self._dropping:
            return
        if tag in ALLOWED_TAGS and tag not in VOID_TAGS:
            self.parts.append(f"</{tag}>")

    def handle_data(self, data):
        if not self._dropping:
            self.parts.append(escape(data, quote=False))

    def handle_comment(self, data):
        pass

    def handle_decl(self, decl):
        pass

    def handle_pi(self, data):
        pass

    def unknown_decl(self, data):
        pass


def normalize_currency_to_rupiah(text: Any) -> str:
    """Rewrite foreign currency words and symbols as rupiah."""
    value = _CURRENCY_WORDS.sub("rupiah", str(text or ""))
    value = _CURRENCY_SYMBOLS.sub("Rp ", value)
    return _WHITESPACE.sub(" ", value).strip()


def sanitize_html(text: Any) -> str:
    """
    Reduce text to the formatting allow-list.

    Kept tags are p, strong, b, u, em, i, br, ul, ol and li, with every
    attribute removed. Script-like elements are dropped together with their
    content, comments and declarations are dropped, and text is escaped.
    Currency mentions are then normalized to rupiah and whitespace collapsed.
    ``sanitize_html(sanitize_html(x)) == sanitize_html(x)``.
    """
    parser = _AllowListParser()
    parser.feed(str(text or ""))
    parser.close()
    return normalize_currency_to_rupiah("".join(parser.parts))


def strip_html(text: Any) -> str:
    """Replace tags with spaces and collapse whitespace."""
    return _WHITESPACE.sub(" ", _TAG.sub(" ", str(text or ""))).strip()


def sanitize_plain_text(text: Any) -> str:
    """Sanitize, strip all markup and unescape, for fields shown as plain text."""
    return unescape(strip_html(sanitize_html(text)))


__all__ = [
    "ALLOWED_TAGS",
    "parse_llm_json",
    "sanitize_html",
    "normalize_currency_to_rupiah",
    "strip_html",
    "sanitize_plain_text",
]
