"""Recover article lists from near-JSON LLM output.

Search models are asked for a bare JSON array but regularly answer with
markdown fences, typographic quotes, bare keys, single-quoted values,
trailing commas or a sentence of prose around the array. The repair
pipeline runs in stages, each usable on its own:

1. ``strip_code_fences``      drop ```json ... ``` wrappers
2. ``normalize_typography``   smart quotes, dashes, odd whitespace -> ASCII
3. ``repair_structure``       tokenizer pass that re-quotes keys and strings,
                              drops trailing commas and merges "a" + "b"
4. ``parse_article_array``    strict ``json.loads`` of the result
5. ``extract_embedded_array`` fallback: take the ``[...]`` span from the
                              original text, apply ``light_repair`` and
                              parse once more

``extract_articles`` runs the whole pipeline and converts the items to
CandidateArticle objects.
"""

from __future__ import annotations

from datetime import date, datetime
import json
import logging
import re
from typing import Any

from .core.types import CandidateArticle
from .errors import ParseError

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 80

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_DQ_STRING_RE = re.compile(r'"(?:\\.|[^"\\])*"')
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_BLANK_LINES_RE = re.compile(r"\n[ \t]*\n+")
_KEYWORD_RE = re.compile(r"[a-z0-9]+")

_TYPOGRAPHY = str.maketrans(
    {
        "“": '"',
        "”": '"',
        "„": '"',
        "‟": '"',
        "″": '"',
        "‘": "'",
        "’": "'",
        "‚": "'",
        "‛": "'",
        "′": "'",
        "–": "-",
        "—": "-",
        "‒": "-",
        "―": "-",
        " ": " ",
        " ": " ",
        " ": " ",
        "\t": " ",
        "…": "...",
    }
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "/": "/", "\\": "\\"}
_STRING_TERMINATORS = ",}]:+"
_PY_LITERALS = {"True": "true", "False": "false", "None": "null"}


def strip_code_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.replace("```", "").strip()


def normalize_typography(text: str) -> str:
    text = text.translate(_TYPOGRAPHY)
    return _BLANK_LINES_RE.sub("\n", text)


def repair_structure(text: str) -> str:
    """Rewrite near-JSON into JSON with a single left-to-right scan.

    Outside string literals the scanner quotes bare object keys, maps
    Python literals to JSON ones and drops commas that directly precede
    ``}`` or ``]``. Every string literal, whichever quote it used, is
    re-emitted with ``json.dumps`` so inner quotes and control characters
    come out escaped. Adjacent literals joined by ``+`` are merged.
    """
    out: list[str] = []
    last_sig = ""
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'":
            value, i = _read_string(text, i)
            while True:
                j = _skip_ws(text, i)
                if j < n and text[j] == "+":
                    k = _skip_ws(text, j + 1)
                    if k < n and text[k] in "\"'":
                        more, i = _read_string(text, k)
                        value += more
                        continue
                break
            out.append(json.dumps(value, ensure_ascii=False))
            last_sig = '"'
            continue
        if ch == ",":
            j = _skip_ws(text, i + 1)
            if j < n and text[j] in "}]":
                i += 1
                continue
        if ch.isalpha() or ch in "_$":
            j = i
            while j < n and (text[j].isalnum() or text[j] in "_$"):
                j += 1
            word = text[i:j]
            k = _skip_ws(text, j)
            if k < n and text[k] == ":" and last_sig in ("{", ","):
                out.append(json.dumps(word))
                last_sig = '"'
            else:
                out.append(_PY_LITERALS.get(word, word))
                last_sig = word[-1]
            i = j
            continue
        out.append(ch)
        if not ch.isspace():
            last_sig = ch
        i += 1
    return "".join(out)


def light_repair(text: str) -> str:
    """Cheaper regex-only repairs used on the fallback path.

    Only the spans between double-quoted literals are rewritten, so a
    value such as ``"see: below,"`` keeps its text.
    """
    text = normalize_typography(text)
    parts: list[str] = []
    last = 0
    for match in _DQ_STRING_RE.finditer(text):
        parts.append(_repair_outside_strings(text[last : match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(_repair_outside_strings(text[last:]))
    return "".join(parts)


def _repair_outside_strings(segment: str) -> str:
    segment = _TRAILING_COMMA_RE.sub(r"\1", segment)
    return _BARE_KEY_RE.sub(r'\1"\2"\3', segment)


def parse_article_array(text: str) -> list[Any]:
    """Strictly parse text as a JSON array of articles.

    An object wrapping the array under an ``articles`` key is accepted.

    Raises:
        ParseError: If the text is not JSON or not an array
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("articles"), list):
        data = data["articles"]
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array, got {type(data).__name__}")
    return data


def extract_embedded_array(text: str) -> str | None:
    match = _ARRAY_RE.search(text)
    if not match:
        return None
    return match.group(0)


def extract_articles(raw_text: str) -> list[CandidateArticle]:
    """Run the full repair pipeline and build candidate articles.

    Args:
        raw_text: Free-text response from the content-search provider

    Returns:
        Candidate articles in response order; items that are not objects
        are skipped

    Raises:
        ParseError: If neither the direct nor the fallback parse succeeds
    """
    if not raw_text or not raw_text.strip():
        raise ParseError("Empty response")

    cleaned = repair_structure(normalize_typography(strip_code_fences(raw_text)))
    try:
        items = parse_article_array(cleaned)
    except ParseError as first_error:
        logger.debug("Direct parse failed, trying embedded array: %s", first_error)
        embedded = extract_embedded_array(raw_text)
        if embedded is None:
            raise ParseError(f"No JSON array found in response ({first_error})") from first_error
        try:
            items = parse_article_array(light_repair(embedded))
        except ParseError as second_error:
            raise ParseError(f"Could not parse article array: {second_error}") from second_error

    articles: list[CandidateArticle] = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object item: %r", item)
            continue
        articles.append(_to_article(item))
    return articles


def parse_published_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def normalize_keyword(value: Any) -> str | None:
    """Reduce a keyword to a single lowercase alphanumeric token."""
    if value is None:
        return None
    match = _KEYWORD_RE.search(str(value).lower())
    if not match:
        return None
    return match.group(0)


def _to_article(item: dict[str, Any]) -> CandidateArticle:
    title = " ".join(str(item.get("title") or "").split())
    if len(title) > MAX_TITLE_CHARS:
        title = title[:MAX_TITLE_CHARS].rstrip()
    return CandidateArticle(
        title=title,
        url=str(item.get("url") or "").strip(),
        published_date=parse_published_date(item.get("published_date")),
        summary=str(item.get("summary") or "").strip(),
        keyword=normalize_keyword(item.get("keyword")),
    )


def _read_string(text: str, start: int) -> tuple[str, int]:
    """Read a string literal opened at ``start``.

    Returns the decoded value and the index just past the closing quote.
    A quote only closes the literal when the next non-space character is
    structural (or the text ends); otherwise it is kept as content.
    """
    quote = text[start]
    buf: list[str] = []
    i = start + 1
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\\" and i + 1 < n:
            nxt = text[i + 1]
            if nxt == "u" and re.fullmatch(r"[0-9a-fA-F]{4}", text[i + 2 : i + 6] or ""):
                buf.append(chr(int(text[i + 2 : i + 6], 16)))
                i += 6
                continue
            buf.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        if c == quote:
            j = _skip_ws(text, i + 1)
            if j >= n or text[j] in _STRING_TERMINATORS:
                return "".join(buf), i + 1
        buf.append(c)
        i += 1
    return "".join(buf), n


def _skip_ws(text: str, i: int) -> int:
    n = len(text)
    while i < n and text[i].isspace():
        i += 1
    return i
