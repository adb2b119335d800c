"""Shared normalization, classification and HTTP utilities for auctor.

This module provides the leaf components used by the extractors and the
resolver:
- text normalization (surname tokens, diacritics folding)
- year parsing with a copyright-notice fallback
- the junk classifier and its declarative vocabulary
- DOI / "et al." pattern tables
- HTTP infrastructure with optional caching and rate limiting
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import time
import unicodedata
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import httpx

# ------------- Constants & Regex -------------

CROSSREF_API = "https://api.crossref.org/works"

# ASCII digits only; a year ends up verbatim in the proposed filename.
YEAR_RE = re.compile(r"\b(19[89]\d|20\d\d)\b", re.ASCII)
COPYRIGHT_YEAR_RE = re.compile(r"(?:©|\(c\)|\bcopyright\b)\s*(\d{4})(?!\d)", re.IGNORECASE | re.ASCII)

DOI_RE = re.compile(r"\b10\.\d{4,9}/[-._;()/:A-Z0-9]+\b", re.IGNORECASE)

# A capitalised word followed by "et al." / "and others"; only the marker is case-insensitive.
ETAL_RE = re.compile(r"\b([A-Z][A-Za-z'\-]{2,})\s+(?i:et\s*al\b\.?|and\s+others\b)")

_SURNAME_SPLIT_RE = re.compile(r"[,;&]|\band\b", re.IGNORECASE)
_DISALLOWED_TOKEN_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")
_SEPARATOR_RUN_RE = re.compile(r"[-_]{2,}")


# ------------- Text Normalization -------------


def strip_diacritics(text: str) -> str:
    """Remove diacritics from text (e.g., 'café' -> 'cafe')."""
    nfkd = unicodedata.normalize("NFKD", text)
    return "".join([c for c in nfkd if not unicodedata.combining(c)])


def clean(text: str | None) -> str:
    """Fold arbitrary text into a canonical surname token.

    Diacritics are stripped, everything except ASCII letters, digits, ``_``
    and ``-`` is dropped, the result is lowercased, runs of separators are
    collapsed to a single ``-`` and leading/trailing separators are trimmed.
    """
    if not text or not text.strip():
        return ""
    t = _DISALLOWED_TOKEN_CHARS_RE.sub("", strip_diacritics(text)).lower()
    t = _SEPARATOR_RUN_RE.sub("-", t)
    return t.strip("-_")


def surname_from(author: str | None) -> str:
    """Extract the normalized surname of the first author in an author string.

    Only the segment before the first ``,``, ``;``, ``&`` or ``and`` is
    considered; its last word is taken as the surname.
    """
    if not author:
        return ""
    first = _SURNAME_SPLIT_RE.split(author, maxsplit=1)[0]
    tokens = first.split()
    return clean(tokens[-1]) if tokens else ""


# ------------- Years -------------


def year_of(text: str | None) -> str | None:
    """Return the first plausible publication year in text.

    Falls back to the number following a copyright marker, which is not
    checked against the year grammar.
    """
    if not text:
        return None
    m = YEAR_RE.search(text)
    if m:
        return m.group(1)
    m = COPYRIGHT_YEAR_RE.search(text)
    if m:
        return m.group(1)
    return None


def is_valid_year(value: str | None) -> bool:
    """Check that value is exactly a year in 1980-2099."""
    return bool(value) and YEAR_RE.fullmatch(value) is not None


# ------------- DOI & "et al." -------------


def find_doi(text: str | None) -> str:
    """Return the first DOI found in text, or an empty string."""
    if not text:
        return ""
    m = DOI_RE.search(text)
    return m.group(0) if m else ""


def find_etal_author(text: str | None) -> str:
    """Return the word preceding the first "et al." / "and others" in text."""
    if not text:
        return ""
    m = ETAL_RE.search(text)
    return m.group(1) if m else ""


# ------------- Junk Classifier -------------


@dataclass(frozen=True)
class JunkVocabulary:
    """Terms and patterns that mark a token as a non-surname.

    Attributes:
        terms: Plain substrings (software, publishers, institutions), matched
            case-insensitively anywhere in the token.
        patterns: Regular expressions searched case-insensitively in the token.
    """

    terms: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()

    def extend(self, terms: Iterable[str] = (), patterns: Iterable[str] = ()) -> JunkVocabulary:
        """Return a copy with additional terms and patterns."""
        new_terms = tuple(dict.fromkeys(self.terms + tuple(t.lower() for t in terms if t)))
        new_patterns = tuple(dict.fromkeys(self.patterns + tuple(p for p in patterns if p)))
        return JunkVocabulary(terms=new_terms, patterns=new_patterns)

    def compile(self) -> re.Pattern[str] | None:
        alternatives = [re.escape(t) for t in self.terms] + list(self.patterns)
        if not alternatives:
            return None
        return re.compile("|".join(f"(?:{a})" for a in alternatives), re.IGNORECASE)

    def matches(self, token: str) -> bool:
        """Check whether token contains any vocabulary term or pattern."""
        rx = _compiled_vocabulary(self)
        return bool(rx and rx.search(token))


_VOCABULARY_CACHE: dict[JunkVocabulary, re.Pattern[str] | None] = {}


def _compiled_vocabulary(vocabulary: JunkVocabulary) -> re.Pattern[str] | None:
    if vocabulary not in _VOCABULARY_CACHE:
        _VOCABULARY_CACHE[vocabulary] = vocabulary.compile()
    return _VOCABULARY_CACHE[vocabulary]


DEFAULT_JUNK_VOCABULARY = JunkVocabulary(
    terms=(
        # producers and typesetting tools
        "arbortext",
        "adobe",
        "acrobat",
        "distiller",
        "microsoft",
        "word",
        "writer",
        "creator",
        "incopy",
        "tex",
        "latex",
        "engine",
        "pdf",
        # publishers
        "publisher",
        "publishing",
        "elsevier",
        "springer",
        "wiley",
        "taylor",
        "francis",
        "ieee",
        # organisations
        "service",
        "ltd",
        "inc",
        "corp",
        "gmbh",
        "university",
        "journal",
        "conference",
    ),
    # whole-token only: "acm" is a substring of Macmillan, Macmahon, ...
    patterns=(r"\d+\.\d+", r"^acm$"),
)

MAX_DIGIT_RATIO = 0.6


def is_junk(token: str | None, vocabulary: JunkVocabulary = DEFAULT_JUNK_VOCABULARY) -> bool:
    """Heuristically decide whether a normalized token is unlikely to be a surname."""
    if not token or len(token) < 2:
        return True
    digits = sum(1 for c in token if c.isdigit())
    if digits / len(token) > MAX_DIGIT_RATIO:
        return True
    if vocabulary.matches(token):
        return True
    first = token[0]
    return not (first.isascii() and first.isalpha())


# ------------- Rate Limiting & Caching -------------


class RateLimiter:
    """Sliding-window limit on lookup requests per minute.

    Lookups run one document at a time, so no locking is needed. The clock
    and sleep functions are injectable for tests.
    """

    WINDOW = 60.0

    def __init__(
        self,
        req_per_min: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.req_per_min = max(req_per_min, 1)
        self.clock = clock
        self.sleep = sleep
        self.sent: deque[float] = deque()

    def _expire(self, now: float) -> None:
        while self.sent and now - self.sent[0] >= self.WINDOW:
            self.sent.popleft()

    def wait(self) -> float:
        """Block until another request fits in the window; return seconds slept."""
        now = self.clock()
        self._expire(now)
        slept = 0.0
        if len(self.sent) >= self.req_per_min:
            slept = self.WINDOW - (now - self.sent[0])
            self.sleep(slept)
            now = self.clock()
            self._expire(now)
        self.sent.append(now)
        return slept


class DiskCache:
    """On-disk JSON cache for lookup responses."""

    def __init__(self, path: str | None) -> None:
        self.path = path
        self.data: dict[str, Any] = {}
        if path and os.path.exists(path):
            try:
                with open(path, encoding="utf-8") as f:
                    self.data = json.load(f)
            except (OSError, json.JSONDecodeError):
                self.data = {}

    def get(self, key: str) -> Any | None:
        """Get a cached value by key."""
        if not self.path:
            return None
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        """Set a cached value and persist the cache atomically."""
        if not self.path:
            return
        self.data[key] = value
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp = tempfile.NamedTemporaryFile(
            "w", delete=False, encoding="utf-8", suffix=".json", prefix=".tmp_cache_", dir=directory
        )
        try:
            json.dump(self.data, tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        finally:
            tmp.close()
        os.replace(tmp.name, self.path)


# ------------- HTTP Client -------------


class HttpClient:
    """HTTP client with a bounded timeout, optional caching and rate limiting.

    Each call issues exactly one request; failures surface as ``httpx``
    exceptions for the caller to absorb.
    """

    def __init__(
        self,
        timeout: float,
        user_agent: str,
        connect_timeout: float | None = None,
        rate_limiter: RateLimiter | None = None,
        cache: DiskCache | None = None,
    ):
        """Initialize HTTP client.

        Args:
            timeout: Wall-clock limit for the whole request, also used as the
                per-phase read/write/pool timeout
            user_agent: User-Agent header value
            connect_timeout: Connection timeout in seconds (defaults to timeout)
            rate_limiter: Optional RateLimiter applied before each request
            cache: Optional DiskCache for JSON responses
        """
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout, connect=connect_timeout if connect_timeout is not None else timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )
        self.total_timeout = timeout
        self.rate_limiter = rate_limiter
        self.cache = cache

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document.

        Raises:
            httpx.HTTPError: On transport errors and non-2xx responses.
            ValueError: If the body is not valid JSON.
        """
        cache_key = None
        if self.cache:
            cache_key = json.dumps({"u": url, "p": params}, sort_keys=True)
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached
        if self.rate_limiter:
            self.rate_limiter.wait()
        # httpx timeouts bound each phase; the deadline bounds the whole exchange.
        deadline = time.monotonic() + self.total_timeout
        chunks: list[bytes] = []
        with self.client.stream("GET", url, params=params, headers={"Accept": "application/json"}) as resp:
            resp.raise_for_status()
            for chunk in resp.iter_bytes():
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise httpx.ReadTimeout(
                        f"No complete response within {self.total_timeout:g}s", request=resp.request
                    )
        data = json.loads(b"".join(chunks))
        if self.cache and cache_key:
            self.cache.set(cache_key, data)
        return data

    def close(self) -> None:
        self.client.close()
