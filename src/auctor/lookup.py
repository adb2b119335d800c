"""DOI-keyed bibliographic lookup against the CrossRef works API."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from auctor.utils import CROSSREF_API, HttpClient

FieldPath = tuple[Any, ...]

# Fallback orders, tried first to last.
AUTHOR_FIELD_PATHS: tuple[FieldPath, ...] = (
    ("author", 0, "family"),
    ("author", 0, "name"),
)
YEAR_FIELD_PATHS: tuple[FieldPath, ...] = (
    ("published-print", "date-parts", 0, 0),
    ("published-online", "date-parts", 0, 0),
    ("issued", "date-parts", 0, 0),
    ("created", "date-parts", 0, 0),
)


@dataclass(frozen=True)
class LookupResult:
    """Raw first-author name and year returned by a lookup (empty when unknown)."""

    author: str = ""
    year: str = ""


class BibliographicRecord:
    """Typed optional-field accessor over a CrossRef ``message`` object."""

    def __init__(self, message: dict[str, Any]) -> None:
        self.message = message

    def get(self, path: FieldPath) -> Any | None:
        """Follow path through nested dicts/lists, returning None when any step is missing."""
        node: Any = self.message
        for step in path:
            if isinstance(step, int):
                if not isinstance(node, list) or len(node) <= step:
                    return None
            elif not isinstance(node, dict) or step not in node:
                return None
            node = node[step]
        return node

    def first(self, paths: tuple[FieldPath, ...]) -> tuple[FieldPath, Any] | None:
        """Return the first path with a present, non-empty value."""
        for path in paths:
            value = self.get(path)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            return path, value
        return None

    def first_author(self) -> str:
        hit = self.first(AUTHOR_FIELD_PATHS)
        if hit is None:
            return ""
        path, value = hit
        value = str(value).strip()
        if path[-1] == "name":
            # Display names carry given names too; keep the last token.
            return value.split()[-1]
        return value

    def year(self) -> str:
        hit = self.first(YEAR_FIELD_PATHS)
        if hit is None:
            return ""
        _, value = hit
        return str(value).strip()


class LookupService(ABC):
    """Bibliographic service keyed by DOI."""

    @abstractmethod
    def lookup(self, doi: str) -> LookupResult:
        """Return the first author and year for doi; empty fields when unknown."""


class OfflineLookupService(LookupService):
    """Lookup service that never contacts the network."""

    def lookup(self, doi: str) -> LookupResult:
        return LookupResult()


class CrossrefLookupService(LookupService):
    """Lookup service backed by the CrossRef REST ``/works/{doi}`` endpoint."""

    def __init__(self, http: HttpClient, logger: logging.Logger | None = None, api_url: str = CROSSREF_API) -> None:
        self.http = http
        self.logger = logger or logging.getLogger(__name__)
        self.api_url = api_url

    def fetch(self, doi: str) -> BibliographicRecord | None:
        """Fetch the bibliographic record for doi, or None on any failure."""
        if not doi or not doi.startswith("10."):
            return None
        url = f"{self.api_url}/{quote(doi, safe='')}"
        try:
            data = self.http.get_json(url)
        except Exception as e:
            self.logger.debug("Crossref works failed for %s: %s", doi, e)
            return None
        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            self.logger.debug("Crossref response for %s has no message", doi)
            return None
        return BibliographicRecord(message)

    def lookup(self, doi: str) -> LookupResult:
        record = self.fetch(doi)
        if record is None:
            return LookupResult()
        result = LookupResult(author=record.first_author(), year=record.year())
        self.logger.debug("Crossref returned: author=%r year=%r", result.author, result.year)
        return result
