"""Shared fixtures for auctor tests."""

from __future__ import annotations

import logging
from typing import Any, Dict

import pytest

from auctor import (
    EvidenceCollector,
    HttpClient,
    LookupResult,
    LookupService,
    MetadataProvider,
    Resolver,
    TextProvider,
)


@pytest.fixture
def logger():
    """Create a test logger."""
    return logging.getLogger("test")


class FakeMetadataProvider(MetadataProvider):
    """Metadata provider returning predetermined fields."""

    def __init__(self, fields: Dict[str, str] | None = None, error: Exception | None = None):
        self.fields = fields or {}
        self.error = error
        self.calls: list[str] = []

    def query(self, path):
        self.calls.append(str(path))
        if self.error:
            raise self.error
        return dict(self.fields)


class FakeTextProvider(TextProvider):
    """Text provider returning predetermined first-page text."""

    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error

    def first_page(self, path):
        if self.error:
            raise self.error
        return self.text


class FakeLookupService(LookupService):
    """Lookup service answering from a DOI -> LookupResult mapping."""

    def __init__(self, results: Dict[str, LookupResult] | None = None):
        self.results = results if results is not None else {}
        self.calls: list[str] = []

    def lookup(self, doi):
        self.calls.append(doi)
        return self.results.get(doi, LookupResult())


class FakeHttpClient(HttpClient):
    """Fake HTTP client for testing without network calls."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        # Don't call parent __init__ to avoid setting up real HTTP
        self.response = response
        self.error = error
        self.urls: list[str] = []

    def get_json(self, url, params=None):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def make_collector(logger):
    """Factory fixture for an EvidenceCollector over fake collaborators."""

    def _make(metadata=None, text="", lookups=None):
        return EvidenceCollector(
            metadata=FakeMetadataProvider(metadata),
            text=FakeTextProvider(text),
            lookup=FakeLookupService(lookups),
            logger=logger,
        )

    return _make


@pytest.fixture
def resolver(logger):
    """Create a Resolver with the default junk vocabulary."""
    return Resolver(logger=logger)


@pytest.fixture
def make_document(tmp_path):
    """Factory fixture creating a document file under tmp_path."""

    def _make(name: str = "paper.pdf", content: bytes = b"%PDF-1.4 test") -> Any:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _make
