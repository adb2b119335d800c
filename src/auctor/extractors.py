"""Evidence extraction from document metadata and first-page text.

Both extractors sit behind narrow provider interfaces so the resolver can be
exercised with fakes. The production providers shell out to ``exiftool`` and
``pdftotext``; any failure there is absorbed and reported as empty evidence.
"""

from __future__ import annotations

import json
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from auctor.utils import find_doi, find_etal_author, year_of

logger = logging.getLogger(__name__)

METADATA_FIELDS = ("Author", "Creator", "CreateDate", "ModifyDate", "Identifier", "DOI")


# ------------- Provider interfaces -------------


class MetadataProvider(ABC):
    """Source of raw embedded document metadata."""

    @abstractmethod
    def query(self, path: str | Path) -> dict[str, str]:
        """Return the metadata fields found for path.

        Keys are a subset of METADATA_FIELDS. An empty dict means nothing
        could be extracted.
        """


class TextProvider(ABC):
    """Source of a document's first-page plain text."""

    @abstractmethod
    def first_page(self, path: str | Path) -> str:
        """Return the text of the first page, or an empty string."""


# ------------- Production providers -------------


def _run_tool(cmd: list[str], timeout: float) -> str | None:
    """Run an external tool and return its stdout, or None on any failure."""
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("%s failed: %s", cmd[0], e)
        return None
    if result.returncode != 0:
        logger.debug("%s exited with status %d", cmd[0], result.returncode)
        return None
    return result.stdout.decode("utf-8", errors="replace")


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(_as_text(v) for v in value if v is not None)
    return str(value).strip()


class ExiftoolMetadataProvider(MetadataProvider):
    """Metadata provider backed by the exiftool CLI."""

    def __init__(self, executable: str = "exiftool", timeout: float = 30.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def query(self, path: str | Path) -> dict[str, str]:
        cmd = [self.executable, "-j"] + [f"-{name}" for name in METADATA_FIELDS] + [str(path)]
        out = _run_tool(cmd, self.timeout)
        if not out:
            return {}
        try:
            data = json.loads(out)
        except json.JSONDecodeError as e:
            logger.debug("exiftool returned unparsable JSON for %s: %s", path, e)
            return {}
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return {}
        record = data[0]
        return {name: _as_text(record.get(name)) for name in METADATA_FIELDS if record.get(name) is not None}


class PdftotextTextProvider(TextProvider):
    """Text provider backed by the pdftotext CLI (poppler-utils), first page only."""

    def __init__(self, executable: str = "pdftotext", timeout: float = 30.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def first_page(self, path: str | Path) -> str:
        out = _run_tool([self.executable, "-f", "1", "-l", "1", "-enc", "UTF-8", str(path), "-"], self.timeout)
        return out or ""


# ------------- Evidence -------------


@dataclass(frozen=True)
class MetadataEvidence:
    """Raw author evidence, year and DOI taken from embedded metadata."""

    author: str = ""
    creator: str = ""
    year: str = ""
    doi: str = ""


@dataclass(frozen=True)
class TextEvidence:
    """DOI, year and "et al." author hint derived from first-page text."""

    doi: str = ""
    year: str = ""
    etal_author: str = ""


def extract_metadata(provider: MetadataProvider, path: str | Path) -> MetadataEvidence:
    """Extract metadata evidence for one document. Never raises."""
    try:
        fields = provider.query(path) or {}
    except Exception as e:
        logger.debug("Metadata extraction failed for %s: %s", path, e)
        return MetadataEvidence()

    year = year_of(fields.get("CreateDate")) or year_of(fields.get("ModifyDate")) or ""
    doi = find_doi(fields.get("Identifier")) or find_doi(fields.get("DOI"))
    evidence = MetadataEvidence(
        author=fields.get("Author", ""),
        creator=fields.get("Creator", ""),
        year=year,
        doi=doi,
    )
    logger.debug(
        "Metadata: author=%r creator=%r year=%r doi=%r", evidence.author, evidence.creator, evidence.year, evidence.doi
    )
    return evidence


def extract_text_evidence(provider: TextProvider, path: str | Path) -> TextEvidence:
    """Extract first-page text evidence for one document. Never raises."""
    try:
        text = provider.first_page(path) or ""
    except Exception as e:
        logger.debug("Text extraction failed for %s: %s", path, e)
        return TextEvidence()
    if not text.strip():
        return TextEvidence()

    evidence = TextEvidence(
        doi=find_doi(text),
        year=year_of(text) or "",
        etal_author=find_etal_author(text),
    )
    logger.debug("Text: doi=%r year=%r etal=%r", evidence.doi, evidence.year, evidence.etal_author)
    return evidence
