"""Priority-ordered resolution of author/year evidence into a rename proposal.

Evidence for a document comes from four surname sources and four year
sources, each ranked. The resolver normalizes every raw value, drops junk,
and independently picks the best surviving surname and year:

    surname: lookup > metadata-author > text-etal > metadata-creator
    year:    lookup-year > metadata-date > text-year > filename-year

Example:
    collector = EvidenceCollector(metadata, text, lookup)
    evidence = collector.collect("paper.pdf")
    proposal = Resolver().resolve(evidence)
    if proposal:
        print(proposal.filename(".pdf"))  # e.g. "smith-2019.pdf"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from auctor.extractors import (
    MetadataProvider,
    TextProvider,
    extract_metadata,
    extract_text_evidence,
)
from auctor.lookup import LookupResult, LookupService
from auctor.utils import (
    DEFAULT_JUNK_VOCABULARY,
    JunkVocabulary,
    is_junk,
    is_valid_year,
    surname_from,
    year_of,
)


class EvidenceSource(str, Enum):
    """Provenance tag of a surname or year candidate."""

    LOOKUP = "lookup"
    METADATA_AUTHOR = "metadata-author"
    TEXT_ETAL = "text-etal"
    METADATA_CREATOR = "metadata-creator"
    LOOKUP_YEAR = "lookup-year"
    METADATA_DATE = "metadata-date"
    TEXT_YEAR = "text-year"
    FILENAME_YEAR = "filename-year"


SURNAME_SOURCES: tuple[EvidenceSource, ...] = (
    EvidenceSource.LOOKUP,
    EvidenceSource.METADATA_AUTHOR,
    EvidenceSource.TEXT_ETAL,
    EvidenceSource.METADATA_CREATOR,
)

YEAR_SOURCES: tuple[EvidenceSource, ...] = (
    EvidenceSource.LOOKUP_YEAR,
    EvidenceSource.METADATA_DATE,
    EvidenceSource.TEXT_YEAR,
    EvidenceSource.FILENAME_YEAR,
)


@dataclass(frozen=True)
class SurnameCandidate:
    source: EvidenceSource
    raw: str
    normalized: str
    is_junk: bool

    @property
    def usable(self) -> bool:
        return bool(self.normalized) and not self.is_junk


@dataclass(frozen=True)
class YearCandidate:
    source: EvidenceSource
    raw: str
    normalized: str | None


@dataclass(frozen=True)
class DocumentEvidence:
    """Raw evidence strings gathered for one document, keyed by source."""

    lookup_author: str = ""
    metadata_author: str = ""
    etal_author: str = ""
    metadata_creator: str = ""
    lookup_year: str = ""
    metadata_year: str = ""
    text_year: str = ""
    filename: str = ""
    doi: str = ""

    def raw(self, source: EvidenceSource) -> str:
        """Return the raw string contributed by source."""
        return {
            EvidenceSource.LOOKUP: self.lookup_author,
            EvidenceSource.METADATA_AUTHOR: self.metadata_author,
            EvidenceSource.TEXT_ETAL: self.etal_author,
            EvidenceSource.METADATA_CREATOR: self.metadata_creator,
            EvidenceSource.LOOKUP_YEAR: self.lookup_year,
            EvidenceSource.METADATA_DATE: self.metadata_year,
            EvidenceSource.TEXT_YEAR: self.text_year,
            EvidenceSource.FILENAME_YEAR: self.filename,
        }[source]


@dataclass(frozen=True)
class Proposal:
    """A resolved (surname, year) pair.

    Raises:
        ValueError: If surname is empty or year is not a year in 1980-2099.
    """

    surname: str
    year: str

    def __post_init__(self) -> None:
        if not self.surname:
            raise ValueError("Proposal requires a non-empty surname")
        if not is_valid_year(self.year):
            raise ValueError(f"Proposal year out of range: {self.year!r}")

    @property
    def stem(self) -> str:
        return f"{self.surname}-{self.year}"

    def filename(self, ext: str) -> str:
        """Derive the target filename, keeping the original extension."""
        return f"{self.stem}{ext}"


class Resolver:
    """Merges surname and year candidates into a single Proposal."""

    def __init__(self, vocabulary: JunkVocabulary = DEFAULT_JUNK_VOCABULARY, logger: logging.Logger | None = None):
        self.vocabulary = vocabulary
        self.logger = logger or logging.getLogger(__name__)

    def surname_candidates(self, evidence: DocumentEvidence) -> list[SurnameCandidate]:
        candidates = []
        for source in SURNAME_SOURCES:
            raw = evidence.raw(source)
            normalized = surname_from(raw)
            candidates.append(
                SurnameCandidate(
                    source=source,
                    raw=raw,
                    normalized=normalized,
                    is_junk=is_junk(normalized, self.vocabulary),
                )
            )
        return candidates

    def year_candidates(self, evidence: DocumentEvidence) -> list[YearCandidate]:
        candidates = []
        for source in YEAR_SOURCES:
            raw = evidence.raw(source)
            year = year_of(raw)
            candidates.append(YearCandidate(source=source, raw=raw, normalized=year if is_valid_year(year) else None))
        return candidates

    def pick_surname(self, candidates: list[SurnameCandidate]) -> SurnameCandidate | None:
        for cand in candidates:
            if cand.usable:
                self.logger.debug("Using %s surname: %r", cand.source.value, cand.normalized)
                return cand
            if cand.normalized:
                self.logger.debug("Discarding likely junk %s surname: %r", cand.source.value, cand.normalized)
        return None

    def pick_year(self, candidates: list[YearCandidate]) -> YearCandidate | None:
        for cand in candidates:
            if cand.normalized:
                self.logger.debug("Using %s: %r", cand.source.value, cand.normalized)
                return cand
        return None

    def resolve(self, evidence: DocumentEvidence) -> Proposal | None:
        """Resolve evidence into a Proposal, or None when evidence is insufficient."""
        surname = self.pick_surname(self.surname_candidates(evidence))
        if surname is None:
            self.logger.debug("No valid surname.")
            return None
        year = self.pick_year(self.year_candidates(evidence))
        if year is None:
            self.logger.debug("No valid year.")
            return None
        return Proposal(surname=surname.normalized, year=year.normalized or "")


class EvidenceCollector:
    """Runs the metadata, text and lookup collaborators for one document."""

    def __init__(
        self,
        metadata: MetadataProvider,
        text: TextProvider,
        lookup: LookupService,
        logger: logging.Logger | None = None,
    ) -> None:
        self.metadata = metadata
        self.text = text
        self.lookup = lookup
        self.logger = logger or logging.getLogger(__name__)

    def collect(self, path: str | Path) -> DocumentEvidence:
        path = Path(path)
        meta = extract_metadata(self.metadata, path)
        text = extract_text_evidence(self.text, path)

        doi = meta.doi or text.doi
        found = LookupResult()
        if doi:
            self.logger.debug("Found DOI: %s, querying lookup service", doi)
            try:
                found = self.lookup.lookup(doi)
            except Exception as e:
                self.logger.debug("Lookup failed for %s: %s", doi, e)

        return DocumentEvidence(
            lookup_author=found.author,
            metadata_author=meta.author,
            etal_author=text.etal_author,
            metadata_creator=meta.creator,
            lookup_year=found.year,
            metadata_year=meta.year,
            text_year=text.year,
            filename=path.name,
            doi=doi,
        )
