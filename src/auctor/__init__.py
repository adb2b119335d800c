"""auctor - rename documents to surname-year.<ext>.

This package provides tools for:
- Extracting author/year evidence from document metadata, first-page text
  and CrossRef
- Resolving that evidence into a single rename proposal
- Applying the proposal without clobbering existing files

Example usage:
    from auctor import EvidenceCollector, RenameTransaction, Resolver

    collector = EvidenceCollector(metadata, text, lookup)
    proposal = Resolver().resolve(collector.collect(path))
    result = RenameTransaction(dry_run=True).apply(path, proposal)
"""

from auctor._version import __version__

from auctor.config import ConfigError, RenamerConfig, load_config
from auctor.extractors import (
    ExiftoolMetadataProvider,
    MetadataEvidence,
    MetadataProvider,
    PdftotextTextProvider,
    TextEvidence,
    TextProvider,
    extract_metadata,
    extract_text_evidence,
)
from auctor.lookup import (
    BibliographicRecord,
    CrossrefLookupService,
    LookupResult,
    LookupService,
    OfflineLookupService,
)
from auctor.renamer import (
    RenameOutcome,
    RenameResult,
    RenameTransaction,
    auto_confirm,
    prompt_confirm,
)
from auctor.resolver import (
    SURNAME_SOURCES,
    YEAR_SOURCES,
    DocumentEvidence,
    EvidenceCollector,
    EvidenceSource,
    Proposal,
    Resolver,
    SurnameCandidate,
    YearCandidate,
)
from auctor.utils import (
    DEFAULT_JUNK_VOCABULARY,
    DiskCache,
    HttpClient,
    JunkVocabulary,
    RateLimiter,
    clean,
    find_doi,
    find_etal_author,
    is_junk,
    is_valid_year,
    strip_diacritics,
    surname_from,
    year_of,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "ConfigError",
    "RenamerConfig",
    "load_config",
    # Extraction
    "ExiftoolMetadataProvider",
    "MetadataEvidence",
    "MetadataProvider",
    "PdftotextTextProvider",
    "TextEvidence",
    "TextProvider",
    "extract_metadata",
    "extract_text_evidence",
    # Lookup
    "BibliographicRecord",
    "CrossrefLookupService",
    "LookupResult",
    "LookupService",
    "OfflineLookupService",
    # Resolution
    "SURNAME_SOURCES",
    "YEAR_SOURCES",
    "DocumentEvidence",
    "EvidenceCollector",
    "EvidenceSource",
    "Proposal",
    "Resolver",
    "SurnameCandidate",
    "YearCandidate",
    # Renaming
    "RenameOutcome",
    "RenameResult",
    "RenameTransaction",
    "auto_confirm",
    "prompt_confirm",
    # Utilities
    "DEFAULT_JUNK_VOCABULARY",
    "DiskCache",
    "HttpClient",
    "JunkVocabulary",
    "RateLimiter",
    "clean",
    "find_doi",
    "find_etal_author",
    "is_junk",
    "is_valid_year",
    "strip_diacritics",
    "surname_from",
    "year_of",
]
