"""
auctor — rename documents to ``surname-year.<ext>``.

For every document found under the given paths, evidence about the first
author and the publication year is gathered from:
  1) CrossRef, when a DOI is found in the metadata or on the first page,
  2) embedded metadata (Author, Creator, CreateDate/ModifyDate) via exiftool,
  3) first-page text via pdftotext ("Smith et al.", years, copyright notices),
  4) the current filename (year only, last resort),
and the best-ranked surviving surname and year are combined into a new name.

Examples
--------
$ auctor --dry-run ~/papers
$ auctor -y --log renames.log paper.pdf other.pdf
$ auctor --config auctor.yaml --mailto me@example.org ~/papers

Exit codes: 0 if at least one document was renamed or proposed, 1 if none
were, 2 if a required external tool is missing.
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TextIO

from auctor._version import __version__
from auctor.config import ConfigError, RenamerConfig, load_config
from auctor.extractors import ExiftoolMetadataProvider, PdftotextTextProvider
from auctor.lookup import CrossrefLookupService, LookupService, OfflineLookupService
from auctor.renamer import RenameOutcome, RenameResult, RenameTransaction, prompt_confirm
from auctor.resolver import EvidenceCollector, Resolver
from auctor.utils import DiskCache, HttpClient, RateLimiter

EXIT_OK = 0
EXIT_NOTHING_DONE = 1
EXIT_MISSING_DEPENDENCY = 2


# ------------- CLI -------------
def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="auctor",
        description="Rename documents to surname-year.<ext> using metadata, first-page text and CrossRef.",
    )
    p.add_argument("inputs", nargs="+", help="Documents or directories (searched recursively)")
    p.add_argument("-n", "--dry-run", action="store_true", default=None, help="Show what would be done, don't rename")
    p.add_argument("-y", "--yes", action="store_true", help="Don't ask, just rename")
    p.add_argument("-v", "--verbose", action="store_true", default=None, help="Verbose / debug output")
    p.add_argument("--log", metavar="FILE", help="Append rename log to FILE")
    p.add_argument("--config", metavar="FILE", help="YAML configuration file")
    p.add_argument("--cache", metavar="FILE", help="On-disk cache file for CrossRef responses")
    p.add_argument("--offline", action="store_true", default=None, help="Never query CrossRef")
    p.add_argument("--mailto", metavar="EMAIL", help="Contact address for the CrossRef polite pool")
    p.add_argument(
        "--ext",
        action="append",
        metavar="EXT",
        help="Document extension to pick up (repeatable, default .pdf)",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def init_logging(verbose: bool) -> logging.Logger:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    return logging.getLogger("auctor")


def build_config(args: argparse.Namespace) -> RenamerConfig:
    """Merge the optional config file with command-line overrides.

    Raises:
        ConfigError: If the config file cannot be loaded.
    """
    config = load_config(args.config) if args.config else RenamerConfig()
    if args.dry_run is not None:
        config.dry_run = args.dry_run
    if args.yes:
        config.confirm = False
    if args.verbose is not None:
        config.verbose = args.verbose
    if args.log:
        config.log_file = args.log
    if args.cache:
        config.cache_path = args.cache
    if args.offline is not None:
        config.offline = args.offline
    if args.mailto:
        config.mailto = args.mailto
    if args.ext:
        config.extensions = tuple(e.lower() if e.startswith(".") else f".{e.lower()}" for e in args.ext)
    return config


# ------------- Environment -------------
def check_dependencies(tools: tuple[str, ...] | list[str]) -> list[str]:
    """Return the required tools that are not on PATH."""
    return [t for t in tools if shutil.which(t) is None]


def discover_documents(
    inputs: list[str], extensions: tuple[str, ...], logger: logging.Logger | None = None
) -> list[Path]:
    """Collect documents from files and directories, in discovery order, without duplicates."""
    logger = logger or logging.getLogger(__name__)
    found: list[Path] = []
    seen: set[Path] = set()

    def add(p: Path) -> None:
        key = p.resolve()
        if key not in seen:
            seen.add(key)
            found.append(p)

    for raw in inputs:
        path = Path(raw).expanduser().absolute()
        if path.is_dir():
            logger.debug("Scanning directory: %s", path)
            for root, dirs, files in os.walk(path, onerror=lambda e: logger.warning("Skipping dir scan error: %s", e)):
                dirs.sort()
                for name in sorted(files):
                    if name.lower().endswith(extensions):
                        add(Path(root) / name)
        elif path.is_file():
            if path.suffix.lower() in extensions:
                add(path)
            else:
                logger.warning("Skipping unsupported file: %s", path)
        else:
            logger.warning("No such path: %s", path)
    return found


# ------------- Run summary -------------
@dataclass
class RunSummary:
    """Per-outcome counts for a run."""

    counts: Counter = field(default_factory=Counter)

    def add(self, result: RenameResult) -> None:
        self.counts[result.outcome] += 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def renamed(self) -> int:
        return self.counts[RenameOutcome.RENAMED]

    @property
    def proposed(self) -> int:
        return self.counts[RenameOutcome.PROPOSED_DRY_RUN]

    @property
    def collisions(self) -> int:
        return self.counts[RenameOutcome.COLLISION_UNRESOLVED]

    @property
    def skipped(self) -> int:
        return self.total - self.renamed - self.proposed

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.renamed or self.proposed else EXIT_NOTHING_DONE

    def report(self, logger: logging.Logger, dry_run: bool) -> None:
        if dry_run:
            logger.info("Summary: proposed=%d, skipped=%d, collisions=%d", self.proposed, self.skipped, self.collisions)
        else:
            logger.info("Summary: renamed=%d, skipped=%d, collisions=%d", self.renamed, self.skipped, self.collisions)
        for outcome in RenameOutcome:
            if self.counts[outcome]:
                logger.debug("  %s: %d", outcome.value, self.counts[outcome])


# ------------- Processing -------------
def build_lookup(config: RenamerConfig, logger: logging.Logger) -> LookupService:
    if config.offline:
        return OfflineLookupService()
    http = HttpClient(
        timeout=config.timeout,
        connect_timeout=config.connect_timeout,
        user_agent=config.effective_user_agent(),
        rate_limiter=RateLimiter(config.rate_limit),
        cache=DiskCache(config.cache_path) if config.cache_path else None,
    )
    return CrossrefLookupService(http=http, logger=logger)


def open_log_sink(path: str | None, config: RenamerConfig, logger: logging.Logger) -> TextIO | None:
    """Open the rename log for appending; failures disable logging."""
    if not path:
        return None
    try:
        fh = open(path, "a", encoding="utf-8")
    except OSError as e:
        logger.warning("Can't write log '%s': %s", path, e)
        return None
    fh.write(f"# {datetime.now().isoformat(timespec='seconds')}   dry={config.dry_run} verbose={config.verbose}\n")
    return fh


def process_document(
    path: Path, collector: EvidenceCollector, resolver: Resolver, transaction: RenameTransaction
) -> RenameResult:
    """Resolve and rename a single document."""
    evidence = collector.collect(path)
    proposal = resolver.resolve(evidence)
    return transaction.apply(path, proposal)


def run(
    documents: list[Path],
    collector: EvidenceCollector,
    resolver: Resolver,
    transaction: RenameTransaction,
    logger: logging.Logger,
) -> RunSummary:
    """Process documents sequentially and aggregate their outcomes."""
    summary = RunSummary()
    total = len(documents)
    for k, doc in enumerate(documents, 1):
        logger.info("[%d/%d] %s", k, total, doc)
        try:
            result = process_document(doc, collector, resolver, transaction)
        except Exception:
            logger.exception("Unexpected error processing '%s'", doc)
            result = RenameResult(doc, RenameOutcome.SKIPPED_MOVE_FAILED)
        summary.add(result)
    return summary


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code: 0=something renamed/proposed, 1=nothing done or bad input,
        2=required external tool missing.
    """
    args = build_arg_parser().parse_args(argv)
    try:
        config = build_config(args)
    except ConfigError as e:
        init_logging(bool(args.verbose)).error("%s", e)
        return EXIT_NOTHING_DONE
    logger = init_logging(config.verbose)

    missing = check_dependencies(config.required_tools)
    if missing:
        logger.error("Missing tool(s): %s", ", ".join(missing))
        return EXIT_MISSING_DEPENDENCY

    documents = discover_documents(args.inputs, config.extensions, logger)
    if not documents:
        logger.error("No documents found in the specified paths.")
        return EXIT_NOTHING_DONE

    collector = EvidenceCollector(
        metadata=ExiftoolMetadataProvider(timeout=config.tool_timeout),
        text=PdftotextTextProvider(timeout=config.tool_timeout),
        lookup=build_lookup(config, logger),
        logger=logger,
    )
    resolver = Resolver(vocabulary=config.vocabulary(), logger=logger)

    log_sink = open_log_sink(config.log_file, config, logger)
    try:
        transaction = RenameTransaction(
            dry_run=config.dry_run,
            confirm=prompt_confirm if config.confirm else None,
            log_sink=log_sink,
            logger=logger,
        )
        logger.info("Processing %d document(s)...", len(documents))
        summary = run(documents, collector, resolver, transaction, logger)
    finally:
        if log_sink is not None:
            log_sink.close()

    summary.report(logger, config.dry_run)
    if config.log_file and log_sink is not None:
        logger.info("Log: %s", os.path.abspath(config.log_file))
    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
