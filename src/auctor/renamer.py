"""Collision-safe application of a rename Proposal to the filesystem."""

from __future__ import annotations

import logging
import os
import string
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TextIO

from auctor.resolver import Proposal

Confirm = Callable[[str], bool]

COLLISION_SUFFIXES = string.ascii_lowercase


class RenameOutcome(str, Enum):
    RENAMED = "renamed"
    SKIPPED_UNCHANGED = "skipped-unchanged"
    SKIPPED_NO_EVIDENCE = "skipped-no-evidence"
    SKIPPED_USER_DECLINED = "skipped-user-declined"
    SKIPPED_MOVE_FAILED = "skipped-move-failed"
    COLLISION_UNRESOLVED = "collision-unresolved"
    PROPOSED_DRY_RUN = "proposed-dry-run"


@dataclass(frozen=True)
class RenameResult:
    """Outcome of one rename transaction."""

    source: Path
    outcome: RenameOutcome
    target: Path | None = None


def prompt_confirm(prompt: str) -> bool:
    """Ask on the terminal; only ``y``/``yes`` counts as agreement."""
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def auto_confirm(prompt: str) -> bool:
    return True


def same_entry(a: str | Path, b: str | Path) -> bool:
    """Check whether two paths name the same directory entry.

    Canonical (symlink-free) paths are compared, so a hard link to the same
    file is a distinct entry. Paths differing only in case count as the same
    entry when they resolve to the same file, as on case-insensitive volumes.
    """
    real_a, real_b = os.path.realpath(a), os.path.realpath(b)
    if real_a == real_b:
        return True
    if real_a.casefold() != real_b.casefold():
        return False
    try:
        return os.path.samefile(real_a, real_b)
    except OSError:
        return False


class RenameTransaction:
    """Applies proposals one document at a time.

    Args:
        dry_run: Only report the mapping, never touch the filesystem.
        confirm: Confirmation capability asked before each move; None means
            moves proceed without asking.
        log_sink: Text stream receiving ``"<original> -> <new>"`` per rename.
        logger: Logger for progress and diagnostics.
    """

    def __init__(
        self,
        dry_run: bool = False,
        confirm: Confirm | None = None,
        log_sink: TextIO | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.dry_run = dry_run
        self.confirm = confirm
        self.log_sink = log_sink
        self.logger = logger or logging.getLogger(__name__)

    def find_free_target(self, source: Path, target: Path) -> Path | None:
        """Return target, or the first letter-suffixed alternative not yet taken.

        Returns the source itself when it already carries one of the
        suffixed names, and None when every alternative is occupied.
        """
        if not os.path.lexists(target) or same_entry(source, target):
            return target
        for letter in COLLISION_SUFFIXES:
            alt = target.with_name(f"{target.stem}{letter}{target.suffix}")
            if not os.path.lexists(alt):
                return alt
            if same_entry(source, alt):
                return source
        return None

    def apply(self, source: str | Path, proposal: Proposal | None) -> RenameResult:
        source = Path(source)
        original = source.name
        if proposal is None:
            self.logger.info("Could not determine author/year for '%s'. Skipping.", original)
            return RenameResult(source, RenameOutcome.SKIPPED_NO_EVIDENCE)

        proposed = proposal.filename(source.suffix)
        if proposed == original:
            self.logger.info("'%s' already named correctly. Skipping.", original)
            return RenameResult(source, RenameOutcome.SKIPPED_UNCHANGED, source)

        target = self.find_free_target(source, source.with_name(proposed))
        if target is None:
            self.logger.warning(
                "Collision: '%s' and alternatives a-z already exist for '%s'. Skipping.", proposed, original
            )
            return RenameResult(source, RenameOutcome.COLLISION_UNRESOLVED)
        if target == source:
            self.logger.info("'%s' already carries a suffixed name for '%s'. Skipping.", original, proposed)
            return RenameResult(source, RenameOutcome.SKIPPED_UNCHANGED, source)
        if target.name != proposed:
            self.logger.info("Collision for '%s'. Using alternative name '%s'.", proposed, target.name)

        mapping = f"{original} -> {target.name}"
        if self.dry_run:
            self.logger.info("%s", mapping)
            return RenameResult(source, RenameOutcome.PROPOSED_DRY_RUN, target)

        if self.confirm is not None and not self.confirm(f"{mapping}  Apply rename? [y/N]: "):
            self.logger.info("Skipped by user: %s", original)
            return RenameResult(source, RenameOutcome.SKIPPED_USER_DECLINED, target)

        return self._move(source, target)

    def _move(self, source: Path, target: Path) -> RenameResult:
        if os.path.lexists(target) and not same_entry(source, target):
            self.logger.warning("Collision: '%s' appeared before rename of '%s'. Skipping.", target.name, source.name)
            return RenameResult(source, RenameOutcome.COLLISION_UNRESOLVED, target)
        try:
            os.rename(source, target)
        except OSError as e:
            if os.path.lexists(target) and not same_entry(source, target):
                self.logger.warning("Collision: '%s' appeared while renaming '%s': %s", target.name, source.name, e)
                return RenameResult(source, RenameOutcome.COLLISION_UNRESOLVED, target)
            self.logger.error("Failed to rename '%s' to '%s': %s", source.name, target.name, e)
            return RenameResult(source, RenameOutcome.SKIPPED_MOVE_FAILED, target)

        self.logger.info("Renamed: %s -> %s", source.name, target.name)
        if self.log_sink is not None:
            try:
                self.log_sink.write(f"{source.name} -> {target.name}\n")
                self.log_sink.flush()
            except (OSError, ValueError) as e:
                self.logger.warning("Could not record '%s -> %s' in rename log: %s", source.name, target.name, e)
        return RenameResult(source, RenameOutcome.RENAMED, target)
