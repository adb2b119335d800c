"""Tests for the rename transaction."""

from __future__ import annotations

import io
import os
import string
from unittest.mock import patch

import pytest

from auctor import Proposal, RenameOutcome, RenameTransaction, auto_confirm, prompt_confirm
from auctor.renamer import same_entry


@pytest.fixture
def transaction(logger):
    """A non-interactive transaction that performs real moves."""
    return RenameTransaction(dry_run=False, confirm=None, logger=logger)


class TestConfirmation:
    """Tests for confirmation capabilities."""

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", " YES "])
    def test_prompt_accepts_yes(self, answer):
        with patch("builtins.input", return_value=answer):
            assert prompt_confirm("Rename? ") is True

    @pytest.mark.parametrize("answer", ["", "n", "no", "yep", "sure"])
    def test_prompt_rejects_everything_else(self, answer):
        with patch("builtins.input", return_value=answer):
            assert prompt_confirm("Rename? ") is False

    def test_prompt_eof_is_no(self):
        with patch("builtins.input", side_effect=EOFError):
            assert prompt_confirm("Rename? ") is False

    def test_auto_confirm(self):
        assert auto_confirm("anything") is True


class TestRenameTransaction:
    """Tests for RenameTransaction.apply."""

    def test_no_proposal(self, transaction, make_document):
        doc = make_document("paper.pdf")
        result = transaction.apply(doc, None)
        assert result.outcome is RenameOutcome.SKIPPED_NO_EVIDENCE
        assert doc.exists()

    def test_renames(self, transaction, make_document):
        doc = make_document("paper.pdf", b"content")
        result = transaction.apply(doc, Proposal("smith", "2019"))
        assert result.outcome is RenameOutcome.RENAMED
        assert result.target == doc.with_name("smith-2019.pdf")
        assert not doc.exists()
        assert result.target.read_bytes() == b"content"

    def test_keeps_original_extension(self, transaction, make_document):
        doc = make_document("Paper.PDF")
        result = transaction.apply(doc, Proposal("smith", "2019"))
        assert result.target.name == "smith-2019.PDF"

    def test_unchanged_performs_no_mutation(self, transaction, make_document, tmp_path):
        doc = make_document("brown-2018.pdf")
        before = sorted(os.listdir(tmp_path))
        with patch("auctor.renamer.os.rename") as rename:
            result = transaction.apply(doc, Proposal("brown", "2018"))
        assert result.outcome is RenameOutcome.SKIPPED_UNCHANGED
        rename.assert_not_called()
        assert sorted(os.listdir(tmp_path)) == before

    def test_collision_uses_letter_suffix(self, transaction, make_document):
        occupant = make_document("lee-2020.pdf", b"other")
        doc = make_document("scan.pdf", b"mine")
        result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.RENAMED
        assert result.target.name == "lee-2020a.pdf"
        assert occupant.read_bytes() == b"other"
        assert result.target.read_bytes() == b"mine"

    def test_collision_z_is_last_free_suffix(self, transaction, make_document):
        make_document("lee-2020.pdf")
        for letter in string.ascii_lowercase[:-1]:
            make_document(f"lee-2020{letter}.pdf")
        doc = make_document("scan.pdf")
        result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.RENAMED
        assert result.target.name == "lee-2020z.pdf"

    def test_collision_unresolved_when_all_taken(self, transaction, make_document):
        make_document("lee-2020.pdf")
        for letter in string.ascii_lowercase:
            make_document(f"lee-2020{letter}.pdf")
        doc = make_document("scan.pdf")
        result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.COLLISION_UNRESOLVED
        assert doc.exists()

    def test_already_suffixed_document_is_unchanged(self, transaction, make_document):
        make_document("lee-2020.pdf")
        doc = make_document("lee-2020a.pdf")
        result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.SKIPPED_UNCHANGED
        assert doc.exists()

    def test_same_entry_is_not_a_collision(self, transaction, make_document):
        doc = make_document("paper.pdf")
        link = doc.with_name("smith-2019.pdf")
        os.symlink(doc, link)
        target = transaction.find_free_target(doc, link)
        assert target == link

    def test_dry_run_touches_nothing(self, logger, make_document, tmp_path):
        make_document("lee-2020.pdf")
        doc = make_document("scan.pdf")
        before = sorted(os.listdir(tmp_path))
        result = RenameTransaction(dry_run=True, logger=logger).apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.PROPOSED_DRY_RUN
        assert result.target.name == "lee-2020a.pdf"
        assert sorted(os.listdir(tmp_path)) == before

    def test_dry_run_does_not_ask(self, logger, make_document):
        asked = []
        txn = RenameTransaction(dry_run=True, confirm=lambda p: asked.append(p) or True, logger=logger)
        txn.apply(make_document("scan.pdf"), Proposal("lee", "2020"))
        assert asked == []

    def test_user_declines(self, logger, make_document):
        doc = make_document("scan.pdf")
        prompts = []

        def decline(prompt):
            prompts.append(prompt)
            return False

        result = RenameTransaction(confirm=decline, logger=logger).apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.SKIPPED_USER_DECLINED
        assert doc.exists()
        assert len(prompts) == 1 and "scan.pdf -> lee-2020.pdf" in prompts[0]

    def test_user_accepts(self, logger, make_document):
        doc = make_document("scan.pdf")
        result = RenameTransaction(confirm=auto_confirm, logger=logger).apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.RENAMED

    def test_log_sink_receives_mapping(self, logger, make_document):
        sink = io.StringIO()
        doc = make_document("scan.pdf")
        RenameTransaction(log_sink=sink, logger=logger).apply(doc, Proposal("lee", "2020"))
        assert sink.getvalue() == "scan.pdf -> lee-2020.pdf\n"

    def test_log_sink_untouched_on_skip(self, logger, make_document):
        sink = io.StringIO()
        RenameTransaction(log_sink=sink, logger=logger).apply(make_document("lee-2020.pdf"), Proposal("lee", "2020"))
        assert sink.getvalue() == ""

    def test_move_failure(self, transaction, make_document):
        sink = io.StringIO()
        transaction.log_sink = sink
        doc = make_document("scan.pdf")
        with patch("auctor.renamer.os.rename", side_effect=PermissionError("denied")):
            result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.SKIPPED_MOVE_FAILED
        assert doc.exists()
        assert sink.getvalue() == ""

    def test_move_failure_with_racing_occupant_is_collision(self, transaction, make_document):
        doc = make_document("scan.pdf")

        def racing_rename(src, dst):
            with open(dst, "wb") as f:
                f.write(b"racer")
            raise FileExistsError("exists")

        with patch("auctor.renamer.os.rename", side_effect=racing_rename):
            result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.COLLISION_UNRESOLVED
        assert doc.exists()

    def test_occupant_appearing_after_confirmation_is_collision(self, logger, make_document):
        doc = make_document("scan.pdf")

        def slow_confirm(prompt):
            doc.with_name("lee-2020.pdf").write_bytes(b"racer")
            return True

        result = RenameTransaction(confirm=slow_confirm, logger=logger).apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.COLLISION_UNRESOLVED
        assert doc.with_name("lee-2020.pdf").read_bytes() == b"racer"
        assert doc.exists()

    def test_hard_link_at_target_is_a_collision(self, transaction, make_document):
        doc = make_document("scan.pdf", b"mine")
        os.link(doc, doc.with_name("lee-2020.pdf"))
        result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.RENAMED
        assert result.target.name == "lee-2020a.pdf"
        assert not doc.exists()
        assert doc.with_name("lee-2020.pdf").read_bytes() == b"mine"

    def test_failing_log_sink_keeps_renamed(self, transaction, make_document):
        class FullDisk(io.StringIO):
            def write(self, s):
                raise OSError("disk full")

        transaction.log_sink = FullDisk()
        doc = make_document("scan.pdf")
        result = transaction.apply(doc, Proposal("lee", "2020"))
        assert result.outcome is RenameOutcome.RENAMED
        assert doc.with_name("lee-2020.pdf").exists()


class TestSameEntry:
    """Tests for same_entry."""

    def test_same_path(self, make_document):
        doc = make_document("paper.pdf")
        assert same_entry(doc, doc)

    def test_symlink_is_same_entry(self, make_document):
        doc = make_document("paper.pdf")
        link = doc.with_name("link.pdf")
        os.symlink(doc, link)
        assert same_entry(doc, link)

    def test_hard_link_is_distinct_entry(self, make_document):
        doc = make_document("paper.pdf")
        link = doc.with_name("other.pdf")
        os.link(doc, link)
        assert not same_entry(doc, link)

    def test_case_variants_of_distinct_files(self, make_document):
        upper = make_document("Smith-2019.pdf", b"1")
        lower = make_document("smith-2019.pdf", b"2")
        if os.path.samefile(upper, lower):
            pytest.skip("case-insensitive filesystem")
        assert not same_entry(upper, lower)

    def test_case_variant_resolving_to_same_file(self, make_document):
        doc = make_document("Smith-2019.pdf")
        with patch("auctor.renamer.os.path.samefile", return_value=True):
            assert same_entry(doc, doc.with_name("smith-2019.pdf"))

    def test_missing_paths(self, tmp_path):
        assert not same_entry(tmp_path / "a.pdf", tmp_path / "b.pdf")
