"""Tests for the deed finalizer"""
from datetime import timedelta

import pytest

from deedflow.domain.errors import (
    DeedAlreadyExistsError, DeedAlreadyFinalizedError, DeedNotFoundError,
    TerminalStateViolationError, ValidationError, WitnessValidationError
)
from deedflow.engine.deed_finalizer import DeedFinalizer

from tests.conftest import FIXED_NOW, make_deed


@pytest.fixture
def finalizer():
    return DeedFinalizer()


class TestDraft:

    def test_create_draft(self, finalizer):
        deed = finalizer.create_draft("APP-1", "witness-a", "witness-b", FIXED_NOW, content="terms")
        assert deed.deed_id.startswith("DEED-")
        assert not deed.is_finalized
        assert deed.content == "terms"

    @pytest.mark.parametrize("w1,w2", [("", "witness-b"), ("witness-a", "  "), (None, "witness-b")])
    def test_both_witnesses_required(self, finalizer, w1, w2):
        with pytest.raises(WitnessValidationError, match="Both witnesses are required"):
            finalizer.create_draft("APP-1", w1, w2, FIXED_NOW)

    def test_witnesses_must_differ(self, finalizer):
        with pytest.raises(WitnessValidationError, match="two different people"):
            finalizer.create_draft("APP-1", "witness-a", "witness-a", FIXED_NOW)

    def test_second_draft_rejected(self, finalizer):
        with pytest.raises(DeedAlreadyExistsError):
            finalizer.create_draft("APP-1", "a", "b", FIXED_NOW, existing=make_deed())

    def test_update_draft(self, finalizer):
        later = FIXED_NOW + timedelta(hours=1)
        updated = finalizer.update_draft(make_deed(), later, witness2_id="witness-c")
        assert updated.witness1_id == "witness-a"
        assert updated.witness2_id == "witness-c"
        assert updated.updated_at == later

    def test_update_cannot_make_witnesses_equal(self, finalizer):
        with pytest.raises(WitnessValidationError):
            finalizer.update_draft(make_deed(), FIXED_NOW, witness2_id="witness-a")

    def test_update_without_draft(self, finalizer):
        with pytest.raises(DeedNotFoundError):
            finalizer.update_draft(None, FIXED_NOW, content="x")


class TestFinalize:

    def test_finalize(self, finalizer):
        deed = finalizer.finalize(make_deed(), "sig-a", "sig-b", FIXED_NOW, document_ref="blob://deed.pdf")
        assert deed.is_finalized
        assert deed.finalized_at == FIXED_NOW
        assert deed.finalized_document_ref == "blob://deed.pdf"
        assert len(deed.hash_sha256) == 64
        assert deed.hash_sha256 == DeedFinalizer.compute_hash(deed)

    def test_attach_document_matches_finalizing_with_it(self, finalizer):
        unsigned = finalizer.finalize(make_deed(), "sig-a", "sig-b", FIXED_NOW)
        attached = finalizer.attach_document(unsigned, "blob://deed.pdf")
        direct = finalizer.finalize(make_deed(), "sig-a", "sig-b", FIXED_NOW, document_ref="blob://deed.pdf")
        assert attached == direct
        assert attached.hash_sha256 != unsigned.hash_sha256

    def test_attach_document_needs_finalized_deed(self, finalizer):
        with pytest.raises(ValidationError):
            finalizer.attach_document(make_deed(), "blob://deed.pdf")

    def test_hash_depends_on_signatures(self, finalizer):
        first = finalizer.finalize(make_deed(), "sig-a", "sig-b", FIXED_NOW)
        second = finalizer.finalize(make_deed(), "sig-a", "sig-x", FIXED_NOW)
        assert first.hash_sha256 != second.hash_sha256

    @pytest.mark.parametrize("sig1,sig2", [("sig-a", "sig-b"), ("same", "same"), ("", "")])
    def test_same_witness_fails_regardless_of_signatures(self, finalizer, sig1, sig2):
        deed = make_deed(witness1_id="witness-a", witness2_id="witness-a")
        with pytest.raises(WitnessValidationError, match="two different people"):
            finalizer.finalize(deed, sig1, sig2, FIXED_NOW)

    def test_missing_signature(self, finalizer):
        with pytest.raises(WitnessValidationError) as exc_info:
            finalizer.finalize(make_deed(), "sig-a", " ", FIXED_NOW)
        assert exc_info.value.details["missing_signatures"] == ["witness2"]

    def test_finalize_without_draft(self, finalizer):
        with pytest.raises(DeedNotFoundError, match="Transfer deed not created"):
            finalizer.finalize(None, "sig-a", "sig-b", FIXED_NOW)

    def test_finalization_is_one_way(self, finalizer):
        finalized = finalizer.finalize(make_deed(), "sig-a", "sig-b", FIXED_NOW)
        with pytest.raises(DeedAlreadyFinalizedError) as exc_info:
            finalizer.finalize(finalized, "sig-a", "sig-b", FIXED_NOW)
        assert isinstance(exc_info.value, TerminalStateViolationError)
        with pytest.raises(DeedAlreadyFinalizedError):
            finalizer.update_draft(finalized, FIXED_NOW, content="changed")
        with pytest.raises(DeedAlreadyFinalizedError):
            finalizer.create_draft("APP-test", "a", "b", FIXED_NOW, existing=finalized)
