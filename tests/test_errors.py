from __future__ import annotations

from milestone_maintainer.errors import (
    IndeterminateHistoryError,
    MutationError,
    classify_error,
    redact,
)


def test_classify_rate_limit():
    info = classify_error(RuntimeError("API Rate Limit Exceeded"))
    assert info.category == "github.rate_limit"
    assert info.transient is True


def test_classify_abuse():
    info = classify_error(RuntimeError("Abuse detection triggered"))
    assert info.category == "github.abuse"


def test_classify_network():
    info = classify_error(RuntimeError("Connection reset by peer"))
    assert info.category == "network"
    assert info.transient is True


def test_classify_history_and_mutation():
    history = classify_error(IndeterminateHistoryError("failed to read events", issue_number=4))
    assert history.category == "history"
    assert history.original_type == "IndeterminateHistoryError"
    mutation = classify_error(MutationError("label_add failed", issue_number=4))
    assert mutation.category == "mutation"
    assert mutation.transient is False


def test_classify_generic():
    assert classify_error(ValueError("Some other problem")).category == "generic"


def test_redact_tokens():
    sample = (
        "Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl "
        "and header Authorization: Bearer abc.def"
    )
    out = redact(sample)
    assert "ghp_" not in out
    assert "github_pat_" not in out
    assert "abc.def" not in out
    assert "Authorization: Bearer <redacted>" in out


def test_classify_redacts_message():
    info = classify_error(MutationError("comment_post failed for ghp_ABCDEFGHIJKLMNOPQRSTUVWX"))
    assert "<redacted>" in info.message
