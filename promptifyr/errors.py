"""
Purpose: Error taxonomy for the submission pipeline.
Description: Local errors (validation, not found) are terminal; evaluation, conflict and
concurrency errors are marked retryable so callers can resubmit.
Key Functions/Classes: PromptifyrError, ValidationError, NotFoundError, EvaluationUnavailable,
ConflictError, ConcurrencyError.
"""

from __future__ import annotations


class PromptifyrError(Exception):
    retryable: bool = False


class ValidationError(PromptifyrError):
    """Malformed input; nothing was mutated."""


class NotFoundError(PromptifyrError):
    """Referenced challenge, user or version does not exist."""


class EvaluationUnavailable(PromptifyrError):
    """The oracle could not be reached; the submission was aborted before any write."""

    retryable = True


class ConflictError(PromptifyrError):
    """A version number was already taken for the (user, challenge) pair."""

    retryable = True


class ConcurrencyError(PromptifyrError):
    """A user aggregate update kept losing its compare-and-set race."""

    retryable = True
