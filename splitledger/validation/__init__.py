"""Submission validation package."""

from splitledger.validation.validator import SubmissionValidator

__all__ = ["SubmissionValidator"]
