"""
Exception hierarchy for the bill-splitting core.

Only collaborator failures and lookups of unknown ids are raised to the
caller. Lines that match no extraction pattern and split-readiness
problems are not errors: the first produces no item, the second is
returned as a message by allocation.validate_split().
"""


class DivvyError(Exception):
    """Base class for all errors raised by this package."""


class CollaboratorFailure(DivvyError):
    """The OCR / text recognition collaborator failed or the image was unusable."""


class ExtractionCancelled(DivvyError):
    """An extraction run was cancelled; its partial results were discarded."""


class ResultsNotReady(DivvyError):
    """Results were read from an extraction run that has not completed."""


class UnknownEntity(DivvyError, KeyError):
    """An item, participant or bill id does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""
