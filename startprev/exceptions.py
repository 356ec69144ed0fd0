"""
Error Taxonomy for the Start Prev Allocation Engine

Input problems subclass ValueError so the entry points can map them to
a 400 response the same way they map any other ValueError.
"""


class AllocationError(Exception):
    """Base class for all engine errors."""


class ValidationError(AllocationError, ValueError):
    """Malformed or missing required fields. Raised before computing."""


class InvalidInputError(AllocationError, ValueError):
    """A release or installment carries a negative amount."""


class MissingScheduleError(AllocationError, ValueError):
    """An installment has no payment date and the calendar cannot project one."""


class OverAllocationError(AllocationError, RuntimeError):
    """
    The engine charged more than a release or the balance allows.

    Never caused by data: the ceiling rule makes it impossible, so seeing
    it means the engine itself is broken.
    """


class PersistenceError(AllocationError):
    """The snapshot store failed to write. Always non-fatal to the caller."""


class ExtractionError(AllocationError):
    """The text extraction service failed or returned unusable output."""
