"""Exceptions for quiz attempt operations."""


class ProctorError(Exception):
    """Base class for errors raised by the attempt core."""

    pass


class ConfigurationError(ProctorError):
    """Activity settings are inconsistent and cannot be used as they are."""

    pass


class DeadlineComputationError(ProctorError):
    """The effective rules contradict each other, so no deadline can be computed."""

    pass


class ConcurrentModificationError(ProctorError):
    """Another writer changed the attempt first, and a reload did not resolve it.

    The condition is transient; the caller may retry.
    """

    transient = True


class ActivityNotFoundError(ProctorError):
    pass


class AttemptNotFoundError(ProctorError):
    pass


class AttemptAlreadyOpenError(ProctorError):
    """The user already has an attempt in progress or overdue."""

    pass
