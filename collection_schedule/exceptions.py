"""
This module defines custom exceptions for the collection schedule scraper.
"""


class ScheduleError(Exception):
    """Base class for errors raised while producing a collection schedule."""

    pass


class ConfigError(ScheduleError, ValueError):
    """Raised when the environment holds a missing or invalid setting."""

    pass


class SessionError(ScheduleError):
    """Custom exception for a session handshake that could not be verified."""

    pass


class FetchError(ScheduleError):
    """Custom exception for errors during the schedule download."""

    pass


class ParsingError(ScheduleError):
    """Custom exception for a schedule document that cannot be parsed as markup."""

    pass


class NoCollectionsError(ScheduleError):
    """The schedule parsed but yielded no collection dates."""

    pass


class InvalidTimeError(ScheduleError, ValueError):
    """A caller-supplied 'now' override could not be parsed."""

    pass


class ContextCancelledError(ScheduleError):
    """The scrape context was cancelled before the work finished."""

    pass


class DeadlineExceededError(ScheduleError):
    """The scrape context ran out of time before the work finished."""

    pass
