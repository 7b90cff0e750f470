"""Exceptions raised by the parser sessions.

All failures surface synchronously to the caller of
:meth:`~xmlscope.parsers.session.ParserSession.parse`.
Nothing is retried; re-parsing without validation is up to the caller.
"""

from __future__ import annotations

import logging
import typing
from contextlib import contextmanager

if typing.TYPE_CHECKING:
    from xmlscope.parsers.errors import Severity

logger = logging.getLogger(__name__)

__all__ = (
    "XmlScopeError",
    "InitializationFailure",
    "ParseFailure",
    "ValidationFailure",
    "ExternalParsingError",
    "wrap_initialization_errors",
    "wrap_parse_errors",
)


@contextmanager
def wrap_initialization_errors(what: str):
    """Turn any problem while building factories, schemas or readers
    into an :class:`InitializationFailure`."""
    try:
        yield
    except InitializationFailure:
        raise
    except Exception as e:
        logger.debug("Failed to %s: %s", what, e)
        raise InitializationFailure(f"Failed to {what}: {e}") from e


@contextmanager
def wrap_parse_errors(system_id: str | None = None):
    """Offer a uniform exception for everything that goes wrong during parsing.
    Failures raised by the error policy are passed on as-is.
    """
    try:
        yield
    except ParseFailure:
        raise
    except Exception as e:
        location = f" in {system_id}" if system_id else ""
        logger.debug("Parsing failed%s: %s", location, e)
        raise ParseFailure(f"Unable to parse XML{location}: {e}") from e


class XmlScopeError(Exception):
    """Base class for all parser failures of this package."""


class InitializationFailure(XmlScopeError):
    """The reader factory, schema or reader could not be constructed.
    This is not recoverable, the session can't be used.
    """


class ParseFailure(XmlScopeError):
    """The parse was aborted.
    Instances populated by the handlers must not be treated as valid.
    """


class ValidationFailure(ParseFailure):
    """A schema or well-formedness violation, escalated by the error policy."""

    def __init__(
        self,
        text: str,
        severity: Severity | None = None,
        line: int | None = None,
        column: int | None = None,
        system_id: str | None = None,
    ):
        super().__init__(text)
        self.text = text
        self.severity = severity
        self.line = line
        self.column = column
        self.system_id = system_id


class ExternalParsingError(ValueError):
    """Raise a ValueError for unexpected content in the parsed document."""
