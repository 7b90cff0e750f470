"""Error policies for the SAX readers.

Readers report warnings, recoverable errors and fatal errors to a SAX
``ErrorHandler``. Instead of raising from each callback, a policy returns
an explicit failure value, which the :class:`PolicyErrorHandler` checks
to decide whether the reader must stop.

The default :class:`FailFastPolicy` never lets malformed or invalid input
pass silently. Another policy can be configured using the
``XMLSCOPE_ERROR_POLICY`` setting, or passed in the
:class:`~xmlscope.parsers.session.ReaderConfig`.
"""

from __future__ import annotations

import logging
from enum import Enum
from xml.sax import SAXParseException
from xml.sax.handler import ErrorHandler

from django.utils.module_loading import import_string

from xmlscope import conf
from xmlscope.exceptions import ValidationFailure, wrap_initialization_errors

logger = logging.getLogger(__name__)

__all__ = (
    "Severity",
    "ErrorPolicy",
    "FailFastPolicy",
    "LenientPolicy",
    "PolicyErrorHandler",
    "get_error_policy",
)


class Severity(Enum):
    """The levels at which a SAX reader reports problems."""

    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal error"


class ErrorPolicy:
    """Base class for deciding which reported problems abort the parse."""

    def check(self, severity: Severity, exception: SAXParseException) -> ValidationFailure | None:
        """Tell whether the reported problem should abort the parse.
        Return the failure to raise, or ``None`` to continue parsing.
        """
        raise NotImplementedError()

    def get_failure(self, severity: Severity, exception: SAXParseException) -> ValidationFailure:
        """Construct the failure for a reported problem."""
        return ValidationFailure(
            f"XML {severity.value} at line {exception.getLineNumber()},"
            f" column {exception.getColumnNumber()}: {exception.getMessage()}",
            severity=severity,
            line=exception.getLineNumber(),
            column=exception.getColumnNumber(),
            system_id=exception.getSystemId(),
        )


class FailFastPolicy(ErrorPolicy):
    """Every warning, recoverable error or fatal error aborts the parse."""

    def check(self, severity: Severity, exception: SAXParseException) -> ValidationFailure:
        return self.get_failure(severity, exception)


class LenientPolicy(ErrorPolicy):
    """Only log warnings and schema violations; fatal errors still abort the parse."""

    def check(self, severity: Severity, exception: SAXParseException) -> ValidationFailure | None:
        if severity is Severity.FATAL:
            return self.get_failure(severity, exception)

        logger.warning(
            "Ignoring XML %s at line %s, column %s: %s",
            severity.value,
            exception.getLineNumber(),
            exception.getColumnNumber(),
            exception.getMessage(),
        )
        return None


class PolicyErrorHandler(ErrorHandler):
    """SAX error handler that lets the policy decide on every report."""

    def __init__(self, policy: ErrorPolicy):
        self.policy = policy

    def warning(self, exception: SAXParseException):
        self._report(Severity.WARNING, exception)

    def error(self, exception: SAXParseException):
        self._report(Severity.ERROR, exception)

    def fatalError(self, exception: SAXParseException):  # noqa: N802
        self._report(Severity.FATAL, exception)
        # The reader can't continue after a fatal error.
        raise exception

    def _report(self, severity: Severity, exception: SAXParseException):
        failure = self.policy.check(severity, exception)
        if failure is not None:
            raise failure from exception


def get_error_policy() -> ErrorPolicy:
    """Construct the error policy configured in the settings."""
    with wrap_initialization_errors("load the XMLSCOPE_ERROR_POLICY"):
        policy_class = import_string(conf.XMLSCOPE_ERROR_POLICY)
        return policy_class()
