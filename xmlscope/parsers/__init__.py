"""All parser logic to process incoming XML documents.

The reader emits SAX events, which the :class:`ParserSession` forwards to
the active :class:`ScopeHandler`. Handlers delegate nested element scopes
to child handlers, so each handler only deals with a single level of the document.
"""

from .errors import ErrorPolicy, FailFastPolicy, LenientPolicy, Severity
from .factories import ReaderFactory, build_reader, clear_schema_cache, get_reader_factory
from .handlers import HandlerState, ScopeHandler
from .session import ParserSession, ReaderConfig, make_input_source
from .xml import Attributes, xmlns

__all__ = (
    "Attributes",
    "ErrorPolicy",
    "FailFastPolicy",
    "HandlerState",
    "LenientPolicy",
    "ParserSession",
    "ReaderConfig",
    "ReaderFactory",
    "ScopeHandler",
    "Severity",
    "build_reader",
    "clear_schema_cache",
    "get_reader_factory",
    "make_input_source",
    "xmlns",
)
