"""Parser sessions, which run a single parse with a chain of scope handlers.

Usage:

.. code-block:: python

    session = ParserSession(ReaderConfig(schema_sources=["device.xsd"]))
    RootHandler(device, session=session)
    session.parse("description.xml")

The session keeps an explicit stack of handlers. The handler at the top
receives all events; it's the only one in the :attr:`~HandlerState.ACTIVE` state.
Handlers are pushed when they take over a nested element scope,
and popped when that scope closes.
"""

from __future__ import annotations

import io
import logging
import os
from contextlib import ExitStack
from dataclasses import dataclass
from typing import IO, Union
from xml.sax import handler, saxutils, xmlreader

from xmlscope.exceptions import wrap_parse_errors
from xmlscope.parsers.errors import ErrorPolicy, PolicyErrorHandler, get_error_policy
from xmlscope.parsers.factories import SchemaSource, build_reader
from xmlscope.parsers.handlers import HandlerState, ScopeHandler
from xmlscope.parsers.xml import Attributes, clark_name

logger = logging.getLogger(__name__)

__all__ = (
    "ReaderConfig",
    "ParserSession",
    "make_input_source",
)

#: The accepted input for parsing: an input source, a file path or a stream.
ParserInput = Union[xmlreader.InputSource, str, os.PathLike, IO]


@dataclass(frozen=True)
class ReaderConfig:
    """How the reader of a session is configured.
    With schema sources, the document is validated against them.
    """

    schema_sources: tuple[SchemaSource, ...] = ()
    error_policy: ErrorPolicy | None = None

    def __post_init__(self):
        # Allow passing a list, still keep this object immutable.
        object.__setattr__(self, "schema_sources", tuple(self.schema_sources or ()))

    @property
    def validating(self) -> bool:
        return bool(self.schema_sources)


class ParserSession:
    """A single parse, with the stack of handlers that receive the events.

    The reader is constructed directly, so any configuration problem
    raises an :class:`~xmlscope.exceptions.InitializationFailure` here.
    Sessions are not thread-safe, and should be used by a single thread.
    """

    def __init__(self, config: ReaderConfig | None = None, handler: ScopeHandler | None = None):
        self.config = config or ReaderConfig()
        self.error_policy = self.config.error_policy or get_error_policy()
        self.reader = build_reader(self.config)
        self.reader.setErrorHandler(PolicyErrorHandler(self.error_policy))
        self.reader.setContentHandler(ScopeDispatcher(self))
        self.locator: xmlreader.Locator | None = None
        self._depth = 0
        self._handlers: list[ScopeHandler] = []
        self._parsed = False

        if handler is not None:
            self.set_active_handler(handler)

    def __repr__(self):
        mode = "validating" if self.config.validating else "non-validating"
        return f"<{self.__class__.__name__}: {mode}, depth={self._depth}, handlers={self._handlers!r}>"

    @property
    def active_handler(self) -> ScopeHandler | None:
        """The handler that currently receives the events."""
        return self._handlers[-1] if self._handlers else None

    @property
    def depth(self) -> int:
        """The number of currently opened elements."""
        return self._depth

    def set_active_handler(self, handler: ScopeHandler):
        """Replace the handler that receives the events.
        The replaced handler is retired.
        """
        self._check_installable(handler)
        if self._handlers:
            previous = self._handlers.pop()
            previous.state = HandlerState.RETIRED

        self._install(handler)

    def activate(self, handler: ScopeHandler):
        """Let a child handler take over the events of the current element scope."""
        self._check_installable(handler)
        if self._handlers:
            self._handlers[-1].state = HandlerState.SUSPENDED

        self._install(handler)
        logger.debug(
            "Delegating depth %d to %s", self._depth, handler.__class__.__name__
        )

    def retire(self, handler: ScopeHandler):
        """Retire the active handler, and resume the handler that delegated to it."""
        if self.active_handler is not handler:
            raise RuntimeError(f"Can't retire {handler!r}, it's not the active handler.")
        if len(self._handlers) == 1:
            raise RuntimeError(f"Can't retire {handler!r}, no handler to resume.")

        self._handlers.pop()
        handler.state = HandlerState.RETIRED

        parent = self._handlers[-1]
        parent.state = HandlerState.ACTIVE
        logger.debug("Resuming %s at depth %d", parent.__class__.__name__, self._depth)

    def parse(self, source: ParserInput):
        """Run the reader to completion.

        :param source: A SAX ``InputSource``, a file path, or a binary/text stream.
        :raises ValidationFailure: When the error policy aborts the parse.
        :raises ParseFailure: For any other failure during the parse.
        """
        if self.active_handler is None:
            raise RuntimeError("No handler is installed to receive the parser events.")
        if self._parsed:
            raise RuntimeError("A parser session can only parse a single document.")

        self._parsed = True
        system_id = _get_system_id(source)
        with ExitStack() as stack:
            with wrap_parse_errors(system_id):
                input_source = _open_input_source(source, stack)
                logger.debug("Parsing %s", system_id or "XML stream")
                self.reader.parse(input_source)

    def _check_installable(self, handler: ScopeHandler):
        if handler.state is HandlerState.RETIRED:
            raise ValueError(f"Can't activate {handler!r}, its scope already ended.")
        if handler in self._handlers:
            raise ValueError(f"Can't activate {handler!r}, it's already installed.")

    def _install(self, handler: ScopeHandler):
        handler.session = self
        handler.scope_depth = self._depth
        handler.state = HandlerState.ACTIVE
        self._handlers.append(handler)


class ScopeDispatcher(handler.ContentHandler):
    """Forward the SAX events to the active handler of the session."""

    def __init__(self, session: ParserSession):
        super().__init__()
        self.session = session

    def setDocumentLocator(self, locator):  # noqa: N802
        self.session.locator = locator

    def startElementNS(self, name, qname, attrs):  # noqa: N802
        session = self.session
        tag = clark_name(*name)
        attributes = Attributes.from_sax(attrs, tag=tag)
        session._depth += 1

        # The active handler may hand this element to a child handler first.
        session.active_handler.delegate(tag, attributes)
        session.active_handler.start_element(tag, attributes)

    def endElementNS(self, name, qname):  # noqa: N802
        session = self.session
        session.active_handler.end_element(clark_name(*name))
        session._depth -= 1

    def characters(self, content):
        self.session.active_handler.characters(content)

    def endDocument(self):  # noqa: N802
        if len(self.session._handlers) > 1:
            logger.debug(
                "Document ended with unfinished handlers: %r", self.session._handlers[1:]
            )


def make_input_source(
    data: str | bytes | IO, encoding: str | None = None, system_id: str | None = None
) -> xmlreader.InputSource:
    """Construct an input source for an XML string or stream.

    :param data: The XML document, or a stream to read it from.
    :param encoding: The character encoding of binary data,
        which overrides the XML declaration.
    :param system_id: Identifier to resolve relative references against.
    """
    if isinstance(data, bytes):
        data = io.BytesIO(data)
    elif isinstance(data, str):
        data = io.StringIO(data)

    source = xmlreader.InputSource(system_id)
    if isinstance(data, io.TextIOBase):
        source.setCharacterStream(data)
    else:
        source.setByteStream(data)
        if encoding:
            source.setEncoding(encoding)
    return source


def _open_input_source(source: ParserInput, stack: ExitStack) -> xmlreader.InputSource:
    """Turn the parser input into an InputSource.
    Only local files are opened; a URL system ID is never fetched.
    """
    if isinstance(source, xmlreader.InputSource):
        if source.getByteStream() is None and source.getCharacterStream() is None:
            source.setByteStream(stack.enter_context(open(source.getSystemId(), "rb")))
        return source
    elif isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        input_source = xmlreader.InputSource(path)
        input_source.setByteStream(stack.enter_context(open(path, "rb")))
        return input_source
    elif hasattr(source, "read"):
        return saxutils.prepare_input_source(source)
    else:
        raise TypeError(f"Unsupported parser input: {source!r}")


def _get_system_id(source: ParserInput) -> str | None:
    if isinstance(source, xmlreader.InputSource):
        return source.getSystemId()
    elif isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    name = getattr(source, "name", None)
    return name if isinstance(name, str) else None
