"""SAX reader that validates against an XML Schema.

The expat reader of the standard library can't validate, so validating mode
uses lxml instead. The document is parsed into a tree first, then validated
against the schema, and only then replayed as SAX events.
Hence, no handler receives any event for a document that fails validation.

Like the defusedxml reader of non-validating mode,
entity declarations are refused and entities are never expanded.
"""

from __future__ import annotations

import io
import logging
import threading
from xml.sax import SAXNotSupportedException, SAXParseException, handler, saxutils, xmlreader

from defusedxml import EntitiesForbidden
from lxml import etree
from lxml.sax import saxify

logger = logging.getLogger(__name__)

__all__ = ("SchemaValidatingReader",)

_validation_lock = threading.Lock()


class SchemaValidatingReader(xmlreader.XMLReader):
    """A SAX ``XMLReader`` that only emits events for schema-valid documents.

    Violations are reported to the error handler. When the error handler accepts
    all of them, the document is replayed anyway.
    """

    def __init__(self, schema: etree.XMLSchema):
        super().__init__()
        self.schema = schema

    def getFeature(self, name):  # noqa: N802
        if name == handler.feature_namespaces:
            return True
        return super().getFeature(name)

    def setFeature(self, name, state):  # noqa: N802
        if name == handler.feature_namespaces:
            if not state:
                raise SAXNotSupportedException("The validating reader is always namespace-aware")
            return
        super().setFeature(name, state)

    def parse(self, source):
        source = saxutils.prepare_input_source(source)
        system_id = source.getSystemId()
        data, encoding = _read_input(source)

        tree = self._build_tree(data, encoding, system_id)
        self._validate(tree, system_id)

        logger.debug("Replaying validated document %s", system_id or "")
        saxify(tree, self.getContentHandler())

    def _build_tree(self, data: bytes, encoding, system_id) -> etree._ElementTree:
        parser = etree.XMLParser(
            encoding=encoding,
            no_network=True,
            load_dtd=False,
            resolve_entities=False,
            huge_tree=False,
        )
        try:
            tree = etree.parse(io.BytesIO(data), parser, base_url=system_id)
        except etree.XMLSyntaxError as e:
            # The reader can't continue, the handler is expected to raise.
            self.getErrorHandler().fatalError(
                SAXParseException(e.msg, e, _PositionLocator(e.lineno, e.offset, system_id))
            )
            raise

        _check_entities(tree)
        for entry in parser.error_log.filter_levels(etree.ErrorLevels.WARNING):
            self.getErrorHandler().warning(_get_parse_exception(entry, system_id))
        return tree

    def _validate(self, tree: etree._ElementTree, system_id):
        """Report all schema violations to the SAX error handler."""
        # The error log of the schema object is shared by all threads.
        with _validation_lock:
            if self.schema.validate(tree):
                return
            error_log = self.schema.error_log

        error_handler = self.getErrorHandler()
        for entry in error_log:
            exception = _get_parse_exception(entry, system_id)
            if entry.level == etree.ErrorLevels.WARNING:
                error_handler.warning(exception)
            elif _is_schema_violation(entry):
                error_handler.error(exception)
            else:
                error_handler.fatalError(exception)

        logger.debug("Continuing with accepted schema violations in %s", system_id or "")


class _PositionLocator(xmlreader.Locator):
    """Expose the position of a parser message in the SAX way."""

    def __init__(self, line, column, system_id=None):
        self._line = line
        self._column = column
        self._system_id = system_id

    def getColumnNumber(self):  # noqa: N802
        return self._column

    def getLineNumber(self):  # noqa: N802
        return self._line

    def getPublicId(self):  # noqa: N802
        return None

    def getSystemId(self):  # noqa: N802
        return self._system_id


def _check_entities(tree: etree._ElementTree):
    """Refuse entity declarations, like the defusedxml reader does."""
    dtd = tree.docinfo.internalDTD
    if dtd is None:
        return

    entity = next(dtd.iterentities(), None)
    if entity is not None:
        raise EntitiesForbidden(entity.name, entity.content, None, entity.system_url, None, None)


def _is_schema_violation(entry) -> bool:
    return (
        entry.domain == etree.ErrorDomains.SCHEMASV
        and entry.level == etree.ErrorLevels.ERROR
    )


def _get_parse_exception(entry, system_id) -> SAXParseException:
    locator = _PositionLocator(entry.line, entry.column, entry.filename or system_id)
    return SAXParseException(entry.message, None, locator)


def _read_input(source: xmlreader.InputSource) -> tuple[bytes, str | None]:
    """Read the whole input source, lxml parses it at once."""
    stream = source.getCharacterStream()
    if stream is not None:
        # The declared encoding no longer applies to text that is already decoded.
        return stream.read().encode("utf-8"), "utf-8"

    return source.getByteStream().read(), source.getEncoding()
