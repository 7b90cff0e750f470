"""Construction of the SAX readers.

Creating readers and compiling XML Schemas is expensive, hence these are cached.
The factories are immutable: the non-validating factory is built once at import,
and a validating factory is built once per set of schema sources.
Each parser session constructs its own reader from them; readers are never shared.

Schema compilation never touches the network. External schema references
are resolved through a fixed mapping to files included in this package.
"""

from __future__ import annotations

import io
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import IO, Union
from xml.sax import handler, xmlreader

from defusedxml.expatreader import DefusedExpatParser
from lru import LRU
from lxml import etree

from xmlscope import conf
from xmlscope.exceptions import InitializationFailure, wrap_initialization_errors
from xmlscope.parsers.readers import SchemaValidatingReader
from xmlscope.parsers.xml import xmlns

logger = logging.getLogger(__name__)

__all__ = (
    "SchemaSource",
    "XML_SCHEMA_NAMESPACE",
    "XML_SCHEMA_RESOURCE",
    "SCHEMA_LOCATIONS",
    "CatalogResolver",
    "ReaderFactory",
    "NON_VALIDATING",
    "build_reader",
    "clear_schema_cache",
    "compile_schema",
    "get_reader_factory",
)

#: The accepted inputs for schema sources: a file path, XML bytes,
#: a binary stream or an already parsed lxml document.
SchemaSource = Union[str, os.PathLike, bytes, IO[bytes], etree._ElementTree, etree._Element]

XML_SCHEMA_NAMESPACE = "http://www.w3.org/2001/xml.xsd"
XML_SCHEMA_RESOURCE = Path(__file__).parent.parent.joinpath("schemas/xml.xsd")

#: Where the external schema references are found locally.
SCHEMA_LOCATIONS = MappingProxyType({XML_SCHEMA_NAMESPACE: XML_SCHEMA_RESOURCE})


class CatalogResolver(etree.Resolver):
    """Resolve external schema references from a fixed set of local files."""

    def __init__(self, locations=SCHEMA_LOCATIONS):
        super().__init__()
        self.locations = locations

    def resolve(self, system_url, public_id, context):
        try:
            path = self.locations[system_url]
        except KeyError:
            # Leave it to lxml, which refuses network access.
            return None

        logger.debug("Resolved schema reference %s to %s", system_url, path)
        return self.resolve_filename(str(path), context)


@dataclass(frozen=True)
class ReaderFactory:
    """An immutable configuration for constructing SAX readers.
    Without a schema, the readers only check for well-formedness.
    """

    schema: etree.XMLSchema | None = None

    @property
    def validating(self) -> bool:
        return self.schema is not None

    def new_reader(self) -> xmlreader.XMLReader:
        """Construct a new reader. Each parse needs its own instance."""
        with wrap_initialization_errors("create XML reader"):
            if self.schema is None:
                reader = DefusedExpatParser(
                    forbid_dtd=False, forbid_entities=True, forbid_external=True
                )
            else:
                reader = SchemaValidatingReader(self.schema)

            reader.setFeature(handler.feature_namespaces, True)
            return reader


#: The factory for all sessions that don't validate.
NON_VALIDATING = ReaderFactory()

_schema_cache = LRU(conf.XMLSCOPE_SCHEMA_CACHE_SIZE)
_schema_lock = threading.Lock()


def get_reader_factory(schema_sources: tuple[SchemaSource, ...] = ()) -> ReaderFactory:
    """Provide the factory for the given schema sources.
    Schemas given as files are compiled only once.
    """
    if not schema_sources:
        return NON_VALIDATING

    key = _get_cache_key(schema_sources)
    if key is None:
        return ReaderFactory(schema=compile_schema(schema_sources))

    with _schema_lock:
        try:
            return _schema_cache[key]
        except KeyError:
            pass

        factory = ReaderFactory(schema=compile_schema(schema_sources))
        _schema_cache[key] = factory
        return factory


def build_reader(config) -> xmlreader.XMLReader:
    """Construct a reader for a :class:`~xmlscope.parsers.session.ReaderConfig`.
    With schema sources, the reader validates the document against them.
    """
    factory = get_reader_factory(config.schema_sources)
    logger.debug(
        "Creating %s XML reader", "validating" if factory.validating else "non-validating"
    )
    return factory.new_reader()


def clear_schema_cache():
    """Forget all compiled schemas."""
    with _schema_lock:
        _schema_cache.clear()


def compile_schema(schema_sources: tuple[SchemaSource, ...]) -> etree.XMLSchema:
    """Compile the XML Schema for the given sources.

    Multiple sources are combined into a single schema,
    this is only possible when they are given as files.
    """
    if not schema_sources:
        raise InitializationFailure("No schema sources given")

    with wrap_initialization_errors("create schema"):
        parser = _get_schema_parser()
        if len(schema_sources) == 1:
            doc = _parse_schema_document(schema_sources[0], parser)
        else:
            doc = etree.parse(io.BytesIO(_get_combined_schema(schema_sources)), parser)

        schema = etree.XMLSchema(doc)
        logger.debug("Compiled XML schema from %d source(s)", len(schema_sources))
        return schema


def _get_schema_parser() -> etree.XMLParser:
    parser = etree.XMLParser(no_network=True, load_dtd=False, remove_comments=True)
    parser.resolvers.add(CatalogResolver())
    return parser


def _parse_schema_document(source: SchemaSource, parser: etree.XMLParser) -> etree._ElementTree:
    if isinstance(source, etree._ElementTree):
        return source
    elif isinstance(source, etree._Element):
        return source.getroottree()
    elif isinstance(source, bytes):
        return etree.parse(io.BytesIO(source), parser)
    elif isinstance(source, (str, os.PathLike)):
        return etree.parse(os.fspath(source), parser)
    elif hasattr(source, "read"):
        return etree.parse(source, parser)
    else:
        raise TypeError(f"Unsupported schema source: {source!r}")


def _get_combined_schema(schema_sources: tuple[SchemaSource, ...]) -> bytes:
    """Generate a schema that imports all given schema files."""
    root = etree.Element(xmlns.xsd.qname("schema"), nsmap={"xs": xmlns.xsd.value})
    for source in schema_sources:
        if not isinstance(source, (str, os.PathLike)):
            raise TypeError("Multiple schema sources can only be combined when given as files")

        path = Path(source).resolve()
        target_namespace = etree.parse(str(path)).getroot().get("targetNamespace")
        if target_namespace:
            etree.SubElement(
                root,
                xmlns.xsd.qname("import"),
                namespace=target_namespace,
                schemaLocation=path.as_uri(),
            )
        else:
            etree.SubElement(root, xmlns.xsd.qname("include"), schemaLocation=path.as_uri())

    return etree.tostring(root)


def _get_cache_key(schema_sources: tuple[SchemaSource, ...]) -> tuple[str, ...] | None:
    """Only files can be recognized when they are given again."""
    if not all(isinstance(source, (str, os.PathLike)) for source in schema_sources):
        return None
    return tuple(os.fspath(Path(source).resolve()) for source in schema_sources)
