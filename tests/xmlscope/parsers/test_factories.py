import dataclasses
from pathlib import Path

import pytest
from defusedxml.expatreader import DefusedExpatParser
from lxml import etree

from tests.utils import DEVICE_XSD, FILES_ROOT, ITEMS_XSD, REMOTE_XSD, parse_description
from xmlscope.exceptions import InitializationFailure, ValidationFailure
from xmlscope.parsers import (
    ParserSession,
    ReaderConfig,
    ReaderFactory,
    ScopeHandler,
    build_reader,
    clear_schema_cache,
    get_reader_factory,
    make_input_source,
)
from xmlscope.parsers.factories import (
    NON_VALIDATING,
    SCHEMA_LOCATIONS,
    XML_SCHEMA_NAMESPACE,
    CatalogResolver,
    compile_schema,
)
from xmlscope.parsers.readers import SchemaValidatingReader

ITEMS_SCHEMA = b"""<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="items"/>
</xs:schema>"""


class TestReaderFactory:
    """Prove that the factories are shared, but their readers are not."""

    def test_non_validating(self):
        assert get_reader_factory(()) is NON_VALIDATING
        assert not NON_VALIDATING.validating

        reader = NON_VALIDATING.new_reader()
        assert isinstance(reader, DefusedExpatParser)
        assert reader is not NON_VALIDATING.new_reader()

    def test_validating(self):
        factory = get_reader_factory((DEVICE_XSD,))
        assert factory.validating
        assert isinstance(factory.schema, etree.XMLSchema)

        reader = factory.new_reader()
        assert isinstance(reader, SchemaValidatingReader)
        assert reader is not factory.new_reader()

    def test_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            NON_VALIDATING.schema = compile_schema((DEVICE_XSD,))

    def test_schema_cache(self):
        """Prove that the same files are only compiled once."""
        factory = get_reader_factory((DEVICE_XSD,))
        assert get_reader_factory((Path(DEVICE_XSD),)) is factory
        assert get_reader_factory((DEVICE_XSD, ITEMS_XSD)) is not factory

        clear_schema_cache()
        assert get_reader_factory((DEVICE_XSD,)) is not factory

    def test_schema_bytes_not_cached(self):
        factory = get_reader_factory((ITEMS_SCHEMA,))
        assert factory.validating
        assert get_reader_factory((ITEMS_SCHEMA,)) is not factory

    def test_build_reader(self):
        assert isinstance(build_reader(ReaderConfig()), DefusedExpatParser)
        assert isinstance(
            build_reader(ReaderConfig(schema_sources=[DEVICE_XSD])), SchemaValidatingReader
        )

    def test_parsed_schema(self):
        """Prove that an already parsed schema document is accepted."""
        factory = ReaderFactory(schema=compile_schema((etree.parse(ITEMS_XSD),)))
        assert factory.validating


class TestSchemaCompilation:
    """Prove that schemas are compiled without network access."""

    def test_catalog(self):
        assert SCHEMA_LOCATIONS[XML_SCHEMA_NAMESPACE].exists()

        # The device schema imports xml.xsd, which is resolved locally.
        schema = compile_schema((DEVICE_XSD,))
        assert isinstance(schema, etree.XMLSchema)

    def test_catalog_resolver(self):
        resolver = CatalogResolver({"http://example.com/items.xsd": Path(ITEMS_XSD)})
        parser = etree.XMLParser(no_network=True)
        parser.resolvers.add(resolver)

        wrapper = etree.fromstring(
            b'<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">'
            b'<xs:include schemaLocation="http://example.com/items.xsd"/>'
            b"</xs:schema>",
            parser,
        )
        schema = etree.XMLSchema(wrapper)
        assert schema.validate(etree.fromstring(b'<items><item id="1"/></items>'))

    def test_unresolvable_import(self):
        """Prove that a remote import is not fetched."""
        with pytest.raises(InitializationFailure):
            get_reader_factory((REMOTE_XSD,))

    def test_missing_file(self):
        with pytest.raises(InitializationFailure):
            get_reader_factory((str(FILES_ROOT.joinpath("missing.xsd")),))

    def test_invalid_schema(self):
        with pytest.raises(InitializationFailure):
            get_reader_factory((b"<xs:schema xmlns:xs='http://www.w3.org/2001/XMLSchema'><foo/>",))

    def test_no_sources(self):
        with pytest.raises(InitializationFailure):
            compile_schema(())

    def test_combine_non_files(self):
        with pytest.raises(InitializationFailure):
            get_reader_factory((DEVICE_XSD, ITEMS_SCHEMA))

    def test_session_initialization(self):
        """Prove that the session constructor reports schema problems."""
        with pytest.raises(InitializationFailure):
            ParserSession(ReaderConfig(schema_sources=[REMOTE_XSD]))


class TestCombinedSchema:
    """Prove that multiple schema files validate together."""

    config = ReaderConfig(schema_sources=(DEVICE_XSD, ITEMS_XSD))

    def test_namespaced(self):
        description = parse_description(
            str(FILES_ROOT.joinpath("description.xml")), self.config
        )
        assert description.device.friendly_name == "Living room"

    def test_no_namespace(self):
        items = {}

        class ItemsHandler(ScopeHandler[dict]):
            def start_element(self, tag, attributes):
                super().start_element(tag, attributes)
                if tag == "item":
                    items[attributes["id"]] = attributes.get_int_attribute("count")

        session = ParserSession(self.config)
        ItemsHandler(items, session=session)
        session.parse(make_input_source(b'<items><item id="a" count="2"/><item id="b"/></items>'))
        assert items == {"a": 2, "b": None}

    def test_invalid(self):
        session = ParserSession(self.config)
        ScopeHandler({}, session=session)
        with pytest.raises(ValidationFailure):
            session.parse(make_input_source(b'<items><item count="2"/></items>'))
