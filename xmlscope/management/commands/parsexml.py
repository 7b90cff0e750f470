"""Quick utility to inspect how a document is parsed."""

from __future__ import annotations

import orjson
from django.core.management import BaseCommand, CommandError, CommandParser

from xmlscope.exceptions import XmlScopeError
from xmlscope.outline import parse_outline
from xmlscope.parsers.errors import LenientPolicy
from xmlscope.parsers.session import ReaderConfig


class Command(BaseCommand):
    """Print the outline of an XML document as JSON."""

    help = (
        "Parse an XML file and print the outline of its elements as JSON. This can be done using:"
        "  manage.py parsexml --schema device.xsd description.xml"
    )

    def add_arguments(self, parser: CommandParser):
        parser.add_argument("file", metavar="FILE", help="The XML file to parse.")
        parser.add_argument(
            "-s",
            "--schema",
            action="append",
            dest="schemas",
            default=[],
            metavar="XSD",
            help="Validate against the XML Schema file, can be given multiple times.",
        )
        parser.add_argument(
            "--lenient",
            action="store_true",
            help="Only log warnings and schema violations, instead of failing on them.",
        )
        parser.add_argument(
            "--indent",
            action="store_true",
            help="Pretty-print the JSON output.",
        )

    def handle(self, *args, **options):
        config = ReaderConfig(
            schema_sources=options["schemas"],
            error_policy=LenientPolicy() if options["lenient"] else None,
        )

        try:
            outline = parse_outline(options["file"], config)
        except XmlScopeError as e:
            raise CommandError(str(e)) from e

        option = orjson.OPT_INDENT_2 if options["indent"] else 0
        self.stdout.write(orjson.dumps(outline.as_dict(), option=option).decode())
