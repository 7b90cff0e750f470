from io import StringIO

import orjson
import pytest
from django.core.management import CommandError, call_command

from tests.utils import DESCRIPTION_XML, DEVICE, DEVICE_XSD, FILES_ROOT, REMOTE_XSD


class TestParseXmlCommand:
    """Prove that the parsexml command prints the document outline."""

    def test_outline(self):
        stdout = StringIO()
        call_command("parsexml", DESCRIPTION_XML, stdout=stdout)
        outline = orjson.loads(stdout.getvalue())
        assert outline["tag"] == DEVICE("root")
        assert outline["attributes"] == {"{http://www.w3.org/XML/1998/namespace}lang": "en"}
        assert outline["children"][0]["children"][0] == {
            "tag": DEVICE("major"),
            "attributes": {},
            "text": "1",
            "children": [],
        }

    def test_schema(self):
        stdout = StringIO()
        call_command("parsexml", DESCRIPTION_XML, "--schema", DEVICE_XSD, "--indent", stdout=stdout)
        assert stdout.getvalue().startswith("{\n")
        assert orjson.loads(stdout.getvalue())["tag"] == DEVICE("root")

    def test_invalid(self, tmp_path):
        path = tmp_path.joinpath("invalid.xml")
        path.write_text(
            '<root xmlns="urn:schemas-upnp-org:device-1-0"><device/></root>', encoding="utf-8"
        )
        with pytest.raises(CommandError):
            call_command("parsexml", str(path), "--schema", DEVICE_XSD, stdout=StringIO())

        # Schema violations can be ignored
        stdout = StringIO()
        call_command("parsexml", str(path), "--schema", DEVICE_XSD, "--lenient", stdout=stdout)
        assert orjson.loads(stdout.getvalue())["children"][0]["tag"] == DEVICE("device")

    def test_bad_schema(self):
        with pytest.raises(CommandError):
            call_command(
                "parsexml", str(FILES_ROOT.joinpath("description.xml")), "-s", REMOTE_XSD
            )
