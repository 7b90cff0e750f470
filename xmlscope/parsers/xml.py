"""XML naming helpers shared by the readers and handlers.

Element and attribute names are passed around in the fully qualified
"Clark notation" that ElementTree also uses, e.g. ``{urn:schemas-upnp-org:device-1-0}root``.
Names without a namespace are just the local name.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from xml.etree.ElementTree import QName

from xmlscope.exceptions import ExternalParsingError

__all__ = (
    "xmlns",
    "Attributes",
    "clark_name",
    "split_ns",
)


class xmlns(Enum):
    """Common namespaces within UPnP descriptors.
    Note these short aliases are arbitrary in XML syntax; the XML code may use any alias (such as ns0).
    The full qualified name (e.g. ``<{urn:schemas-upnp-org:device-1-0}root>``) is the actual tag name.
    """

    # XML standard
    xml = "http://www.w3.org/XML/1998/namespace"
    xsd = "http://www.w3.org/2001/XMLSchema"
    xsi = "http://www.w3.org/2001/XMLSchema-instance"

    # UPnP descriptors
    device = "urn:schemas-upnp-org:device-1-0"
    service = "urn:schemas-upnp-org:service-1-0"
    soap_envelope = "http://schemas.xmlsoap.org/soap/envelope/"

    # ContentDirectory metadata
    didl_lite = "urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/"
    upnp = "urn:schemas-upnp-org:metadata-1-0/upnp/"
    dc = "http://purl.org/dc/elements/1.1/"
    dlna = "urn:schemas-dlna-org:metadata-1-0/"
    desc_wrapper = "urn:jupnp-org:support:content-directory-desc-1-0"

    # Internal aliases
    xs = xsd  # commonly used
    didl = didl_lite

    @classmethod
    def as_ns_aliases(cls) -> dict[str, str]:
        """Map the namespaces as {alias: uri}"""
        return {prefix: member.value for prefix, member in cls.__members__.items()}

    def __str__(self):
        return self.value

    def qname(self, local_name) -> str:
        """Convert the tag name into a fully qualified name."""
        return f"{{{self.value}}}{local_name}"  # same as QName(..).text

    def __contains__(self, tag: str) -> bool:
        """Tell whether a given tag exists in this namespace"""
        if not isinstance(tag, str):
            return False
        return tag.startswith(f"{{{self.value}}}")


def clark_name(uri: str | None, local_name: str) -> str:
    """Combine the namespace and local name that SAX provides into a single name."""
    if not uri:
        return local_name
    return QName(uri, local_name).text


def split_ns(xml_name: str) -> tuple[str | None, str]:
    """Split the element tag or attribute name into the namespace and local name."""
    # Tags may start with a `{ns}`
    if xml_name.startswith("{"):
        end = xml_name.index("}")
        return xml_name[1:end], xml_name[end + 1 :]
    else:
        return None, xml_name


class Attributes(Mapping[str, str]):
    """Immutable snapshot of the attributes of an element.

    SAX readers may reuse their attributes object once the callback returns,
    hence the values are copied into this object while the element is opened.
    The keys are fully qualified names, like element tags.
    """

    __slots__ = ("tag", "_values")

    def __init__(self, values: Mapping[str, str] | None = None, tag: str | None = None):
        self.tag = tag
        self._values = dict(values) if values else {}

    @classmethod
    def from_sax(cls, attrs, tag: str | None = None) -> Attributes:
        """Copy the namespace-aware SAX attributes object.
        Its keys are ``(uri, local_name)`` pairs.
        """
        return cls(
            {clark_name(uri, local_name): value for (uri, local_name), value in attrs.items()},
            tag=tag,
        )

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self):
        return f"{self.__class__.__name__}({self._values!r})"

    def get_str_attribute(self, name: str) -> str:
        """Resolve an attribute, raise an error when it's missing."""
        try:
            return self._values[name]
        except KeyError:
            raise ExternalParsingError(
                f"Element <{self.tag}> misses required attribute '{name}'"
            ) from None

    def get_int_attribute(self, name: str, default=None) -> int | None:
        """Retrieve the integer value from an element attribute."""
        value = self._values.get(name)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            raise ExternalParsingError(
                f"Element <{self.tag}> has an invalid integer for '{name}': {value!r}"
            ) from None
