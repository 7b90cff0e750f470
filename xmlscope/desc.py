"""Descriptor metadata of a DIDL-Lite item or resource.

.. code-block:: xml

    <desc id="cdudn" nameSpace="urn:schemas-upnp-org:metadata-1-0/upnp/">
      <foo:bar xmlns:foo="urn:example">...</foo:bar>
    </desc>

The content of the ``<desc>`` element can be anything,
it's collected into a separate metadata document.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from lxml import etree

from xmlscope.parsers.handlers import ScopeHandler
from xmlscope.parsers.xml import Attributes, xmlns

__all__ = (
    "DescMeta",
    "DescMetaHandler",
)

M = TypeVar("M")


@dataclass
class DescMeta(Generic[M]):
    """Descriptor metadata about an item/resource."""

    id: str | None = None
    type: str | None = None
    namespace: str | None = None
    metadata: M | None = None

    def create_metadata_document(self) -> etree._ElementTree:
        """Creates a new metadata document with a desc-wrapper root element."""
        root = etree.Element(
            xmlns.desc_wrapper.qname("desc-wrapper"), nsmap={None: xmlns.desc_wrapper.value}
        )
        return etree.ElementTree(root)


class DescMetaHandler(ScopeHandler[DescMeta]):
    """Populate the :class:`DescMeta` from a ``<desc>`` element.

    The nested markup is copied into the metadata document,
    so it's tracked here instead of being delegated to other handlers.
    """

    def __init__(self, instance: DescMeta, session=None, parent=None):
        super().__init__(instance, session=session, parent=parent)
        self._elements: list[etree._Element] = []

    def start_element(self, tag: str, attributes: Attributes):
        super().start_element(tag, attributes)
        if not self._elements:
            # The <desc> element itself.
            self.instance.id = attributes.get_str_attribute("id")
            self.instance.type = attributes.get("type")
            self.instance.namespace = attributes.get_str_attribute("nameSpace")
            self.instance.metadata = self.instance.create_metadata_document()
            self._elements.append(self.instance.metadata.getroot())
        else:
            element = etree.SubElement(self._elements[-1], tag, dict(attributes))
            self._elements.append(element)

    def characters(self, content: str):
        super().characters(content)
        if not self._elements:
            return

        current = self._elements[-1]
        if len(current):
            last = current[-1]
            last.tail = (last.tail or "") + content
        else:
            current.text = (current.text or "") + content

    def end_element(self, tag: str):
        if len(self._elements) > 1:
            self._elements.pop()
        super().end_element(tag)
