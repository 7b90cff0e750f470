"""A generic outline of a document, where each element gets its own handler."""

from __future__ import annotations

from dataclasses import dataclass, field

from xmlscope.parsers.handlers import ScopeHandler
from xmlscope.parsers.session import ParserInput, ParserSession, ReaderConfig
from xmlscope.parsers.xml import Attributes

__all__ = (
    "ElementOutline",
    "OutlineHandler",
    "parse_outline",
)


@dataclass
class ElementOutline:
    """The attributes and text of an element, and the outline of its child elements."""

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: list[ElementOutline] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "tag": self.tag,
            "attributes": self.attributes,
            "text": self.text,
            "children": [child.as_dict() for child in self.children],
        }


class OutlineHandler(ScopeHandler[ElementOutline]):
    """Delegate every child element to a new handler."""

    def delegate(self, tag: str, attributes: Attributes):
        if self.depth > 0:
            child = ElementOutline(tag=tag, attributes=dict(attributes))
            self.instance.children.append(child)
            OutlineHandler(child, parent=self)

    def end_element(self, tag: str):
        if self.is_last_element(tag):
            self.instance.text = self.text
        super().end_element(tag)


def parse_outline(source: ParserInput, config: ReaderConfig | None = None) -> ElementOutline:
    """Parse the document into the outline of its root element."""
    document = ElementOutline(tag="")
    session = ParserSession(config)
    OutlineHandler(document, session=session)
    session.parse(source)
    return document.children[0]
