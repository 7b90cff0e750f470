"""The chain of scope handlers that consume the SAX events.

Each :class:`ScopeHandler` is responsible for a single element scope.
When an element opens a nested scope, the handler constructs a child handler
in its :meth:`~ScopeHandler.delegate` method. The child is pushed on the
handler stack of the :class:`~xmlscope.parsers.session.ParserSession`,
and receives all events until its own element closes. Then the child retires,
and the parent resumes exactly where it left off.

This makes recursive-descent parsing possible with a push-model reader:

.. code-block:: python

    class ItemHandler(ScopeHandler[Item]):
        def end_element(self, tag):
            if tag == "title":
                self.instance.title = self.text
            super().end_element(tag)


    class ContainerHandler(ScopeHandler[Container]):
        def delegate(self, tag, attributes):
            if tag == "item":
                item = Item()
                self.instance.items.append(item)
                ItemHandler(item, parent=self)

Note the text buffer is reset for every element that a handler opens itself,
while the elements consumed by a child handler don't reset it.
For mixed content like ``text1<item/>text2``, the parent therefore
sees ``text1text2``.
"""

from __future__ import annotations

import logging
import typing
from enum import Enum
from typing import Generic, TypeVar

from xmlscope.parsers.xml import Attributes

if typing.TYPE_CHECKING:
    from xmlscope.parsers.session import ParserSession

logger = logging.getLogger(__name__)

__all__ = (
    "HandlerState",
    "ScopeHandler",
)

I = TypeVar("I")  # noqa: E741


class HandlerState(Enum):
    """The lifecycle of a scope handler."""

    #: Constructed, but not installed in a session yet.
    PENDING = "pending"
    #: Receives the events (top of the handler stack).
    ACTIVE = "active"
    #: Paused while a child handler receives the events.
    SUSPENDED = "suspended"
    #: The scope ended. The handler never receives events again.
    RETIRED = "retired"


class ScopeHandler(Generic[I]):
    """Base class for consuming the events of a single element scope.

    :param instance: The object that this handler populates.
    :param session: The session to install this handler in as root.
    :param parent: The handler that delegated this scope. When given,
        this handler becomes active immediately, until its scope closes.
    """

    def __init__(
        self,
        instance: I,
        session: ParserSession | None = None,
        parent: ScopeHandler | None = None,
    ):
        if parent is not None and session is None:
            session = parent.session

        self.instance = instance
        self.session = session
        self.parent = parent
        self.attributes: Attributes | None = None
        self.state = HandlerState.PENDING
        self.scope_depth = 0
        self._characters: list[str] = []

        if session is not None:
            if parent is not None:
                session.activate(self)
            else:
                session.set_active_handler(self)

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.state.name.lower()}, {self.instance!r}>"

    @property
    def text(self) -> str:
        """The text collected since the last element this handler opened."""
        return "".join(self._characters)

    @property
    def depth(self) -> int:
        """How deep the current element is nested within this handler's scope.
        Zero means the element at which the handler was installed.
        """
        if self.session is None:
            return 0
        return self.session.depth - self.scope_depth

    @property
    def is_active(self) -> bool:
        return self.state is HandlerState.ACTIVE

    def delegate(self, tag: str, attributes: Attributes):
        """Start a child handler when the element opens a nested scope.

        This is called before :meth:`start_element`. When a child handler is
        constructed here with ``parent=self``, the child receives the opening
        event instead of this handler, and all events up to the closing element.
        """

    def start_element(self, tag: str, attributes: Attributes):
        """An element opens while this handler is active."""
        self._characters = []
        self.attributes = attributes
        logger.debug("%s starting: %s", self.__class__.__name__, tag)

    def characters(self, content: str):
        """Text content while this handler is active."""
        self._characters.append(content)

    def end_element(self, tag: str):
        """An element closes while this handler is active."""
        if self.is_last_element(tag):
            logger.debug(
                "%s: last element, switching to parent: %s", self.__class__.__name__, tag
            )
            self.switch_to_parent()
            return

        logger.debug("%s ending: %s", self.__class__.__name__, tag)

    def is_last_element(self, tag: str) -> bool:
        """Tell whether the closing element ends the scope of this handler.

        This compares the nesting depth instead of the tag name,
        as nested elements may have the same name as the scope element.
        """
        return self.parent is not None and self.depth == 0

    def switch_to_parent(self):
        """Hand the events back to the parent handler.
        This retires the handler, it won't receive events again.
        """
        if self.session is not None and self.parent is not None:
            self.session.retire(self)
            self.attributes = None
