"""
Bookkeeping records for Eventwire.

This module provides the HandlerRecord and ListeningRecord dataclasses that
an EventBus stores in its registries, plus the identity token issuer used to
key listener/source relationships.
"""

import itertools
import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

if TYPE_CHECKING:
    from eventwire.bus import EventBus

_id_counter = itertools.count(1)


def unique_id(prefix: str = "") -> str:
    """Issue a process-wide unique identity token, e.g. ``"l7"``.

    Args:
        prefix: String prepended to the counter value

    Returns:
        A token that is never issued again in this process
    """
    return f"{prefix}{next(_id_counter)}"


@dataclass(eq=False)
class ListeningRecord:
    """Tracks one listener's subscriptions to one source object.

    A record is shared by every handler the listener registered on the source
    through ``listen_to``. While ``count`` is positive it is stored in two
    places: the listener's ``_listening_to`` map under ``source_id`` and the
    source's ``_listeners`` map under ``listener_id``. When the last handler
    goes away both entries are removed together.

    Args:
        source_ref: Weak reference to the object being listened to
        listening_to: The listener's outbound registry this record lives in
        source_id: Identity token of the source object
        listener_id: Identity token of the listening object
        count: Number of live handler records pointing at this record
    """

    source_ref: "weakref.ref[EventBus]"
    listening_to: Dict[str, "ListeningRecord"] = field(repr=False)
    source_id: str
    listener_id: str
    count: int = 0

    @property
    def source(self) -> Optional["EventBus"]:
        """The source object, or None once it has been garbage collected."""
        return self.source_ref()

    def release(self, listeners: Optional[Dict[str, "ListeningRecord"]]) -> None:
        """Remove this record from both the source and listener registries."""
        if listeners is not None:
            listeners.pop(self.listener_id, None)
        self.listening_to.pop(self.source_id, None)


@dataclass
class HandlerRecord:
    """One registered callback.

    Args:
        callback: Function invoked when the event fires
        context: Explicit context given at registration, used for removal matching
        ctx: Effective owner: the explicit context, or the registering bus.
            Kept for introspection only; dispatch and removal never read it
        listening: Shared ListeningRecord for handlers added through listen_to
    """

    callback: Callable[..., Any]
    context: Any = None
    ctx: Any = None
    listening: Optional[ListeningRecord] = None

    def matches(self, callback: Optional[Callable[..., Any]], context: Any) -> bool:
        """Check whether this record satisfies ``off`` removal criteria.

        A missing criterion matches anything. The callback also matches the
        original function behind a ``once`` wrapper.
        """
        if callback is not None and callback != self.callback:
            if callback != getattr(self.callback, "_callback", None):
                return False
        return context is None or context is self.context
