"""
Event bus module for Eventwire.

This module provides the EventBus class: named-event callbacks registered
with ``on``/``once``, fired synchronously with ``trigger``, and
inversion-of-control subscriptions that a listener tracks and cancels in bulk
with ``listen_to``/``stop_listening``.
"""

import logging
import weakref
from collections.abc import Mapping
from functools import partial
from typing import Any, Callable, Dict, Optional

from eventwire.api import Events, events_api, off_api, on_api, once_map, trigger_api
from eventwire.records import ListeningRecord, unique_id

logger = logging.getLogger(__name__)


class EventBus:
    """In-process publish/subscribe event bus.

    Objects either are an EventBus or inherit from it; no constructor call is
    required because every registry is created on first use.

    Features:
    - Several events at once: ``"change blur"`` or ``{"change": f, "blur": g}``
    - The ``"all"`` event, whose handlers receive every event name first
    - One-shot handlers with ``once`` and ``listen_to_once``
    - Listener-side bookkeeping with ``listen_to`` and ``stop_listening``

    Handlers run synchronously in registration order. A handler that raises
    stops the remaining handlers and the exception reaches the caller of
    ``trigger``.
    """

    _events: Optional[Events] = None
    _listeners: Optional[Dict[str, ListeningRecord]] = None
    _listening_to: Optional[Dict[str, ListeningRecord]] = None
    _listen_id: Optional[str] = None

    def on(self, name: Any, callback: Any = None, context: Any = None) -> "EventBus":
        """Bind a callback to one or more events.

        Passing ``"all"`` binds the callback to every event fired.

        Args:
            name: Event name, whitespace-separated names, or a name->callback mapping
            callback: Function to call; with a mapping, the default context
            context: Context recorded for later removal with ``off``

        Returns:
            This bus, for chaining
        """
        return self._internal_on(name, callback, context)

    def _internal_on(
        self,
        name: Any,
        callback: Any,
        context: Any = None,
        listening: Optional[ListeningRecord] = None,
    ) -> "EventBus":
        self._events = events_api(
            on_api,
            self._events if self._events is not None else {},
            name,
            callback,
            {"context": context, "ctx": self, "listening": listening},
        )
        logger.debug("Subscribed %r on %r", name, self)

        if listening is not None and listening.count:
            if self._listeners is None:
                self._listeners = {}
            self._listeners[listening.listener_id] = listening
        return self

    def off(self, name: Any = None, callback: Any = None, context: Any = None) -> "EventBus":
        """Remove one or many callbacks.

        If ``context`` is None, removes all callbacks with that function. If
        ``callback`` is None, removes all callbacks for the event. If ``name``
        is None, removes the matching callbacks for every event. With no
        arguments at all, removes everything, including the relationships of
        objects listening to this bus.

        Returns:
            This bus, for chaining
        """
        events = self._events
        if not events:
            return self
        self._events = events_api(
            off_api, events, name, callback, {"context": context, "listeners": self._listeners}
        )
        if self._events is None:
            events.clear()
            logger.debug("Removed all handlers from %r", self)
        else:
            logger.debug("Unsubscribed %r on %r", name, self)
        return self

    def trigger(self, name: Any, /, *args: Any, **kwargs: Any) -> "EventBus":
        """Trigger one or many events, firing all bound callbacks.

        Callbacks receive the same arguments as ``trigger`` apart from the
        event name, except ``"all"`` callbacks, which receive the event name
        as their first argument.

        Args:
            name: Event name, whitespace-separated names, or a mapping whose keys are fired
            *args: Positional arguments passed to every handler
            **kwargs: Keyword arguments passed to every handler

        Returns:
            This bus, for chaining
        """
        if not self._events:
            return self
        events_api(trigger_api, self._events, name, None, (args, kwargs))
        return self

    def once(self, name: Any, callback: Any = None, context: Any = None) -> "EventBus":
        """Bind a callback that is removed after its first invocation.

        With several names the callback fires once per event, not once for
        the whole group.

        Returns:
            This bus, for chaining
        """
        events = events_api(once_map, {}, name, callback, self.off)
        return self.on(events, callback if isinstance(name, Mapping) else None, context)

    def listen_to(self, obj: Optional["EventBus"], name: Any, callback: Any = None) -> "EventBus":
        """Listen to events on another bus, tracking the subscription here.

        Args:
            obj: Bus to listen to; None is a no-op
            name: Event name, whitespace-separated names, or a name->callback mapping
            callback: Function to call when the event fires on ``obj``

        Returns:
            This bus, for chaining
        """
        if obj is None:
            return self
        if obj._listen_id is None:
            obj._listen_id = unique_id("l")
        if self._listening_to is None:
            self._listening_to = {}
        listening_to = self._listening_to

        listening = listening_to.get(obj._listen_id)
        if listening is None:
            if self._listen_id is None:
                self._listen_id = unique_id("l")
            listening = ListeningRecord(
                source_ref=weakref.ref(obj),
                listening_to=listening_to,
                source_id=obj._listen_id,
                listener_id=self._listen_id,
            )
            listening_to[obj._listen_id] = listening

        try:
            obj._internal_on(name, callback, self, listening)
        finally:
            if listening.count == 0:
                listening.release(obj._listeners)
        if listening.count:
            logger.debug("%r listening to %r on %r", self, name, obj)
        return self

    def stop_listening(
        self, obj: Optional["EventBus"] = None, name: Any = None, callback: Any = None
    ) -> "EventBus":
        """Stop listening to specific events on ``obj``, or to everything.

        Returns:
            This bus, for chaining
        """
        listening_to = self._listening_to
        if not listening_to:
            return self

        ids = [obj._listen_id] if obj is not None else list(listening_to)
        for source_id in ids:
            listening = listening_to.get(source_id)
            if listening is None:
                continue
            source = listening.source
            if source is None:
                del listening_to[source_id]
                continue
            source.off(name, callback, self)
            logger.debug("%r stopped listening to %r on %r", self, name, source)
        return self

    def listen_to_once(self, obj: Optional["EventBus"], name: Any, callback: Any = None) -> "EventBus":
        """Inversion-of-control version of ``once``.

        Returns:
            This bus, for chaining
        """
        offer: Callable[[str, Callable[..., Any]], Any] = partial(self.stop_listening, obj)
        events = events_api(once_map, {}, name, callback, offer)
        return self.listen_to(obj, events)

    listenTo = listen_to
    listenToOnce = listen_to_once
    stopListening = stop_listening
