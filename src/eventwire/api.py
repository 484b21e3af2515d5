"""
Reducing helpers behind the EventBus public methods.

Every public operation accepts the same three shapes of event name: a single
name, several names separated by whitespace, or a mapping of name to callback.
``events_api`` flattens those shapes into individual ``(name, callback)``
applications of one of the reducers below, threading the registry (or any
other accumulator) through each application.
"""

import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from eventwire.records import HandlerRecord

ALL_EVENTS = "all"

EVENT_SPLITTER = re.compile(r"\s+")

Events = Dict[str, List[HandlerRecord]]
T = TypeVar("T")


def events_api(
    iteratee: Callable[[T, Any, Any, Any], T],
    events: T,
    name: Any,
    callback: Any,
    options: Any,
) -> T:
    """Apply ``iteratee`` once per individual event name.

    Args:
        iteratee: Reducer called as ``iteratee(events, name, callback, options)``
        events: Initial accumulator
        name: Event name, whitespace-separated names, or a name->callback mapping
        callback: Callback for string names; for mappings, the default context
        options: Extra argument forwarded to every reducer call

    Returns:
        The accumulator returned by the last reducer call

    Raises:
        TypeError: If ``name`` is not None, a string, or a mapping
    """
    if isinstance(name, Mapping):
        # A callback passed alongside an event map is its context.
        if (
            callback is not None
            and isinstance(options, dict)
            and "context" in options
            and options["context"] is None
        ):
            options = dict(options, context=callback)
        for key, value in list(name.items()):
            events = events_api(iteratee, events, key, value, options)
    elif name is not None and not isinstance(name, str):
        raise TypeError(f"event name must be a str or a mapping, not {type(name).__name__}")
    elif name and EVENT_SPLITTER.search(name):
        for token in name.split():
            events = iteratee(events, token, callback, options)
    else:
        events = iteratee(events, name, callback, options)
    return events


def on_api(events: Events, name: Optional[str], callback: Any, options: Dict[str, Any]) -> Events:
    """Append a HandlerRecord for ``callback`` under ``name``."""
    if callback is None or not name:
        return events
    context = options.get("context")
    listening = options.get("listening")
    if listening is not None:
        listening.count += 1
    events.setdefault(name, []).append(
        HandlerRecord(
            callback=callback,
            context=context,
            ctx=context if context is not None else options.get("ctx"),
            listening=listening,
        )
    )
    return events


def off_api(
    events: Optional[Events], name: Optional[str], callback: Any, options: Dict[str, Any]
) -> Optional[Events]:
    """Remove the handlers matching ``name``, ``callback`` and ``options["context"]``.

    With no name, callback or context this drops every inbound listening
    relationship and returns None, which callers treat as an empty registry.
    Removing the last handler tied to a ListeningRecord releases the record
    from both the source and the listener.
    """
    if not events:
        return events

    context = options.get("context")
    listeners = options.get("listeners")

    if not name and callback is None and context is None:
        for listening in list((listeners or {}).values()):
            listening.release(listeners)
        return None

    names = [name] if name else list(events)
    for event_name in names:
        handlers = events.get(event_name)
        if not handlers:
            continue

        remaining = []
        for handler in handlers:
            if not handler.matches(callback, context):
                remaining.append(handler)
            elif handler.listening is not None:
                handler.listening.count -= 1
                if handler.listening.count == 0:
                    handler.listening.release(listeners)

        if remaining:
            events[event_name] = remaining
        else:
            del events[event_name]
    return events


def once_map(
    events: Dict[str, Callable[..., Any]],
    name: str,
    callback: Any,
    offer: Callable[[str, Callable[..., Any]], Any],
) -> Dict[str, Callable[..., Any]]:
    """Map ``name`` to a run-once wrapper around ``callback``.

    The wrapper calls ``offer(name, wrapper)`` to unsubscribe itself before
    invoking ``callback``. Later calls do nothing and return None.
    """
    if callback is None:
        return events

    called = False

    def once(*args: Any, **kwargs: Any) -> Any:
        nonlocal called
        if called:
            return None
        called = True
        offer(name, once)
        return callback(*args, **kwargs)

    once._callback = callback  # type: ignore[attr-defined]
    events[name] = once
    return events


def trigger_events(handlers: Sequence[HandlerRecord], args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> None:
    """Invoke each handler in order over a snapshot of ``handlers``."""
    for handler in tuple(handlers):
        handler.callback(*args, **kwargs)


def trigger_api(
    events: Optional[Events],
    name: str,
    callback: Any,
    options: Tuple[Tuple[Any, ...], Dict[str, Any]],
) -> Optional[Events]:
    """Dispatch ``name`` to its own handlers, then to the wildcard handlers."""
    if not events:
        return events
    args, kwargs = options
    handlers = events.get(name)
    all_handlers = events.get(ALL_EVENTS)
    # Exact-name handlers may subscribe to "all"; freeze that list first.
    if handlers and all_handlers:
        all_handlers = list(all_handlers)
    if handlers:
        trigger_events(handlers, args, kwargs)
    if all_handlers:
        trigger_events(all_handlers, (name,) + args, kwargs)
    return events
