import threading


class EventSource(object):
    """
    A list of handlers that are each called when an event is fired.

    A handler is registered at most once, so adding the same handler again
    does not duplicate notifications. Handlers may add or remove handlers
    while an event is being fired; the change takes effect from the next event.
    """

    def __init__(self):
        self._handlers = []
        self._lock = threading.Lock()

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return self

    def remove(self, handler):
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)
        return self

    def clear(self):
        with self._lock:
            self._handlers = []
        return self

    def handlers(self):
        with self._lock:
            return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        for handler in self.handlers():
            handler(*args, **kwargs)

    def fire_all(self, events):
        for e in events:
            self.fire(e)


class EventTypeFilter(object):
    """
    Wraps a handler so that it only receives events of a given type.
    Filters compare equal when they wrap the same handler for the same type, so they can be removed
    from an EventSource by constructing an equivalent filter.
    """

    def __init__(self, event_type, handler):
        self.event_type = event_type
        self.handler = handler

    def __call__(self, event):
        if isinstance(event, self.event_type):
            self.handler(event)

    def __eq__(self, other):
        return isinstance(other, EventTypeFilter) and \
            self.event_type is other.event_type and self.handler == other.handler

    def __hash__(self):
        return hash((self.event_type, self.handler))
