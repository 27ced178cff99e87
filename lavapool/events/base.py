from __future__ import annotations


class LavaPoolEvent:
    """Base class for all events dispatched by the library.

    Listeners are registered per :class:`Client`, see :meth:`Client.add_listener`.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        attrs = " ".join(f"{name}={getattr(self, name, None)!r}" for name in self.__slots__)
        return f"<{type(self).__name__} {attrs}>"
