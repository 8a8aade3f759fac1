from typing import Any, Protocol


class Store(Protocol):
    """Backing document of a keyed or list store: load everything, save everything."""

    def load(self) -> Any: ...

    def save(self, data: Any) -> None: ...
