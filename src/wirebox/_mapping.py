from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from ._container import Container


class ContainerMap:
    """Bracket-syntax access to a container.

    Example:
      services = ContainerMap(container)
      services["dsn"] = "sqlite://"
      services["dsn"]        # container.resolve("dsn")
      "dsn" in services      # container.has("dsn")
      del services["dsn"]    # container.remove("dsn")
    """

    def __init__(self, container: Container) -> None:
        self._container = container

    @property
    def container(self) -> Container:
        return self._container

    def __getitem__(self, identifier: Any) -> Any:
        return self._container.resolve(identifier)

    def __setitem__(self, identifier: Any, recipe: object) -> None:
        self._container.bind(identifier, recipe)

    def __contains__(self, identifier: Any) -> bool:
        return identifier in self._container

    def __delitem__(self, identifier: Any) -> None:
        self._container.remove(identifier)
