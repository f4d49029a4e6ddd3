from __future__ import annotations

import importlib
import inspect
import logging
import threading
import typing
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    TypeVar,
    get_type_hints,
    overload,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    T = TypeVar("T")

    Identifier = type[T] | str


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class Registration:
    """A recipe bound to an identifier.

    The recipe kind follows from the object itself: a class is a type
    reference built reflectively, any other callable is a zero-argument
    resolver, and everything else is a literal value returned as-is.
    """

    identifier: Any
    recipe: object
    lifetime: Lifetime

    @property
    def is_type_reference(self) -> bool:
        return inspect.isclass(self.recipe)

    @property
    def is_resolver(self) -> bool:
        return callable(self.recipe) and not self.is_type_reference


@dataclass(frozen=True)
class Factory:
    """Resolver marked as transient; binding it always yields a fresh value per resolve."""

    resolver: Callable[[], object]

    def __call__(self) -> object:
        return self.resolver()


class ResolutionError(RuntimeError):
    pass


class NotInstantiable(ResolutionError):
    def __init__(self, type_name: str) -> None:
        super().__init__(f"Class [{type_name}] is not a resolvable dependency.")
        self.type_name = type_name


class UnresolvableDependency(ResolutionError):
    def __init__(self, identifier: object) -> None:
        super().__init__(f"No binding found and {identifier!r} does not name an instantiable class.")
        self.identifier = identifier


class CircularDependency(ResolutionError):
    def __init__(self, chain: list[str]) -> None:
        super().__init__(f"Circular dependency detected: {' -> '.join(chain)}")
        self.chain = chain


class Container:
    """Inversion-of-control container.

    - bind literal values, zero-argument resolvers or classes to identifiers
    - string identifiers are case-insensitive; classes are keyed by qualified name
    - lifetimes: transient (default) / singleton
    - unbound class identifiers are built by constructor injection.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Registration] = {}
        self._instances: dict[str, object] = {}
        self._lock = threading.RLock()
        self._resolving = threading.local()

    def bind(self, identifier: Identifier[T], recipe: object, singleton: bool = False) -> None:  # noqa: FBT001, FBT002
        """Bind a value, a resolver or a class to an identifier.

        Example:
          container.bind("dsn", "sqlite://")
          container.bind(Repo, SqlRepo, singleton=True)
          container.bind("clock", container.factory(time.monotonic))

        Rebinding drops any instance cached for the previous recipe.
        """
        lifetime = Lifetime.SINGLETON if singleton else Lifetime.TRANSIENT
        if isinstance(recipe, Factory):
            recipe = recipe.resolver
            lifetime = Lifetime.TRANSIENT

        key = _key(identifier)
        with self._lock:
            self._bindings[key] = Registration(identifier=identifier, recipe=recipe, lifetime=lifetime)
            if key in self._instances:
                del self._instances[key]
                logger.debug("Evicted cached instance for '%s' on rebind", key)
        logger.debug("Bound '%s' (%s)", key, lifetime.value)

    def singleton(self, identifier: Identifier[T], recipe: object) -> None:
        self.bind(identifier, recipe, singleton=True)

    def instance(self, obj: T, identifier: Identifier[Any] | None = None) -> T:
        """Register a pre-built object (always singleton).

        Without an identifier the object's own class is used.
        """
        if identifier is None:
            identifier = type(obj)

        key = _key(identifier)
        with self._lock:
            self._bindings[key] = Registration(identifier=identifier, recipe=obj, lifetime=Lifetime.SINGLETON)
            self._instances[key] = obj
        logger.debug("Registered instance for '%s'", key)
        return obj

    def factory(self, resolver: Callable[[], T]) -> Factory:
        """Mark a resolver as a factory service, resolved anew on every call."""
        if not callable(resolver):
            msg = "Service definition is not a callable."
            raise TypeError(msg)
        return Factory(resolver)

    def get_binding(self, identifier: Identifier[Any]) -> Registration | None:
        return self._bindings.get(_key(identifier))

    def has(self, identifier: Identifier[Any]) -> bool:
        return _key(identifier) in self._bindings

    def __contains__(self, identifier: object) -> bool:
        if not (isinstance(identifier, str) or inspect.isclass(identifier)):
            return False
        return self.has(identifier)  # type: ignore[arg-type]

    def remove(self, identifier: Identifier[Any]) -> None:
        key = _key(identifier)
        with self._lock:
            self._bindings.pop(key, None)
            self._instances.pop(key, None)
        logger.debug("Removed '%s'", key)

    def is_singleton(self, identifier: Identifier[Any]) -> bool:
        reg = self.get_binding(identifier)
        return reg is not None and reg.lifetime == Lifetime.SINGLETON

    @overload
    def resolve(self, identifier: type[T], *args: Any, **overrides: Any) -> T: ...

    @overload
    def resolve(self, identifier: str, *args: Any, **overrides: Any) -> Any: ...

    def resolve(self, identifier: Identifier[T], *args: Any, **overrides: Any) -> Any:
        """Resolve the identifier to a value or instance.

        - Explicit bindings are consulted first.
        - An unbound identifier is treated as a class (or dotted class path) and built.
        `args` are appended after the injected constructor dependencies;
        `overrides` supply constructor parameters by name.
        """
        key = _key(identifier)
        with self._lock:
            stack = self._resolving_stack()
            if key in stack:
                raise CircularDependency([*stack, key])

            stack.append(key)
            try:
                return self._resolve(identifier, key, args, overrides)
            finally:
                stack.pop()

    def _resolve(self, identifier: Identifier[Any], key: str, args: tuple[Any, ...], overrides: dict[str, Any]) -> Any:
        reg = self._bindings.get(key)
        singleton = reg is not None and reg.lifetime == Lifetime.SINGLETON

        # Return cached singleton if present
        if singleton and key in self._instances:
            logger.debug("Returning cached instance for '%s'", key)
            return self._instances[key]

        if reg is not None and reg.is_resolver:
            instance = reg.recipe()  # type: ignore[operator]
        elif reg is not None and not reg.is_type_reference:
            return reg.recipe
        else:
            target = reg.recipe if reg is not None else _locate(identifier)
            if target is None:
                raise UnresolvableDependency(identifier)
            instance = self._construct(target, *args, **overrides)

        if singleton:
            self._instances[key] = instance
            logger.debug("Cached singleton instance for '%s'", key)

        return instance

    def _construct(self, cls: type[T], *args: Any, **overrides: Any) -> T:
        return Builder(self).build(cls, *args, **overrides)

    def _resolving_stack(self) -> list[str]:
        # Each thread tracks its own chain of keys under resolution.
        stack = getattr(self._resolving, "stack", None)
        if stack is None:
            stack = []
            self._resolving.stack = stack
        return stack


class Builder:
    """Reflective constructor injection for a container."""

    def __init__(self, container: Container) -> None:
        self._container = container

    def build(self, cls: type[T], *args: Any, **overrides: Any) -> T:
        if not inspect.isclass(cls) or inspect.isabstract(cls) or _is_protocol(cls):
            raise NotInstantiable(_qualified_name(cls))

        if not _has_constructor(cls):
            logger.debug("Building %s without constructor", cls.__qualname__)
            return cls(*args, **overrides)

        positional, keywords, overrides = self._build_dependencies(cls, overrides)
        logger.debug("Building %s with %d injected dependencies", cls.__qualname__, len(positional) + len(keywords))
        return cls(*positional, *args, **keywords, **overrides)

    def _build_dependencies(
        self, cls: type, overrides: dict[str, Any]
    ) -> tuple[list[Any], dict[str, Any], dict[str, Any]]:
        """Resolve the typed, required constructor parameters.

        Parameters are walked from last to first and each resolved value is
        prepended, so explicit positional arguments line up with the trailing
        parameters that were skipped. Optional, variadic and untyped
        parameters are left to the caller.

        Positional-only overrides are moved into the positional arguments.
        Once a positional-or-keyword parameter is overridden by name, every
        dependency after it is passed by keyword.
        """
        params = list(inspect.signature(cls).parameters.values())
        hints = _get_init_type_hints(cls)
        overrides = dict(overrides)

        named = [i for i, p in enumerate(params) if p.name in overrides and p.kind is p.POSITIONAL_OR_KEYWORD]
        keyword_from = named[0] if named else len(params)

        positional: list[Any] = []
        keywords: dict[str, Any] = {}
        for i in reversed(range(len(params))):
            p = params[i]
            if p.kind is p.POSITIONAL_ONLY and p.name in overrides:
                positional.insert(0, overrides.pop(p.name))
                continue
            if p.name in overrides:
                continue
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD) or p.default is not p.empty:
                continue

            ann = hints.get(p.name, inspect.Signature.empty)
            if not _is_service_type(ann):
                continue

            value = self._resolve_dependency(ann)
            if p.kind is p.KEYWORD_ONLY or i > keyword_from:
                keywords[p.name] = value
            else:
                positional.insert(0, value)

        return positional, keywords, overrides

    def _resolve_dependency(self, ann: type) -> Any:
        if issubclass(ann, Container) and isinstance(self._container, ann):
            return self._container
        return self._container.resolve(ann)


def _key(identifier: object) -> str:
    if inspect.isclass(identifier):
        return _qualified_name(identifier).lower()
    if isinstance(identifier, str):
        return identifier.lower()

    msg = f"Identifiers must be strings or classes, got {type(identifier).__name__}"
    raise TypeError(msg)


def _qualified_name(cls: object) -> str:
    if inspect.isclass(cls):
        return f"{cls.__module__}.{cls.__qualname__}"
    return str(cls)


def _locate(identifier: object) -> type | None:
    """Find the class an unbound identifier names, by dotted path for strings."""
    if inspect.isclass(identifier):
        return identifier
    if not isinstance(identifier, str):
        return None

    parts = identifier.split(".")
    for i in range(len(parts) - 1, 0, -1):
        try:
            obj: Any = importlib.import_module(".".join(parts[:i]))
        except (ImportError, ValueError):
            continue

        for attr in parts[i:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                return None
        return obj if inspect.isclass(obj) else None

    return None


def _is_service_type(ann: object) -> bool:
    if ann is inspect.Signature.empty:
        return False
    # Builtins (int, str, ...) carry data, not services.
    return inspect.isclass(ann) and getattr(ann, "__module__", "") != "builtins"


def _is_protocol(tp: type) -> bool:
    if hasattr(typing, "is_protocol"):
        # https://docs.python.org/3/library/typing.html#typing.is_protocol
        return typing.is_protocol(tp)
    return bool(getattr(tp, "_is_protocol", False))


def _has_constructor(cls: type) -> bool:
    return cls.__init__ is not object.__init__ or cls.__new__ is not object.__new__


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        if cls.__init__ is object.__init__:
            # __new__-only classes, such as NamedTuple
            init = cls.__new__
        else:
            init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints
