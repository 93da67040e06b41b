"""Application layer - Binding storage and lookup."""

import logging
from typing import Any, Dict, List, Optional

from tether_di.application.locks import ReadWriteLock
from tether_di.domain import (
    Binding,
    BindingAlreadyExistsError,
    BindingNotFoundError,
    InvalidBindingError,
)

logger = logging.getLogger(__name__)


class BindingRegistry:
    """Thread-safe store of bindings keyed by abstract type.

    Holds at most one unnamed binding per type and any number of named
    bindings per type, each name unique within its type. Bindings are never
    removed or replaced.

    Attributes:
        _bindings: Unnamed bindings by abstract type.
        _named_bindings: Named bindings by abstract type, then by name.
        _lock: Reader/writer lock guarding both maps.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._bindings: Dict[Any, Binding] = {}
        self._named_bindings: Dict[Any, Dict[str, Binding]] = {}
        self._lock = ReadWriteLock()

    def register(self, binding: Optional[Binding]) -> None:
        """Store an unnamed binding.

        Args:
            binding: The binding to store.

        Raises:
            InvalidBindingError: If the binding is None.
            BindingAlreadyExistsError: If the type already has an unnamed binding.
        """
        if binding is None:
            raise InvalidBindingError("Binding cannot be None")

        with self._lock.write():
            if binding.abstract_type in self._bindings:
                raise BindingAlreadyExistsError(binding.abstract_type)
            self._bindings[binding.abstract_type] = binding

        logger.debug("Registered %s binding for %s", binding.lifetime, binding.display_key)

    def register_named(self, binding: Optional[Binding]) -> None:
        """Store a named binding.

        Args:
            binding: The binding to store; its ``name`` must be set.

        Raises:
            InvalidBindingError: If the binding is None or has no name.
            BindingAlreadyExistsError: If the (type, name) pair is taken.
        """
        if binding is None:
            raise InvalidBindingError("Binding cannot be None")
        if not binding.name:
            raise InvalidBindingError("Named binding must have a name")

        with self._lock.write():
            named = self._named_bindings.setdefault(binding.abstract_type, {})
            if binding.name in named:
                raise BindingAlreadyExistsError(binding.abstract_type, binding.name)
            named[binding.name] = binding

        logger.debug("Registered %s binding for %s", binding.lifetime, binding.display_key)

    def get(self, abstract_type: Any) -> Binding:
        """Return the unnamed binding for a type.

        Raises:
            BindingNotFoundError: If the type has no unnamed binding.
        """
        with self._lock.read():
            binding = self._bindings.get(abstract_type)
        if binding is None:
            raise BindingNotFoundError(abstract_type)
        return binding

    def get_named(self, abstract_type: Any, name: str) -> Binding:
        """Return the binding registered under (type, name).

        Raises:
            BindingNotFoundError: With ``type_known=False`` when the type has no
                named bindings at all, ``type_known=True`` when only the name is unknown.
        """
        with self._lock.read():
            named = self._named_bindings.get(abstract_type)
            binding = named.get(name) if named is not None else None
        if named is None:
            raise BindingNotFoundError(abstract_type, name)
        if binding is None:
            raise BindingNotFoundError(abstract_type, name, type_known=True)
        return binding

    def has(self, abstract_type: Any) -> bool:
        """Return whether the type has any binding, named or unnamed."""
        with self._lock.read():
            return abstract_type in self._bindings or bool(self._named_bindings.get(abstract_type))

    def get_all(self, abstract_type: Any) -> List[Binding]:
        """Return the unnamed binding (if any) followed by every named binding for a type."""
        with self._lock.read():
            result: List[Binding] = []
            if abstract_type in self._bindings:
                result.append(self._bindings[abstract_type])
            result.extend(self._named_bindings.get(abstract_type, {}).values())
        return result

    def get_by_tag(self, tag: str) -> List[Binding]:
        """Return every binding, named or unnamed, carrying the given tag."""
        with self._lock.read():
            result = [binding for binding in self._bindings.values() if binding.has_tag(tag)]
            for named in self._named_bindings.values():
                result.extend(binding for binding in named.values() if binding.has_tag(tag))
        return result

    def get_all_types(self) -> List[Any]:
        """Return every type with at least one binding, in first-registration order."""
        with self._lock.read():
            types = list(self._bindings)
            types.extend(t for t in self._named_bindings if t not in self._bindings)
        return types

    def get_all_named_for(self, abstract_type: Any) -> List[str]:
        """Return the names of every named binding for a type."""
        with self._lock.read():
            return list(self._named_bindings.get(abstract_type, {}))

    def has_unnamed_binding(self, abstract_type: Any) -> bool:
        """Return whether the type has an unnamed binding."""
        with self._lock.read():
            return abstract_type in self._bindings

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._bindings) + sum(len(named) for named in self._named_bindings.values())
