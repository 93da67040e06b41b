"""Application layer - Field injection for ``Inject``-annotated attributes."""

import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, List, NamedTuple, Optional, get_type_hints

from tether_di.application.constructor_introspector import unwrap_injection
from tether_di.domain import (
    CircularDependencyError,
    DIException,
    Inject,
    InvalidBindingError,
    ResolutionContext,
    ResolutionError,
)

if TYPE_CHECKING:
    from tether_di.application.resolver import DependencyResolver
    from tether_di.application.scope import Scope

logger = logging.getLogger(__name__)


class InjectableField(NamedTuple):
    attribute: str
    dependency_type: Any
    marker: Inject


def _is_assignable(value: Any, field_type: Any) -> bool:
    # Plain Protocols cannot be checked with isinstance
    if getattr(field_type, "_is_protocol", False) and not getattr(field_type, "_is_runtime_protocol", False):
        return True
    return isinstance(value, field_type)


class AutoWirer:
    """Injects resolved dependencies into annotated attributes of existing instances.

    An attribute takes part when its class-level annotation is
    ``Annotated[T, Inject(...)]``. Field lists are computed once per class.

    Example:
        >>> class ReportService:
        ...     logger: Annotated[Logger, Inject()]
        ...     cache: Annotated[Cache, Inject(optional=True)]
        ...     audit: Annotated[Logger, Inject(name="audit")]
    """

    def __init__(self, resolver: "DependencyResolver") -> None:
        self._resolver = resolver
        self._fields: Dict[type, List[InjectableField]] = {}
        self._lock = threading.Lock()

    def injectable_fields(self, cls: type) -> List[InjectableField]:
        """Return the ``Inject``-annotated attributes of a class."""
        fields = self._fields.get(cls)
        if fields is not None:
            return fields

        with self._lock:
            fields = self._fields.get(cls)
            if fields is None:
                fields = self._scan(cls)
                self._fields[cls] = fields
        return fields

    def _scan(self, cls: type) -> List[InjectableField]:
        try:
            hints = get_type_hints(cls, include_extras=True)
        except (NameError, TypeError) as e:
            raise InvalidBindingError(f"Cannot read annotations of {cls.__name__}: {e}") from e

        fields = []
        for attribute, annotation in hints.items():
            dependency_type, marker = unwrap_injection(annotation)
            if marker is not None:
                fields.append(InjectableField(attribute, dependency_type, marker))
        return fields

    def auto_wire(
        self,
        instance: Any,
        context: Optional[ResolutionContext] = None,
        scope: Optional["Scope"] = None,
    ) -> Any:
        """Resolve and assign every injectable attribute of ``instance``.

        Args:
            instance: The object to fill.
            context: Resolution stack of the enclosing call, if any.
            scope: Scope serving scoped dependencies, if any.

        Returns:
            The same instance.

        Raises:
            InvalidBindingError: If the instance is None or its annotations are broken.
            ResolutionError: If a required attribute cannot be resolved or assigned.
            CircularDependencyError: If an attribute loops back onto the stack.
        """
        if instance is None:
            raise InvalidBindingError("Cannot auto-wire None")

        context = context if context is not None else ResolutionContext()
        owner = type(instance)

        for field in self.injectable_fields(owner):
            try:
                value = self._resolver.resolve(field.dependency_type, field.marker.name, context, scope)
            except CircularDependencyError:
                raise
            except DIException as e:
                if field.marker.optional:
                    logger.debug("Skipping optional field %s.%s: %s", owner.__name__, field.attribute, e)
                    continue
                raise ResolutionError(owner, context=f"failed to inject field '{field.attribute}'", cause=e) from e

            if not _is_assignable(value, field.dependency_type):
                raise ResolutionError(
                    owner,
                    context=(
                        f"resolved {type(value).__name__} is not assignable to field "
                        f"'{field.attribute}' of type {field.dependency_type.__name__}"
                    ),
                )
            setattr(instance, field.attribute, value)

        return instance
