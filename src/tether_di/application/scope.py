import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, TypeVar

from tether_di.application.locks import ReadWriteLock
from tether_di.domain import (
    Binding,
    BindingKey,
    DIException,
    Disposable,
    FatalResolutionError,
    IScope,
    ResolutionContext,
    ScopeDisposalError,
    ScopeDisposedError,
)

if TYPE_CHECKING:
    from tether_di.application.container import DIContainer
    from tether_di.application.resolver import DependencyResolver

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING = object()


class Scope(IScope):
    """Isolated resolution context owning its scoped instances.

    Scoped bindings yield one instance per scope; singleton and factory
    bindings are served by the container; transient bindings are built fresh.
    Every instance built here runs its ``initialize()`` hook, if present,
    before it is returned.

    A scope is either active or disposed. Disposal is one-way: a disposed
    scope refuses to resolve or create children.

    Attributes:
        _container: The container whose bindings this scope resolves.
        _resolver: Shared resolution engine.
        _parent: Enclosing scope for child scopes.
        _instances: Scoped instances by (type, name).
        _creation_order: Scoped instances in the order they were created.
        _children: Child scopes disposed before this scope's own instances.

    Example:
        >>> with container.create_scope() as scope:
        ...     uow1 = scope.make(UnitOfWork)
        ...     uow2 = scope.make(UnitOfWork)
        ...     assert uow1 is uow2
    """

    def __init__(
        self,
        container: "DIContainer",
        resolver: "DependencyResolver",
        parent: Optional["Scope"] = None,
    ) -> None:
        self._container = container
        self._resolver = resolver
        self._parent = parent
        self._instances: Dict[BindingKey, Any] = {}
        self._creation_order: List[Any] = []
        self._children: List["Scope"] = []
        self._disposed = False
        self._lock = ReadWriteLock()
        # Re-entrant so a scoped constructor may resolve other scoped bindings
        self._creation_lock = threading.RLock()

    @property
    def container(self) -> "DIContainer":
        return self._container

    @property
    def parent(self) -> Optional["Scope"]:
        return self._parent

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def children(self) -> List["Scope"]:
        with self._lock.read():
            return list(self._children)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._instances)

    def _ensure_active(self) -> None:
        if self._disposed:
            raise ScopeDisposedError("Cannot use a disposed scope")

    def make_safe(self, dependency_type: Type[T]) -> T:
        """Resolve an instance within this scope.

        Raises:
            ScopeDisposedError: If the scope has been disposed.
            DIException: Structured resolution errors, as ``DIContainer.make_safe``.
        """
        self._ensure_active()
        return self._resolver.resolve(dependency_type, None, ResolutionContext(), self)

    def make_named_safe(self, dependency_type: Type[T], name: str) -> T:
        """Resolve a named instance within this scope."""
        self._ensure_active()
        return self._resolver.resolve(dependency_type, name, ResolutionContext(), self)

    def make(self, dependency_type: Type[T]) -> T:
        """Resolve an instance within this scope.

        Raises:
            ScopeDisposedError: If the scope has been disposed.
            FatalResolutionError: For any other failure.
        """
        self._ensure_active()
        try:
            return self.make_safe(dependency_type)
        except ScopeDisposedError:
            raise
        except DIException as e:
            raise FatalResolutionError(e) from e

    def make_named(self, dependency_type: Type[T], name: str) -> T:
        """Resolve a named instance within this scope, failing fatally."""
        self._ensure_active()
        try:
            return self.make_named_safe(dependency_type, name)
        except ScopeDisposedError:
            raise
        except DIException as e:
            raise FatalResolutionError(e) from e

    def get_or_create_scoped(self, binding: Binding, factory: Callable[[], Any]) -> Any:
        """Return this scope's instance for a scoped binding, building it once.

        Args:
            binding: The scoped binding.
            factory: Builds a fresh instance.

        Raises:
            ScopeDisposedError: If the scope has been disposed.
        """
        key = binding.key

        with self._lock.read():
            self._ensure_active()
            instance = self._instances.get(key, _MISSING)
        if instance is not _MISSING:
            return instance

        with self._creation_lock:
            # Recheck: another thread may have built it while we waited
            with self._lock.read():
                self._ensure_active()
                instance = self._instances.get(key, _MISSING)
            if instance is not _MISSING:
                return instance

            instance = factory()
            self._resolver.initialize(binding, instance)

            with self._lock.write():
                self._ensure_active()
                self._instances[key] = instance
                self._creation_order.append(instance)

        logger.debug("Created scoped instance for %s", binding.display_key)
        return instance

    def create_child_scope(self) -> "Scope":
        """Create a child scope disposed automatically with this one.

        Raises:
            ScopeDisposedError: If the scope has been disposed.
        """
        with self._creation_lock:
            with self._lock.write():
                self._ensure_active()
                child = Scope(self._container, self._resolver, parent=self)
                self._children.append(child)
        return child

    def dispose(self) -> None:
        """Release everything this scope owns.

        Children are disposed first, then this scope's instances in reverse
        creation order. Every instance exposing ``dispose()`` is disposed even
        if earlier ones fail. Calling this again is a no-op.

        Raises:
            ScopeDisposalError: After disposal completes, if any cleanup failed.
        """
        with self._creation_lock:
            with self._lock.write():
                if self._disposed:
                    return
                self._disposed = True
                children = list(self._children)
                instances = list(self._creation_order)

            errors: List[BaseException] = []

            for child in children:
                try:
                    child.dispose()
                except ScopeDisposalError as e:
                    errors.append(e)

            for instance in reversed(instances):
                if not isinstance(instance, Disposable):
                    continue
                try:
                    instance.dispose()
                except Exception as e:
                    logger.warning("Failed to dispose %s: %s", type(instance).__name__, e)
                    errors.append(e)

            with self._lock.write():
                self._instances.clear()
                self._creation_order.clear()
                self._children.clear()

        logger.debug("Disposed scope with %d instance(s) and %d child scope(s)", len(instances), len(children))
        if errors:
            raise ScopeDisposalError(errors)

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        if exc_type is None:
            self.dispose()
            return False
        # Do not mask the exception leaving the block
        try:
            self.dispose()
        except ScopeDisposalError as e:
            logger.warning("Scope disposal failed while handling %s: %s", exc_type.__name__, e)
        return False
