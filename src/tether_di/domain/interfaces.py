from abc import ABC, abstractmethod
from typing import Any, Protocol, Type, TypeVar, runtime_checkable

T = TypeVar("T")


class IResolver(ABC):
    """Abstract interface shared by containers and scopes for resolving instances."""

    @abstractmethod
    def make(self, dependency_type: Type[T]) -> T:
        """Resolve an instance, raising ``FatalResolutionError`` on any failure.

        Args:
            dependency_type: The abstract type to resolve.
        """

    @abstractmethod
    def make_named(self, dependency_type: Type[T], name: str) -> T:
        """Resolve a named instance, raising ``FatalResolutionError`` on any failure.

        Args:
            dependency_type: The abstract type to resolve.
            name: The binding name.
        """

    @abstractmethod
    def make_safe(self, dependency_type: Type[T]) -> T:
        """Resolve an instance, raising a structured ``DIException`` on failure.

        Args:
            dependency_type: The abstract type to resolve.
        """

    @abstractmethod
    def make_named_safe(self, dependency_type: Type[T], name: str) -> T:
        """Resolve a named instance, raising a structured ``DIException`` on failure.

        Args:
            dependency_type: The abstract type to resolve.
            name: The binding name.
        """


class IContainer(IResolver):
    """Abstract interface for dependency injection container operations."""

    @abstractmethod
    def create_scope(self) -> "IScope":
        """Create and return a new resolution scope."""

    @abstractmethod
    def validate(self) -> None:
        """Resolve every binding once and report every failure together."""


class IScope(IResolver):
    """Abstract interface for an isolated resolution context."""

    @abstractmethod
    def create_child_scope(self) -> "IScope":
        """Create a child scope disposed together with this one."""

    @abstractmethod
    def dispose(self) -> None:
        """Dispose children and owned instances in reverse creation order."""


@runtime_checkable
class Disposable(Protocol):
    """Capability of instances that need cleanup when their scope ends."""

    def dispose(self) -> Any: ...


@runtime_checkable
class Initializable(Protocol):
    """Capability of instances that need initialization right after construction."""

    def initialize(self) -> Any: ...


class ServiceProvider(ABC):
    """Groups related registrations.

    Example:
        >>> class LoggingProvider(ServiceProvider):
        ...     def register(self, container):
        ...         container.singleton(Logger, ConsoleLogger)
    """

    @abstractmethod
    def register(self, container: IContainer) -> None:
        """Register bindings on the container.

        Args:
            container: The container receiving the bindings.
        """


class BootableProvider(ServiceProvider):
    """Provider with a boot phase run after every provider has registered."""

    @abstractmethod
    def boot(self, container: IContainer) -> None:
        """Perform post-registration work, such as warming up singletons.

        Args:
            container: The fully registered container.
        """


class DeferredProvider(ServiceProvider):
    """Provider that decides at registration time whether to register at all."""

    @abstractmethod
    def should_register(self, container: IContainer) -> bool:
        """Return False to skip this provider entirely.

        Args:
            container: The container the provider would register into.
        """
