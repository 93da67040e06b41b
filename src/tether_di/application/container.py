import inspect
import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence, Type, TypeVar

from tether_di.application.constructor_introspector import ConstructorIntrospector, is_instantiable
from tether_di.application.provider_manager import ProviderManager
from tether_di.application.registry import BindingRegistry
from tether_di.application.resolver import DependencyResolver
from tether_di.application.scope import Scope
from tether_di.application.singleton_cache import SingletonCache
from tether_di.domain import (
    Binding,
    ContainerOptions,
    ContainerValidationError,
    DIException,
    FatalResolutionError,
    IContainer,
    InvalidBindingError,
    Lifetime,
    ResolutionContext,
    ScopeDisposalError,
    ServiceProvider,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _requires_arguments(cls: type) -> bool:
    """Return whether instantiating ``cls`` needs arguments."""
    if cls.__init__ is object.__init__:
        return False
    try:
        signature = inspect.signature(cls.__init__)
    except (TypeError, ValueError):
        return False
    parameters = list(signature.parameters.values())[1:]
    return any(
        parameter.default is inspect.Parameter.empty
        and parameter.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for parameter in parameters
    )


class DIContainer(IContainer):
    """Main dependency injection container.

    Orchestrates registration and resolution of bindings. Supports transient,
    singleton, scoped and factory lifetimes, named and tagged bindings,
    constructor injection, field auto-wiring and service providers.

    Resolution comes in two flavours. The safe methods (``make_safe``,
    ``make_named_safe``, ``validate``) raise structured ``DIException``
    subclasses. The fast methods (``make``, ``make_named``, ``make_all``,
    ``make_with_tag``, ``must_make``) treat any failure as a programming
    error and raise ``FatalResolutionError``. Both run the same cycle-checked
    resolution.

    Attributes:
        _options: Container configuration.
        _registry: Bindings by abstract type.
        _singleton_cache: Singleton instances.
        _introspector: Validates constructor bindings.
        _resolver: Resolution engine shared with scopes.
        _providers: Registered service providers.

    Example:
        >>> container = DIContainer()
        >>> container.singleton(Logger, ConsoleLogger)
        >>> container.bind(Database, MockDB)
        >>> container.bind_constructor(Service, ServiceImpl)
        >>> service = container.make(Service)
    """

    def __init__(self, options: Optional[ContainerOptions] = None) -> None:
        """Initialize the DI container with an empty registry.

        Args:
            options: Container configuration; defaults apply when omitted.
        """
        self._options = options or ContainerOptions()
        self._registry = BindingRegistry()
        self._singleton_cache = SingletonCache(retry_failed=self._options.retry_failed_singletons)
        self._introspector = ConstructorIntrospector()
        self._resolver = DependencyResolver(self, self._registry, self._singleton_cache, self._introspector)
        self._providers = ProviderManager(self)

    @property
    def options(self) -> ContainerOptions:
        return self._options

    @property
    def registry(self) -> BindingRegistry:
        return self._registry

    # Registration

    def _check_abstract(self, abstract_type: Any) -> None:
        if abstract_type is None:
            raise InvalidBindingError("Abstract type cannot be None")
        if not inspect.isclass(abstract_type):
            raise InvalidBindingError(f"Abstract type must be a class, got {abstract_type!r}")

    def _check_concrete(self, concrete_type: Any) -> None:
        if concrete_type is None:
            raise InvalidBindingError("Concrete type cannot be None")
        if not is_instantiable(concrete_type):
            raise InvalidBindingError(f"Concrete type must be an instantiable class, got {concrete_type!r}")
        if _requires_arguments(concrete_type):
            raise InvalidBindingError(
                f"Concrete type {concrete_type.__name__} requires constructor arguments; "
                "register it with bind_constructor() instead"
            )

    def _check_name(self, name: Optional[str]) -> None:
        if name is not None and not name:
            raise InvalidBindingError("Name cannot be empty")

    def _store(self, binding: Binding) -> None:
        if binding.name is None:
            self._registry.register(binding)
        else:
            self._registry.register_named(binding)

    def _bind_concrete(
        self,
        abstract_type: Any,
        concrete_type: Any,
        lifetime: Lifetime,
        name: Optional[str] = None,
        tags: Sequence[str] = (),
        auto_wire: bool = False,
    ) -> None:
        self._check_abstract(abstract_type)
        self._check_concrete(concrete_type)
        self._check_name(name)
        if lifetime == Lifetime.FACTORY:
            raise InvalidBindingError("Factory lifetime requires a factory function; use factory()")

        self._store(
            Binding(
                abstract_type=abstract_type,
                concrete_type=concrete_type,
                lifetime=lifetime,
                name=name,
                tags=tuple(tags),
                auto_wire=auto_wire,
            )
        )

    def bind(self, abstract_type: Type[T], concrete_type: Type[T], *, auto_wire: bool = False) -> None:
        """Register a transient binding: a new instance on every resolution.

        Args:
            abstract_type: The type callers depend on.
            concrete_type: Class instantiated without arguments.
            auto_wire: Inject ``Inject``-annotated attributes after construction.

        Raises:
            InvalidBindingError: If either side is invalid.
            BindingAlreadyExistsError: If the type already has an unnamed binding.

        Example:
            >>> container.bind(Logger, ConsoleLogger)
        """
        self._bind_concrete(abstract_type, concrete_type, Lifetime.TRANSIENT, auto_wire=auto_wire)

    def singleton(self, abstract_type: Type[T], concrete_type: Type[T], *, auto_wire: bool = False) -> None:
        """Register a singleton binding, created lazily on first resolution.

        Example:
            >>> container.singleton(Database, PostgresDB)
            >>> assert container.make(Database) is container.make(Database)
        """
        self._bind_concrete(abstract_type, concrete_type, Lifetime.SINGLETON, auto_wire=auto_wire)

    def scoped(self, abstract_type: Type[T], concrete_type: Type[T], *, auto_wire: bool = False) -> None:
        """Register a scoped binding, resolvable only through a scope.

        Example:
            >>> container.scoped(UnitOfWork, DbUnitOfWork)
            >>> with container.create_scope() as scope:
            ...     uow = scope.make(UnitOfWork)
        """
        self._bind_concrete(abstract_type, concrete_type, Lifetime.SCOPED, auto_wire=auto_wire)

    def factory(
        self,
        abstract_type: Type[T],
        factory: Callable[["DIContainer"], T],
        *,
        name: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> None:
        """Register a factory function called on every resolution.

        The factory receives this container to resolve its own dependencies.

        Example:
            >>> container.factory(Connection, lambda c: Connection(c.make(Config).dsn))
        """
        self._check_abstract(abstract_type)
        if factory is None:
            raise InvalidBindingError("Factory function cannot be None")
        if not callable(factory):
            raise InvalidBindingError(f"Factory must be callable, got {type(factory).__name__}")
        self._check_name(name)

        self._store(
            Binding(
                abstract_type=abstract_type,
                lifetime=Lifetime.FACTORY,
                factory=factory,
                name=name,
                tags=tuple(tags),
            )
        )

    def bind_named(
        self,
        abstract_type: Type[T],
        concrete_type: Type[T],
        name: str,
        *,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        auto_wire: bool = False,
    ) -> None:
        """Register one of several implementations of a type under a name.

        Example:
            >>> container.bind_named(Logger, FileLogger, "file")
            >>> container.bind_named(Logger, ConsoleLogger, "console")
            >>> file_logger = container.make_named(Logger, "file")
        """
        if not name:
            raise InvalidBindingError("Name cannot be empty")
        self._bind_concrete(abstract_type, concrete_type, lifetime, name=name, auto_wire=auto_wire)

    def bind_with_tags(
        self,
        abstract_type: Type[T],
        concrete_type: Type[T],
        tags: Iterable[str],
        *,
        name: Optional[str] = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        auto_wire: bool = False,
    ) -> None:
        """Register a tagged binding for group resolution with ``make_with_tag``.

        Tagged bindings are stored as named bindings; when no name is given
        one is derived from the first tag and the concrete class.

        Example:
            >>> container.bind_with_tags(Plugin, PluginA, ["plugin", "enabled"])
            >>> container.bind_with_tags(Plugin, PluginB, ["plugin"])
            >>> plugins = container.make_with_tag("plugin")
        """
        tags = tuple(tags)
        if not tags:
            raise InvalidBindingError("Tags cannot be empty")
        if not all(isinstance(tag, str) and tag for tag in tags):
            raise InvalidBindingError("Tags must be non-empty strings")
        if name is None and concrete_type is not None:
            name = f"_tag_{tags[0]}_{getattr(concrete_type, '__qualname__', concrete_type)}"
        self._bind_concrete(abstract_type, concrete_type, lifetime, name=name, tags=tags, auto_wire=auto_wire)

    def _bind_constructor(
        self,
        abstract_type: Any,
        constructor: Any,
        lifetime: Lifetime,
        name: Optional[str],
        tags: Sequence[str],
        auto_wire: bool,
    ) -> None:
        self._check_abstract(abstract_type)
        self._check_name(name)
        try:
            info = self._introspector.parse(constructor)
        except InvalidBindingError as e:
            raise InvalidBindingError(f"Invalid constructor for {abstract_type.__name__}: {e}") from e

        self._store(
            Binding(
                abstract_type=abstract_type,
                concrete_type=info.return_type,
                lifetime=lifetime,
                constructor=info,
                name=name,
                tags=tuple(tags),
                auto_wire=auto_wire,
            )
        )

    def bind_constructor(
        self,
        abstract_type: Type[T],
        constructor: Callable[..., T],
        *,
        name: Optional[str] = None,
        tags: Sequence[str] = (),
        auto_wire: bool = False,
    ) -> None:
        """Register a transient binding built by a constructor.

        Constructor parameters are resolved from the container by their type
        annotations. The constructor is either a class or a function whose
        return annotation names the class it builds.

        Raises:
            InvalidBindingError: If the constructor shape is not supported.

        Example:
            >>> def new_user_service(logger: Logger, db: Database) -> UserService:
            ...     return UserService(logger, db)
            >>>
            >>> container.bind_constructor(IUserService, new_user_service)
        """
        self._bind_constructor(abstract_type, constructor, Lifetime.TRANSIENT, name, tags, auto_wire)

    def singleton_constructor(
        self,
        abstract_type: Type[T],
        constructor: Callable[..., T],
        *,
        name: Optional[str] = None,
        tags: Sequence[str] = (),
        auto_wire: bool = False,
    ) -> None:
        """Register a singleton binding built by a constructor."""
        self._bind_constructor(abstract_type, constructor, Lifetime.SINGLETON, name, tags, auto_wire)

    def scoped_constructor(
        self,
        abstract_type: Type[T],
        constructor: Callable[..., T],
        *,
        name: Optional[str] = None,
        tags: Sequence[str] = (),
        auto_wire: bool = False,
    ) -> None:
        """Register a scoped binding built by a constructor."""
        self._bind_constructor(abstract_type, constructor, Lifetime.SCOPED, name, tags, auto_wire)

    # Resolution

    def make_safe(self, dependency_type: Type[T]) -> T:
        """Resolve an instance of the requested type.

        Args:
            dependency_type: The abstract type to resolve.

        Returns:
            Instance of the requested type with all dependencies injected.

        Raises:
            BindingNotFoundError: If the type has no unnamed binding.
            CircularDependencyError: If the dependency graph loops.
            ResolutionError: If a binding was found but construction failed.
            ScopeError: If the binding is scoped.
        """
        return self._resolver.resolve(dependency_type, None, ResolutionContext())

    def make_named_safe(self, dependency_type: Type[T], name: str) -> T:
        """Resolve the binding registered under (type, name)."""
        return self._resolver.resolve(dependency_type, name, ResolutionContext())

    def _fatal(self, resolve: Callable[[], Any]) -> Any:
        try:
            return resolve()
        except DIException as e:
            raise FatalResolutionError(e) from e

    def make(self, dependency_type: Type[T]) -> T:
        """Resolve an instance, treating any failure as fatal.

        Raises:
            FatalResolutionError: On any failure; the structured error is its cause.

        Example:
            >>> logger = container.make(Logger)
        """
        return self._fatal(lambda: self.make_safe(dependency_type))

    def must_make(self, dependency_type: Type[T]) -> T:
        """Resolve with ``make_safe`` and abort with ``FatalResolutionError`` on error."""
        return self._fatal(lambda: self.make_safe(dependency_type))

    def make_named(self, dependency_type: Type[T], name: str) -> T:
        """Resolve a named instance, treating any failure as fatal."""
        return self._fatal(lambda: self.make_named_safe(dependency_type, name))

    def make_all(self, dependency_type: Type[T]) -> List[T]:
        """Resolve every implementation of a type: the unnamed binding first, then named ones.

        Example:
            >>> for logger in container.make_all(Logger):
            ...     logger.log("message")
        """
        return self._fatal(lambda: self._resolver.resolve_all(dependency_type, ResolutionContext()))

    def make_with_tag(self, tag: str) -> List[Any]:
        """Resolve every binding carrying the given tag."""
        return self._fatal(lambda: self._resolver.resolve_tagged(tag, ResolutionContext()))

    def auto_wire(self, instance: T) -> T:
        """Fill the ``Inject``-annotated attributes of an existing instance.

        Example:
            >>> class Handler:
            ...     logger: Annotated[Logger, Inject()]
            >>>
            >>> handler = container.auto_wire(Handler())

        Raises:
            InvalidBindingError: If the instance is None.
            ResolutionError: If a required attribute cannot be injected.
        """
        return self._resolver.auto_wirer.auto_wire(instance, ResolutionContext())

    def create_scope(self) -> Scope:
        """Create a new scope for scoped bindings.

        Example:
            >>> with container.create_scope() as scope:
            ...     ctx1 = scope.make(RequestContext)
            ...     ctx2 = scope.make(RequestContext)
            ...     assert ctx1 is ctx2
        """
        return Scope(self, self._resolver)

    def validate(self) -> None:
        """Resolve every registered binding once and report every failure.

        Scoped bindings are resolved inside a temporary scope that is disposed
        afterwards. Singletons created here stay cached.

        Raises:
            ContainerValidationError: With every failure found, if any.
        """
        errors: List[DIException] = []
        scope = self.create_scope()

        def check(binding: Binding) -> None:
            resolver = scope if binding.lifetime == Lifetime.SCOPED else self
            try:
                if binding.name:
                    resolver.make_named_safe(binding.abstract_type, binding.name)
                else:
                    resolver.make_safe(binding.abstract_type)
            except DIException as e:
                logger.debug("Validation failed for %s: %s", binding.display_key, e)
                errors.append(e)

        for abstract_type in self._registry.get_all_types():
            if self._registry.has_unnamed_binding(abstract_type):
                check(self._registry.get(abstract_type))
            for name in self._registry.get_all_named_for(abstract_type):
                check(self._registry.get_named(abstract_type, name))

        try:
            scope.dispose()
        except ScopeDisposalError as e:
            errors.append(e)

        if errors:
            raise ContainerValidationError(errors)

    # Service providers

    @property
    def providers(self) -> List[ServiceProvider]:
        return self._providers.providers

    def register_provider(self, provider: ServiceProvider) -> bool:
        """Register a service provider; its ``register`` callback runs immediately.

        Returns:
            False if the provider was skipped (declined or already registered).

        Raises:
            ProviderError: If the provider's registration fails.
        """
        return self._providers.register(provider)

    def boot_providers(self) -> None:
        """Boot registered providers in registration order, each at most once.

        Raises:
            ProviderError: If a provider's boot fails.
            ContainerValidationError: If ``validate_on_boot`` is set and validation fails.
        """
        self._providers.boot()
        if self._options.validate_on_boot:
            self.validate()
