import logging
from typing import TYPE_CHECKING, Any, List, Optional

from tether_di.application.auto_wirer import AutoWirer
from tether_di.application.constructor_introspector import ConstructorIntrospector, callable_name
from tether_di.application.registry import BindingRegistry
from tether_di.application.singleton_cache import SingletonCache
from tether_di.domain import (
    Binding,
    CircularDependencyError,
    ConstructorError,
    DIException,
    Initializable,
    Lifetime,
    LifetimeError,
    ParameterInfo,
    ResolutionContext,
    ResolutionError,
    ScopeError,
)

if TYPE_CHECKING:
    from tether_di.application.container import DIContainer
    from tether_di.application.scope import Scope

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Resolves bindings into instances according to their lifetime.

    Every resolution pushes its key onto the caller's ``ResolutionContext``
    before doing any work and pops it afterwards, whether the resolution
    succeeded or not. A key that is already on the stack means the dependency
    graph loops back on itself.

    Attributes:
        _container: Passed to factory functions.
        _registry: Source of bindings.
        _singleton_cache: Memoized singleton instances.
        _introspector: Invokes constructor bindings.
        _auto_wirer: Fills ``Inject``-annotated attributes.
    """

    def __init__(
        self,
        container: "DIContainer",
        registry: BindingRegistry,
        singleton_cache: SingletonCache,
        introspector: Optional[ConstructorIntrospector] = None,
    ) -> None:
        self._container = container
        self._registry = registry
        self._singleton_cache = singleton_cache
        self._introspector = introspector or ConstructorIntrospector()
        self._auto_wirer = AutoWirer(self)

    @property
    def auto_wirer(self) -> AutoWirer:
        return self._auto_wirer

    def lookup(self, dependency_type: Any, name: Optional[str] = None) -> Binding:
        """Return the binding for (type, name).

        Raises:
            ResolutionError: If the type is None or the name is empty.
            BindingNotFoundError: If nothing is registered under the key.
        """
        if dependency_type is None:
            raise ResolutionError(None, context="cannot resolve a None type")
        if name is None:
            return self._registry.get(dependency_type)
        if not name:
            raise ResolutionError(dependency_type, context="binding name cannot be empty")
        return self._registry.get_named(dependency_type, name)

    def resolve(
        self,
        dependency_type: Any,
        name: Optional[str],
        context: ResolutionContext,
        scope: Optional["Scope"] = None,
    ) -> Any:
        """Resolve the binding registered under (type, name).

        Args:
            dependency_type: The abstract type to resolve.
            name: Binding name, or None for the unnamed binding.
            context: Keys currently being resolved by this top-level call.
            scope: Scope serving scoped bindings, if any.

        Returns:
            The instance dictated by the binding's lifetime.

        Raises:
            CircularDependencyError: If the key is already being resolved.
            BindingNotFoundError: If no binding matches.
            ResolutionError: If the binding exists but construction failed.
            ScopeError: If a scoped binding is resolved without a scope.
            LifetimeError: If the binding carries an unknown lifetime.
        """
        context.push((dependency_type, name))
        try:
            binding = self.lookup(dependency_type, name)
            return self._dispatch(binding, context, scope)
        finally:
            context.pop()

    def resolve_binding(
        self,
        binding: Binding,
        context: ResolutionContext,
        scope: Optional["Scope"] = None,
    ) -> Any:
        """Resolve an already looked-up binding, tracking it on the context."""
        context.push(binding.key)
        try:
            return self._dispatch(binding, context, scope)
        finally:
            context.pop()

    def resolve_all(self, dependency_type: Any, context: ResolutionContext) -> List[Any]:
        """Resolve the unnamed binding and every named binding of a type."""
        if dependency_type is None:
            raise ResolutionError(None, context="cannot resolve a None type")
        return [self.resolve_binding(binding, context) for binding in self._registry.get_all(dependency_type)]

    def resolve_tagged(self, tag: str, context: ResolutionContext) -> List[Any]:
        """Resolve every binding carrying the given tag."""
        if not tag:
            raise ResolutionError(None, context="tag cannot be empty")
        return [self.resolve_binding(binding, context) for binding in self._registry.get_by_tag(tag)]

    def _dispatch(self, binding: Binding, context: ResolutionContext, scope: Optional["Scope"]) -> Any:
        lifetime = binding.lifetime

        if lifetime == Lifetime.TRANSIENT:
            instance = self.build(binding, context, scope)
            if scope is not None:
                self.initialize(binding, instance)
            return instance

        if lifetime == Lifetime.SINGLETON:
            # Singletons never see the scope so they cannot capture scoped instances
            return self._singleton_cache.get_or_create(
                binding.key,
                lambda: self.build(binding, context, None),
            )

        if lifetime == Lifetime.FACTORY:
            return self._invoke_factory(binding)

        if lifetime == Lifetime.SCOPED:
            if scope is None:
                raise ScopeError(
                    f"Scoped binding for {binding.display_key} must be resolved through a scope, "
                    "not the container. Use container.create_scope()."
                )
            return scope.get_or_create_scoped(binding, lambda: self.build(binding, context, scope))

        raise LifetimeError(f"Unknown lifetime {lifetime!r} for {binding.display_key}")

    def build(self, binding: Binding, context: ResolutionContext, scope: Optional["Scope"] = None) -> Any:
        """Create a fresh instance for a binding, ignoring its lifetime.

        Constructor bindings get every parameter resolved first; concrete
        bindings are instantiated without arguments. Auto-wiring runs last
        when the binding enables it.

        Raises:
            ResolutionError: If a parameter, the constructor or the instantiation fails.
            CircularDependencyError: If a parameter loops back onto the stack.
        """
        if binding.constructor is not None:
            arguments = {
                parameter.name: self._resolve_parameter(binding, parameter, context, scope)
                for parameter in binding.constructor.parameters
            }
            try:
                instance = self._introspector.invoke(binding.constructor, arguments)
            except ConstructorError as e:
                raise ResolutionError(
                    binding.abstract_type, binding.name, context="constructor failed", cause=e
                ) from e
        elif binding.concrete_type is not None:
            try:
                instance = binding.concrete_type()
            except Exception as e:
                raise ResolutionError(
                    binding.abstract_type,
                    binding.name,
                    context=f"failed to instantiate {binding.concrete_type.__name__}",
                    cause=e,
                ) from e
        else:
            raise ResolutionError(
                binding.abstract_type, binding.name, context="binding has neither a constructor nor a concrete type"
            )

        if binding.auto_wire:
            self._auto_wirer.auto_wire(instance, context, scope)

        logger.debug("Built %s for %s", type(instance).__name__, binding.display_key)
        return instance

    def _resolve_parameter(
        self,
        binding: Binding,
        parameter: ParameterInfo,
        context: ResolutionContext,
        scope: Optional["Scope"],
    ) -> Any:
        try:
            return self.resolve(parameter.dependency_type, parameter.binding_name, context, scope)
        except CircularDependencyError:
            raise
        except DIException as e:
            if parameter.optional:
                logger.debug(
                    "Optional parameter '%s' of %s left as None: %s", parameter.name, binding.display_key, e
                )
                return None
            raise ResolutionError(
                binding.abstract_type,
                binding.name,
                context=f"failed to resolve parameter '{parameter.name}'",
                cause=e,
            ) from e

    def _invoke_factory(self, binding: Binding) -> Any:
        if binding.factory is None:
            raise ResolutionError(binding.abstract_type, binding.name, context="factory binding has no factory")
        factory_name = callable_name(binding.factory)
        try:
            return binding.factory(self._container)
        except RecursionError as e:
            raise ResolutionError(
                binding.abstract_type,
                binding.name,
                context=f"factory {factory_name} recursed without end, it likely resolves its own binding",
                cause=e,
            ) from e
        except Exception as e:
            # Keep the first recursion failure instead of one wrapper per stack level
            recursion = _recursion_failure(e)
            if recursion is not None:
                raise recursion from recursion.cause
            raise ResolutionError(
                binding.abstract_type,
                binding.name,
                context=f"factory {factory_name} failed",
                cause=e,
            ) from e

    def initialize(self, binding: Binding, instance: Any) -> None:
        """Run the ``initialize()`` hook of a freshly built instance, if it has one.

        Raises:
            ResolutionError: If the hook raises.
        """
        if not isinstance(instance, Initializable):
            return
        try:
            instance.initialize()
        except Exception as e:
            raise ResolutionError(
                binding.abstract_type, binding.name, context="initialization failed", cause=e
            ) from e


def _recursion_failure(error: BaseException) -> Optional[ResolutionError]:
    """Find a factory failure caused by unbounded recursion in an exception chain."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ResolutionError) and isinstance(current.cause, RecursionError):
            return current
        current = current.__cause__
    return None
