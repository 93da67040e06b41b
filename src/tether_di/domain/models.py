from typing import Any, Callable, List, Optional, Set, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

from tether_di.domain.enums import Lifetime
from tether_di.domain.exceptions import CircularDependencyError, type_name

BindingKey = Tuple[Any, Optional[str]]


def format_key(dependency_type: Any, name: Optional[str] = None) -> str:
    """Render a binding key the way it appears in cycle paths and messages.

    Example:
        >>> format_key(Logger)
        'Logger'
        >>> format_key(Logger, "file")
        'Logger[file]'
    """
    if name:
        return f"{type_name(dependency_type)}[{name}]"
    return type_name(dependency_type)


class Inject(BaseModel):
    """Marker placed in ``typing.Annotated`` metadata to request injection.

    On class attributes it marks the attribute for auto-wiring; on constructor
    parameters it selects a named binding or makes the parameter optional.

    Attributes:
        name: Named binding to resolve instead of the unnamed one.
        optional: Skip the injection when resolution fails.

    Example:
        >>> class ReportService:
        ...     logger: Annotated[Logger, Inject()]
        ...     audit: Annotated[Logger, Inject(name="audit", optional=True)]
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, description="Named binding to resolve.")
    optional: bool = Field(default=False, description="Whether resolution failures are tolerated.")


class ParameterInfo(BaseModel):
    """A single constructor parameter resolved from the container."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Parameter name used as keyword argument.")
    dependency_type: Type = Field(..., description="The type resolved for this parameter.")
    binding_name: Optional[str] = Field(default=None, description="Named binding to resolve, if any.")
    optional: bool = Field(default=False, description="Pass None when resolution fails.")


class ConstructorInfo(BaseModel):
    """Validated shape of a constructor function, captured at binding time.

    Attributes:
        function: The callable invoked to build instances.
        parameters: Ordered parameters resolved from the container.
        return_type: The class the constructor produces.
        name: Qualified name used in error messages.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    function: Callable[..., Any] = Field(..., description="The constructor callable.")
    parameters: Tuple[ParameterInfo, ...] = Field(default=(), description="Ordered injectable parameters.")
    return_type: Type = Field(..., description="The type of the constructed instance.")
    name: str = Field(..., description="Qualified name of the constructor.")


class Binding(BaseModel):
    """Declarative record of how to satisfy an abstract type.

    Exactly one of ``concrete_type`` (no-argument instantiation),
    ``constructor`` or ``factory`` drives construction.

    Attributes:
        abstract_type: The type being satisfied.
        concrete_type: Implementation class, None for factory bindings.
        lifetime: How instances are created and shared.
        constructor: Introspected constructor, if any.
        factory: User function receiving the container, if any.
        name: Optional disambiguator among bindings of the same type.
        tags: Labels for group resolution.
        auto_wire: Whether ``Inject``-annotated attributes are filled after construction.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    abstract_type: Type = Field(..., description="The abstract type being bound.")
    concrete_type: Optional[Type] = Field(default=None, description="The implementation type.")
    lifetime: Lifetime = Field(..., description="The lifetime of the binding.")
    constructor: Optional[ConstructorInfo] = Field(default=None, description="Constructor metadata.")
    factory: Optional[Callable[[Any], Any]] = Field(default=None, description="Factory receiving the container.")
    name: Optional[str] = Field(default=None, description="Optional binding name.")
    tags: Tuple[str, ...] = Field(default=(), description="Tags used for group resolution.")
    auto_wire: bool = Field(default=False, description="Run field injection after construction.")

    @property
    def key(self) -> BindingKey:
        return (self.abstract_type, self.name)

    @property
    def display_key(self) -> str:
        return format_key(self.abstract_type, self.name)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


class ResolutionContext(BaseModel):
    """Tracks the keys being resolved during one top-level resolution call.

    Used for circular dependency detection. A fresh context is created for
    every top-level call and passed explicitly through the recursion.

    Keys are (type, name) pairs compared by identity.

    Attributes:
        stack: Keys currently being resolved, outermost first.
        seen: The same keys as a set for constant-time membership tests.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    stack: List[BindingKey] = Field(
        default_factory=list,
        description="Stack of keys currently being resolved.",
    )
    seen: Set[BindingKey] = Field(
        default_factory=set,
        description="Membership index over the stack.",
    )

    @property
    def depth(self) -> int:
        return len(self.stack)

    def push(self, key: BindingKey) -> None:
        """Add a key to the resolution stack.

        Args:
            key: The (type, name) pair being resolved.

        Raises:
            CircularDependencyError: If the key is already on the stack.
        """
        if key in self.seen:
            cycle = self.stack[self.stack.index(key) :] + [key]
            raise CircularDependencyError([format_key(*entry) for entry in cycle])
        self.stack.append(key)
        self.seen.add(key)

    def pop(self) -> None:
        """Remove the last (most recent) key from the stack."""
        if self.stack:
            self.seen.discard(self.stack.pop())

    def clear(self) -> None:
        """Clear the entire resolution stack."""
        self.stack.clear()
        self.seen.clear()


class ContainerOptions(BaseModel):
    """Container configuration.

    Attributes:
        retry_failed_singletons: Retry a failed singleton construction on the
            next resolution instead of replaying the memoized error.
        validate_on_boot: Run ``validate()`` after booting service providers.
    """

    model_config = ConfigDict(frozen=True)

    retry_failed_singletons: bool = Field(
        default=False,
        description="Retry failed singleton constructions instead of replaying the error.",
    )
    validate_on_boot: bool = Field(
        default=False,
        description="Validate every binding after providers are booted.",
    )
