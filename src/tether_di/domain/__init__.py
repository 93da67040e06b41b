"""
Domain layer - Core models, contracts and errors.

This layer contains the fundamental records and rules for dependency injection.
It has no dependencies on other layers.
"""

from .enums import Lifetime
from .exceptions import (
    BindingAlreadyExistsError,
    BindingNotFoundError,
    CircularDependencyError,
    ConstructorError,
    ContainerValidationError,
    DIException,
    FatalResolutionError,
    InvalidBindingError,
    LifetimeError,
    ProviderError,
    ResolutionError,
    ScopeDisposalError,
    ScopeDisposedError,
    ScopeError,
)
from .interfaces import (
    BootableProvider,
    DeferredProvider,
    Disposable,
    IContainer,
    Initializable,
    IResolver,
    IScope,
    ServiceProvider,
)
from .models import (
    Binding,
    BindingKey,
    ConstructorInfo,
    ContainerOptions,
    Inject,
    ParameterInfo,
    ResolutionContext,
    format_key,
)

__all__ = [
    # Enums
    "Lifetime",
    # Exceptions
    "DIException",
    "InvalidBindingError",
    "BindingAlreadyExistsError",
    "BindingNotFoundError",
    "CircularDependencyError",
    "ResolutionError",
    "ConstructorError",
    "ContainerValidationError",
    "LifetimeError",
    "ScopeError",
    "ScopeDisposedError",
    "ScopeDisposalError",
    "ProviderError",
    "FatalResolutionError",
    # Interfaces
    "IResolver",
    "IContainer",
    "IScope",
    "Disposable",
    "Initializable",
    "ServiceProvider",
    "BootableProvider",
    "DeferredProvider",
    # Models
    "Binding",
    "BindingKey",
    "ConstructorInfo",
    "ContainerOptions",
    "Inject",
    "ParameterInfo",
    "ResolutionContext",
    "format_key",
]
