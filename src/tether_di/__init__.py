"""
tether-di: Thread-safe dependency injection container with lifetimes, scopes and cycle detection.

Public API exports for the tether-di package.
"""

# Application exports
from tether_di.application.container import DIContainer
from tether_di.application.scope import Scope

# Domain exports
from tether_di.domain.enums import Lifetime
from tether_di.domain.exceptions import (
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
from tether_di.domain.interfaces import (
    BootableProvider,
    DeferredProvider,
    Disposable,
    Initializable,
    ServiceProvider,
)
from tether_di.domain.models import ContainerOptions, Inject

__version__ = "0.1.0"

__all__ = [
    # Container
    "DIContainer",
    "Scope",
    "ContainerOptions",
    # Enums
    "Lifetime",
    # Injection markers and capabilities
    "Inject",
    "Disposable",
    "Initializable",
    # Providers
    "ServiceProvider",
    "BootableProvider",
    "DeferredProvider",
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
]
