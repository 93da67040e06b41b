"""
Application layer - Registration, resolution and lifecycle.

This layer orchestrates domain objects into a working container.
It depends only on the Domain layer.
"""

from .auto_wirer import AutoWirer
from .constructor_introspector import ConstructorIntrospector
from .container import DIContainer
from .locks import ReadWriteLock
from .provider_manager import ProviderManager
from .registry import BindingRegistry
from .resolver import DependencyResolver
from .scope import Scope
from .singleton_cache import SingletonCache

__all__ = [
    "DIContainer",
    "Scope",
    "BindingRegistry",
    "SingletonCache",
    "ConstructorIntrospector",
    "DependencyResolver",
    "AutoWirer",
    "ProviderManager",
    "ReadWriteLock",
]
