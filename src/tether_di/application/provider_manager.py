"""Application layer - Service provider registration and boot."""

import logging
import threading
from typing import TYPE_CHECKING, List

from tether_di.domain import BootableProvider, DeferredProvider, ProviderError, ServiceProvider

if TYPE_CHECKING:
    from tether_di.application.container import DIContainer

logger = logging.getLogger(__name__)


class _ProviderEntry:
    __slots__ = ("provider", "booted")

    def __init__(self, provider: ServiceProvider) -> None:
        self.provider = provider
        self.booted = False


class ProviderManager:
    """Tracks service providers registered on a container.

    Providers register at most once per provider class and boot at most once,
    in the order they were registered.
    """

    def __init__(self, container: "DIContainer") -> None:
        self._container = container
        self._entries: List[_ProviderEntry] = []
        # Re-entrant so a provider may register other providers
        self._lock = threading.RLock()

    @property
    def providers(self) -> List[ServiceProvider]:
        with self._lock:
            return [entry.provider for entry in self._entries]

    def register(self, provider: ServiceProvider) -> bool:
        """Run a provider's registration callback.

        Args:
            provider: The provider to register.

        Returns:
            True if the provider registered, False if it was skipped because
            it declined or a provider of the same class was already registered.

        Raises:
            ProviderError: If the provider is invalid or its callback raises.
        """
        if not isinstance(provider, ServiceProvider):
            raise ProviderError(f"Provider must be a ServiceProvider, got {type(provider).__name__}")

        provider_name = type(provider).__name__

        with self._lock:
            if isinstance(provider, DeferredProvider) and not provider.should_register(self._container):
                logger.debug("Deferred provider %s declined registration", provider_name)
                return False

            if any(type(entry.provider) is type(provider) for entry in self._entries):
                logger.debug("Provider %s already registered, skipping", provider_name)
                return False

            try:
                provider.register(self._container)
            except Exception as e:
                raise ProviderError(f"Provider {provider_name} registration failed: {e}") from e

            self._entries.append(_ProviderEntry(provider))

        logger.debug("Registered provider %s", provider_name)
        return True

    def boot(self) -> None:
        """Boot every bootable provider that has not booted yet, in registration order.

        Raises:
            ProviderError: If a provider's boot callback raises. Providers
                booted before the failure stay booted.
        """
        with self._lock:
            entries = list(self._entries)

        for entry in entries:
            if entry.booted or not isinstance(entry.provider, BootableProvider):
                continue

            provider_name = type(entry.provider).__name__
            try:
                entry.provider.boot(self._container)
            except Exception as e:
                raise ProviderError(f"Provider {provider_name} boot failed: {e}") from e
            entry.booted = True
            logger.info("Booted provider %s", provider_name)
