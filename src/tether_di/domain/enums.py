from enum import Enum


class Lifetime(str, Enum):
    """Defines how instances of a binding are created and shared.

    Attributes:
        TRANSIENT: New instance created on each resolution.
        SINGLETON: Single instance shared by every resolution from the container.
        SCOPED: Single instance per scope (e.g., per HTTP request).
        FACTORY: User function invoked on each resolution.
    """

    TRANSIENT = "transient"
    SINGLETON = "singleton"
    SCOPED = "scoped"
    FACTORY = "factory"

    def __str__(self) -> str:
        return self.value
