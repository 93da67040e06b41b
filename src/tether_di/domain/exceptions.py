from typing import Any, List, Optional, Sequence


def type_name(dependency_type: Any) -> str:
    """Return a readable name for a type key."""
    return getattr(dependency_type, "__name__", repr(dependency_type))


class DIException(Exception):
    """Base exception for DI-related errors."""


class InvalidBindingError(DIException):
    """Raised when registration input is malformed.

    This occurs when:
    - The abstract type, concrete type, factory or constructor is missing.
    - The concrete side cannot be instantiated.
    - A constructor has an unsupported shape.
    """


class BindingAlreadyExistsError(InvalidBindingError):
    """Raised when a binding already occupies the same type (and name).

    Attributes:
        dependency_type: The abstract type of the duplicate binding.
        name: The binding name, or None for the unnamed binding.
    """

    def __init__(self, dependency_type: Any, name: Optional[str] = None) -> None:
        self.dependency_type = dependency_type
        self.name = name
        if name is None:
            message = f"Binding already exists for type {type_name(dependency_type)}"
        else:
            message = f"Named binding '{name}' already exists for type {type_name(dependency_type)}"
        super().__init__(message)


class BindingNotFoundError(DIException):
    """Raised when no binding matches the requested type (and name).

    Attributes:
        dependency_type: The requested abstract type.
        name: The requested binding name, if any.
        type_known: True when the type has bindings but none under ``name``.
    """

    def __init__(self, dependency_type: Any, name: Optional[str] = None, type_known: bool = False) -> None:
        self.dependency_type = dependency_type
        self.name = name
        self.type_known = type_known
        if type_known:
            message = f"Named binding '{name}' not found for type {type_name(dependency_type)}"
        else:
            message = f"Binding not found for type {type_name(dependency_type)}. Did you forget to register it?"
        super().__init__(message)


class CircularDependencyError(DIException):
    """Raised when a circular dependency is detected.

    Attributes:
        path: Keys from the first occurrence of the repeated key through the repetition.
    """

    def __init__(self, path: Sequence[str]) -> None:
        self.path: List[str] = list(path)
        if self.path:
            message = f"Circular dependency detected: {' -> '.join(self.path)}"
        else:
            message = "Circular dependency detected"
        super().__init__(message)


class ResolutionError(DIException):
    """Raised when a binding was found but the instance could not be built.

    Attributes:
        dependency_type: The type being resolved.
        name: Optional binding name.
        context: Free-text description of what was being done.
        cause: The underlying exception.
    """

    def __init__(
        self,
        dependency_type: Any,
        name: Optional[str] = None,
        context: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.dependency_type = dependency_type
        self.name = name
        self.context = context
        self.cause = cause
        message = f"Failed to resolve {type_name(dependency_type) if dependency_type is not None else 'unknown'}"
        if name:
            message += f" (name={name})"
        if context:
            message += f": {context}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)

    @property
    def root_cause(self) -> Optional[BaseException]:
        """Follow nested resolution errors down to the original failure."""
        cause = self.cause
        while isinstance(cause, ResolutionError) and cause.cause is not None:
            cause = cause.cause
        return cause


class ConstructorError(DIException):
    """Raised when a constructor function fails.

    Attributes:
        constructor_name: Qualified name of the failing constructor.
        cause: The exception raised by the constructor, if any.
    """

    def __init__(self, constructor_name: str, cause: Optional[BaseException] = None, reason: Optional[str] = None) -> None:
        self.constructor_name = constructor_name
        self.cause = cause
        message = f"Constructor {constructor_name} failed"
        if reason:
            message += f": {reason}"
        elif cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ContainerValidationError(DIException):
    """Aggregate of every failure found while validating all bindings.

    Attributes:
        errors: Every resolution failure, in discovery order.
    """

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors: List[BaseException] = list(errors)
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.errors:
            return "Validation failed"
        if len(self.errors) == 1:
            return f"Validation failed: {self.errors[0]}"
        lines = [f"Validation failed with {len(self.errors)} errors:"]
        lines.extend(f"  {index}. {error}" for index, error in enumerate(self.errors, start=1))
        return "\n".join(lines)


class LifetimeError(DIException):
    """Raised for invalid lifetime configurations.

    This occurs when a binding carries a lifetime the resolver does not know.
    """


class ScopeError(DIException):
    """Raised for invalid scope operations.

    This occurs when:
    - Attempting to resolve a scoped dependency from the root container.
    - Using a scope after it was disposed.
    """


class ScopeDisposedError(ScopeError):
    """Raised when a disposed scope is asked to resolve or create children."""


class ScopeDisposalError(ScopeError):
    """Raised when one or more cleanups failed while disposing a scope.

    Disposal always runs to completion before this is raised.

    Attributes:
        errors: Every cleanup failure, children first.
    """

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors: List[BaseException] = list(errors)
        details = "; ".join(str(error) for error in self.errors)
        super().__init__(f"Scope disposal encountered {len(self.errors)} error(s): {details}")


class ProviderError(DIException):
    """Raised when a service provider fails to register or boot."""


class FatalResolutionError(DIException):
    """Raised by the fast resolution path for any failure.

    Misconfiguration on this path is a programming error; call
    ``DIContainer.validate()`` at startup to surface it early.

    Attributes:
        cause: The structured error that triggered the abort.
    """

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Fatal resolution error: {cause}")
