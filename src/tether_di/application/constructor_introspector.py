import inspect
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, get_args, get_origin, get_type_hints

from tether_di.domain import ConstructorError, ConstructorInfo, Inject, InvalidBindingError, ParameterInfo

# Builtin scalars are never bound; a parameter of these types can only be a misconfiguration.
_SCALAR_TYPES = (int, str, float, bool, bytes, complex)


def is_instantiable(cls: Any) -> bool:
    """Return whether ``cls`` is a concrete class that can be instantiated."""
    return inspect.isclass(cls) and not inspect.isabstract(cls) and not getattr(cls, "_is_protocol", False)


def unwrap_injection(annotation: Any) -> Tuple[Any, Optional[Inject]]:
    """Split ``Annotated[T, Inject(...)]`` into ``T`` and the marker.

    Plain annotations are returned unchanged with no marker.
    """
    if get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        marker = next((item for item in metadata if isinstance(item, Inject)), None)
        return base, marker
    return annotation, None


def callable_name(function: Any) -> str:
    return getattr(function, "__qualname__", None) or getattr(function, "__name__", None) or repr(function)


class ConstructorIntrospector:
    """Validates constructor shapes at binding time and invokes them at resolution time.

    A constructor is either a class (its ``__init__`` is inspected) or a
    callable whose return annotation names the class it produces. Every
    parameter without a default must carry a type annotation naming a class
    that can be resolved from the container.
    """

    def parse(self, constructor: Any) -> ConstructorInfo:
        """Analyze a constructor and capture its injectable parameters.

        Args:
            constructor: A class or a type-annotated factory function.

        Returns:
            The validated constructor metadata.

        Raises:
            InvalidBindingError: If the constructor shape is not supported.

        Example:
            >>> def new_service(logger: Logger, db: Database) -> ServiceImpl:
            ...     return ServiceImpl(logger, db)
            >>>
            >>> info = ConstructorIntrospector().parse(new_service)
            >>> [p.dependency_type for p in info.parameters]
            [Logger, Database]
        """
        if constructor is None:
            raise InvalidBindingError("Constructor cannot be None")
        if not callable(constructor):
            raise InvalidBindingError(f"Constructor must be callable, got {type(constructor).__name__}")

        name = callable_name(constructor)

        if inspect.isclass(constructor):
            if not is_instantiable(constructor):
                raise InvalidBindingError(f"Constructor {name} is abstract and cannot be instantiated")
            return_type = constructor
            if constructor.__init__ is object.__init__:
                return ConstructorInfo(function=constructor, parameters=(), return_type=return_type, name=name)
            target = constructor.__init__
        else:
            return_type = None
            target = constructor

        try:
            signature = inspect.signature(target)
            type_hints = get_type_hints(target, include_extras=True)
        except (NameError, TypeError, ValueError) as e:
            raise InvalidBindingError(f"Cannot introspect constructor {name}: {e}") from e

        if return_type is None:
            return_type = self._parse_return_type(name, type_hints)

        parameters = list(signature.parameters.values())
        if inspect.isclass(constructor):
            # Skip 'self'
            parameters = parameters[1:]

        return ConstructorInfo(
            function=constructor,
            parameters=tuple(self._parse_parameters(name, parameters, type_hints)),
            return_type=return_type,
            name=name,
        )

    def _parse_return_type(self, name: str, type_hints: Dict[str, Any]) -> type:
        if "return" not in type_hints:
            raise InvalidBindingError(f"Constructor {name} must declare its return type")

        return_type = type_hints["return"]
        if return_type is None or return_type is type(None):
            raise InvalidBindingError(f"Constructor {name} must return an instance, got None")
        if get_origin(return_type) is not None:
            raise InvalidBindingError(f"Constructor {name} must return a single instance of a class, got {return_type}")
        if not inspect.isclass(return_type):
            raise InvalidBindingError(f"Constructor {name} must return a class instance, got {return_type!r}")
        if not is_instantiable(return_type):
            raise InvalidBindingError(
                f"Constructor {name} must return an instantiable class, "
                f"got abstract type {return_type.__name__}"
            )
        return return_type

    def _parse_parameters(
        self,
        name: str,
        parameters: List[inspect.Parameter],
        type_hints: Dict[str, Any],
    ) -> List[ParameterInfo]:
        result = []
        for param in parameters:
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise InvalidBindingError(f"Constructor {name} cannot accept *args or **kwargs ('{param.name}')")
            if param.kind is inspect.Parameter.POSITIONAL_ONLY:
                raise InvalidBindingError(f"Constructor {name} parameter '{param.name}' cannot be positional-only")

            # Parameters with defaults keep their default values
            if param.default is not inspect.Parameter.empty:
                continue

            if param.name not in type_hints:
                raise InvalidBindingError(
                    f"Constructor {name} parameter '{param.name}' lacks type hint and has no default value"
                )

            dependency_type, marker = unwrap_injection(type_hints[param.name])
            if not inspect.isclass(dependency_type) or get_origin(dependency_type) is not None:
                raise InvalidBindingError(
                    f"Constructor {name} parameter '{param.name}' must be annotated with a class, got {dependency_type!r}"
                )
            if dependency_type in _SCALAR_TYPES:
                raise InvalidBindingError(
                    f"Constructor {name} parameter '{param.name}' has builtin type "
                    f"{dependency_type.__name__}, which cannot be resolved from the container"
                )

            result.append(
                ParameterInfo(
                    name=param.name,
                    dependency_type=dependency_type,
                    binding_name=marker.name if marker else None,
                    optional=marker.optional if marker else False,
                )
            )
        return result

    def invoke(self, info: ConstructorInfo, arguments: Dict[str, Any]) -> Any:
        """Call the constructor with already resolved arguments.

        Args:
            info: Metadata returned by ``parse``.
            arguments: Resolved parameter values by parameter name.

        Returns:
            The constructed instance.

        Raises:
            ConstructorError: If the constructor raises or returns None.
        """
        function: Callable[..., Any] = info.function
        try:
            instance = function(**arguments)
        except Exception as e:
            raise ConstructorError(info.name, cause=e) from e

        if instance is None:
            raise ConstructorError(info.name, reason="returned None")
        return instance
