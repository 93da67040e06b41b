import logging
from typing import Awaitable, Callable, Optional, Type, TypeVar

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from tether_di.domain import IContainer, IScope, ScopeDisposalError

T = TypeVar("T")

logger = logging.getLogger(__name__)

SCOPE_STATE_ATTRIBUTE = "di_scope"


def create_fastapi_dependency(
    container: IContainer,
    dependency_type: Type[T],
    name: Optional[str] = None,
) -> Callable[[], T]:
    """Create a FastAPI Depends() callable that resolves from the DI container.

    The resolved instance lifetime follows the binding in the container
    (singleton, transient or factory). Scoped bindings need
    ``create_scoped_dependency`` instead.

    Args:
        container: The DI container to resolve dependencies from.
        dependency_type: The type to resolve when the dependency is called.
        name: Optional binding name.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = DIContainer()
        >>> container.singleton(UserRepository, SqlUserRepository)
        >>>
        >>> get_user_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_user_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> T:
        """Resolve the dependency from the container."""
        if name is None:
            return container.make(dependency_type)
        return container.make_named(dependency_type, name)

    return dependency


def get_request_scope(request: Request) -> IScope:
    """Return the scope attached to the request by ``ScopeMiddleware``.

    Raises:
        RuntimeError: If the middleware is not installed.
    """
    scope = getattr(request.state, SCOPE_STATE_ATTRIBUTE, None)
    if scope is None:
        raise RuntimeError("Request does not have a DI scope. Did you forget to add ScopeMiddleware?")
    return scope


def create_scoped_dependency(dependency_type: Type[T], name: Optional[str] = None) -> Callable[[Request], T]:
    """Create a FastAPI dependency that resolves from the request's scope.

    Each request gets its own instances of scoped bindings. Requires
    ``ScopeMiddleware`` to be installed.

    Args:
        dependency_type: The type to resolve from the request scope.
        name: Optional binding name.

    Returns:
        A callable that resolves from the request scope.

    Example:
        >>> app.add_middleware(ScopeMiddleware, container=container)
        >>>
        >>> get_request_context = create_scoped_dependency(RequestContext)
        >>>
        >>> @app.get("/process")
        >>> async def process_request(ctx: RequestContext = Depends(get_request_context)):
        ...     return {"request_id": ctx.request_id}
    """

    def scoped_dependency(request: Request) -> T:
        """Resolve from the request's scope."""
        scope = get_request_scope(request)
        if name is None:
            return scope.make(dependency_type)
        return scope.make_named(dependency_type, name)

    return scoped_dependency


class ScopeMiddleware(BaseHTTPMiddleware):
    """Middleware that opens a DI scope for each request.

    The scope is reachable via ``request.state.di_scope`` and is disposed
    once the response has been produced, disposing every scoped instance
    created during the request. Disposal failures are logged, never sent
    to the client.

    Attributes:
        container: The container to create scopes from.

    Example:
        >>> container = DIContainer()
        >>> container.scoped(UnitOfWork, DbUnitOfWork)
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(ScopeMiddleware, container=container)
    """

    def __init__(self, app: FastAPI, container: IContainer):
        """Initialize the middleware with the container.

        Args:
            app: The FastAPI/Starlette application.
            container: The DI container to create scopes from.
        """
        super().__init__(app)
        self.container = container

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Create a scope for the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        scope = self.container.create_scope()
        setattr(request.state, SCOPE_STATE_ATTRIBUTE, scope)

        try:
            response = await call_next(request)
            return response
        finally:
            try:
                scope.dispose()
            except ScopeDisposalError as e:
                logger.warning("Failed to dispose request scope for %s: %s", request.url.path, e)
