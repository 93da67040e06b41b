"""Unit tests for domain exceptions."""

import pytest

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


class Logger:
    pass


class TestExceptionHierarchy:
    """Test cases for the exception hierarchy."""

    @pytest.mark.parametrize(
        "exception_type",
        [
            InvalidBindingError,
            BindingNotFoundError,
            CircularDependencyError,
            ResolutionError,
            ConstructorError,
            ContainerValidationError,
            LifetimeError,
            ScopeError,
            ProviderError,
            FatalResolutionError,
        ],
    )
    def test_inherits_from_di_exception(self, exception_type):
        """Test that every error derives from DIException."""
        assert issubclass(exception_type, DIException)

    def test_binding_already_exists_is_invalid_binding(self):
        """Test that duplicates are a kind of invalid binding."""
        assert issubclass(BindingAlreadyExistsError, InvalidBindingError)

    def test_scope_errors(self):
        """Test that scope-specific errors derive from ScopeError."""
        assert issubclass(ScopeDisposedError, ScopeError)
        assert issubclass(ScopeDisposalError, ScopeError)

    def test_di_exception_can_be_raised(self):
        """Test that DIException can be raised with a message."""
        with pytest.raises(DIException, match="Test error"):
            raise DIException("Test error")


class TestBindingErrors:
    """Test cases for registration and lookup errors."""

    def test_already_exists_unnamed(self):
        """Test message for a duplicate unnamed binding."""
        error = BindingAlreadyExistsError(Logger)
        assert error.dependency_type is Logger
        assert error.name is None
        assert "Binding already exists for type Logger" in str(error)

    def test_already_exists_named(self):
        """Test message for a duplicate named binding."""
        error = BindingAlreadyExistsError(Logger, "file")
        assert error.name == "file"
        assert "'file'" in str(error)

    def test_not_found_unknown_type(self):
        """Test message when the type has no binding at all."""
        error = BindingNotFoundError(Logger)
        assert error.type_known is False
        assert "Binding not found for type Logger" in str(error)

    def test_not_found_unknown_name(self):
        """Test message when only the name is unknown."""
        error = BindingNotFoundError(Logger, "missing", type_known=True)
        assert error.type_known is True
        assert "Named binding 'missing' not found for type Logger" in str(error)


class TestCircularDependencyError:
    """Test cases for the CircularDependencyError class."""

    def test_path_is_joined(self):
        """Test that the path appears in the message."""
        error = CircularDependencyError(["A", "B", "C", "A"])
        assert error.path == ["A", "B", "C", "A"]
        assert "A -> B -> C -> A" in str(error)

    def test_empty_path(self):
        """Test message without a path."""
        assert str(CircularDependencyError([])) == "Circular dependency detected"

    def test_path_is_copied(self):
        """Test that the error keeps its own copy of the path."""
        path = ["A", "A"]
        error = CircularDependencyError(path)
        path.append("B")
        assert error.path == ["A", "A"]


class TestResolutionError:
    """Test cases for the ResolutionError class."""

    def test_message_contains_all_parts(self):
        """Test that type, name, context and cause appear in the message."""
        error = ResolutionError(Logger, name="test", context="test context", cause=ValueError("underlying error"))
        message = str(error)
        assert "Logger" in message
        assert "name=test" in message
        assert "test context" in message
        assert "underlying error" in message

    def test_unknown_type(self):
        """Test message when no type is known."""
        assert "Failed to resolve unknown" in str(ResolutionError(None))

    def test_root_cause_follows_nesting(self):
        """Test that root_cause unwraps nested resolution errors."""
        original = RuntimeError("boom")
        inner = ResolutionError(Logger, context="constructor failed", cause=original)
        outer = ResolutionError(Logger, context="parameter 'logger'", cause=inner)
        assert outer.root_cause is original

    def test_root_cause_without_cause(self):
        """Test that root_cause is None when nothing caused the error."""
        assert ResolutionError(Logger).root_cause is None


class TestAggregateErrors:
    """Test cases for errors carrying several failures."""

    def test_validation_error_lists_all_errors(self):
        """Test that the count and each error appear in the message."""
        error = ContainerValidationError([ValueError("error 1"), ValueError("error 2"), ValueError("error 3")])
        message = str(error)
        assert len(error.errors) == 3
        assert "3 errors" in message
        assert "1. error 1" in message
        assert "3. error 3" in message

    def test_validation_error_single(self):
        """Test message with a single failure."""
        assert str(ContainerValidationError([ValueError("only")])) == "Validation failed: only"

    def test_scope_disposal_error(self):
        """Test that the disposal error reports count and failures."""
        error = ScopeDisposalError([RuntimeError("close failed"), RuntimeError("flush failed")])
        assert "2 error(s)" in str(error)
        assert "close failed" in str(error)
        assert "flush failed" in str(error)


class TestOtherErrors:
    """Test cases for constructor and fatal errors."""

    def test_constructor_error_names_constructor(self):
        """Test that the failing constructor is identified."""
        cause = ValueError("bad config")
        error = ConstructorError("new_database", cause=cause)
        assert error.cause is cause
        assert "Constructor new_database failed: bad config" in str(error)

    def test_constructor_error_reason(self):
        """Test that an explicit reason wins over the cause."""
        assert "returned None" in str(ConstructorError("factory", reason="returned None"))

    def test_fatal_resolution_error_wraps_cause(self):
        """Test that the fatal error carries the structured error."""
        cause = BindingNotFoundError(Logger)
        error = FatalResolutionError(cause)
        assert error.cause is cause
        assert "Binding not found for type Logger" in str(error)
