"""Unit tests for BindingRegistry."""

import threading

import pytest

from tether_di.application.registry import BindingRegistry
from tether_di.domain import (
    Binding,
    BindingAlreadyExistsError,
    BindingNotFoundError,
    InvalidBindingError,
    Lifetime,
)


class Logger:
    pass


class ConsoleLogger(Logger):
    pass


class FileLogger(Logger):
    pass


class Database:
    pass


def make_binding(abstract_type=Logger, concrete_type=ConsoleLogger, name=None, tags=()):
    return Binding(
        abstract_type=abstract_type,
        concrete_type=concrete_type,
        lifetime=Lifetime.TRANSIENT,
        name=name,
        tags=tags,
    )


class TestRegister:
    """Test cases for storing bindings."""

    def test_register_and_get(self):
        """Test that a stored binding can be looked up."""
        registry = BindingRegistry()
        binding = make_binding()

        registry.register(binding)

        assert registry.get(Logger) is binding
        assert registry.has(Logger)
        assert len(registry) == 1

    def test_register_none_rejected(self):
        """Test that a None binding is rejected."""
        registry = BindingRegistry()
        with pytest.raises(InvalidBindingError):
            registry.register(None)

    def test_duplicate_unnamed_binding_rejected(self):
        """Test that the first registration stays in place."""
        registry = BindingRegistry()
        first = make_binding()
        registry.register(first)

        with pytest.raises(BindingAlreadyExistsError, match="Binding already exists for type Logger"):
            registry.register(make_binding(concrete_type=FileLogger))

        assert registry.get(Logger) is first

    def test_register_named(self):
        """Test storing several named bindings for one type."""
        registry = BindingRegistry()
        registry.register_named(make_binding(name="console"))
        registry.register_named(make_binding(concrete_type=FileLogger, name="file"))

        assert registry.get_named(Logger, "file").concrete_type is FileLogger
        assert registry.get_all_named_for(Logger) == ["console", "file"]
        assert len(registry) == 2

    def test_register_named_requires_name(self):
        """Test that a named registration without a name is rejected."""
        registry = BindingRegistry()
        with pytest.raises(InvalidBindingError, match="must have a name"):
            registry.register_named(make_binding())

    def test_duplicate_named_binding_rejected(self):
        """Test that a (type, name) pair is unique."""
        registry = BindingRegistry()
        registry.register_named(make_binding(name="file"))

        with pytest.raises(BindingAlreadyExistsError, match="Named binding 'file' already exists"):
            registry.register_named(make_binding(concrete_type=FileLogger, name="file"))

    def test_unnamed_and_named_coexist(self):
        """Test that named bindings do not collide with the unnamed one."""
        registry = BindingRegistry()
        registry.register(make_binding())
        registry.register_named(make_binding(concrete_type=FileLogger, name="file"))

        assert registry.get(Logger).concrete_type is ConsoleLogger
        assert registry.get_named(Logger, "file").concrete_type is FileLogger


class TestLookup:
    """Test cases for binding lookups."""

    def test_get_missing(self):
        """Test looking up an unknown type."""
        registry = BindingRegistry()
        with pytest.raises(BindingNotFoundError, match="Did you forget to register it"):
            registry.get(Logger)

    def test_get_named_unknown_type(self):
        """Test that an unknown type is reported as such."""
        registry = BindingRegistry()
        with pytest.raises(BindingNotFoundError) as exc_info:
            registry.get_named(Logger, "file")
        assert exc_info.value.type_known is False

    def test_get_named_unknown_name(self):
        """Test that an unknown name for a known type is distinguished."""
        registry = BindingRegistry()
        registry.register_named(make_binding(name="console"))

        with pytest.raises(BindingNotFoundError) as exc_info:
            registry.get_named(Logger, "file")
        assert exc_info.value.type_known is True
        assert "Named binding 'file' not found" in str(exc_info.value)

    def test_has_only_named(self):
        """Test that has() counts named bindings."""
        registry = BindingRegistry()
        registry.register_named(make_binding(name="console"))

        assert registry.has(Logger)
        assert not registry.has_unnamed_binding(Logger)
        assert not registry.has(Database)

    def test_get_all_puts_unnamed_first(self):
        """Test the order of get_all."""
        registry = BindingRegistry()
        registry.register_named(make_binding(concrete_type=FileLogger, name="file"))
        registry.register(make_binding())

        bindings = registry.get_all(Logger)

        assert [b.concrete_type for b in bindings] == [ConsoleLogger, FileLogger]
        assert registry.get_all(Database) == []

    def test_get_by_tag(self):
        """Test collecting bindings by tag across types."""
        registry = BindingRegistry()
        registry.register(make_binding(tags=("core",)))
        registry.register_named(make_binding(concrete_type=FileLogger, name="file", tags=("io",)))
        registry.register(make_binding(abstract_type=Database, concrete_type=Database, tags=("core", "io")))

        assert {b.concrete_type for b in registry.get_by_tag("core")} == {ConsoleLogger, Database}
        assert {b.concrete_type for b in registry.get_by_tag("io")} == {FileLogger, Database}
        assert registry.get_by_tag("missing") == []

    def test_get_all_types(self):
        """Test listing every registered type once."""
        registry = BindingRegistry()
        registry.register(make_binding())
        registry.register_named(make_binding(name="file"))
        registry.register_named(make_binding(abstract_type=Database, concrete_type=Database, name="primary"))

        assert registry.get_all_types() == [Logger, Database]


class TestConcurrency:
    """Test cases for concurrent access."""

    def test_concurrent_duplicate_registration(self):
        """Test that exactly one of many racing registrations wins."""
        registry = BindingRegistry()
        start = threading.Barrier(8, timeout=5)
        outcomes = []
        lock = threading.Lock()

        def register():
            start.wait()
            try:
                registry.register(make_binding())
                result = "ok"
            except BindingAlreadyExistsError:
                result = "duplicate"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=register) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == 7
