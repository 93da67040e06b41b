"""Integration tests for end-to-end dependency resolution."""

import threading
from abc import ABC, abstractmethod
from typing import Annotated

import pytest

from tether_di import (
    BootableProvider,
    CircularDependencyError,
    ContainerOptions,
    ContainerValidationError,
    DIContainer,
    FatalResolutionError,
    Inject,
    ServiceProvider,
)


class Logger(ABC):
    @abstractmethod
    def log(self, message: str) -> None:
        pass


class ConsoleLogger(Logger):
    def __init__(self):
        self.messages = []

    def log(self, message: str) -> None:
        self.messages.append(message)


class FileLogger(Logger):
    def log(self, message: str) -> None:
        pass


class Database(ABC):
    @abstractmethod
    def query(self, sql: str) -> list:
        pass


class MockDB(Database):
    def query(self, sql: str) -> list:
        return [sql]


class Service(ABC):
    @abstractmethod
    def run(self) -> list:
        pass


class ServiceImpl(Service):
    def __init__(self, logger: Logger, db: Database):
        self.logger = logger
        self.db = db

    def run(self) -> list:
        self.logger.log("running")
        return self.db.query("SELECT 1")


def new_service(logger: Logger, db: Database) -> ServiceImpl:
    return ServiceImpl(logger, db)


class NodeA:
    def __init__(self, b: "NodeB"):
        self.b = b


class NodeB:
    def __init__(self, c: "NodeC"):
        self.c = c


class NodeC:
    def __init__(self, a: NodeA):
        self.a = a


class Left:
    def __init__(self, right: "Right"):
        self.right = right


class Right:
    def __init__(self, left: Left):
        self.left = left


class SlowResource:
    instances = 0

    def __init__(self):
        SlowResource.instances += 1


class Gate:
    pass


class Publisher:
    def __init__(self, subscriber):
        self.subscriber = subscriber


class Subscriber:
    def __init__(self, publisher):
        self.publisher = publisher


def new_publisher(gate: Gate, subscriber: Subscriber) -> Publisher:
    return Publisher(subscriber)


def new_subscriber(gate: Gate, publisher: Publisher) -> Subscriber:
    return Subscriber(publisher)


def build_container():
    container = DIContainer()
    container.singleton(Logger, ConsoleLogger)
    container.bind(Database, MockDB)
    container.bind_constructor(Service, new_service)
    return container


class TestEndToEndResolution:
    """Test complete resolution scenarios."""

    def test_logger_database_service_scenario(self):
        """Test that services share the singleton logger but get fresh databases."""
        container = build_container()

        first = container.make(Service)
        second = container.make(Service)

        assert isinstance(first, ServiceImpl)
        assert isinstance(second, ServiceImpl)
        assert first is not second
        assert first.logger is second.logger
        assert first.db is not second.db

    def test_resolved_graph_is_usable(self):
        """Test that the built graph behaves as wired."""
        container = build_container()

        service = container.make(Service)

        assert service.run() == ["SELECT 1"]
        assert container.make(Logger).messages == ["running"]

    def test_named_implementations_resolve_independently(self):
        """Test several named implementations of one type."""
        container = build_container()
        container.bind_named(Logger, FileLogger, "file")

        def new_audited(logger: Annotated[Logger, Inject(name="file")], db: Database) -> ServiceImpl:
            return ServiceImpl(logger, db)

        container.bind_constructor(ServiceImpl, new_audited)

        assert isinstance(container.make(Service).logger, ConsoleLogger)
        assert isinstance(container.make(ServiceImpl).logger, FileLogger)

    def test_validate_then_make(self):
        """Test the startup pattern of validating before serving."""
        container = build_container()

        container.validate()

        assert isinstance(container.make(Service), ServiceImpl)


class TestCircularDependencies:
    """Test cycle detection across constructor chains."""

    def test_direct_cycle(self):
        """Test a two-node cycle reports a three-entry path."""
        container = DIContainer()
        container.bind_constructor(Left, Left)
        container.bind_constructor(Right, Right)

        with pytest.raises(CircularDependencyError) as exc_info:
            container.make_safe(Left)

        assert exc_info.value.path == ["Left", "Right", "Left"]

    def test_indirect_cycle(self):
        """Test a three-node cycle reports a four-entry path."""
        container = DIContainer()
        container.bind_constructor(NodeA, NodeA)
        container.bind_constructor(NodeB, NodeB)
        container.bind_constructor(NodeC, NodeC)

        with pytest.raises(CircularDependencyError) as exc_info:
            container.make_safe(NodeA)

        assert exc_info.value.path == ["NodeA", "NodeB", "NodeC", "NodeA"]
        assert "NodeA -> NodeB -> NodeC -> NodeA" in str(exc_info.value)

    def test_cycle_through_singletons(self):
        """Test that caching does not hide cycles."""
        container = DIContainer()
        container.singleton_constructor(Left, Left)
        container.singleton_constructor(Right, Right)

        with pytest.raises(CircularDependencyError):
            container.make_safe(Left)

    def test_fast_path_aborts_on_cycle(self):
        """Test that make() wraps the cycle fatally."""
        container = DIContainer()
        container.bind_constructor(Left, Left)
        container.bind_constructor(Right, Right)

        with pytest.raises(FatalResolutionError) as exc_info:
            container.make(Left)

        assert isinstance(exc_info.value.cause, CircularDependencyError)


class TestValidation:
    """Test whole-container validation."""

    def test_three_independent_failures_reported(self):
        """Test that a missing dependency, a cycle and a failing constructor are all reported."""

        class Report:
            def __init__(self, db: Database):
                self.db = db

        def new_logger() -> ConsoleLogger:
            raise RuntimeError("log directory not writable")

        container = DIContainer()
        container.bind_constructor(Report, Report)
        container.bind_constructor(Left, Left)
        container.bind_constructor(Right, Right)
        container.bind_constructor(Logger, new_logger)

        with pytest.raises(ContainerValidationError) as exc_info:
            container.validate()

        errors = exc_info.value.errors
        messages = "\n".join(str(error) for error in errors)
        assert len(errors) == 4
        assert "Binding not found for type Database" in messages
        assert "Circular dependency detected" in messages
        assert "log directory not writable" in messages

    def test_validation_covers_named_bindings(self):
        """Test that named bindings are validated too."""

        def new_file_logger() -> FileLogger:
            raise OSError("disk full")

        container = build_container()
        container.bind_constructor(Logger, new_file_logger, name="file")

        with pytest.raises(ContainerValidationError, match="disk full"):
            container.validate()


class TestProviders:
    """Test service providers wiring a container."""

    def test_providers_register_then_boot(self):
        """Test registration and boot across providers."""
        events = []

        class InfrastructureProvider(ServiceProvider):
            def register(self, container):
                container.singleton(Logger, ConsoleLogger)
                container.bind(Database, MockDB)

        class ApplicationProvider(BootableProvider):
            def register(self, container):
                container.bind_constructor(Service, new_service)

            def boot(self, container):
                container.make(Logger).log("booted")
                events.append("booted")

        container = DIContainer(ContainerOptions(validate_on_boot=True))
        container.register_provider(InfrastructureProvider())
        container.register_provider(ApplicationProvider())

        container.boot_providers()

        assert events == ["booted"]
        assert container.make(Logger).messages == ["booted"]
        assert isinstance(container.make(Service), ServiceImpl)

    def test_validate_on_boot_reports_broken_registrations(self):
        """Test that boot validates when configured to."""

        class BrokenProvider(ServiceProvider):
            def register(self, container):
                container.bind_constructor(Service, new_service)

        container = DIContainer(ContainerOptions(validate_on_boot=True))
        container.register_provider(BrokenProvider())

        with pytest.raises(ContainerValidationError):
            container.boot_providers()


class TestConcurrentResolution:
    """Test resolution from many threads."""

    def test_singleton_constructed_once_under_contention(self):
        """Test that concurrent first-time resolutions share one instance."""
        SlowResource.instances = 0
        container = DIContainer()
        container.singleton(SlowResource, SlowResource)
        thread_count = 50
        start = threading.Barrier(thread_count, timeout=10)
        results = []
        lock = threading.Lock()

        def resolve():
            start.wait()
            instance = container.make(SlowResource)
            with lock:
                results.append(instance)

        threads = [threading.Thread(target=resolve) for _ in range(thread_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert SlowResource.instances == 1
        assert len(results) == thread_count
        assert all(instance is results[0] for instance in results)

    def test_concurrent_transient_resolution(self):
        """Test that transients stay distinct across threads."""
        container = build_container()
        results = []
        lock = threading.Lock()

        def resolve():
            service = container.make(Service)
            with lock:
                results.append(service)

        threads = [threading.Thread(target=resolve) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len({id(service) for service in results}) == 20
        assert len({id(service.logger) for service in results}) == 1

    def test_mutual_singletons_across_threads_fail_instead_of_hanging(self):
        """Test that singletons needing each other from two threads raise a cycle error."""
        both_building = threading.Barrier(2, timeout=10)

        def open_gate(container):
            both_building.wait()
            return Gate()

        container = DIContainer()
        container.factory(Gate, open_gate)
        container.singleton_constructor(Publisher, new_publisher)
        container.singleton_constructor(Subscriber, new_subscriber)
        outcomes = {}
        lock = threading.Lock()

        def resolve(dependency_type):
            try:
                result = container.make_safe(dependency_type)
            except Exception as error:
                result = error
            with lock:
                outcomes[dependency_type] = result

        threads = [
            threading.Thread(target=resolve, args=(dependency_type,), daemon=True)
            for dependency_type in (Publisher, Subscriber)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert not any(thread.is_alive() for thread in threads)
        assert isinstance(outcomes[Publisher], CircularDependencyError)
        assert isinstance(outcomes[Subscriber], CircularDependencyError)
