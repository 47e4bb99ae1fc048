"""Pytest configuration and fixtures.

HTTP tests build each service with create_app() on an in-memory SQLite
store. The task service gets a RabbitMQPublisher wired to an in-process
fake broker, so no RabbitMQ or database server is needed.
"""

import json

import pika
import pika.exceptions
import pytest
from fastapi.testclient import TestClient

from task_service.app.core.config import Settings as TaskSettings
from task_service.app.core.rabbitmq import RabbitMQPublisher
from task_service.app.main import create_app as create_task_app
from user_service.app.core.config import Settings as UserSettings
from user_service.app.main import create_app as create_user_app


class FakeChannel:
    def __init__(self, broker):
        self.broker = broker
        self.is_closed = False

    def queue_declare(self, queue, durable=False):
        self.broker.declare_calls += 1
        self.broker.queues[queue] = {"durable": durable}

    def basic_publish(self, exchange, routing_key, body, properties=None):
        if self.broker.fail_sends:
            if self.broker.drop_connection_on_failure:
                self.is_closed = True
            raise pika.exceptions.StreamLostError("Stream connection lost")
        self.broker.messages.append(
            {
                "exchange": exchange,
                "routing_key": routing_key,
                "body": json.loads(body.decode("utf-8")),
                "properties": properties,
            }
        )


class FakeConnection:
    def __init__(self, broker):
        self.broker = broker
        self.is_closed = False

    def channel(self):
        return FakeChannel(self.broker)

    def close(self):
        self.is_closed = True


class FakeBroker:
    """Stands in for pika.BlockingConnection as a connection factory."""

    def __init__(self):
        self.down = False
        self.failures = 0
        self.fail_sends = False
        self.drop_connection_on_failure = True
        self.attempts = 0
        self.parameters = []
        self.queues = {}
        self.declare_calls = 0
        self.messages = []

    def connect(self, parameters):
        self.attempts += 1
        self.parameters.append(parameters)
        if self.down:
            raise pika.exceptions.AMQPConnectionError("Connection refused")
        if self.failures:
            self.failures -= 1
            raise pika.exceptions.AMQPConnectionError("Connection refused")
        return FakeConnection(self)


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def make_publisher(broker):
    """Factory for publishers bound to the fake broker, with no backoff."""

    def _make(**kwargs) -> RabbitMQPublisher:
        kwargs.setdefault("retry_delay", 0)
        return RabbitMQPublisher(connection_factory=broker.connect, **kwargs)

    return _make


@pytest.fixture
def task_settings() -> TaskSettings:
    settings = TaskSettings()
    settings.database_url = "sqlite://"
    settings.api_prefix = ""
    settings.debug = False
    return settings


@pytest.fixture
def task_app(task_settings, make_publisher):
    return create_task_app(task_settings, make_publisher())


@pytest.fixture
def task_client(task_app) -> TestClient:
    """Task service with a healthy store and broker."""
    with TestClient(task_app) as client:
        yield client


@pytest.fixture
def offline_task_client(task_settings, broker, make_publisher) -> TestClient:
    """Task service whose broker is unreachable from startup."""
    broker.down = True
    app = create_task_app(task_settings, make_publisher(max_retries=2))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def user_client() -> TestClient:
    settings = UserSettings()
    settings.database_url = "sqlite://"
    settings.debug = False
    with TestClient(create_user_app(settings)) as client:
        yield client
