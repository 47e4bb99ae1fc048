"""
RabbitMQ publisher for task-created events.
"""
import enum
import logging
import threading
from typing import Callable, Optional
import pika
import pika.exceptions

from .exceptions import EventPublishError, PublisherUnavailable

logger = logging.getLogger(__name__)

# Errors that count against the connect retry budget
CONNECTION_ERRORS = (pika.exceptions.AMQPError, OSError)


class PublisherState(str, enum.Enum):
    """Lifecycle of the queue connection"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


class PublishResult(str, enum.Enum):
    """Outcome of a publish call"""
    PUBLISHED = "published"
    UNAVAILABLE = "unavailable"


class RabbitMQPublisher:
    """
    Publisher for task events on a single durable queue.

    The connection is established once by ``connect()`` with a bounded,
    fixed-backoff retry loop. A connection lost after reaching READY gets
    the same budget once more on the next publish. Once a budget is spent
    the publisher stays DISCONNECTED for the rest of the process and
    ``publish()`` reports UNAVAILABLE without touching the broker.
    """

    def __init__(
        self,
        host: str = "rabbitmq",
        port: int = 5672,
        user: str = "admin",
        password: str = "admin123",
        virtual_host: str = "/",
        queue: str = "task_created",
        url: Optional[str] = None,
        max_retries: int = 5,
        retry_delay: float = 5,
        connection_factory: Callable = pika.BlockingConnection,
        stop_event: Optional[threading.Event] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.virtual_host = virtual_host
        self.queue = queue
        self.url = url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.connection = None
        self.channel = None
        self.state = PublisherState.DISCONNECTED
        self.attempts = 0
        self._connection_factory = connection_factory
        self._stop_event = stop_event or threading.Event()
        self._connect_started = False
        self._reconnect_pending = False

    @classmethod
    def from_settings(cls, settings) -> "RabbitMQPublisher":
        """Build a publisher from Task Service settings."""
        return cls(
            host=settings.rabbitmq_host,
            port=settings.rabbitmq_port,
            user=settings.rabbitmq_user,
            password=settings.rabbitmq_password,
            virtual_host=settings.rabbitmq_vhost,
            queue=settings.rabbitmq_queue,
            url=settings.rabbitmq_url,
            max_retries=settings.rabbitmq_connect_retries,
            retry_delay=settings.rabbitmq_retry_delay,
        )

    @property
    def is_ready(self) -> bool:
        return self.state is PublisherState.READY

    def _parameters(self) -> pika.connection.Parameters:
        if self.url:
            return pika.URLParameters(self.url)
        credentials = pika.PlainCredentials(self.user, self.password)
        return pika.ConnectionParameters(
            host=self.host,
            port=self.port,
            virtual_host=self.virtual_host,
            credentials=credentials,
            heartbeat=600,
            blocked_connection_timeout=300,
        )

    def declare_queue(self):
        """Declare the durable target queue; safe to repeat"""
        self.channel.queue_declare(queue=self.queue, durable=True)
        logger.debug(f"Declared queue {self.queue}")

    def connect(self) -> bool:
        """
        Establish connection to RabbitMQ with retries

        Makes at most ``max_retries`` attempts, waiting ``retry_delay``
        seconds between them. Only the first call runs the loop; once the
        budget is spent later calls return False without contacting the
        broker.

        Returns:
            bool: True if the publisher is READY
        """
        if self.state is PublisherState.READY:
            self.declare_queue()
            return True

        if self._connect_started:
            logger.warning("RabbitMQ connect already attempted - publisher stays unavailable")
            return False

        self._connect_started = True
        return self._connect_with_retries()

    def _connect_with_retries(self) -> bool:
        self.state = PublisherState.CONNECTING

        for attempt in range(self.max_retries):
            if self._stop_event.is_set():
                logger.info("RabbitMQ connect cancelled")
                break

            self.attempts += 1
            try:
                self.connection = self._connection_factory(self._parameters())
                self.channel = self.connection.channel()
                self.declare_queue()

                self.state = PublisherState.READY
                logger.info(f"Connected to RabbitMQ, publishing to queue {self.queue}")
                return True

            except CONNECTION_ERRORS as e:
                logger.warning(f"RabbitMQ connection attempt {attempt + 1}/{self.max_retries} failed: {e}")
                self._discard_connection()
                if attempt < self.max_retries - 1:
                    self._stop_event.wait(self.retry_delay)
            except Exception as e:
                # bad configuration, retrying cannot help
                logger.error(f"Unexpected error connecting to RabbitMQ: {e}")
                self._discard_connection()
                break

        self.state = PublisherState.DISCONNECTED
        logger.error("Failed to connect to RabbitMQ after all retries - events will not be published")
        return False

    def _connection_lost(self):
        """Drop a connection that was READY; the next publish reconnects once"""
        self._discard_connection()
        self.state = PublisherState.DISCONNECTED
        self._reconnect_pending = True

    def require_ready(self):
        """Raise PublisherUnavailable unless the publisher is READY"""
        if not self.is_ready:
            raise PublisherUnavailable(f"RabbitMQ publisher is {self.state.value}")

    def publish(self, event) -> PublishResult:
        """
        Publish an event to the task-created queue

        A connection that dropped after reaching READY gets one more
        bounded retry loop before the send. Returns UNAVAILABLE when the
        publisher is not READY; the event is dropped. Broker errors
        during the send raise EventPublishError.
        """
        if self.is_ready and self._is_closed():
            logger.warning("RabbitMQ connection lost")
            self._connection_lost()

        if self._reconnect_pending:
            self._reconnect_pending = False
            logger.info("Reconnecting to RabbitMQ")
            self._connect_with_retries()

        if not self.is_ready:
            logger.warning(f"RabbitMQ publisher {self.state.value} - dropping event for task {event.task_id}")
            return PublishResult.UNAVAILABLE

        try:
            self.channel.basic_publish(
                exchange="",
                routing_key=self.queue,
                body=event.to_bytes(),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Persistent
                    content_type="application/json"
                )
            )
        except pika.exceptions.AMQPError as e:
            logger.error(f"Error publishing event for task {event.task_id}: {e}")
            if self._is_closed():
                self._connection_lost()
            raise EventPublishError(str(e)) from e

        logger.info(f"Published task_created event for task {event.task_id}")
        return PublishResult.PUBLISHED

    def _is_closed(self) -> bool:
        return (
            self.connection is None
            or self.connection.is_closed
            or self.channel is None
            or self.channel.is_closed
        )

    def _discard_connection(self):
        try:
            if self.connection is not None and not self.connection.is_closed:
                self.connection.close()
        except CONNECTION_ERRORS as e:
            logger.debug(f"Ignoring error while discarding connection: {e}")
        self.connection = None
        self.channel = None

    def stop(self):
        """Cancel a connect loop that is still retrying"""
        self._stop_event.set()

    def close(self):
        """Close connection"""
        self.stop()
        try:
            if self.connection and not self.connection.is_closed:
                self.connection.close()
                logger.info("RabbitMQ connection closed")
        except CONNECTION_ERRORS as e:
            logger.error(f"Error closing connection: {e}")
        finally:
            self.connection = None
            self.channel = None
            self._reconnect_pending = False
            self.state = PublisherState.DISCONNECTED
