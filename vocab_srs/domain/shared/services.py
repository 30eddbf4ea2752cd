"""Domain service base classes.

Each domain service wraps a single business operation behind an async
``call`` method taking a request DTO and returning a result DTO, and emits
domain events for other parts of the application.
"""

from __future__ import annotations

import functools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from vocab_srs.infrastructure.messaging.event_bus import DomainEvent, EventBus

logger = logging.getLogger(__name__)

T = TypeVar("T")  # Request type
U = TypeVar("U")  # Response type


class DomainService(ABC, Generic[T, U]):
    """Base class for all domain services.

    Services are named Verb + Noun (e.g. ``ReviewWord``) and expose a single
    ``call`` method.

    Example:
        ```python
        class ReviewWord(DomainService[ReviewWordRequest, ReviewWordResult]):
            async def call(self, request: ReviewWordRequest) -> ReviewWordResult:
                outcome = compute_next_state(...)
                await self._publish_event(WordReviewedEvent(...))
                return ReviewWordResult(...)
        ```
    """

    def __init__(self, event_bus: EventBus) -> None:
        """Initialize domain service with event bus.

        Args:
            event_bus: Event bus for publishing domain events
        """
        self.event_bus = event_bus
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    async def call(self, request: T) -> U:
        """Single entry point for domain service execution.

        Args:
            request: Typed request object containing all necessary data

        Returns:
            Typed response object with operation results
        """

    async def _publish_event(self, event: DomainEvent) -> None:
        """Publish a domain event; failures are logged, never raised.

        Args:
            event: Domain event to publish
        """
        try:
            await self.event_bus.publish(event)
        except Exception as e:
            self.logger.error(f"Failed to publish event {type(event).__name__}: {e}")


class DomainServiceError(Exception):
    """Base exception for domain service errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize domain service error.

        Args:
            message: Human-readable error message
            error_code: Optional machine-readable error code
        """
        super().__init__(message)
        self.error_code = error_code


class ValidationError(DomainServiceError):
    """Raised when request data does not meet the service's constraints."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR")
        self.field = field


class BusinessRuleViolationError(DomainServiceError):
    """Raised when an operation would violate a domain rule."""

    def __init__(self, message: str, rule: str | None = None) -> None:
        super().__init__(message, "BUSINESS_RULE_VIOLATION")
        self.rule = rule


def log_domain_operation(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator logging start, completion and duration of a service call."""

    @functools.wraps(func)
    async def wrapper(self: Any, request: Any) -> Any:
        operation_name = f"{self.__class__.__name__}.call"
        self.logger.debug(f"Starting {operation_name}")

        start_time = time.perf_counter()
        try:
            result = await func(self, request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            self.logger.error(f"Failed {operation_name} after {duration:.3f}s: {e}")
            raise
        duration = time.perf_counter() - start_time
        self.logger.debug(f"Completed {operation_name} in {duration:.3f}s")
        return result

    return wrapper
