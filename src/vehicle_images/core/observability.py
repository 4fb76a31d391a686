"""Observability utilities for structured logging and metrics."""

import logging
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Any, Deque, Dict, List, Optional

from .logging_config import setup_logger


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_object(
        cls, bucket: str, object_key: str, operation: str, component: str
    ) -> "LogContext":
        """Context for work on one stored object, correlated by key and start time."""
        return cls(
            correlation_id=f"img_{object_key}_{int(time.time() * 1000)}",
            operation=operation,
            component=component,
            metadata={"bucket": bucket, "object_key": object_key},
        )

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})

    def render(self, message: str, **kwargs: Any) -> str:
        """Prefix a message with operation and correlation id, suffix key=value pairs."""
        prefix = f"[{self.operation}] " if self.operation else ""
        rendered = f"{prefix}[{self.correlation_id}] {message}"
        fields = {**self.metadata, **kwargs}
        if fields:
            rendered += " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        return rendered


class StructuredLogger:
    """Structured logger with context support.

    Wraps a logger configured by ``setup_logger`` so that services can pass a
    ``LogContext`` along with each message.
    """

    def __init__(self, name: str, level: Optional[str] = None):
        self._logger = setup_logger(name, level=level)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(
        self, level: int, message: str, context: Optional[LogContext], **kwargs: Any
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if context:
            message = context.render(message, **kwargs)
        elif kwargs:
            message += " (" + ", ".join(f"{k}={v}" for k, v in kwargs.items()) + ")"
        self._logger.log(level, message)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, context, **kwargs)


@dataclass
class PerformanceMetrics:
    """Timing of one pipeline operation on one image."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000


class MetricsCollector:
    """Thread-safe collector of per-image timings.

    Only the most recent ``max_entries`` timings are kept, so a long-running
    server holds a fixed window. Batch reprocessing records from worker
    threads, so every access to the window holds the lock.
    """

    def __init__(self, max_entries: int = 1000):
        self._metrics: Deque[PerformanceMetrics] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def record(
        self,
        operation: str,
        start_time: float,
        success: bool,
        error_message: Optional[str] = None,
        **metadata: Any,
    ) -> PerformanceMetrics:
        """Record a metric for an operation that ends now."""
        metric = PerformanceMetrics(
            operation=operation,
            start_time=start_time,
            end_time=time.time(),
            success=success,
            error_message=error_message,
            metadata=metadata,
        )
        with self._lock:
            self._metrics.append(metric)
        return metric

    def get_metrics(
        self, operation: Optional[str] = None, since: Optional[float] = None
    ) -> List[PerformanceMetrics]:
        with self._lock:
            return [
                m
                for m in self._metrics
                if (not operation or m.operation == operation)
                and (since is None or m.start_time >= since)
            ]

    def get_summary(
        self, operation: Optional[str] = None, since: Optional[float] = None
    ) -> Dict[str, Any]:
        """Counts and millisecond timings, optionally for one operation or time window."""
        metrics = self.get_metrics(operation, since)
        if not metrics:
            return {}

        durations = [m.duration_ms for m in metrics]
        successful = sum(1 for m in metrics if m.success)
        return {
            "total_operations": len(metrics),
            "successful_operations": successful,
            "failed_operations": len(metrics) - successful,
            "success_rate": successful / len(metrics),
            "avg_duration_ms": sum(durations) / len(durations),
            "max_duration_ms": max(durations),
        }
