"""Per-destination metrics for the HTTP export stage."""

import random
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import TypeVar

import structlog

from src.export.constants import (
    COMPONENT_HTTP_EXPORT,
    HTTP_EXPORT_ERRORS_NAME,
    HTTP_EXPORT_SIZE_NAME,
    METRIC_TAG_URL,
    METRICS_RESERVOIR_SIZE,
)
from src.export.errors import DuplicateMetricError


logger = structlog.get_logger()


class Counter:
    """Thread-safe monotonically increasing counter."""

    def __init__(self) -> None:
        self._count = 0
        self._lock = Lock()

    def inc(self, amount: int = 1) -> None:
        """Increment the counter.

        Args:
            amount: Non-negative increment.
        """
        if amount < 0:
            msg = "Counter can only be incremented by non-negative amounts"
            raise ValueError(msg)
        with self._lock:
            self._count += amount

    @property
    def count(self) -> int:
        """Get the current count."""
        with self._lock:
            return self._count


class UniformSample:
    """Fixed-size reservoir using Vitter's Algorithm R.

    Every update has the same probability of being kept, so the reservoir is
    a uniform sample of the whole stream.
    """

    def __init__(self, reservoir_size: int = METRICS_RESERVOIR_SIZE) -> None:
        if reservoir_size <= 0:
            msg = f"reservoir_size must be positive, got {reservoir_size}"
            raise ValueError(msg)
        self._reservoir_size = reservoir_size
        self._values: list[int] = []
        self._count = 0
        self._lock = Lock()

    @property
    def reservoir_size(self) -> int:
        """Get the maximum number of kept values."""
        return self._reservoir_size

    def update(self, value: int) -> None:
        """Offer a value to the reservoir.

        Args:
            value: Observed value.
        """
        with self._lock:
            self._count += 1
            if len(self._values) < self._reservoir_size:
                self._values.append(value)
                return
            index = random.randint(0, self._count - 1)  # noqa: S311
            if index < self._reservoir_size:
                self._values[index] = value

    @property
    def count(self) -> int:
        """Get the number of values offered, kept or not."""
        with self._lock:
            return self._count

    def values(self) -> list[int]:
        """Get a copy of the kept values."""
        with self._lock:
            return list(self._values)


class Histogram:
    """Thread-safe distribution of observed values.

    ``count`` and ``sum`` cover every update; ``min``, ``max``, ``mean`` and
    percentiles are computed from the reservoir sample.
    """

    def __init__(self, sample: UniformSample | None = None) -> None:
        self._sample = sample or UniformSample()
        self._sum = 0
        self._lock = Lock()

    def update(self, value: int) -> None:
        """Record an observed value.

        Args:
            value: Observed value.
        """
        with self._lock:
            self._sum += value
            self._sample.update(value)

    @property
    def count(self) -> int:
        """Get the number of recorded values."""
        return self._sample.count

    @property
    def sum(self) -> int:
        """Get the sum of all recorded values."""
        with self._lock:
            return self._sum

    @property
    def min(self) -> int:
        """Get the smallest sampled value, 0 when empty."""
        values = self._sample.values()
        return min(values) if values else 0

    @property
    def max(self) -> int:
        """Get the largest sampled value, 0 when empty."""
        values = self._sample.values()
        return max(values) if values else 0

    @property
    def mean(self) -> float:
        """Get the mean of the sampled values, 0.0 when empty."""
        values = self._sample.values()
        return sum(values) / len(values) if values else 0.0

    def percentile(self, q: float) -> float:
        """Get a percentile of the sampled values.

        Args:
            q: Percentile in the range [0, 1].

        Returns:
            Linearly interpolated percentile, 0.0 when empty.
        """
        if not 0.0 <= q <= 1.0:
            msg = f"percentile must be within [0, 1], got {q}"
            raise ValueError(msg)
        values = sorted(self._sample.values())
        if not values:
            return 0.0
        position = q * (len(values) - 1)
        lower = int(position)
        upper = min(lower + 1, len(values) - 1)
        fraction = position - lower
        return values[lower] + (values[upper] - values[lower]) * fraction

    def snapshot(self) -> dict[str, int | float]:
        """Get a point-in-time view of the histogram.

        Returns:
            Dictionary of statistic name to value.
        """
        return {
            "count": self.count,
            "sum": self.sum,
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "p50": self.percentile(0.5),
            "p95": self.percentile(0.95),
            "p99": self.percentile(0.99),
        }


Instrument = Counter | Histogram
InstrumentT = TypeVar("InstrumentT", Counter, Histogram)


# Module-level singleton state
_registry_instance: "ExportMetricsRegistry | None" = None
_registry_lock: Lock = Lock()


class ExportMetricsRegistry:
    """Thread-safe registry of named metric instruments.

    Registration is test-and-set: an instrument name is bound at most once
    and every later lookup returns the same instrument.
    Use get_instance() for singleton access.
    """

    def __init__(self) -> None:
        """Initialize the registry."""
        self._instruments: dict[str, Instrument] = {}
        self._tags: dict[str, dict[str, str]] = {}
        self._lock = Lock()
        self._log = logger.bind(component=COMPONENT_HTTP_EXPORT)

    @classmethod
    def get_instance(cls) -> "ExportMetricsRegistry":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared ExportMetricsRegistry instance.
        """
        global _registry_instance  # noqa: PLW0603
        if _registry_instance is None:
            with _registry_lock:
                if _registry_instance is None:
                    _registry_instance = cls()
        return _registry_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _registry_instance  # noqa: PLW0603
        with _registry_lock:
            _registry_instance = None

    def register(
        self,
        name: str,
        instrument: Instrument,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Register an instrument under a new name.

        Args:
            name: Unique metric name.
            instrument: Counter or histogram to register.
            tags: Metadata tags for the metric.

        Raises:
            DuplicateMetricError: If the name is already registered.
        """
        with self._lock:
            if name in self._instruments:
                raise DuplicateMetricError(name)
            self._store(name, instrument, tags)

    def get_or_register(
        self,
        name: str,
        factory: Callable[[], InstrumentT],
        tags: dict[str, str] | None = None,
    ) -> InstrumentT:
        """Get an instrument, creating and registering it on first use.

        The factory runs at most once per name, even when several threads
        ask for the same name concurrently.

        Args:
            name: Unique metric name.
            factory: Creates the instrument when the name is unknown.
            tags: Metadata tags for the metric.

        Returns:
            The registered instrument.
        """
        with self._lock:
            existing = self._instruments.get(name)
            if existing is None:
                created = factory()
                self._store(name, created, tags)
                return created
        return existing  # type: ignore[return-value]

    def _store(
        self,
        name: str,
        instrument: Instrument,
        tags: dict[str, str] | None,
    ) -> None:
        # Caller holds self._lock
        self._instruments[name] = instrument
        self._tags[name] = dict(tags or {})
        self._log.debug(
            "metric_registered",
            metric=name,
            kind=type(instrument).__name__,
            tags=self._tags[name],
        )

    def get(self, name: str) -> Instrument | None:
        """Get a registered instrument.

        Args:
            name: Metric name.

        Returns:
            The instrument, or None if not registered.
        """
        with self._lock:
            return self._instruments.get(name)

    def tags(self, name: str) -> dict[str, str]:
        """Get the tags of a registered instrument.

        Args:
            name: Metric name.

        Returns:
            Copy of the tags, empty if not registered.
        """
        with self._lock:
            return dict(self._tags.get(name, {}))

    def names(self) -> list[str]:
        """Get all registered metric names, sorted."""
        with self._lock:
            return sorted(self._instruments)

    def to_dict(self) -> dict[str, object]:
        """Export metrics as dictionary.

        Returns:
            Dictionary of metric name to tags and current values.
        """
        with self._lock:
            items = [
                (name, instrument, dict(self._tags[name]))
                for name, instrument in sorted(self._instruments.items())
            ]

        result: dict[str, object] = {}
        for name, instrument, tags in items:
            if isinstance(instrument, Counter):
                result[name] = {"tags": tags, "count": instrument.count}
            else:
                result[name] = {"tags": tags, **instrument.snapshot()}
        return result

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string.
        """
        counters: list[tuple[dict[str, str], Counter]] = []
        histograms: list[tuple[dict[str, str], Histogram]] = []
        with self._lock:
            for name, instrument in sorted(self._instruments.items()):
                if isinstance(instrument, Counter):
                    counters.append((dict(self._tags[name]), instrument))
                else:
                    histograms.append((dict(self._tags[name]), instrument))

        lines: list[str] = []

        lines.append("# HELP http_export_errors_total Failed HTTP exports by destination")
        lines.append("# TYPE http_export_errors_total counter")
        for tags, counter in counters:
            lines.append(f"http_export_errors_total{_format_labels(tags)} {counter.count}")

        lines.append("# HELP http_export_size_bytes Bytes sent by successful HTTP exports")
        lines.append("# TYPE http_export_size_bytes summary")
        for tags, histogram in histograms:
            labels = _format_labels(tags)
            lines.append(f"http_export_size_bytes_count{labels} {histogram.count}")
            lines.append(f"http_export_size_bytes_sum{labels} {histogram.sum}")

        return "\n".join(lines)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_labels(tags: dict[str, str]) -> str:
    if not tags:
        return ""
    pairs = ",".join(
        f'{key}="{_escape_label(value)}"' for key, value in sorted(tags.items())
    )
    return f"{{{pairs}}}"


@dataclass(frozen=True)
class DestinationMetrics:
    """Instruments shared by every export to one destination.

    Attributes:
        error_counter: Count of failed exports.
        size_histogram: Distribution of bytes sent by successful exports.
    """

    error_counter: Counter
    size_histogram: Histogram


def error_metric_name(redacted_url: str) -> str:
    """Get the error counter name for a destination."""
    return f"{HTTP_EXPORT_ERRORS_NAME}-{redacted_url}"


def size_metric_name(redacted_url: str) -> str:
    """Get the size histogram name for a destination."""
    return f"{HTTP_EXPORT_SIZE_NAME}-{redacted_url}"


def register_destination_metrics(
    registry: ExportMetricsRegistry,
    redacted_url: str,
    reservoir_size: int = METRICS_RESERVOIR_SIZE,
) -> DestinationMetrics:
    """Get or create the instruments for a destination.

    Args:
        registry: Registry holding the instruments.
        redacted_url: Destination URL without credentials.
        reservoir_size: Reservoir size for a newly created size histogram.

    Returns:
        The destination's instruments.
    """
    tags = {METRIC_TAG_URL: redacted_url}
    error_counter = registry.get_or_register(
        error_metric_name(redacted_url), Counter, tags
    )
    size_histogram = registry.get_or_register(
        size_metric_name(redacted_url),
        lambda: Histogram(UniformSample(reservoir_size)),
        tags,
    )
    return DestinationMetrics(error_counter=error_counter, size_histogram=size_histogram)
