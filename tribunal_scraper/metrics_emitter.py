from typing import Dict, Any, Optional


class MetricsEmitter:
    """In-memory metrics sink for search runs.

    Gauges keep the last value per name (`emit`); counters accumulate
    through `incr`. An optional prefix namespaces every name, e.g.
    ``MetricsEmitter("search")`` records ``search.records``.
    """

    def __init__(self, prefix: Optional[str] = None) -> None:
        self.prefix = prefix
        self._metrics: Dict[str, Any] = {}

    def _key(self, name: str) -> str:
        if not name:
            raise ValueError("metric name required")
        return f"{self.prefix}.{name}" if self.prefix else name

    def emit(self, name: str, value: float) -> None:
        self._metrics[self._key(name)] = value

    def incr(self, name: str, amount: float = 1) -> float:
        key = self._key(name)
        value = (self._metrics.get(key) or 0) + amount
        self._metrics[key] = value
        return value

    def get(self, name: str) -> Any:
        return self._metrics.get(self._key(name))

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._metrics)

    def reset(self) -> None:
        self._metrics.clear()


# Shared emitter behind the module-level helpers.
_default = MetricsEmitter()


def emit_metric(name: str, value: float) -> None:
    _default.emit(name, value)


def incr_metric(name: str, amount: float = 1) -> float:
    return _default.incr(name, amount)


def get_metric(name: str) -> Any:
    return _default.get(name)


def metrics_snapshot() -> Dict[str, Any]:
    return _default.snapshot()


def reset_metrics() -> None:
    _default.reset()
