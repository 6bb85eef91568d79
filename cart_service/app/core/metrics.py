from __future__ import annotations
import threading
import time
from collections import defaultdict
from typing import Callable, Dict, Iterable, Optional, Tuple

_LabelKey = Tuple[Tuple[str, str], ...]


def _label_key(labels: Optional[Dict[str, str]]) -> _LabelKey:
    return tuple(sorted((labels or {}).items()))


def _label_str(key: _LabelKey) -> str:
    return ",".join(f'{k}="{v}"' for k, v in key)


# ---------- Primitives ----------

class _Counter:
    def __init__(self, name: str, help_: str = ""):
        self.name = name
        self.help = help_
        self._lock = threading.Lock()
        self._values: Dict[_LabelKey, float] = defaultdict(float)

    def inc(self, labels: Optional[Dict[str, str]] = None, by: float = 1) -> None:
        key = _label_key(labels)
        with self._lock:
            self._values[key] += by

    def value(self, labels: Optional[Dict[str, str]] = None) -> float:
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def render(self) -> Iterable[str]:
        if self.help:
            yield f"# HELP {self.name} {self.help}\n# TYPE {self.name} counter\n"
        with self._lock:
            values = sorted(self._values.items())
        if not values:
            yield f"{self.name} 0\n"
        for key, v in values:
            label_str = _label_str(key)
            if label_str:
                yield f"{self.name}{{{label_str}}} {v:g}\n"
            else:
                yield f"{self.name} {v:g}\n"


class _Histogram:
    # catalogue round trips are sub-second when healthy
    DEFAULT_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5]

    def __init__(self, name: str, help_: str = "", buckets: Optional[Iterable[float]] = None):
        self.name = name
        self.help = help_
        self._lock = threading.Lock()
        self._buckets = sorted(buckets or self.DEFAULT_BUCKETS)
        self._counts: Dict[_LabelKey, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sum: Dict[_LabelKey, float] = defaultdict(float)
        self._obs: Dict[_LabelKey, int] = defaultdict(int)

    def observe(self, value_seconds: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _label_key(labels)
        with self._lock:
            self._sum[key] += value_seconds
            self._obs[key] += 1
            # first bucket that fits; cumulated at render time
            for b in self._buckets:
                if value_seconds <= b:
                    self._counts[key][b] += 1
                    break
            else:
                self._counts[key][float("inf")] += 1

    def timer(self, labels: Optional[Dict[str, str]] = None) -> Callable[[], None]:
        start = time.perf_counter()

        def _stop() -> None:
            self.observe(time.perf_counter() - start, labels=labels)

        return _stop

    def render(self) -> Iterable[str]:
        if self.help:
            yield f"# HELP {self.name} {self.help}\n# TYPE {self.name} histogram\n"
        with self._lock:
            keys = sorted(self._obs.keys())
            snapshot = {k: (dict(self._counts[k]), self._sum[k], self._obs[k]) for k in keys}
        for key in keys:
            counts, sum_, cnt_ = snapshot[key]
            label_str = _label_str(key)
            prefix = f"{label_str}," if label_str else ""
            running = 0
            for b in self._buckets + [float("inf")]:
                running += counts.get(b, 0)
                le = "+Inf" if b == float("inf") else f"{b:g}"
                yield f'{self.name}_bucket{{{prefix}le="{le}"}} {running}\n'
            suffix = f"{{{label_str}}}" if label_str else ""
            yield f"{self.name}_sum{suffix} {sum_}\n"
            yield f"{self.name}_count{suffix} {cnt_}\n"


# ---------- Registry ----------

class MetricsRegistry:
    def __init__(self):
        self._items: list = []

    def counter(self, name: str, help_: str = "") -> _Counter:
        c = _Counter(name, help_)
        self._items.append(c)
        return c

    def histogram(self, name: str, help_: str = "", buckets: Optional[Iterable[float]] = None) -> _Histogram:
        h = _Histogram(name, help_, buckets=buckets)
        self._items.append(h)
        return h

    def render_prometheus(self) -> str:
        out: list = []
        for it in self._items:
            out.extend(it.render())
        return "".join(out)


REGISTRY = MetricsRegistry()

# ---------- App metrics ----------

items_added = REGISTRY.counter("cart_items_added_total", "Units added to carts via add")
cart_operations = REGISTRY.counter("cart_operations_total", "Cart operations by op and result")
catalogue_lookup_duration = REGISTRY.histogram(
    "catalogue_lookup_duration_seconds", "Catalogue lookup round trip in seconds"
)
