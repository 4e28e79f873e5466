# crowdsafe/backend/routes/metrics_store.py
import time
from contextlib import contextmanager
from threading import RLock
from collections import deque
from datetime import datetime, timezone

ROLLING_WINDOW = 100  # how many recent calls to average over
OPERATIONS = ("upload", "analyze", "dashboard")


class MetricsStore:
    def __init__(self):
        self._lock = RLock()
        self._data = {op: self._empty() for op in OPERATIONS}

    @staticmethod
    def _empty():
        return {"calls": 0, "errors": 0, "total_ms": 0.0, "latencies": deque(maxlen=ROLLING_WINDOW),
                "last_output": None, "last_request": None}

    def record(self, op: str, ms: float, last_output=None, ok: bool = True):
        with self._lock:
            m = self._data[op]
            m["calls"] += 1
            if not ok:
                m["errors"] += 1
            m["total_ms"] += ms
            m["latencies"].append(ms)
            if last_output is not None:
                m["last_output"] = last_output
            m["last_request"] = datetime.now(timezone.utc)

    @contextmanager
    def timed(self, op: str):
        """Time a block; `holder["output"]` becomes last_output."""
        holder = {"output": None}
        start = time.perf_counter()
        try:
            yield holder
        except Exception:
            self.record(op, (time.perf_counter() - start) * 1000, ok=False)
            raise
        self.record(op, (time.perf_counter() - start) * 1000, holder["output"])

    def reset(self):
        with self._lock:
            self._data = {op: self._empty() for op in OPERATIONS}

    def snapshot(self):
        with self._lock:
            out = {}
            for k, v in self._data.items():
                # rolling average over recent N; fallback to overall avg
                if v["latencies"]:
                    avg = sum(v["latencies"]) / len(v["latencies"])
                else:
                    avg = (v["total_ms"] / v["calls"]) if v["calls"] else 0.0
                out[k] = {
                    "calls": v["calls"],
                    "errors": v["errors"],
                    "avg_latency_ms": round(avg, 2),
                    "last_output": v["last_output"],
                    "last_request": v["last_request"].isoformat() if v["last_request"] else None,
                }
            return out


metrics = MetricsStore()
