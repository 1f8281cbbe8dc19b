# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# output.py
# -----------------------------------------------------------------------------
# Purpose:
#   EventSink implementations (console table, CSV history, in-memory list,
#   fan-out, threaded hand-off) and the end-of-run report.
#
# Design notes:
#   - A sink receives SimEvents in non-decreasing time order, exactly once
#     each; sinks never reorder, drop or coalesce.
#   - ThreadedSink moves rendering to one worker thread through a single
#     producer / single consumer queue; close() blocks until it is drained.
#
# Usage:
#   sink = MultiSink(ConsoleSink(num_windows=2), CsvSink("history.csv"))
#   result = run_simulation(inp, sink); sink.close()
#   print(render_report(result))
# -----------------------------------------------------------------------------

from __future__ import annotations
import csv
import logging
import queue
import sys
import threading
from typing import List, Optional, TextIO

from .durations import format_duration, format_duration_fixed_width
from .entities import SimEvent

logger = logging.getLogger(__name__)

CSV_HEADER = ["Time", "Event", "CustomerID", "QueueLength", "BusyServers"]
RULE = "-" * 91


class EventSink:
    """Base sink; subclasses override emit()."""
    def emit(self, ev: SimEvent) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class MemorySink(EventSink):
    def __init__(self):
        self.events: List[SimEvent] = []

    def emit(self, ev: SimEvent) -> None:
        self.events.append(ev)

    def rows(self):
        return [ev.as_row() for ev in self.events]


class ConsoleSink(EventSink):
    def __init__(self, num_windows: int, stream: Optional[TextIO] = None, header: bool = True):
        self.num_windows = num_windows
        self.stream = stream or sys.stdout
        if header:
            print(f"{'Time':>30} {'Event':<15} {'CustID':<10} {'Queue':<10} BusyServers", file=self.stream)
            print(RULE, file=self.stream)

    def emit(self, ev: SimEvent) -> None:
        print(f"{format_duration_fixed_width(ev.time)} {str(ev.kind):<15} {ev.customer_id:<10} "
              f"{ev.queue_len:<10} {ev.busy_servers}/{self.num_windows}", file=self.stream)
        self.stream.flush()

    def close(self) -> None:
        print(RULE, file=self.stream)
        self.stream.flush()


class CsvSink(EventSink):
    """Streams the event history to a CSV file, one flushed row per event."""
    def __init__(self, path: str, precision: int = 2):
        self.path = path
        self.precision = precision
        self._fh = open(path, "w", newline="")
        self._writer = csv.writer(self._fh)
        self._writer.writerow(CSV_HEADER)

    def emit(self, ev: SimEvent) -> None:
        self._writer.writerow([f"{ev.time:.{self.precision}f}", str(ev.kind), ev.customer_id,
                               ev.queue_len, ev.busy_servers])
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


class MultiSink(EventSink):
    def __init__(self, *sinks: EventSink):
        self.sinks = [s for s in sinks if s is not None]

    def emit(self, ev: SimEvent) -> None:
        for sink in self.sinks:
            sink.emit(ev)

    def close(self) -> None:
        for sink in self.sinks:
            sink.close()


_STOP = object()


class ThreadedSink(EventSink):
    """Forwards events to ``inner`` on a dedicated worker thread, in order."""
    def __init__(self, inner: EventSink):
        self.inner = inner
        self._queue: "queue.Queue" = queue.Queue()
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._drain, name="dtsim-output", daemon=True)
        self._thread.start()

    def _drain(self):
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if self._error is not None:
                continue
            try:
                self.inner.emit(item)
            except Exception as exc:  # re-raised on the producer side in close()
                logger.error("output thread failed: %s", exc)
                self._error = exc

    def emit(self, ev: SimEvent) -> None:
        if self._error is not None:
            raise self._error
        self._queue.put(ev)

    def close(self) -> None:
        if self._thread.is_alive():
            self._queue.put(_STOP)
            self._thread.join()
        self.inner.close()
        if self._error is not None:
            raise self._error


def render_report(result, title: str = "Simulation Statistics") -> str:
    """Human-readable report for a RunResult."""
    s = result.summary()
    lines = [f"\n{title}:", "-" * 47,
             f"Total customers processed: {s['customers_generated']}",
             f"Customers completed: {s['customers_completed']}"]
    if s["customers_completed"] > 0:
        lines.append(f"Average waiting time per customer: {format_duration(s['avg_wait'])}")
        lines.append(f"Maximum waiting time: {format_duration(s['max_wait'])}")
        lines.append(f"Average service time per customer: {format_duration(s['avg_service'])}")
    if s["elapsed"] > 0:
        lines.append(f"Average queue length (time-weighted): {round(s['avg_queue_length']):.0f} customers "
                     f"({s['avg_queue_length']:.3f})")
        lines.append(f"Maximum queue length: {s['max_queue']} customers")
        lines.append(f"Average servers busy (time-weighted): {round(s['avg_busy_servers']):.0f} of "
                     f"{s['num_windows']} windows ({s['avg_busy_servers']:.3f})")
        lines.append(f"Server utilization: {s['utilization'] * 100.0:.2f}%")
        if s["throughput_per_hour"] > 0:
            lines.append(f"Throughput: {s['throughput_per_hour']:.2f} customers/hour")
    else:
        lines.append("No simulated time elapsed; time-weighted statistics are undefined.")
    if s["in_system_at_horizon"]:
        lines.append(f"Customers in system at the arrival horizon: {s['in_system_at_horizon']}")
    if s["still_in_system"] > 0:
        lines.append(f"\nNote: {s['still_in_system']} customers still in system (waiting or being served)")
    lines.append(f"Simulation finished at T={format_duration(s['elapsed'])}")
    return "\n".join(lines)
