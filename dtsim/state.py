# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# state.py
# -----------------------------------------------------------------------------
# Purpose:
#   StateStore: the FIFO waiting line and the service windows' occupancy.
#   Pure data; every operation is O(1).
#
# Design notes:
#   - Idle windows are kept in an insertion-ordered dict so the next idle
#     window is found without scanning, and a window freed and immediately
#     reassigned leaves no trace in the idle set.
#   - Capacity breaches raise LogicViolation instead of being clamped.
#
# Usage:
#   store = StateStore(num_windows=2)
#   store.enqueue(customer); store.assign(0, store.dequeue_head())
# -----------------------------------------------------------------------------

from __future__ import annotations
from collections import deque
from typing import Deque, Dict, List, Optional

from .entities import Customer, ServiceWindow
from .errors import LogicViolation


class StateStore:
    def __init__(self, num_windows: int):
        self.windows: List[ServiceWindow] = [ServiceWindow(wid) for wid in range(num_windows)]
        self.queue: Deque[Customer] = deque()
        self._idle: Dict[int, None] = dict.fromkeys(range(num_windows))
        self._busy = 0

    @property
    def num_windows(self) -> int:
        return len(self.windows)

    def enqueue(self, customer: Customer) -> None:
        self.queue.append(customer)

    def dequeue_head(self) -> Optional[Customer]:
        return self.queue.popleft() if self.queue else None

    def idle_window(self) -> Optional[int]:
        """Window idle the longest (lowest id first at start), or None."""
        for wid in self._idle:
            return wid
        return None

    def assign(self, wid: int, customer: Customer, now: Optional[float] = None) -> None:
        window = self.windows[wid]
        if window.busy:
            raise LogicViolation(f"window {wid} is already serving customer {window.current.cid}",
                                 timestamp=now, customer_id=customer.cid)
        window.busy = True
        window.current = customer
        del self._idle[wid]
        self._busy += 1

    def free(self, wid: int, now: Optional[float] = None) -> Customer:
        window = self.windows[wid]
        if not window.busy or window.current is None:
            raise LogicViolation(f"departure recorded at idle window {wid}", timestamp=now)
        customer = window.current
        window.busy = False
        window.current = None
        self._idle[wid] = None
        self._busy -= 1
        return customer

    def queue_len(self) -> int:
        return len(self.queue)

    def busy_count(self) -> int:
        return self._busy

    def in_system(self) -> int:
        return len(self.queue) + self._busy
