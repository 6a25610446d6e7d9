"""
Chronologically ordered push ids.

Ids are generated client-side the way Firebase Realtime Database `push()` does it:
- 8 characters encode the millisecond timestamp,
- 12 characters are random, and are incremented (not re-rolled) when two ids are
  generated within the same millisecond.

Both halves use an alphabet whose ASCII order matches its value order, so plain string
comparison of two ids orders them by creation time. Snapshots are returned in key order,
which makes "insertion order" and "key order" the same thing.
"""

from __future__ import annotations

import random
import threading
import time
from typing import Callable

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:
    def __init__(self, *, clock_ms: Callable[[], int] | None = None, rng: random.Random | None = None):
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_rand: list[int] = [0] * 12

    def __call__(self) -> str:
        with self._lock:
            now = int(self._clock_ms())
            if now == self._last_ms:
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i < 0:
                    raise RuntimeError("push id space exhausted for this millisecond")
                self._last_rand[i] += 1
            else:
                self._last_rand = [self._rng.randrange(64) for _ in range(12)]
            self._last_ms = now

            time_chars = []
            t = now
            for _ in range(8):
                time_chars.append(PUSH_CHARS[t % 64])
                t //= 64
            if t != 0:
                raise ValueError("timestamp out of range for push id")
            return "".join(reversed(time_chars)) + "".join(PUSH_CHARS[n] for n in self._last_rand)


generate_push_id = PushIdGenerator()
