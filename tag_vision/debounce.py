from typing import Optional


class Debouncer:
    """
    Debounce both edges of a boolean signal.

    The output follows the input only after the input has held its new value
    for at least ``settle_s`` seconds since it last changed.
    """

    def __init__(self, settle_s: float = 0.1, initial: bool = False):
        if settle_s < 0:
            raise ValueError("settle_s must be >= 0")
        self.settle_s = settle_s
        self.stable_value = initial
        self.last_raw_value = initial
        self.last_change_s: Optional[float] = None
        self._last_timestamp_s: Optional[float] = None

    def calculate(self, raw: bool, timestamp_s: float) -> bool:
        if self._last_timestamp_s is not None and timestamp_s < self._last_timestamp_s:
            raise ValueError(
                f"timestamps must not go backwards ({timestamp_s} < {self._last_timestamp_s})"
            )
        self._last_timestamp_s = timestamp_s

        raw = bool(raw)
        if self.last_change_s is None or raw != self.last_raw_value:
            self.last_raw_value = raw
            self.last_change_s = timestamp_s

        if raw != self.stable_value and timestamp_s - self.last_change_s >= self.settle_s:
            self.stable_value = raw

        return self.stable_value
