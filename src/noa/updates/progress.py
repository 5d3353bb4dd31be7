"""Update progress bookkeeping across firmware and FPGA phases.

When both updates run in one cycle the firmware update occupies 0-50% and
the FPGA update 50-100%; a lone update occupies 0-100%.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)


def _clamp(percent: int) -> int:
    return max(0, min(100, percent))


def rescale_first_half(percent: int, rescale: bool) -> int:
    """Map a 0-100 firmware percentage into the overall range."""
    percent = _clamp(percent)
    return percent // 2 if rescale else percent


def rescale_second_half(percent: int, rescale: bool) -> int:
    """Map a 0-100 FPGA percentage into the overall range."""
    percent = _clamp(percent)
    return 50 + percent // 2 if rescale else percent


class ProgressReporter:
    """Publishes overall update progress, never moving backwards within a phase."""

    def __init__(self, listener: Callable[[int], None] | None = None):
        self._listener = listener
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def start_phase(self, initial: int = 0) -> None:
        """Begin a phase at the given starting value (may move backwards)."""
        self._set(_clamp(initial))

    def report(self, percent: int) -> None:
        """Report progress; values below the current one are ignored."""
        percent = _clamp(percent)
        if percent < self._value:
            _LOGGER.debug("Ignoring regressive progress %d%% (at %d%%)", percent, self._value)
            return
        self._set(percent)

    def _set(self, percent: int) -> None:
        if percent == self._value:
            return
        self._value = percent
        if self._listener:
            self._listener(percent)
