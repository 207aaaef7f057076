"""Polyphase Q15 FIR interpolator."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List, Sequence

_Q15_MAX = 32767
_Q15_MIN = -32768


def _saturate16(value: int) -> int:
    return max(_Q15_MIN, min(_Q15_MAX, value))


class FIRInterpolator:
    """Upsamples a Q15 signal by an integer factor through a polyphase FIR filter.

    The filter state persists between calls to :meth:`process`, so a signal
    may be fed in blocks of any size.
    """

    def __init__(self, coefficients: Sequence[int], factor: int) -> None:
        if factor <= 0:
            raise ValueError("interpolation factor must be positive")
        coefficients = tuple(coefficients)
        if not coefficients or len(coefficients) % factor:
            raise ValueError("number of coefficients must be a non-zero multiple of the factor")
        self._factor = factor
        self._phase_length = len(coefficients) // factor
        # One coefficient subsequence per output phase, oldest-sample first.
        self._phases = [coefficients[factor - j::factor] for j in range(1, factor + 1)]
        self._state: Deque[int] = deque([0] * self._phase_length, maxlen=self._phase_length)

    @property
    def factor(self) -> int:
        """Number of output samples produced per input sample."""
        return self._factor

    def reset(self) -> None:
        """Clear the filter history."""
        self._state.extend([0] * self._phase_length)

    def process(self, samples: Iterable[int]) -> List[int]:
        """Filter ``samples`` and return ``factor`` output samples for each input."""
        output: List[int] = []
        for sample in samples:
            self._state.append(int(sample))
            for phase in self._phases:
                acc = sum(s * c for s, c in zip(self._state, phase))
                output.append(_saturate16(acc >> 15))
        return output