"""
Series downsampling for chart display
"""

from typing import Sequence, TypeVar

T = TypeVar("T")


def downsample(series: Sequence[T], target_count: int) -> list[T]:
    """
    Reduce an ordered series to `target_count` points by stride sampling.

    Series that already fit are returned as-is. Otherwise exactly
    `target_count` elements are picked at floor(i * len/target_count) and the
    last pick is replaced with the true last element, so a chart always ends
    at the newest point. Empty input or a non-positive target yields [].
    """
    if target_count <= 0 or not series:
        return []

    if len(series) <= target_count:
        return list(series)

    step = len(series) / target_count
    last_index = len(series) - 1

    result = [series[min(int(i * step), last_index)] for i in range(target_count)]
    result[-1] = series[last_index]
    return result
