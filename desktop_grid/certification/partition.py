"""Partition of submissions into classes of identical results."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from typing import Any

import numpy as np

from .models import ResultClass

ResultKey = Callable[[Any], Hashable]


def group_by_result(
    workers: Sequence[Hashable],
    results: Sequence[Any],
    key: ResultKey | None = None,
) -> list[ResultClass]:
    """
    Group workers by the result they submitted.

    Args:
        workers: Workers, one per submission
        results: Submitted results, parallel to workers
        key: Maps a result to a hashable key. Results with equal keys are
             the same answer. Defaults to the result itself.

    Returns:
        One ResultClass per distinct result, ordered by first submission.

    Raises:
        ValueError: If workers and results have different lengths

    Example:
        classes = group_by_result(["A", "B", "C"], [1, 2, 1])
        # [ResultClass(result=1, workers=("A", "C"), first_index=0),
        #  ResultClass(result=2, workers=("B",), first_index=1)]
    """
    if len(workers) != len(results):
        raise ValueError(
            f"Submission length mismatch: workers={len(workers)}, results={len(results)}"
        )

    key = key or _identity
    # key -> (first result, first index, workers)
    classes: dict[Hashable, tuple[Any, int, list[Hashable]]] = {}
    for index, (worker, result) in enumerate(zip(workers, results)):
        result_key = key(result)
        if result_key not in classes:
            classes[result_key] = (result, index, [])
        classes[result_key][2].append(worker)

    return [
        ResultClass(result=result, workers=tuple(members), first_index=index)
        for result, index, members in classes.values()
    ]


def prediction_key(similarity_threshold: float = 1e-6) -> ResultKey:
    """
    Create a result key for numeric array results.

    Rounds to threshold precision, then hashes the bytes. This handles
    floating-point comparison issues between honest workers.

    Opt-in and chosen by the caller: by default certificators compare
    results by equality only and never look inside them. Passing this key
    widens "the same answer" to "equal after rounding".

    Args:
        similarity_threshold: Results within this precision are identical.
            e.g., 1e-6 -> 6 decimal places

    Returns:
        Function mapping an array-like result to a hashable key
    """
    if not 0.0 < similarity_threshold < 1.0:
        raise ValueError(
            f"similarity_threshold must be in (0, 1), got {similarity_threshold}"
        )
    decimals = int(round(-np.log10(similarity_threshold)))

    def _key(result: Any) -> Hashable:
        rounded = np.round(
            np.asarray(result, dtype=np.float64).flatten(), decimals=decimals
        )
        # -0.0 and 0.0 have different bytes
        rounded = rounded + 0.0
        return rounded.tobytes().hex()

    return _key


def _identity(result: Any) -> Hashable:
    return result
