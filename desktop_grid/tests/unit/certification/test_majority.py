"""Unit tests for majority and random certificators."""

import random

import numpy as np
import pytest

from desktop_grid.certification import (
    AbsoluteMajorityResultCertificator,
    InsufficientRedundancyError,
    RandomResultCertificator,
    RelativeMajorityResultCertificator,
    UntrustworthyResultError,
    prediction_key,
)
from desktop_grid.reputation import OptimisticReputationSystem


class TestAbsoluteMajorityResultCertificator:
    """Tests for AbsoluteMajorityResultCertificator."""

    @pytest.fixture
    def certificator(self) -> AbsoluteMajorityResultCertificator:
        return AbsoluteMajorityResultCertificator()

    def test_strict_majority_wins(
        self, certificator: AbsoluteMajorityResultCertificator
    ) -> None:
        """A result submitted by more than half of the workers is certified."""
        assert certificator.select_best_result(["a", "b", "c"], ["x", "y", "x"]) == "x"

    def test_half_is_not_a_majority(
        self, certificator: AbsoluteMajorityResultCertificator
    ) -> None:
        """Exactly half of the workers is not enough."""
        with pytest.raises(UntrustworthyResultError, match="No absolute majority"):
            certificator.select_best_result(["a", "b", "c", "d"], [1, 1, 2, 2])

    def test_single_submission_raises(
        self, certificator: AbsoluteMajorityResultCertificator
    ) -> None:
        """One result cannot be cross-checked."""
        with pytest.raises(InsufficientRedundancyError):
            certificator.select_best_result(["a"], [1])

    def test_falls_back_to_relative_majority(
        self, certificator: AbsoluteMajorityResultCertificator
    ) -> None:
        """Without absolute majority the largest group is selected."""
        assert isinstance(certificator.fallback, RelativeMajorityResultCertificator)

        result = certificator.select_less_worse_result(
            ["a", "b", "c", "d", "e"], [1, 1, 2, 2, 3]
        )

        assert result == 1

    def test_result_key_used_for_arrays(self) -> None:
        """Array results are compared through the result key."""
        certificator = AbsoluteMajorityResultCertificator(
            result_key=prediction_key(1e-6)
        )
        results = [
            np.array([1.0, 2.0]),
            np.array([1.0 + 1e-9, 2.0]),
            np.array([5.0, 6.0]),
        ]

        selected = certificator.select_best_result(["a", "b", "c"], results)

        np.testing.assert_array_equal(selected, results[0])

    def test_result_key_reaches_fallback(self) -> None:
        """Fallback certificators compare results the same way."""
        key = prediction_key(1e-6)
        certificator = AbsoluteMajorityResultCertificator(result_key=key)

        assert certificator.fallback._result_key is key
        assert certificator.fallback.fallback._result_key is key


class TestRelativeMajorityResultCertificator:
    """Tests for RelativeMajorityResultCertificator."""

    @pytest.fixture
    def certificator(self) -> RelativeMajorityResultCertificator:
        return RelativeMajorityResultCertificator()

    def test_largest_group_wins(
        self, certificator: RelativeMajorityResultCertificator
    ) -> None:
        """The most submitted result is certified without absolute majority."""
        result = certificator.select_best_result(
            ["a", "b", "c", "d", "e", "f"], [1, 2, 2, 3, 3, 3]
        )

        assert result == 3

    def test_earliest_result_wins_ties(
        self, certificator: RelativeMajorityResultCertificator
    ) -> None:
        """Among equally large groups the first submitted result wins."""
        result = certificator.select_best_result(
            ["a", "b", "c", "d", "e"], ["y", "x", "x", "y", "z"]
        )

        assert result == "y"

    def test_no_agreement_raises(
        self, certificator: RelativeMajorityResultCertificator
    ) -> None:
        """A largest group of one worker is not a majority."""
        with pytest.raises(UntrustworthyResultError):
            certificator.select_best_result(["a", "b", "c"], [1, 2, 3])

    def test_falls_back_to_random(
        self, certificator: RelativeMajorityResultCertificator
    ) -> None:
        """Without any agreement a submitted result is drawn."""
        assert isinstance(certificator.fallback, RandomResultCertificator)

        result = certificator.select_less_worse_result(["a", "b", "c"], [1, 2, 3])

        assert result in (1, 2, 3)


class TestRandomResultCertificator:
    """Tests for RandomResultCertificator."""

    def test_returns_submitted_result(self) -> None:
        """The pick is always one of the submissions."""
        certificator = RandomResultCertificator(rng=random.Random(1))

        for _ in range(20):
            assert certificator.select_best_result(["a", "b", "c"], [1, 2, 3]) in (
                1,
                2,
                3,
            )

    def test_seeded_picks_reproducible(self) -> None:
        """Equally seeded generators draw the same results."""
        workers = [f"w{i}" for i in range(10)]
        results = list(range(10))
        first = RandomResultCertificator(rng=random.Random(42))
        second = RandomResultCertificator(rng=random.Random(42))

        picks = [first.select_best_result(workers, results) for _ in range(5)]

        assert picks == [second.select_best_result(workers, results) for _ in range(5)]

    def test_single_submission_accepted(self) -> None:
        """Nothing is cross-checked, one result is enough."""
        assert RandomResultCertificator().select_best_result(["a"], ["x"]) == "x"

    def test_no_submission_raises(self) -> None:
        """An empty submission set has nothing to draw from."""
        with pytest.raises(InsufficientRedundancyError) as exc_info:
            RandomResultCertificator().select_best_result([], [])

        assert exc_info.value.submissions == 0

    def test_length_mismatch_raises(self) -> None:
        """Workers and results must be parallel."""
        with pytest.raises(ValueError):
            RandomResultCertificator().select_best_result(["a"], [1, 2])

    def test_last_resort_has_no_fallback(self) -> None:
        """The random pick ends every fallback chain."""
        certificator = RandomResultCertificator()

        assert certificator.fallback is None
        with pytest.raises(InsufficientRedundancyError):
            certificator.select_less_worse_result([], [])

    def test_reputation_system_accepted(self) -> None:
        """Random certification can replace any other certificator."""
        reputation = OptimisticReputationSystem()

        certificator = RandomResultCertificator(reputation)

        assert certificator.reputation_system is reputation
