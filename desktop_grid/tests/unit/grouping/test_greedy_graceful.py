"""Unit tests for GreedyGracefulResourcesGrouper."""

import threading
from collections.abc import Callable, Hashable
from concurrent.futures import ThreadPoolExecutor

import pytest

from desktop_grid.estimation import Estimator
from desktop_grid.grouping import (
    GreedyGracefulResourcesGrouper,
    GroupState,
    UnknownWorkerError,
    min_size,
)
from desktop_grid.reputation import (
    OptimisticReputationSystem,
    ReputationUnavailableError,
)


class StubReputation(OptimisticReputationSystem):
    """Fixed colluders fraction, pairwise likelihoods from a function."""

    def __init__(
        self,
        fraction: Estimator | None = Estimator(0.0),
        pairwise: Callable[[Hashable, Hashable], Estimator | None] | None = None,
    ):
        self.fraction = fraction
        self.pairwise = pairwise
        self.references: list[Hashable] = []
        self._lock = threading.Lock()

    def colluders_fraction(self) -> Estimator | None:
        return self.fraction

    def pairwise_collusion_likelihood(self, reference, candidates):
        with self._lock:
            self.references.append(reference)
        if self.pairwise is None:
            return super().pairwise_collusion_likelihood(reference, candidates)
        return {c: self.pairwise(reference, c) for c in candidates}


class FailingReputation(OptimisticReputationSystem):
    """Every query fails transiently."""

    def colluders_fraction(self):
        raise ReputationUnavailableError("recomputing")

    def pairwise_collusion_likelihood(self, reference, candidates):
        raise ReputationUnavailableError("recomputing")


class EmptyStubReputation(StubReputation):
    """Stub that is falsy while it tracks no worker."""

    def __len__(self) -> int:
        return 0


def _grouper(reputation, workers: list[str]) -> GreedyGracefulResourcesGrouper:
    grouper = GreedyGracefulResourcesGrouper(reputation)
    grouper.add_all_workers(workers)
    return grouper


class TestGracefulPolicy:
    """Tests for negligible collusion."""

    def test_no_collusion_keeps_singletons(self, workers: list[str], worker: str) -> None:
        """Workers stay alone when collusion is negligible."""
        grouper = _grouper(StubReputation(Estimator(0.0)), workers)

        group = grouper.get_group(worker)

        assert group.members == (worker,)
        assert grouper.target_size(group) == 1

    def test_low_risk_upper_bound(self, workers: list[str], worker: str) -> None:
        """The whole uncertainty interval must be below the low risk threshold."""
        grouper = _grouper(StubReputation(Estimator(0.005, 0.005)), workers)

        assert grouper.stabilize_group(worker).size == 1
        assert grouper.group_state(worker) == GroupState.STABLE


class TestGreedyPolicy:
    """Tests for group sizing under collusion."""

    def test_grows_to_min_size(self, workers: list[str], worker: str) -> None:
        """With a fraction of 0.31±0.2 groups reach min_size(0.31)."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)

        group = grouper.stabilize_group(worker)

        assert group.size == min_size(0.31) == 11
        assert group.members == tuple(workers[:11])

    def test_min_greedy_size_floor(self, workers: list[str], worker: str) -> None:
        """Any non negligible fraction gives groups of at least 5."""
        grouper = _grouper(StubReputation(Estimator(0.0, 0.2)), workers)

        assert grouper.stabilize_group(worker).size == 5

    def test_one_worker_per_call(self, workers: list[str], worker: str) -> None:
        """get_group performs at most one growth step."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)

        assert grouper.get_group(worker).size == 2
        assert grouper.get_group(worker).size == 3
        assert grouper.group_state(worker) == GroupState.GROWING

    def test_same_group_returned(self, workers: list[str], worker: str) -> None:
        """Repeated requests return the same group object."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)

        assert grouper.get_group(worker) is grouper.get_group(worker)

    def test_uncertain_fraction_groups_everyone(self, workers: list[str]) -> None:
        """A fraction too uncertain to act upon groups all workers."""
        pool = workers[:8]
        grouper = _grouper(StubReputation(Estimator(0.3, 0.5)), pool)

        group = grouper.stabilize_group(pool[0])

        assert group.member_set == frozenset(pool)

    def test_target_capped_at_available_workers(self, workers: list[str]) -> None:
        """Groups cannot exceed the pool."""
        pool = workers[:6]
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), pool)

        assert grouper.stabilize_group(pool[0]).size == 6
        assert grouper.group_state(pool[0]) == GroupState.STABLE

    def test_high_fraction_groups_everyone(self, workers: list[str]) -> None:
        """An unbounded minimal size is capped at the pool."""
        pool = workers[:12]
        grouper = _grouper(StubReputation(Estimator(0.6, 0.1)), pool)

        assert grouper.stabilize_group(pool[0]).size == 12

    def test_groups_never_shrink(self, workers: list[str], worker: str) -> None:
        """Lower collusion later does not remove members."""
        reputation = StubReputation(Estimator(0.31, 0.2))
        grouper = _grouper(reputation, workers)
        grouper.stabilize_group(worker)

        reputation.fraction = Estimator(0.0)

        assert grouper.get_group(worker).size == 11

    def test_max_steps_limits_growth(self, workers: list[str], worker: str) -> None:
        """stabilize_group stops after max_steps growth steps."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)

        assert grouper.stabilize_group(worker, max_steps=3).size == 4

    def test_reference_is_group_owner(self, workers: list[str], worker: str) -> None:
        """Pairwise likelihoods are queried against the group's owner."""
        reputation = StubReputation(Estimator(0.31, 0.2))
        grouper = _grouper(reputation, workers)

        grouper.stabilize_group(worker)

        assert reputation.references
        assert set(reputation.references) == {worker}


class TestGroupExtension:
    """Tests for get_group_extension candidate selection."""

    def test_uncertain_likelihoods_leave_group_unchanged(
        self, workers: list[str], worker: str
    ) -> None:
        """Candidates with unknown collusion are never added."""
        reputation = StubReputation(
            Estimator(0.31, 0.2), pairwise=lambda ref, c: Estimator(0.0, 1.0)
        )
        grouper = _grouper(reputation, workers)
        group = grouper.get_group(worker)

        extended = grouper.get_group_extension(group)

        assert extended is group
        assert extended.members == (worker,)

    def test_least_likely_colluder_selected(
        self, workers: list[str], worker: str
    ) -> None:
        """The only worker unlikely to collude is the one added."""
        trusted = workers[42]
        reputation = StubReputation(
            Estimator(0.31, 0.2),
            pairwise=lambda ref, c: Estimator(0.0) if c == trusted else Estimator(1.0),
        )
        grouper = _grouper(reputation, workers)
        group = grouper.get_group(worker)

        assert group.members == (worker, trusted)
        assert grouper.get_group_extension(group).members == (worker, trusted)

    def test_lowest_likelihood_wins(self, workers: list[str], worker: str) -> None:
        """Among qualifying candidates the lowest likelihood wins."""
        likelihoods = {workers[1]: Estimator(0.3), workers[2]: Estimator(0.1)}
        reputation = StubReputation(
            Estimator(0.31, 0.2),
            pairwise=lambda ref, c: likelihoods.get(c, Estimator(0.4)),
        )
        grouper = _grouper(reputation, workers)

        assert grouper.get_group(worker).members == (worker, workers[2])

    def test_ties_go_to_earliest_registered(
        self, workers: list[str], worker: str
    ) -> None:
        """Equal likelihoods are broken by registration order."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)

        assert grouper.get_group(worker).members == (worker, workers[1])

    def test_likely_colluders_excluded(self, workers: list[str], worker: str) -> None:
        """Candidates above max_collusion_likelihood are never added."""
        reputation = StubReputation(
            Estimator(0.31, 0.2), pairwise=lambda ref, c: Estimator(0.6)
        )
        grouper = _grouper(reputation, workers)

        assert grouper.stabilize_group(worker).size == 1

    def test_missing_likelihoods_skipped(self, workers: list[str], worker: str) -> None:
        """Candidates without estimate are never added."""
        reputation = StubReputation(Estimator(0.31, 0.2), pairwise=lambda ref, c: None)
        grouper = _grouper(reputation, workers)

        assert grouper.get_group(worker).size == 1

    def test_no_candidate_left(self, workers: list[str]) -> None:
        """A group holding the whole pool is returned unchanged."""
        pool = workers[:2]
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), pool)
        group = grouper.stabilize_group(pool[0])

        assert grouper.get_group_extension(group).size == 2


class TestReputationFailures:
    """Tests for reputation queries failing during grouping."""

    def test_fraction_unavailable_keeps_group(
        self, workers: list[str], worker: str
    ) -> None:
        """Groups are returned as is when the fraction cannot be queried."""
        grouper = _grouper(FailingReputation(), workers)

        assert grouper.target_size() is None
        assert grouper.get_group(worker).members == (worker,)

    def test_missing_fraction_keeps_group(self, workers: list[str], worker: str) -> None:
        """A missing fraction estimate does not grow groups."""
        grouper = _grouper(StubReputation(fraction=None), workers)

        assert grouper.get_group(worker).size == 1

    def test_pairwise_unavailable_keeps_group(
        self, workers: list[str], worker: str
    ) -> None:
        """Extension failures leave the group unchanged."""
        grouper = _grouper(FailingReputation(), workers)
        group = grouper.get_group(worker)

        assert grouper.get_group_extension(group).members == (worker,)

    def test_other_failures_propagate(self, workers: list[str], worker: str) -> None:
        """Only ReputationError is absorbed, other failures reach the caller."""

        class TimingOut(OptimisticReputationSystem):
            def colluders_fraction(self):
                raise TimeoutError("reputation store timed out")

        grouper = _grouper(TimingOut(), workers)

        with pytest.raises(TimeoutError):
            grouper.get_group(worker)

    def test_falsy_reputation_system_kept(
        self, workers: list[str], worker: str
    ) -> None:
        """An empty reputation system is used, not replaced by the optimistic one."""
        reputation = EmptyStubReputation(Estimator(0.31, 0.2))
        grouper = _grouper(reputation, workers)

        assert grouper.reputation_system is reputation
        assert grouper.stabilize_group(worker).size == 11
        assert reputation.references

    def test_set_reputation_system(self, workers: list[str], worker: str) -> None:
        """Later requests use the replaced reputation system."""
        grouper = _grouper(FailingReputation(), workers)
        grouper.get_group(worker)

        grouper.set_reputation_system(StubReputation(Estimator(0.31, 0.2)))

        assert grouper.get_group(worker).size == 2


class TestWorkerRegistration:
    """Tests for adding and removing workers."""

    def test_registration_idempotent(self, workers: list[str]) -> None:
        """Adding the same workers twice changes nothing."""
        grouper = _grouper(OptimisticReputationSystem(), workers)

        grouper.add_all_workers(workers[:10])

        assert grouper.registered_workers == frozenset(workers)
        assert grouper._pool() == tuple(workers)

    def test_unknown_worker_raises(self, workers: list[str]) -> None:
        """Unregistered workers cannot be grouped."""
        grouper = _grouper(OptimisticReputationSystem(), workers)

        with pytest.raises(UnknownWorkerError) as exc_info:
            grouper.get_group("stranger")

        assert exc_info.value.worker == "stranger"

    def test_unknown_worker_state_raises(self, workers: list[str]) -> None:
        """State of unregistered workers is not defined."""
        grouper = _grouper(OptimisticReputationSystem(), workers)

        with pytest.raises(UnknownWorkerError):
            grouper.group_state("stranger")

    def test_state_unassigned_before_request(self, workers: list[str], worker: str) -> None:
        """Registered workers have no group until requested."""
        grouper = _grouper(OptimisticReputationSystem(), workers)

        assert grouper.is_registered(worker)
        assert grouper.group_state(worker) == GroupState.UNASSIGNED

    def test_removed_worker_not_added(self, workers: list[str], worker: str) -> None:
        """Removed workers are no longer extension candidates."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)

        grouper.remove_all_workers([workers[1], workers[2]])

        assert grouper.get_group(worker).members == (worker, workers[3])

    def test_removed_worker_stays_member(self, workers: list[str], worker: str) -> None:
        """Removing a member does not shrink its group."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)
        group = grouper.get_group(worker)

        grouper.remove_all_workers([workers[1]])

        assert workers[1] in grouper.get_group(worker)
        assert group.size == 3
        with pytest.raises(UnknownWorkerError):
            grouper.get_group(workers[1])


class TestConcurrency:
    """Tests for concurrent group requests."""

    def test_concurrent_growth_of_one_group(self, workers: list[str], worker: str) -> None:
        """Concurrent requests never add a worker twice or overshoot."""
        grouper = _grouper(StubReputation(Estimator(0.3, 0.5)), workers)

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda _: grouper.get_group(worker), range(200)))

        group = grouper.get_group(worker)
        assert group.size == len(workers)
        assert len(set(group.members)) == group.size

    def test_concurrent_extensions(self, workers: list[str], worker: str) -> None:
        """Concurrent extensions add distinct workers."""
        grouper = _grouper(StubReputation(Estimator(0.31, 0.2)), workers)
        group = grouper.get_group(worker)

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda _: grouper.get_group_extension(group), range(40)))

        assert group.size == 42
        assert group.members == tuple(workers[:42])

    def test_concurrent_first_requests_share_group(
        self, workers: list[str], worker: str
    ) -> None:
        """Racing first requests create a single group."""
        grouper = _grouper(OptimisticReputationSystem(), workers)

        with ThreadPoolExecutor(max_workers=8) as executor:
            groups = list(executor.map(lambda _: grouper.get_group(worker), range(50)))

        assert all(g is groups[0] for g in groups)
