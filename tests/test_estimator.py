import math
import threading

import pytest

from distinct_stream.core.errors import ConfigurationError, PrecisionExhausted
from distinct_stream.core.buffer import ListBuffer, SampleBuffer
from distinct_stream.core.estimator import DistinctEstimator, SynchronizedEstimator
from distinct_stream.core.params import capacity_for
from distinct_stream.core.randomness import RandomSource


def test_estimate_before_ingest_is_zero():
    est = DistinctEstimator(16)
    assert est.estimate() == 0
    assert est.elements_processed() == 0
    assert est.probability == 1.0


def test_exact_below_capacity(stub):
    est = DistinctEstimator(10, source=stub(insert=True))
    for i in range(10 - 1):
        est.ingest(f"user-{i}")
    assert est.estimate() == 9
    assert est.probability == 1.0
    assert est.rounds == 0


def test_duplicates_do_not_inflate_below_capacity(stub):
    est = DistinctEstimator(50, source=stub(insert=True))
    est.ingest_all(["a", "b", "a", "c", "b", "a"])
    assert est.estimate() == 3
    assert est.elements_processed() == 6


def test_fill_triggers_single_thin_and_halving(stub):
    source = stub(insert=True, keep=True)
    est = DistinctEstimator(4, source=source)
    for e in ["A", "B", "C"]:
        est.ingest(e)
    assert est.rounds == 0 and source.coin_flips == 0
    est.ingest("D")
    assert source.coin_flips == 4
    assert est.buffer_size == 4
    assert est.probability == 0.5
    assert est.estimate() == 8


def test_thin_is_not_looped_when_nothing_is_dropped(stub):
    source = stub(insert=True, keep=True)
    est = DistinctEstimator(2, source=source)
    est.ingest_all(["x", "y"])
    assert est.rounds == 1
    assert source.coin_flips == 2


def test_insertion_gate_uses_current_probability(stub):
    source = stub(insert=[True, True, True, False], keep=[True, False, True])
    est = DistinctEstimator(3, source=source)
    est.ingest_all(["a", "b", "c", "d"])
    assert source.probabilities == [1.0, 1.0, 1.0, 0.5]
    assert est.buffer.elements() == ["a", "c"]
    assert est.estimate() == 4


def test_reingest_removes_when_gate_fails(stub):
    est = DistinctEstimator(10, source=stub(insert=[True, False]))
    est.ingest("a")
    est.ingest("a")
    assert est.buffer_size == 0
    assert est.elements_processed() == 2


@pytest.mark.parametrize("first", [True, False])
@pytest.mark.parametrize("second", [True, False])
def test_consecutive_duplicate_changes_size_by_at_most_one(stub, first, second):
    est = DistinctEstimator(100, source=stub(insert=[True] * 5 + [first, second]))
    est.ingest_all(["p", "q", "r", "s", "t"])
    before = est.buffer_size
    est.ingest("dup")
    est.ingest("dup")
    assert abs(est.buffer_size - before) <= 1
    assert est.buffer.contains("dup") is second


def test_size_bound_and_probability_sequence():
    est = DistinctEstimator(64, source=RandomSource(seed=2024))
    seen = [est.probability]
    for i in range(20_000):
        est.ingest(i % 7_000)
        assert est.buffer_size <= est.capacity
        p = est.probability
        assert p <= seen[-1]
        seen.append(p)
    assert est.rounds > 0
    for p in set(seen):
        k = -math.log2(p)
        assert k == int(k)
    assert est.probability == 2.0 ** -est.rounds


def test_estimate_is_pure_read():
    est = DistinctEstimator(32, source=RandomSource(seed=9))
    est.ingest_all(range(500))
    first = est.estimate()
    assert est.estimate() == first
    assert est.elements_processed() == 500


def test_from_accuracy_uses_derived_capacity():
    est = DistinctEstimator.from_accuracy(0.1, 0.05, 10_000)
    assert est.capacity == capacity_for(0.1, 0.05, 10_000)


def test_from_accuracy_rejects_bad_targets():
    with pytest.raises(ConfigurationError):
        DistinctEstimator.from_accuracy(1.2, 0.05, 10)
    with pytest.raises(ConfigurationError):
        DistinctEstimator(0)


def test_precision_exhausted_poisons_instance(stub):
    # every element fills the one-slot buffer and is thinned away, halving p each call
    est = DistinctEstimator(1, source=stub(insert=True, keep=False))
    for i in range(1023):
        est.ingest(i)
    assert est.rounds == 1023
    assert est.probability > 0.0
    assert est.estimate() == 0.0
    with pytest.raises(PrecisionExhausted) as info:
        est.ingest("one-too-many")
    assert info.value.capacity == 1
    assert info.value.rounds == 1023
    with pytest.raises(PrecisionExhausted):
        est.estimate()
    with pytest.raises(ArithmeticError):
        est.ingest("again")


def test_unbiased_over_many_runs():
    distinct, runs = 1_000, 200
    stream = [i % distinct for i in range(2 * distinct)]
    total = 0.0
    for seed in range(runs):
        est = DistinctEstimator(128, source=RandomSource(seed=seed))
        est.ingest_all(stream)
        assert est.rounds > 0
        total += est.estimate()
    assert abs(total / runs - distinct) / distinct < 0.05


def test_snapshot_reports_state(stub):
    est = DistinctEstimator(4, source=stub(insert=True, keep=True))
    est.ingest_all("ABCD")
    snap = est.snapshot()
    assert snap.as_dict() == {
        "capacity": 4,
        "probability": 0.5,
        "rounds": 1,
        "buffer_size": 4,
        "elements_processed": 4,
        "estimate": 8.0,
    }


def test_synchronized_estimator_serialises_threads():
    shared = SynchronizedEstimator(DistinctEstimator(10_000, source=RandomSource(seed=1)))

    def feed(offset):
        for i in range(1_000):
            shared.ingest(offset + i)

    threads = [threading.Thread(target=feed, args=(k * 1_000,)) for k in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert shared.elements_processed() == 4_000
    assert shared.estimate() == 4_000
    assert shared.snapshot().rounds == 0


def test_overshoot_after_full_keep_is_not_thinned_again(stub):
    source = stub(insert=True, keep=True)
    est = DistinctEstimator(4, source=source)
    est.ingest_all("ABCDE")
    assert est.rounds == 1
    assert est.probability == 0.5
    assert est.buffer_size == 5
    assert est.estimate() == 10
    assert source.coin_flips == 4


def test_removal_back_to_exact_fill_thins(stub):
    est = DistinctEstimator(4, source=stub(insert=[True] * 5 + [False], keep=True))
    est.ingest_all("ABCDE")
    est.ingest("E")
    # the failed gate removes E, leaving exactly s elements after step 2
    assert est.rounds == 2
    assert est.probability == 0.25
    assert est.buffer_size == 4


def test_list_buffer_backend_scenario(stub):
    est = DistinctEstimator(4, source=stub(insert=True, keep=True), buffer=ListBuffer())
    est.ingest_all(["A", "B", "C", "D"])
    assert est.estimate() == 8
    assert est.buffer.elements() == ["A", "B", "C", "D"]


def test_list_buffer_matches_default_backend_under_same_seed():
    stream = [i % 300 for i in range(2_000)]
    default = DistinctEstimator(32, source=RandomSource(seed=17)).ingest_all(stream)
    listed = DistinctEstimator(32, source=RandomSource(seed=17), buffer=ListBuffer()).ingest_all(stream)
    assert listed.rounds == default.rounds > 0
    assert listed.estimate() == default.estimate()
    assert listed.buffer.elements() == default.buffer.elements()


def test_list_buffer_counts_unhashable_elements(stub):
    est = DistinctEstimator.from_accuracy(0.5, 0.5, 10, source=stub(insert=True), buffer=ListBuffer())
    est.ingest_all([[1, 2], [3], [1, 2]])
    assert est.estimate() == 2


def test_supplied_buffer_must_be_empty():
    buf = SampleBuffer(8)
    buf.insert("stale")
    with pytest.raises(ConfigurationError, match="empty"):
        DistinctEstimator(8, buffer=buf)
