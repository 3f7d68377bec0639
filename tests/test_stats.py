import math

import numpy as np
import pytest
from hoeffpy.stats import MinMax, NumericSummary, entropy, normal_cdf


def _summary(values, weights=None):
    s = NumericSummary()
    weights = weights or [1.0] * len(values)
    for v, w in zip(values, weights):
        s.append(v, w)
    return s


def test_moments():
    s = _summary([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    assert s.total_weight == 8
    assert s.mean() == pytest.approx(5.0)
    assert s.variance() == pytest.approx(4.0)
    assert s.std_dev() == pytest.approx(2.0)
    assert s.sample_variance() == pytest.approx(32.0 / 7.0)
    assert s.std_dev() == math.sqrt(s.variance())


def test_non_finite_values_are_ignored():
    s = _summary([1.0, 3.0])
    before = (s.weight, s.sum, s.sum_squares)
    s.append(float("nan"))
    s.append(float("inf"))
    s.append(float("-inf"))
    assert (s.weight, s.sum, s.sum_squares) == before


def test_zero_weight_is_idempotent():
    s = _summary([1.0, 3.0, 8.0])
    derived = (s.mean(), s.variance(), s.sample_variance(), s.prob_density(2.0), s.estimate(2.0))
    s.append(100.0, 0.0)
    s.append(100.0, -1.0)
    assert (s.mean(), s.variance(), s.sample_variance(), s.prob_density(2.0), s.estimate(2.0)) == derived


def test_empty_summary_sentinels():
    s = NumericSummary()
    assert s.is_empty
    assert s.mean() == 0.0
    assert s.variance() == 0.0
    assert s.sample_variance() == 0.0
    assert s.prob_density(1.0) == 0.0
    assert s.estimate(1.0) == (0.0, 0.0, 0.0)


def test_sample_variance_zero_up_to_unit_weight():
    s = _summary([3.0, 7.0], [0.25, 0.75])
    assert s.total_weight == 1.0
    assert s.sample_variance() == 0.0
    assert s.variance() > 0


def test_weighted_append_matches_repetition():
    a = _summary([1.0, 2.0], [3.0, 1.0])
    b = _summary([1.0, 1.0, 1.0, 2.0])
    assert a == b


def test_density():
    s = _summary([1.3, 1.4, 1.5])
    # sample std-dev 0.1
    assert s.prob_density(1.4) == pytest.approx(1.0 / (math.sqrt(2 * math.pi) * 0.1))
    assert s.prob_density(1.7) == pytest.approx(0.0443, abs=1e-3)


def test_degenerate_density_is_a_spike():
    s = _summary([2.0, 2.0, 2.0])
    assert s.prob_density(2.0) == 1.0
    assert s.prob_density(2.1) == 0.0


@pytest.mark.parametrize("value", [-10.0, 0.0, 1.0, 2.5, 3.7, 4.0, 9.0, 100.0])
def test_estimate_partitions_total_weight(value):
    s = _summary([1.0, 2.0, 3.5, 4.0, 6.0], [1.0, 2.0, 0.5, 1.5, 1.0])
    lt, eq, gt = s.estimate(value)
    assert gt >= 0
    assert lt + eq + gt == pytest.approx(s.total_weight)


def test_estimate_without_spread():
    s = _summary([5.0, 5.0])
    assert s.estimate(4.0) == (0.0, 0.0, 2.0)
    assert s.estimate(5.0) == (0.0, 2.0, 0.0)
    assert s.estimate(6.0) == (2.0, 0.0, 0.0)


def test_merge_and_copy():
    a = _summary([1.0, 2.0])
    b = _summary([3.0])
    c = a.copy()
    c.merge(b)
    assert c == _summary([1.0, 2.0, 3.0])
    assert a == _summary([1.0, 2.0])


def test_normal_cdf():
    assert normal_cdf(0.0) == pytest.approx(0.5)
    assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-3)
    assert normal_cdf(-1.96) == pytest.approx(0.025, abs=1e-3)


def test_entropy():
    assert entropy(np.array([9.0, 5.0])) == pytest.approx(0.9403, abs=1e-4)
    assert entropy(np.array([4.0, 0.0])) == 0.0
    assert entropy(np.zeros(3)) == 0.0


def test_min_max_split_points():
    mm = MinMax()
    for v in [1.4, 1.3, 1.5, 4.1, 6.3, 5.1, float("nan")]:
        mm.update(v)
    assert (mm.min, mm.max) == (1.3, 6.3)
    assert mm.split_points(4) == pytest.approx([2.3, 3.3, 4.3, 5.3])


def test_min_max_needs_a_range():
    mm = MinMax()
    assert mm.split_points(3) == []
    mm.update(2.0)
    mm.update(2.0)
    assert mm.split_points(3) == []
