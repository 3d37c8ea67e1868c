import numpy as np
import pytest

from numpy.testing import assert_allclose, assert_array_equal

from online_moments import InvalidArgumentError, MomentAccumulator, ShapeMismatchError, combine



RTOL = 1e-9


def accumulate(samples: np.ndarray, order: int = 2, dtype=np.float64) -> MomentAccumulator:
    acc = MomentAccumulator(samples.shape[1:], order=order, dtype=dtype)
    for x in samples:
        acc.push(x)
    return acc


def assert_same_state(a: MomentAccumulator, b: MomentAccumulator) -> None:
    assert a.nobs == b.nobs
    for x, y in zip(a.moments, b.moments):
        assert_array_equal(x, y)


def assert_close_state(a: MomentAccumulator, b: MomentAccumulator) -> None:
    assert a.nobs == b.nobs
    for x, y in zip(a.moments, b.moments):
        assert_allclose(x, y, rtol=RTOL)


def test_merge_two_parts(samples):
    reference = accumulate(samples)

    a = accumulate(samples[:6])
    b = accumulate(samples[6:])
    assert a.merge(b) is a

    assert_close_state(a, reference)
    assert_allclose(a.variance(corrected=False), samples.var(axis=0), rtol=RTOL)
    assert_allclose(a.std(), samples.std(axis=0, ddof=1), rtol=RTOL)


def test_merge_leaves_operand_unchanged(samples):
    a = accumulate(samples[:6])
    b = accumulate(samples[6:])
    before = b.copy()

    a.merge(b)
    assert_same_state(b, before)


def test_merge_interleaved_parts(samples):
    # Collect by parts: first and last thirds in one, middle in the other.
    n1 = len(samples) // 3
    n2 = len(samples) // 2
    b = accumulate(np.concatenate([samples[:n1], samples[n1 + n2:]]))
    c = accumulate(samples[n1:n1 + n2])

    b.merge(c)
    assert_close_state(b, accumulate(samples))


@pytest.mark.parametrize('cuts', [(3, 9), (1, 16), (8, 10), (2, 3)])
def test_merge_associativity_and_commutativity(samples, cuts):
    i, j = cuts
    reference = accumulate(samples)
    parts = [samples[:i], samples[i:j], samples[j:]]

    left = accumulate(parts[0]).merge(accumulate(parts[1])).merge(accumulate(parts[2]))
    right = accumulate(parts[2]).merge(accumulate(parts[1]).merge(accumulate(parts[0])))
    middle = accumulate(parts[1]).merge(accumulate(parts[2])).merge(accumulate(parts[0]))

    for acc in (left, right, middle):
        assert acc.nobs == len(samples)
        assert_allclose(acc.mean(), reference.mean(), rtol=RTOL)
        assert_allclose(acc.variance(), reference.variance(), rtol=RTOL)


def test_merge_unbalanced_counts(rng):
    big = rng.normal(5.0, 3.0, size=(5000, 4))
    small = rng.normal(-5.0, 0.5, size=(3, 4))

    acc = accumulate(big).merge(accumulate(small))
    all_samples = np.concatenate([big, small])
    assert_allclose(acc.mean(), all_samples.mean(axis=0), rtol=RTOL)
    assert_allclose(acc.variance(), all_samples.var(axis=0, ddof=1), rtol=RTOL)


def test_merge_empty_into_accumulator(samples):
    a = accumulate(samples)
    before = a.copy()

    a.merge(MomentAccumulator(samples.shape[1:]))
    assert_same_state(a, before)


def test_merge_into_empty_accumulator(samples):
    a = accumulate(samples)
    b = MomentAccumulator(samples.shape[1:])

    b.merge(a)
    assert_same_state(b, a)


def test_merge_two_empty_accumulators(dims):
    a = MomentAccumulator(dims)
    a.merge(MomentAccumulator(dims))

    assert a.nobs == 0
    for arr in a.moments:
        assert not arr.any()


def test_merge_single_sample_equals_push(samples):
    a = accumulate(samples[:5])
    b = a.copy()

    single = accumulate(samples[5:6])
    a.merge(single)
    b.push(single.mean())

    assert_same_state(a, b)


def test_merge_single_sample_accumulators(samples):
    a = MomentAccumulator(samples.shape[1:])
    b = MomentAccumulator(samples.shape[1:])
    c = MomentAccumulator(samples.shape[1:])

    for x in samples[:5]:
        a.push(x)
        b.merge(c.clear().push(x))

    assert_same_state(a, b)


def test_merge_into_itself(samples):
    a = accumulate(samples)
    mean = a.mean().copy()
    m2 = a.storage(2).copy()

    a.merge(a)
    assert a.nobs == 2 * len(samples)
    assert_allclose(a.mean(), mean, rtol=RTOL)
    assert_allclose(a.storage(2), 2 * m2, rtol=RTOL)


def test_merge_shape_mismatch(samples):
    a = accumulate(samples)
    b = accumulate(samples[:, :, :2])
    a_before, b_before = a.copy(), b.copy()

    with pytest.raises(ShapeMismatchError):
        a.merge(b)
    with pytest.raises(ShapeMismatchError):
        b.merge(a)
    with pytest.raises(ShapeMismatchError):
        a.merge(accumulate(samples, order=1))

    assert_same_state(a, a_before)
    assert_same_state(b, b_before)


def test_merge_requires_accumulator(samples):
    a = accumulate(samples)
    with pytest.raises(InvalidArgumentError):
        a.merge(list(samples))


def test_merge_mean_only(samples):
    a = accumulate(samples[:6], order=1)
    b = accumulate(samples[6:], order=1)

    a.merge(b)
    assert a.order == 1
    assert a.nobs == len(samples)
    assert_allclose(a.mean(), samples.mean(axis=0), rtol=RTOL)


def test_merge_precision_of_destination(samples):
    a = accumulate(samples[:8], dtype=np.float64)
    b = accumulate(samples[8:], dtype=np.float32)

    a.merge(b)
    assert a.dtype == np.float64
    assert a.variance().dtype == np.float64
    assert_allclose(a.mean(), samples.mean(axis=0), rtol=1e-5)
    assert_allclose(a.variance(), samples.var(axis=0, ddof=1), rtol=1e-4)

    c = accumulate(samples[:8], dtype=np.float32)
    c.merge(accumulate(samples[8:]))
    assert c.dtype == np.float32


def test_combine(samples):
    parts = [accumulate(samples[i:i + 4]) for i in range(0, len(samples), 4)]
    counts = [p.nobs for p in parts]

    merged = combine(parts)
    assert_close_state(merged, accumulate(samples))
    assert merged is not parts[0]
    assert [p.nobs for p in parts] == counts

    merged = combine(reversed(parts))
    assert_allclose(merged.variance(), samples.var(axis=0, ddof=1), rtol=RTOL)


def test_combine_invalid(samples):
    with pytest.raises(InvalidArgumentError):
        combine([])
    with pytest.raises(InvalidArgumentError):
        combine([samples[0]])
    with pytest.raises(ShapeMismatchError):
        combine([accumulate(samples), accumulate(samples[:, :1])])
