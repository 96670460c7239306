import numpy as np
import pytest

from edgwas.exceptions import InvalidArgument
from edgwas.folds import fold_sizes, make_folds


@pytest.mark.parametrize("N, k", [(3, 3), (10, 3), (11, 4), (100, 10), (997, 7)])
def test_fold_sizes_differ_by_at_most_one(N, k):
    foldid = make_folds(N, k, random_state=N + k)
    assert foldid.shape == (N,)
    assert set(np.unique(foldid)) <= set(range(1, k + 1))
    sizes = fold_sizes(foldid, k)
    assert sizes.sum() == N
    assert sizes.max() - sizes.min() <= 1


def test_same_seed_same_partition():
    a = make_folds(50, 5, random_state=7)
    b = make_folds(50, 5, random_state=7)
    c = make_folds(50, 5, random_state=8)
    assert np.array_equal(a, b)
    assert not np.array_equal(a, c)


def test_partition_is_a_permutation_of_the_cycle():
    foldid = make_folds(23, 5, random_state=0)
    expected = np.sort(np.resize(np.arange(1, 6), 23))
    assert np.array_equal(np.sort(foldid), expected)


@pytest.mark.parametrize("k", [0, 1, 2])
def test_too_few_folds(k):
    with pytest.raises(InvalidArgument, match="at least 3"):
        make_folds(30, k)


def test_more_folds_than_observations():
    with pytest.raises(InvalidArgument, match="exceeds"):
        make_folds(4, 5)


def test_non_integer_folds():
    with pytest.raises(InvalidArgument):
        make_folds(30, 3.5)
