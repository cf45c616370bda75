import numpy as np

from dtree_python._utils import (
    RAND_R_MAX, make_seed, new_rand_r_state, our_rand_r, rand_int, rand_uniform
)


def test_rand_r_state_is_seeded_from_random_state():
    state = new_rand_r_state(0)
    assert state.dtype == np.uint32
    assert state.shape == (1,)
    assert state[0] == new_rand_r_state(0)[0]
    assert make_seed(np.random.RandomState(3)) == make_seed(3)


def test_our_rand_r_is_deterministic():
    a = np.array([42], dtype=np.uint32)
    b = np.array([42], dtype=np.uint32)
    assert [our_rand_r(a) for _ in range(20)] == [our_rand_r(b) for _ in range(20)]
    assert a[0] == b[0]


def test_zero_state_does_not_stick():
    state = np.array([0], dtype=np.uint32)
    values = [our_rand_r(state) for _ in range(5)]
    assert state[0] != 0
    assert len(set(values)) == 5
    assert all(0 <= v <= RAND_R_MAX for v in values)


def test_rand_int_range():
    state = np.array([7], dtype=np.uint32)
    draws = [rand_int(3, 7, state) for _ in range(1000)]
    assert set(draws) == {3, 4, 5, 6}


def test_rand_int_empty_range_returns_low():
    state = np.array([7], dtype=np.uint32)
    assert rand_int(4, 4, state) == 4
    # No draw consumed
    assert state[0] == 7


def test_rand_uniform_bounds():
    state = np.array([11], dtype=np.uint32)
    draws = np.array([rand_uniform(2.0, 5.0, state) for _ in range(1000)])
    assert draws.min() >= 2.0
    assert draws.max() <= 5.0
    assert rand_uniform(1.5, 1.5, state) == 1.5
