# _utils.py
# Authors: The scikit-learn developers
# SPDX-License-Identifier: BSD-3-Clause

import numpy as np
from sklearn.utils import check_random_state

# =============================================================================
# Helper functions
# =============================================================================

DEFAULT_SEED = 1

# rand_r replacement; 31 bits of output
RAND_R_MAX = 2**31 - 1

_UINT32_MASK = 0xFFFFFFFF


def make_seed(random_state):
    """Draw the splitter seed from an int, None or numpy RandomState."""
    return check_random_state(random_state).randint(0, RAND_R_MAX)


def new_rand_r_state(random_state):
    """Return the one-element uint32 state consumed by our_rand_r."""
    return np.array([make_seed(random_state)], dtype=np.uint32)


def our_rand_r(state):
    """Generate a pseudo-random int in [0; RAND_R_MAX] with xorshift32.

    ``state`` is a one-element uint32 array that is updated in place, so the
    caller owns its generator and no global seed is touched.
    """
    seed = int(state[0])

    # seed shouldn't ever be 0, xorshift would stay there forever
    if seed == 0:
        seed = DEFAULT_SEED

    seed ^= (seed << 13) & _UINT32_MASK
    seed ^= seed >> 17
    seed ^= (seed << 5) & _UINT32_MASK

    state[0] = seed
    return seed % (RAND_R_MAX + 1)


def rand_int(low, high, random_state_ptr):
    """Generate a random integer in [low; high)."""
    if high <= low:
        return low
    return low + our_rand_r(random_state_ptr) % (high - low)


def rand_uniform(low, high, random_state_ptr):
    """Generate a random float64 in [low; high].

    The upper bound is reached only when the generator returns RAND_R_MAX;
    callers that need an open interval check for it.
    """
    low = float(low)
    high = float(high)
    if high == low:
        return low
    return ((high - low) * our_rand_r(random_state_ptr) / RAND_R_MAX) + low
