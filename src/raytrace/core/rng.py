"""Explicit per-sample random number streams.

Every sampling routine in the renderer takes a ``u32`` RNG state and returns
the advanced state alongside its result. Nothing reads ``ti.random``, so a
render is fully determined by the seed and independent of how Taichi
schedules pixels across threads.

The generator is the PCG-RXS-M-XS hash applied as a state update. Streams are
seeded by hashing the pixel index, the sample index and the user seed.

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     rng = init_rng(0, 0, 42)
    ...     u, rng = rand_f32(rng)
    ...     return u
"""

import taichi as ti

# 2^24, the float32 mantissa range used for uniform floats in [0, 1)
_FLOAT_SCALE = 16777216.0


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """One round of the PCG-RXS-M-XS permutation on a 32-bit word."""
    state = value * ti.u32(747796405) + ti.u32(1442695041)
    shift = ti.bit_shr(state, ti.u32(28)) + ti.u32(4)
    word = (ti.bit_shr(state, shift) ^ state) * ti.u32(277803737)
    return ti.bit_shr(word, ti.u32(22)) ^ word


@ti.func
def init_rng(pixel_index: ti.i32, sample_index: ti.i32, seed: ti.i32) -> ti.u32:
    """Derive an independent stream for one (pixel, sample) pair.

    Args:
        pixel_index: Flattened pixel index.
        sample_index: Index of the sample within the pixel.
        seed: Render seed.

    Returns:
        The initial RNG state.
    """
    state = pcg_hash(ti.cast(seed, ti.u32))
    state = pcg_hash(state ^ ti.cast(sample_index, ti.u32))
    state = pcg_hash(state ^ ti.cast(pixel_index, ti.u32))
    return state


@ti.func
def rand_f32(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Returns:
        A tuple of (value, new_state).
    """
    new_state = pcg_hash(state)
    value = ti.cast(ti.bit_shr(new_state, ti.u32(8)), ti.f32) / _FLOAT_SCALE
    return value, new_state


@ti.func
def rand_range(state: ti.u32, low: ti.f32, high: ti.f32):
    """Draw a uniform float in [low, high).

    Returns:
        A tuple of (value, new_state).
    """
    u, new_state = rand_f32(state)
    return low + (high - low) * u, new_state
