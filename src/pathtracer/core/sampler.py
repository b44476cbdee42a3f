"""Per-task random number streams for Monte Carlo sampling.

Every parallel render task owns one slot of ``_stream_state`` and never reads
or writes another task's slot, so streams need no locking and are never
shared. A slot is seeded by hashing ``(seed, row, column)``; the sequence of
draws a pixel sees therefore depends only on the seed and its coordinates,
never on which CPU thread happened to execute it. This is what makes a render
bit-for-bit reproducible.

Streams use a 32-bit xorshift generator seeded through a Wang hash.

Example:
    >>> @ti.kernel
    ... def draw() -> real:
    ...     seed_stream(0, ti.u32(7), 0, 0)
    ...     return random_real(0)
"""

import taichi as ti

from pathtracer.core.ray import length_squared, normalize, real, vec3

# One slot per concurrently running task (the render driver uses one per column)
MAX_STREAMS = 4096

# Rejection sampling attempts before giving up and returning the origin
MAX_REJECTION_ATTEMPTS = 64

_stream_state = ti.field(dtype=ti.u32, shape=MAX_STREAMS)


# =============================================================================
# Stream State
# =============================================================================


@ti.func
def hash_u32(x: ti.u32) -> ti.u32:
    """Wang hash: scramble a 32-bit integer."""
    h = (x ^ ti.u32(61)) ^ (x >> ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ (h >> ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> ti.u32(15))
    return h


@ti.func
def seed_stream(stream: ti.i32, seed: ti.u32, row: ti.i32, column: ti.i32):
    """Seed one stream slot from a global seed and a pixel coordinate.

    The coordinate is packed into one key, ``row * MAX_STREAMS + column``.
    Every step of the Wang hash is invertible, so for a fixed seed distinct
    keys hash to distinct values while row < 2**20.

    Args:
        stream: The slot to seed.
        seed: The render-wide seed.
        row: Pixel row (or any first task coordinate).
        column: Pixel column in [0, MAX_STREAMS) (or any second task coordinate).
    """
    key = ti.cast(row, ti.u32) * ti.u32(MAX_STREAMS) + ti.cast(column, ti.u32)
    h = hash_u32(seed ^ hash_u32(key))
    # xorshift has a fixed point at zero
    if h == ti.u32(0):
        h = ti.u32(1)
    _stream_state[stream] = h


@ti.func
def random_real(stream: ti.i32) -> real:
    """Draw a uniform real in [0, 1) from a stream, advancing its state."""
    x = _stream_state[stream]
    x = x ^ (x << ti.u32(13))
    x = x ^ (x >> ti.u32(17))
    x = x ^ (x << ti.u32(5))
    _stream_state[stream] = x
    # Top 24 bits map exactly onto [0, 1)
    return ti.cast(x >> ti.u32(8), real) / 16777216.0


@ti.func
def random_range(stream: ti.i32, lo: real, hi: real) -> real:
    """Draw a uniform real in [lo, hi)."""
    return lo + (hi - lo) * random_real(stream)


@ti.kernel
def _seed_all_streams(seed: ti.u32):
    for i in range(MAX_STREAMS):
        seed_stream(i, seed, 0, i)


def reset_streams(seed: int) -> None:
    """Seed every stream slot from ``seed`` (host-side convenience).

    Args:
        seed: Any non-negative integer; reduced modulo 2**32.
    """
    _seed_all_streams(seed % (1 << 32))


# =============================================================================
# Random Sampling Utilities
# =============================================================================


@ti.func
def random_in_unit_sphere(stream: ti.i32) -> vec3:
    """Uniform random point strictly inside the unit sphere (rejection)."""
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            p = vec3(
                random_range(stream, -1.0, 1.0),
                random_range(stream, -1.0, 1.0),
                random_range(stream, -1.0, 1.0),
            )
            if length_squared(p) < 1.0:
                found = True
    if not found:
        p = vec3(0.0, 0.0, 0.0)
    return p


@ti.func
def random_unit_vector(stream: ti.i32) -> vec3:
    """Random unit vector: a normalized sample from the unit sphere."""
    p = random_in_unit_sphere(stream)
    result = vec3(0.0, 1.0, 0.0)
    if length_squared(p) > 1e-16:
        result = normalize(p)
    return result


@ti.func
def random_in_unit_disk(stream: ti.i32) -> vec3:
    """Uniform random point ``(x, y, 0)`` inside the unit disk (lens sampling)."""
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            p = vec3(random_range(stream, -1.0, 1.0), random_range(stream, -1.0, 1.0), 0.0)
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    if not found:
        p = vec3(0.0, 0.0, 0.0)
    return p

