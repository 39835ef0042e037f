"""
Random number generation utilities.

Each subsystem gets its own generator derived from the master seed and a
domain label such as "plates/noise/3". Python's random and NumPy's random
are not used for generation so a planet is byte-reproducible from its seed.
"""

from typing import Tuple

from .xoshiro_prng import MASK_64, XoshiroPRNG

FNV_OFFSET = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3

SPLITMIX_GAMMA = 0x9E3779B97F4A7C15
SPLITMIX_MUL_1 = 0xBF58476D1CE4E5B9
SPLITMIX_MUL_2 = 0x94D049BB133111EB


def mix_domain(seed: int, domain: str) -> int:
    """
    Hash the master seed and a domain label into one 64-bit value.

    The seed's little-endian bytes are fed first, then the UTF-8 label,
    through FNV-1a style multiply/xor steps.
    """
    h = FNV_OFFSET
    data = (seed & MASK_64).to_bytes(8, "little") + domain.encode("utf-8")
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & MASK_64
    return h


def splitmix64(state: int) -> Tuple[int, int]:
    """
    One splitmix64 step.

    Returns:
        Tuple of (next_state, output)
    """
    state = (state + SPLITMIX_GAMMA) & MASK_64
    z = state
    z = ((z ^ (z >> 30)) * SPLITMIX_MUL_1) & MASK_64
    z = ((z ^ (z >> 27)) * SPLITMIX_MUL_2) & MASK_64
    return state, z ^ (z >> 31)


def expand_seed(value: int, words: int = 4) -> Tuple[int, ...]:
    """Expand a 64-bit value into several 64-bit seed words."""
    state = value & MASK_64
    out = []
    for _ in range(words):
        state, word = splitmix64(state)
        out.append(word)
    return tuple(out)


def domain_rng(seed: int, domain: str) -> XoshiroPRNG:
    """
    Get a generator for one domain of the planet.

    Args:
        seed: Master planet seed
        domain: Domain label, e.g. "plates/direction/0"

    Returns:
        Freshly seeded XoshiroPRNG
    """
    return XoshiroPRNG(expand_seed(mix_domain(seed, domain)))


def derive_seed(seed: int, domain: str) -> int:
    """Derive a non-negative 63-bit seed for noise generators."""
    return expand_seed(mix_domain(seed, domain), words=1)[0] >> 1
