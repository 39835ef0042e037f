"""
Python implementation of the xoshiro256** PRNG.

Every random draw in planet generation comes from one of these generators,
seeded through py_planetgen.utils.random. Only integer arithmetic is used
for the state update, so streams are identical across platforms.
"""

import math

MASK_64 = 0xFFFFFFFFFFFFFFFF


def _uint64(n):
    """Convert to unsigned 64-bit integer."""
    return int(n) & MASK_64


def _rotl(x, k):
    return _uint64((x << k) | (x >> (64 - k)))


class XoshiroPRNG:
    """
    xoshiro256** generator over four 64-bit state words.

    The state must not be all zero; seeds produced by expand_seed never are.
    """

    def __init__(self, state):
        words = [_uint64(w) for w in state]
        if len(words) != 4:
            raise ValueError(f"xoshiro256** needs 4 state words, got {len(words)}")
        if not any(words):
            raise ValueError("xoshiro256** state must not be all zero")
        self.s = words
        self.call_count = 0

    def next_u64(self):
        """Advance the state and return the next 64-bit output."""
        self.call_count += 1
        s = self.s
        result = _uint64(_rotl(_uint64(s[1] * 5), 7) * 9)
        t = _uint64(s[1] << 17)

        s[2] ^= s[0]
        s[3] ^= s[1]
        s[1] ^= s[2]
        s[0] ^= s[3]
        s[2] ^= t
        s[3] = _rotl(s[3], 45)

        return result

    def random(self):
        """Generate next random number in [0, 1)."""
        return (self.next_u64() >> 11) * (1.0 / (1 << 53))

    def uniform(self, low, high):
        """Random float in [low, high)."""
        return low + (high - low) * self.random()

    def randrange(self, n):
        """Random integer in [0, n) without modulo bias."""
        if n <= 0:
            raise ValueError("randrange() needs a positive bound")
        bits = n.bit_length()
        while True:
            candidate = self.next_u64() >> (64 - bits) if bits < 64 else self.next_u64()
            if candidate < n:
                return candidate

    def random_bool(self, probability):
        """True with the given probability."""
        return self.random() < probability

    def choice(self, seq):
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.randrange(len(seq))]

    def shuffle(self, items):
        """Shuffle a list in place (Fisher-Yates)."""
        for i in range(len(items) - 1, 0, -1):
            j = self.randrange(i + 1)
            items[i], items[j] = items[j], items[i]

    def unit_vector(self):
        """Uniformly distributed direction on the unit sphere."""
        z = self.uniform(-1.0, 1.0)
        phi = self.uniform(0.0, 2.0 * math.pi)
        r = math.sqrt(max(0.0, 1.0 - z * z))
        return (r * math.cos(phi), r * math.sin(phi), z)
