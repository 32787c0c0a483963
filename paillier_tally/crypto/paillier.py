"""
Paillier cryptosystem with g = n + 1.

Keys are frozen dataclasses; every operation is a pure function of its
arguments and the key. Randomness is passed in per call (anything with the
``random.Random`` interface, ``secrets.SystemRandom()`` by default) and
notable events go to an optional observer instead of being logged here.
"""

import logging
import math
import secrets
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

Observer = Callable[[str, dict], None]

MIN_PRIME_BITS = 3
MILLER_RABIN_ROUNDS = 16
_SMALL_PRIMES = [2, 3, 5, 7, 11, 13, 17, 19, 23, 29]


class PaillierError(ValueError):
    """Base class for rejected Paillier inputs."""


class PlaintextOutOfRange(PaillierError):
    pass


class InvalidCiphertext(PaillierError):
    pass


def _default_rng():
    return secrets.SystemRandom()


def _notify(observer: Optional[Observer], event: str, **fields) -> None:
    if observer is not None:
        observer(event, fields)


def logging_observer(logger: Optional[logging.Logger] = None) -> Observer:
    """Return an observer that writes every event as a debug record."""
    if logger is None:
        logger = logging.getLogger(__name__)

    def observe(event: str, fields: dict) -> None:
        logger.debug("paillier %s %s", event, fields)

    return observe


# ── Prime sampling ──────────────────────────────────
def _is_probable_prime(n: int, rounds: int = MILLER_RABIN_ROUNDS, rng=None) -> bool:
    if n < 2:
        return False
    if n in _SMALL_PRIMES:
        return True
    if any((n % p) == 0 for p in _SMALL_PRIMES):
        return False
    if rng is None:
        rng = _default_rng()

    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for _ in range(rounds):
        a = rng.randrange(2, n - 1)
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def _generate_prime(bits: int, rng=None) -> int:
    """Random prime with exactly ``bits`` bits (top bit set)."""
    if bits < MIN_PRIME_BITS:
        raise ValueError(f"prime size must be at least {MIN_PRIME_BITS} bits")
    if rng is None:
        rng = _default_rng()
    while True:
        candidate = rng.getrandbits(bits) | 1 | (1 << (bits - 1))
        if _is_probable_prime(candidate, rng=rng):
            return candidate


# ── Keys ────────────────────────────────────────────
@dataclass(frozen=True)
class PublicKey:
    n: int
    n_sq: int
    observer: Optional[Observer] = field(default=None, compare=False, repr=False)

    @property
    def g(self) -> int:
        return self.n + 1

    def is_valid_ciphertext(self, c: int) -> bool:
        """A ciphertext is well-formed when it is a unit of Z/n²Z."""
        return isinstance(c, int) and 0 <= c < self.n_sq and math.gcd(c, self.n_sq) == 1

    def _check_ciphertext(self, c: int) -> None:
        if not self.is_valid_ciphertext(c):
            _notify(self.observer, "ciphertext_rejected", n_bits=self.n.bit_length())
            raise InvalidCiphertext("ciphertext is not a unit modulo n^2")

    def _check_plaintext(self, m: int) -> None:
        if not isinstance(m, int) or not 0 <= m < self.n:
            raise PlaintextOutOfRange("plaintext must satisfy 0 <= m < n")

    def encrypt(self, m: int, rng=None) -> int:
        self._check_plaintext(m)
        if rng is None:
            rng = _default_rng()
        # r must be a unit mod n, otherwise the ciphertext cannot be decrypted
        while True:
            r = rng.randrange(1, self.n)
            if math.gcd(r, self.n) == 1:
                break
        r_pow_n = pow(r, self.n, self.n_sq)
        # (1 + n)^m = 1 + n*m (mod n^2)
        g_pow_m = (self.n * m + 1) % self.n_sq
        c = (g_pow_m * r_pow_n) % self.n_sq
        _notify(self.observer, "encrypted", n_bits=self.n.bit_length())
        return c

    def add(self, c1: int, c2: int) -> int:
        """Ciphertext of the sum of both plaintexts, modulo n."""
        self._check_ciphertext(c1)
        self._check_ciphertext(c2)
        res = (c1 * c2) % self.n_sq
        _notify(self.observer, "added", n_bits=self.n.bit_length())
        return res

    def add_plain(self, c: int, m: int) -> int:
        """Ciphertext of D(c) + m without drawing fresh randomness."""
        self._check_ciphertext(c)
        self._check_plaintext(m)
        res = (c * (self.n * m + 1)) % self.n_sq
        _notify(self.observer, "added", n_bits=self.n.bit_length())
        return res

    def scale(self, c: int, k: int) -> int:
        """Ciphertext of D(c) * k, modulo n.

        Any integer scalar is accepted. Negative values go through the
        inverse of ``c``, which exists because ``c`` is checked to be a unit.
        """
        self._check_ciphertext(c)
        if not isinstance(k, int):
            raise TypeError("scalar must be an int")
        res = pow(c, k, self.n_sq)
        _notify(self.observer, "scaled", n_bits=self.n.bit_length())
        return res


@dataclass(frozen=True)
class PrivateKey:
    n: int
    n_sq: int
    lam: int
    mu: int
    observer: Optional[Observer] = field(default=None, compare=False, repr=False)

    def __repr__(self) -> str:
        return f"PrivateKey(n_bits={self.n.bit_length()})"

    @classmethod
    def from_primes(cls, p: int, q: int, observer: Optional[Observer] = None) -> "PrivateKey":
        """Build a key from two known primes. Mostly useful for toy keys."""
        if p == q:
            raise ValueError("p and q must be distinct")
        if not (_is_probable_prime(p) and _is_probable_prime(q)):
            raise ValueError("p and q must both be prime")
        n = p * q
        lam = n + 1 - p - q
        if math.gcd(lam, n) != 1:
            raise ValueError("(p-1)(q-1) is not invertible modulo n")
        return cls(n=n, n_sq=n * n, lam=lam, mu=pow(lam, -1, n), observer=observer)

    def public_key(self) -> PublicKey:
        return PublicKey(n=self.n, n_sq=self.n_sq, observer=self.observer)

    def decrypt(self, c: int) -> int:
        if not isinstance(c, int) or not 0 <= c < self.n_sq or math.gcd(c, self.n_sq) != 1:
            _notify(self.observer, "ciphertext_rejected", n_bits=self.n.bit_length())
            raise InvalidCiphertext("ciphertext is not a unit modulo n^2")
        u = pow(c, self.lam, self.n_sq)
        l_val, rem = divmod(u - 1, self.n)
        if rem != 0:
            _notify(self.observer, "ciphertext_rejected", n_bits=self.n.bit_length())
            raise InvalidCiphertext("ciphertext was not produced under this key")
        m = (l_val * self.mu) % self.n
        _notify(self.observer, "decrypted", n_bits=self.n.bit_length())
        return m


# ── Key generation ──────────────────────────────────
def generate_private_key(bits: int, rng=None, observer: Optional[Observer] = None) -> PrivateKey:
    """Draw primes of ``bits`` bits each until they form a usable key.

    Equal primes and a (p-1)(q-1) that shares a factor with n are both
    discarded silently, so this never fails once ``bits`` is valid. There
    is no attempt limit; run it on a worker thread if latency matters.
    """
    if bits < MIN_PRIME_BITS:
        raise ValueError(f"key size must be at least {MIN_PRIME_BITS} bits per prime")
    if rng is None:
        rng = _default_rng()

    attempts = 0
    while True:
        attempts += 1
        p = _generate_prime(bits, rng)
        q = _generate_prime(bits, rng)
        if p == q:
            continue
        n = p * q
        lam = n + 1 - p - q
        if math.gcd(lam, n) != 1:
            continue
        mu = pow(lam, -1, n)
        _notify(observer, "key_generated", bits=bits, attempts=attempts)
        return PrivateKey(n=n, n_sq=n * n, lam=lam, mu=mu, observer=observer)


def generate_keypair(bits: int = 256, rng=None, observer: Optional[Observer] = None) -> Tuple[PrivateKey, PublicKey]:
    priv = generate_private_key(bits, rng=rng, observer=observer)
    return priv, priv.public_key()
