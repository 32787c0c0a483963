"""
Ballot encoding for homomorphic tallies.

Every candidate owns one digit of a number written in base ``voters + 1``:
a vote for candidate ``i`` (1-based) is ``(voters + 1) ** (i - 1)``. No digit
can overflow because a digit never exceeds ``voters``, so summing encrypted
ballots and decrypting once yields every count.
"""

import logging
from typing import List, Optional

from paillier_tally.crypto.paillier import (
    MIN_PRIME_BITS,
    Observer,
    PrivateKey,
    PublicKey,
    generate_keypair,
)

logger = logging.getLogger(__name__)


def _check_counts(candidates: int, voters: int) -> None:
    if candidates < 1:
        raise ValueError("at least one candidate is required")
    if voters < 1:
        raise ValueError("at least one voter is required")


def key_bits_for(candidates: int, voters: int) -> int:
    """Prime size large enough for n to hold every candidate's digit."""
    _check_counts(candidates, voters)
    return max(candidates * (voters + 1).bit_length(), MIN_PRIME_BITS)


def encode_ballot(candidate: int, candidates: int, voters: int) -> int:
    _check_counts(candidates, voters)
    if not 1 <= candidate <= candidates:
        raise ValueError(f"candidate must be between 1 and {candidates}")
    return (voters + 1) ** (candidate - 1)


def decode_tally(total: int, candidates: int, voters: int) -> List[int]:
    _check_counts(candidates, voters)
    counts = []
    for _ in range(candidates):
        total, votes = divmod(total, voters + 1)
        counts.append(votes)
    return counts


class Tally:
    """Running encrypted tally for one election.

    Holds the key pair; ballots are encrypted with the public key and folded
    into the accumulator, which only ever leaves encrypted until ``results``.
    """

    def __init__(
        self,
        candidates: int,
        voters: int,
        *,
        min_key_bits: int = MIN_PRIME_BITS,
        private_key: Optional[PrivateKey] = None,
        rng=None,
        observer: Optional[Observer] = None,
    ):
        self.candidates = candidates
        self.voters = voters
        self.key_bits = max(key_bits_for(candidates, voters), min_key_bits)
        self._rng = rng
        if private_key is None:
            logger.info("generating %d-bit primes for %d candidates", self.key_bits, candidates)
            private_key, public_key = generate_keypair(self.key_bits, rng=rng, observer=observer)
        else:
            public_key = private_key.public_key()
        if public_key.n <= (voters + 1) ** candidates - 1:
            raise ValueError("key modulus too small for this election")
        self._private_key = private_key
        self.public_key: PublicKey = public_key
        self.ballots_cast = 0
        self.accumulator = public_key.encrypt(0, rng=rng)

    @property
    def is_closed(self) -> bool:
        return self.ballots_cast >= self.voters

    def encrypt_ballot(self, candidate: int) -> int:
        ballot = encode_ballot(candidate, self.candidates, self.voters)
        return self.public_key.encrypt(ballot, rng=self._rng)

    def submit(self, ciphertext: int) -> int:
        """Fold an already encrypted ballot into the accumulator."""
        if self.is_closed:
            raise ValueError("all ballots have already been cast")
        self.accumulator = self.public_key.add(self.accumulator, ciphertext)
        self.ballots_cast += 1
        return self.ballots_cast

    def cast(self, candidate: int) -> int:
        return self.submit(self.encrypt_ballot(candidate))

    def results(self, accumulator: Optional[int] = None) -> List[int]:
        """Per-candidate counts, from the current accumulator unless one is given."""
        if accumulator is None:
            accumulator = self.accumulator
        total = self._private_key.decrypt(accumulator)
        return decode_tally(total, self.candidates, self.voters)
