import pytest

from paillier_tally.crypto.paillier import InvalidCiphertext, PrivateKey
from paillier_tally.tally import Tally, decode_tally, encode_ballot, key_bits_for


@pytest.mark.anyio
async def test_key_bits_scale_with_candidates_and_voters():
    assert key_bits_for(3, 5) == 9
    assert key_bits_for(4, 255) == 36
    assert key_bits_for(1, 1) == 3


@pytest.mark.anyio
async def test_encode_ballot_uses_one_digit_per_candidate():
    assert [encode_ballot(i, 3, 5) for i in (1, 2, 3)] == [1, 6, 36]


@pytest.mark.anyio
async def test_decode_tally_extracts_digits():
    total = 2 * 1 + 0 * 6 + 3 * 36
    assert decode_tally(total, 3, 5) == [2, 0, 3]


@pytest.mark.anyio
async def test_invalid_ballots_and_counts():
    with pytest.raises(ValueError):
        encode_ballot(0, 3, 5)
    with pytest.raises(ValueError):
        encode_ballot(4, 3, 5)
    with pytest.raises(ValueError):
        key_bits_for(0, 5)
    with pytest.raises(ValueError):
        decode_tally(0, 3, 0)


@pytest.mark.anyio
async def test_tally_counts_every_ballot(rng):
    tally = Tally(3, 6, rng=rng)
    for choice in [1, 3, 3, 2, 3, 1]:
        tally.cast(choice)
    assert tally.is_closed
    assert tally.results() == [2, 1, 3]


@pytest.mark.anyio
async def test_tally_unanimous_vote_fills_a_digit(rng):
    tally = Tally(2, 4, rng=rng)
    for _ in range(4):
        tally.cast(2)
    assert tally.results() == [0, 4]


@pytest.mark.anyio
async def test_tally_with_no_ballots_is_all_zero(rng):
    tally = Tally(4, 10, rng=rng)
    assert tally.results() == [0, 0, 0, 0]


@pytest.mark.anyio
async def test_tally_refuses_extra_ballots(rng):
    tally = Tally(2, 1, rng=rng)
    tally.cast(1)
    with pytest.raises(ValueError):
        tally.cast(2)
    assert tally.results() == [1, 0]


@pytest.mark.anyio
async def test_tally_rejects_malformed_ciphertext(rng):
    tally = Tally(2, 3, rng=rng)
    with pytest.raises(InvalidCiphertext):
        tally.submit(0)
    assert tally.ballots_cast == 0


@pytest.mark.anyio
async def test_tally_honours_min_key_bits(rng):
    tally = Tally(2, 3, min_key_bits=40, rng=rng)
    assert tally.key_bits == 40
    assert tally.public_key.n.bit_length() >= 79


@pytest.mark.anyio
async def test_tally_with_supplied_key(toy_key, rng):
    tally = Tally(2, 5, private_key=toy_key, rng=rng)
    tally.cast(2)
    tally.cast(1)
    tally.cast(2)
    assert tally.results() == [1, 2]


@pytest.mark.anyio
async def test_tally_rejects_key_too_small_for_election():
    with pytest.raises(ValueError):
        Tally(3, 5, private_key=PrivateKey.from_primes(7, 13))
