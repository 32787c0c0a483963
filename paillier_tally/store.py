"""
In-memory election registry.

Elections live for the lifetime of the process. Every mutation of a tally
happens under the registry lock, so handlers may run on any thread.
"""

import threading
import uuid
from typing import Optional

from paillier_tally.tally import Tally

_LOCK = threading.Lock()
_ELECTIONS: dict[str, Tally] = {}


def create_election(tally: Tally) -> str:
    election_id = uuid.uuid4().hex
    with _LOCK:
        _ELECTIONS[election_id] = tally
    return election_id


def get_election(election_id: str) -> Optional[Tally]:
    with _LOCK:
        return _ELECTIONS.get(election_id)


def record_ballot(election_id: str, ciphertext: int) -> int:
    """
    Fold a ballot into the election's accumulator.
    Raises KeyError for unknown elections; crypto errors propagate.
    """
    with _LOCK:
        tally = _ELECTIONS[election_id]
        return tally.submit(ciphertext)


def tally_snapshot(election_id: str) -> dict:
    """
    Capture count and accumulator together, then decrypt without the lock
    so other elections keep accepting ballots meanwhile.
    """
    with _LOCK:
        tally = _ELECTIONS[election_id]
        ballots_cast = tally.ballots_cast
        accumulator = tally.accumulator
    return {
        "ballots_cast": ballots_cast,
        "aggregate_ciphertext": accumulator,
        "results": tally.results(accumulator),
    }


def reset_store() -> None:
    with _LOCK:
        _ELECTIONS.clear()
