"""Interactive encrypted tally: one prompt per voter, counts printed at the end."""

import argparse
import logging
import sys

from paillier_tally.crypto.paillier import logging_observer
from paillier_tally.tally import Tally

logger = logging.getLogger(__name__)


def _ask_int(prompt: str, low: int, high: int, error: str) -> int:
    raw = input(prompt).strip()
    try:
        value = int(raw)
    except ValueError:
        raise SystemExit(f"{error}: {raw!r}")
    if not low <= value <= high:
        raise SystemExit(f"{error}: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paillier-tally", description=__doc__)
    parser.add_argument("--log-level", default="WARNING", help="logging level (default: WARNING)")
    parser.add_argument(
        "--min-key-bits",
        type=int,
        default=0,
        help="lower bound on the prime size; by default primes are just large enough for the ballots",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    candidates = _ask_int("Number of candidates: ", 1, 1 << 16, "invalid number of candidates")
    voters = _ask_int("Number of voters: ", 1, (1 << 32) - 2, "invalid number of voters")

    print("Generating keys...")
    tally = Tally(candidates, voters, min_key_bits=args.min_key_bits, observer=logging_observer())
    logger.info("using %d-bit primes", tally.key_bits)

    for i in range(1, voters + 1):
        choice = _ask_int(f"Ballot of voter {i}: ", 1, candidates, "invalid ballot")
        tally.cast(choice)

    print("Results:")
    for i, votes in enumerate(tally.results(), start=1):
        print(f"Candidate {i}: {votes}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
