import logging
import os

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from paillier_tally.crypto.paillier import PaillierError, logging_observer
from paillier_tally.store import create_election, get_election, record_ballot, tally_snapshot
from paillier_tally.tally import Tally


# ── Configuration ──────────────────────────────────
TALLY_MIN_KEY_BITS = int(os.getenv("TALLY_MIN_KEY_BITS", "128"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Paillier Tally API",
    version="0.1.0",
)

# ── Security: CORS ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    allow_credentials=False,
)


# ── Security: HTTP headers ───────────────────────────────────
@app.middleware("http")
async def security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store"
    return response


class ElectionRequest(BaseModel):
    candidates: int = Field(ge=1, le=64)
    voters: int = Field(ge=1, le=100_000)


class EncryptRequest(BaseModel):
    candidate: int = Field(ge=1, description="1-based candidate number")


class BallotRequest(BaseModel):
    ciphertext: str = Field(pattern=r"^[0-9]+$", description="Decimal ciphertext")


def _require_election(election_id: str) -> Tally:
    tally = get_election(election_id)
    if tally is None:
        raise HTTPException(status_code=404, detail="unknown election")
    return tally


@app.get("/health")
async def health() -> dict:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/elections", status_code=status.HTTP_201_CREATED)
async def open_election(payload: ElectionRequest):
    """Create an election with a freshly generated key sized for its ballots."""
    # Key generation is CPU bound; keep it off the event loop
    tally = await run_in_threadpool(
        Tally,
        payload.candidates,
        payload.voters,
        min_key_bits=TALLY_MIN_KEY_BITS,
        observer=logging_observer(),
    )
    election_id = create_election(tally)
    logger.info("election %s opened with %d-bit primes", election_id, tally.key_bits)
    return {
        "election_id": election_id,
        "candidates": tally.candidates,
        "voters": tally.voters,
        "key_bits": tally.key_bits,
        "n": str(tally.public_key.n),
        "g": str(tally.public_key.g),
    }


@app.get("/elections/{election_id}/pubkey")
async def get_public_key(election_id: str):
    """Return the election's public key for client-side encryption."""
    pub = _require_election(election_id).public_key
    return {"election_id": election_id, "n": str(pub.n), "g": str(pub.g)}


@app.post("/elections/{election_id}/encrypt")
async def encrypt_ballot(election_id: str, payload: EncryptRequest):
    """Encrypt an encoded ballot with the election key (server-side fallback)."""
    tally = _require_election(election_id)
    try:
        ciphertext = tally.encrypt_ballot(payload.candidate)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {
        "election_id": election_id,
        "candidate": payload.candidate,
        "ciphertext": str(ciphertext),
    }


@app.post("/elections/{election_id}/ballots", status_code=status.HTTP_201_CREATED)
async def send_ballot(election_id: str, payload: BallotRequest):
    """Homomorphically add an encrypted ballot to the running tally."""
    tally = _require_election(election_id)
    if tally.is_closed:
        raise HTTPException(status_code=409, detail="all ballots have already been cast")
    try:
        ballots_cast = record_ballot(election_id, int(payload.ciphertext))
    except PaillierError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return {"status": "accepted", "election_id": election_id, "ballots_cast": ballots_cast}


@app.get("/elections/{election_id}/tally")
async def get_tally(election_id: str):
    """Decrypt the aggregate ciphertext and split it into per-candidate counts."""
    _require_election(election_id)
    # Decryption is a full-size modular exponentiation
    snapshot = await run_in_threadpool(tally_snapshot, election_id)
    return {
        "election_id": election_id,
        "ballots_cast": snapshot["ballots_cast"],
        "aggregate_ciphertext": str(snapshot["aggregate_ciphertext"]),
        "results": [
            {"candidate": i, "votes": votes}
            for i, votes in enumerate(snapshot["results"], start=1)
        ],
    }
