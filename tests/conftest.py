"""Shared pytest fixtures for the Paillier tally test suite."""

import random

import pytest
from httpx import ASGITransport, AsyncClient

from paillier_tally.crypto.paillier import PrivateKey, generate_keypair
from paillier_tally.main import app
from paillier_tally.store import reset_store


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def keypair():
    """A realistic key pair, generated once per session."""
    return generate_keypair(bits=128)


@pytest.fixture()
def toy_key():
    """The textbook p = 7, q = 13 key. Insecure, but small enough to reason about."""
    return PrivateKey.from_primes(7, 13)


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
async def client():
    """Provide an async HTTP test client bound to the FastAPI app."""
    reset_store()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    reset_store()
