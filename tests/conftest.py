"""
Shared pytest fixtures.

The environment is prepared before the application modules are imported:
uploads go to a temporary folder and the JWT secret is fixed.
"""
import os
import tempfile

os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="mario-uploads-"))
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from main import app  # noqa: E402
from repository import get_repository  # noqa: E402
from security import create_access_token  # noqa: E402
from tests.fakes import FakeRepository  # noqa: E402


@pytest.fixture
def repo():
    """Fresh in-memory repository wired into the app."""
    fake = FakeRepository()
    app.dependency_overrides[get_repository] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_repository, None)


@pytest.fixture
def client(repo):
    # No context manager: the lifespan (schema bootstrap) needs a real database
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def seller(repo):
    return repo.add_user(
        "luca_mobile",
        name="Luca Falegname",
        avatar="https://api.dicebear.com/7.x/avataaars/svg?seed=luca_mobile",
        bio="Ebanista",
        location="Bergamo",
        years_experience=18,
    )


@pytest.fixture
def buyer(repo):
    return repo.add_user("giulia_cibo", name="Giulia Sapori")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user['id'])}"}


@pytest.fixture
def seller_headers(seller):
    return auth_headers(seller)


@pytest.fixture
def buyer_headers(buyer):
    return auth_headers(buyer)


@pytest.fixture
def catalog(repo, seller):
    """A few listings across categories, oldest first."""
    other = repo.add_user("marco_orefice", name="Marco Benedetti")
    return {
        "table": repo.add_service(
            seller["id"], "Tavolo da pranzo in legno massello",
            "Tavolo in noce massello con finitura a mano.", "3200.00", "Ebanisteria", rating="4.8", reviews_count=12,
        ),
        "ring": repo.add_service(
            other["id"], "Anello di fidanzamento su misura",
            "Anelli unici con diamanti selezionati.", "2500.00", "Gioielleria", rating="4.2", reviews_count=5,
        ),
        "library": repo.add_service(
            seller["id"], "Libreria su misura",
            "Libreria modulare in rovere.", "2100.00", "Ebanisteria", rating="3.9", reviews_count=3,
        ),
        "necklace": repo.add_service(
            other["id"], "Collana in argento",
            "Collana in argento 925 lavorata a mano.", "450.00", "Gioielleria", rating="4.5", reviews_count=8,
        ),
    }
