"""
Fixtures compartidos: SQLite en memoria con el ORM real
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from api.app import database, models
from api.app.main import create_app
from api.app.service import SweetService


@pytest.fixture
def engine():
    # StaticPool mantiene la misma conexión para toda la BD en memoria
    eng = database.make_engine("sqlite:///:memory:", poolclass=StaticPool)
    database.init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = database.make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def service(db):
    return SweetService(db)


@pytest.fixture
def client(engine):
    with TestClient(create_app(engine)) as c:
        yield c


@pytest.fixture
def seeded(db):
    """Mismo set de datos que usan los tests de búsqueda y orden"""
    sweets = [
        models.Sweet(name="Gummy Worms", category="Candy", price=2.5, quantity=100),
        models.Sweet(name="Chocolate Bar", category="Chocolate", price=15, quantity=200),
        models.Sweet(name="Apple Tart", category="Pastry", price=40, quantity=30),
        models.Sweet(name="Caramel Chew", category="Candy", price=30, quantity=150),
    ]
    db.add_all(sweets)
    db.commit()
    for sweet in sweets:
        db.refresh(sweet)
    return sweets


@pytest.fixture
def fudge(db):
    sweet = models.Sweet(name="Chocolate Fudge", category="Special", price=5.0, quantity=20)
    db.add(sweet)
    db.commit()
    db.refresh(sweet)
    return sweet
