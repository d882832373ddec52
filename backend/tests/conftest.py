"""
Pytest fixtures for taller backend tests.

Provides an in-memory database, one user per area, bearer headers and
factories for orders and repositions.
"""

import itertools

import pytest

from taller import create_app
from taller.enums import Area, RepositionStatus
from taller.extensions import db
from taller.routes.common import commit_and_notify
from taller.services import (
    auth_service,
    notification_service,
    order_service,
    reposition_service,
    session_service,
)


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'REALTIME_HEARTBEAT_SECONDS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        notification_service.discard_pending()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        notification_service.discard_pending()


@pytest.fixture(scope='function')
def users(db_session):
    """One active user per area, keyed by area value."""
    created = {}
    for area in Area:
        created[area.value] = auth_service.create_user(
            username=f"{area.value}_user",
            password=PASSWORD,
            name=f"{area.value.capitalize()} User",
            area=area,
        )
    db_session.commit()
    return created


@pytest.fixture(scope='function')
def approver(db_session, users):
    """Calidad user flagged to sign off reposition completion."""
    user = auth_service.create_user(
        username="calidad_lead",
        password=PASSWORD,
        name="Calidad Lead",
        area=Area.CALIDAD,
        can_approve_completion=True,
    )
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def login(db_session):
    """Return a helper that opens a session for a user and builds its headers."""
    def _login(user) -> dict:
        _, token = session_service.create_session(user.id)
        return {'Authorization': f'Bearer {token}'}
    return _login


@pytest.fixture(scope='function')
def make_order(users):
    """Factory for committed orders created by the corte user."""
    folios = itertools.count(1)

    def _make(total_piezas=100, **overrides):
        data = {
            "folio": f"OP-{next(folios):04d}",
            "cliente_hotel": "Hotel Sol",
            "no_solicitud": "S-100",
            "modelo": "Filipina",
            "tipo_prenda": "Camisa",
            "color": "Blanco",
            "tela": "Gabardina",
            "total_piezas": total_piezas,
        }
        data.update(overrides)
        order = order_service.create_order(data, users["corte"])
        commit_and_notify()
        return order

    return _make


def reposition_payload(**overrides) -> dict:
    data = {
        "type": "repocision",
        "solicitante_nombre": "Luis Pérez",
        "no_solicitud": "S-200",
        "causante_dano": "Máquina recta",
        "descripcion_suceso": "Manga cortada fuera de medida",
        "modelo_prenda": "Filipina",
        "tela": "Gabardina",
        "color": "Blanco",
        "tipo_pieza": "Manga",
        "urgencia": "urgente",
    }
    data.update(overrides)
    return data


@pytest.fixture(scope='function')
def make_reposition(users):
    """Factory for committed repositions; approved=True runs the operaciones approval."""
    def _make(actor=None, approved=False, pieces=None, **overrides):
        actor = actor or users["corte"]
        if pieces is None:
            pieces = [
                {"talla": "M", "cantidad": 2},
                {"talla": "G", "cantidad": 1, "folio_original": "OP-0001"},
            ]
        reposition = reposition_service.create_reposition(reposition_payload(**overrides), pieces, actor)
        commit_and_notify()
        if approved:
            reposition_service.approve_reposition(reposition.id, RepositionStatus.APROBADO, users["operaciones"])
            commit_and_notify()
        return reposition

    return _make


@pytest.fixture(scope='function')
def reposition_data():
    """A valid reposition body without piece lines."""
    return reposition_payload()
