import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clinica.app import create_app
from clinica.database import Database
from clinica.repositories import build_repositories
from clinica.settings import Settings


@pytest.fixture()
def settings(tmp_path) -> Settings:
    """Settings pointing at an isolated database with cheap hashing."""
    return Settings(
        database_path=tmp_path / "test.db",
        secret_key="test-secret",
        bcrypt_rounds=4,
        default_admin_username="admin",
        default_admin_password="changeme",
        expose_error_details=False,
    )


def login(test_client: TestClient, username: str = "admin", password: str = "changeme") -> str:
    response = test_client.post(
        "/autenticacion/login", json={"nombre_usuario": username, "contrasena": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture()
def client(settings):
    """Provide an authenticated TestClient backed by an isolated database."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {login(test_client)}"
        yield test_client


@pytest.fixture()
def anonymous_client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def database(settings) -> Database:
    db = Database(settings.database_path, pool_size=8, timeout=10)
    db.init_schema()
    return db


@pytest.fixture()
def repositories(database):
    return build_repositories(database, password_rounds=4)


@pytest.fixture()
def new_patient(client):
    """Factory creating a person + patient through the API and returning its NHC."""

    def _create(nombre: str = "Lucía", apellido1: str = "Martínez", **persona) -> int:
        response = client.post(
            "/api/paciente/completo",
            json={
                "persona": {"nombre": nombre, "apellido1": apellido1, **persona},
                "paciente": {"grado": "3º"},
            },
        )
        assert response.status_code == 201, response.text
        return response.json()["NHC"]

    return _create


@pytest.fixture()
def new_schedule(client):
    def _create(descripcion: str = "Consulta general", horario: str = "08:00-14:00") -> int:
        response = client.post("/api/agenda", json={"descripcion": descripcion, "horario": horario})
        assert response.status_code == 201, response.text
        return response.json()["idAgenda"]

    return _create


@pytest.fixture()
def new_medication(client):
    def _create(nombre: str = "Paracetamol 500mg", principio: str = "Paracetamol") -> int:
        response = client.post(
            "/api/medicamento",
            json={"nombre_medicamento": nombre, "principio_activo": principio},
        )
        assert response.status_code == 201, response.text
        return response.json()["idMedicamento"]

    return _create


@pytest.fixture()
def admin_id(client) -> int:
    response = client.get("/api/usuario/nombre/admin")
    assert response.status_code == 200
    return response.json()["idUsuario"]
