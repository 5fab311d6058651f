import pytest
from fastapi.testclient import TestClient

from clinica.app import create_app
from clinica.database import Database, insert_statement, seed_default_admin_user, update_statement
from clinica.errors import StorageError
from conftest import login


def test_statement_builders():
    sql, params = insert_statement("rol", {"descripcion_rol": "Médico"})
    assert sql == "INSERT INTO rol (descripcion_rol) VALUES (?)"
    assert params == ("Médico",)

    sql, params = update_statement("persona", "idPersona", {"nombre": "Ana", "telefono": None}, 4)
    assert sql == "UPDATE persona SET nombre = ?, telefono = ? WHERE idPersona = ?"
    assert params == ("Ana", None, 4)


def test_schema_creates_every_table(database: Database):
    rows = database.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table'")
    names = {row["name"] for row in rows}
    assert {
        "rol",
        "persona",
        "usuario",
        "paciente",
        "medicamento",
        "inventario_medicamentos",
        "agenda",
        "cita",
        "episodio",
        "hce",
        "datos_antropometricos",
        "receta",
    } <= names


def test_transaction_rolls_back_on_error(database: Database):
    with pytest.raises(RuntimeError):
        with database.transaction() as conn:
            database.execute("INSERT INTO rol (descripcion_rol) VALUES (?)", ("Temporal",), conn=conn)
            raise RuntimeError("boom")
    assert database.fetch_all("SELECT * FROM rol") == []


def test_transaction_commits(database: Database):
    with database.transaction() as conn:
        result = database.execute("INSERT INTO rol (descripcion_rol) VALUES (?)", ("Fija",), conn=conn)
    assert database.fetch_one("SELECT descripcion_rol FROM rol WHERE idRol = ?", (result.lastrowid,)) == {
        "descripcion_rol": "Fija"
    }


def test_driver_errors_become_storage_errors(database: Database):
    with pytest.raises(StorageError) as excinfo:
        database.fetch_all("SELECT * FROM tabla_inexistente")
    assert "tabla_inexistente" in excinfo.value.detalles
    assert excinfo.value.to_dict() == {"mensaje": "Error en la base de datos.", "error": "ErrorBaseDatos"}


def test_oversized_parameters_become_storage_errors(database: Database):
    with pytest.raises(StorageError):
        database.fetch_all("SELECT ?", (10**20,))


def test_foreign_keys_are_enforced(database: Database):
    with pytest.raises(StorageError):
        database.execute("INSERT INTO paciente (NHC) VALUES (?)", (12,))


def test_seed_is_idempotent(database: Database):
    seed_default_admin_user(database, "hash", "admin")
    seed_default_admin_user(database, "otro-hash", "admin")
    users = database.fetch_all("SELECT nombre_usuario, contrasena FROM usuario")
    assert users == [{"nombre_usuario": "admin", "contrasena": "hash"}]
    assert database.fetch_all("SELECT descripcion_rol FROM rol") == [{"descripcion_rol": "Administrador"}]


def test_error_details_exposed_when_enabled(settings):
    app = create_app(settings.model_copy(update={"expose_error_details": True}))
    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {login(test_client)}"
        created = test_client.post(
            "/api/paciente/completo", json={"persona": {"nombre": "Ref", "apellido1": "Erencia"}}
        )
        response = test_client.delete(f"/api/persona/{created.json()['NHC']}")
    assert response.status_code == 500
    assert "FOREIGN KEY" in response.json()["error"]
