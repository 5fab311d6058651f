from fastapi.testclient import TestClient

from conftest import login


def _create_role(client: TestClient, descripcion: str = "Médico") -> int:
    return client.post("/api/rol", json={"descripcion_rol": descripcion}).json()["idRol"]


def test_created_user_hides_and_hashes_password(client: TestClient):
    role_id = _create_role(client)
    response = client.post(
        "/api/usuario",
        json={"nombre_usuario": "dr.perez", "contrasena": "clave-segura", "rol_usuario": role_id},
    )
    assert response.status_code == 201
    user = response.json()
    assert "contrasena" not in user
    assert user["nombre_usuario"] == "dr.perez"

    stored = client.app.state.repositories.users.find_credentials("dr.perez")
    assert stored["contrasena"] != "clave-segura"
    assert stored["contrasena"].startswith("$2")

    assert login(client, "dr.perez", "clave-segura")


def test_user_requires_existing_role(client: TestClient):
    response = client.post(
        "/api/usuario", json={"nombre_usuario": "sin.rol", "contrasena": "x", "rol_usuario": 999}
    )
    assert response.status_code == 404
    assert response.json()["mensaje"] == "Rol con ID 999 no encontrado"
    assert client.get("/api/usuario/nombre/sin.rol").status_code == 404


def test_user_validation_messages(client: TestClient):
    response = client.post("/api/usuario", json={"nombre_usuario": "solo.nombre"})
    assert response.status_code == 400
    assert set(response.json()["errores"]) == {
        "La contraseña es requerida.",
        "El rol del usuario es requerido.",
    }


def test_duplicate_username_is_rejected(client: TestClient):
    role_id = _create_role(client)
    payload = {"nombre_usuario": "repetido", "contrasena": "x", "rol_usuario": role_id}
    assert client.post("/api/usuario", json=payload).status_code == 201
    duplicate = client.post("/api/usuario", json=payload)
    assert duplicate.status_code == 400
    assert duplicate.json()["errores"] == ["El nombre de usuario ya está registrado."]


def test_password_update_is_hashed(client: TestClient):
    role_id = _create_role(client)
    user_id = client.post(
        "/api/usuario", json={"nombre_usuario": "enfermera", "contrasena": "vieja", "rol_usuario": role_id}
    ).json()["idUsuario"]

    response = client.patch(f"/api/usuario/{user_id}", json={"contrasena": "nueva"})
    assert response.status_code == 200
    assert response.json()["mensaje"] == f"Usuario con ID {user_id} actualizado exitosamente"
    assert login(client, "enfermera", "nueva")


def test_users_sorted_by_name(client: TestClient):
    role_id = _create_role(client)
    for name in ("zoe", "bruno"):
        client.post("/api/usuario", json={"nombre_usuario": name, "contrasena": "x", "rol_usuario": role_id})
    names = [user["nombre_usuario"] for user in client.get("/api/usuario/ordenadosPorNombre").json()]
    assert names == sorted(names)


def test_user_details_join_role_and_person(client: TestClient):
    role_id = _create_role(client, "Pediatra")
    user_id = client.post(
        "/api/usuario", json={"nombre_usuario": "dra.lopez", "contrasena": "x", "rol_usuario": role_id}
    ).json()["idUsuario"]
    person = client.post(
        "/api/persona",
        json={"idPersona": user_id, "nombre": "Ana", "apellido1": "López", "email": "ana@example.com"},
    )
    assert person.status_code == 201

    details = client.get(f"/api/usuario/detalles/{user_id}")
    assert details.status_code == 200
    body = details.json()
    assert body["descripcion_rol"] == "Pediatra"
    assert body["email"] == "ana@example.com"
    assert body["nombre"] == "Ana"

    listing = client.get("/api/usuario/detalles")
    assert listing.status_code == 200
    assert user_id in [row["idUsuario"] for row in listing.json()]


def test_update_user_and_email_together(client: TestClient):
    role_id = _create_role(client)
    user_id = client.post(
        "/api/usuario", json={"nombre_usuario": "recepcion", "contrasena": "x", "rol_usuario": role_id}
    ).json()["idUsuario"]
    client.post("/api/persona", json={"idPersona": user_id, "nombre": "Eva", "apellido1": "Ruiz"})

    response = client.patch(
        f"/api/usuario/{user_id}/email",
        json={"nombre_usuario": "recepcion.central", "email": "eva@example.com"},
    )
    assert response.status_code == 200
    details = client.get(f"/api/usuario/detalles/{user_id}").json()
    assert details["nombre_usuario"] == "recepcion.central"
    assert details["email"] == "eva@example.com"


def test_email_update_without_person_changes_nothing(client: TestClient):
    role_id = _create_role(client)
    user_id = client.post(
        "/api/usuario", json={"nombre_usuario": "sin.persona", "contrasena": "x", "rol_usuario": role_id}
    ).json()["idUsuario"]

    response = client.patch(
        f"/api/usuario/{user_id}/email",
        json={"nombre_usuario": "renombrado", "email": "nuevo@example.com"},
    )
    assert response.status_code == 404
    assert client.get(f"/api/usuario/{user_id}").json()["nombre_usuario"] == "sin.persona"


def test_delete_user(client: TestClient):
    role_id = _create_role(client)
    user_id = client.post(
        "/api/usuario", json={"nombre_usuario": "temporal", "contrasena": "x", "rol_usuario": role_id}
    ).json()["idUsuario"]
    assert client.delete(f"/api/usuario/{user_id}").status_code == 200
    assert client.get(f"/api/usuario/{user_id}").status_code == 404
