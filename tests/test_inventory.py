from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient


def test_medication_crud_and_search(client: TestClient, new_medication):
    med_id = new_medication()
    assert client.get(f"/api/medicamento/{med_id}").json()["principio_activo"] == "Paracetamol"

    duplicate = client.post("/api/medicamento", json={"nombre_medicamento": "Paracetamol 500mg"})
    assert duplicate.status_code == 400
    assert duplicate.json()["errores"] == ["Ya existe un medicamento con ese nombre."]

    assert [m["idMedicamento"] for m in client.get("/api/medicamento/nombre/500").json()] == [med_id]
    assert [m["idMedicamento"] for m in client.get("/api/medicamento/principioActivo/ceta").json()] == [med_id]
    assert client.get("/api/medicamento/principioActivo/Ibuprofeno").status_code == 404

    updated = client.patch(f"/api/medicamento/{med_id}", json={"fecha_caducidad": "2026-12-31"})
    assert updated.status_code == 200
    assert updated.json()["mensaje"] == f"Medicamento con ID {med_id} actualizado exitosamente"
    assert client.get(f"/api/medicamento/{med_id}").json()["fecha_caducidad"] == "2026-12-31"

    bad_date = client.patch(f"/api/medicamento/{med_id}", json={"fecha_caducidad": "31-12-2026"})
    assert bad_date.status_code == 400
    assert bad_date.json()["errores"] == ["La fecha de caducidad debe ser una fecha válida (AAAA-MM-DD)."]


def test_inventory_requires_existing_medication(client: TestClient):
    response = client.post(
        "/api/inventarioMedicamentos",
        json={"idMedicamento": 42, "cantidad_actual": 10, "fecha_registro": "2024-05-01"},
    )
    assert response.status_code == 404
    assert response.json()["mensaje"] == "Medicamento con ID 42 no encontrado"
    assert client.get("/api/inventarioMedicamentos").json() == []


def test_inventory_lifecycle(client: TestClient, new_medication):
    med_id = new_medication()
    created = client.post(
        "/api/inventarioMedicamentos",
        json={"idMedicamento": med_id, "cantidad_actual": 20, "fecha_registro": "2024-05-01"},
    )
    assert created.status_code == 201
    inventory_id = created.json()["idInventario"]

    assert client.get(f"/api/inventarioMedicamentos/inventario/{inventory_id}").json()["cantidad_actual"] == 20
    assert [row["idInventario"] for row in client.get(f"/api/inventarioMedicamentos/medicamento/{med_id}").json()] == [
        inventory_id
    ]

    patched = client.patch(f"/api/inventarioMedicamentos/inventario/{inventory_id}", json={"cantidad_actual": 15})
    assert patched.status_code == 200
    record = client.get(f"/api/inventarioMedicamentos/inventario/{inventory_id}").json()
    assert record["cantidad_actual"] == 15
    assert record["fecha_registro"] == "2024-05-01"

    negative = client.patch(f"/api/inventarioMedicamentos/inventario/{inventory_id}", json={"cantidad_actual": -1})
    assert negative.status_code == 400
    assert negative.json()["errores"] == ["La cantidad actual debe ser mayor o igual que 0."]

    cleared = client.patch(f"/api/inventarioMedicamentos/inventario/{inventory_id}", json={"cantidad_actual": None})
    assert cleared.json()["errores"] == ["La cantidad actual no puede estar vacía."]

    assert client.delete(f"/api/inventarioMedicamentos/inventario/{inventory_id}").status_code == 200
    assert client.get(f"/api/inventarioMedicamentos/inventario/{inventory_id}").status_code == 404
    assert client.get(f"/api/inventarioMedicamentos/medicamento/{med_id}").status_code == 404


def test_inventory_validation_lists_every_problem(client: TestClient):
    response = client.post("/api/inventarioMedicamentos", json={"cantidad_actual": "muchos"})
    assert response.status_code == 400
    assert set(response.json()["errores"]) == {
        "El ID del medicamento es requerido.",
        "La cantidad actual debe ser un número entero.",
        "La fecha de registro es requerida.",
    }


def test_concurrent_stock_updates(repositories):
    medication = repositories.medications.create({"nombre_medicamento": "Amoxicilina"})
    record = repositories.inventory.create(
        {"idMedicamento": medication["idMedicamento"], "cantidad_actual": 100, "fecha_registro": "2024-05-01"}
    )
    inventory_id = record["idInventario"]
    quantities = list(range(50, 66))

    def update(quantity: int) -> dict:
        return repositories.inventory.update_by_id(inventory_id, {"cantidad_actual": quantity})

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(update, quantities))

    assert len(results) == len(quantities)
    final = repositories.inventory.find_by_id(inventory_id)
    assert final["cantidad_actual"] in quantities
    assert final["fecha_registro"] == "2024-05-01"
    assert final["idMedicamento"] == medication["idMedicamento"]
