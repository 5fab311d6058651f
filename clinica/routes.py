"""API routes for the clinical records backend."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from .auth import authenticate
from .errors import NotFoundError
from .models import LoginRequest, LoginResponse, Message
from .repositories import Repositories
from .validators import parse_date

Record = Dict[str, Any]

auth_router = APIRouter(prefix="/autenticacion", tags=["autenticacion"])
roles_router = APIRouter(prefix="/rol", tags=["rol"])
users_router = APIRouter(prefix="/usuario", tags=["usuario"])
persons_router = APIRouter(prefix="/persona", tags=["persona"])
patients_router = APIRouter(prefix="/paciente", tags=["paciente"])
medications_router = APIRouter(prefix="/medicamento", tags=["medicamento"])
inventory_router = APIRouter(prefix="/inventarioMedicamentos", tags=["inventario"])
schedules_router = APIRouter(prefix="/agenda", tags=["agenda"])
appointments_router = APIRouter(prefix="/cita", tags=["cita"])
episodes_router = APIRouter(prefix="/episodio", tags=["episodio"])
health_records_router = APIRouter(prefix="/hce", tags=["hce"])
anthropometrics_router = APIRouter(prefix="/datosAntropometricos", tags=["datosAntropometricos"])
prescriptions_router = APIRouter(prefix="/receta", tags=["receta"])

api_routers = (
    roles_router,
    users_router,
    persons_router,
    patients_router,
    medications_router,
    inventory_router,
    schedules_router,
    appointments_router,
    episodes_router,
    health_records_router,
    anthropometrics_router,
    prescriptions_router,
)


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


def _found(rows: List[Record], message: str) -> List[Record]:
    if not rows:
        raise NotFoundError(message)
    return rows


@auth_router.post("/login", response_model=LoginResponse)
def login(request: Request, payload: Optional[LoginRequest] = None) -> LoginResponse:
    """Exchange username and password for a bearer token."""
    payload = payload or LoginRequest()
    repos = get_repositories(request)
    token = authenticate(
        repos.users,
        payload.nombre_usuario,
        payload.contrasena,
        secret=request.app.state.settings.secret_key,
    )
    return LoginResponse(auth=True, token=token)


# Roles

@roles_router.post("", status_code=status.HTTP_201_CREATED)
def create_role(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.roles.create(payload)


@roles_router.get("")
def list_roles(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.roles.get_all()


@roles_router.get("/descripcion/{descripcion}")
def find_roles_by_description(descripcion: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.roles.find_by_description(descripcion), "No se encontraron roles con esa descripción")


@roles_router.get("/{ident}")
def get_role(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.roles.find_by_id(ident)


@roles_router.patch("/{ident}", response_model=Message)
def update_role(ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    record = repos.roles.update_by_id(ident, payload)
    return Message(mensaje=repos.roles.updated_message(record["idRol"]))


@roles_router.delete("/{ident}", response_model=Message)
def delete_role(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.roles.remove_by_id(ident)
    return Message(mensaje=repos.roles.deleted_message(removed))


# Users

@users_router.post("", status_code=status.HTTP_201_CREATED)
def create_user(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    """Create a user; the password is stored hashed and never echoed back."""
    return repos.users.create(payload)


@users_router.get("")
def list_users(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.users.get_all()


@users_router.get("/ordenadosPorNombre")
def list_users_sorted(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.users.get_all_sorted_by_name()


@users_router.get("/detalles")
def list_user_details(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    """Users joined with their role description and person data."""
    return _found(repos.users.get_all_with_details(), "No se encontraron usuarios")


@users_router.get("/detalles/{ident}")
def get_user_details(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.users.find_details_by_id(ident)


@users_router.get("/nombre/{nombre_usuario}")
def get_user_by_name(nombre_usuario: str, repos: Repositories = Depends(get_repositories)) -> Record:
    record = repos.users.find_by_username(nombre_usuario)
    if not record:
        raise NotFoundError(f"Usuario '{nombre_usuario}' no encontrado")
    return record


@users_router.get("/{ident}")
def get_user(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.users.find_by_id(ident)


@users_router.patch("/{ident}/email", response_model=Message)
def update_user_and_email(
    ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    """Update user fields and the linked person's email together."""
    record = repos.users.update_with_email(ident, payload)
    return Message(mensaje=f"Usuario y email con ID {record['idUsuario']} actualizados exitosamente")


@users_router.patch("/{ident}", response_model=Message)
def update_user(ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    record = repos.users.update_by_id(ident, payload)
    return Message(mensaje=repos.users.updated_message(record["idUsuario"]))


@users_router.delete("/{ident}", response_model=Message)
def delete_user(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.users.remove_by_id(ident)
    return Message(mensaje=repos.users.deleted_message(removed))


# Persons

@persons_router.post("", status_code=status.HTTP_201_CREATED)
def create_person(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.persons.create(payload)


@persons_router.get("")
def list_persons(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.persons.get_all()


@persons_router.get("/ordenados/nombre")
def list_persons_by_name(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.persons.get_all_sorted_by_name()


@persons_router.get("/ordenados/apellidos")
def list_persons_by_surnames(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.persons.get_all_sorted_by_surnames()


@persons_router.get("/carnet/{carnet}")
def find_persons_by_carnet(carnet: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.persons.find_by_carnet(carnet), "No se encontraron personas con ese carnet")


@persons_router.get("/nombre/{nombre}")
def find_persons_by_name(nombre: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.persons.find_by_name(nombre), "No se encontraron personas con ese nombre")


@persons_router.get("/apellido1/{apellido}")
def find_persons_by_first_surname(apellido: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.persons.find_by_first_surname(apellido), "No se encontraron personas con ese primer apellido"
    )


@persons_router.get("/apellido2/{apellido}")
def find_persons_by_second_surname(apellido: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.persons.find_by_second_surname(apellido), "No se encontraron personas con ese segundo apellido"
    )


@persons_router.get("/{ident}")
def get_person(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.persons.find_by_id(ident)


@persons_router.patch("/{ident}", response_model=Message)
def update_person(ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    """Apply a partial update; fields left out keep their stored value."""
    record = repos.persons.update_by_id(ident, payload)
    return Message(mensaje=repos.persons.updated_message(record["idPersona"]))


@persons_router.delete("/{ident}", response_model=Message)
def delete_person(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.persons.remove_by_id(ident)
    return Message(mensaje=repos.persons.deleted_message(removed))


# Patients

@patients_router.post("", status_code=status.HTTP_201_CREATED)
def create_patient(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    """Register an existing person as a patient."""
    return repos.patients.create(payload)


@patients_router.post("/completo", status_code=status.HTTP_201_CREATED)
def create_patient_with_person(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    """Create the person and the patient rows in a single transaction."""
    return repos.patients.create_with_person(payload)


@patients_router.get("")
def list_patients(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.patients.get_all()


@patients_router.get("/detalle/{nhc}")
def get_patient_details(nhc: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.patients.find_with_person(nhc)


@patients_router.get("/{nhc}")
def get_patient(nhc: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.patients.find_by_id(nhc)


@patients_router.patch("/completo/{nhc}", response_model=Message)
def update_patient_with_person(
    nhc: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    record = repos.patients.update_with_person(nhc, payload)
    return Message(mensaje=f"Paciente y persona con NHC {record['NHC']} actualizados exitosamente")


@patients_router.patch("/{nhc}", response_model=Message)
def update_patient(nhc: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    record = repos.patients.update_by_id(nhc, payload)
    return Message(mensaje=repos.patients.updated_message(record["NHC"]))


@patients_router.delete("/{nhc}", response_model=Message)
def delete_patient(nhc: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.patients.remove_by_id(nhc)
    return Message(mensaje=repos.patients.deleted_message(removed))


# Medications

@medications_router.post("", status_code=status.HTTP_201_CREATED)
def create_medication(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.medications.create(payload)


@medications_router.get("")
def list_medications(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.medications.get_all()


@medications_router.get("/nombre/{nombre}")
def find_medications_by_name(nombre: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.medications.find_by_name(nombre), "No se encontraron medicamentos con ese nombre")


@medications_router.get("/principioActivo/{principio}")
def find_medications_by_ingredient(principio: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.medications.find_by_active_ingredient(principio),
        "No se encontraron medicamentos con ese principio activo",
    )


@medications_router.get("/{ident}")
def get_medication(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.medications.find_by_id(ident)


@medications_router.patch("/{ident}", response_model=Message)
def update_medication(
    ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    record = repos.medications.update_by_id(ident, payload)
    return Message(mensaje=repos.medications.updated_message(record["idMedicamento"]))


@medications_router.delete("/{ident}", response_model=Message)
def delete_medication(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.medications.remove_by_id(ident)
    return Message(mensaje=repos.medications.deleted_message(removed))


# Inventory

@inventory_router.post("", status_code=status.HTTP_201_CREATED)
def create_inventory(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.inventory.create(payload)


@inventory_router.get("")
def list_inventory(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.inventory.get_all()


@inventory_router.get("/medicamento/{medication_id}")
def find_inventory_by_medication(medication_id: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.inventory.find_by_medication(medication_id),
        f"No hay inventario para el medicamento con ID {medication_id}",
    )


@inventory_router.get("/inventario/{ident}")
def get_inventory(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.inventory.find_by_id(ident)


@inventory_router.patch("/inventario/{ident}", response_model=Message)
def update_inventory(ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    record = repos.inventory.update_by_id(ident, payload)
    return Message(mensaje=repos.inventory.updated_message(record["idInventario"]))


@inventory_router.delete("/inventario/{ident}", response_model=Message)
def delete_inventory(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.inventory.remove_by_id(ident)
    return Message(mensaje=repos.inventory.deleted_message(removed))


# Schedules

@schedules_router.post("", status_code=status.HTTP_201_CREATED)
def create_schedule(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.schedules.create(payload)


@schedules_router.get("")
def list_schedules(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.schedules.get_all()


@schedules_router.get("/descripcion/{descripcion}")
def find_schedules_by_description(descripcion: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.schedules.find_by_description(descripcion), "No se encontraron agendas con esa descripción"
    )


@schedules_router.get("/{ident}")
def get_schedule(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.schedules.find_by_id(ident)


@schedules_router.patch("/{ident}", response_model=Message)
def update_schedule(ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    record = repos.schedules.update_by_id(ident, payload)
    return Message(mensaje=repos.schedules.updated_message(record["idAgenda"]))


@schedules_router.delete("/{ident}", response_model=Message)
def delete_schedule(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.schedules.remove_by_id(ident)
    return Message(mensaje=repos.schedules.deleted_message(removed))


# Appointments

@appointments_router.get("/detalles")
def list_appointment_details(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    """Appointments joined with patient name, doctor name and agenda."""
    return _found(repos.appointments.get_all_with_details(), "No se encontraron citas")


@appointments_router.get("/porFecha")
def list_appointments_by_date(
    fechaInicio: Optional[str] = Query(None),
    fechaFin: Optional[str] = Query(None),
    repos: Repositories = Depends(get_repositories),
) -> List[Record]:
    """Appointments within the range, or the current Monday to Sunday week."""
    start = parse_date(fechaInicio, "fechaInicio")
    end = parse_date(fechaFin, "fechaFin")
    return _found(
        repos.appointments.find_by_date_range(start, end), "No se encontraron citas en el rango de fechas"
    )


@appointments_router.get("/citas-semana")
def list_week_appointments(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.appointments.get_current_week_with_details(), "No hay citas para esta semana")


@appointments_router.post("", status_code=status.HTTP_201_CREATED)
def create_appointment(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.appointments.create(payload)


@appointments_router.get("")
def list_appointments(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.appointments.get_all()


@appointments_router.get("/paciente/{nhc}")
def find_appointments_by_patient(nhc: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.appointments.find_by_patient(nhc), f"No se encontraron citas para el paciente con NHC {nhc}")


@appointments_router.get("/doctor/{doctor_id}")
def find_appointments_by_doctor(doctor_id: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.appointments.find_by_doctor(doctor_id), f"No se encontraron citas para el médico con ID {doctor_id}"
    )


@appointments_router.get("/agenda/nombre/{nombre}")
def find_appointments_by_schedule_name(nombre: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.appointments.find_by_schedule_name(nombre), f"No se encontraron citas para la agenda '{nombre}'"
    )


@appointments_router.get("/agenda/{schedule_id}")
def find_appointments_by_schedule(schedule_id: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.appointments.find_by_schedule(schedule_id),
        f"No se encontraron citas para la agenda con ID {schedule_id}",
    )


@appointments_router.get("/{ident}")
def get_appointment(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.appointments.find_by_id(ident)


@appointments_router.patch("/{ident}", response_model=Message)
def update_appointment(
    ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    record = repos.appointments.update_by_id(ident, payload)
    return Message(mensaje=repos.appointments.updated_message(record["idCita"]))


@appointments_router.delete("/{ident}", response_model=Message)
def delete_appointment(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.appointments.remove_by_id(ident)
    return Message(mensaje=repos.appointments.deleted_message(removed))


# Episodes

@episodes_router.post("", status_code=status.HTTP_201_CREATED)
def create_episode(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.episodes.create(payload)


@episodes_router.get("")
def list_episodes(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.episodes.get_all()


@episodes_router.get("/paciente/{nhc}")
def find_episodes_by_patient(nhc: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.episodes.find_by_patient(nhc), f"No se encontraron episodios para el paciente con NHC {nhc}")


@episodes_router.get("/{ident}")
def get_episode(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.episodes.find_by_id(ident)


@episodes_router.patch("/{ident}", response_model=Message)
def update_episode(ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Message:
    record = repos.episodes.update_by_id(ident, payload)
    return Message(mensaje=repos.episodes.updated_message(record["idEpisodio"]))


@episodes_router.delete("/{ident}", response_model=Message)
def delete_episode(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.episodes.remove_by_id(ident)
    return Message(mensaje=repos.episodes.deleted_message(removed))


# Health records

@health_records_router.post("", status_code=status.HTTP_201_CREATED)
def create_health_record(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    """Open the HCE of a patient; both the person and the patient must exist."""
    return repos.health_records.create(payload)


@health_records_router.get("")
def list_health_records(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.health_records.get_all()


@health_records_router.get("/{nhc}")
def get_health_record(nhc: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.health_records.find_by_id(nhc)


@health_records_router.patch("/{nhc}", response_model=Message)
def update_health_record(
    nhc: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    record = repos.health_records.update_by_id(nhc, payload)
    return Message(mensaje=repos.health_records.updated_message(record["NHC_paciente"]))


@health_records_router.delete("/{nhc}", response_model=Message)
def delete_health_record(nhc: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.health_records.remove_by_id(nhc)
    return Message(mensaje=repos.health_records.deleted_message(removed))


# Anthropometric data

@anthropometrics_router.post("", status_code=status.HTTP_201_CREATED)
def create_anthropometric(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.anthropometrics.create(payload)


@anthropometrics_router.get("")
def list_anthropometrics(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.anthropometrics.get_all()


@anthropometrics_router.get("/paciente/{nhc}")
def find_anthropometrics_by_patient(nhc: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.anthropometrics.find_by_patient(nhc),
        f"No se encontraron datos antropométricos para el paciente con NHC {nhc}",
    )


@anthropometrics_router.get("/{ident}")
def get_anthropometric(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.anthropometrics.find_by_id(ident)


@anthropometrics_router.patch("/{ident}", response_model=Message)
def update_anthropometric(
    ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    record = repos.anthropometrics.update_by_id(ident, payload)
    return Message(mensaje=repos.anthropometrics.updated_message(record["idDatoAntropometrico"]))


@anthropometrics_router.delete("/{ident}", response_model=Message)
def delete_anthropometric(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.anthropometrics.remove_by_id(ident)
    return Message(mensaje=repos.anthropometrics.deleted_message(removed))


# Prescriptions

@prescriptions_router.post("", status_code=status.HTTP_201_CREATED)
def create_prescription(payload: Any = Body(None), repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.prescriptions.create(payload)


@prescriptions_router.get("")
def list_prescriptions(repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return repos.prescriptions.get_all()


@prescriptions_router.get("/paciente/{nhc}")
def find_prescriptions_by_patient(nhc: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(repos.prescriptions.find_by_patient(nhc), f"No se encontraron recetas para el paciente con NHC {nhc}")


@prescriptions_router.get("/medicamento/{medication_id}")
def find_prescriptions_by_medication(medication_id: str, repos: Repositories = Depends(get_repositories)) -> List[Record]:
    return _found(
        repos.prescriptions.find_by_medication(medication_id),
        f"No se encontraron recetas para el medicamento con ID {medication_id}",
    )


@prescriptions_router.get("/{ident}")
def get_prescription(ident: str, repos: Repositories = Depends(get_repositories)) -> Record:
    return repos.prescriptions.find_by_id(ident)


@prescriptions_router.patch("/{ident}", response_model=Message)
def update_prescription(
    ident: str, payload: Any = Body(None), repos: Repositories = Depends(get_repositories)
) -> Message:
    record = repos.prescriptions.update_by_id(ident, payload)
    return Message(mensaje=repos.prescriptions.updated_message(record["idReceta"]))


@prescriptions_router.delete("/{ident}", response_model=Message)
def delete_prescription(ident: str, repos: Repositories = Depends(get_repositories)) -> Message:
    removed = repos.prescriptions.remove_by_id(ident)
    return Message(mensaje=repos.prescriptions.deleted_message(removed))
