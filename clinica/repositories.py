"""Data access for every clinical entity.

Each repository validates its payload, checks that referenced rows exist
through the sibling repositories, then issues one parameterized statement
through :class:`clinica.database.Database`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Type

from pydantic import BaseModel

from . import models
from .auth import hash_password
from .database import Database, insert_statement, update_statement
from .errors import NotFoundError, ValidationError
from .validators import (
    INVALID_BODY_MESSAGE,
    NO_FIELDS_MESSAGE,
    require_valid,
    validate_fields,
    validate_identifier,
)

logger = logging.getLogger(__name__)


class Reference(NamedTuple):
    field: str
    repository: "Repository"
    message: str


def _like(text: str) -> str:
    return f"%{text}%"


class Repository:
    table: str = ""
    key: str = ""
    entity: str = ""
    feminine: bool = False
    key_label: str = "ID"
    columns: str = "*"
    create_model: Type[BaseModel] = BaseModel
    update_model: Type[BaseModel] = BaseModel

    def __init__(self, db: Database):
        self.db = db
        self.references: List[Reference] = []

    def _suffix(self) -> str:
        return "a" if self.feminine else "o"

    def _not_found(self, ident: Any) -> NotFoundError:
        return NotFoundError(
            f"{self.entity} con {self.key_label} {ident} no encontrad{self._suffix()}"
        )

    def updated_message(self, ident: Any) -> str:
        return f"{self.entity} con {self.key_label} {ident} actualizad{self._suffix()} exitosamente"

    def deleted_message(self, ident: Any) -> str:
        return f"{self.entity} con {self.key_label} {ident} eliminad{self._suffix()} exitosamente"

    def _select(self) -> str:
        return f"SELECT {self.columns} FROM {self.table}"

    def _find_many(
        self, where: str, params: Sequence[Any] = (), order: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        sql = f"{self._select()} WHERE {where} ORDER BY {order or self.key}"
        return self.db.fetch_all(sql, params)

    def _validate(self, payload: Any, updating: bool = False) -> Dict[str, Any]:
        return require_valid(self.create_model, self.update_model, payload, updating=updating)

    def _prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return values

    def _check_unique(self, values: Dict[str, Any], ident: Optional[int] = None) -> None:
        if ident is None and self.key in values and self.exists(values[self.key]):
            raise ValidationError(
                [f"{self.entity} con {self.key_label} {values[self.key]} ya existe."]
            )

    def _check_references(self, values: Dict[str, Any]) -> None:
        for reference in self.references:
            target = values.get(reference.field)
            if target is None:
                continue
            if not reference.repository.exists(target):
                raise NotFoundError(reference.message.format(ident=target))

    def exists(self, ident: Any) -> bool:
        sql = f"SELECT 1 FROM {self.table} WHERE {self.key} = ?"
        return self.db.fetch_one(sql, (ident,)) is not None

    def create(self, payload: Any) -> Dict[str, Any]:
        values = self._validate(payload)
        self._check_unique(values)
        self._check_references(values)
        values = self._prepare(values)
        sql, params = insert_statement(self.table, values)
        result = self.db.execute(sql, params)
        return self.find_by_id(values.get(self.key, result.lastrowid))

    def get_all(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"{self._select()} ORDER BY {self.key}")

    def find_by_id(self, ident: Any) -> Dict[str, Any]:
        ident = validate_identifier(ident)
        record = self.db.fetch_one(f"{self._select()} WHERE {self.key} = ?", (ident,))
        if not record:
            raise self._not_found(ident)
        return record

    def update_by_id(self, ident: Any, payload: Any) -> Dict[str, Any]:
        ident = validate_identifier(ident)
        values = self._validate(payload, updating=True)
        self._check_unique(values, ident)
        self._check_references(values)
        values = self._prepare(values)
        sql, params = update_statement(self.table, self.key, values, ident)
        if self.db.execute(sql, params).rowcount == 0:
            raise self._not_found(ident)
        return self.find_by_id(ident)

    def remove_by_id(self, ident: Any) -> int:
        ident = validate_identifier(ident)
        result = self.db.execute(f"DELETE FROM {self.table} WHERE {self.key} = ?", (ident,))
        if result.rowcount == 0:
            raise self._not_found(ident)
        return ident


class RoleRepository(Repository):
    table = "rol"
    key = "idRol"
    entity = "Rol"
    create_model = models.RoleCreate
    update_model = models.RoleUpdate

    def find_by_description(self, text: str) -> List[Dict[str, Any]]:
        return self._find_many("descripcion_rol LIKE ?", (_like(text),))


class PersonRepository(Repository):
    table = "persona"
    key = "idPersona"
    entity = "Persona"
    feminine = True
    create_model = models.PersonCreate
    update_model = models.PersonUpdate

    def find_by_carnet(self, carnet: str) -> List[Dict[str, Any]]:
        return self._find_many("carnet_identidad = ?", (carnet,))

    def find_by_name(self, name: str) -> List[Dict[str, Any]]:
        return self._find_many("nombre LIKE ?", (_like(name),))

    def find_by_first_surname(self, surname: str) -> List[Dict[str, Any]]:
        return self._find_many("apellido1 LIKE ?", (_like(surname),))

    def find_by_second_surname(self, surname: str) -> List[Dict[str, Any]]:
        return self._find_many("apellido2 LIKE ?", (_like(surname),))

    def get_all_sorted_by_name(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"{self._select()} ORDER BY nombre, apellido1, apellido2")

    def get_all_sorted_by_surnames(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"{self._select()} ORDER BY apellido1, apellido2, nombre")


USER_DETAILS_SQL = """
    SELECT u.idUsuario, u.nombre_usuario, u.rol_usuario, r.descripcion_rol,
           p.nombre, p.apellido1, p.apellido2, p.email
    FROM usuario u
    LEFT JOIN rol r ON r.idRol = u.rol_usuario
    LEFT JOIN persona p ON p.idPersona = u.idUsuario
"""


class UserRepository(Repository):
    """Users never expose ``contrasena`` except through :meth:`find_credentials`."""

    table = "usuario"
    key = "idUsuario"
    entity = "Usuario"
    columns = "idUsuario, nombre_usuario, rol_usuario"
    create_model = models.UserCreate
    update_model = models.UserUpdate

    def __init__(self, db: Database, roles: RoleRepository, password_rounds: int = 10):
        super().__init__(db)
        self.password_rounds = password_rounds
        self.references = [Reference("rol_usuario", roles, "Rol con ID {ident} no encontrado")]

    def _prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if "contrasena" in values:
            values = {**values, "contrasena": hash_password(values["contrasena"], self.password_rounds)}
        return values

    def _check_unique(self, values: Dict[str, Any], ident: Optional[int] = None) -> None:
        super()._check_unique(values, ident)
        username = values.get("nombre_usuario")
        if username is None:
            return
        existing = self.db.fetch_one(
            "SELECT idUsuario FROM usuario WHERE nombre_usuario = ?", (username,)
        )
        if existing and existing["idUsuario"] != ident:
            raise ValidationError(["El nombre de usuario ya está registrado."])

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return self.db.fetch_one(f"{self._select()} WHERE nombre_usuario = ?", (username,))

    def find_credentials(self, username: str) -> Optional[Dict[str, Any]]:
        return self.db.fetch_one(
            "SELECT idUsuario, nombre_usuario, contrasena, rol_usuario FROM usuario WHERE nombre_usuario = ?",
            (username,),
        )

    def get_all_sorted_by_name(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"{self._select()} ORDER BY nombre_usuario")

    def get_all_with_details(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"{USER_DETAILS_SQL} ORDER BY u.idUsuario")

    def find_details_by_id(self, ident: Any) -> Dict[str, Any]:
        ident = validate_identifier(ident)
        record = self.db.fetch_one(f"{USER_DETAILS_SQL} WHERE u.idUsuario = ?", (ident,))
        if not record:
            raise self._not_found(ident)
        return record

    def update_with_email(self, ident: Any, payload: Any) -> Dict[str, Any]:
        """Update user fields and the linked person's e-mail in one transaction."""
        ident = validate_identifier(ident)
        if not isinstance(payload, dict):
            raise ValidationError([INVALID_BODY_MESSAGE])
        user_payload = {name: value for name, value in payload.items() if name != "email"}
        user_values, errors = validate_fields(
            self.create_model, self.update_model, user_payload, updating=True, require_any=False
        )
        email_values: Dict[str, Any] = {}
        if "email" in payload:
            email_values, email_errors = validate_fields(
                models.EmailUpdate, models.EmailUpdate, {"email": payload["email"]}, updating=True
            )
            errors.extend(email_errors)
        if not payload:
            errors.append(NO_FIELDS_MESSAGE)
        if errors:
            raise ValidationError(errors)

        self.find_by_id(ident)
        self._check_unique(user_values, ident)
        self._check_references(user_values)
        if email_values and not self.db.fetch_one(
            "SELECT 1 FROM persona WHERE idPersona = ?", (ident,)
        ):
            raise NotFoundError(f"Persona con ID {ident} no encontrada")

        user_values = self._prepare(user_values)
        with self.db.transaction() as conn:
            if user_values:
                sql, params = update_statement(self.table, self.key, user_values, ident)
                self.db.execute(sql, params, conn=conn)
            if email_values:
                sql, params = update_statement("persona", "idPersona", email_values, ident)
                self.db.execute(sql, params, conn=conn)
        return self.find_details_by_id(ident)


class PatientRepository(Repository):
    table = "paciente"
    key = "NHC"
    entity = "Paciente"
    key_label = "NHC"
    create_model = models.PatientCreate
    update_model = models.PatientUpdate

    def __init__(self, db: Database, persons: PersonRepository):
        super().__init__(db)
        self.persons = persons
        self.references = [Reference("NHC", persons, "Persona con ID {ident} no encontrada")]

    def find_with_person(self, nhc: Any) -> Dict[str, Any]:
        nhc = validate_identifier(nhc)
        record = self.db.fetch_one(
            """
            SELECT pe.*, pa.NHC, pa.tutor_info, pa.grado, pa.otra_info
            FROM paciente pa
            JOIN persona pe ON pe.idPersona = pa.NHC
            WHERE pa.NHC = ?
            """,
            (nhc,),
        )
        if not record:
            raise self._not_found(nhc)
        return record

    def _split_bundle(self, payload: Any, updating: bool) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        if not isinstance(payload, dict):
            raise ValidationError([INVALID_BODY_MESSAGE])
        errors = [
            f"El campo '{name}' no está permitido."
            for name in payload
            if name not in {"persona", "paciente"}
        ]
        person_payload = payload.get("persona", {} if updating else None)
        patient_payload = payload.get("paciente", {})
        person_values: Dict[str, Any] = {}
        patient_values: Dict[str, Any] = {}
        if not isinstance(person_payload, dict):
            errors.append("Los datos de la persona son requeridos.")
        else:
            person_values, person_errors = validate_fields(
                self.persons.create_model,
                self.persons.update_model,
                person_payload,
                updating=updating,
                require_any=False,
            )
            errors.extend(person_errors)
        if not isinstance(patient_payload, dict):
            errors.append("Los datos del paciente deben ser un objeto.")
        else:
            patient_values, patient_errors = validate_fields(
                self.update_model, self.update_model, patient_payload, require_any=False
            )
            errors.extend(patient_errors)
        if updating and not errors and not person_values and not patient_values:
            errors.append(NO_FIELDS_MESSAGE)
        if errors:
            raise ValidationError(errors)
        return person_values, patient_values

    def create_with_person(self, payload: Any) -> Dict[str, Any]:
        """Insert a person and its patient row atomically; NHC is the new person id."""
        person_values, patient_values = self._split_bundle(payload, updating=False)
        self.persons._check_unique(person_values)
        with self.db.transaction() as conn:
            sql, params = insert_statement(self.persons.table, person_values)
            result = self.db.execute(sql, params, conn=conn)
            nhc = person_values.get("idPersona", result.lastrowid)
            sql, params = insert_statement(self.table, {"NHC": nhc, **patient_values})
            self.db.execute(sql, params, conn=conn)
        logger.info("Created patient %s with person record", nhc)
        return self.find_with_person(nhc)

    def update_with_person(self, nhc: Any, payload: Any) -> Dict[str, Any]:
        """Patch the person and patient halves together or not at all."""
        nhc = validate_identifier(nhc)
        person_values, patient_values = self._split_bundle(payload, updating=True)
        self.find_by_id(nhc)
        with self.db.transaction() as conn:
            if person_values:
                sql, params = update_statement(self.persons.table, self.persons.key, person_values, nhc)
                self.db.execute(sql, params, conn=conn)
            if patient_values:
                sql, params = update_statement(self.table, self.key, patient_values, nhc)
                self.db.execute(sql, params, conn=conn)
        return self.find_with_person(nhc)


class MedicationRepository(Repository):
    table = "medicamento"
    key = "idMedicamento"
    entity = "Medicamento"
    create_model = models.MedicationCreate
    update_model = models.MedicationUpdate

    def _check_unique(self, values: Dict[str, Any], ident: Optional[int] = None) -> None:
        name = values.get("nombre_medicamento")
        if name is None:
            return
        existing = self.db.fetch_one(
            "SELECT idMedicamento FROM medicamento WHERE nombre_medicamento = ?", (name,)
        )
        if existing and existing["idMedicamento"] != ident:
            raise ValidationError(["Ya existe un medicamento con ese nombre."])

    def find_by_name(self, name: str) -> List[Dict[str, Any]]:
        return self._find_many("nombre_medicamento LIKE ?", (_like(name),))

    def find_by_active_ingredient(self, ingredient: str) -> List[Dict[str, Any]]:
        return self._find_many("principio_activo LIKE ?", (_like(ingredient),))


class InventoryRepository(Repository):
    table = "inventario_medicamentos"
    key = "idInventario"
    entity = "Inventario"
    create_model = models.InventoryCreate
    update_model = models.InventoryUpdate

    def __init__(self, db: Database, medications: MedicationRepository):
        super().__init__(db)
        self.references = [
            Reference("idMedicamento", medications, "Medicamento con ID {ident} no encontrado")
        ]

    def find_by_medication(self, medication_id: Any) -> List[Dict[str, Any]]:
        medication_id = validate_identifier(medication_id)
        return self._find_many("idMedicamento = ?", (medication_id,))


class ScheduleRepository(Repository):
    table = "agenda"
    key = "idAgenda"
    entity = "Agenda"
    feminine = True
    create_model = models.ScheduleCreate
    update_model = models.ScheduleUpdate

    def find_by_description(self, text: str) -> List[Dict[str, Any]]:
        return self._find_many("descripcion LIKE ?", (_like(text),))


APPOINTMENT_DETAILS_SQL = """
    SELECT c.idCita, c.fecha, c.hora, c.NHC_paciente, c.doctor_id, c.agenda_id, c.informacion_cita,
           pe.nombre AS nombre_paciente,
           pe.apellido1 AS apellido1_paciente,
           pe.apellido2 AS apellido2_paciente,
           COALESCE(TRIM(dp.nombre || ' ' || dp.apellido1), u.nombre_usuario) AS nombre_doctor,
           a.descripcion AS descripcion_agenda
    FROM cita c
    LEFT JOIN persona pe ON pe.idPersona = c.NHC_paciente
    LEFT JOIN usuario u ON u.idUsuario = c.doctor_id
    LEFT JOIN persona dp ON dp.idPersona = c.doctor_id
    LEFT JOIN agenda a ON a.idAgenda = c.agenda_id
"""


def week_bounds(today: date) -> Tuple[date, date]:
    """Return the Monday and Sunday of the week containing ``today``."""
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


class AppointmentRepository(Repository):
    table = "cita"
    key = "idCita"
    entity = "Cita"
    feminine = True
    create_model = models.AppointmentCreate
    update_model = models.AppointmentUpdate

    def __init__(
        self,
        db: Database,
        patients: PatientRepository,
        users: UserRepository,
        schedules: ScheduleRepository,
    ):
        super().__init__(db)
        self.references = [
            Reference("NHC_paciente", patients, "Paciente con NHC {ident} no encontrado"),
            Reference("doctor_id", users, "Médico con ID {ident} no encontrado"),
            Reference("agenda_id", schedules, "Agenda con ID {ident} no encontrada"),
        ]

    def find_by_patient(self, nhc: Any) -> List[Dict[str, Any]]:
        return self._find_many("NHC_paciente = ?", (validate_identifier(nhc),), order="fecha, hora")

    def find_by_doctor(self, doctor_id: Any) -> List[Dict[str, Any]]:
        return self._find_many("doctor_id = ?", (validate_identifier(doctor_id),), order="fecha, hora")

    def find_by_schedule(self, schedule_id: Any) -> List[Dict[str, Any]]:
        return self._find_many("agenda_id = ?", (validate_identifier(schedule_id),), order="fecha, hora")

    def find_by_schedule_name(self, name: str) -> List[Dict[str, Any]]:
        return self.db.fetch_all(
            f"{APPOINTMENT_DETAILS_SQL} WHERE a.descripcion LIKE ? ORDER BY c.fecha, c.hora, c.idCita",
            (_like(name),),
        )

    def get_all_with_details(self) -> List[Dict[str, Any]]:
        return self.db.fetch_all(f"{APPOINTMENT_DETAILS_SQL} ORDER BY c.fecha, c.hora, c.idCita")

    def _range(
        self, start: Optional[date], end: Optional[date], today: Optional[date]
    ) -> Tuple[date, date]:
        if start is None or end is None:
            return week_bounds(today or date.today())
        if start > end:
            raise ValidationError(["La fecha de inicio no puede ser posterior a la fecha de fin."])
        return start, end

    def find_by_date_range(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Appointments between ``start`` and ``end``; the current week when either is missing."""
        start, end = self._range(start, end, today)
        return self._find_many(
            "fecha BETWEEN ? AND ?", (start.isoformat(), end.isoformat()), order="fecha, hora"
        )

    def get_current_week_with_details(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        start, end = week_bounds(today or date.today())
        return self.db.fetch_all(
            f"{APPOINTMENT_DETAILS_SQL} WHERE c.fecha BETWEEN ? AND ? ORDER BY c.fecha, c.hora, c.idCita",
            (start.isoformat(), end.isoformat()),
        )


class EpisodeRepository(Repository):
    table = "episodio"
    key = "idEpisodio"
    entity = "Episodio"
    create_model = models.EpisodeCreate
    update_model = models.EpisodeUpdate

    def __init__(self, db: Database, patients: PatientRepository, users: UserRepository):
        super().__init__(db)
        self.references = [
            Reference("NHC_paciente", patients, "Paciente con NHC {ident} no encontrado"),
            Reference("Medico", users, "Médico con ID {ident} no encontrado"),
        ]

    def find_by_patient(self, nhc: Any) -> List[Dict[str, Any]]:
        return self._find_many("NHC_paciente = ?", (validate_identifier(nhc),))


class HealthRecordRepository(Repository):
    table = "hce"
    key = "NHC_paciente"
    entity = "HCE"
    feminine = True
    key_label = "NHC"
    create_model = models.HealthRecordCreate
    update_model = models.HealthRecordUpdate

    def __init__(self, db: Database, persons: PersonRepository, patients: PatientRepository):
        super().__init__(db)
        self.references = [
            Reference("NHC_paciente", persons, "Persona con ID {ident} no encontrada"),
            Reference("NHC_paciente", patients, "Paciente con NHC {ident} no encontrado"),
        ]


class AnthropometricRepository(Repository):
    table = "datos_antropometricos"
    key = "idDatoAntropometrico"
    entity = "Dato antropométrico"
    create_model = models.AnthropometricCreate
    update_model = models.AnthropometricUpdate

    def __init__(self, db: Database, patients: PatientRepository):
        super().__init__(db)
        self.references = [
            Reference("NHC_paciente", patients, "Paciente con NHC {ident} no encontrado")
        ]

    def find_by_patient(self, nhc: Any) -> List[Dict[str, Any]]:
        return self._find_many(
            "NHC_paciente = ?", (validate_identifier(nhc),), order="fecha_registro, idDatoAntropometrico"
        )


class PrescriptionRepository(Repository):
    table = "receta"
    key = "idReceta"
    entity = "Receta"
    feminine = True
    create_model = models.PrescriptionCreate
    update_model = models.PrescriptionUpdate

    def __init__(
        self,
        db: Database,
        patients: PatientRepository,
        medications: MedicationRepository,
        users: UserRepository,
    ):
        super().__init__(db)
        self.references = [
            Reference("nhc_paciente", patients, "Paciente con NHC {ident} no encontrado"),
            Reference("id_medicamento", medications, "Medicamento con ID {ident} no encontrado"),
            Reference("id_medico", users, "Médico con ID {ident} no encontrado"),
        ]

    def find_by_patient(self, nhc: Any) -> List[Dict[str, Any]]:
        return self._find_many("nhc_paciente = ?", (validate_identifier(nhc),))

    def find_by_medication(self, medication_id: Any) -> List[Dict[str, Any]]:
        return self._find_many("id_medicamento = ?", (validate_identifier(medication_id),))


@dataclass
class Repositories:
    roles: RoleRepository
    persons: PersonRepository
    users: UserRepository
    patients: PatientRepository
    medications: MedicationRepository
    inventory: InventoryRepository
    schedules: ScheduleRepository
    appointments: AppointmentRepository
    episodes: EpisodeRepository
    health_records: HealthRecordRepository
    anthropometrics: AnthropometricRepository
    prescriptions: PrescriptionRepository


def build_repositories(db: Database, *, password_rounds: int = 10) -> Repositories:
    roles = RoleRepository(db)
    persons = PersonRepository(db)
    users = UserRepository(db, roles, password_rounds)
    patients = PatientRepository(db, persons)
    medications = MedicationRepository(db)
    schedules = ScheduleRepository(db)
    return Repositories(
        roles=roles,
        persons=persons,
        users=users,
        patients=patients,
        medications=medications,
        inventory=InventoryRepository(db, medications),
        schedules=schedules,
        appointments=AppointmentRepository(db, patients, users, schedules),
        episodes=EpisodeRepository(db, patients, users),
        health_records=HealthRecordRepository(db, persons, patients),
        anthropometrics=AnthropometricRepository(db, patients),
        prescriptions=PrescriptionRepository(db, patients, medications, users),
    )
