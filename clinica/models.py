"""Pydantic models describing the clinical records payloads."""
from __future__ import annotations

from datetime import date, time
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic_core import PydanticCustomError

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
# SQLite INTEGER is a signed 64-bit value
MAX_INTEGER = 2**63 - 1


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise PydanticCustomError("int_type", "Input should be a valid integer")
    return value


Integer = Annotated[int, BeforeValidator(_reject_bool)]


class Payload(BaseModel):
    """Shared config: unknown keys are rejected, text is trimmed and floats must be finite."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, allow_inf_nan=False)


# Roles

class RoleFields(Payload):
    descripcion_rol: Optional[str] = Field(None, min_length=1, max_length=100)


class RoleCreate(RoleFields):
    descripcion_rol: str = Field(..., min_length=1, max_length=100)


class RoleUpdate(RoleFields):
    pass


# Persons

class PersonFields(Payload):
    carnet_identidad: Optional[str] = Field(None, min_length=1, max_length=20)
    nombre: Optional[str] = Field(None, min_length=1, max_length=100)
    apellido1: Optional[str] = Field(None, min_length=1, max_length=100)
    apellido2: Optional[str] = Field(None, min_length=1, max_length=100)
    fecha_nacimiento: Optional[date] = None
    escuela: Optional[str] = Field(None, min_length=1, max_length=100)
    telefono: Optional[str] = Field(None, min_length=1, max_length=20)
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)
    departamento: Optional[str] = Field(None, min_length=1, max_length=50)
    municipio: Optional[str] = Field(None, min_length=1, max_length=50)
    colonia: Optional[str] = Field(None, min_length=1, max_length=50)
    direccion: Optional[str] = Field(None, min_length=1, max_length=255)


class PersonCreate(PersonFields):
    idPersona: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    nombre: str = Field(..., min_length=1, max_length=100)
    apellido1: str = Field(..., min_length=1, max_length=100)


class PersonUpdate(PersonFields):
    pass


# Users

class UserFields(Payload):
    nombre_usuario: Optional[str] = Field(None, min_length=1, max_length=50)
    contrasena: Optional[str] = Field(None, min_length=1, max_length=255)
    rol_usuario: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)


class UserCreate(UserFields):
    idUsuario: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    nombre_usuario: str = Field(..., min_length=1, max_length=50)
    contrasena: str = Field(..., min_length=1, max_length=255)
    rol_usuario: Integer = Field(..., gt=0, le=MAX_INTEGER)


class UserUpdate(UserFields):
    pass


class EmailUpdate(Payload):
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)


# Patients

class PatientFields(Payload):
    tutor_info: Optional[str] = Field(None, min_length=1, max_length=255)
    grado: Optional[str] = Field(None, min_length=1, max_length=50)
    otra_info: Optional[str] = Field(None, min_length=1)


class PatientCreate(PatientFields):
    NHC: Integer = Field(..., gt=0, le=MAX_INTEGER)


class PatientUpdate(PatientFields):
    pass


# Medications and stock

class MedicationFields(Payload):
    nombre_medicamento: Optional[str] = Field(None, min_length=1, max_length=100)
    principio_activo: Optional[str] = Field(None, min_length=1, max_length=100)
    descripcion_medicamento: Optional[str] = Field(None, min_length=1, max_length=255)
    fecha_caducidad: Optional[date] = None
    forma_dispensacion: Optional[str] = Field(None, min_length=1, max_length=100)


class MedicationCreate(MedicationFields):
    nombre_medicamento: str = Field(..., min_length=1, max_length=100)


class MedicationUpdate(MedicationFields):
    pass


class InventoryFields(Payload):
    idMedicamento: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    cantidad_actual: Optional[Integer] = Field(None, ge=0, le=MAX_INTEGER)
    fecha_registro: Optional[date] = None


class InventoryCreate(InventoryFields):
    idMedicamento: Integer = Field(..., gt=0, le=MAX_INTEGER)
    cantidad_actual: Integer = Field(..., ge=0, le=MAX_INTEGER)
    fecha_registro: date


class InventoryUpdate(InventoryFields):
    pass


# Schedules and appointments

class ScheduleFields(Payload):
    descripcion: Optional[str] = Field(None, min_length=1, max_length=100)
    horario: Optional[str] = Field(None, min_length=1, max_length=255)


class ScheduleCreate(ScheduleFields):
    descripcion: str = Field(..., min_length=1, max_length=100)


class ScheduleUpdate(ScheduleFields):
    pass


class AppointmentFields(Payload):
    fecha: Optional[date] = None
    hora: Optional[time] = None
    NHC_paciente: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    doctor_id: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    agenda_id: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    informacion_cita: Optional[str] = Field(None, min_length=1, max_length=255)


class AppointmentCreate(AppointmentFields):
    NHC_paciente: Integer = Field(..., gt=0, le=MAX_INTEGER)
    doctor_id: Integer = Field(..., gt=0, le=MAX_INTEGER)
    agenda_id: Integer = Field(..., gt=0, le=MAX_INTEGER)


class AppointmentUpdate(AppointmentFields):
    pass


# Clinical records

class EpisodeFields(Payload):
    NHC_paciente: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    Medico: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    fecha_episodio: Optional[date] = None
    tipo_asistencia: Optional[str] = Field(None, min_length=1, max_length=100)
    motivo_consulta: Optional[str] = Field(None, min_length=1, max_length=255)
    anamnesis: Optional[str] = Field(None, min_length=1)
    diagnostico: Optional[str] = Field(None, min_length=1)
    tratamiento: Optional[str] = Field(None, min_length=1)
    peso: Optional[float] = Field(None, gt=0)
    pa: Optional[str] = Field(None, min_length=1, max_length=20)
    spo2: Optional[float] = Field(None, ge=0, le=100)


class EpisodeCreate(EpisodeFields):
    NHC_paciente: Integer = Field(..., gt=0, le=MAX_INTEGER)
    Medico: Integer = Field(..., gt=0, le=MAX_INTEGER)


class EpisodeUpdate(EpisodeFields):
    pass


class HealthRecordFields(Payload):
    sexo: Optional[str] = Field(None, min_length=1, max_length=20)
    grupo_sanguineo: Optional[str] = Field(None, min_length=1, max_length=10)
    alergias: Optional[str] = Field(None, min_length=1)
    antecedentes_clinicos: Optional[str] = Field(None, min_length=1)


class HealthRecordCreate(HealthRecordFields):
    NHC_paciente: Integer = Field(..., gt=0, le=MAX_INTEGER)


class HealthRecordUpdate(HealthRecordFields):
    pass


class AnthropometricFields(Payload):
    NHC_paciente: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    fecha_registro: Optional[date] = None
    peso: Optional[float] = Field(None, gt=0)
    altura: Optional[float] = Field(None, gt=0)
    IMC: Optional[float] = Field(None, gt=0)
    circunferencia_cintura: Optional[float] = Field(None, gt=0)
    circunferencia_cadera: Optional[float] = Field(None, gt=0)
    circunferencia_cabeza: Optional[float] = Field(None, gt=0)


class AnthropometricCreate(AnthropometricFields):
    NHC_paciente: Integer = Field(..., gt=0, le=MAX_INTEGER)


class AnthropometricUpdate(AnthropometricFields):
    pass


class PrescriptionFields(Payload):
    nhc_paciente: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    id_medicamento: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    id_medico: Optional[Integer] = Field(None, gt=0, le=MAX_INTEGER)
    fecha_receta: Optional[date] = None
    recomendaciones: Optional[str] = Field(None, min_length=1)


class PrescriptionCreate(PrescriptionFields):
    nhc_paciente: Integer = Field(..., gt=0, le=MAX_INTEGER)
    id_medicamento: Integer = Field(..., gt=0, le=MAX_INTEGER)
    id_medico: Integer = Field(..., gt=0, le=MAX_INTEGER)


class PrescriptionUpdate(PrescriptionFields):
    pass


# Auth and responses

class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    nombre_usuario: Optional[str] = None
    contrasena: Optional[str] = None


class LoginResponse(BaseModel):
    auth: bool = True
    token: str


class Message(BaseModel):
    mensaje: str
