"""Input checks for every entity, reported as Spanish error lists.

The pydantic models in :mod:`clinica.models` describe field types and
limits; this module runs them and rewrites pydantic's error entries into the
messages returned to API clients. Nothing here touches the database.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from . import models
from .errors import ValidationError

NO_FIELDS_MESSAGE = "Debe proporcionar al menos un campo para actualizar."
INVALID_BODY_MESSAGE = "El cuerpo de la solicitud debe ser un objeto JSON."
INVALID_ID_MESSAGE = "El ID proporcionado es inválido."

# field -> (label, feminine)
FIELD_LABELS: Dict[str, Tuple[str, bool]] = {
    "descripcion_rol": ("La descripción del rol", True),
    "idPersona": ("El ID de la persona", False),
    "carnet_identidad": ("El carnet de identidad", False),
    "nombre": ("El nombre", False),
    "apellido1": ("El primer apellido", False),
    "apellido2": ("El segundo apellido", False),
    "fecha_nacimiento": ("La fecha de nacimiento", True),
    "escuela": ("La escuela", True),
    "telefono": ("El teléfono", False),
    "email": ("El email", False),
    "departamento": ("El departamento", False),
    "municipio": ("El municipio", False),
    "colonia": ("La colonia", True),
    "direccion": ("La dirección", True),
    "idUsuario": ("El ID del usuario", False),
    "nombre_usuario": ("El nombre de usuario", False),
    "contrasena": ("La contraseña", True),
    "rol_usuario": ("El rol del usuario", False),
    "NHC": ("El NHC", False),
    "tutor_info": ("La información del tutor", True),
    "grado": ("El grado", False),
    "otra_info": ("La información adicional", True),
    "nombre_medicamento": ("El nombre del medicamento", False),
    "principio_activo": ("El principio activo", False),
    "descripcion_medicamento": ("La descripción del medicamento", True),
    "fecha_caducidad": ("La fecha de caducidad", True),
    "forma_dispensacion": ("La forma de dispensación", True),
    "idMedicamento": ("El ID del medicamento", False),
    "cantidad_actual": ("La cantidad actual", True),
    "fecha_registro": ("La fecha de registro", True),
    "descripcion": ("La descripción", True),
    "horario": ("El horario", False),
    "fecha": ("La fecha", True),
    "hora": ("La hora", True),
    "NHC_paciente": ("El NHC del paciente", False),
    "nhc_paciente": ("El NHC del paciente", False),
    "doctor_id": ("El ID del médico", False),
    "Medico": ("El ID del médico", False),
    "id_medico": ("El ID del médico", False),
    "agenda_id": ("El ID de la agenda", False),
    "id_medicamento": ("El ID del medicamento", False),
    "informacion_cita": ("La información de la cita", True),
    "fecha_episodio": ("La fecha del episodio", True),
    "tipo_asistencia": ("El tipo de asistencia", False),
    "motivo_consulta": ("El motivo de consulta", False),
    "anamnesis": ("La anamnesis", True),
    "diagnostico": ("El diagnóstico", False),
    "tratamiento": ("El tratamiento", False),
    "peso": ("El peso", False),
    "pa": ("La presión arterial", True),
    "spo2": ("La saturación de oxígeno", True),
    "sexo": ("El sexo", False),
    "grupo_sanguineo": ("El grupo sanguíneo", False),
    "alergias": ("El campo de alergias", False),
    "antecedentes_clinicos": ("El campo de antecedentes clínicos", False),
    "altura": ("La altura", True),
    "IMC": ("El IMC", False),
    "circunferencia_cintura": ("La circunferencia de cintura", True),
    "circunferencia_cadera": ("La circunferencia de cadera", True),
    "circunferencia_cabeza": ("La circunferencia de cabeza", True),
    "fecha_receta": ("La fecha de la receta", True),
    "recomendaciones": ("El campo de recomendaciones", False),
    "persona": ("Los datos de la persona", False),
    "paciente": ("Los datos del paciente", False),
    "fechaInicio": ("La fecha de inicio", True),
    "fechaFin": ("La fecha de fin", True),
    "body": ("El cuerpo de la solicitud", False),
}


def _label(field: str) -> Tuple[str, bool]:
    return FIELD_LABELS.get(field, (f"El campo '{field}'", False))


def _agree(word: str, feminine: bool) -> str:
    return f"{word}a" if feminine else f"{word}o"


def describe_error(error: Dict[str, Any]) -> str:
    """Turn one pydantic error entry into a Spanish sentence."""
    names = [part for part in error.get("loc", ()) if isinstance(part, str)]
    field = names[-1] if names else ""
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    label, feminine = _label(field)

    if kind == "missing" or (error.get("input", ...) is None and kind.endswith("_type")):
        return f"{label} es {_agree('requerid', feminine)}."
    if kind == "json_invalid":
        return "El cuerpo de la solicitud no es un JSON válido."
    if kind == "extra_forbidden":
        return f"El campo '{field}' no está permitido."
    if kind == "string_too_short":
        return f"{label} no puede estar {_agree('vací', feminine)}."
    if kind == "string_too_long":
        return f"{label} no puede superar {ctx.get('max_length')} caracteres."
    if kind == "string_type":
        return f"{label} debe ser un texto."
    if kind == "string_pattern_mismatch":
        return f"{label} no tiene un formato válido."
    if kind.startswith("int"):
        return f"{label} debe ser un número entero."
    if kind == "finite_number":
        return f"{label} debe ser un número finito."
    if kind.startswith("float"):
        return f"{label} debe ser un número."
    if kind == "greater_than":
        if ctx.get("gt") == 0:
            return f"{label} debe ser un número positivo."
        return f"{label} debe ser mayor que {ctx.get('gt')}."
    if kind == "greater_than_equal":
        return f"{label} debe ser mayor o igual que {ctx.get('ge')}."
    if kind == "less_than_equal":
        if ctx.get("le") == models.MAX_INTEGER:
            return f"{label} está fuera de rango."
        return f"{label} debe ser menor o igual que {ctx.get('le')}."
    if kind.startswith("date"):
        return f"{label} debe ser una fecha válida (AAAA-MM-DD)."
    if kind.startswith("time"):
        return f"{label} debe ser una hora válida (HH:MM)."
    if kind in {"dict_type", "model_type", "model_attributes_type"}:
        if field in {"", "body"}:
            return INVALID_BODY_MESSAGE
        return f"{label} debe ser un objeto."
    return f"{label}: {error.get('msg', 'valor inválido')}."


def _to_column(value: Any) -> Any:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _required_fields(model: Type[BaseModel]) -> Iterable[str]:
    return [name for name, info in model.model_fields.items() if info.is_required()]


def validate_fields(
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    payload: Any,
    *,
    updating: bool = False,
    require_any: bool = True,
) -> Tuple[Dict[str, Any], List[str]]:
    """Validate ``payload`` and return ``(column_values, errors)``.

    In update mode every field is optional, explicit nulls on fields that
    are mandatory at creation are rejected, and (unless ``require_any`` is
    False) at least one field must be supplied.
    """
    if not isinstance(payload, dict):
        return {}, [INVALID_BODY_MESSAGE]
    errors: List[str] = []
    if updating:
        required = set(_required_fields(create_model)) & set(update_model.model_fields)
        for name, value in payload.items():
            if name in required and value is None:
                label, feminine = _label(name)
                errors.append(f"{label} no puede estar {_agree('vací', feminine)}.")
        if require_any and not payload:
            errors.append(NO_FIELDS_MESSAGE)
    model = update_model if updating else create_model
    try:
        parsed = model.model_validate(payload)
    except PydanticValidationError as exc:
        errors.extend(describe_error(error) for error in exc.errors())
        parsed = None
    if errors or parsed is None:
        return {}, errors
    values = {
        name: _to_column(getattr(parsed, name))
        for name in payload
        if name in parsed.model_fields_set
    }
    return values, []


def require_valid(
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    payload: Any,
    *,
    updating: bool = False,
    require_any: bool = True,
) -> Dict[str, Any]:
    values, errors = validate_fields(
        create_model, update_model, payload, updating=updating, require_any=require_any
    )
    if errors:
        raise ValidationError(errors)
    return values


def validate_identifier(value: Any) -> int:
    """Return ``value`` as a positive integer or raise ``ValidationError``."""
    ident: Optional[int] = None
    if isinstance(value, int) and not isinstance(value, bool):
        ident = value
    elif isinstance(value, str) and re.fullmatch(r"\d+", value.strip(), re.ASCII):
        ident = int(value.strip())
    if ident is None or ident <= 0 or ident > models.MAX_INTEGER:
        raise ValidationError([INVALID_ID_MESSAGE], mensaje=INVALID_ID_MESSAGE)
    return ident


def parse_date(value: Optional[str], field: str) -> Optional[date]:
    if value is None or not str(value).strip():
        return None
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        label, feminine = _label(field)
        message = f"{label} debe ser una fecha válida (AAAA-MM-DD)."
        raise ValidationError([message]) from None


# Per-entity checks returning only the error list. Repositories call
# require_valid directly because they also need the coerced values.


def validate_role(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(models.RoleCreate, models.RoleUpdate, payload, updating=updating)[1]


def validate_person(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(models.PersonCreate, models.PersonUpdate, payload, updating=updating)[1]


def validate_user(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(models.UserCreate, models.UserUpdate, payload, updating=updating)[1]


def validate_patient(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(models.PatientCreate, models.PatientUpdate, payload, updating=updating)[1]


def validate_medication(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(
        models.MedicationCreate, models.MedicationUpdate, payload, updating=updating
    )[1]


def validate_inventory(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(
        models.InventoryCreate, models.InventoryUpdate, payload, updating=updating
    )[1]


def validate_schedule(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(models.ScheduleCreate, models.ScheduleUpdate, payload, updating=updating)[1]


def validate_appointment(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(
        models.AppointmentCreate, models.AppointmentUpdate, payload, updating=updating
    )[1]


def validate_episode(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(models.EpisodeCreate, models.EpisodeUpdate, payload, updating=updating)[1]


def validate_health_record(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(
        models.HealthRecordCreate, models.HealthRecordUpdate, payload, updating=updating
    )[1]


def validate_anthropometric(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(
        models.AnthropometricCreate, models.AnthropometricUpdate, payload, updating=updating
    )[1]


def validate_prescription(payload: Any, updating: bool = False) -> List[str]:
    return validate_fields(
        models.PrescriptionCreate, models.PrescriptionUpdate, payload, updating=updating
    )[1]
