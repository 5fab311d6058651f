import pytest

from clinica import models
from clinica.errors import ValidationError
from clinica.validators import (
    INVALID_BODY_MESSAGE,
    NO_FIELDS_MESSAGE,
    parse_date,
    validate_anthropometric,
    validate_appointment,
    validate_episode,
    validate_fields,
    validate_identifier,
    validate_inventory,
    validate_person,
    validate_role,
)


def test_create_mode_reports_required_fields():
    assert validate_role({}) == ["La descripción del rol es requerida."]
    assert validate_appointment({"NHC_paciente": 1, "doctor_id": 1}) == ["El ID de la agenda es requerido."]
    assert validate_role({"descripcion_rol": "Médico"}) == []


def test_null_counts_as_missing_on_create():
    assert validate_role({"descripcion_rol": None}) == ["La descripción del rol es requerida."]


def test_update_mode_treats_fields_as_optional():
    assert validate_person({"telefono": "555"}, updating=True) == []
    assert validate_person({}, updating=True) == [NO_FIELDS_MESSAGE]
    assert validate_inventory({"cantidad_actual": None}, updating=True) == [
        "La cantidad actual no puede estar vacía."
    ]


def test_optional_fields_may_be_cleared():
    values, errors = validate_fields(
        models.PersonCreate, models.PersonUpdate, {"apellido2": None}, updating=True
    )
    assert errors == []
    assert values == {"apellido2": None}


def test_unknown_and_mistyped_fields():
    assert validate_person({"nombre": "A", "apellido1": "B", "edad": 3}) == [
        "El campo 'edad' no está permitido."
    ]
    assert validate_episode({"NHC_paciente": "abc", "Medico": 1}) == [
        "El NHC del paciente debe ser un número entero."
    ]
    assert validate_person({"nombre": "A", "apellido1": "B", "telefono": "9" * 21}) == [
        "El teléfono no puede superar 20 caracteres."
    ]


def test_non_object_payload():
    assert validate_role(["no", "objeto"]) == [INVALID_BODY_MESSAGE]
    assert validate_role(None, updating=True) == [INVALID_BODY_MESSAGE]


def test_values_are_converted_to_columns():
    values, errors = validate_fields(
        models.AppointmentCreate,
        models.AppointmentUpdate,
        {"NHC_paciente": "4", "doctor_id": 1, "agenda_id": 2, "fecha": "2024-05-13", "hora": "08:05:00"},
    )
    assert errors == []
    assert values == {
        "NHC_paciente": 4,
        "doctor_id": 1,
        "agenda_id": 2,
        "fecha": "2024-05-13",
        "hora": "08:05",
    }


def test_text_is_trimmed():
    values, _ = validate_fields(models.RoleCreate, models.RoleUpdate, {"descripcion_rol": "  Médico  "})
    assert values == {"descripcion_rol": "Médico"}


@pytest.mark.parametrize("value, expected", [("12", 12), (7, 7), (" 3 ", 3)])
def test_valid_identifiers(value, expected):
    assert validate_identifier(value) == expected


@pytest.mark.parametrize("value", ["0", "-1", "1.5", "abc", "", True, None, 0, "99999999999999999999", 2**63])
def test_invalid_identifiers(value):
    with pytest.raises(ValidationError) as excinfo:
        validate_identifier(value)
    assert excinfo.value.errores == ["El ID proporcionado es inválido."]


def test_integers_must_fit_in_a_column():
    assert validate_inventory({"idMedicamento": 2**63 - 1, "cantidad_actual": 10**20, "fecha_registro": "2024-01-01"}) == [
        "La cantidad actual está fuera de rango."
    ]


def test_booleans_are_not_integers():
    assert validate_inventory({"idMedicamento": True, "cantidad_actual": 1, "fecha_registro": "2024-01-01"}) == [
        "El ID del medicamento debe ser un número entero."
    ]


@pytest.mark.parametrize("value", ["inf", "-inf", "nan", float("inf")])
def test_measurements_must_be_finite(value):
    assert validate_anthropometric({"NHC_paciente": 1, "peso": value}) == ["El peso debe ser un número finito."]


def test_parse_date():
    assert parse_date(None, "fechaInicio") is None
    assert parse_date("2024-05-13", "fechaInicio").isoformat() == "2024-05-13"
    with pytest.raises(ValidationError) as excinfo:
        parse_date("13/05/2024", "fechaFin")
    assert excinfo.value.errores == ["La fecha de fin debe ser una fecha válida (AAAA-MM-DD)."]
