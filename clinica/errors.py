"""Typed failures raised by validators, repositories and the auth service.

Every error carries the HTTP status it maps to plus the ``mensaje``/``error``
pair rendered by the exception handlers registered in :mod:`clinica.app`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import status


class ClinicaError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "ErrorInterno"
    default_message: str = "Error interno del servidor."

    def __init__(self, mensaje: Optional[str] = None, *, detalles: Optional[str] = None):
        self.mensaje = mensaje or self.default_message
        self.detalles = detalles
        super().__init__(self.mensaje)

    def to_dict(self, expose_details: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"mensaje": self.mensaje, "error": self.code}
        if expose_details and self.detalles:
            body["error"] = self.detalles
        return body


class ValidationError(ClinicaError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ErrorValidacion"
    default_message = "Errores de validación"

    def __init__(self, errores: List[str], mensaje: Optional[str] = None):
        self.errores = list(errores)
        super().__init__(mensaje)

    def to_dict(self, expose_details: bool = False) -> Dict[str, Any]:
        body = super().to_dict(expose_details)
        body["errores"] = self.errores
        return body


class NotFoundError(ClinicaError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NoEncontrado"
    default_message = "Registro no encontrado."


class StorageError(ClinicaError):
    """Raised when the SQL driver rejects a statement."""

    code = "ErrorBaseDatos"
    default_message = "Error en la base de datos."


class AuthError(ClinicaError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NoAutorizado"
    default_message = "No autorizado."


class MissingCredentials(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "CamposRequeridos"
    default_message = "Nombre de usuario y contraseña son requeridos."


class UserNotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "UsuarioNoEncontrado"
    default_message = "Nombre de usuario no registrado."


class InvalidPassword(AuthError):
    code = "ContraseñaIncorrecta"
    default_message = "La contraseña es incorrecta, por favor revise los datos introducidos."


class MissingToken(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "TokenRequerido"
    default_message = "No se proporcionó token de autenticación."


class Unauthorized(AuthError):
    code = "TokenInvalido"
    default_message = "No autorizado. Token inválido o expirado."
