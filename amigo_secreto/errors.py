from __future__ import annotations


class SecretFriendError(RuntimeError):
    """Base for every failure the API reports back as ``{"success": false}``."""

    status_code = 400
    message = "No se pudo completar la operación"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InsufficientParticipants(SecretFriendError):
    status_code = 422
    message = "Se necesitan al menos 2 participantes para hacer el sorteo"


class DrawAlreadyCompleted(SecretFriendError):
    status_code = 409
    message = "El sorteo ya fue realizado. Resetea el sorteo antes de volver a ejecutarlo"


class ValidationError(SecretFriendError):
    status_code = 400
    message = "Datos inválidos"

    def __init__(self, message: str | None = None, fields: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.fields = fields or {}


class NotFoundError(SecretFriendError):
    status_code = 404
    message = "No encontrado"


class StorageError(SecretFriendError):
    status_code = 500
    message = "Error interno del servidor"
