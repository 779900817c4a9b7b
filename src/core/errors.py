"""Taxonomía de errores del orquestador.

Por qué un módulo propio:
- Cada fallo relevante tiene un `ErrorKind` distinguible para la CLI.
- La clasificación por substrings del mensaje (lo único que expone hoy el
  servicio) vive en UNA función: `classify_error`. Si el servicio llega a
  exponer códigos estructurados, solo cambia esta función.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"
    TIMEOUT = "TIMEOUT"
    ACCESS_DENIED = "ACCESS_DENIED"
    GENERATION_EMPTY = "GENERATION_EMPTY"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    CREDENTIAL_INVALID = "CREDENTIAL_INVALID"
    UNCLASSIFIED = "UNCLASSIFIED"


# Orden irrelevante: basta con que aparezca uno (case-insensitive).
ACCESS_ERROR_MARKERS: tuple[str, ...] = (
    "requested entity was not found",
    "not found",
    "permission",
    "denied",
    "not authorized",
)

INVALID_CREDENTIAL_MARKER = "entity was not found"


class NineCutError(Exception):
    """Error base con `kind` explícito."""

    kind: ErrorKind = ErrorKind.UNCLASSIFIED

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind.value)

    @property
    def message(self) -> str:
        return str(self)


class CredentialMissingError(NineCutError):
    kind = ErrorKind.CREDENTIAL_MISSING


class RequestTimeoutError(NineCutError):
    kind = ErrorKind.TIMEOUT


class GenerationEmptyError(NineCutError):
    kind = ErrorKind.GENERATION_EMPTY


class MalformedResponseError(NineCutError):
    kind = ErrorKind.MALFORMED_RESPONSE


class CredentialInvalidError(NineCutError):
    kind = ErrorKind.CREDENTIAL_INVALID


def error_message(error: BaseException) -> str:
    # google.genai.errors.APIError guarda el texto útil en `.message`.
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return f"{message} {error}"
    return str(error)


def classify_error(error: BaseException) -> ErrorKind:
    """Mapea cualquier excepción a un `ErrorKind`.

    - Errores propios: su `kind`.
    - Resto: `ACCESS_DENIED` si el mensaje contiene algún marcador de acceso,
      si no `UNCLASSIFIED`.
    """

    if isinstance(error, NineCutError):
        return error.kind

    text = error_message(error).lower()
    if any(marker in text for marker in ACCESS_ERROR_MARKERS):
        return ErrorKind.ACCESS_DENIED
    return ErrorKind.UNCLASSIFIED


def is_access_error(error: BaseException) -> bool:
    """True para fallos que justifican bajar de tier (timeout o acceso)."""

    return classify_error(error) in (ErrorKind.TIMEOUT, ErrorKind.ACCESS_DENIED)


def is_invalid_credential_error(error: BaseException) -> bool:
    return INVALID_CREDENTIAL_MARKER in error_message(error).lower()
