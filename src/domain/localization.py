"""Fixed user-facing fallback messages produced by the check-in core."""

from __future__ import annotations

from src.core.config import get_settings
from src.domain.models import Language

MESSAGES: dict[str, dict[Language, str]] = {
    "connection_error": {
        Language.EN: "AI connection error.",
        Language.PT: "Erro na conexão com IA ou chave inválida.",
        Language.ES: "Error de conexión con la IA.",
    },
    "retry_later": {
        Language.EN: "Try again later.",
        Language.PT: "Tente novamente mais tarde.",
        Language.ES: "Inténtalo de nuevo más tarde.",
    },
    "face_connection_error": {
        Language.EN: "AI Connection Error. Check Key.",
        Language.PT: "Erro de conexão com a IA. Verifique a chave.",
        Language.ES: "Error de conexión con la IA. Verifique la clave.",
    },
    "no_face": {
        Language.EN: "No face detected. Please retake the photo.",
        Language.PT: "Nenhum rosto detectado. Tire a foto novamente.",
        Language.ES: "No se detectó ningún rostro. Tome la foto de nuevo.",
    },
}

LANGUAGE_NAMES: dict[Language, str] = {
    Language.EN: "English",
    Language.PT: "Portuguese (Português do Brasil)",
    Language.ES: "Spanish (Español)",
}


def resolve_language(lang: Language | str | None) -> Language:
    """Return ``lang`` as a Language, falling back to the configured default."""
    if isinstance(lang, Language):
        return lang
    candidate = lang or get_settings().default_language
    try:
        return Language(candidate)
    except ValueError:
        return Language.EN


def message(key: str, lang: Language | str | None = None) -> str:
    return MESSAGES[key][resolve_language(lang)]
