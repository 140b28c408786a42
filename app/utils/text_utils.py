import html
import re
from typing import Optional


def normalize_chapter_name(name: Optional[str]) -> str:
    """
    Normaliza un nombre de capítulo para compararlo:
    minúsculas, guiones como espacios y espacios colapsados.
    "Laws-of  Motion" -> "laws of motion"
    """
    if not name:
        return ""
    return re.sub(r"\s+", " ", name.replace("-", " ").lower()).strip()


def normalize_area(area: Optional[str]) -> str:
    """El área (categoría de examen) se guarda siempre en minúsculas."""
    return (area or "").strip().lower()


def normalize_category(category: Optional[str]) -> str:
    """Las categorías de preguntas se guardan en mayúsculas (GATE-CSE)."""
    return (category or "").strip().upper()


def slugify(value: Optional[str]) -> str:
    """
    Convierte un texto en slug: minúsculas, solo letras/números y guiones.
    """
    if not value:
        return ""
    value = re.sub(r"[()\[\]{}]", "", value)
    value = re.sub(r"[^\w\s-]", "", value.lower())
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def upper_slug(value: Optional[str]) -> str:
    return slugify(value).upper()


def decode_html_entities(value: Optional[str]) -> str:
    """
    Decodifica entidades HTML, incluidas las doblemente codificadas
    (&amp;lt; -> <) que devuelve el banco de preguntas externo.
    """
    if not value:
        return ""
    decoded = html.unescape(value)
    if "&" in decoded:
        decoded = html.unescape(decoded)
    return decoded.replace("\xa0", " ")
