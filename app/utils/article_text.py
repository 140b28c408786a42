"""
Utilidades de texto para los artículos generados: conteo de palabras,
lectura tolerante del JSON del modelo y conversión de markdown simple a HTML.
"""
import json
import re
from html import escape
from typing import Any, Dict, Optional
from urllib.parse import urlparse

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_BULLET_RE = re.compile(r"^-\s*(.+)$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_LEADING_HASHES_RE = re.compile(r"^#{1,6}\s+")

VALID_STATUSES = ("draft", "published", "archived")


class ModelOutputError(ValueError):
    """El texto del modelo no contiene un objeto JSON utilizable"""
    pass


def count_words(text: Optional[str]) -> int:
    if not text or not isinstance(text, str):
        return 0
    return len(text.split())


def _clean(text: str) -> str:
    cleaned = _FENCE_RE.sub("", text).strip()
    match = _OBJECT_RE.search(cleaned)
    if match:
        cleaned = match.group(0)
    return _TRAILING_COMMA_RE.sub(r"\1", cleaned)


def _salvage_field(text: str, name: str) -> Optional[str]:
    match = (re.search(rf'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"', text)
             or re.search(rf"\"{name}\"\s*:\s*'([^']*)'", text))
    if not match:
        return None
    value = match.group(1)
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value


def safe_json_parse(text: str) -> Dict[str, Any]:
    """
    Lee el objeto JSON de una respuesta del modelo.

    Intenta en orden: el texto sin bloques de código, el primer {...} sin comas
    finales, y por último rescata title/description/article con expresiones
    regulares. Lanza ModelOutputError si nada funciona.
    """
    if not text or not isinstance(text, str):
        raise ModelOutputError("Invalid input: text must be a non-empty string")

    candidates = [_FENCE_RE.sub("", text).strip(), _clean(text)]
    for candidate in candidates:
        try:
            parsed = json.loads(candidate, strict=False)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    salvaged = {name: _salvage_field(text, name) for name in ("title", "description", "article")}
    if any(salvaged.values()):
        return {name: value or "" for name, value in salvaged.items()}

    if not _OBJECT_RE.search(text):
        raise ModelOutputError("Invalid JSON from model: No JSON object found")
    raise ModelOutputError("Invalid JSON from model: could not parse object")


def _inline(text: str) -> str:
    parts = _BOLD_RE.split(text)
    # split con un grupo alterna texto normal y texto en negrita
    return "".join(
        f"<strong>{escape(part)}</strong>" if i % 2 else escape(part)
        for i, part in enumerate(parts)
    )


def convert_to_html(article: Optional[str]) -> str:
    """
    Convierte el markdown simple del modelo a HTML escapado.
    Encabezados # y ## pasan a h2, ### o más a h3; bloques con viñetas "-"
    pasan a <ul>; el resto son párrafos.
    """
    if not article or not isinstance(article, str):
        return ""

    html = ['<div class="article-body">']
    for block in re.split(r"\n\s*\n+", article):
        lines = [line.strip() for line in block.strip().split("\n") if line.strip()]
        if not lines:
            continue

        if len(lines) == 1:
            heading = _HEADING_RE.match(lines[0])
            if heading:
                tag = "h2" if len(heading.group(1)) <= 2 else "h3"
                html.append(f"<{tag}>{_inline(heading.group(2).strip())}</{tag}>")
                continue

        if any(line.startswith("- ") or line == "-" for line in lines):
            items = []
            for line in lines:
                bullet = _BULLET_RE.match(line)
                if bullet:
                    item = _LEADING_HASHES_RE.sub("", bullet.group(1).strip())
                    items.append(f"<li>{_inline(item)}</li>")
            html.append(f"<ul>{''.join(items)}</ul>")
        else:
            html.append(f"<p>{_inline(' '.join(lines))}</p>")

    html.append("</div>")
    return "".join(html)


def is_valid_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_headline(headline: Optional[str]) -> Optional[str]:
    """Devuelve el mensaje de error o None si el titular es válido."""
    if not headline or not isinstance(headline, str):
        return "Headline must be a non-empty string"
    trimmed = headline.strip()
    if not trimmed:
        return "Headline cannot be empty"
    if len(trimmed) > 500:
        return "Headline must be 500 characters or less"
    return None


def validate_category(category: Optional[str]) -> Optional[str]:
    if not category or not isinstance(category, str):
        return "Category must be a non-empty string"
    trimmed = category.strip()
    if not trimmed:
        return "Category cannot be empty"
    if len(trimmed) > 100:
        return "Category must be 100 characters or less"
    return None


def build_excerpt(description: Optional[str], article: str, max_length: int = 500) -> str:
    excerpt = (description or (article[:200] + "...")).strip()
    if len(excerpt) > max_length:
        excerpt = excerpt[:max_length - 3].strip() + "..."
    return excerpt
