"""Prompt template for the premium business advisory card."""

from __future__ import annotations

import json
from typing import Any, List, Mapping

SYSTEM_PROMPT = (
    "Actúas como consultor experto de pequeños comercios en Chile. "
    "Respondes en español, con tono cercano y concreto, sin prometer resultados financieros."
)

USER_PROMPT_TEMPLATE = """Analiza el siguiente resumen del negocio (ventas, inventario y alertas de stock):

{summary}

Instrucciones:
- Genera un único bloque HTML con clases de Tailwind CSS (sin <html>, <head> ni <body>).
- Estructura: Saludo, Hallazgo principal, Acción recomendada.
- Sé breve: máximo tres párrafos cortos.
- No incluyas bloques de código ni explicaciones fuera del HTML."""


def render_summary(summary: Mapping[str, Any]) -> str:
    return json.dumps(summary, ensure_ascii=False, default=str)


def get_prompt(summary: Mapping[str, Any]) -> List[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(summary=render_summary(summary))},
    ]


__all__ = ["get_prompt", "render_summary"]
