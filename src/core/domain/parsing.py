"""Extracción de IPv4 desde respuestas de servicios de eco.

Reglas genéricas (`parse_ip`), de más a menos específica:
1) el cuerpo completo (trim) ya es un dotted-quad válido;
2) una línea que empieza por `ip=` (Cloudflare trace);
3) la primera subcadena con forma de IPv4 en cualquier parte del cuerpo.

`parse_response` aplica primero el formato declarado por el endpoint y, si no
produce nada, la cadena genérica completa (1, 2, 3) como respaldo. Un servicio
"plain" que responde con un trace sigue resolviendo por la línea `ip=`.
"""

from __future__ import annotations

import re

from core.domain.endpoints import ResponseFormat

_IPV4_RE = re.compile(r"\b(?:[0-9]{1,3}\.){3}[0-9]{1,3}\b")
_LABEL_SEPARATORS = (":", "：")


def is_valid_ipv4(value: str) -> bool:
    parts = value.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not (part.isascii() and part.isdigit()) or len(part) > 3:
            return False
        if int(part) > 255:
            return False
    return True


def _whole_body(body: str) -> str:
    trimmed = body.strip()
    return trimmed if is_valid_ipv4(trimmed) else ""


def _trace_line(body: str) -> str:
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("ip="):
            candidate = line.split("=", 1)[1].strip()
            return candidate if is_valid_ipv4(candidate) else ""
    return ""


def _split_label(line: str) -> tuple[str, str]:
    positions = [idx for idx in (line.find(sep) for sep in _LABEL_SEPARATORS) if idx >= 0]
    if not positions:
        return "", ""
    cut = min(positions)
    return line[:cut], line[cut + 1 :].strip()


def _labeled_line(body: str) -> str:
    """`IP\\t: 1.2.3.4` o `当前 IP：1.2.3.4  来自于：...`."""

    for line in body.splitlines():
        label, remainder = _split_label(line.strip())
        if "IP" not in label or not remainder:
            continue
        candidate = remainder.split()[0]
        if is_valid_ipv4(candidate):
            return candidate
    return ""


def _first_match(body: str) -> str:
    for match in _IPV4_RE.finditer(body):
        if is_valid_ipv4(match.group(0)):
            return match.group(0)
    return ""


def _dns_answer(body: str) -> str:
    # `dig +short` puede devolver TXT entre comillas o varias líneas.
    for line in body.splitlines():
        candidate = line.strip().strip('"')
        if is_valid_ipv4(candidate):
            return candidate
    return ""


def parse_ip(body: str) -> str:
    """Aplica las reglas genéricas; devuelve "" si no hay IPv4."""

    if not body:
        return ""
    return _whole_body(body) or _trace_line(body) or _first_match(body)


_FORMAT_PARSERS = {
    ResponseFormat.PLAIN_IP: _whole_body,
    ResponseFormat.CLOUDFLARE_TRACE: _trace_line,
    ResponseFormat.LABELED_LINE: _labeled_line,
    ResponseFormat.DNS_TXT: _dns_answer,
}


def parse_response(body: str, response_format: ResponseFormat) -> str:
    """Parser específico del formato declarado; si falla, las reglas genéricas en orden."""

    if not body:
        return ""
    return _FORMAT_PARSERS[response_format](body) or parse_ip(body)
