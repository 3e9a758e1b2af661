"""Редактирование текстов перед логированием (без сырых промптов и ключей)."""

import hashlib
import re

REDACTED_KEY = "[REDACTED_KEY]"

_SECRET_PATTERNS = (
    (re.compile(r"sk-[a-zA-Z0-9_*-]{8,}"), REDACTED_KEY),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"Authorization:\s*\S+", re.IGNORECASE), "Authorization: [REDACTED]"),
)


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def prompt_fingerprint(prompt: str) -> dict:
    """Длина + хэш промпта: достаточно, чтобы склеить логи, без самого текста."""
    return {"prompt_len": len(prompt), "prompt_sha256": sha256_hex(prompt)}


def redact_secrets(text: str) -> str:
    """Вырезает API ключи и bearer-токены из текста ошибки."""
    if not text:
        return text
    for pattern, repl in _SECRET_PATTERNS:
        text = pattern.sub(repl, text)
    return text
