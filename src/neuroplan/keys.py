from __future__ import annotations

"""Gemini API key storage & retrieval.

Strategy:
 - Store in the OS keyring via the 'keyring' package.
 - If the keyring backend fails, fall back to a XOR-obfuscated file in the
   data dir (not encryption, just keeps the key out of plain text).
 - Redaction helper for logs.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

SERVICE_NAME = "neuroplan_gemini"
FALLBACK_FILENAME = "gemini.key"
_XOR_KEY = b"neuroplan-xor"
_log = logging.getLogger(__name__)


def save_api_key(base_dir: Path, api_key: str) -> None:
    try:
        keyring.set_password(SERVICE_NAME, "default", api_key)
        _log.info("api key stored in keyring")
        return
    except KeyringError:
        _log.warning("keyring storage failed; falling back to file")
    path = base_dir / FALLBACK_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_xor_obfuscate(api_key.encode("utf-8")))
    _log.info("api key stored in fallback file", extra={"_json_location": "fallback"})


def load_api_key(base_dir: Path) -> Optional[str]:
    try:
        v = keyring.get_password(SERVICE_NAME, "default")
        if v:
            return v
    except KeyringError:
        _log.warning("keyring lookup failed; trying fallback file")
    path = base_dir / FALLBACK_FILENAME
    if path.exists():
        try:
            return _xor_deobfuscate(path.read_bytes()).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            _log.warning("fallback key file unreadable")
            return None
    return None


def redact(value: str | None) -> str:
    if not value:
        return "<none>"
    if len(value) <= 6:
        return "***"
    return value[:3] + "***" + value[-3:]


def _xor(data: bytes) -> bytes:
    return bytes([b ^ _XOR_KEY[i % len(_XOR_KEY)] for i, b in enumerate(data)])


def _xor_obfuscate(data: bytes) -> bytes:
    return base64.b64encode(_xor(data))


def _xor_deobfuscate(data: bytes) -> bytes:
    return _xor(base64.b64decode(data))


__all__ = ["save_api_key", "load_api_key", "redact"]
