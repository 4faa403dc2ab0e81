"""Encrypted, per-user storage of the code-host API token.

The token is encrypted with Fernet under a key derived from the local
user and host names, so a copied file does not decrypt elsewhere. The
loaded ``Credential`` is passed explicitly to the API client; nothing is
kept in module state.
"""

from __future__ import annotations

import base64
import binascii
import getpass
import json
import os
import secrets
import socket
from dataclasses import dataclass, field
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from psr.core.result import Err, Ok, Result
from psr.core.structured import as_str_dict, get_int, get_str
from psr.platform.files import atomic_write_bytes
from psr.platform.paths import user_config_dir
from psr.services.release.errors import CredentialError

CREDENTIAL_ENV_VAR = "PSR_CREDENTIAL_PATH"
CREDENTIAL_FILE_NAME = "credential.bin"

_FORMAT_VERSION = 1
_KDF_ITERATIONS = 390_000
_SALT_BYTES = 16


@dataclass(frozen=True, slots=True)
class Credential:
    token: str = field(repr=False)
    source: Path | None = None


def default_credential_path() -> Path:
    override = os.environ.get(CREDENTIAL_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return user_config_dir() / CREDENTIAL_FILE_NAME


def _identity() -> bytes:
    try:
        user = getpass.getuser()
    except (OSError, KeyError):
        user = str(os.getuid()) if hasattr(os, "getuid") else "unknown"
    return f"{user}@{socket.gethostname()}".encode("utf-8")


def _fernet(salt: bytes) -> Fernet:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=_KDF_ITERATIONS,
    )
    return Fernet(base64.urlsafe_b64encode(kdf.derive(_identity())))


def store_credential(token: str, *, path: Path) -> Result[Path, CredentialError]:
    token = token.strip()
    if not token:
        return Err(CredentialError(path=path, reason="unwritable", detail="empty token"))

    salt = secrets.token_bytes(_SALT_BYTES)
    encrypted = _fernet(salt).encrypt(token.encode("utf-8"))
    payload = {
        "version": _FORMAT_VERSION,
        "salt": base64.b64encode(salt).decode("ascii"),
        "token": encrypted.decode("ascii"),
    }

    try:
        atomic_write_bytes(path, (json.dumps(payload) + "\n").encode("utf-8"), mode=0o600)
    except OSError as e:
        return Err(CredentialError(path=path, reason="unwritable", detail=str(e)))
    return Ok(path)


def load_credential(*, path: Path) -> Result[Credential, CredentialError]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(CredentialError(path=path, reason="missing"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(CredentialError(path=path, reason="corrupt", detail=str(e)))

    try:
        obj: object = json.loads(raw)
    except json.JSONDecodeError as e:
        return Err(CredentialError(path=path, reason="corrupt", detail=f"invalid JSON: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(CredentialError(path=path, reason="corrupt", detail="unexpected payload"))

    version = get_int(data, "version")
    salt_b64 = get_str(data, "salt")
    token_enc = get_str(data, "token")
    if version != _FORMAT_VERSION or salt_b64 is None or token_enc is None:
        return Err(CredentialError(path=path, reason="corrupt", detail="unsupported format"))

    try:
        salt = base64.b64decode(salt_b64, validate=True)
        token = _fernet(salt).decrypt(token_enc.encode("ascii")).decode("utf-8")
    except (binascii.Error, ValueError, InvalidToken):
        return Err(
            CredentialError(
                path=path,
                reason="corrupt",
                detail="stored by another user or machine? Run: psr auth store",
            )
        )

    return Ok(Credential(token=token, source=path))
