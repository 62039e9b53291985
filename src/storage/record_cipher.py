"""Symmetric confidentiality wrap for persisted records"""

import base64
import hashlib
import json
from typing import Any, Union

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel

from src.core.exceptions import RecordCipherError


class RecordCipher:
    """
    Wraps records into opaque blobs with a fixed shared secret.

    The Fernet key is derived from the secret with SHA-256, so any
    passphrase works. Unwrapping a blob made with a different secret
    raises RecordCipherError.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Cipher secret must not be empty")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def wrap(self, record: Union[BaseModel, dict[str, Any]]) -> str:
        if isinstance(record, BaseModel):
            record = record.model_dump(mode="json")
        plain = json.dumps(record, separators=(",", ":")).encode("utf-8")
        return self._fernet.encrypt(plain).decode("ascii")

    def unwrap(self, blob: str) -> dict[str, Any]:
        try:
            plain = self._fernet.decrypt(blob.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError) as e:
            raise RecordCipherError("Blob cannot be unwrapped with the shared key") from e
        return json.loads(plain)
