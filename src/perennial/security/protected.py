"""Protected string values and their encrypted envelope on disk.

A :class:`ProtectedString` holds a secret in memory and is written to disk
as an envelope:

``enc:<token>``
    Fernet token, written when ``encrypt_secrets`` is enabled.
``b64:<text>``
    Base64 text, written when ``encrypt_secrets`` is disabled.

Values without a known prefix are read as plaintext left behind by older
versions. The cipher reaches the pydantic validators and serializers
through the validation/serialization context under the ``"cipher"`` key.
"""

import base64
import binascii
import logging
import os
from pathlib import Path
from typing import Any

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from perennial.config import PerennialConfig
from perennial.error_handling import SecretDecryptionError, SecretError

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "enc:"
ENCODED_PREFIX = "b64:"
CIPHER_CONTEXT_KEY = "cipher"


class SecretCipher:
    """Wraps and unwraps secret values for storage."""

    def __init__(
        self,
        keys: list[bytes | str],
        *,
        encrypt: bool = True,
    ):
        if not keys:
            msg = "At least one secret key is required"
            raise SecretError(msg)
        try:
            self._fernet = MultiFernet([Fernet(key) for key in keys])
        except (ValueError, binascii.Error) as e:
            msg = "Invalid secret key"
            raise SecretError(
                msg,
                solution="Generate a key with Fernet.generate_key()",
                original_error=e,
            ) from e
        self.encrypt = encrypt

    @classmethod
    def from_config(cls, config: PerennialConfig) -> "SecretCipher":
        """Build the cipher from configuration, creating a key file if needed."""
        primary = config.secret_key or load_or_create_key(config.resolved_key_file)
        return cls([primary, *config.previous_secret_keys], encrypt=config.encrypt_secrets)

    def wrap(self, plain: str) -> str:
        """Produce the on-disk envelope for a plaintext value."""
        if self.encrypt:
            token = self._fernet.encrypt(plain.encode("utf-8"))
            return ENCRYPTED_PREFIX + token.decode("ascii")
        return ENCODED_PREFIX + base64.b64encode(plain.encode("utf-8")).decode("ascii")

    def unwrap(self, disk_value: str) -> str:
        """Recover the plaintext from an on-disk envelope."""
        if disk_value.startswith(ENCRYPTED_PREFIX):
            token = disk_value[len(ENCRYPTED_PREFIX) :].encode("ascii")
            try:
                return self._fernet.decrypt(token).decode("utf-8")
            except (InvalidToken, UnicodeError) as e:
                raise SecretDecryptionError(original_error=e) from e
        if disk_value.startswith(ENCODED_PREFIX):
            try:
                return base64.b64decode(
                    disk_value[len(ENCODED_PREFIX) :],
                    validate=True,
                ).decode("utf-8")
            except (binascii.Error, UnicodeError) as e:
                msg = "Malformed encoded value"
                raise SecretError(msg, original_error=e) from e
        return disk_value


def load_or_create_key(key_file: Path) -> bytes:
    """Read the primary key from disk, generating it on first use."""
    if key_file.exists():
        return key_file.read_bytes().strip()

    key = Fernet.generate_key()
    key_file.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(key_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)
    logger.warning(
        "Generated new secret key at %s - back it up, renewals cannot be read without it",
        key_file,
    )
    return key


def _cipher_from(context: Any) -> SecretCipher | None:
    if isinstance(context, dict):
        return context.get(CIPHER_CONTEXT_KEY)
    return None


class ProtectedString:
    """A secret string that never renders its value."""

    __slots__ = ("_value",)

    def __init__(self, value: str):
        self._value = value

    @property
    def value(self) -> str:
        """The plaintext, for use by the code that needs it."""
        return self._value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ProtectedString):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    def __repr__(self) -> str:
        return "ProtectedString('********')"

    def __str__(self) -> str:
        return "********"

    @classmethod
    def _validate(cls, value: Any, info: core_schema.ValidationInfo) -> "ProtectedString":
        if isinstance(value, ProtectedString):
            return value
        if not isinstance(value, str):
            msg = "Protected value must be a string"
            raise ValueError(msg)
        cipher = _cipher_from(info.context)
        if cipher is None:
            # Plain construction in code, nothing to unwrap
            return cls(value)
        return cls(cipher.unwrap(value))

    @classmethod
    def _serialize(cls, value: "ProtectedString", info: core_schema.SerializationInfo) -> str:
        cipher = _cipher_from(info.context)
        if cipher is None:
            msg = "Protected values can only be serialized with a secret cipher"
            raise SecretError(msg)
        return cipher.wrap(value.value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> core_schema.CoreSchema:
        return core_schema.with_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls._serialize,
                info_arg=True,
                return_schema=core_schema.str_schema(),
            ),
        )
