"""Custom SQLAlchemy column types."""
from __future__ import annotations

import uuid

from cryptography.fernet import InvalidToken
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.types import String, Text, TypeDecorator

from taskboard.security.encryption import encryption_service


class EncryptedString(TypeDecorator):
    """Encrypt string values transparently at the column level."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return encryption_service.encrypt_text(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        try:
            return encryption_service.decrypt_text(value)
        except InvalidToken:
            # Values written before encryption was enabled are returned as-is
            return value


class GUID(TypeDecorator):
    """Platform-independent GUID/UUID type."""

    impl = PGUUID
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(36))
        return dialect.type_descriptor(PGUUID(as_uuid=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return uuid.UUID(str(value))
