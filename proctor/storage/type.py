import enum

from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeDecorator
from sqlalchemy.types import Enum, String

from proctor.model.id import KeyLength, ShortUUIDKey


class ShortUUIDKeyType(TypeDecorator[ShortUUIDKey]):
    """Column type for prefixed keys; the prefix is implied by the column and not stored."""

    impl = String
    cache_ok = True

    def __init__(self, key_type: type[ShortUUIDKey]):
        self.key_type = key_type
        super().__init__(KeyLength)

    def process_bind_param(self, value: ShortUUIDKey | str | None, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return (value if isinstance(value, self.key_type) else self.key_type(value)).key

    def process_result_value(self, value: str | None, dialect: Dialect) -> ShortUUIDKey | None:
        return None if value is None else self.key_type.from_key(value)


def enum_values(enum_class: type[enum.Enum], length: int = 32) -> Enum:
    """
    An enum column holding member values rather than names, as a plain VARCHAR
    so the same schema works on PostgreSQL and SQLite.
    """
    return Enum(
        enum_class,
        values_callable=lambda members: [str(m.value) for m in members],
        native_enum=False,
        create_constraint=False,
        length=length,
    )
