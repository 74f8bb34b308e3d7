from __future__ import annotations

import typing as t

import pydantic as p
import pydantic_core.core_schema as core_schema
import shortuuid

KeyLength: t.Final[int] = 22


class ShortUUIDKey(str):
    """
    A string key of the form `<prefix>$<shortuuid>`, e.g. `atmp$Ge6p...`.

    Calling the class with no argument mints a new key. Rows only hold the
    shortuuid part; `from_key()` puts the prefix back when they are loaded
    (see `proctor.storage.type.ShortUUIDKeyType`).
    """

    prefix: t.ClassVar[str]
    separator: t.ClassVar[str] = "$"

    def __init_subclass__(cls, prefix: str, **kwargs: t.Any):
        super().__init_subclass__(**kwargs)
        if len(prefix) != 4:
            raise TypeError(f"{cls.__name__}: key prefix must be four characters, not {prefix!r}")
        cls.prefix = prefix

    def __new__(cls, s: str | None = None, /) -> t.Self:
        if s is None:
            return cls.from_key(shortuuid.uuid())
        return super().__new__(cls, cls.parse(s))

    @classmethod
    def parse(cls, s: str) -> str:
        head = cls.prefix + cls.separator
        if not s.startswith(head):
            raise ValueError(f"invalid {cls.__name__}: key must begin with {head}")
        body = s[len(head) :]
        if len(body) != KeyLength:
            raise ValueError(f"invalid {cls.__name__}: key must have length {KeyLength}")
        alphabet = shortuuid.get_alphabet()
        if any(c not in alphabet for c in body):
            raise ValueError(f"invalid {cls.__name__}: key must comprise only {alphabet}")
        return s

    @classmethod
    def from_key(cls, key: str) -> t.Self:
        """Prefix a bare shortuuid; it is trusted as is."""
        return super().__new__(cls, cls.prefix + cls.separator + key)

    @property
    def key(self) -> str:
        return self[len(self.prefix) + len(self.separator) :]

    @classmethod
    def __get_pydantic_core_schema__(cls, src: t.Any, handler: p.GetCoreSchemaHandler) -> core_schema.CoreSchema:
        from_str = core_schema.no_info_after_validator_function(cls, core_schema.str_schema())
        return core_schema.json_or_python_schema(
            json_schema=from_str,
            python_schema=core_schema.union_schema([core_schema.is_instance_schema(cls), from_str]),
            serialization=core_schema.plain_serializer_function_ser_schema(str.__str__),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, src: t.Any, handler: p.GetJsonSchemaHandler) -> p.json_schema.JsonSchemaValue:
        return {"type": "string", "pattern": f"^{cls.prefix}\\{cls.separator}"}

    def __hash__(self) -> int:
        return str.__hash__(self)

    def __str__(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.key}>"


# fmt: off
class ActivityID(ShortUUIDKey, prefix="actv"): ...
class AttemptID(ShortUUIDKey, prefix="atmp"): ...
class UserID(ShortUUIDKey, prefix="user"): ...
class GroupID(ShortUUIDKey, prefix="grup"): ...
class OverrideID(ShortUUIDKey, prefix="ovrd"): ...
# fmt: on
