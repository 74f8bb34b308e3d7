import typing as t

from proctor.lib.json import JSONEncoder as BaseJSONEncoder


def hexdump(obj: bytes, width: int = 16) -> str:
    h = obj[:width].hex(" ").upper()
    return f"[{len(obj):5}] {h}" + (" ..." if len(obj) > width else "")


class JSONEncoder(BaseJSONEncoder):
    """Encoder for log record context; it never fails, falling back to `repr()`."""

    def default(self, o: t.Any) -> t.Any:
        if isinstance(o, (bytes, bytearray)):
            return hexdump(bytes(o))
        try:
            return super().default(o)
        except TypeError:
            return repr(o)
