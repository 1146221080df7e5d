"""Key codec — maps ``(prefix, bucket, key)`` to a single storage key."""

from __future__ import annotations

from collections.abc import Sequence

from acl_store.exceptions import InvalidArgumentError

DEFAULT_PREFIX = "acl"

PREFIX_SEPARATOR = "_"
KEY_SEPARATOR = "@"

_ESCAPES = str.maketrans({"\\": "\\\\", "_": "\\_", "@": "\\@"})

Key = str | int


def escape(component: str) -> str:
    """Backslash-escape the separators (and the escape character itself)."""
    return component.translate(_ESCAPES)


def _has_separator(component: str) -> bool:
    return any(ch in component for ch in "\\_@")


class KeyCodec:
    """Encodes bucket/key pairs into storage keys for one prefix.

    The layout is ``prefix + "_" + bucket + "@" + key``.  With ``escape``
    enabled (the default) every component is escaped first, so distinct
    triples can never produce the same storage key: bucket ``"a"`` with key
    ``"b@c"`` and bucket ``"a@b"`` with key ``"c"`` stay apart.  Disable it
    only when every bucket and key is known to be free of ``_``, ``@`` and
    ``\\``, e.g. to read data written in the unescaped layout.  Without
    escaping, a prefix such as ``"acl_x"`` would share its leading text with
    prefix ``"acl"`` and fall inside its :attr:`key_prefix`, so unescaped
    prefixes must not contain the separators.

    Integer keys are rendered with ``str()``, so ``1`` and ``"1"`` address
    the same set.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX, *, escape: bool = True) -> None:
        if not escape and _has_separator(prefix):
            raise InvalidArgumentError(
                "init", f"prefix {prefix!r} must not contain '_', '@' or '\\' without escaping"
            )
        self._prefix = prefix
        self._escape = escape

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def escapes(self) -> bool:
        return self._escape

    @property
    def key_prefix(self) -> str:
        """Leading text shared by every storage key under this prefix."""
        return self._component(self._prefix) + PREFIX_SEPARATOR

    def encode(self, bucket: str, key: Key) -> str:
        head = f"{self.key_prefix}{self._component(bucket)}{KEY_SEPARATOR}"
        return head + self._component(str(key))

    def encode_many(self, bucket: str, keys: Sequence[Key]) -> list[str]:
        """Vectorized :meth:`encode`; output order follows ``keys``."""
        head = f"{self.key_prefix}{self._component(bucket)}{KEY_SEPARATOR}"
        return [head + self._component(str(key)) for key in keys]

    def _component(self, text: str) -> str:
        return escape(text) if self._escape else text


def encode(prefix: str, bucket: str, keys: Key | Sequence[Key]) -> str | list[str]:
    """Encode one key, or a sequence of keys, with an escaping codec."""
    codec = KeyCodec(prefix)
    if isinstance(keys, str | int):
        return codec.encode(bucket, keys)
    return codec.encode_many(bucket, keys)
