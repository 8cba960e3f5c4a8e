"""Request headers as a case-insensitive mapping.

Names are folded to lower case once, when the request is built from the
ASGI scope. Middleware and handlers read ``request.headers["Host"]`` or
``request.headers["host"]`` interchangeably.
"""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only request headers keyed by lower-cased name.

    A repeated header keeps every value: indexing returns the first,
    ``get_list`` returns them all in arrival order.
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        self._raw: tuple[tuple[bytes, bytes], ...] = tuple(raw)
        self._index: dict[str, list[str]] = {}
        for name, value in self._raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append(value.decode("latin-1"))

    def __getitem__(self, key: str) -> str:
        return self._index[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def get_list(self, key: str) -> list[str]:
        """Every value sent for *key*; empty when the header is absent."""
        return list(self._index.get(key.lower(), ()))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The header byte pairs as they appeared in the ASGI scope."""
        return self._raw
