"""Deterministic mapping between composite keys and integer positions."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Sequence
from typing import Generic, TypeVar

import numpy as np

K = TypeVar("K", bound=Hashable)


class SeriesIndexer(Generic[K]):
    """Insertion-ordered, append-only key <-> position index.

    Positions are assigned in insertion order starting at 0 and never
    change once assigned.

    Example:
        >>> index = SeriesIndexer([("RJ", "Rio"), ("SP", "Campinas")])
        >>> index.position(("SP", "Campinas"))
        1
        >>> index.key_at(0)
        ('RJ', 'Rio')
    """

    def __init__(self, keys: Iterable[K] = ()) -> None:
        self._positions: dict[K, int] = {}
        self._keys: list[K] = []
        for key in keys:
            self.add(key)

    def add(self, key: K) -> int:
        """Append a new key and return its position.

        Raises:
            ValueError: If key is already indexed
        """
        if key in self._positions:
            raise ValueError(f"Key {key!r} already indexed at {self._positions[key]}")
        position = len(self._keys)
        self._positions[key] = position
        self._keys.append(key)
        return position

    def get(self, key: K, default: int | None = None) -> int | None:
        return self._positions.get(key, default)

    def position(self, key: K) -> int:
        """Position of an indexed key.

        Raises:
            KeyError: If key is not indexed
        """
        try:
            return self._positions[key]
        except KeyError:
            raise KeyError(f"Key {key!r} not in index") from None

    def positions(self, keys: Iterable[K]) -> np.ndarray:
        """Positions of several keys as an integer array."""
        return np.fromiter((self.position(k) for k in keys), dtype=np.intp)

    def key_at(self, position: int) -> K:
        return self._keys[position]

    @property
    def keys(self) -> Sequence[K]:
        return tuple(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def __iter__(self) -> Iterator[K]:
        return iter(self._keys)

    def __repr__(self) -> str:
        return f"SeriesIndexer(n={len(self)})"
