"""Deterministic seed derivation and pseudo-random stream.

Every consumer of a stream must draw from it in a fixed program order:
page-pool shuffle, candidate shuffle, then distractors by question position.
Reordering any of those changes every later draw.
"""

from __future__ import annotations

from typing import MutableSequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def fnv1a32(key: str) -> int:
	"""32-bit FNV-1a over the UTF-8 bytes of ``key``."""
	value = _FNV_OFFSET
	for byte in key.encode("utf-8"):
		value ^= byte
		value = (value * _FNV_PRIME) & _MASK32
	return value


def seed_for(week_key: str, language: str) -> int:
	return fnv1a32(f"{week_key}:{language}")


class SeededStream:
	"""xorshift32 generator yielding floats in [0, 1]."""

	__slots__ = ("_state", "draws")

	def __init__(self, seed: int) -> None:
		state = seed & _MASK32
		# Zero is a fixed point of xorshift.
		self._state = state or 1
		self.draws = 0

	def __call__(self) -> float:
		x = self._state
		x = (x ^ (x << 13)) & _MASK32
		x ^= x >> 17
		x = (x ^ (x << 5)) & _MASK32
		self._state = x
		self.draws += 1
		return x / _MASK32

	def index(self, size: int) -> int:
		"""Uniform index in [0, size). The raw draw may be exactly 1.0, hence the clamp."""
		if size <= 0:
			raise ValueError("size must be positive")
		return min(int(self() * size), size - 1)

	def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
		"""In-place Fisher-Yates from the tail, one draw per swap."""
		for i in range(len(items) - 1, 0, -1):
			j = self.index(i + 1)
			items[i], items[j] = items[j], items[i]
		return items
