"""Domain models for the weekly trivia engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


QUESTIONS_PER_WEEK = 10
OPTIONS_PER_QUESTION = 4
PAYLOAD_VERSION = 1


class Language(str, Enum):
	"""Original-language filters offered for the weekly quiz."""

	EN = "en"
	TE = "te"
	HI = "hi"
	TA = "ta"

	@property
	def label(self) -> str:
		return LANGUAGE_LABELS[self]


DEFAULT_LANGUAGE = Language.EN

LANGUAGE_LABELS = {
	Language.EN: "English",
	Language.TE: "Telugu",
	Language.HI: "Hindi",
	Language.TA: "Tamil",
}


@dataclass(slots=True, frozen=True)
class RelaxationTier:
	"""One (min vote count, pages wanted) step of the candidate search."""

	min_vote_count: int
	pages_wanted: int


@dataclass(slots=True, frozen=True)
class CatalogItem:
	"""A normalised catalog row; only well-formed rows get this far."""

	id: int
	title: str
	release_date: str
	release_year: int
	original_language: str
	popularity: float = 0.0
	vote_count: int = 0
	poster_path: Optional[str] = None


@dataclass(slots=True)
class DiscoverPage:
	items: List[CatalogItem] = field(default_factory=list)
	total_pages: int = 0

	@classmethod
	def empty(cls) -> "DiscoverPage":
		return cls(items=[], total_pages=0)


@dataclass(slots=True)
class Attempt:
	"""A stored play-through; append-only."""

	id: str
	user_id: str
	week_key: str
	language: Language
	score: int
	duration_ms: int
	created_at: datetime


@dataclass(slots=True)
class PlayerIdentity:
	"""Minimal identity shown next to a leaderboard row."""

	name: str = "User"
	username: Optional[str] = None
	avatar: Optional[str] = None


@dataclass(slots=True)
class LeaderboardEntry:
	rank: int
	user_id: str
	name: str
	username: Optional[str]
	avatar: Optional[str]
	score: int
	duration_ms: int
	created_at: datetime
