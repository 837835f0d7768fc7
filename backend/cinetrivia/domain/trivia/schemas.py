"""Pydantic schemas for the weekly trivia APIs.

Wire format is camelCase; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cinetrivia.domain.trivia.models import PAYLOAD_VERSION, Language


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TriviaQuestion(_CamelModel):
	id: str
	source_item_id: int
	title: str
	year: int
	poster: Optional[str] = None
	question_text: str
	options: List[str] = Field(..., min_length=4, max_length=4)
	correct_index: int = Field(..., ge=0, le=3)


class WeeklyTriviaPayload(_CamelModel):
	version: int = PAYLOAD_VERSION
	week_key: str
	language: Language
	language_label: str
	questions: List[TriviaQuestion]


class AttemptSubmission(_CamelModel):
	# Range checks live in policy.validate_submission so every violation maps to one error code.
	week_key: str
	language: str
	score: int
	duration_ms: int


class AttemptReceipt(BaseModel):
	id: str


class LeaderboardEntrySchema(_CamelModel):
	rank: int = Field(..., ge=1)
	user_id: str
	name: str
	username: Optional[str] = None
	avatar: Optional[str] = None
	score: int
	duration_ms: int
	created_at: datetime


class LeaderboardResponse(_CamelModel):
	week_key: str
	language: Language
	entries: List[LeaderboardEntrySchema] = Field(default_factory=list)
