"""Question assembly and release-year distractors."""

from __future__ import annotations

from typing import List, Optional, Sequence

from cinetrivia.domain.trivia import models
from cinetrivia.domain.trivia.policy import TriviaNotReadyError
from cinetrivia.domain.trivia.schemas import TriviaQuestion
from cinetrivia.domain.trivia.seeded import SeededStream

QUESTION_TEMPLATE = 'In which year was "{title}" released?'
DEFAULT_YEAR_DELTAS = tuple(range(1, 11))


class DistractorGenerator:
	def __init__(self, *, min_year: int, max_year: int, deltas: Sequence[int] = DEFAULT_YEAR_DELTAS) -> None:
		if max_year - min_year + 1 < models.OPTIONS_PER_QUESTION:
			raise ValueError("year window is too narrow for four distinct options")
		if not deltas:
			raise ValueError("deltas must not be empty")
		self.min_year = min_year
		self.max_year = max_year
		self._deltas = tuple(deltas)

	def _clamp(self, year: int) -> int:
		return max(self.min_year, min(self.max_year, year))

	def year_options(self, correct_year: int, rng: SeededStream) -> tuple[List[int], int]:
		"""Return four distinct years in shuffled order plus the index of ``correct_year``."""
		years = [correct_year]
		while len(years) < models.OPTIONS_PER_QUESTION:
			delta = self._deltas[rng.index(len(self._deltas))]
			direction = 1 if rng() > 0.5 else -1
			candidate = self._clamp(correct_year + direction * delta)
			if candidate not in years:
				years.append(candidate)
		rng.shuffle(years)
		return years, years.index(correct_year)


class QuestionBuilder:
	def __init__(self, generator: DistractorGenerator, *, image_base_url: Optional[str] = None) -> None:
		self._generator = generator
		self._image_base_url = (image_base_url or "").rstrip("/")

	def _poster(self, item: models.CatalogItem) -> Optional[str]:
		if not item.poster_path or not self._image_base_url:
			return None
		path = item.poster_path if item.poster_path.startswith("/") else f"/{item.poster_path}"
		return f"{self._image_base_url}{path}"

	def build(
		self,
		rng: SeededStream,
		candidates: Sequence[models.CatalogItem],
		*,
		week_key: str,
		language: str,
	) -> List[TriviaQuestion]:
		if len(candidates) < models.QUESTIONS_PER_WEEK:
			raise TriviaNotReadyError("Not enough catalog titles for this week's quiz yet.")
		questions: List[TriviaQuestion] = []
		# Candidates arrive already shuffled by the pool.
		for position, item in enumerate(candidates[: models.QUESTIONS_PER_WEEK]):
			years, correct_index = self._generator.year_options(item.release_year, rng)
			questions.append(
				TriviaQuestion(
					id=f"{week_key}:{language}:{item.id}:{position}",
					source_item_id=item.id,
					title=item.title,
					year=item.release_year,
					poster=self._poster(item),
					question_text=QUESTION_TEMPLATE.format(title=item.title),
					options=[str(year) for year in years],
					correct_index=correct_index,
				)
			)
		return questions
