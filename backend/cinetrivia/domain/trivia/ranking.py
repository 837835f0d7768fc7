"""Leaderboard ordering for a fixed (week, language)."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from cinetrivia.domain.trivia.models import Attempt, LeaderboardEntry, PlayerIdentity


def attempt_sort_key(attempt: Attempt):
	# Equal score and duration fall back to submission time, then user id.
	return (-attempt.score, attempt.duration_ms, attempt.created_at, attempt.user_id)


def best_attempts_per_user(attempts: Iterable[Attempt]) -> List[Attempt]:
	best: Dict[str, Attempt] = {}
	for attempt in attempts:
		current = best.get(attempt.user_id)
		if current is None or attempt_sort_key(attempt) < attempt_sort_key(current):
			best[attempt.user_id] = attempt
	return list(best.values())


def rank_attempts(
	attempts: Iterable[Attempt],
	identities: Optional[Mapping[str, PlayerIdentity]] = None,
	*,
	limit: Optional[int] = None,
) -> List[LeaderboardEntry]:
	"""Rank each user's best attempt. Positions are distinct, starting at 1."""
	identities = identities or {}
	ordered = sorted(best_attempts_per_user(attempts), key=attempt_sort_key)
	if limit is not None:
		ordered = ordered[: max(0, limit)]
	entries: List[LeaderboardEntry] = []
	for rank, attempt in enumerate(ordered, start=1):
		identity = identities.get(attempt.user_id) or PlayerIdentity()
		entries.append(
			LeaderboardEntry(
				rank=rank,
				user_id=attempt.user_id,
				name=identity.name,
				username=identity.username,
				avatar=identity.avatar,
				score=attempt.score,
				duration_ms=attempt.duration_ms,
				created_at=attempt.created_at,
			)
		)
	return entries
