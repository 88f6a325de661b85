"""
Roster window resolution.

Answers "was castaway X on team T during episode E?" from the team's roster
entries. Works on anything with castaway_id / start_episode / end_episode
attributes, so it stays a pure query over roster facts.
"""

import logging
from collections import Counter
from itertools import combinations

logger = logging.getLogger(__name__)


def covers(entry, episode: int) -> bool:
    """True if the roster window includes the episode (both bounds inclusive)."""
    if entry.start_episode > episode:
        return False
    return entry.end_episode is None or entry.end_episode >= episode


def is_active(entries, castaway_id: int, episode: int) -> bool:
    return any(e.castaway_id == castaway_id and covers(e, episode) for e in entries)


def active_castaway_ids(entries, episode: int, team_id: int | None = None) -> set[int]:
    """
    Distinct castaways active in the episode. A castaway covered by more than
    one window is counted once and reported as a data-integrity problem.
    """
    counts = Counter(e.castaway_id for e in entries if covers(e, episode))
    duplicated = sorted(cid for cid, n in counts.items() if n > 1)
    if duplicated:
        logger.warning(
            "Overlapping roster windows for team %s, castaway(s) %s in episode %s; counting each once",
            team_id, duplicated, episode,
        )
    return set(counts)


def active_castaway_count(entries, episode: int, team_id: int | None = None) -> int:
    return len(active_castaway_ids(entries, episode, team_id=team_id))


def find_overlapping_windows(entries) -> list[tuple]:
    """All pairs of windows for the same castaway that share at least one episode."""
    overlaps = []
    for a, b in combinations(entries, 2):
        if a.castaway_id != b.castaway_id:
            continue
        a_end = a.end_episode if a.end_episode is not None else float("inf")
        b_end = b.end_episode if b.end_episode is not None else float("inf")
        if a.start_episode <= b_end and b.start_episode <= a_end:
            overlaps.append((a, b))
    return overlaps
