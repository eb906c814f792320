from typing import List, Tuple

from .stores import Leaderboard, LeaderboardStore


def rank(board: Leaderboard, n: int) -> List[Tuple[str, int]]:
    """Highest totals first; equal totals ordered by name."""
    if n <= 0:
        return []
    ordered = sorted(board.items(), key=lambda item: (-item[1], item[0]))
    return ordered[:n]


def top_n(store: LeaderboardStore, n: int) -> List[Tuple[str, int]]:
    return rank(store.load(), n)
