"""Next/previous track selection — sequential wraparound or shuffle rounds.

Pure functions: history comes in, a new history goes out. The caller owns it.
"""
import random
from typing import Optional


def next_index(
    current: Optional[int],
    count: int,
    shuffle: bool,
    history: list[int],
    rng: Optional[random.Random] = None,
) -> tuple[Optional[int], list[int]]:
    """Pick the track after ``current``. Returns (index, new_history).

    Shuffle picks uniformly among tracks not yet chosen this round; once every
    index has been chosen the round resets.
    """
    if count <= 0:
        return None, list(history)

    if not shuffle:
        base = -1 if current is None else current
        return (base + 1) % count, list(history)

    rng = rng or random
    history = list(history)
    if len(history) >= count:
        history = []

    played = set(history)
    unplayed = [i for i in range(count) if i not in played]
    if unplayed:
        idx = rng.choice(unplayed)
    else:
        history = []
        idx = rng.randrange(count)

    history.append(idx)
    return idx, history


def previous_index(
    current: Optional[int],
    count: int,
    shuffle: bool,
    history: list[int],
) -> tuple[Optional[int], list[int]]:
    """Pick the track before ``current``. Returns (index, new_history).

    In shuffle with at least two picks recorded, this undoes the last pick:
    the current entry is dropped and the one before it is popped and returned.
    With fewer than two entries it falls back to sequential order.
    """
    if count <= 0:
        return None, list(history)

    history = list(history)
    if shuffle and len(history) > 1:
        history.pop()
        return history.pop(), history

    base = 0 if current is None else current
    return (base - 1 + count) % count, history
