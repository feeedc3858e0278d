import random

from stelle.shuffle import next_index, previous_index


def test_sequential_wraps_both_ways():
    assert next_index(4, 5, False, []) == (0, [])
    assert previous_index(0, 5, False, []) == (4, [])


def test_sequential_from_nothing_playing():
    assert next_index(None, 5, False, [])[0] == 0
    assert previous_index(None, 5, False, [])[0] == 4


def test_empty_library_has_no_next():
    assert next_index(0, 0, True, [1])[0] is None
    assert previous_index(0, 0, False, [])[0] is None


def test_shuffle_round_has_no_repeats():
    rng = random.Random(3)
    history: list[int] = []
    picks = []
    for _ in range(6):
        idx, history = next_index(None, 6, True, history, rng)
        picks.append(idx)
    assert sorted(picks) == list(range(6))
    assert len(history) == 6


def test_shuffle_starts_new_round_when_exhausted():
    rng = random.Random(11)
    idx, history = next_index(2, 3, True, [0, 1, 2], rng)
    assert history == [idx]


def test_shuffle_does_not_mutate_input_history():
    history = [1]
    next_index(1, 4, True, history, random.Random(0))
    assert history == [1]


def test_shuffle_previous_undoes_last_pick():
    idx, history = previous_index(1, 5, True, [2, 4, 1])
    assert idx == 4
    assert history == [2]


def test_shuffle_previous_with_short_history_is_sequential():
    idx, history = previous_index(3, 5, True, [3])
    assert idx == 2
    assert history == [3]
