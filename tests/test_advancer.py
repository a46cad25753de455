import itertools

from tabata.core.advancer import advance, catch_up
from tabata.core.phases import TimerPhase, initial_status
from tabata.core.workout import Round, Workout

BASE_MS = 1_700_000_000_000.0


def _boundaries(events):
    return [(e.phase, e.set, e.round_index, e.occurred_at) for e in events]


def test_no_boundary_just_counts_down(two_by_two_workout) -> None:
    status, events = advance(initial_status(), two_by_two_workout, 3, BASE_MS)
    assert events == []
    assert status.phase == TimerPhase.PREPARE
    assert status.time_left_in_phase == 2


def test_zero_elapsed_changes_nothing(two_by_two_workout) -> None:
    start = initial_status()
    status, events = advance(start, two_by_two_workout, 0, BASE_MS)
    assert status == start
    assert events == []


def test_negative_elapsed_is_treated_as_zero(two_by_two_workout) -> None:
    status, events = advance(initial_status(), two_by_two_workout, -40, BASE_MS)
    assert status == initial_status()
    assert events == []


def test_single_round_full_run(single_round_workout) -> None:
    status, events = advance(initial_status(), single_round_workout, 25, BASE_MS)
    assert [e.phase for e in events] == [TimerPhase.WORK, TimerPhase.FINISHED]
    assert status.workout_completed is True
    assert events[0].occurred_at == BASE_MS - 20_000
    assert events[1].occurred_at == BASE_MS


def test_full_run_emits_one_event_per_boundary(two_by_two_workout) -> None:
    # prepare 5 + two sets of 30 + one set rest of 30
    status, events = advance(initial_status(), two_by_two_workout, 95, BASE_MS)
    assert [e.phase for e in events] == [
        TimerPhase.WORK,
        TimerPhase.REST,
        TimerPhase.WORK,
        TimerPhase.REST,
        TimerPhase.SET_REST,
        TimerPhase.WORK,
        TimerPhase.REST,
        TimerPhase.WORK,
        TimerPhase.REST,
        TimerPhase.FINISHED,
    ]
    assert status.workout_completed is True
    stamps = [e.occurred_at for e in events]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)
    ids = [e.id for e in events]
    assert ids == sorted(ids) and len(set(ids)) == len(ids)


def test_hour_long_gap_finishes_once(two_by_two_workout) -> None:
    status, events = advance(initial_status(), two_by_two_workout, 3600, BASE_MS)
    assert status.workout_completed is True
    assert sum(1 for e in events if e.phase == TimerPhase.FINISHED) == 1

    again, more = advance(status, two_by_two_workout, 3600, BASE_MS + 3_600_000)
    assert again is status
    assert more == []


def test_splits_match_single_call(two_by_two_workout) -> None:
    total = 80
    whole_status, whole_events = advance(initial_status(), two_by_two_workout, total, BASE_MS + total * 1000)

    for splits in ([1] * total, [7, 13, 0, 29, 31], [5, 5, 30, 40], [79, 1]):
        status = initial_status()
        collected = []
        elapsed = 0
        for part in splits:
            elapsed += part
            status, events = advance(status, two_by_two_workout, part, BASE_MS + elapsed * 1000)
            collected.extend(events)
        assert status == whole_status
        assert _boundaries(collected) == _boundaries(whole_events)


def test_zero_length_phases_collapse_without_consuming_time() -> None:
    workout = Workout(
        name="Zeros",
        sets=1,
        set_rest_time=0,
        rounds=(Round("Blink", 0, 0), Round("Hold", 5, 0)),
    )
    status, events = advance(initial_status(), workout, 6, BASE_MS)
    assert [(e.phase, e.round_index) for e in events] == [(TimerPhase.WORK, 0), (TimerPhase.WORK, 1)]
    assert events[0].occurred_at == events[1].occurred_at == BASE_MS - 1000
    assert status.time_left_in_phase == 4


def test_all_zero_workout_terminates() -> None:
    workout = Workout(name="Nothing", sets=2, set_rest_time=0, rounds=(Round("Idle", 0, 0),))
    status, events = advance(initial_status(), workout, 5, BASE_MS)
    assert status.workout_completed is True
    assert [e.phase for e in events] == [
        TimerPhase.WORK,
        TimerPhase.SET_REST,
        TimerPhase.WORK,
        TimerPhase.FINISHED,
    ]


def test_ids_come_from_the_given_counter(single_round_workout) -> None:
    ids = itertools.count(41)
    _, events = advance(initial_status(), single_round_workout, 25, BASE_MS, ids)
    assert [e.id for e in events] == [41, 42]


def test_catch_up_walks_any_phase_machine() -> None:
    # (phase number, seconds left); phases 0..2 last 4 seconds, 3 is terminal
    def step(state):
        return state if state[0] == 3 else (state[0] + 1, 4 if state[0] < 2 else 0)

    state, events = catch_up(
        (0, 4),
        9,
        BASE_MS,
        step=step,
        time_left=lambda s: s[1],
        with_time_left=lambda s, left: (s[0], left),
        make_event=lambda s, at: (s[0], at),
        running=lambda s: s[0] != 3,
    )

    assert state == (2, 3)
    assert events == [(1, BASE_MS - 5000), (2, BASE_MS - 1000)]
