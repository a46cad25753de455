from tabata.core.advancer import TimerTransitionEvent
from tabata.core.cues import (
    COMPLETION_TONES,
    COUNTDOWN_TONE,
    Cue,
    CueDispatcher,
    CueSerializer,
    Tone,
    announcement_for,
    notification_body,
)
from tabata.core.phases import TimerPhase
from tabata.core.protection import ProtectionConfig
from tabata.core.session import WorkoutSession
from tabata.core.settings import AppSettings
from tabata.core.timer import WorkoutTimer


class RecordingOutput:
    def __init__(self) -> None:
        self.calls = []

    def play_tone(self, frequency_hz: float, duration_seconds: float) -> None:
        self.calls.append(("tone", frequency_hz, duration_seconds))

    def announce(self, text: str) -> None:
        self.calls.append(("announce", text))

    def notify(self, title: str, body: str) -> None:
        self.calls.append(("notify", title, body))

    def of(self, kind: str):
        return [c[1:] for c in self.calls if c[0] == kind]


class BrokenSpeaker(RecordingOutput):
    def play_tone(self, frequency_hz: float, duration_seconds: float) -> None:
        raise RuntimeError("audio device unsupported")

    def notify(self, title: str, body: str) -> None:
        raise PermissionError("notifications denied")


ALL_ON = AppSettings(sound_on=True, voice_on=True, notifications_on=True)


def _event(phase: TimerPhase, set_: int = 1, round_index: int = 0) -> TimerTransitionEvent:
    return TimerTransitionEvent(id=1, phase=phase, set=set_, round_index=round_index, occurred_at=0.0)


def test_announcement_per_phase(two_by_two_workout) -> None:
    assert announcement_for(_event(TimerPhase.PREPARE), two_by_two_workout) == "PREPARE"
    assert announcement_for(_event(TimerPhase.WORK, round_index=1), two_by_two_workout) == "Squats"
    assert announcement_for(_event(TimerPhase.REST), two_by_two_workout) == "REST"
    assert announcement_for(_event(TimerPhase.SET_REST), two_by_two_workout) == "SET REST"
    assert announcement_for(_event(TimerPhase.FINISHED), two_by_two_workout) == "FINISHED"


def test_notification_body_names_what_comes_next(two_by_two_workout) -> None:
    assert notification_body(_event(TimerPhase.WORK), two_by_two_workout) == "Next: Rest"
    assert notification_body(_event(TimerPhase.REST, round_index=0), two_by_two_workout) == "Next: Squats"
    assert notification_body(_event(TimerPhase.REST, set_=1, round_index=1), two_by_two_workout) == "Next: Set Rest"
    assert notification_body(_event(TimerPhase.REST, set_=2, round_index=1), two_by_two_workout) == "Next: Finish"
    assert notification_body(_event(TimerPhase.SET_REST, round_index=1), two_by_two_workout) == "Next: Push Ups"


def test_serializer_spaces_cues_apart(clock) -> None:
    output = RecordingOutput()
    serializer = CueSerializer(output, gap_ms=350, clock=clock)

    serializer.submit(Cue(tone=Tone(440, 0.1)), now=0.0)
    serializer.submit(Cue(tone=Tone(880, 0.1)), now=100.0)
    assert output.of("tone") == [(440, 0.1)]
    assert serializer.pending == 1

    assert serializer.flush(now=349.0) == 0
    assert serializer.flush(now=350.0) == 1
    assert output.of("tone") == [(440, 0.1), (880, 0.1)]


def test_serializer_clear_drops_pending(clock) -> None:
    output = RecordingOutput()
    serializer = CueSerializer(output, clock=clock)
    serializer.submit(Cue(announcement="one"), now=0.0)
    serializer.submit(Cue(announcement="two"), now=0.0)

    serializer.clear()

    assert serializer.flush(now=10_000.0) == 0
    assert output.of("announce") == [("one",)]


def test_collaborator_failures_are_swallowed(clock) -> None:
    output = BrokenSpeaker()
    serializer = CueSerializer(output, clock=clock)

    serializer.submit(Cue(announcement="REST", tone=Tone(400, 0.2), notification=("REST", "Next: Squats")), now=0.0)

    assert output.of("announce") == [("REST",)]


def test_session_replays_prepare_and_work_cues(clock, two_by_two_workout) -> None:
    output = RecordingOutput()
    session = WorkoutSession(output=output, settings=ALL_ON, clock=clock)

    session.start_workout(two_by_two_workout)
    clock.now = 5000.0
    session.timer.poll()

    assert output.of("announce") == [("PREPARE",), ("Push Ups",)]
    assert output.of("notify")[0] == ("PREPARE", "The Two by two workout is about to start.")
    assert output.of("notify")[1] == ("Push Ups", "Next: Rest")
    assert (600, 0.2) in output.of("tone")
    assert (800, 0.2) in output.of("tone")


def test_countdown_ticks_once_per_second(clock, two_by_two_workout) -> None:
    output = RecordingOutput()
    session = WorkoutSession(output=output, settings=ALL_ON, clock=clock)
    session.start_workout(two_by_two_workout)

    for now in (1000.0, 2000.0, 2250.0, 3000.0, 4000.0):
        clock.now = now
        session.timer.poll()

    countdown = [t for t in output.of("tone") if t == (COUNTDOWN_TONE.frequency_hz, COUNTDOWN_TONE.duration_seconds)]
    assert len(countdown) == 3


def test_finish_plays_completion_sequence_without_notification(clock, single_round_workout) -> None:
    output = RecordingOutput()
    session = WorkoutSession(output=output, settings=ALL_ON, clock=clock)
    session.start_workout(single_round_workout)

    clock.now = 25_000.0
    session.timer.poll()
    for step in range(1, 5):
        clock.now = 25_000.0 + step * 350
        session.serializer.flush()

    tones = output.of("tone")
    assert tones[-4:] == [(t.frequency_hz, t.duration_seconds) for t in COMPLETION_TONES]
    assert output.of("announce")[-1] == ("FINISHED",)
    assert all(title != "FINISHED" for title, _ in output.of("notify"))


def test_paused_run_discards_queued_events(clock, two_by_two_workout) -> None:
    output = RecordingOutput()
    timer = WorkoutTimer(clock=clock)
    timer.start(two_by_two_workout, now=0.0)
    timer.pause(now=500.0)
    status = timer.get_status()

    dispatcher = CueDispatcher(CueSerializer(output, clock=clock), ALL_ON)
    dispatcher.attach_workout(timer)

    assert dispatcher.replay_workout_events() == 0
    assert output.calls == []
    assert timer.drain_events() == []
    assert timer.get_status() == status


def test_settings_gate_each_channel(clock, two_by_two_workout) -> None:
    output = RecordingOutput()
    quiet = AppSettings(sound_on=False, voice_on=True, notifications_on=False)
    session = WorkoutSession(output=output, settings=quiet, clock=clock)

    session.start_workout(two_by_two_workout)

    assert output.of("announce") == [("PREPARE",)]
    assert output.of("tone") == []
    assert output.of("notify") == []


def test_protection_cues_announce_each_phase(clock) -> None:
    output = RecordingOutput()
    session = WorkoutSession(output=output, settings=ALL_ON, clock=clock)

    session.start_protection(ProtectionConfig(cycles=3))
    clock.now = 3_600_000.0
    session.protection.poll()

    announcements = [text for (text,) in output.of("announce")]
    assert announcements[0].startswith("Sonic Mode listening phase 1 of 3.")
    assert announcements[1] == "Ear break. Remove earbuds and let your ears rest."
    assert ("Ear Break", "Remove earbuds and rest your ears") in output.of("notify")
