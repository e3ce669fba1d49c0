"""Integration tests for the listening session lifecycle."""

import asyncio

import numpy as np
import pytest
from pubsub import pub

from voicedash.audio.capture import AcquisitionError
from voicedash.models.events import UtteranceEvent, CanceledEvent, CancellationReason
from voicedash.services.listening_session import ListeningSession
from voicedash.transcription.base import TranscriptionStartError
from voicedash.transcription.publisher import TranscriptionPublisher, UTTERANCE_TOPIC


@pytest.fixture
def make_session(fake_capture, fake_backend_cls):
    def factory(**kwargs):
        publisher = TranscriptionPublisher()
        backend = fake_backend_cls(publisher.get_callback())
        kwargs.setdefault("tick_hz", 200)
        return ListeningSession(capture=fake_capture, backend=backend, publisher=publisher, **kwargs)
    return factory


async def settle(seconds=0.05):
    await asyncio.sleep(seconds)


@pytest.mark.integration
class TestListeningSession:

    def test_stop_before_start_is_noop(self, make_session, fake_capture):
        session = make_session()

        asyncio.run(session.stop())

        assert fake_capture.released == 0
        assert session.backend.stopped == 0
        assert session.is_listening is False

    def test_start_and_stop_lifecycle(self, make_session, fake_capture):
        session = make_session(language="en-GB")

        async def scenario():
            await session.start()
            await settle()
            listening = session.snapshot()
            await session.stop()
            return listening

        listening = asyncio.run(scenario())

        assert listening.is_listening is True
        assert listening.background_level == 40
        assert session.backend.started_with == ["en-GB"]
        assert fake_capture.acquired == 1
        assert fake_capture.released == 1
        assert session.backend.stopped == 1
        assert session.sampler.is_sampling is False
        assert session.snapshot().is_listening is False
        assert not pub.getDefaultTopicMgr().getTopic(UTTERANCE_TOPIC).hasListeners()

    def test_guest_speech_isolated_above_baseline(self, make_session, fake_capture):
        session = make_session()

        async def scenario():
            await session.start()
            await settle()  # fill the noise window at level 40
            session.backend.emit(UtteranceEvent(speaker_id="Guest-1", text="hi"))
            await settle(0.01)
            fake_capture.bins = np.full(128, 178, dtype=np.uint8)  # level 70
            await settle()
            snapshot = session.snapshot()
            await session.stop()
            return snapshot

        snapshot = asyncio.run(scenario())

        assert snapshot.active_speaker.label == "Speaker Guest-1"
        assert snapshot.baseline == 40
        assert snapshot.background_level == 40
        assert snapshot.speaker_level == 30
        assert [(e.speaker.label, e.text) for e in snapshot.transcript] == [("Speaker Guest-1", "hi")]

    def test_other_speaker_shows_live_background(self, make_session, fake_capture):
        session = make_session()

        async def scenario():
            await session.start()
            session.backend.emit(UtteranceEvent(speaker_id="Guest-2", text="welcome"))
            fake_capture.bins = np.full(128, 140, dtype=np.uint8)  # level 55
            await settle()
            snapshot = session.snapshot()
            await session.stop()
            return snapshot

        snapshot = asyncio.run(scenario())

        assert snapshot.active_speaker.label == "Speaker Guest-2"
        assert snapshot.background_level == 55
        assert snapshot.speaker_level == 0
        assert snapshot.baseline == 0

    @pytest.mark.slow
    def test_active_speaker_expires(self, make_session):
        session = make_session(expiry_seconds=0.2)

        async def scenario():
            await session.start()
            session.backend.emit(UtteranceEvent(speaker_id="Guest-1", text="hi"))
            await settle(0.1)
            session.backend.emit(UtteranceEvent(speaker_id="Guest-1", text="again"))
            await settle(0.15)
            during = session.snapshot()
            await settle(0.15)
            after = session.snapshot()
            await session.stop()
            return during, after

        during, after = asyncio.run(scenario())

        assert during.active_speaker is not None
        assert after.active_speaker is None
        assert after.speaker_level == 0
        assert [s.label for s in after.known_speakers] == ["Speaker Guest-1"]
        assert [e.text for e in after.transcript] == ["hi", "again"]

    def test_acquisition_failure_leaves_nothing_running(self, make_session, fake_capture):
        fake_capture.fail_acquire = True
        session = make_session()

        async def scenario():
            with pytest.raises(AcquisitionError):
                await session.start()

        asyncio.run(scenario())

        assert session.is_listening is False
        assert session.backend.started_with == []
        assert session.sampler.is_sampling is False
        assert fake_capture.released == 0

    def test_transcription_start_failure_releases_capture(self, make_session, fake_capture):
        session = make_session()
        session.backend.fail_start = True

        async def scenario():
            with pytest.raises(TranscriptionStartError):
                await session.start()
            # a later stop has nothing to release
            await session.stop()

        asyncio.run(scenario())

        assert session.is_listening is False
        assert fake_capture.released == 1
        assert session.sampler.is_sampling is False
        assert session.publisher.is_attached is False
        assert not pub.getDefaultTopicMgr().getTopic(UTTERANCE_TOPIC).hasListeners()

    def test_release_failure_does_not_skip_other_releases(self, make_session, fake_capture):
        fake_capture.fail_release = True
        session = make_session()

        async def scenario():
            await session.start()
            with pytest.raises(OSError):
                await session.stop()

        asyncio.run(scenario())

        assert fake_capture.released == 1
        assert session.backend.stopped == 1
        assert session.sampler.is_sampling is False
        assert session.is_listening is False

    def test_events_after_stop_are_dropped(self, make_session):
        session = make_session()

        async def scenario():
            await session.start()
            await session.stop()
            session.backend.emit(UtteranceEvent(speaker_id="Guest-1", text="late"))
            await settle(0.01)

        asyncio.run(scenario())

        assert len(session.transcript) == 0
        assert session.snapshot().active_speaker is None

    def test_cancellation_keeps_transcript(self, make_session):
        session = make_session()

        async def scenario():
            await session.start()
            session.backend.emit(UtteranceEvent(speaker_id="Guest-2", text="before"))
            session.backend.emit(CanceledEvent(
                reason=CancellationReason.ERROR, error_code="UNAVAILABLE", error_detail="network down"
            ))
            await settle(0.01)
            snapshot = session.snapshot()
            await session.stop()
            return snapshot

        snapshot = asyncio.run(scenario())

        assert [e.text for e in snapshot.transcript] == ["before"]
        assert snapshot.is_listening is True

    def test_second_start_is_ignored(self, make_session, fake_capture):
        session = make_session()

        async def scenario():
            await session.start()
            await session.start()
            await session.stop()

        asyncio.run(scenario())

        assert fake_capture.acquired == 1
        assert fake_capture.released == 1

    def test_restart_carries_known_speakers_and_transcript(self, make_session, fake_capture):
        session = make_session()

        async def scenario():
            await session.start()
            session.backend.emit(UtteranceEvent(speaker_id="Guest-1", text="hi"))
            await settle(0.01)
            await session.stop()
            await session.start()
            restarted = session.snapshot()
            session.backend.emit(UtteranceEvent(speaker_id="Guest-2", text="welcome"))
            await settle(0.01)
            after = session.snapshot()
            await session.stop()
            return restarted, after

        restarted, after = asyncio.run(scenario())

        assert [s.label for s in restarted.known_speakers] == ["Speaker Guest-1"]
        assert restarted.active_speaker is None
        assert [e.speaker.label for e in restarted.transcript] == ["Speaker Guest-1"]
        assert [s.label for s in after.known_speakers] == ["Speaker Guest-1", "Speaker Guest-2"]
        assert after.active_speaker.label == "Speaker Guest-2"
        assert fake_capture.acquired == 2
        assert fake_capture.released == 2
