import io
import wave

import numpy as np
import pytest

from ielts_speaking.errors import InvalidTransitionError, RecordingActiveError
from ielts_speaking.recorder import CAPTURE_CONSTRAINTS, AudioClip, LevelMeter, Recorder


def tone(seconds=0.05, rate=48000, amplitude=0.5, freq=440.0):
	t = np.arange(int(seconds * rate)) / rate
	samples = (amplitude * np.sin(2 * np.pi * freq * t) * 32767).astype("<i2")
	return samples.tobytes()


def silence(seconds=0.05, rate=48000):
	return np.zeros(int(seconds * rate), dtype="<i2").tobytes()


class TestLevelMeter:
	def test_silence_is_zero(self):
		meter = LevelMeter()
		assert meter.update(np.zeros(256)) == 0.0

	def test_level_rises_with_signal_and_is_capped(self):
		meter = LevelMeter()
		levels = [meter.update(np.random.default_rng(1).uniform(-1, 1, 256)) for _ in range(20)]
		assert levels[-1] > 0
		assert all(0 <= level <= 100 for level in levels)

	def test_smoothing_decays_gradually(self):
		meter = LevelMeter()
		for _ in range(20):
			meter.update(np.random.default_rng(2).uniform(-0.01, 0.01, 256))
		loud = meter.level
		after = meter.update(np.zeros(256))
		assert 0 < after < loud


class TestRecorder:
	def test_capture_constraints(self):
		assert CAPTURE_CONSTRAINTS == {
			"echoCancellation": True,
			"noiseSuppression": True,
			"autoGainControl": True,
			"sampleRate": 48000,
		}

	def test_only_one_active_recording(self):
		recorder = Recorder()
		recorder.start()
		with pytest.raises(RecordingActiveError):
			recorder.start()

	def test_feed_requires_active_recording(self):
		with pytest.raises(InvalidTransitionError):
			Recorder().feed(b"\x00\x00")

	def test_stop_returns_wav_and_resets(self):
		recorder = Recorder()
		recorder.start(16000)
		level = recorder.feed(tone(rate=16000))
		assert level > 0
		clip = recorder.stop()
		assert not recorder.active
		assert recorder.level == 0.0
		assert clip.sample_rate == 16000
		assert clip.frames == 800
		assert clip.duration_seconds == pytest.approx(0.05)
		with wave.open(io.BytesIO(clip.data), "rb") as wav:
			assert wav.getnchannels() == 1
			assert wav.getsampwidth() == 2
			assert wav.getnframes() == 800

	def test_odd_chunks_are_stitched(self):
		recorder = Recorder()
		recorder.start()
		data = silence()
		recorder.feed(data[:101])
		recorder.feed(data[101:])
		assert recorder.stop().frames == len(data) // 2

	def test_stop_without_audio_gives_empty_clip(self):
		recorder = Recorder()
		recorder.start()
		assert recorder.stop().is_empty

	def test_release_on_failure(self, monkeypatch):
		recorder = Recorder()
		recorder.start()
		recorder.feed(tone())

		def broken_open(*args, **kwargs):
			raise wave.Error("disk full")

		monkeypatch.setattr("ielts_speaking.recorder.wave.open", broken_open)
		with pytest.raises(wave.Error):
			recorder.stop()
		assert not recorder.active
		assert recorder.level == 0.0
		recorder.start()


class TestAudioClipUpload:
	def test_wav_upload_is_inspected(self):
		recorder = Recorder()
		recorder.start(16000)
		recorder.feed(tone(rate=16000))
		data = recorder.stop().data
		clip = AudioClip.from_upload(data)
		assert clip.frames == 800
		assert clip.sample_rate == 16000

	def test_other_containers_pass_through(self):
		clip = AudioClip.from_upload(b"\x1aE\xdf\xa3webm", "audio/webm")
		assert clip.frames is None
		assert clip.mime_type == "audio/webm"
		assert not clip.is_empty

	def test_empty_upload(self):
		assert AudioClip.from_upload(b"").is_empty
