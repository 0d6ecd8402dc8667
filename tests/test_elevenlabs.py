"""Tests for ElevenLabs speech synthesis."""

import asyncio

import httpx

from app.services.tts.elevenlabs_service import ElevenLabsService, VoiceSelection

AUDIO_BYTES = b"ID3fake-mp3"


class Recorder:
    """httpx MockTransport handler that records requests."""

    def __init__(self, voices=None, tts_status=None):
        self.voices = voices if voices is not None else {"voices": [{"voice_id": "v-first"}, {"voice_id": "v-second"}]}
        self.tts_status = tts_status or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/voices"):
            return httpx.Response(200, json=self.voices)
        voice = request.url.path.rsplit("/", 1)[-1]
        code = self.tts_status.get(voice, 200)
        if code != 200:
            return httpx.Response(code, text="voice not allowed")
        return httpx.Response(200, content=AUDIO_BYTES)

    @property
    def paths(self):
        return [r.url.path for r in self.requests]


def _service(tmp_path, handler, api_key="key", voice_id="", selection=None):
    return ElevenLabsService(
        api_key=api_key,
        audio_dir=str(tmp_path),
        public_base_url="http://localhost:8000/",
        voice_id=voice_id,
        voice_selection=selection,
        transport=httpx.MockTransport(handler),
    )


def test_unconfigured_service_returns_none(tmp_path):
    handler = Recorder()
    service = _service(tmp_path, handler, api_key="")

    assert asyncio.run(service.synthesize("hello")) is None
    assert handler.requests == []


def test_configured_voice_is_used_and_audio_saved(tmp_path):
    handler = Recorder()
    service = _service(tmp_path, handler, voice_id="v-config")

    url = asyncio.run(service.synthesize("Good night, moon.", "mom-stories-0"))

    assert url.startswith("http://localhost:8000/ai-audio/mom-stories-0-")
    assert url.endswith(".mp3")
    saved = list(tmp_path.glob("mom-stories-0-*.mp3"))
    assert len(saved) == 1
    assert saved[0].read_bytes() == AUDIO_BYTES
    assert handler.paths == ["/v1/text-to-speech/v-config"]
    assert handler.requests[0].headers["xi-api-key"] == "key"


def test_fallback_voice_is_remembered(tmp_path):
    handler = Recorder()
    selection = VoiceSelection()
    service = _service(tmp_path, handler, selection=selection)

    assert asyncio.run(service.synthesize("first")) is not None
    assert selection.voice_id == "v-first"
    assert handler.paths == ["/v1/voices", "/v1/text-to-speech/v-first"]

    handler.requests.clear()
    assert asyncio.run(service.synthesize("second")) is not None
    assert handler.paths == ["/v1/text-to-speech/v-first"]


def test_rejected_configured_voice_falls_back_to_listed_voice(tmp_path):
    handler = Recorder(tts_status={"v-config": 402})
    service = _service(tmp_path, handler, voice_id="v-config")

    url = asyncio.run(service.synthesize("hello"))

    assert url is not None
    assert handler.paths == [
        "/v1/text-to-speech/v-config",
        "/v1/voices",
        "/v1/text-to-speech/v-first",
    ]


def test_voice_list_as_bare_array_with_alternate_keys(tmp_path):
    handler = Recorder(voices=[{"id": "v-alt"}])
    service = _service(tmp_path, handler)

    assert asyncio.run(service.synthesize("hello")) is not None
    assert service.voice_selection.voice_id == "v-alt"


def test_no_voices_returns_none(tmp_path):
    handler = Recorder(voices={"voices": []})
    service = _service(tmp_path, handler)

    assert asyncio.run(service.synthesize("hello")) is None
    assert service.voice_selection.voice_id is None


def test_fallback_failure_returns_none_and_remembers_nothing(tmp_path):
    handler = Recorder(tts_status={"v-first": 500})
    service = _service(tmp_path, handler)

    assert asyncio.run(service.synthesize("hello")) is None
    assert service.voice_selection.voice_id is None
    assert list(tmp_path.iterdir()) == []


def test_transport_error_returns_none(tmp_path):
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = _service(tmp_path, broken, voice_id="v-config")

    assert asyncio.run(service.synthesize("hello")) is None


def test_voice_selection_is_set_once_until_reset():
    selection = VoiceSelection()
    assert selection.remember("a") is True
    assert selection.remember("b") is False
    assert selection.voice_id == "a"

    selection.reset()
    assert selection.voice_id is None
    assert selection.remember("b") is True
