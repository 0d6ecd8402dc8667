"""ElevenLabs text-to-speech integration.

Synthesized clips are written to the AI audio directory and served by the
app under ``/ai-audio``. All provider failures are logged and reported as
``None``; nothing is raised past ``synthesize``.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
VOICE_LIST_TIMEOUT = 20.0  # seconds
ERROR_PREVIEW_CHARS = 1000


class VoiceSelection:
    """Process-scoped choice of the fallback voice.

    Set at most once, on the first successful synthesis with a voice picked
    from the provider's voice list, and read by every later call. ``reset()``
    is the only way to clear it (explicit reconfiguration).
    """

    def __init__(self):
        self._voice_id: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def voice_id(self) -> Optional[str]:
        return self._voice_id

    def remember(self, voice_id: str) -> bool:
        """Store the voice if none is stored yet. Returns True if stored."""
        with self._lock:
            if self._voice_id is not None:
                return False
            self._voice_id = voice_id
            logger.info("Remembering fallback ElevenLabs voice %s", voice_id)
            return True

    def reset(self) -> None:
        with self._lock:
            self._voice_id = None


def _preview(response: httpx.Response) -> str:
    try:
        return response.text[:ERROR_PREVIEW_CHARS]
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return "<unreadable response body>"


def _log_http_error(prefix: str, err: Exception) -> None:
    if isinstance(err, httpx.HTTPStatusError):
        logger.error(
            "%s: status=%s %s bodyPreview=%s",
            prefix, err.response.status_code, err.response.reason_phrase, _preview(err.response),
        )
    else:
        logger.error("%s: %s", prefix, err)


class ElevenLabsService:
    """Speech synthesis through the ElevenLabs REST API."""

    DEFAULT_TIMEOUT = 120  # seconds

    def __init__(
        self,
        api_key: str,
        audio_dir: str,
        public_base_url: str,
        voice_id: str = "",
        stability: float = 0.4,
        similarity_boost: float = 0.75,
        timeout: float = DEFAULT_TIMEOUT,
        voice_selection: Optional[VoiceSelection] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize ElevenLabs service.

        Args:
            api_key: ElevenLabs API key; empty disables synthesis
            audio_dir: Directory synthesized mp3 files are written to
            public_base_url: Base URL the app is reachable at
            voice_id: Explicitly configured voice (optional)
            stability: Voice stability setting
            similarity_boost: Voice similarity boost setting
            timeout: Synthesis request timeout in seconds
            voice_selection: Shared fallback voice state
            transport: Optional httpx transport (tests)
        """
        self.api_key = api_key
        self.audio_dir = Path(audio_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.configured_voice = (voice_id or "").strip() or None
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.timeout = timeout
        self.voice_selection = voice_selection or VoiceSelection()
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def _headers(self) -> dict:
        return {"xi-api-key": self.api_key, "Content-Type": "application/json"}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _request_audio(self, text: str, voice_id: str) -> bytes:
        url = f"{ELEVENLABS_API_BASE}/text-to-speech/{voice_id}"
        body = {
            "text": str(text or ""),
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
            },
        }
        async with self._client(self.timeout) as client:
            resp = await client.post(url, json=body, headers=self._headers)
            resp.raise_for_status()
            return resp.content

    async def list_voices(self) -> list:
        """
        List voices available to the account.

        Returns:
            Raw voice entries (dicts), possibly empty

        Raises:
            httpx.HTTPError: On transport or status failures
        """
        async with self._client(VOICE_LIST_TIMEOUT) as client:
            resp = await client.get(f"{ELEVENLABS_API_BASE}/voices", headers={"xi-api-key": self.api_key})
            resp.raise_for_status()
            data = resp.json()
        candidates = data.get("voices", []) if isinstance(data, dict) else data
        return candidates if isinstance(candidates, list) else []

    @staticmethod
    def _voice_id_of(candidate: Any) -> Optional[str]:
        if not isinstance(candidate, dict):
            return None
        for key in ("voice_id", "id", "voiceId", "uuid"):
            if candidate.get(key):
                return str(candidate[key])
        return None

    def _save_audio(self, audio: bytes, filename_prefix: str) -> str:
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{filename_prefix}-{int(time.time() * 1000)}.mp3"
        (self.audio_dir / filename).write_bytes(audio)
        return f"{self.public_base_url}/ai-audio/{filename}"

    async def synthesize(self, text: str, filename_prefix: str = "ai") -> Optional[str]:
        """
        Synthesize speech for text and return a URL to the saved clip.

        The configured voice is tried first, then a previously remembered
        fallback voice, and finally the first voice the account lists.

        Args:
            text: Text to speak
            filename_prefix: Prefix of the saved mp3 file

        Returns:
            Public URL of the audio, or None on any failure
        """
        if not self.is_configured:
            return None

        preferred = self.configured_voice or self.voice_selection.voice_id
        if preferred:
            try:
                audio = await self._request_audio(text, preferred)
                return self._save_audio(audio, filename_prefix)
            except httpx.HTTPError as e:
                _log_http_error("ElevenLabs TTS error (configured voice)", e)
            except OSError as e:
                logger.error("Failed to save synthesized audio: %s", e)
                return None

        try:
            voices = await self.list_voices()
        except (httpx.HTTPError, ValueError) as e:
            _log_http_error("ElevenLabs list voices error", e)
            return None

        fallback_voice = self._voice_id_of(voices[0]) if voices else None
        if not fallback_voice:
            logger.warning("No ElevenLabs voices available")
            return None

        try:
            audio = await self._request_audio(text, fallback_voice)
        except httpx.HTTPError as e:
            _log_http_error("ElevenLabs TTS error (fallback voice)", e)
            return None

        self.voice_selection.remember(fallback_voice)
        try:
            return self._save_audio(audio, filename_prefix)
        except OSError as e:
            logger.error("Failed to save synthesized audio: %s", e)
            return None
