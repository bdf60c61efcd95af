"""Speech synthesis adapter for OpenAI-compatible ``/audio/speech`` endpoints."""

from __future__ import annotations

import logging

import httpx

from storylens.config import Settings, settings as default_settings
from storylens.errors import SpeechSynthesisError

logger = logging.getLogger(__name__)

# One MPEG-1 Layer III frame of silence (32 kbps, 44.1 kHz, mono)
SILENT_MP3 = bytes.fromhex("FFFB902064000000000000000000000000000000000000000000000000000000")


class SpeechSynthesizer:
    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.settings.tts_base_url)

    async def synthesize(self, text: str) -> bytes:
        """Return MP3 bytes for ``text``. Silence when no endpoint is configured."""
        if not text or not text.strip():
            raise SpeechSynthesisError("Input text is required for speech synthesis")

        if not self.configured:
            logger.warning("TTS_BASE_URL is not set; returning silent audio")
            return SILENT_MP3

        url = f"{self.settings.tts_base_url.rstrip('/')}/audio/speech"
        headers = {"Content-Type": "application/json"}
        if self.settings.tts_api_key:
            headers["Authorization"] = f"Bearer {self.settings.tts_api_key}"
        payload = {
            "model": self.settings.tts_model,
            "input": text,
            "voice": self.settings.tts_voice,
            "response_format": "mp3",
        }

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.settings.tts_timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("TTS request failed with status %s: %s", e.response.status_code, e.response.text[:200])
            raise SpeechSynthesisError(f"TTS request failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("TTS request failed: %s", e)
            raise SpeechSynthesisError("TTS endpoint unreachable") from e

        if not response.content:
            raise SpeechSynthesisError("TTS endpoint returned no audio")
        return response.content
