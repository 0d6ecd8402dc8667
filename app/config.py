"""
Configuration module for the StoryNest backend.
Loads settings from .env file and environment variables.
"""

import os
from pathlib import Path
from typing import List

# Try to load .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    with open(_env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value


class Settings:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        self.app_name: str = os.getenv("APP_NAME", "StoryNest")
        self.api_version: str = os.getenv("API_VERSION", "v1")
        self.debug: bool = os.getenv("DEBUG", "true").lower() in ("true", "1", "yes")
        self.environment: str = os.getenv("ENVIRONMENT", "development")

        # Storage
        self.firebase_credentials_path: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "")
        self.local_data_dir: str = os.getenv("LOCAL_DATA_DIR", "./data")

        # CORS
        cors_raw = os.getenv("CORS_ORIGINS", "*")
        self.cors_origins: List[str] = [s.strip() for s in cors_raw.split(",")]

        # Collections
        self.target_per_collection: int = int(os.getenv("TARGET_PER_COLLECTION", "1"))

        # Text generation (Groq)
        self.groq_api_key: str = os.getenv("GROQ_API_KEY", "")
        self.groq_model: str = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
        self.generation_timeout_seconds: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "180"))

        # Speech synthesis (ElevenLabs)
        self.elevenlabs_api_key: str = os.getenv("ELEVENLABS_API_KEY", "")
        self.elevenlabs_voice: str = os.getenv("ELEVENLABS_VOICE", "").strip()
        self.elevenlabs_voice_stability: float = float(os.getenv("ELEVENLABS_VOICE_STABILITY", "0.4"))
        self.elevenlabs_similarity_boost: float = float(os.getenv("ELEVENLABS_SIMILARITY_BOOST", "0.75"))
        self.tts_timeout_seconds: float = float(os.getenv("TTS_TIMEOUT_SECONDS", "120"))

        # Synthesized audio is written here and served under /ai-audio
        self.ai_audio_dir: str = os.getenv("AI_AUDIO_DIR", "./public/ai-audio")
        self.public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

        # Background regeneration
        self.regeneration_concurrency: int = int(os.getenv("REGENERATION_CONCURRENCY", "2"))


_settings = None


def get_settings() -> Settings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
