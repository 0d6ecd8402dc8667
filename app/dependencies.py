"""
Shared application dependencies.
Supports both Firebase mode and local development mode.
"""

import hashlib
import os
from typing import Dict, Optional

from fastapi import Depends, Header

from app.config import Settings, get_settings
from app.crud.child import ChildCRUD
from app.crud.story import StoryCRUD
from app.services.ai.groq_service import GroqService
from app.services.ai.regeneration import RegenerationQueue, StoryLifecycle
from app.services.ai.replenishment import ReplenishmentEngine
from app.services.tts.elevenlabs_service import ElevenLabsService, VoiceSelection
from app.utils.exceptions import AuthenticationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Global Instances
_db_client = None
_groq_service: Optional[GroqService] = None
_speech_service: Optional[ElevenLabsService] = None
_voice_selection = VoiceSelection()
_regeneration_queue: Optional[RegenerationQueue] = None
_is_local_mode = None


def _check_local_mode() -> bool:
    """Determine if we should use local mode (no Firebase)."""
    global _is_local_mode
    if _is_local_mode is not None:
        return _is_local_mode

    settings = get_settings()
    cred_path = settings.firebase_credentials_path

    if not cred_path or not os.path.exists(cred_path):
        logger.info("Firebase credentials not found - running in LOCAL DEV mode")
        _is_local_mode = True
    else:
        _is_local_mode = False

    return _is_local_mode


def get_db_client(settings: Settings = Depends(get_settings)):
    """Get database client - Firestore in prod, LocalStore in dev."""
    global _db_client
    if _db_client is not None:
        return _db_client

    if _check_local_mode():
        from app.services.local_store import get_local_store
        _db_client = get_local_store(settings.local_data_dir)
        logger.info("Using LocalStore (file-backed) database")
    else:
        import firebase_admin
        from firebase_admin import credentials, firestore

        if not firebase_admin._apps:
            firebase_admin.initialize_app(credentials.Certificate(settings.firebase_credentials_path))
        _db_client = firestore.client()
        logger.info("Using Firestore database")

    return _db_client


def get_story_crud(db_client=Depends(get_db_client)) -> StoryCRUD:
    return StoryCRUD(db_client)


def get_child_crud(db_client=Depends(get_db_client)) -> ChildCRUD:
    return ChildCRUD(db_client)


def get_groq_service(settings: Settings = Depends(get_settings)) -> GroqService:
    """Get the text generation gateway."""
    global _groq_service
    if _groq_service is None:
        if not settings.groq_api_key:
            logger.warning("No Groq API key - AI story generation disabled")
        _groq_service = GroqService(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            timeout=settings.generation_timeout_seconds,
        )
    return _groq_service


def get_voice_selection() -> VoiceSelection:
    """Process-wide fallback voice state shared by speech services."""
    return _voice_selection


def get_speech_service(
    settings: Settings = Depends(get_settings),
    voice_selection: VoiceSelection = Depends(get_voice_selection),
) -> ElevenLabsService:
    """Get the speech synthesis gateway."""
    global _speech_service
    if _speech_service is None:
        if not settings.elevenlabs_api_key:
            logger.warning("No ElevenLabs API key - story audio disabled")
        _speech_service = ElevenLabsService(
            api_key=settings.elevenlabs_api_key,
            audio_dir=settings.ai_audio_dir,
            public_base_url=settings.public_base_url,
            voice_id=settings.elevenlabs_voice,
            stability=settings.elevenlabs_voice_stability,
            similarity_boost=settings.elevenlabs_similarity_boost,
            timeout=settings.tts_timeout_seconds,
            voice_selection=voice_selection,
        )
    return _speech_service


def get_regeneration_queue(settings: Settings = Depends(get_settings)) -> RegenerationQueue:
    global _regeneration_queue
    if _regeneration_queue is None:
        _regeneration_queue = RegenerationQueue(settings.regeneration_concurrency)
    return _regeneration_queue


def get_replenishment_engine(
    stories: StoryCRUD = Depends(get_story_crud),
    text_service: GroqService = Depends(get_groq_service),
    speech_service: ElevenLabsService = Depends(get_speech_service),
) -> ReplenishmentEngine:
    return ReplenishmentEngine(stories, text_service, speech_service)


def get_story_lifecycle(
    stories: StoryCRUD = Depends(get_story_crud),
    engine: ReplenishmentEngine = Depends(get_replenishment_engine),
    queue: RegenerationQueue = Depends(get_regeneration_queue),
) -> StoryLifecycle:
    return StoryLifecycle(stories, engine, queue)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, str]:
    """Get current user from auth token."""
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization.replace("Bearer ", "").strip()
    if not token:
        raise AuthenticationError("Invalid or expired token")

    if _check_local_mode():
        # Local dev: any bearer token is a stable pseudo-identity
        uid = hashlib.sha256(token.encode()).hexdigest()[:28]
        return {"uid": uid, "email": ""}

    try:
        from firebase_admin import auth as firebase_auth
        decoded = firebase_auth.verify_id_token(token)
        return {"uid": decoded["uid"], "email": decoded.get("email", "")}
    except Exception as e:
        logger.error(f"Firebase token verification failed: {e}")
        raise AuthenticationError("Invalid or expired token")
