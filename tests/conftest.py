import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

from app import main
from config.settings import Settings, get_settings
from store.prospects import ProspectStore


ADMIN_AUTH = ("admin", "s3cret")


@pytest.fixture
def settings():
    s = Settings()
    s.admin_username, s.admin_password = ADMIN_AUTH
    s.database_url = None
    s.openrouter_api_key = "or-key"
    s.openrouter_base_url = "https://openrouter.test/api/v1"
    s.openrouter_model = "test/model"
    s.elevenlabs_api_key = "xi-key"
    s.elevenlabs_voice_id = "voice-1"
    s.elevenlabs_base_url = "https://tts.test"
    s.elevenlabs_model_id = "eleven_multilingual_v2"
    s.elevenlabs_stability = 0.5
    s.elevenlabs_similarity_boost = 0.75
    s.llm_provider = "openrouter"
    s.google_api_key = None
    return s


@pytest.fixture
def store(tmp_path):
    s = ProspectStore.from_url(f"sqlite:///{tmp_path / 'prospects.db'}")
    assert s.init_schema()
    yield s
    s.engine.dispose()


@pytest.fixture
def text_generator():
    fake = MagicMock()
    fake.generate.return_value = "Hello from the bot"
    return fake


@pytest.fixture
def speech():
    fake = MagicMock()
    fake.synthesize.return_value = b"XY"
    return fake


@pytest.fixture
def client(settings, store, text_generator, speech):
    overrides = main.app.dependency_overrides
    overrides[get_settings] = lambda: settings
    overrides[main.get_store] = lambda: store
    overrides[main.get_text_generator] = lambda: text_generator
    overrides[main.get_speech] = lambda: speech
    yield TestClient(main.app)
    overrides.clear()
