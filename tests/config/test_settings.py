"""
Settings Tests
"""

import pytest
from pydantic import ValidationError

from app.config.settings import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.STATE_FILE_NAME == "simulator-db.json"
    assert settings.POLL_ITERATIONS == 3
    assert settings.POLL_DELAY_SECONDS == 20.0
    assert settings.PRICE_CHUNK_SIZE == 30
    assert settings.HISTORY_LIMIT == 1000


def test_cors_origins_from_comma_separated_string():
    settings = Settings(_env_file=None, CORS_ORIGINS="https://a.example, https://b.example")
    assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]


@pytest.mark.parametrize("field,value", [
    ("POLL_ITERATIONS", 0),
    ("SAVE_MAX_ATTEMPTS", -1),
    ("PRICE_CHUNK_SIZE", 0),
    ("POLL_DELAY_SECONDS", -0.5),
    ("HTTP_TIMEOUT_SECONDS", 0),
])
def test_rejects_invalid_values(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
