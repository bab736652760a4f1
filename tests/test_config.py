from __future__ import annotations

from krishisakha.config import get_settings


def test_defaults_generator_model_and_retry_policy():
    settings = get_settings({"environment": "test"})
    assert settings.generator_model == "gemini-2.0-flash-exp"
    assert settings.retrieval_max_attempts == 3
    assert settings.retrieval_retry_delay_seconds == 1.0


def test_generator_requires_api_key():
    assert not get_settings({"generator_api_key": None}).generator_enabled
    assert get_settings({"generator_api_key": "secret"}).generator_enabled
    assert not get_settings({"generator_api_key": "secret", "use_model_generator": False}).generator_enabled


def test_history_limits_defaults():
    settings = get_settings({"environment": "test"})
    assert settings.is_test
    assert settings.history_limit == 10
    assert settings.history_max_attempts >= 1
