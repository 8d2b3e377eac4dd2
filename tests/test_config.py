"""Tests for settings parsing."""

from __future__ import annotations

import pydantic
import pytest

from library_service.config import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None, database_url=None)
        assert settings.loan_period_days == 14
        assert settings.database_dsn.startswith("postgresql+asyncpg://")

    @pytest.mark.parametrize("days", [0, -3, 400])
    def test_loan_period_must_be_sensible(self, days):
        with pytest.raises(pydantic.ValidationError):
            Settings(_env_file=None, loan_period_days=days)

    def test_custom_profanity_words_are_normalised(self):
        settings = Settings(_env_file=None, profanity_words_custom=" Frak, ,Gorram ")
        assert settings.profanity_custom_list == ["frak", "gorram"]
