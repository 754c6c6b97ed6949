"""
Configuration Tests - Modes, preload sets, thresholds and preferences.
"""

import pytest

from cue_director.config import (
    GENERIC_PRELOAD_SET,
    MODE_PRELOAD_SETS,
    DirectorConfig,
    DirectorMode,
    UserPreferences,
    preload_queries,
    stingers_for,
)


class TestDirectorMode:
    """Tests for DirectorMode."""

    def test_parse(self):
        """Names parse case-insensitively."""
        assert DirectorMode.parse("Horror") == DirectorMode.HORROR
        assert DirectorMode.parse(DirectorMode.DND) == DirectorMode.DND

    def test_unknown_falls_back_to_auto(self):
        """Unknown names become AUTO."""
        assert DirectorMode.parse("polka") == DirectorMode.AUTO


class TestPreloadSets:
    """Tests for preload_queries/stingers_for."""

    def test_every_mode_has_sets(self):
        """Each mode has a preload set and stingers."""
        for mode in DirectorMode:
            assert MODE_PRELOAD_SETS[mode]
            assert stingers_for(mode)

    def test_merge_and_cap(self):
        """Mode set first, then generic extras, deduplicated and capped."""
        queries = preload_queries(DirectorMode.HORROR, cap=25)

        assert queries[:len(MODE_PRELOAD_SETS[DirectorMode.HORROR])] == list(MODE_PRELOAD_SETS[DirectorMode.HORROR])
        assert len(queries) == len(set(queries)) == 25
        assert set(queries[20:]) <= set(GENERIC_PRELOAD_SET)

    def test_default_cap(self):
        """Default cap is 20."""
        assert len(preload_queries(DirectorMode.AUTO)) == 20


class TestDirectorConfig:
    """Tests for DirectorConfig."""

    def test_defaults(self):
        """Defaults match the documented thresholds."""
        config = DirectorConfig()

        assert config.cooldown_s == 3.5
        assert config.max_simultaneous_sfx == 3
        assert config.music_change_threshold_s == 30.0
        assert config.transcript_capacity == 50

    def test_calculate_volume(self):
        """Intensity maps onto [min_volume, max_volume]."""
        config = DirectorConfig()

        assert config.calculate_volume(0.0) == pytest.approx(0.2)
        assert config.calculate_volume(1.0) == pytest.approx(0.7)
        assert config.calculate_volume(0.5) == pytest.approx(0.45)

    @pytest.mark.parametrize("low_latency,network,expected", [
        (False, "4g", 4),
        (True, "4g", 7),
        (False, "3g", 3),
        (True, "3g", 6),
        (False, "2g", 2),
        (True, "slow-2g", 5),
    ])
    def test_concurrency_for(self, low_latency, network, expected):
        """Pool size follows latency mode and network type."""
        assert DirectorConfig().concurrency_for(low_latency, network) == expected

    @pytest.mark.parametrize("kwargs", [
        {"transcript_capacity": 0},
        {"cooldown_s": -1},
        {"base_concurrency": 0},
        {"min_volume": 0.8, "max_volume": 0.5},
        {"stinger_min_s": 50, "stinger_max_s": 45},
    ])
    def test_validation(self, kwargs):
        """Invalid values raise ValueError."""
        with pytest.raises(ValueError):
            DirectorConfig(**kwargs)

    def test_from_env(self, monkeypatch):
        """Collaborator settings come from the environment."""
        monkeypatch.setenv("CUE_DIRECTOR_BACKEND_URL", "https://backend.example/")
        monkeypatch.setenv("CUE_DIRECTOR_FREESOUND_KEY", "secret")

        config = DirectorConfig.from_env(cooldown_s=1.0)

        assert config.backend_url == "https://backend.example"
        assert config.freesound_api_key == "secret"
        assert config.cooldown_s == 1.0

    def test_from_env_unset(self, monkeypatch):
        """Unset variables leave the fields empty."""
        monkeypatch.delenv("CUE_DIRECTOR_BACKEND_URL", raising=False)
        monkeypatch.delenv("CUE_DIRECTOR_FREESOUND_KEY", raising=False)

        config = DirectorConfig.from_env()
        assert config.backend_url is None
        assert config.freesound_api_key is None


class TestUserPreferences:
    """Tests for UserPreferences."""

    def test_clamped(self):
        """Levels are clamped to [0, 1]."""
        prefs = UserPreferences(music_level=3.0, sfx_level=-1.0, mood_bias=0.3)

        assert prefs.music_level == 1.0
        assert prefs.sfx_level == 0.0
        assert prefs.mood_bias == 0.3

    def test_adjust_music_level(self):
        """Adjustments step and clamp."""
        prefs = UserPreferences(music_level=0.95)

        assert prefs.adjust_music_level(0.1) == 1.0
        assert prefs.adjust_music_level(-0.3) == pytest.approx(0.7)

    def test_dict_round_trip_ignores_unknown(self):
        """from_dict ignores keys it doesn't know."""
        data = UserPreferences(low_latency=True).to_dict()
        data["theme"] = "dark"

        prefs = UserPreferences.from_dict(data)
        assert prefs.low_latency
        assert prefs.prediction_enabled is False
