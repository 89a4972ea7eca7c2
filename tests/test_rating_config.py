import dataclasses

import pytest

from parlor_room.errors import ConfigurationError
from parlor_room.rating_config import RatingConfig


def test_defaults():
    config = RatingConfig()
    assert config.default_rating == 1500.0
    assert config.default_uncertainty == 200.0
    assert config.rating_system == "weng_lin"
    assert config.rating_ceiling == 3000.0
    config.validate()


@pytest.mark.parametrize(
    "factory",
    [
        RatingConfig.conservative,
        RatingConfig.aggressive,
        RatingConfig.beginner_friendly,
        RatingConfig.competitive,
    ],
)
def test_presets_are_valid(factory):
    config = factory()
    config.validate()
    assert config.rating_floor < config.rating_ceiling


def test_preset_values():
    assert RatingConfig.conservative().beta == 250.0
    assert RatingConfig.aggressive().beta == 150.0
    assert RatingConfig.beginner_friendly().rating_floor == 800.0
    assert RatingConfig.competitive().default_uncertainty == 150.0
    assert RatingConfig.competitive().provisional_games == 25


@pytest.mark.parametrize(
    ("changes", "message"),
    [
        ({"default_rating": 50.0}, "Default rating must be within"),
        ({"default_uncertainty": 400.0}, "Default uncertainty must be within"),
        (
            {"min_uncertainty": 200.0, "max_uncertainty": 200.0},
            "Minimum uncertainty must be less than maximum uncertainty",
        ),
        (
            {"rating_floor": 1500.0, "rating_ceiling": 1500.0},
            "Rating floor must be less than rating ceiling",
        ),
        ({"uncertainty_decay": 0.0}, "Uncertainty decay must be between"),
        ({"uncertainty_decay": 1.5}, "Uncertainty decay must be between"),
        ({"beta": 0.0}, "Beta must be positive"),
        ({"tolerance": -1.0}, "Tolerance must be non-negative"),
        ({"convergence_tolerance": 0.0}, "Convergence tolerance must be positive"),
    ],
)
def test_validation_errors(changes, message):
    config = dataclasses.replace(RatingConfig(), **changes)
    with pytest.raises(ConfigurationError, match=message):
        config.validate()