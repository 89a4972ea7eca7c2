"""Rating system settings."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError


@dataclass
class RatingConfig:
    """Parameters of the rating system."""

    default_rating: float = 1500.0
    default_uncertainty: float = 200.0
    tolerance: float = 300.0
    rating_system: str = "weng_lin"
    uncertainty_decay: float = 0.95
    min_uncertainty: float = 50.0
    max_uncertainty: float = 350.0
    beta: float = 200.0
    convergence_tolerance: float = 0.0001
    enable_dynamic_adjustments: bool = True
    provisional_games: int = 10
    rating_floor: float = 100.0
    rating_ceiling: float = 3000.0

    @classmethod
    def conservative(cls) -> RatingConfig:
        """Slower, smaller rating changes."""
        return cls(uncertainty_decay=0.98, beta=250.0, tolerance=200.0, provisional_games=15)

    @classmethod
    def aggressive(cls) -> RatingConfig:
        """Faster, larger rating changes."""
        return cls(uncertainty_decay=0.90, beta=150.0, tolerance=400.0, provisional_games=5)

    @classmethod
    def beginner_friendly(cls) -> RatingConfig:
        """Lower start, loose matching and a high floor."""
        return cls(
            default_rating=1200.0,
            default_uncertainty=300.0,
            tolerance=500.0,
            provisional_games=20,
            rating_floor=800.0,
        )

    @classmethod
    def competitive(cls) -> RatingConfig:
        """Low initial uncertainty and strict matching."""
        return cls(
            default_rating=1500.0,
            default_uncertainty=150.0,
            tolerance=150.0,
            provisional_games=25,
            uncertainty_decay=0.97,
            beta=200.0,
        )

    def validate(self) -> None:
        """Raise ConfigurationError if the settings are inconsistent."""
        if not self.rating_floor <= self.default_rating <= self.rating_ceiling:
            raise ConfigurationError("Default rating must be within rating floor and ceiling")
        if not self.min_uncertainty <= self.default_uncertainty <= self.max_uncertainty:
            raise ConfigurationError(
                "Default uncertainty must be within min and max uncertainty bounds"
            )
        if self.min_uncertainty >= self.max_uncertainty:
            raise ConfigurationError("Minimum uncertainty must be less than maximum uncertainty")
        if self.rating_floor >= self.rating_ceiling:
            raise ConfigurationError("Rating floor must be less than rating ceiling")
        if self.uncertainty_decay <= 0.0 or self.uncertainty_decay > 1.0:
            raise ConfigurationError("Uncertainty decay must be between 0.0 and 1.0")
        if self.beta <= 0.0:
            raise ConfigurationError("Beta must be positive")
        if self.tolerance < 0.0:
            raise ConfigurationError("Tolerance must be non-negative")
        if self.convergence_tolerance <= 0.0:
            raise ConfigurationError("Convergence tolerance must be positive")