"""Mitigation strategy loading with a built-in fallback list."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .constants import DEFAULT_AREA_POINT
from .errors import Notice, UHIError
from .models import MitigationStrategy

logger = logging.getLogger(__name__)

DEFAULT_AREA: Dict[str, Any] = {"center": dict(DEFAULT_AREA_POINT)}

# Example strategies shown until the user generates real ones.
DEFAULT_STRATEGIES: Tuple[MitigationStrategy, ...] = (
    MitigationStrategy(
        title="Increase Urban Vegetation Coverage",
        category="Green Infrastructure",
        priority="high",
        explanation=(
            "Expand green spaces by planting native trees and creating urban forests. "
            "Target a 25% increase in NDVI across high-risk clusters."
        ),
        impact="Expected UHI reduction: 1.2°C",
    ),
    MitigationStrategy(
        title="Cool Roofs & Reflective Surfaces",
        category="Building Materials",
        priority="high",
        explanation=(
            "Mandate cool roof installations for new constructions and incentivize "
            "retrofits for existing buildings."
        ),
        impact="Expected UHI reduction: 0.8°C",
    ),
    MitigationStrategy(
        title="Enhance Microclimate Regulation",
        category="Climate Adaptation",
        priority="medium",
        explanation=(
            "Install misting systems in public spaces during heat waves. "
            "Create water features to improve thermal comfort."
        ),
        impact="Expected health risk reduction: 15%",
    ),
    MitigationStrategy(
        title="High-Albedo Pavements",
        category="Urban Planning",
        priority="medium",
        explanation=(
            "Replace dark asphalt with light-colored or permeable pavements to reduce "
            "surface temperature by 3-7°C."
        ),
        impact="Expected UHI reduction: 0.5°C",
    ),
)


@dataclass(frozen=True)
class StrategyState:
    strategies: Tuple[MitigationStrategy, ...] = ()
    characteristics: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None
    loading: bool = False
    error: Optional[UHIError] = None
    notice: Optional[Notice] = None

    @property
    def using_fallback(self) -> bool:
        return not self.strategies

    @property
    def display_strategies(self) -> Tuple[MitigationStrategy, ...]:
        return self.strategies or DEFAULT_STRATEGIES


class MitigationStrategyLoader:
    def __init__(self, api: Any, area: Optional[Mapping[str, Any]] = None) -> None:
        self._api = api
        self.area = dict(area or DEFAULT_AREA)
        self._state = StrategyState()

    @property
    def state(self) -> StrategyState:
        return self._state

    async def generate(
        self,
        area: Optional[Mapping[str, Any]] = None,
        use_ai: bool = False,
        **characteristics: Any,
    ) -> StrategyState:
        """Fetch a fresh strategy list; failures keep whatever was fetched before."""

        area = dict(area or self.area)
        self._state = replace(self._state, loading=True, error=None, notice=None)
        fetch = self._api.get_ai_strategies if use_ai else self._api.get_mitigation_strategies
        try:
            response = await fetch(area, **characteristics)
        except UHIError as exc:
            logger.warning("Strategy generation failed: %s", exc)
            self._state = replace(
                self._state,
                loading=False,
                error=exc,
                notice=Notice(
                    "Error", exc.description or "Failed to generate strategies", "destructive"
                ),
            )
            return self._state

        strategies = tuple(response.strategies)
        self._state = StrategyState(
            strategies=strategies,
            characteristics=dict(response.characteristics),
            source="ai" if use_ai else "static",
            notice=Notice(
                "Strategies Generated", f"Found {len(strategies)} mitigation strategies"
            ),
        )
        return self._state


__all__ = ["DEFAULT_AREA", "DEFAULT_STRATEGIES", "StrategyState", "MitigationStrategyLoader"]
