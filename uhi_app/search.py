"""Free-text location search feeding the map viewport."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

from .constants import SEARCH_ZOOM, SELECTED_AREA_RADIUS_KM
from .errors import Notice, UHIError
from .models import GeocodeResult, SelectedArea, Viewport
from .viewport import ViewportDataLoader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchState:
    query: str = ""
    results: Tuple[GeocodeResult, ...] = ()
    selected: Optional[GeocodeResult] = None
    selected_area: Optional[SelectedArea] = None
    searching: bool = False
    notice: Optional[Notice] = None


class GeocodeSearchController:
    def __init__(self, api: Any, loader: ViewportDataLoader) -> None:
        self._api = api
        self._loader = loader
        self._state = SearchState()

    @property
    def state(self) -> SearchState:
        return self._state

    async def search(self, query: str) -> SearchState:
        """Geocode ``query`` and jump to the best match. Blank queries do nothing."""

        text = (query or "").strip()
        if not text:
            return self._state

        self._state = replace(self._state, query=text, searching=True, notice=None)
        try:
            results = await self._api.geocode(text)
        except UHIError as exc:
            logger.warning("Geocoding %r failed: %s", text, exc)
            self._state = replace(
                self._state,
                searching=False,
                notice=Notice(
                    "Search failed", exc.description or "Could not find location", "destructive"
                ),
            )
            return self._state

        self._state = replace(self._state, results=tuple(results), searching=False)
        if results:
            self.select(0)
        return self._state

    def select(self, index: int) -> GeocodeResult:
        """Centre the map on result ``index`` and mark it as the selected area."""

        result = self._state.results[index]
        self._loader.set_viewport(Viewport(result.point, SEARCH_ZOOM))
        self._state = replace(
            self._state,
            selected=result,
            selected_area=SelectedArea(
                result.latitude, result.longitude, SELECTED_AREA_RADIUS_KM
            ),
        )
        return result


__all__ = ["SearchState", "GeocodeSearchController"]
