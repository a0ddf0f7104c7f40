import pytest

from uhi_app.errors import RemoteError
from uhi_app.models import GeocodeResult, SelectedArea
from uhi_app.search import GeocodeSearchController
from uhi_app.viewport import ViewportDataLoader

PUNE = GeocodeResult("Pune, Maharashtra", 18.5204, 73.8567, type="city", importance=0.8)
NAGPUR = GeocodeResult("Nagpur, Maharashtra", 21.1458, 79.0882, type="city", importance=0.7)


@pytest.fixture
def loader(fake_api, scheduler):
    return ViewportDataLoader(fake_api, scheduler=scheduler)


@pytest.fixture
def controller(fake_api, loader):
    return GeocodeSearchController(fake_api, loader)


class TestSearch:
    @pytest.mark.asyncio
    async def test_blank_query_is_ignored(self, controller, fake_api, loader):
        before = loader.viewport

        await controller.search("   ")

        assert fake_api.calls == []
        assert loader.viewport == before
        assert not loader.fetch_pending

    @pytest.mark.asyncio
    async def test_first_result_is_selected(self, controller, fake_api, loader):
        fake_api.queue("geocode", [PUNE, NAGPUR])

        state = await controller.search("  Pune ")

        assert fake_api.calls_to("geocode") == [(("Pune",), {})]
        assert state.results == (PUNE, NAGPUR)
        assert state.selected == PUNE
        assert state.selected_area == SelectedArea(18.5204, 73.8567, 5.0)
        assert loader.viewport.center.lat == pytest.approx(18.5204)
        assert loader.viewport.zoom == 12
        assert loader.fetch_pending

    @pytest.mark.asyncio
    async def test_no_results_leaves_map_alone(self, controller, fake_api, loader):
        fake_api.queue("geocode", [])
        before = loader.viewport

        state = await controller.search("Atlantis")

        assert state.results == ()
        assert state.selected is None
        assert loader.viewport == before

    @pytest.mark.asyncio
    async def test_choose_another_result(self, controller, fake_api, loader):
        fake_api.queue("geocode", [PUNE, NAGPUR])
        await controller.search("Maharashtra")

        controller.select(1)

        assert controller.state.selected == NAGPUR
        assert loader.viewport.center.lng == pytest.approx(79.0882)

    @pytest.mark.asyncio
    async def test_failure_sets_notice(self, controller, fake_api, loader):
        fake_api.queue("geocode", RemoteError("geocode", 502, "Geocoding failed (502)"))
        before = loader.viewport

        state = await controller.search("Pune")

        assert not state.searching
        assert state.notice.title == "Search failed"
        assert state.notice.is_error
        assert loader.viewport == before
