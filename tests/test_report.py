import asyncio
import datetime

import pytest

from conftest import make_point
from uhi_app.errors import RemoteError
from uhi_app.models import Prediction, ReportFallback
from uhi_app.report import (
    build_report_payload,
    forecast_chart_png,
    generate_pdf_report,
    report_filename,
    request_report,
    summarize_points,
)
from uhi_app.strategies import DEFAULT_STRATEGIES

PREDICTIONS = (
    Prediction("2025-06-01", 34.0, 0.2, uhi_intensity=5.5, health_risk_index=6.0),
    Prediction("2025-06-02", 36.5, 0.6),
)


class TestSummary:
    def test_summarize_points(self):
        points = [make_point(uhi_intensity=6.0, temperature=31.2), make_point(uhi_intensity=8.0, temperature=38.9)]

        assert summarize_points(points) == {"avg_uhi": "7.0", "temp_range": "31-39°C", "points": "2"}

    def test_summarize_nothing(self):
        assert summarize_points([]) == {"avg_uhi": "N/A", "temp_range": "N/A", "points": "0"}

    def test_payload(self):
        payload = build_report_payload(DEFAULT_STRATEGIES[:1], PREDICTIONS, {"avg_uhi": "7.0"})

        assert payload["city"] == "Pune"
        assert payload["strategies"][0]["title"] == "Increase Urban Vegetation Coverage"
        assert payload["predictions"][1]["uhi_intensity"] is None

    def test_filename(self):
        when = datetime.datetime(2025, 6, 1, tzinfo=datetime.timezone.utc)
        assert report_filename(when) == "uhi_strategies_report_2025-06-01.pdf"


class TestRendering:
    def test_chart_is_png(self):
        assert forecast_chart_png(PREDICTIONS).startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_chart_renders_in_worker_threads(self):
        charts = await asyncio.gather(
            *(asyncio.to_thread(forecast_chart_png, PREDICTIONS) for _ in range(3))
        )

        assert all(chart.startswith(b"\x89PNG") for chart in charts)

    def test_pdf(self):
        pdf = generate_pdf_report(
            DEFAULT_STRATEGIES, PREDICTIONS, {"avg_uhi": "7.0", "temp_range": "31-39°C"},
            chart_png=forecast_chart_png(PREDICTIONS),
        )
        assert pdf.startswith(b"%PDF")

    def test_pdf_without_strategies(self):
        assert generate_pdf_report([]).startswith(b"%PDF")


class TestRequestReport:
    @pytest.mark.asyncio
    async def test_server_pdf(self, fake_api):
        fake_api.queue("generate_report", b"%PDF-server")

        download = await request_report(fake_api, DEFAULT_STRATEGIES)

        assert download.source == "server"
        assert download.content == b"%PDF-server"
        assert download.filename.endswith(".pdf")

    @pytest.mark.asyncio
    async def test_not_implemented_falls_back(self, fake_api):
        fallback = ReportFallback("PDF generation not available", "reportlab missing", "client_side")
        fake_api.queue("generate_report", fallback)

        download = await request_report(fake_api, DEFAULT_STRATEGIES, PREDICTIONS)

        assert download.source == "client"
        assert download.fallback == fallback
        assert download.content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_remote_error_falls_back(self, fake_api):
        fake_api.queue("generate_report", RemoteError("generate_report", "network", "Network error"))

        download = await request_report(fake_api, DEFAULT_STRATEGIES, data_summary={"avg_uhi": "6.1"})

        (payload,), _ = fake_api.calls_to("generate_report")[0]
        assert payload["data_summary"] == {"avg_uhi": "6.1"}
        assert download.source == "client"
        assert download.fallback is None
        assert download.content.startswith(b"%PDF")
