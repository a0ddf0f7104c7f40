"""Strategy report generation: server PDF with a local reportlab fallback."""

from __future__ import annotations

import asyncio
import datetime
import io
import logging
import textwrap
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .constants import DEFAULT_CITY
from .errors import RemoteError
from .models import MitigationStrategy, Prediction, ReportFallback, UHIDataPoint, format_metric

logger = logging.getLogger(__name__)

REPORT_TITLE = "UHI Mitigation Strategies Report"
_PDF_MARGIN = 54  # 0.75 inches


@dataclass(frozen=True)
class ReportDownload:
    filename: str
    content: bytes
    source: str  # "server" or "client"
    fallback: Optional[ReportFallback] = None


def report_filename(when: Optional[datetime.datetime] = None) -> str:
    when = when or datetime.datetime.now(datetime.timezone.utc)
    return f"uhi_strategies_report_{when.date().isoformat()}.pdf"


def summarize_points(points: Sequence[UHIDataPoint]) -> Dict[str, str]:
    if not points:
        return {"avg_uhi": "N/A", "temp_range": "N/A", "points": "0"}
    frame = pd.DataFrame(
        {
            "uhi": [p.uhi_intensity for p in points],
            "temperature": [p.temperature for p in points],
        }
    )
    return {
        "avg_uhi": f"{frame['uhi'].mean():.1f}",
        "temp_range": f"{frame['temperature'].min():.0f}-{frame['temperature'].max():.0f}°C",
        "points": str(len(frame)),
    }


def build_report_payload(
    strategies: Sequence[MitigationStrategy],
    predictions: Sequence[Prediction] = (),
    data_summary: Optional[Mapping[str, Any]] = None,
    area: Optional[Mapping[str, Any]] = None,
    city: str = DEFAULT_CITY,
    title: str = REPORT_TITLE,
) -> Dict[str, Any]:
    return {
        "title": title,
        "city": city,
        "area": dict(area or {}),
        "data_summary": dict(data_summary or {}),
        "predictions": [p.to_dict() for p in predictions],
        "strategies": [s.to_dict() for s in strategies],
    }


def forecast_chart_png(predictions: Sequence[Prediction]) -> bytes:
    days = np.arange(1, len(predictions) + 1)
    temperature = np.array([p.temperature for p in predictions], dtype=float)
    uhi = np.array(
        [np.nan if p.uhi_intensity is None else p.uhi_intensity for p in predictions],
        dtype=float,
    )

    fig = Figure(figsize=(5.2, 2.8), dpi=150)
    ax = fig.subplots()
    ax.plot(days, temperature, color="#f97316", linewidth=2, marker="o", label="Temperature (°C)")
    if not np.all(np.isnan(uhi)):
        ax.plot(days, uhi, color="#dc2626", linewidth=2, marker="s", label="UHI intensity (°C)")
    ax.set_xlabel("Day", fontsize=8)
    ax.set_title("Forecast", fontsize=11, fontweight="bold")
    ax.tick_params(labelsize=8)
    ax.grid(True, linestyle="--", linewidth=0.5, color="#cbd5f5")
    ax.legend(loc="upper left", fontsize=7)
    fig.tight_layout()

    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", bbox_inches="tight")
    buffer.seek(0)
    return buffer.read()


def _render_lines(
    can: canvas.Canvas,
    lines: list[str],
    margin: int,
    page_height: int,
    start_y: int,
    line_height: int,
) -> int:
    y = start_y
    for line in lines:
        if y < margin + line_height:
            can.showPage()
            can.setFont("Helvetica", 10)
            y = page_height - margin
        can.drawString(margin, y, line)
        y -= line_height
    return y


def _section(
    can: canvas.Canvas, title: str, margin: int, width: float, y: int, line_height: int
) -> int:
    can.setFont("Helvetica-Bold", 14)
    can.drawString(margin, y, title)
    y -= line_height
    can.setLineWidth(0.5)
    can.line(margin, y, width - margin, y)
    can.setFont("Helvetica", 10)
    return y - int(1.2 * line_height)


def generate_pdf_report(
    strategies: Sequence[MitigationStrategy],
    predictions: Sequence[Prediction] = (),
    data_summary: Optional[Mapping[str, Any]] = None,
    city: str = DEFAULT_CITY,
    title: str = REPORT_TITLE,
    chart_png: Optional[bytes] = None,
) -> bytes:
    buffer = io.BytesIO()
    can = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    margin = _PDF_MARGIN
    page_height = int(height)
    y = page_height - margin
    line_height = 14

    can.setFont("Helvetica-Bold", 18)
    can.drawString(margin, y, title)
    can.setLineWidth(1)
    can.line(margin, y - 4, width - margin, y - 4)
    y -= 2 * line_height
    can.setFont("Helvetica", 10)
    can.drawString(
        margin,
        y,
        f"{city} · Generated: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
    )
    y -= int(1.5 * line_height)

    y = _section(can, "Data Summary", margin, width, y, line_height)
    summary = data_summary or {}
    summary_lines = [
        f"• Average UHI intensity: {summary.get('avg_uhi', 'N/A')} °C",
        f"• Temperature range: {summary.get('temp_range', 'N/A')}",
    ]
    if "points" in summary:
        summary_lines.append(f"• Data points analysed: {summary['points']}")
    y = _render_lines(can, summary_lines, margin, page_height, y, line_height)
    y -= line_height

    y = _section(can, "Mitigation Strategies", margin, width, y, line_height)
    strategy_lines: list[str] = []
    for index, strategy in enumerate(strategies, start=1):
        strategy_lines.append(
            f"{index}. {strategy.title} [{strategy.category} · {strategy.priority} priority]"
        )
        strategy_lines.extend(
            "    " + line for line in textwrap.wrap(strategy.explanation, width=85)
        )
        if strategy.impact:
            strategy_lines.append(f"    {strategy.impact}")
    if not strategy_lines:
        strategy_lines.append("No strategies generated yet.")
    y = _render_lines(can, strategy_lines, margin, page_height, y, line_height)
    y -= line_height

    if predictions:
        y = _section(can, "Forecast", margin, width, y, line_height)
        forecast_lines = [
            f"{p.date}: temp {p.temperature:.1f} °C · UHI {format_metric(p.uhi_intensity, 2)} · "
            f"heatwave {p.heatwave_probability:.0%} · health risk {format_metric(p.health_risk_index, 1)}"
            for p in predictions
        ]
        y = _render_lines(can, forecast_lines, margin, page_height, y, line_height)
        y -= line_height

    if chart_png:
        if y < margin + 240:
            can.showPage()
            y = page_height - margin
        reader = ImageReader(io.BytesIO(chart_png))
        img_w, img_h = reader.getSize()
        scale = min((width - 2 * margin) / img_w, 220 / img_h)
        draw_w = img_w * scale
        draw_h = img_h * scale
        can.drawImage(
            reader, margin, y - draw_h, width=draw_w, height=draw_h, preserveAspectRatio=True
        )
        can.setFont("Helvetica", 9)
        can.drawString(margin, y - draw_h - 12, "Figure · Forecast temperature and UHI intensity")

    can.save()
    buffer.seek(0)
    return buffer.read()


def _render_locally(
    payload: Mapping[str, Any],
    predictions: Sequence[Prediction],
    strategies: Sequence[MitigationStrategy],
) -> bytes:
    chart = forecast_chart_png(predictions) if predictions else None
    return generate_pdf_report(
        strategies,
        predictions,
        data_summary=payload.get("data_summary"),
        city=payload.get("city", DEFAULT_CITY),
        title=payload.get("title", REPORT_TITLE),
        chart_png=chart,
    )


async def request_report(
    api: Any,
    strategies: Sequence[MitigationStrategy],
    predictions: Sequence[Prediction] = (),
    data_summary: Optional[Mapping[str, Any]] = None,
    area: Optional[Mapping[str, Any]] = None,
    city: str = DEFAULT_CITY,
) -> ReportDownload:
    """Ask the server for a PDF; render one locally if it cannot provide it."""

    payload = build_report_payload(strategies, predictions, data_summary, area, city)
    filename = report_filename()
    fallback: Optional[ReportFallback] = None
    try:
        result = await api.generate_report(payload)
    except RemoteError as exc:
        logger.info("Server-side PDF not available, using client-side: %s", exc)
    else:
        if not isinstance(result, ReportFallback):
            return ReportDownload(filename, result, "server")
        fallback = result

    content = await asyncio.to_thread(_render_locally, payload, predictions, strategies)
    return ReportDownload(filename, content, "client", fallback)


__all__ = [
    "REPORT_TITLE",
    "ReportDownload",
    "report_filename",
    "summarize_points",
    "build_report_payload",
    "forecast_chart_png",
    "generate_pdf_report",
    "request_report",
]
