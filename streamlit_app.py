"""Streamlit front end for the UHI explorer.

The page is a thin shell: every decision it shows (bounding boxes, colours,
validation, prediction normalisation, fallbacks) is made by the controllers
in ``uhi_app``. Each interaction runs the relevant coroutine to completion
with ``asyncio.run`` and then renders the controller state.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from uhi_app.api import AsyncGeoAPIClient, GeoAPIClient
from uhi_app.config import Settings, configure_logging
from uhi_app.constants import CLUSTER_OPTIONS, TIME_SERIES_HORIZONS
from uhi_app.csv_transfer import (
    data_points_filename,
    export_data_points_csv,
    export_predictions_csv,
    predictions_filename,
)
from uhi_app.errors import Notice, ValidationError
from uhi_app.maps import map_deck, selection_to_point
from uhi_app.prediction import Mode, PredictionForm, PredictionOrchestrator
from uhi_app.report import request_report, summarize_points
from uhi_app.search import GeocodeSearchController
from uhi_app.strategies import MitigationStrategyLoader
from uhi_app.viewport import ViewportDataLoader

st.set_page_config(page_title="UHI Explorer · Maharashtra", layout="wide")

CLUSTER_LABELS = {option["id"]: option["name"] for option in CLUSTER_OPTIONS}


def _initialise_session_state() -> None:
    if "loader" in st.session_state:
        return
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    api = AsyncGeoAPIClient(GeoAPIClient.from_settings(settings))
    loader = ViewportDataLoader(
        api, debounce_seconds=settings.debounce_seconds, padding=settings.bbox_padding
    )
    st.session_state.loader = loader
    st.session_state.search = GeocodeSearchController(api, loader)
    st.session_state.orchestrator = PredictionOrchestrator(api)
    st.session_state.strategies = MitigationStrategyLoader(api)
    st.session_state.api = api
    st.session_state.form = PredictionForm()


def _show_notice(notice: Optional[Notice]) -> None:
    if notice is None:
        return
    if notice.is_error:
        st.error(f"**{notice.title}**: {notice.description}")
    else:
        st.success(f"**{notice.title}**: {notice.description}")


async def _search_and_load(query: str) -> None:
    await st.session_state.search.search(query)
    if st.session_state.search.state.selected is not None:
        await st.session_state.loader.refresh()


async def _select_and_load(index: int) -> None:
    st.session_state.search.select(index)
    await st.session_state.loader.refresh()


def _forecast_chart(predictions: list[Any]) -> go.Figure:
    frame = pd.DataFrame([p.to_dict() for p in predictions])
    figure = go.Figure()
    figure.add_trace(go.Scatter(x=frame["date"], y=frame["temperature"], name="Temperature (°C)"))
    figure.add_trace(go.Scatter(x=frame["date"], y=frame["uhi_intensity"], name="UHI (°C)"))
    figure.add_trace(
        go.Bar(x=frame["date"], y=frame["heatwave_probability"], name="Heatwave probability", yaxis="y2")
    )
    return figure.update_layout(
        yaxis2={"overlaying": "y", "side": "right", "range": [0, 1]},
        margin=dict(l=20, r=20, t=20, b=20),
    )


def _map_explorer() -> None:
    loader: ViewportDataLoader = st.session_state.loader
    search: GeocodeSearchController = st.session_state.search

    controls, map_column = st.columns([1, 3])
    with controls:
        st.subheader("Controls")
        query = st.text_input("Search location", placeholder="City, area...")
        if st.button("Search"):
            asyncio.run(_search_and_load(query))
        for index, result in enumerate(search.state.results):
            if st.button(result.display_name, key=f"result-{index}"):
                asyncio.run(_select_and_load(index))
        _show_notice(search.state.notice)

        st.markdown("**Layers**")
        layers = loader.state.layers
        for name, label in (
            ("temperature", "Temperature"),
            ("humidity", "Humidity"),
            ("uhi", "UHI Intensity"),
            ("vegetation", "Vegetation"),
        ):
            if st.checkbox(label, value=getattr(layers, name), key=f"layer-{name}") != getattr(
                layers, name
            ):
                loader.toggle_layer(name)

        if st.button("Load Data", type="primary", disabled=loader.state.is_loading):
            asyncio.run(loader.refresh())
        try:
            csv_text = export_data_points_csv(loader.points)
        except ValidationError:
            csv_text = None
        st.download_button(
            "Export CSV",
            data=csv_text or "",
            file_name=data_points_filename(),
            mime="text/csv",
            disabled=csv_text is None,
        )
        _show_notice(loader.state.notice)

    with map_column:
        deck = map_deck(loader.viewport, loader.markers(), search.state.selected_area)
        selection = st.pydeck_chart(
            deck,
            use_container_width=True,
            selection_mode="single-object",
            on_select="rerun",
            key="map-explorer",
        )
        clicked = selection_to_point(selection)
        if clicked:
            loader.select_point_at(*clicked)
        point = loader.state.selected_point
        if point is not None:
            st.subheader("Point Details")
            columns = st.columns(4)
            for index, (label, value) in enumerate(point.details().items()):
                columns[index % 4].metric(label, value)


def _predict() -> None:
    orchestrator: PredictionOrchestrator = st.session_state.orchestrator
    form: PredictionForm = st.session_state.form

    upload_column, form_column = st.columns(2)
    with upload_column:
        st.subheader("Batch Prediction (CSV)")
        upload = st.file_uploader("CSV with latitude, longitude and month columns")
        if upload is not None and st.button("Upload and predict"):
            asyncio.run(orchestrator.predict_batch(upload.name, upload.getvalue()))
        _show_notice(orchestrator.batch.notice)

    with form_column:
        st.subheader("Point Prediction")
        cluster = st.selectbox(
            "Cluster",
            list(CLUSTER_LABELS),
            format_func=CLUSTER_LABELS.get,
            index=list(CLUSTER_LABELS).index(form.cluster),
        )
        latitude = st.text_input("Latitude", value=form.latitude)
        longitude = st.text_input("Longitude", value=form.longitude)
        month = st.text_input("Month (1-12)", value=form.month)
        horizon = st.selectbox(
            "Forecast horizon (days)",
            TIME_SERIES_HORIZONS,
            index=TIME_SERIES_HORIZONS.index(form.horizon),
        )
        form = PredictionForm(latitude, longitude, month, cluster, horizon)
        st.session_state.form = form
        single_col, series_col = st.columns(2)
        if single_col.button("Predict", disabled=orchestrator.single.busy):
            asyncio.run(orchestrator.submit_form(form, Mode.SINGLE))
        if series_col.button("Forecast", disabled=orchestrator.time_series.busy):
            asyncio.run(orchestrator.submit_form(form, Mode.TIME_SERIES))
        _show_notice(orchestrator.single.notice)
        _show_notice(orchestrator.time_series.notice)

    rows = list(orchestrator.batch.result) + list(orchestrator.single.result)
    if rows:
        st.subheader("Results")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Cluster": row.cluster,
                        "Latitude": row.lat,
                        "Longitude": row.lng,
                        "UHI (°C)": row.uhi_display,
                        "Health risk": row.health_risk_display,
                    }
                    for row in rows
                ]
            ),
            use_container_width=True,
        )
        st.download_button(
            "Download CSV",
            data=export_predictions_csv(rows),
            file_name=predictions_filename(),
            mime="text/csv",
        )

    series = list(orchestrator.time_series.result)
    if series:
        st.subheader("Forecast")
        st.plotly_chart(_forecast_chart(series), use_container_width=True)


def _recommendations() -> None:
    strategy_loader: MitigationStrategyLoader = st.session_state.strategies
    use_ai = st.toggle("Use AI-generated strategies")
    if st.button("Generate strategies", disabled=strategy_loader.state.loading):
        asyncio.run(strategy_loader.generate(use_ai=use_ai))
    _show_notice(strategy_loader.state.notice)

    if strategy_loader.state.using_fallback:
        st.caption("Showing example strategies until you generate some for this area.")
    for strategy in strategy_loader.state.display_strategies:
        with st.container(border=True):
            st.markdown(f"**{strategy.title}** · {strategy.category} · _{strategy.priority}_")
            st.write(strategy.explanation)
            if strategy.impact:
                st.caption(strategy.impact)

    if st.button("Prepare PDF report"):
        download = asyncio.run(
            request_report(
                st.session_state.api,
                strategy_loader.state.strategies,
                st.session_state.orchestrator.time_series.result,
                data_summary=summarize_points(st.session_state.loader.points),
                area=strategy_loader.area,
            )
        )
        st.session_state.report = download
    download = st.session_state.get("report")
    if download is not None:
        st.download_button(
            "Download PDF", data=download.content, file_name=download.filename, mime="application/pdf"
        )
        st.caption(f"Report generated {download.source}-side.")


def main() -> None:
    _initialise_session_state()
    st.title("Urban Heat Island Explorer")
    explorer_tab, predict_tab, strategies_tab = st.tabs(
        ["Map Explorer", "Predict", "Recommendations"]
    )
    with explorer_tab:
        _map_explorer()
    with predict_tab:
        _predict()
    with strategies_tab:
        _recommendations()


if __name__ == "__main__":
    main()
