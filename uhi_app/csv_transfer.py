"""CSV import and export for data points and prediction tables."""

from __future__ import annotations

import datetime
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .errors import CSVParseError, ValidationError
from .models import PredictionRow, UHIDataPoint, prediction_row_from_mapping

logger = logging.getLogger(__name__)

# (header label, UHIDataPoint attribute)
DATA_POINT_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("Latitude", "latitude"),
    ("Longitude", "longitude"),
    ("Temperature", "temperature"),
    ("Humidity", "humidity"),
    ("UHI Intensity", "uhi_intensity"),
    ("Health Risk", "health_risk"),
    ("NDVI", "ndvi"),
    ("Builtup %", "builtup_percent"),
    ("Land Cover", "land_cover"),
    ("Green Cover %", "green_cover"),
)

PREDICTION_COLUMNS = ["cluster", "latitude", "longitude", "UHI_Intensity_C", "Health_Risk_Index"]


@dataclass(frozen=True)
class RowError:
    fields: Tuple[str, ...]
    message: str


@dataclass(frozen=True)
class ParsedCSV:
    columns: Tuple[str, ...]
    rows: Tuple[Dict[str, str], ...]
    errors: Tuple[RowError, ...] = ()


def _decode(content: Union[str, bytes]) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CSVParseError("File is not valid UTF-8 text") from exc


def parse_csv(content: Union[str, bytes]) -> ParsedCSV:
    """Parse header-row CSV into string-keyed records.

    Rows with too many fields are skipped and reported in ``errors``; a file
    that cannot be read at all raises :class:`CSVParseError`.
    """

    text = _decode(content)
    bad_rows: List[RowError] = []

    def _on_bad_line(fields: List[str]) -> None:
        bad_rows.append(RowError(tuple(fields), f"Unexpected number of fields ({len(fields)})"))
        return None

    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_on_bad_line,
        )
    except pd.errors.EmptyDataError as exc:
        raise CSVParseError("The CSV file is empty") from exc
    except pd.errors.ParserError as exc:
        raise CSVParseError(str(exc)) from exc

    frame = frame.fillna("")
    if bad_rows:
        logger.warning("Skipped %d malformed CSV rows", len(bad_rows))
    rows = tuple(
        {str(key): str(value) for key, value in record.items()}
        for record in frame.to_dict(orient="records")
    )
    return ParsedCSV(columns=tuple(str(c) for c in frame.columns), rows=rows, errors=tuple(bad_rows))


def export_data_points_csv(points: Sequence[UHIDataPoint]) -> str:
    if not points:
        raise ValidationError("Load data first before exporting", title="No data")
    frame = pd.DataFrame(
        [[getattr(point, attr) for _, attr in DATA_POINT_COLUMNS] for point in points],
        columns=[label for label, _ in DATA_POINT_COLUMNS],
    )
    return frame.to_csv(index=False, lineterminator="\n")


def data_points_from_records(records: Iterable[Mapping[str, Any]]) -> List[UHIDataPoint]:
    """Rebuild data points from rows keyed by the export header labels."""

    points = []
    for record in records:
        payload = {attr: record.get(label) for label, attr in DATA_POINT_COLUMNS}
        points.append(UHIDataPoint.from_dict(payload))
    return points


def import_data_points_csv(content: Union[str, bytes]) -> List[UHIDataPoint]:
    return data_points_from_records(parse_csv(content).rows)


def export_predictions_csv(rows: Sequence[Union[PredictionRow, Mapping[str, Any]]]) -> str:
    if not rows:
        raise ValidationError("Run a prediction before downloading results", title="No predictions")
    normalized = [
        row if isinstance(row, PredictionRow) else prediction_row_from_mapping(row) for row in rows
    ]
    frame = pd.DataFrame(
        [[row.cluster, row.lat, row.lng, row.uhi, row.health_risk] for row in normalized],
        columns=PREDICTION_COLUMNS,
    )
    return frame.to_csv(index=False, lineterminator="\n", na_rep="")


def data_points_filename(when: Optional[datetime.datetime] = None) -> str:
    when = when or datetime.datetime.now(datetime.timezone.utc)
    return f"uhi_data_{when.date().isoformat()}.csv"


def predictions_filename(when: Optional[datetime.datetime] = None) -> str:
    when = when or datetime.datetime.now(datetime.timezone.utc)
    return f"predictions_{int(when.timestamp() * 1000)}.csv"


__all__ = [
    "DATA_POINT_COLUMNS",
    "PREDICTION_COLUMNS",
    "RowError",
    "ParsedCSV",
    "parse_csv",
    "export_data_points_csv",
    "data_points_from_records",
    "import_data_points_csv",
    "export_predictions_csv",
    "data_points_filename",
    "predictions_filename",
]
