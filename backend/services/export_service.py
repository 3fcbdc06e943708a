"""CSV serialization of report payload rows."""

from __future__ import annotations

import csv
import datetime as dt
from typing import Optional

import pandas as pd

from backend.domain.models import ReportPayload, ReportType
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def rows_to_csv(payload: ReportPayload) -> str:
    """Render payload rows as CSV text.

    The header is the key order of the first row. Strings are double-quoted
    (embedded quotes doubled); numbers are written bare.
    """
    rows = payload.row_dicts()
    if not rows:
        return ""
    header = list(rows[0].keys())
    frame = pd.DataFrame.from_records(rows, columns=header)
    content = frame.to_csv(
        index=False,
        quoting=csv.QUOTE_NONNUMERIC,
        lineterminator="\n",
    )
    logger.info(
        "CSV export rendered | type=%s | rows=%s | columns=%s",
        payload.report_type.value,
        len(rows),
        len(header),
    )
    return content


def build_export_filename(
    report_type: ReportType,
    now: Optional[dt.datetime] = None,
) -> str:
    """``{reportType}-report-{YYYYMMDDHHMMSS}.csv``"""
    moment = now or dt.datetime.now()
    return f"{report_type.value}-report-{moment.strftime('%Y%m%d%H%M%S')}.csv"
