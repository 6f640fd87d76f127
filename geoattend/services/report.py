"""Register export: one row per student, one column per instructional day."""
import io
from typing import Sequence

import pandas as pd

from geoattend.services.aggregator import RegisterRow

CSV_MEDIA_TYPE = "text/csv"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def register_frame(roster: Sequence[str], rows: Sequence[RegisterRow]) -> pd.DataFrame:
    """Pivot register rows into a Roll Number x day grid of Present / Absent.

    Every roster member gets a row, even when the range has no instructional days.
    """
    roster = list(dict.fromkeys(roster))
    columns = sorted({r.day.isoformat() for r in rows})
    status = {(r.student_id, r.day.isoformat()): "Present" if r.present else "Absent" for r in rows}
    data = []
    for roll in roster:
        row = {"Roll Number": roll}
        for col in columns:
            row[col] = status.get((roll, col), "Absent")
        present = sum(1 for col in columns if row[col] == "Present")
        row["Present"] = present
        row["Total"] = len(columns)
        data.append(row)
    return pd.DataFrame(data, columns=["Roll Number", *columns, "Present", "Total"])


def to_csv(df: pd.DataFrame) -> str:
    stream = io.StringIO()
    df.to_csv(stream, index=False)
    return stream.getvalue()


def to_excel(df: pd.DataFrame) -> io.BytesIO:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Attendance")
    output.seek(0)
    return output
