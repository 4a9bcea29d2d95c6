"""
Parsing of raw tabular text into analysis inputs.

Two input shapes are recognised:
  - cross-sectional: header of variable names, one sample per row;
  - time-series: `Time,Instance1,...,InstanceK` header, one time step per
    row with one categorical state per instance.

Cells are parsed with the `csv` module, so quoted values may contain
commas. Malformed input raises DataFormatError naming the offending row
(data rows are counted from 1, after the header).
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from stochdep.markov.tpm import TimeSeriesPanel
from stochdep.types import RandomVariable, VariableType, to_float

logger = logging.getLogger(__name__)

CROSS_SECTIONAL = "cross-sectional"
TIME_SERIES = "time-series"

_INSTANCE_RE = re.compile(r"^instance(\d+)$", re.IGNORECASE)


class DataFormatError(ValueError):
    """Input text does not have the expected tabular shape."""


@dataclass(frozen=True)
class Column:
    name: str
    data: Tuple[str, ...]


def _rows(text: str) -> List[List[str]]:
    lines = [ln for ln in str(text).strip().splitlines() if ln.strip()]
    return [[cell.strip() for cell in row] for row in csv.reader(lines)]


def parse_input(text: str) -> List[Column]:
    """
    Parse cross-sectional CSV text into named columns of string values.

    Raises:
        DataFormatError: If the header or a data row is missing, a header
            name is blank or repeated, a row has the wrong number of values,
            or a cell is blank.
    """
    rows = _rows(text)
    if len(rows) < 2:
        raise DataFormatError(
            "Input must have a header line and at least one data row."
        )
    header = rows[0]
    if any(h == "" for h in header):
        raise DataFormatError("Header cannot contain empty variable names.")
    if len(set(header)) != len(header):
        raise DataFormatError("Header cannot contain duplicate variable names.")

    num_vars = len(header)
    columns: List[List[str]] = [[] for _ in header]
    for row_no, values in enumerate(rows[1:], start=1):
        if len(values) != num_vars:
            raise DataFormatError(
                f"Row {row_no} has {len(values)} values, but header has "
                f"{num_vars} variables."
            )
        for col_no, value in enumerate(values):
            if value == "":
                raise DataFormatError(
                    f"Row {row_no} has a missing value in column "
                    f"{header[col_no]!r}. Please ensure all values are filled."
                )
            columns[col_no].append(value)
    logger.debug("Parsed %d columns x %d rows", num_vars, len(rows) - 1)
    return [Column(name=h, data=tuple(c)) for h, c in zip(header, columns)]


def detect_variable_type(values: Sequence[str]) -> VariableType:
    """Numerical iff every value parses as a finite number, else Nominal."""
    if values and all(to_float(v) is not None for v in values):
        return VariableType.NUMERICAL
    return VariableType.NOMINAL


def detect_analysis_type(text: str) -> str:
    """
    CROSS_SECTIONAL or TIME_SERIES, from the shape of the header.

    Time-series input has `time` as its first header cell and cells starting
    with `instance` after it (case-insensitive).
    """
    rows = _rows(text)
    if len(rows) < 2:
        return CROSS_SECTIONAL
    header = [h.lower() for h in rows[0]]
    if len(header) < 2 or header[0] != "time":
        return CROSS_SECTIONAL
    if all(h.startswith("instance") for h in header[1:]):
        return TIME_SERIES
    return CROSS_SECTIONAL


def parse_time_series(text: str) -> TimeSeriesPanel:
    """
    Parse `Time,Instance1,...,InstanceK` text into a panel.

    Raises:
        DataFormatError: If the header is not `Time` followed by sequentially
            numbered instances, or a row is ragged or has blank cells.
    """
    rows = _rows(text)
    if len(rows) < 2:
        raise DataFormatError(
            "Time-series input must have a header line and at least one time step."
        )
    header = rows[0]
    if len(header) < 2 or header[0].lower() != "time":
        raise DataFormatError(
            "Time-series header must start with 'Time' followed by instance columns."
        )
    for k, name in enumerate(header[1:], start=1):
        m = _INSTANCE_RE.match(name)
        if m is None or int(m.group(1)) != k:
            raise DataFormatError(
                f"Header column {k + 1} is {name!r}; expected 'Instance{k}'."
            )

    num_instances = len(header) - 1
    time_labels: List[str] = []
    instances: List[List[str]] = [[] for _ in range(num_instances)]
    for row_no, values in enumerate(rows[1:], start=1):
        if len(values) != len(header):
            raise DataFormatError(
                f"Row {row_no} has {len(values)} values, but header has "
                f"{len(header)} columns."
            )
        if any(v == "" for v in values):
            raise DataFormatError(f"Row {row_no} contains missing values.")
        time_labels.append(values[0])
        for i, state in enumerate(values[1:]):
            instances[i].append(state)
    return TimeSeriesPanel(time_labels=time_labels, instances=instances)


def build_variables(
    columns: Sequence[Column],
    types: Optional[Mapping[str, Union[VariableType, str]]] = None,
    ordinal_orders: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[RandomVariable]:
    """
    Wrap parsed columns as RandomVariables with ids `var_0`, `var_1`, ...

    Args:
        columns: Parsed columns.
        types: Variable name -> type; undeclared types are auto-detected.
        ordinal_orders: Variable name -> declared order (Ordinal only).

    Returns:
        Variables in column order.
    """
    types = types or {}
    ordinal_orders = ordinal_orders or {}
    out: List[RandomVariable] = []
    for idx, col in enumerate(columns):
        vtype = types.get(col.name)
        if vtype is None:
            vtype = detect_variable_type(col.data)
        out.append(
            RandomVariable(
                id=f"var_{idx}",
                name=col.name,
                data=col.data,
                type=vtype,
                ordinal_order=tuple(ordinal_orders.get(col.name, ())),
            )
        )
    return out
