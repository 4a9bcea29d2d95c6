"""
JSON and CSV export of analysis reports.

JSON export is a structural serialization of the report records: PMFs are
rendered as ordered `[[values...], probability]` pairs, TPMs as lists of
`{"from": [...], "to": {...}}` rows, and non-finite floats as null. CSV
export flattens a cross-sectional report into three sections
(single-variable metrics with PMFs, pairwise metrics, model fit).
"""

from __future__ import annotations

import csv
import dataclasses
import io
import json
import math
from enum import Enum
from typing import Any, Dict, List, Mapping

from stochdep.cross_sectional import CrossSectionalReport
from stochdep.markov.diagnostics import TimeSeriesReport
from stochdep.markov.tpm import TransitionMatrix
from stochdep.types import JointPMF

NOT_AVAILABLE = "N/A"

SINGLE_VAR_METRICS = ("mean", "variance", "median", "mode")
PAIRWISE_METRICS = (
    "distance_correlation",
    "pearson_correlation",
    "mutual_information",
    "cramers_v",
)


def _key_to_str(key: Any) -> str:
    if isinstance(key, tuple):
        return "-".join(str(k) for k in key)
    return str(key)


def to_jsonable(obj: Any) -> Any:
    """Convert report records into plain JSON-compatible structures."""
    if isinstance(obj, JointPMF):
        return [[list(k), float(p)] for k, p in obj.items()]
    if isinstance(obj, TransitionMatrix):
        return {
            "label": obj.label,
            "order": obj.order,
            "rows": [
                {"from": list(h), "to": {s: float(p) for s, p in obj.rows[h].items()}}
                for h in obj.from_states
            ],
        }
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return {_key_to_str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    return obj


def report_to_dict(report: CrossSectionalReport) -> Dict[str, Any]:
    return to_jsonable(report)


def export_to_json(report: CrossSectionalReport, *, indent: int = 2) -> str:
    return json.dumps(report_to_dict(report), indent=indent)


def time_series_to_dict(report: TimeSeriesReport) -> Dict[str, Any]:
    out = to_jsonable(report)
    out["is_homogeneous"] = report.is_homogeneous
    return out


def export_time_series_to_json(report: TimeSeriesReport, *, indent: int = 2) -> str:
    return json.dumps(time_series_to_dict(report), indent=indent)


def format_csv_value(value: Any) -> str:
    """Render one CSV cell: N/A for absent, '; '-joined for sequences."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, (list, tuple)):
        if not value:
            return NOT_AVAILABLE
        return "; ".join(str(v) for v in value)
    if isinstance(value, float) and not math.isfinite(value):
        return NOT_AVAILABLE
    return str(value)


def _model_ids(report: CrossSectionalReport) -> List[str]:
    return [f.model_id for f in report.model_fit if f.is_valid]


def export_to_csv(report: CrossSectionalReport) -> str:
    """
    Flatten a cross-sectional report into sectioned CSV text.
    """
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    model_ids = _model_ids(report)

    w.writerow(["Single Variable Analysis"])
    for v in report.variables:
        res = report.single_vars[v.id]
        w.writerow([])
        w.writerow(["Variable", v.name])
        w.writerow(["Metric", "Empirical", *model_ids])
        for metric in SINGLE_VAR_METRICS:
            empirical = getattr(res.empirical, metric)
            if empirical is None or empirical == ():
                continue
            row = [metric, format_csv_value(empirical)]
            for mid in model_ids:
                m = res.theoretical.get(mid)
                row.append(format_csv_value(getattr(m, metric) if m is not None else None))
            w.writerow(row)
        w.writerow([])
        w.writerow(["PMF (Empirical)"])
        w.writerow(["Value", "Probability"])
        for pt in res.empirical.pmf:
            w.writerow([pt.value, format_csv_value(pt.probability)])
        for mid in model_ids:
            m = res.theoretical.get(mid)
            w.writerow([])
            w.writerow([f"PMF ({mid})"])
            w.writerow(["Value", "Probability"])
            for pt in m.pmf if m is not None else ():
                w.writerow([pt.value, format_csv_value(pt.probability)])

    if report.pairwise:
        w.writerow([])
        w.writerow(["Pairwise Dependence Analysis"])
        w.writerow(["Variable 1", "Variable 2", "Metric", "Empirical", *model_ids])
        for pair in report.pairwise:
            for metric in PAIRWISE_METRICS:
                empirical = getattr(pair.empirical, metric)
                if empirical is None:
                    continue
                row = [pair.var1_name, pair.var2_name, metric, format_csv_value(empirical)]
                for mid in model_ids:
                    m = pair.theoretical.get(mid)
                    row.append(format_csv_value(getattr(m, metric) if m is not None else None))
                w.writerow(row)

    if report.model_fit:
        w.writerow([])
        w.writerow(["Model Fit Analysis"])
        w.writerow(["Model", "Metric", "Value"])
        for fit in report.model_fit:
            if fit.error is not None:
                w.writerow([fit.model_name, "error", fit.error])
                continue
            w.writerow([fit.model_name, "Hellinger Distance", format_csv_value(fit.hellinger_distance)])
            w.writerow(
                [fit.model_name, "Jensen-Shannon Distance", format_csv_value(fit.jensen_shannon_distance)]
            )
            for label, value in fit.mse_labels().items():
                w.writerow([fit.model_name, label, format_csv_value(value)])

    return buf.getvalue()
