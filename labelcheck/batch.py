"""
Batch compliance checks over a CSV / DataFrame of label texts.
One output row per input row; a rejected row records its error and the batch continues.
"""
from __future__ import annotations

import logging
import re
from typing import Any

import pandas as pd

from .models import ComplianceCheckRequest, ComplianceRequestError, Severity
from .rules.engine import ComplianceEngine, get_default_engine
from .scoring import compute_overall_status, risk_level

_logger = logging.getLogger(__name__)

_COL_MAP = {
    "label id": "label_id", "label_id": "label_id", "id": "label_id", "sku": "label_id",
    "text": "text", "label text": "text", "label_text": "text", "extracted text": "text",
    "extracted_text": "text", "ocr text": "text", "ocr_text": "text",
    "category": "category", "product category": "category", "product_category": "category",
    "jurisdictions": "jurisdictions", "jurisdiction": "jurisdictions",
    "marketplaces": "jurisdictions", "marketplace": "jurisdictions",
    "markets": "jurisdictions", "countries": "jurisdictions",
}

_SPLIT_RE = re.compile(r"[,;|]")

RESULT_COLUMNS = [
    "label_id", "product_name", "score", "risk_level", "status",
    "critical", "warnings", "recommendations", "error",
]


def normalize_csv_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    new_cols = {c: _COL_MAP[c] for c in df.columns if c in _COL_MAP}
    new_cols.update({c: _COL_MAP[c.replace("_", " ")] for c in df.columns if c not in new_cols and c.replace("_", " ") in _COL_MAP})
    if new_cols:
        df = df.rename(columns=new_cols)
    return df


def row_to_request(row: pd.Series) -> ComplianceCheckRequest:
    def v(key: str) -> str:
        if key not in row:
            return ""
        x = row[key]
        if pd.isna(x):
            return ""
        return str(x).strip()

    jurisdictions = tuple(j.strip() for j in _SPLIT_RE.split(v("jurisdictions")) if j.strip())
    return ComplianceCheckRequest(text=v("text"), category=v("category"), jurisdictions=jurisdictions)


def _result_row(label_id: Any, **fields: Any) -> dict[str, Any]:
    row = {c: None for c in RESULT_COLUMNS}
    row["label_id"] = label_id
    row.update(fields)
    return row


def run_batch(df: pd.DataFrame, engine: ComplianceEngine | None = None) -> pd.DataFrame:
    engine = engine or get_default_engine()
    cfg = engine.config
    df = normalize_csv_columns(df)
    rows = []
    for i, row in df.iterrows():
        label_id = row["label_id"] if "label_id" in row and not pd.isna(row["label_id"]) else i
        request = row_to_request(row)
        try:
            report = engine.check_request(request)
        except ComplianceRequestError as e:
            _logger.warning("Label %s rejected: %s", label_id, e)
            rows.append(_result_row(label_id, status="rejected", error=str(e)))
            continue
        status, counts = compute_overall_status(report)
        rows.append(_result_row(
            label_id,
            product_name=report.product_name,
            score=report.compliance_score,
            risk_level=risk_level(report.compliance_score, cfg.low_risk_min, cfg.medium_risk_min),
            status=status,
            critical=counts[Severity.CRITICAL.value],
            warnings=counts[Severity.WARNING.value],
            recommendations=counts[Severity.RECOMMENDATION.value],
        ))
    _logger.info("Batch checked %d labels", len(rows))
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)
