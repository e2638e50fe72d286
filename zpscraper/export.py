"""
Export utilities for scraped listings.
"""
import logging
from typing import Iterable, List

import pandas as pd

from .models import ListingRecord


logger = logging.getLogger(__name__)

# Column order expected by the spreadsheet consumers
EXPORT_COLUMNS = [
    "name",
    "address",
    "neighborhood",
    "covered_area",
    "total_area",
    "parking",
    "bedrooms",
    "bathrooms",
    "price",
    "currency",
    "expenses",
    "price_per_m2",
    "url",
]


def records_to_dataframe(records: Iterable[ListingRecord]) -> pd.DataFrame:
    """One row per record, EXPORT_COLUMNS only, in that order."""
    rows: List[dict] = []
    for r in records:
        rows.append({
            "name": r.name,
            "address": r.address,
            "neighborhood": r.neighborhood,
            "covered_area": r.covered_area,
            "total_area": r.total_area,
            "parking": r.parking,
            "bedrooms": r.bedrooms,
            "bathrooms": r.bathrooms,
            "price": r.price,
            "currency": r.currency,
            "expenses": r.expenses,
            "price_per_m2": r.price_per_m2,
            "url": r.url,
        })
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    # Keep integer columns integer in the presence of missing values
    for col in ("bedrooms", "bathrooms", "price_per_m2"):
        df[col] = df[col].astype("Int64")
    return df


def records_to_csv(records: Iterable[ListingRecord]) -> str:
    return records_to_dataframe(records).to_csv(index=False)


def save_output_rows(records: List[ListingRecord], out_path: str) -> int:
    """Save records to CSV or Excel file; returns the number of rows written."""
    df = records_to_dataframe(records)
    if out_path.lower().endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)

    logger.info(f">>> Saved {len(df)} rows to {out_path}")
    return len(df)
