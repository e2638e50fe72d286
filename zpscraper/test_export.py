"""
Tests for CSV/Excel export.
"""
import pandas as pd

from zpscraper.export import EXPORT_COLUMNS, records_to_csv, records_to_dataframe, save_output_rows
from zpscraper.models import ListingRecord


def sample_records():
    return [
        ListingRecord(
            url="https://www.zonaprop.com.ar/propiedades/a-1.html",
            name="Depto luminoso",
            address="Av. Santa Fe 3200",
            neighborhood="Palermo",
            covered_area=80,
            total_area=100,
            parking="1",
            bedrooms=2,
            bathrooms=1,
            price=150000,
            currency="USD",
            expenses=90000,
        ),
        ListingRecord(url="https://www.zonaprop.com.ar/propiedades/b-2.html", name="Sin datos"),
    ]


def test_dataframe_columns_and_values():
    df = records_to_dataframe(sample_records())

    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 2
    assert df.loc[0, "price_per_m2"] == 1500
    assert pd.isna(df.loc[1, "price_per_m2"])
    assert pd.isna(df.loc[1, "bedrooms"])
    assert str(df["bedrooms"].dtype) == "Int64"


def test_records_to_csv_header():
    text = records_to_csv(sample_records())
    header, first = text.splitlines()[:2]
    assert header == ",".join(EXPORT_COLUMNS)
    assert first.startswith("Depto luminoso,Av. Santa Fe 3200,Palermo,")
    assert first.endswith(",1500,https://www.zonaprop.com.ar/propiedades/a-1.html")


def test_save_output_rows_csv(tmp_path):
    out = tmp_path / "listings.csv"
    count = save_output_rows(sample_records(), str(out))

    assert count == 2
    df = pd.read_csv(out)
    assert list(df.columns) == EXPORT_COLUMNS
    assert df["url"].tolist()[1] == "https://www.zonaprop.com.ar/propiedades/b-2.html"


def test_save_output_rows_empty(tmp_path):
    out = tmp_path / "empty.csv"
    assert save_output_rows([], str(out)) == 0
    assert out.read_text().strip() == ",".join(EXPORT_COLUMNS)
