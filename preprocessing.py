"""
Data loading and preprocessing pipeline for the US international student enrollment datasets.

The three source tables (students by place of origin, by field of study and by
visa status) share one cleaning routine, `normalize_table`, which turns an
academic-year string such as "2020/21" into a numeric start year, coerces the
grouping columns into explicit categories, applies allow-lists and sums the
student counts per group.
"""
import re
from pathlib import Path

import numpy as np
import pandas as pd

from errors import ParseError, SchemaError, UnknownCategoryError
from logging_config import get_logger

logger = get_logger(__name__)

# --- Source Files ---
DATA_FILES = {
    "origin": "origin.csv",
    "field_of_study": "field_of_study.csv",
    "status": "status.csv",
}

# Academic levels kept for the origin analysis; Non-Degree and OPT students are excluded.
DEFAULT_ACADEMIC_TYPES = ("Graduate", "Undergraduate")

# Wide visa columns in the status table and the visa type each one reports.
VISA_COLUMNS = {"visa_f": "F", "visa_j": "J", "visa_other": "Other"}
VISA_TYPES = list(VISA_COLUMNS.values())

YEAR_COLUMN = "start_year"
TOTAL_COLUMN = "total_students"
MISSING_CATEGORY = "Unknown"

UNSEEN_POLICIES = ("extend", "reject")
ERROR_POLICIES = ("drop", "raise")


def find_data_file(filename: str) -> Path:
    """Robustly finds the data file by searching parent directories."""
    here = Path(__file__).resolve()
    for parent in [here.parent, *here.parents]:
        p = parent / "data" / filename
        if p.exists():
            return p
    p = Path.cwd() / "data" / filename
    if p.exists():
        return p
    raise FileNotFoundError(f"Could not find data/{filename}")


def to_snake(s):
    s = re.sub(r"[^0-9a-zA-Z]+", "_", str(s).strip())
    s = re.sub(r"_+", "_", s)
    return s.strip("_").lower()


def standardize_columns(df):
    """Returns a copy of the dataframe with snake_case column names."""
    out = df.copy()
    out.columns = [to_snake(c) for c in out.columns]
    return out


def load_enrollment_table(name):
    """
    Loads one raw enrollment table from the data directory.

    Args:
        name: One of the keys of DATA_FILES ('origin', 'field_of_study', 'status').

    Returns:
        pd.DataFrame: The raw table with snake_case column names.
    """
    if name not in DATA_FILES:
        raise ValueError(f"Unknown enrollment table '{name}'. Expected one of: {', '.join(DATA_FILES)}")
    path = find_data_file(DATA_FILES[name])
    df = standardize_columns(pd.read_csv(path))
    logger.info("table_loaded", table=name, path=str(path), rows=len(df))
    return df


def parse_start_year(value):
    """
    Returns the start year of an academic year such as '2020/21'.

    Integer years pass through unchanged, so an already-cleaned `start_year`
    column parses to itself.

    Raises:
        ParseError: If the value is missing or its start part holds no digits.
    """
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, (float, np.floating)) and not pd.isna(value) and float(value).is_integer():
        return int(value)
    if value is None or pd.isna(value):
        raise ParseError("Missing academic year")
    start = str(value).split("/")[0]
    digits = re.sub(r"\D", "", start)
    if not digits:
        raise ParseError(f"Could not parse a start year from {value!r}")
    return int(digits)


def _start_year_or_none(value):
    try:
        return parse_start_year(value)
    except ParseError:
        return None


def _reject_bad_rows(df, bad, table_name, column, reason, on_error):
    """Drops the flagged rows with a warning, or raises under the 'raise' policy."""
    if not bad.any():
        return df
    bad_index = df.index[bad.to_numpy()]
    row_range = f"{bad_index.min()}-{bad_index.max()}"
    if on_error == "raise":
        raise ParseError(
            f"{table_name}: {len(bad_index)} row(s) with {reason} in column '{column}' (rows {row_range})"
        )
    logger.warning(
        "rows_dropped",
        table=table_name,
        column=column,
        reason=reason,
        dropped=len(bad_index),
        row_range=row_range,
    )
    return df.loc[~bad.to_numpy()].copy()


def _parse_counts(values, table_name, column):
    """Parses a student count column, treating nulls as zero."""
    cleaned = values.map(lambda v: v.replace(",", "").strip() if isinstance(v, str) else v)
    counts = pd.to_numeric(cleaned, errors="coerce")
    unparsed = counts.isna() & cleaned.notna() & (cleaned.astype(str) != "")
    if unparsed.any():
        logger.warning("counts_unparsed", table=table_name, column=column, rows=int(unparsed.sum()))
    return counts.fillna(0)


def coerce_categories(values, known=None, unseen="extend", name=None):
    """
    Converts a column into a pandas Categorical over an explicit category list.

    The category list starts from `known` (or the column's existing categories
    if it is already categorical). Values outside that list are appended in
    order of first appearance under the 'extend' policy and raise
    UnknownCategoryError under 'reject'. Missing values become 'Unknown'.
    """
    if unseen not in UNSEEN_POLICIES:
        raise ValueError(f"unseen must be one of {UNSEEN_POLICIES}, got {unseen!r}")
    name = name or values.name

    if known is not None:
        base = list(known)
    elif isinstance(values.dtype, pd.CategoricalDtype):
        base = list(values.cat.categories)
    else:
        base = []

    values = values.astype(object)
    values = values.map(lambda v: v.strip() if isinstance(v, str) else v)
    values = values.where(values.notna(), MISSING_CATEGORY)

    base_set = set(base)
    unseen_values = [v for v in pd.unique(values) if v not in base_set]
    if unseen_values:
        if unseen == "reject":
            raise UnknownCategoryError(
                f"Column '{name}' has values outside {base}: {', '.join(map(str, unseen_values))}"
            )
        base = base + unseen_values

    return values.astype(pd.CategoricalDtype(categories=base))


def normalize_table(
    df,
    year_column,
    group_keys,
    value_column,
    allowed=None,
    categories=None,
    unseen="extend",
    on_error="drop",
    table_name="table",
):
    """
    Cleans one raw table and sums its counts per (start year, group keys).

    Args:
        df: The raw table.
        year_column: Column holding the academic year ('2020/21') or an integer year.
        group_keys: Categorical columns to group by, in output order.
        value_column: Column holding the student counts.
        allowed: Optional mapping of column -> allow-list. Rows outside any
            allow-list are excluded before aggregation.
        categories: Optional mapping of column -> known categories.
        unseen: 'extend' to accept unseen categories, 'reject' to raise.
        on_error: 'drop' to drop rows with a bad year or count (logged as a
            warning), 'raise' to raise ParseError.
        table_name: Name used in log events and error messages.

    Returns:
        pd.DataFrame: Columns start_year, *group_keys, total_students; one row
        per observed group, sorted by year then category order.

    Raises:
        SchemaError: If a required column is missing.
        ParseError: If a bad row is found under the 'raise' policy.
        UnknownCategoryError: If an unseen category is found under 'reject'.
    """
    group_keys = list(group_keys)
    allowed = dict(allowed or {})
    categories = dict(categories or {})
    if on_error not in ERROR_POLICIES:
        raise ValueError(f"on_error must be one of {ERROR_POLICIES}, got {on_error!r}")

    required = list(dict.fromkeys([year_column, *group_keys, value_column, *allowed]))
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise SchemaError(f"{table_name}: missing required column(s): {', '.join(missing)}")

    rows_in = len(df)
    out = df[required].copy()

    # Rows outside an allow-list are excluded before any validation.
    for column in dict.fromkeys([*group_keys, *allowed]):
        out[column] = coerce_categories(out[column], known=categories.get(column), unseen=unseen, name=column)

    for column, values in allowed.items():
        values = list(values)
        out = out.loc[out[column].isin(values)].copy()
        out[column] = out[column].cat.set_categories(values)

    # Academic year -> numeric start year.
    years = out[year_column].map(_start_year_or_none)
    bad_year = years.isna()
    out = _reject_bad_rows(out, bad_year, table_name, year_column, "unparseable academic year", on_error)
    out[YEAR_COLUMN] = years[~bad_year].astype("int64").to_numpy()

    # Student counts; nulls count as zero, negatives are invalid.
    counts = _parse_counts(out[value_column], table_name, value_column)
    negative = counts < 0
    out = _reject_bad_rows(out, negative, table_name, value_column, "negative count", on_error)
    out[TOTAL_COLUMN] = counts[~negative].to_numpy()

    aggregated = (
        out.groupby([YEAR_COLUMN, *group_keys], observed=True, sort=True)[TOTAL_COLUMN]
        .sum()
        .reset_index()
    )
    for column in group_keys:
        aggregated[column] = aggregated[column].astype(out[column].dtype)
    aggregated[TOTAL_COLUMN] = aggregated[TOTAL_COLUMN].round().astype("int64")
    aggregated = aggregated[[YEAR_COLUMN, *group_keys, TOTAL_COLUMN]]

    logger.info(
        "table_normalized",
        table=table_name,
        rows_in=rows_in,
        rows_kept=len(out),
        groups=len(aggregated),
    )
    return aggregated


def clean_origin_data(raw, academic_types=DEFAULT_ACADEMIC_TYPES, on_error="drop"):
    """
    Cleans the students-by-origin table.

    Groups by origin region and academic type (and by origin country when the
    table has an 'origin' column). Only the given academic types are kept;
    pass None to keep every type.
    """
    keys = ["origin_region", "academic_type"]
    if "origin" in raw.columns:
        keys.insert(1, "origin")
    allowed = {"academic_type": academic_types} if academic_types else None
    return normalize_table(
        raw, "year", keys, "students", allowed=allowed, on_error=on_error, table_name="origin"
    )


def clean_field_data(raw, on_error="drop"):
    """Cleans the students-by-field-of-study table."""
    return normalize_table(
        raw, "year", ["field_of_study"], "students", on_error=on_error, table_name="field_of_study"
    )


def clean_status_data(raw, on_error="drop"):
    """
    Cleans the students-by-visa-status table.

    The table reports one column per visa type, so it is melted into
    (year, visa_type, students) rows before normalization. Visa types form a
    closed set.
    """
    missing = [c for c in ["year", *VISA_COLUMNS] if c not in raw.columns]
    if missing:
        raise SchemaError(f"status: missing required column(s): {', '.join(missing)}")

    long_df = pd.melt(
        raw,
        id_vars=["year"],
        value_vars=list(VISA_COLUMNS),
        var_name="visa_type",
        value_name="students",
    )
    long_df["visa_type"] = long_df["visa_type"].map(VISA_COLUMNS)
    return normalize_table(
        long_df,
        "year",
        ["visa_type"],
        "students",
        categories={"visa_type": VISA_TYPES},
        unseen="reject",
        on_error=on_error,
        table_name="status",
    )


def load_and_preprocess_enrollment_data():
    """
    Loads and cleans all three enrollment tables.

    Returns:
        dict[str, pd.DataFrame]: Cleaned tables keyed 'origin', 'field_of_study' and 'status'.
    """
    return {
        "origin": clean_origin_data(load_enrollment_table("origin")),
        "field_of_study": clean_field_data(load_enrollment_table("field_of_study")),
        "status": clean_status_data(load_enrollment_table("status")),
    }


if __name__ == "__main__":
    # This block allows the script to be run directly for testing.
    tables = load_and_preprocess_enrollment_data()
    print("Preprocessing complete.")
    for table_name, table in tables.items():
        print(f"{table_name}: {table.shape}")
        print(table.head())
