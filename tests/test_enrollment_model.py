"""Unit tests for model-data assembly and the enrollment regression."""

from __future__ import annotations

import pandas as pd
import pytest

import enrollment_model
from enrollment_model import (
    assemble_model_data,
    coefficient_table,
    fit_enrollment_model,
    readable_term,
    resolve_reference_levels,
)
from errors import InsufficientDataError, SchemaError, UnknownCategoryError
from preprocessing import TOTAL_COLUMN, YEAR_COLUMN, clean_origin_data


@pytest.fixture
def model_df(raw_origin: pd.DataFrame) -> pd.DataFrame:
    """Model input assembled from the shared raw origin fixture."""
    return assemble_model_data(clean_origin_data(raw_origin))


def test_assembly_has_one_row_per_year_region_and_level(model_df: pd.DataFrame) -> None:
    """Origin countries are summed away, leaving years x regions x levels rows."""
    assert len(model_df) == 2 * 2 * 2
    assert list(model_df.columns) == [YEAR_COLUMN, "origin_region", "academic_type", TOTAL_COLUMN]
    asia_grad_2019 = model_df[
        (model_df[YEAR_COLUMN] == 2019)
        & (model_df["origin_region"] == "Asia")
        & (model_df["academic_type"] == "Graduate")
    ]
    assert asia_grad_2019[TOTAL_COLUMN].tolist() == [100]


def test_assembly_conserves_counts(raw_origin: pd.DataFrame, model_df: pd.DataFrame) -> None:
    """Collapsing the origin table keeps the same student total."""
    cleaned = clean_origin_data(raw_origin)

    assert model_df[TOTAL_COLUMN].sum() == cleaned[TOTAL_COLUMN].sum()


def test_reference_levels_default_to_first_lexical_level(model_df: pd.DataFrame) -> None:
    """The baseline of each predictor is the lexically first level."""
    assert resolve_reference_levels(model_df) == {
        "origin_region": "Asia",
        "academic_type": "Graduate",
    }


def test_reference_level_override_must_be_observed(model_df: pd.DataFrame) -> None:
    """An override naming an unobserved level is rejected."""
    with pytest.raises(UnknownCategoryError, match="Oceania"):
        resolve_reference_levels(model_df, {"origin_region": "Oceania"})


def test_fit_recovers_additive_effects(model_df: pd.DataFrame) -> None:
    """A balanced additive design is recovered exactly by OLS."""
    fit = fit_enrollment_model(model_df)
    coefficients = coefficient_table(fit).set_index("term")["coefficient"]

    assert coefficients["Intercept"] == pytest.approx(105.0)
    assert coefficients["origin_region: Europe"] == pytest.approx(50.0)
    assert coefficients["academic_type: Undergraduate"] == pytest.approx(20.0)


def test_fit_with_overridden_reference_level(model_df: pd.DataFrame) -> None:
    """Changing the baseline flips the sign of the region coefficient."""
    fit = fit_enrollment_model(model_df, reference_levels={"origin_region": "Europe"})
    coefficients = coefficient_table(fit).set_index("term")["coefficient"]

    assert fit.reference_levels["origin_region"] == "Europe"
    assert coefficients["origin_region: Asia"] == pytest.approx(-50.0)
    assert coefficients["Intercept"] == pytest.approx(155.0)


def test_coefficient_table_reports_uncertainty(model_df: pd.DataFrame) -> None:
    """Every coefficient carries a standard error, p-value and interval."""
    table = coefficient_table(fit_enrollment_model(model_df))

    assert list(table.columns) == ["term", "coefficient", "std_err", "p_value", "conf_low", "conf_high"]
    assert len(table) == 3
    assert (table["std_err"] > 0).all()
    assert (table["conf_low"] <= table["coefficient"]).all()
    assert (table["coefficient"] <= table["conf_high"]).all()


def test_log_target_fit(model_df: pd.DataFrame) -> None:
    """The log target option fits log1p of the totals."""
    fit = fit_enrollment_model(model_df, log_target=True)

    assert fit.log_target
    assert fit.formula.startswith("log_total_students ~")
    assert coefficient_table(fit).set_index("term")["coefficient"]["origin_region: Europe"] > 0


def test_single_row_input_is_insufficient(model_df: pd.DataFrame) -> None:
    """One row can never support a fit."""
    with pytest.raises(InsufficientDataError):
        fit_enrollment_model(model_df.head(1))


def test_empty_input_is_insufficient(model_df: pd.DataFrame) -> None:
    """An empty table is reported rather than fitted."""
    with pytest.raises(InsufficientDataError, match="empty"):
        fit_enrollment_model(model_df.iloc[0:0])


def test_rows_equal_to_parameters_is_insufficient(model_df: pd.DataFrame) -> None:
    """A fit with zero residual degrees of freedom is refused."""
    subset = model_df[model_df[YEAR_COLUMN] == 2019].iloc[[0, 1, 2]]

    with pytest.raises(InsufficientDataError, match="3 row\\(s\\) for 3 parameter\\(s\\)"):
        fit_enrollment_model(subset)


def test_readable_term_shortens_formula_terms() -> None:
    """Treatment-coded terms are rendered as 'predictor: level'."""
    term = "C(origin_region, Treatment(reference='Asia'), levels=['Asia', 'Europe'])[T.Europe]"

    assert readable_term(term) == "origin_region: Europe"
    assert readable_term("Intercept") == "Intercept"


def test_confounded_design_is_insufficient() -> None:
    """Each region seen with a single academic level cannot separate the two effects."""
    rows = []
    for year in (2016, 2017, 2018, 2019):
        rows.append({YEAR_COLUMN: year, "origin_region": "Asia", "academic_type": "Graduate", TOTAL_COLUMN: 100 + year % 10})
        rows.append({YEAR_COLUMN: year, "origin_region": "Europe", "academic_type": "Undergraduate", TOTAL_COLUMN: 50 + year % 10})
    model_df = assemble_model_data(pd.DataFrame(rows))

    with pytest.raises(InsufficientDataError, match="rank 2 for 3 parameter"):
        fit_enrollment_model(model_df)


def test_main_reports_abort_and_exits_non_zero(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A failing load aborts the printed report with a clear message."""
    def failing_load() -> dict:
        raise SchemaError("origin: missing required column(s): students")

    monkeypatch.setattr(enrollment_model, "load_and_preprocess_enrollment_data", failing_load)

    assert enrollment_model.main() == 1
    captured = capsys.readouterr()
    assert "Report aborted" in captured.err
    assert "students" in captured.err
    assert "Enrollment model" not in captured.out
