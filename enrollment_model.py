"""
Model-data assembly and the linear regression for the enrollment report.

The cleaned origin table is collapsed to one row per (start year, origin
region, academic type) and handed to an ordinary least squares fit of the
student totals on region and academic type. The baseline level of each
predictor is resolved explicitly instead of being left to the formula
library's default ordering.
"""
import re
import sys
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from errors import EnrollmentError, InsufficientDataError, UnknownCategoryError
from logging_config import get_logger
from preprocessing import TOTAL_COLUMN, YEAR_COLUMN, load_and_preprocess_enrollment_data, normalize_table

logger = get_logger(__name__)

MODEL_PREDICTORS = ["origin_region", "academic_type"]
LOG_RESPONSE = "log_total_students"

_TERM_PATTERN = re.compile(r"^C\((\w+),.*\)\[T\.(.+)\]$")


@dataclass(frozen=True)
class EnrollmentModelFit:
    """A fitted enrollment model and the choices that shape its interpretation."""

    results: object
    formula: str
    reference_levels: dict = field(default_factory=dict)
    levels: dict = field(default_factory=dict)
    log_target: bool = False


def assemble_model_data(origin_clean):
    """
    Collapses the cleaned origin table to one row per (start year, region, academic type).

    Any extra grouping column (such as origin country) is summed away.
    """
    model_df = normalize_table(
        origin_clean,
        YEAR_COLUMN,
        MODEL_PREDICTORS,
        TOTAL_COLUMN,
        table_name="model_input",
    )
    logger.info("model_data_assembled", rows=len(model_df))
    return model_df


def observed_levels(model_df, column):
    """Returns the observed levels of a predictor in lexical order."""
    return sorted({str(v) for v in model_df[column].dropna().unique()})


def resolve_reference_levels(model_df, reference_levels=None):
    """
    Resolves the baseline level of every model predictor.

    By default the baseline is the first observed level in lexical order.
    `reference_levels` may override it per predictor.

    Raises:
        UnknownCategoryError: If an override names a level that is not observed.
    """
    overrides = dict(reference_levels or {})
    unexpected = [c for c in overrides if c not in MODEL_PREDICTORS]
    if unexpected:
        raise ValueError(f"No model predictor named: {', '.join(unexpected)}")

    resolved = {}
    for column in MODEL_PREDICTORS:
        levels = observed_levels(model_df, column)
        if column in overrides:
            reference = str(overrides[column])
            if reference not in levels:
                raise UnknownCategoryError(
                    f"Reference level {reference!r} for '{column}' is not among the observed levels: {', '.join(levels)}"
                )
        else:
            reference = levels[0]
        resolved[column] = reference
    return resolved


def build_formula(response, levels, reference_levels):
    """Builds the OLS formula with explicit levels and treatment baselines."""
    terms = [
        f"C({column}, Treatment(reference={reference_levels[column]!r}), levels={levels[column]!r})"
        for column in MODEL_PREDICTORS
    ]
    return f"{response} ~ " + " + ".join(terms)


def fit_enrollment_model(model_df, reference_levels=None, log_target=False):
    """
    Fits OLS of total students on origin region and academic type.

    Args:
        model_df: Output of `assemble_model_data`.
        reference_levels: Optional per-predictor baseline overrides.
        log_target: Fit log1p(total_students) instead of the raw totals.

    Returns:
        EnrollmentModelFit

    Raises:
        InsufficientDataError: If the table is empty, has no more rows than
            the model has parameters, or region and academic type are
            confounded so the design matrix is rank-deficient.
    """
    if model_df.empty:
        raise InsufficientDataError("Model input is empty; nothing to fit.")

    levels = {column: observed_levels(model_df, column) for column in MODEL_PREDICTORS}
    n_params = 1 + sum(len(v) - 1 for v in levels.values())
    if len(model_df) <= n_params:
        raise InsufficientDataError(
            f"Model input has {len(model_df)} row(s) for {n_params} parameter(s); "
            "at least one more row than parameters is required."
        )

    references = resolve_reference_levels(model_df, reference_levels)

    data = pd.DataFrame({column: model_df[column].astype(str) for column in MODEL_PREDICTORS})
    data[TOTAL_COLUMN] = model_df[TOTAL_COLUMN].astype(float)
    response = TOTAL_COLUMN
    if log_target:
        data[LOG_RESPONSE] = np.log1p(data[TOTAL_COLUMN])
        response = LOG_RESPONSE

    formula = build_formula(response, levels, references)
    model = smf.ols(formula, data=data)
    rank = int(np.linalg.matrix_rank(model.exog))
    if rank < n_params:
        raise InsufficientDataError(
            f"Design matrix has rank {rank} for {n_params} parameter(s); region and academic type "
            "are confounded, so their effects cannot be separated."
        )
    results = model.fit()
    logger.info(
        "model_fitted",
        rows=len(data),
        parameters=n_params,
        r_squared=float(results.rsquared),
        reference_levels=references,
        log_target=log_target,
    )
    return EnrollmentModelFit(
        results=results,
        formula=formula,
        reference_levels=references,
        levels=levels,
        log_target=log_target,
    )


def readable_term(term):
    """Shortens a formula term such as 'C(origin_region, ...)[T.Asia]' to 'origin_region: Asia'."""
    match = _TERM_PATTERN.match(term)
    if match:
        return f"{match.group(1)}: {match.group(2)}"
    return term


def coefficient_table(fit):
    """
    Summarizes the fitted coefficients.

    Returns:
        pd.DataFrame: term, coefficient, std_err, p_value, conf_low, conf_high.
    """
    results = fit.results
    conf = results.conf_int()
    return pd.DataFrame({
        "term": [readable_term(t) for t in results.params.index],
        "coefficient": results.params.to_numpy(),
        "std_err": results.bse.to_numpy(),
        "p_value": results.pvalues.to_numpy(),
        "conf_low": conf[0].to_numpy(),
        "conf_high": conf[1].to_numpy(),
    })


def main():
    """Loads the data, fits the model and prints the report."""
    try:
        tables = load_and_preprocess_enrollment_data()
        model_df = assemble_model_data(tables["origin"])
        fit = fit_enrollment_model(model_df)
    except (EnrollmentError, FileNotFoundError) as e:
        logger.error("report_failed", error=str(e), error_type=type(e).__name__)
        print(f"Report aborted: {e}", file=sys.stderr)
        return 1

    print("Enrollment model: total students ~ origin region + academic type")
    print("Reference levels (absorbed into the intercept):")
    for column, reference in fit.reference_levels.items():
        print(f"  {column}: {reference}")
    print(fit.results.summary())
    print()
    print(coefficient_table(fit).to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
