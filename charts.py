"""
Plotly figure builders for the enrollment dashboard.

Every builder takes a cleaned table from `preprocessing` (or the coefficient
table from `enrollment_model`) and returns a plotly Figure.
"""
import plotly.express as px

from preprocessing import TOTAL_COLUMN, YEAR_COLUMN

LABELS = {
    YEAR_COLUMN: "Academic Year (start)",
    TOTAL_COLUMN: "International Students",
    "origin_region": "Origin Region",
    "academic_type": "Academic Level",
    "field_of_study": "Field of Study",
    "visa_type": "Visa Type",
}


def _totals_by(df, column):
    """Sums the student totals per (start year, column)."""
    return df.groupby([YEAR_COLUMN, column], observed=True)[TOTAL_COLUMN].sum().reset_index()


def build_region_trend_figure(origin_clean):
    """Line chart of international students per year, one line per origin region."""
    data = _totals_by(origin_clean, "origin_region")
    return px.line(
        data,
        x=YEAR_COLUMN,
        y=TOTAL_COLUMN,
        color="origin_region",
        markers=True,
        labels=LABELS,
        title="International Students by Origin Region",
    )


def build_academic_type_figure(origin_clean):
    """Grouped bar chart of students per year by academic level."""
    data = _totals_by(origin_clean, "academic_type")
    return px.bar(
        data,
        x=YEAR_COLUMN,
        y=TOTAL_COLUMN,
        color="academic_type",
        barmode="group",
        labels=LABELS,
        title="International Students by Academic Level",
    )


def build_field_figure(field_clean, top_n=10):
    """Bar chart of the largest fields of study in the latest year."""
    latest_year = field_clean[YEAR_COLUMN].max()
    latest = field_clean[field_clean[YEAR_COLUMN] == latest_year].copy()
    latest["field_of_study"] = latest["field_of_study"].astype(str)
    top_fields = latest.sort_values(TOTAL_COLUMN, ascending=False).head(top_n)
    return px.bar(
        top_fields,
        x="field_of_study",
        y=TOTAL_COLUMN,
        color=TOTAL_COLUMN,
        color_continuous_scale=px.colors.sequential.Plasma,
        labels=LABELS,
        title=f"Top {top_n} Fields of Study ({latest_year}/{str(latest_year + 1)[-2:]})",
    )


def build_status_figure(status_clean):
    """Stacked bar chart of students per year by visa type."""
    return px.bar(
        status_clean,
        x=YEAR_COLUMN,
        y=TOTAL_COLUMN,
        color="visa_type",
        barmode="stack",
        labels=LABELS,
        title="International Students by Visa Type",
    )


def build_coefficient_figure(coefficients):
    """Horizontal bar chart of model coefficients with 95% confidence intervals."""
    data = coefficients[coefficients["term"] != "Intercept"].copy()
    data["error_high"] = data["conf_high"] - data["coefficient"]
    data["error_low"] = data["coefficient"] - data["conf_low"]
    fig = px.bar(
        data,
        x="coefficient",
        y="term",
        orientation="h",
        error_x="error_high",
        error_x_minus="error_low",
        labels={"coefficient": "Coefficient", "term": ""},
        title="Model Coefficients (relative to the reference levels)",
    )
    fig.update_layout(yaxis={"categoryorder": "total ascending"})
    return fig
