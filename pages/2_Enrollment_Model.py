"""
Streamlit page for the 'Enrollment Model' section.
Fits an ordinary least squares model of enrollment on origin region and
academic level, with explicit reference levels chosen in the sidebar.
"""
import streamlit as st
from pathlib import Path
import sys

# --- Data Loading ---
# Add parent directory to path to import the project modules.
try:
    src_path = Path(__file__).parent.parent
    if str(src_path) not in sys.path:
        sys.path.append(str(src_path))
    from preprocessing import load_and_preprocess_enrollment_data
    from enrollment_model import (
        MODEL_PREDICTORS,
        assemble_model_data,
        coefficient_table,
        fit_enrollment_model,
        observed_levels,
    )
    from charts import build_coefficient_figure
    from errors import EnrollmentError
except (ModuleNotFoundError, ImportError):
    st.error("Could not import 'enrollment_model' from the project root.")
    st.stop()

# --- Page Configuration ---
st.set_page_config(page_title="Enrollment Model", page_icon="🧮", layout="wide")
st.title("Enrollment Model")
st.caption("How enrollment differs by origin region and academic level.")


@st.cache_data(show_spinner=False)
def load_model_data():
    """Loads the cleaned origin table and collapses it to the model input."""
    return assemble_model_data(load_and_preprocess_enrollment_data()["origin"])


try:
    model_df = load_model_data()
except (EnrollmentError, FileNotFoundError) as e:
    st.error(f"Could not prepare the model input: {e}")
    st.stop()

if model_df.empty:
    st.error("The model input is empty after cleaning.")
    st.stop()

# --- Sidebar - Model Configuration ---
st.sidebar.header("Model Configuration")
st.sidebar.caption("The reference level of each predictor is absorbed into the intercept; every other coefficient is read relative to it.")

reference_levels = {}
for column in MODEL_PREDICTORS:
    levels = observed_levels(model_df, column)
    reference_levels[column] = st.sidebar.selectbox(
        f"Reference level: {column.replace('_', ' ')}", options=levels, index=0
    )
use_log_target = st.sidebar.checkbox("Use log target (stabilize skew)", value=False, help="Fits log1p(total students) instead of raw totals.")

# --- Fit Model ---
try:
    fit = fit_enrollment_model(model_df, reference_levels=reference_levels, log_target=use_log_target)
except EnrollmentError as e:
    st.error(f"Could not fit the model: {e}")
    st.stop()

results = fit.results
colA, colB, colC, colD = st.columns(4)
colA.metric("Observations", f"{int(results.nobs):,}")
colB.metric("Parameters", f"{len(results.params)}")
colC.metric("R²", f"{results.rsquared:0.3f}", help="Proportion of variance explained by region and academic level.")
colD.metric("Adjusted R²", f"{results.rsquared_adj:0.3f}")

coefficients = coefficient_table(fit)

st.subheader("Coefficients")
st.markdown(
    "Reference levels: " + ", ".join(f"**{c.replace('_', ' ')}** = {r}" for c, r in fit.reference_levels.items())
)
st.dataframe(coefficients, hide_index=True, use_container_width=True)
st.plotly_chart(build_coefficient_figure(coefficients), use_container_width=True)

with st.expander("Model input"):
    st.dataframe(model_df, hide_index=True, use_container_width=True)

with st.expander("Full statsmodels summary"):
    st.text(str(results.summary()))
