"""
Streamlit page for the 'Enrollment Trends' section of the dashboard.
Shows enrollment over time by origin region, academic level, field of study,
and visa type, built from the cleaned enrollment tables.
"""
import streamlit as st
from pathlib import Path
import sys

# --- Data Loading ---
# Add parent directory to path to import the preprocessing module.
try:
    src_path = Path(__file__).parent.parent
    if str(src_path) not in sys.path:
        sys.path.append(str(src_path))
    from preprocessing import load_and_preprocess_enrollment_data, TOTAL_COLUMN, YEAR_COLUMN
    from charts import (
        build_academic_type_figure,
        build_field_figure,
        build_region_trend_figure,
        build_status_figure,
    )
    from errors import EnrollmentError
except (ModuleNotFoundError, ImportError):
    st.error("Could not import the 'preprocessing' and 'charts' modules from the project root.")
    st.stop()


@st.cache_data
def load_data():
    """Loads and caches the cleaned enrollment tables."""
    return load_and_preprocess_enrollment_data()


try:
    tables = load_data()
except (EnrollmentError, FileNotFoundError) as e:
    st.error(f"Could not prepare the enrollment data: {e}")
    st.stop()

origin_df = tables["origin"]
field_df = tables["field_of_study"]
status_df = tables["status"]

if origin_df.empty or field_df.empty or status_df.empty:
    empty = [name for name, table in tables.items() if table.empty]
    st.error(f"No rows left after cleaning in: {', '.join(empty)}")
    st.stop()

# --- Page Layout ---
st.title("Enrollment Trends")
st.caption("International students at U.S. institutions by academic year.")

# Display high-level KPI cards for the latest year.
latest_year = int(origin_df[YEAR_COLUMN].max())
latest_origin = origin_df[origin_df[YEAR_COLUMN] == latest_year]
with st.container():
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Latest Year", f"{latest_year}/{str(latest_year + 1)[-2:]}")
    k2.metric("Students (Grad + Undergrad)", f"{latest_origin[TOTAL_COLUMN].sum():,}")
    k3.metric("Origin Regions", latest_origin["origin_region"].nunique())
    k4.metric("Fields of Study", field_df["field_of_study"].nunique())

tab1, tab2, tab3, tab4 = st.tabs(["🌍Origin Region", "🎓Academic Level", "📚Field of Study", "🛂Visa Status"])

with tab1:
    st.header("Where Do Students Come From?")
    regions = sorted(origin_df["origin_region"].astype(str).unique())
    selected_regions = st.multiselect("Regions to show:", options=regions, default=regions)
    if selected_regions:
        region_df = origin_df[origin_df["origin_region"].astype(str).isin(selected_regions)]
        st.plotly_chart(build_region_trend_figure(region_df), use_container_width=True)
    else:
        st.warning("Please select at least one region to display the chart.")

with tab2:
    st.header("Graduate vs. Undergraduate")
    st.plotly_chart(build_academic_type_figure(origin_df), use_container_width=True)
    st.caption("Note: Non-Degree and OPT students are excluded from the origin analysis.")

with tab3:
    st.header("What Do They Study?")
    top_n = st.slider("How many fields?", 5, 25, 10, step=1)
    st.plotly_chart(build_field_figure(field_df, top_n=top_n), use_container_width=True)

with tab4:
    st.header("Visa Status")
    st.plotly_chart(build_status_figure(status_df), use_container_width=True)
