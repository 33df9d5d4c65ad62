"""
Main entry point and landing page for the Streamlit multi-page application.
This script sets the main page configuration, serves as the landing page,
and includes a section with details about the three enrollment datasets.
"""
import streamlit as st
from datetime import datetime
import pandas as pd

from preprocessing import DATA_FILES, find_data_file, standardize_columns

# --- Page Configuration ---
st.set_page_config(
    page_title="International Student Enrollment",
    page_icon="🎓",
    layout="wide"
)

# --- Main Landing Page Content ---
st.title("International Students in the United States 🎓")
st.markdown("Explore where international students come from, what they study, and which visas they hold.")
st.sidebar.success("Select a page above to begin.")

st.header("Welcome!")
st.write("Use the menu on the left to navigate between the analysis pages:")
st.markdown("""
- **Enrollment Trends**: Follow enrollment over time by origin region, academic level, field of study, and visa type.
- **Enrollment Model**: Fit a linear model of enrollment on origin region and academic level.
""")


# --- "About the Data" Section ---
st.divider()
st.header("About the Datasets")


@st.cache_data(show_spinner=False)
def load_data(path) -> pd.DataFrame:
    """Loads a raw CSV with standardized column names, cached for performance."""
    return standardize_columns(pd.read_csv(path, low_memory=False))


st.write(
    """
The data are annual counts of international students enrolled at U.S. institutions, reported by
academic year ("2020/21"). Three tables are provided: students by place of origin and academic
level, students by field of study, and students by visa status (F, J and other visas).
"""
)

DESCRIPTIONS = {
    "year": "Academic year, written as start/end (e.g., 2020/21).",
    "origin_region": "World region the students come from.",
    "origin": "Country or territory of origin.",
    "academic_type": "Academic level (Graduate, Undergraduate, Non-Degree, OPT).",
    "field_of_study": "Field of study of the enrolled students.",
    "students": "Number of international students.",
    "visa_f": "Students on an F (academic student) visa.",
    "visa_j": "Students on a J (exchange visitor) visa.",
    "visa_other": "Students on any other visa.",
}


def example_value(s: pd.Series) -> str:
    """Extracts the first non-null value from a Series as an example."""
    ex = s.dropna().head(1)
    return "—" if ex.empty else str(ex.iloc[0])[:80]


table_tabs = st.tabs([name.replace("_", " ").title() for name in DATA_FILES])
for tab, (table_name, filename) in zip(table_tabs, DATA_FILES.items()):
    with tab:
        try:
            data_path = find_data_file(filename)
        except FileNotFoundError as e:
            st.error(str(e))
            continue
        df = load_data(data_path)
        last_updated = datetime.fromtimestamp(data_path.stat().st_mtime)

        # --- Quick Facts ---
        c1, c2, c3 = st.columns(3)
        c1.metric("Rows", f"{len(df):,}")
        c2.metric("Columns", f"{df.shape[1]:,}")
        c3.metric("Last Updated", last_updated.strftime("%Y-%m-%d"))

        # --- Data Dictionary ---
        st.subheader("Data Dictionary")
        schema = pd.DataFrame({
            "Column": df.columns,
            "Type": [str(t) for t in df.dtypes],
            "Example": [example_value(df[c]) for c in df.columns],
            "Description": [DESCRIPTIONS.get(c, "") for c in df.columns]
        })
        st.dataframe(schema, hide_index=True, use_container_width=True)

        # --- Browse the data ---
        st.subheader("Browse the Raw Data")
        query = st.text_input("Quick search (matches any column)", "", key=f"search_{table_name}")
        view = df
        if query:
            mask = view.astype(str).apply(
                lambda col: col.str.contains(query, case=False, na=False)
            )
            view = view[mask.any(axis=1)]
        st.dataframe(view, use_container_width=True, height=400)

        st.download_button(
            "Download CSV",
            df.to_csv(index=False).encode("utf-8"),
            file_name=filename,
            mime="text/csv",
            key=f"download_{table_name}",
        )

# --- Citation ---
st.markdown("**Reference:**")
st.markdown(
    """
Institute of International Education. *Open Doors Report on International Educational Exchange* [Data set].
https://opendoorsdata.org
"""
)
