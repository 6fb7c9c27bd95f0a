import pandas as pd
import streamlit as st

from overdiag.bias import find_unbiased_year
from overdiag.errors import InvalidParameter
from overdiag.params import extract_setting_parameters
from overdiag.settings.multipopulation_setting import multipopulation_setting
from overdiag.settings.population_setting import population_setting


# =====================================================
# Population and dissemination UI
# =====================================================
def render_population_ui(dissemination=False):

    params = extract_setting_parameters()
    defaults = params["multipopulation" if dissemination else "population"]

    if dissemination:
        st.header("Gradual Dissemination of Screening")
    else:
        st.header("Population Screening")

    st.sidebar.header("Population Inputs")

    pop_size = st.sidebar.number_input(
        "Population size", min_value=100, value=int(defaults["pop_size"])
    )
    onset_rate = st.sidebar.number_input(
        "Annual onset rate", 0.0, 0.1, float(defaults["onset_rate"]), 0.0005, format="%.4f"
    )
    sojourn_min, sojourn_max = st.sidebar.slider(
        "Sojourn time range (years)", 0, 15,
        (int(defaults["sojourn_min"]), int(defaults["sojourn_max"]))
    )
    followup_years = st.sidebar.slider("Years of follow-up", 1, 50, int(defaults["followup_years"]))
    sensitivity = st.sidebar.slider("Test sensitivity", 0.0, 1.0, float(defaults["sensitivity"]))
    overdiag_rate = st.sidebar.slider(
        "Overdiagnosis rate", 0.0, 0.95, float(defaults["overdiag_rate"])
    )
    max_year = st.sidebar.slider("Show years up to", 1, followup_years, min(20, followup_years))

    if dissemination:
        st.subheader("Dissemination schedule")
        schedule = st.data_editor(pd.DataFrame({
            "proportion": defaults["proportion"],
            "start_year": defaults["start_year"],
        }))
    else:
        screen_start_year, screen_stop_year = st.sidebar.slider(
            "Screening years", 0, followup_years,
            (min(int(defaults["screen_start_year"]), followup_years),
             min(int(defaults["screen_stop_year"]), followup_years))
        )

    if st.sidebar.button("Run Population"):
        try:
            if dissemination:
                pset = multipopulation_setting(
                    pop_size=pop_size,
                    onset_rate=onset_rate,
                    sojourn_min=sojourn_min,
                    sojourn_max=sojourn_max,
                    sensitivity=sensitivity,
                    overdiag_rate=overdiag_rate,
                    proportion=schedule["proportion"].tolist(),
                    start_year=schedule["start_year"].tolist(),
                    followup_years=followup_years,
                )
            else:
                pset = population_setting(
                    pop_size=pop_size,
                    onset_rate=onset_rate,
                    sojourn_min=sojourn_min,
                    sojourn_max=sojourn_max,
                    sensitivity=sensitivity,
                    overdiag_rate=overdiag_rate,
                    screen_start_year=screen_start_year,
                    screen_stop_year=screen_stop_year,
                    followup_years=followup_years,
                )
            unbiased_year = find_unbiased_year(pset, measure="Annual", min_year=0, max_year=max_year)
        except InvalidParameter as e:
            st.error(f"Invalid population parameters: {e}")
            return

        st.success("Simulation complete!")
        st.subheader("Annual number of cases")
        shown = pset[pset["year"] <= max_year].set_index("year")
        st.area_chart(shown[["count_clinical", "count_screen", "count_overdiag"]])
        st.metric("Unbiased year", "none found" if unbiased_year is None else unbiased_year)

        st.subheader("Incidence by year")
        st.write(pset)
