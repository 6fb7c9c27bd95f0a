import streamlit as st

from overdiag.bias import analyze_bias
from overdiag.errors import InvalidParameter
from overdiag.params import extract_setting_parameters
from overdiag.settings.trial_setting import trial_setting


# =====================================================
# Trial setting UI
# =====================================================
def render_trial_ui():

    st.header("Two-arm Screening Trial")

    defaults = extract_setting_parameters()["trial"]

    st.sidebar.header("Trial Inputs")

    # -----------------------------
    # Cohort
    # -----------------------------
    arm_size = st.sidebar.number_input("Arm size", min_value=100, value=int(defaults["arm_size"]))
    onset_rate = st.sidebar.number_input(
        "Annual onset rate", 0.0, 0.1, float(defaults["onset_rate"]), 0.0005, format="%.4f"
    )
    sojourn_min, sojourn_max = st.sidebar.slider(
        "Sojourn time range (years)", 0, 15,
        (int(defaults["sojourn_min"]), int(defaults["sojourn_max"]))
    )

    # -----------------------------
    # Screening programme
    # -----------------------------
    followup_years = st.sidebar.slider("Years of follow-up", 1, 50, int(defaults["followup_years"]))
    screen_start_year, screen_stop_year = st.sidebar.slider(
        "Screening years", 0, followup_years,
        (min(int(defaults["screen_start_year"]), followup_years),
         min(int(defaults["screen_stop_year"]), followup_years))
    )
    sensitivity = st.sidebar.slider("Test sensitivity", 0.0, 1.0, float(defaults["sensitivity"]))
    attendance = st.sidebar.slider("Attendance", 0.0, 1.0, float(defaults["attendance"]))
    overdiag_rate = st.sidebar.slider(
        "Overdiagnosis rate", 0.0, 0.95, float(defaults["overdiag_rate"])
    )
    max_year = st.sidebar.slider("Show years up to", 1, followup_years, min(12, followup_years))

    if st.sidebar.button("Run Trial"):
        try:
            tset = trial_setting(
                arm_size=arm_size,
                onset_rate=onset_rate,
                sojourn_min=sojourn_min,
                sojourn_max=sojourn_max,
                sensitivity=sensitivity,
                attendance=attendance,
                overdiag_rate=overdiag_rate,
                screen_start_year=screen_start_year,
                screen_stop_year=screen_stop_year,
                followup_years=followup_years,
            )
            table, summary = analyze_bias(tset, min_year=0, max_year=max_year)
        except InvalidParameter as e:
            st.error(f"Invalid trial parameters: {e}")
            return

        st.success("Trial complete!")
        for measure in ["Annual", "Cumulative"]:
            st.subheader(f"{measure} number of cases")
            chart = table[table["measure"] == measure].pivot(
                index="year", columns="arm", values="count_total"
            )
            st.line_chart(chart)
            unbiased_year = summary[measure]
            st.metric(
                f"{measure} unbiased year",
                "none found" if unbiased_year is None else unbiased_year,
            )

        st.subheader("Incidence by arm")
        st.dataframe(tset)
