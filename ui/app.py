import logging
import os
import sys

import streamlit as st

# Ensure the project root is in sys.path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ui.population_ui import render_population_ui
from ui.trial_ui import render_trial_ui

logging.basicConfig(level=logging.INFO, format="%(message)s")

st.title("Overdiagnosis and Excess Incidence")

setting_choice = st.radio(
    "Select setting:",
    ["Screening trial", "Population screening", "Gradual dissemination"]
)

if setting_choice == "Screening trial":
    render_trial_ui()
else:
    render_population_ui(dissemination=setting_choice == "Gradual dissemination")
