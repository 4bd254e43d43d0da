"""
app/streamlit_app.py

Purpose
-------
A Streamlit dashboard that:
  - loads a student table (upload or the synthetic demo table)
  - predicts one student's performance, from a real record or custom inputs,
    through the remote backend with a local fallback
  - explains local predictions with a SHAP waterfall of term contributions
  - keeps this session's prediction rows and alerts
  - batch-scores the whole table with summary panels
"""

import matplotlib.pyplot as plt
import pandas as pd
import shap
import streamlit as st

from predictor.config import settings
from predictor.data_dictionary import DATA_DICTIONARY
from predictor.explain import contribution_explanation
from predictor.features import FEATURE_RANGES, GenericAnalytic, Scale, StudentRecord, normalize, normalize_frame
from predictor.inference import score_frame
from predictor.logging_config import setup_logging
from predictor.metrics import confidence_bands, factor_averages, score_bands, summarize_predictions
from predictor.records import alert_record, prediction_record
from predictor.remote import LocalFallback, RemoteScorer
from predictor.variants import VARIANTS, get_variant


setup_logging()

# ---------------------------------------------------------------------
# Streamlit page configuration
# ---------------------------------------------------------------------
st.set_page_config(
    page_title="Student Performance Predictor",
    layout="wide",
)
st.title("🎓 Student Performance Predictor")

if "predictions" not in st.session_state:
    st.session_state["predictions"] = []
if "alerts" not in st.session_state:
    st.session_state["alerts"] = []


# ---------------------------------------------------------------------
# Caching helpers
# ---------------------------------------------------------------------
@st.cache_data
def load_students(path: str) -> pd.DataFrame:
    return pd.read_csv(path)

@st.cache_data
def cached_score_frame(df: pd.DataFrame, model_version: str) -> pd.DataFrame:
    """Batch scoring is pure, so results can be cached by contents + version."""
    return score_frame(df, model_version)


# ---------------------------------------------------------------------
# Sidebar controls
# ---------------------------------------------------------------------
st.sidebar.header("Controls")

versions = sorted(VARIANTS)
model_version = st.sidebar.selectbox(
    "Model version",
    versions,
    index=versions.index(settings.model_version),
    help="Formula variant used for local scoring and the fallback.",
)
st.sidebar.caption(get_variant(model_version).description)

remote_url = st.sidebar.text_input(
    "Remote backend URL",
    value=settings.remote_backend_url or "",
    help="Leave blank to score locally. Requests go to <url>/predict.",
)
timeout = st.sidebar.slider(
    "Remote timeout (s)",
    min_value=10.0,
    max_value=15.0,
    value=float(settings.remote_timeout_seconds),
    step=1.0,
)


# ---------------------------------------------------------------------
# Data input section
# ---------------------------------------------------------------------
st.subheader("Student data")
file = st.file_uploader("Upload a student CSV", type="csv")

if file:
    students = pd.read_csv(file)
elif settings.student_data_path.exists():
    st.info(f"No file uploaded. Using {settings.student_data_path}.")
    students = load_students(str(settings.student_data_path))
else:
    st.info("No student table found. Generate one with `python -m predictor.make_synthetic_data`, or use custom mode.")
    students = pd.DataFrame()

if len(students):
    try:
        students, warnings = normalize_frame(students)
        for w in warnings:
            st.warning(w)
    except ValueError as e:
        st.error("Student table failed validation.")
        st.code(str(e))
        students = pd.DataFrame()

tab_single, tab_batch, tab_history = st.tabs(["Predict", "Batch scoring", "History & alerts"])


# ---------------------------------------------------------------------
# Single prediction
# ---------------------------------------------------------------------
with tab_single:
    record = None
    student_id = "custom_analytics"
    if len(students):
        id_col = "student_id" if "student_id" in students.columns else None
        labels = ["Custom analytics"] + [
            str(students.at[i, id_col]) if id_col else f"Row {i}" for i in students.index
        ]
        choice = st.selectbox("Student", range(len(labels)), format_func=lambda i: labels[i])
        if choice:
            idx = students.index[choice - 1]
            record = StudentRecord.from_row(students.loc[idx])
            student_id = record.student_id or labels[choice]
            st.caption("Real-data mode: sliders start from the database record.")

    prefill = normalize(record=record).as_dict()
    steps = {"emotional_sentiment": 0.01, "stress_level": 0.01}

    inputs = {}
    cols = st.columns(3)
    for i, (name, rng) in enumerate(FEATURE_RANGES.items()):
        with cols[i % 3]:
            inputs[name] = st.slider(
                name,
                min_value=float(rng.low),
                max_value=float(rng.high),
                value=float(prefill[name]),
                step=steps.get(name, 0.5),
                help=DATA_DICTIONARY.get(name),
                key=f"{student_id}-{name}",
            )

    with st.expander("Additional analytic (optional)"):
        extra_name = st.text_input("Name")
        extra_scale = st.selectbox("Scale", list(Scale), format_func=lambda s: s.value)
        extra_value = st.number_input("Value", value=0.0)

    analytics = [GenericAnalytic(extra_name, extra_value, extra_scale)] if extra_name else []

    if st.button("Generate prediction", type="primary"):
        features = normalize(inputs, record, analytics)
        with RemoteScorer(remote_url or None, timeout=timeout, model_version=model_version) as scorer:
            outcome = scorer.dispatch(features)
        result = outcome.result

        if isinstance(outcome, LocalFallback) and remote_url:
            st.warning(f"Could not reach remote backend ({outcome.reason}). Showing the local fallback prediction.")

        row = prediction_record(student_id, features, result)
        st.session_state["predictions"].append(row)
        alert = alert_record(student_id, result, get_variant(model_version))
        if alert:
            st.session_state["alerts"].append(alert)

        c1, c2, c3 = st.columns(3)
        c1.metric("Predicted score", f"{result.predicted_score}/20")
        c2.metric("Confidence", f"{result.confidence_level}%")
        c3.metric("Risk", result.risk_level.value.upper())
        st.write(result.intervention_summary)
        st.caption(f"Model: {result.model_version} | Source: {result.provenance.value}")

        if result.feature_contributions:
            st.caption("Term contributions to the predicted score")
            fig = plt.figure()
            shap.plots.waterfall(contribution_explanation(result), show=False)
            st.pyplot(fig)


# ---------------------------------------------------------------------
# Batch scoring
# ---------------------------------------------------------------------
with tab_batch:
    if not len(students):
        st.info("Load a student table to batch-score it.")
    else:
        scored = cached_score_frame(students, model_version)
        summary = summarize_predictions(scored)

        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Avg score", f"{summary['avg_score']}/20")
        c2.metric("Avg confidence", f"{summary['avg_confidence']}%")
        c3.metric("High risk", summary["high_risk"])
        c4.metric("Improving", summary["improving"])

        col1, col2 = st.columns([2, 1])
        with col1:
            st.subheader("Lowest predicted scores")
            st.dataframe(scored.sort_values("predicted_score").head(50), use_container_width=True)
            st.download_button(
                "Download scored CSV",
                data=scored.to_csv(index=False).encode("utf-8"),
                file_name="scored.csv",
                mime="text/csv",
            )
        with col2:
            st.subheader("Score distribution")
            fig = plt.figure()
            plt.hist(scored["predicted_score"], bins=20, range=(0, 20))
            plt.xlabel("predicted_score")
            plt.ylabel("count")
            st.pyplot(fig)

            st.subheader("Score bands")
            st.write(score_bands(scored))
            st.subheader("Confidence bands")
            st.write(confidence_bands(scored))
            st.subheader("Factor averages")
            st.write(factor_averages(scored))


# ---------------------------------------------------------------------
# Session history
# ---------------------------------------------------------------------
with tab_history:
    history = pd.DataFrame(st.session_state["predictions"])
    if history.empty:
        st.info("No predictions yet.")
    else:
        st.dataframe(history.drop(columns=["shap_explanation"]).iloc[::-1], use_container_width=True)

    st.subheader("Alerts")
    for alert in reversed(st.session_state["alerts"]):
        if alert["severity"] == "high":
            st.error(alert["message"])
        else:
            st.warning(alert["message"])
