"""
predictor/data_dictionary.py

A simple mapping of column -> description used by the Streamlit UI for
slider help text and table captions.
"""

DATA_DICTIONARY = {
    "student_id": "Identifier of the student record (not used as a feature).",
    "age": "Student age in years (15–22).",
    "studytime": "Weekly study time in hours.",
    "g1": "First-period grade (0–20).",
    "g2": "Second-period grade (0–20); compared with g1 to detect a trend.",
    "absences": "Number of school absences.",
    "effort_score": "Teacher-rated effort (1–10).",
    "emotional_sentiment": "Emotional sentiment (0 = very negative, 0.5 = neutral, 1 = very positive).",
    "participation_index": "Class participation index (1–10).",
    "family_support": "Quality of family relationships (1–5, from famrel).",
    "health_score": "Current health status (1–5).",
    "social_activity": "Going out with friends (1–5, from goout).",
    "alcohol_consumption": "Average of workday and weekend alcohol consumption (0–5).",
    "attendance_rate": "Attendance percentage (0–100); derived as 100 - 3 x absences when unknown.",
    "motivation_level": "Self-reported motivation (1–10).",
    "stress_level": "Stress level (0 = none, 0.5 = moderate, 1 = high).",
    "predicted_score": "Predicted final grade (0–20).",
    "confidence_level": "Confidence in the prediction (0–100).",
    "risk_level": "Risk tier: low, medium or high.",
    "intervention_summary": "Strengths and recommended interventions for the educator.",
    "model_version": "Formula variant (or remote backend) that produced the prediction.",
    "backend_source": "Where the score came from: local, remote or fallback.",
}
