"""
Streamlit Dashboard for the SME Risk Engine

Interactive view of a business's hazard scores and recommended strategies.
"""

import streamlit as st
import pandas as pd
import plotly.express as px
import sys
import os
from datetime import datetime

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.reference_data import InMemoryReferenceRepository, load_reference_data
from src.risk_scoring import RecommendationEngine
from src.risk_scoring.characteristics import SimplifiedAnswers, convert_simplified_inputs
from src.risk_scoring.reporting import assessments_to_frame, strategies_to_frame, tier_distribution

DEFAULT_REFERENCE_DATA = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_reference.json"
)

TIER_COLORS = {
    "Low": "#2e7d32",
    "Moderate": "#f9a825",
    "High": "#ef6c00",
    "VeryHigh": "#d84315",
    "Extreme": "#b71c1c",
}

# Page configuration
st.set_page_config(
    page_title="SME Disaster Risk Planner",
    page_icon="🌀",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_engine():
    dataset = load_reference_data(os.getenv("REFERENCE_DATA_PATH", DEFAULT_REFERENCE_DATA))
    return RecommendationEngine(InMemoryReferenceRepository(dataset))

engine = get_engine()
dataset = engine.repository.dataset

# Title and description
st.title(" SME Disaster Risk Planner")
st.markdown("**Hazard scoring and mitigation strategies for small businesses**")

# Sidebar
st.sidebar.header("Business Profile")

business_types = {bt.name or bt.business_type_id: bt.business_type_id for bt in dataset.business_types}
locations = {loc.name or loc.location_id: loc.location_id for loc in dataset.locations}

business_label = st.sidebar.selectbox("Business Type", list(business_types))
location_label = st.sidebar.selectbox("Location", list(locations))

st.sidebar.subheader("About Your Business")
customer_base = st.sidebar.radio(
    "Customers", ["mainly_locals", "mix", "mainly_tourists"],
    format_func=lambda v: v.replace("_", " ").capitalize()
)
power_dependency = st.sidebar.radio(
    "Without power you", ["can_operate", "partially", "cannot_operate"],
    format_func=lambda v: v.replace("_", " ")
)
sells_perishable = st.sidebar.checkbox("Sells perishable goods")
imports_from_overseas = st.sidebar.checkbox("Imports from overseas")
minimal_inventory = st.sidebar.checkbox("Keeps minimal inventory")
expensive_equipment = st.sidebar.checkbox("Relies on expensive equipment")

# Analysis button
if st.sidebar.button(" Assess Risk", type="primary"):
    answers = SimplifiedAnswers(
        customer_base=customer_base,
        power_dependency=power_dependency,
        sells_perishable=sells_perishable,
        imports_from_overseas=imports_from_overseas,
        minimal_inventory=minimal_inventory,
        expensive_equipment=expensive_equipment,
    )
    characteristics = convert_simplified_inputs(answers)
    # Let the location record answer the location questions
    for key in ("location_coastal", "location_urban", "location_flood_prone"):
        characteristics.pop(key)

    with st.spinner("Scoring hazards..."):
        st.session_state.result = engine.get_smart_recommendations(
            business_types[business_label],
            locations[location_label],
            characteristics,
            month=datetime.now().month,
        )
        st.session_state.analysis_complete = True

# Main content
if st.session_state.get("analysis_complete", False):
    result = st.session_state.result
    risks = assessments_to_frame(result.risks)
    strategies = strategies_to_frame(result.strategies)
    distribution = tier_distribution(result.risks)

    st.subheader(" Risk Summary")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Hazards Assessed", len(risks))
    col2.metric("Extreme / Very High", distribution["Extreme"] + distribution["VeryHigh"])
    col3.metric("Strategies", len(strategies))
    col4.metric("Data Quality", result.metadata.data_quality.capitalize())

    if result.metadata.estimated_hazards:
        st.info(
            "Estimated defaults were used for: "
            + ", ".join(result.metadata.estimated_hazards)
        )

    st.markdown("---")

    tab1, tab2, tab3 = st.tabs(["📈 Hazards", "🛡️ Strategies", "📋 Action Plan"])

    with tab1:
        if not risks.empty:
            fig = px.bar(
                risks,
                x="hazard_name",
                y="final_score",
                color="tier",
                color_discrete_map=TIER_COLORS,
                labels={"hazard_name": "Hazard", "final_score": "Risk Score (1-10)", "tier": "Tier"},
                title="Hazard Risk Scores",
                range_y=[0, 10]
            )
            st.plotly_chart(fig, use_container_width=True)
            st.dataframe(risks, use_container_width=True)
        else:
            st.info("No hazards are recorded for this location or business type.")

        if result.metadata.typical_impacts:
            st.subheader("Typical Impacts")
            for impact in result.metadata.typical_impacts:
                st.warning(impact)

    with tab2:
        if result.no_specific_guidance:
            st.info("No specific guidance is available for this business and location yet.")
        else:
            counts = strategies.groupby("category").size().reset_index(name="count")
            fig = px.pie(counts, names="category", values="count", title="Strategies by Category")
            st.plotly_chart(fig, use_container_width=True)
            st.dataframe(strategies, use_container_width=True)

    with tab3:
        for strategy in result.strategies:
            with st.expander(f"{strategy.name} ({strategy.category.value})"):
                for note in strategy.rationale:
                    st.write(f"- {note}")
                if strategy.action_steps:
                    steps = pd.DataFrame(
                        [
                            {
                                "phase": step.phase.value,
                                "timing": step.execution_timing.value,
                                "step": step.title,
                            }
                            for step in strategy.action_steps
                        ]
                    )
                    st.table(steps)

else:
    st.info("👈 Describe your business in the sidebar and click **Assess Risk** to begin.")

    st.markdown("""
    ### How Scores Are Built

    - **Hazard level** of your location, **vulnerability** and **impact** for your business type
    - **Multipliers** for characteristics such as a coastal site or heavy power dependency
    - Scores run from 1 to 10 and are grouped into Low, Moderate, High, Very High and Extreme

    Strategies are ranked by effectiveness, cost and priority, and every category
    (prevention, preparation, response, recovery) is represented.
    """)

# Footer
st.sidebar.markdown("---")
st.sidebar.markdown("""
**SME Disaster Risk Planner**
Version 1.0.0
""")
