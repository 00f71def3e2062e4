import streamlit as st
import plotly.graph_objects as go
from plotly.subplots import make_subplots
import pandas as pd
import numpy as np

from land_allocator import CO2_LUC_MARKET
from land_report import leaf_allocation_pivot
from scenario_harness import Scenario, carbon_price_path, run_scenario
from model_context import Modeltime

# Page configuration
st.set_page_config(
    page_title="Land Allocation Dashboard",
    page_icon="🌾",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.title("🌾 Land Allocation under a Carbon Price")
st.markdown("Nested-logit land allocation calibrated to historical land use, projected forward at fixed prices")

# Sidebar - Scenario Parameters
st.sidebar.header("Carbon Price")
carbon_price_start_year = st.sidebar.slider("Carbon Price Start Year", min_value=2020, max_value=2080,
                                            value=2020, step=15)
carbon_price_start = st.sidebar.slider("Initial Carbon Price (1990$/tC)", min_value=0, max_value=500,
                                       value=50, step=10)
carbon_price_growth = st.sidebar.slider("Carbon Price Growth (%/yr)", min_value=0.0, max_value=5.0,
                                        value=3.0, step=0.5) / 100.0

st.sidebar.markdown("---")
st.sidebar.subheader("Profit Growth (%/yr)")
crop_growth = st.sidebar.slider("Corn & Wheat", min_value=-2.0, max_value=3.0, value=0.0, step=0.25) / 100.0
biomass_growth = st.sidebar.slider("Biomass", min_value=-2.0, max_value=5.0, value=0.0, step=0.25) / 100.0
profit_noise_std = st.sidebar.slider("Profit Noise (std)", min_value=0.0, max_value=0.3, value=0.0, step=0.05)

st.sidebar.markdown("---")
random_seed = st.sidebar.number_input("Random Seed (0 = random)", min_value=0, max_value=10000, value=42)
run_button = st.sidebar.button("Run Scenario", type="primary")

if 'table' not in st.session_state:
    st.session_state.table = None
    st.session_state.luc = None
    st.session_state.prices = None

if run_button:
    with st.spinner("Calibrating and projecting..."):
        if random_seed > 0:
            np.random.seed(random_seed)
        modeltime = Modeltime()
        scenario = Scenario(
            name="dashboard",
            description="Interactive scenario",
            carbon_price_start_year=carbon_price_start_year,
            carbon_price_start=float(carbon_price_start),
            carbon_price_growth=carbon_price_growth,
            profit_growth={"Corn": crop_growth, "Wheat": crop_growth, "Biomass": biomass_growth},
            profit_noise_std=profit_noise_std,
        )
        table, _, ctx = run_scenario(scenario, modeltime)
        st.session_state.table = table
        st.session_state.luc = pd.DataFrame({
            "year": modeltime.years,
            "luc_emissions": [ctx.marketplace.get_demand(CO2_LUC_MARKET, ctx.region_name, p)
                              for p in range(modeltime.maxper)],
        })
        st.session_state.prices = pd.DataFrame({
            "year": modeltime.years,
            "carbon_price": carbon_price_path(scenario, modeltime),
        })
        st.success(f"Scenario complete: {modeltime.maxper} periods from {modeltime.start_year} to {modeltime.end_year}.")

if st.session_state.table is not None:
    table = st.session_state.table
    pivot = leaf_allocation_pivot(table)

    col_m1, col_m2, col_m3 = st.columns(3)
    first, last = pivot.iloc[0], pivot.iloc[-1]
    with col_m1:
        st.metric("Forest (thous km2)", f"{last['Forest']:.0f}", delta=f"{last['Forest'] - first['Forest']:.0f}")
    with col_m2:
        st.metric("Biomass (thous km2)", f"{last['Biomass']:.0f}")
    with col_m3:
        st.metric("Final LUC Emissions (MtC)", f"{st.session_state.luc['luc_emissions'].iloc[-1]:.1f}")

    tab_land, tab_carbon, tab_data = st.tabs(["🗺️ Land Allocation", "🌲 Carbon", "📋 Data"])

    with tab_land:
        fig = go.Figure()
        for leaf_name in pivot.columns:
            fig.add_trace(go.Scatter(x=pivot.index, y=pivot[leaf_name], name=leaf_name, stackgroup="land"))
        fig.update_layout(title="Land Allocation by Leaf", xaxis_title="Year", yaxis_title="thous km2")
        st.plotly_chart(fig, use_container_width=True)

    with tab_carbon:
        fig = make_subplots(specs=[[{"secondary_y": True}]])
        fig.add_trace(go.Bar(x=st.session_state.luc["year"], y=st.session_state.luc["luc_emissions"],
                             name="LUC Emissions (MtC)"), secondary_y=False)
        fig.add_trace(go.Scatter(x=st.session_state.prices["year"], y=st.session_state.prices["carbon_price"],
                                 name="Carbon Price (1990$/tC)"), secondary_y=True)
        fig.update_layout(title="Land-Use-Change Emissions and Carbon Price")
        st.plotly_chart(fig, use_container_width=True)

    with tab_data:
        st.dataframe(table)
        st.download_button("Download CSV", table.to_csv(index=False), file_name="land_allocation.csv")
