# app.py (Streamlit): control panel for the tank triad simulator
# Run: streamlit run src/tankline/app.py
from __future__ import annotations

import time

import pandas as pd
import streamlit as st

from tankline.plant.config import SimulatorConfig
from tankline.plant.simulation import TankSimulator
from tankline.plant.state import TANK_MODES


# ======================================================
# INIT
# ======================================================
st.set_page_config(page_title="Tank Triad Simulator", layout="wide")


def new_session() -> None:
    st.session_state.sim = TankSimulator(SimulatorConfig(seed=int(st.session_state.get("seed", 42))))
    st.session_state.history = []


if "sim" not in st.session_state:
    st.session_state.running = False
    st.session_state.dt = 0.5
    st.session_state.tick_s = 0.25
    st.session_state.max_history = 2000
    new_session()

sim: TankSimulator = st.session_state.sim


# ======================================================
# STEP FUNCTION (manual or auto)
# ======================================================
def sim_step(dt: float):
    sim.step(dt)

    row = {"t": round(sim.sim_time_s, 2)}
    for snap in sim.snapshots():
        row[f"{snap.tank_id}_meter"] = snap.meter
        row[f"{snap.tank_id}_mode"] = snap.mode
    st.session_state.history.append(row)
    if len(st.session_state.history) > st.session_state.max_history:
        st.session_state.history = st.session_state.history[-st.session_state.max_history :]


# ======================================================
# SIDEBAR CONTROLS
# ======================================================
st.sidebar.title("Controls")

st.session_state.dt = st.sidebar.slider("dt (simulation step, seconds)", 0.1, 5.0, float(st.session_state.dt), 0.1)
st.session_state.tick_s = st.sidebar.slider("UI refresh (seconds)", 0.05, 2.0, float(st.session_state.tick_s), 0.05)
st.session_state.seed = st.sidebar.number_input("seed", value=int(st.session_state.get("seed", 42)), step=1)

c1, c2 = st.sidebar.columns(2)
if c1.button("Step once"):
    sim_step(st.session_state.dt)

if c2.button("Restart"):
    new_session()
    st.rerun()

st.session_state.running = st.sidebar.toggle("Running", value=st.session_state.running)


# ======================================================
# MAIN UI
# ======================================================
st.title("Tank Triad Simulation (Streamlit)")

a, b, c = st.columns(3)
a.metric("sim time", f"{sim.sim_time_s:.1f} s")
b.metric("tick", f"{sim.tick_n}")
c.metric("repair slot", sim.repair.holder or "free")

st.divider()

operator_modes = [m for m in TANK_MODES if m != "ERROR"]
cols = st.columns(len(sim.tanks))

for col, tank in zip(cols, sim.tanks):
    snap = sim.get_snapshot(tank.tank_id)
    with col:
        kind = "controllable" if snap.controllable else "autonomous"
        st.subheader(f"Tank {snap.tank_id} ({kind})")
        st.progress(snap.meter / 100.0, text=f"{snap.meter:.0f}%")
        st.write(f"state: **{snap.mode}**")

        if snap.controllable:
            # ERROR is shown but cannot be chosen by the operator
            options = operator_modes if snap.mode != "ERROR" else list(TANK_MODES)
            choice = st.selectbox(
                "state",
                options,
                index=options.index(snap.mode),
                key=f"mode_{snap.tank_id}_{sim.tick_n}",
                disabled=not snap.can_control,
            )
            if choice != snap.mode:
                sim.set_desired_state(snap.tank_id, choice)
                st.rerun()

            if st.button("Reset", key=f"reset_{snap.tank_id}", disabled=snap.mode == "ERROR"):
                sim.reset_meter(snap.tank_id)
                st.rerun()

        if snap.is_repairing:
            st.write(f"repairing… {snap.repair_remaining_s:.1f} s left")
        if st.button("Repair", key=f"repair_{snap.tank_id}", disabled=not sim.can_start_repair(snap.tank_id)):
            sim.start_repair(snap.tank_id)
            st.rerun()

st.divider()

# Notifications
st.subheader("Events")
events = sim.bus.recent(15)
if events:
    st.dataframe(
        pd.DataFrame([ev.as_dict() for ev in reversed(events)])[["seq", "sim_time_s", "type", "source", "data"]],
        use_container_width=True,
    )
else:
    st.write("no events yet")

# History
if len(st.session_state.history) > 5:
    st.subheader("History")
    df = pd.DataFrame(st.session_state.history).set_index("t")
    st.line_chart(df[[f"{tid}_meter" for tid in sim.tanks.ids()]])

# ======================================================
# LOOP
# ======================================================
if st.session_state.running:
    sim_step(st.session_state.dt)
    time.sleep(st.session_state.tick_s)
    st.rerun()
