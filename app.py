# app.py
from __future__ import annotations
import json
import logging
import time
from copy import deepcopy

import streamlit as st

from psicortex.attractors import attractor_peaks
from psicortex.engine import Engine
from psicortex.errors import ConfigError, SnapshotError
from psicortex.frames import SyntheticSource, black_frame
from psicortex.history import History
from psicortex.metrics import collect
from psicortex.render import DEFAULT_VISIBLE, attractor_rgb, feature_rgb, input_rgb, memory_rgb, scout_sprites
from psicortex.snapshot import loads_snapshot

from ui_camera import camera_frame
from app_helpers import (
    load_defaults_strict,
    ensure_session_keys,
    render_object, render_visibility,
    draw_image, draw_scouts, draw_memory_heatmap, draw_telemetry,
    type_legend_markdown,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# ---------------- Page ----------------
st.set_page_config(page_title="PsiCortex: scouts, memory and dreams", layout="wide")

# ---------------- Config load & validate ----------------
cfg_default = load_defaults_strict()

# ---------------- Session keys ----------------
ensure_session_keys()

# ---------------- Sidebar: render config ----------------
with st.sidebar:
    st.header("Configuration (from defaults.json)")
    user_cfg = render_object("", deepcopy(cfg_default))
    test_number = str(user_cfg.pop("test_number", "")).strip()
    chunk = max(1, int(user_cfg.pop("chunk", 5)))
    if test_number:
        st.subheader(f"Test: {test_number}")

    source_kind = st.radio("Input", ["synthetic", "camera", "dark"], index=0, key="src:kind",
                           help="'dark' feeds black frames, which puts the field to sleep.")

visible = render_visibility(DEFAULT_VISIBLE)

# ---------------- Engine (one per session, rebuilt when config changes) ----------------
cfg_sig = json.dumps(user_cfg, sort_keys=True)
if st.session_state.get("cfg_sig") != cfg_sig:
    try:
        engine = Engine(user_cfg)
    except ConfigError as e:
        st.error(f"Invalid configuration: {e}")
        st.stop()
    was_running = bool(st.session_state.get("engine") and st.session_state["engine"].running)
    if was_running:
        engine.start()
    st.session_state["engine"] = engine
    st.session_state["source"] = SyntheticSource(engine.cfg.field.size, engine.cfg.source, seed=engine.cfg.seed)
    st.session_state["history"] = History()
    st.session_state["cfg_sig"] = cfg_sig

engine: Engine = st.session_state["engine"]
source: SyntheticSource = st.session_state["source"]
hist: History = st.session_state["history"]
N = engine.cfg.field.size

# ---------------- Controls ----------------
c1, c2, c3 = st.columns(3)
if c1.button("Start", use_container_width=True, disabled=engine.running):
    engine.start()
if c2.button("Stop", use_container_width=True, disabled=not engine.running):
    engine.stop()
if c3.button("Reset", use_container_width=True):
    engine.reset()
    source.t = 0
    hist.clear()
    st.session_state.pop("snap:export", None)

with st.sidebar.expander("Memory snapshot", expanded=False):
    # serialized on request only
    if st.button("Prepare memory export", key="snap:prepare"):
        st.session_state["snap:export"] = json.dumps(engine.export_snapshot())
        st.session_state["snap:export_name"] = f"psicortex-memory-{int(time.time())}.json"
    if st.session_state.get("snap:export"):
        st.download_button(
            "Download memory (JSON)",
            data=st.session_state["snap:export"],
            file_name=st.session_state["snap:export_name"],
            mime="application/json",
            key="snap:download",
        )
    up = st.file_uploader("Import memory (JSON)", type=["json"], key="snap:upload")
    if up is not None and st.session_state.get("snap:last") != up.file_id:
        st.session_state["snap:last"] = up.file_id
        try:
            engine.import_snapshot(loads_snapshot(up.getvalue()))
            st.success("Memory imported.")
        except SnapshotError as e:
            st.error(f"Snapshot rejected: {e}")

# ---------------- Frame for this rerun ----------------
cam = camera_frame(N) if source_kind == "camera" else None

def next_input():
    if source_kind == "synthetic":
        return source.next_frame()
    if source_kind == "dark":
        return black_frame(N)
    return cam

# ---------------- Advance a chunk of ticks ----------------
if engine.running:
    for _ in range(chunk):
        engine.tick(next_input())
        hist.record(collect(engine.state))
        engine.maybe_log_metrics(engine.cfg.log_every)

# ---------------- Render ----------------
fld = engine.field
row = collect(engine.state)
st.title("Simulation")
st.markdown(
    f"**tick** {row['tick']} | **mode** {row['mode']} | **dream** {row['dream_intensity']:.2f} | "
    f"**active** {row['active_scouts']} / {len(engine.scouts)} | **clusters** {row['clusters']} | "
    f"**coherence** {row['coherence']:.3f} | **field energy** {row['field_energy']:.2f}"
)
st.markdown(type_legend_markdown(), unsafe_allow_html=True)

left, right = st.columns([2, 1])
draw_scouts(left.empty(), feature_rgb(fld), scout_sprites(engine.scouts, visible),
            peaks=attractor_peaks(fld), title="Feature field (R edges, G motion, B texture) + scouts")
draw_image(right.empty(), input_rgb(fld), "Current input", "input", height=300)
draw_image(right.empty(), attractor_rgb(fld), "Attractor field", "attractors", height=300)

m1, m2 = st.columns(2)
draw_image(m1.empty(), memory_rgb(fld), "Memory (R content, G strength)", "memory")
draw_memory_heatmap(m2.empty(), fld)
draw_telemetry(st.empty(), hist)

if engine.running:
    st.rerun()
