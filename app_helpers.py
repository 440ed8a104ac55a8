# app_helpers.py
from __future__ import annotations
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import plotly.graph_objects as go
import streamlit as st

from psicortex.config import load_defaults, find_missing
from psicortex.errors import ConfigError
from psicortex.field import Field
from psicortex.history import History
from psicortex.scouts import SCOUT_COLORS, ScoutType

# -------------------- Config & validation --------------------

def load_defaults_strict(path: str = "defaults.json") -> Dict[str, Any]:
    """defaults.json or stop the page with the parser message."""
    try:
        cfg = load_defaults(path)
    except ConfigError as e:
        st.error(f"{e}\n\nCreate defaults.json in the project root as strict JSON.")
        st.stop()
    missing = find_missing(cfg)
    if missing:
        st.error(
            "defaults.json is missing required keys for the simulation. "
            "Please add the following keys and rerun:\n\n" + "\n".join(f"• {k}" for k in missing)
        )
        st.stop()
    return cfg

# -------------------- Session keys --------------------

_KEY_BASES = ("input", "features", "scouts", "attractors", "memory", "telemetry")

def ensure_session_keys():
    for base in _KEY_BASES:
        if base + "_count" not in st.session_state:
            st.session_state[base + "_count"] = 0
    if not st.session_state.get("run_id"):
        st.session_state["run_id"] = str(np.random.randint(1_000_000_000))

def new_key(base: str) -> str:
    st.session_state[base + "_count"] = st.session_state.get(base + "_count", 0) + 1
    return f"{base}_{st.session_state['run_id']}_{st.session_state[base + '_count']}"

# -------------------- Numeric UI helpers --------------------

def _num_step(v: float) -> float:
    v = abs(float(v)) if v != 0 else 1.0
    e = int(np.floor(np.log10(v)))
    return max(10 ** e * 0.01, 10 ** (e - 2))

_UNIT_NAMES = ("threshold", "decay", "rate", "ramp", "floor", "gain", "jitter",
               "amplitude", "freq", "noise", "sigma", "background", "amp", "deposit", "damping", "scale")

def _float_slider_bounds(label: str, val: float) -> Tuple[float, float, float]:
    name = label.lower()
    step = max(round(_num_step(val), 6), 1e-6)
    if 0.0 <= val <= 1.0 and any(s in name for s in _UNIT_NAMES):
        return 0.0, 1.0, step
    if val < 0:
        m = max(1.0, abs(val) * 10.0)
        return -m, m, step
    return 0.0, max(1.0, float(val) * 10.0), step

def _int_slider_bounds(label: str, val: int) -> Tuple[int, int, int]:
    name = label.lower()
    if "seed" in name:
        return 0, 10_000_000, 1
    if name == "size":
        return 8, 512, 8
    if name == "count":
        return 1, 20_000, 100
    if any(k in name for k in ("every", "length", "len", "chunk")):
        base = max(1, int(val))
        return 0, max(base * 10, base + 10), max(1, base // 10)
    return 0, max(10, int(val) * 10), 1

# -------------------- Sidebar renderers --------------------

def render_scalar(label: str, value: Any, path: str):
    key = f"w:{path}"
    if isinstance(value, bool):
        return st.checkbox(label, value=value, key=key)
    if isinstance(value, int):
        lo, hi, step = _int_slider_bounds(label, value)
        return st.slider(label, min_value=lo, max_value=hi, value=int(np.clip(value, lo, hi)),
                         step=step, key=key)
    if isinstance(value, float):
        lo, hi, step = _float_slider_bounds(label, value)
        return st.slider(label, min_value=float(lo), max_value=float(hi),
                         value=float(np.clip(value, lo, hi)), step=float(step), key=key)
    if isinstance(value, str):
        return st.text_input(label, value=value, key=key)
    return st.text_area(label, value=json.dumps(value, indent=2), key=key)

def render_list(label: str, value: list, path: str):
    txt = st.text_area(f"{label} (JSON)", value=json.dumps(value, indent=2), height=220, key=f"w:{path}")
    try:
        return json.loads(txt)
    except json.JSONDecodeError as e:
        st.warning(f"{label}: JSON parse error, using previous value. ({e})")
        return value

def render_object(label: str, obj: Dict[str, Any], path: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in obj.items():
        child_path = f"{path}.{k}" if path else k
        if isinstance(v, dict):
            with st.expander(k, expanded=False):
                out[k] = render_object(k, v, path=child_path)
        elif isinstance(v, list):
            out[k] = render_list(k, v, path=child_path)
        else:
            out[k] = render_scalar(k, v, path=child_path)
    return out

def render_visibility(defaults: Iterable[ScoutType]) -> List[ScoutType]:
    """One checkbox per scout type; returns the checked ones."""
    default_set = set(defaults)
    out: List[ScoutType] = []
    with st.sidebar.expander("Visible scout types", expanded=False):
        for t in ScoutType:
            label = t.name.replace("_", " ").lower()
            if st.checkbox(label, value=t in default_set, key=f"vis:{t.name}"):
                out.append(t)
    return out

# -------------------- Plot helpers (2-D) --------------------

_LAYOUT = dict(template="plotly_dark", margin=dict(l=0, r=0, t=40, b=0))

def _image_figure(rgb: np.ndarray, title: str, height: int) -> go.Figure:
    fig = go.Figure(go.Image(z=rgb))
    fig.update_layout(title=title, height=height, uirevision=title, **_LAYOUT)
    fig.update_xaxes(showticklabels=False)
    fig.update_yaxes(showticklabels=False)
    return fig

def draw_image(ph, rgb: np.ndarray, title: str, base: str, height: int = 360) -> None:
    ph.plotly_chart(_image_figure(rgb, title, height), use_container_width=True, theme=None, key=new_key(base))

def draw_scouts(ph, backdrop: np.ndarray, sprites: List[Dict[str, Any]],
                peaks: Optional[List[Dict[str, Any]]] = None, title: str = "Scouts",
                height: int = 620) -> None:
    """Feature image underneath, one Scattergl trace per visible scout type on top."""
    fig = _image_figure(backdrop, title, height)
    for s in sprites:
        fig.add_trace(go.Scattergl(
            x=s["x"], y=s["y"], mode="markers", name=s["name"],
            marker=dict(size=2.0 * s["size"], color=s["color"], opacity=s["opacity"], line=dict(width=0)),
        ))
    if peaks:
        fig.add_trace(go.Scatter(
            x=[p["pos"][1] for p in peaks], y=[p["pos"][0] for p in peaks],
            mode="markers", name="attractors",
            marker=dict(symbol="circle-open", size=12, color="#ffff00"),
            text=[f"amp={p['amp']:.3f} mem={p['memory']:.2f}" for p in peaks],
        ))
    fig.update_layout(showlegend=True)
    ph.plotly_chart(fig, use_container_width=True, theme=None, key=new_key("scouts"))

def draw_memory_heatmap(ph, fld: Field, height: int = 360) -> None:
    fig = go.Figure()
    fig.add_trace(go.Heatmap(z=fld.attractor_memory, coloraxis="coloraxis", zsmooth=False, name="memory"))
    fig.update_layout(
        title="Memory store (attractor_memory)",
        coloraxis=dict(colorscale="Inferno", cmin=0.0, cmax=1.0, colorbar=dict(title="M")),
        yaxis=dict(autorange="reversed"), height=height, **_LAYOUT,
    )
    ph.plotly_chart(fig, use_container_width=True, theme=None, key=new_key("memory"))

def draw_telemetry(ph, hist: History, title: str = "Telemetry") -> None:
    if len(hist) == 0:
        ph.info("No telemetry yet. Press Start.")
        return
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=hist.t, y=hist.coherence, name="coherence"))
    fig.add_trace(go.Scatter(x=hist.t, y=hist.dream_intensity, name="dream intensity"))
    fig.add_trace(go.Scatter(x=hist.t, y=hist.input_strength, name="input strength"))
    fig.add_trace(go.Scatter(x=hist.t, y=hist.strength_mean, name="memory strength (mean)"))
    fig.add_trace(go.Scatter(x=hist.t, y=hist.field_energy, name="field energy", yaxis="y2"))
    fig.update_layout(
        title=title, xaxis_title="t (ticks)", yaxis=dict(title="[0,1]", range=[0, 1]),
        yaxis2=dict(title="field energy", overlaying="y", side="right"),
        height=380, **_LAYOUT,
    )
    ph.plotly_chart(fig, use_container_width=True, theme=None, key=new_key("telemetry"))

def type_legend_markdown() -> str:
    return "  ".join(
        f"<span style='color:{SCOUT_COLORS[t]}'>●</span> {t.name.replace('_', ' ').lower()}"
        for t in ScoutType
    )
