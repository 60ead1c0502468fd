from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from config import THEME


@dataclass(frozen=True)
class Kpi:
    label: str
    value: str
    delta: Optional[str] = None


def render_kpi_row(kpis: list[Kpi]) -> None:
    cols = st.columns(len(kpis))
    for c, k in zip(cols, kpis):
        with c:
            delta_html = ""
            if k.delta:
                text = str(k.delta).strip()
                cls = "positive" if text.startswith(("+", "▲")) else "negative" if text.startswith(("-", "▼")) else ""
                delta_html = f'<div class="metric-delta {cls}">{html.escape(text)}</div>'
            st.markdown(
                f"""
<div class="metric-card">
  <div class="metric-label">{html.escape(k.label)}</div>
  <div class="metric-value">{html.escape(k.value)}</div>
  {delta_html}
</div>
                """,
                unsafe_allow_html=True,
            )


def create_plotly_theme() -> dict:
    """Chart styling shared by every page: card surface, Poppins, brand colorway."""
    return {
        "font_family": "Poppins, system-ui, -apple-system, Segoe UI, Roboto, Arial, sans-serif",
        "font_color": THEME["text_primary"],
        "paper_bgcolor": THEME["bg_card"],
        "plot_bgcolor": THEME["bg_card"],
        "colorway": [
            THEME["accent_primary"],
            THEME["navy_800"],
            THEME["navy_900"],
            THEME["accent_secondary"],
            "#6B7280",
            "#9CA3AF",
        ],
        "gridcolor": THEME["grid"],
        "axis_linecolor": THEME["border_color"],
        "title_font": {"color": THEME["navy_900"], "size": 16},
    }


def apply_plotly_theme(fig: go.Figure, x_title: str, y_title: str) -> go.Figure:
    theme = create_plotly_theme()
    fig.update_layout(
        margin=dict(l=10, r=10, t=44, b=10),
        font=dict(family=theme["font_family"], color=theme["font_color"]),
        paper_bgcolor=theme["paper_bgcolor"],
        plot_bgcolor=theme["plot_bgcolor"],
        colorway=theme["colorway"],
        title_font=theme["title_font"],
        showlegend=False,
    )
    for update in (fig.update_xaxes, fig.update_yaxes):
        update(gridcolor=theme["gridcolor"], zeroline=False, linecolor=theme["axis_linecolor"])
    fig.update_xaxes(title_text=x_title)
    fig.update_yaxes(title_text=y_title)
    return fig


def bar_chart(
    df: pd.DataFrame,
    x: str,
    y: str,
    title: str = "",
    horizontal: bool = False,
    y_format: Optional[str] = None,  # "percent" | None
) -> None:
    if horizontal:
        fig = px.bar(df, x=y, y=x, orientation="h", title=title)
        fig = apply_plotly_theme(fig, x_title=y, y_title="")
    else:
        fig = px.bar(df, x=x, y=y, title=title)
        fig = apply_plotly_theme(fig, x_title="", y_title=y)
    fig.update_traces(marker_color=THEME["accent_primary"])
    if y_format == "percent":
        if horizontal:
            fig.update_xaxes(range=[0, 100], ticksuffix="%")
        else:
            fig.update_yaxes(range=[0, 100], ticksuffix="%")
    st.plotly_chart(fig, use_container_width=True)


def score_gauge(percent: float, title: str = "Score") -> None:
    color = THEME["success"] if percent >= 70 else THEME["warning"] if percent >= 50 else THEME["danger"]
    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=round(percent, 1),
            number={"suffix": "%"},
            title={"text": title},
            gauge={"axis": {"range": [0, 100]}, "bar": {"color": color}},
        )
    )
    fig.update_layout(height=240, margin=dict(l=20, r=20, t=40, b=10), paper_bgcolor=THEME["bg_card"])
    st.plotly_chart(fig, use_container_width=True)
