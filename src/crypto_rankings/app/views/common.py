"""Common UI components shared across the dashboard.

Pure rendering functions for reusable Streamlit widgets.
"""

import streamlit as st

GLOBAL_MARGINS = dict(t=10, l=5, r=5, b=0)
GLOBAL_FONT = dict(
    family="Arial",
    size=13,
)


def render_empty_state(message: str, icon: str = "📊") -> None:
    """Render empty state placeholder when no data is available.

    Args:
        message: Message to display
        icon: Emoji icon to show
    """
    st.info(f"{icon} {message}")


def render_color_dot(label: str, color: str, bold: bool = False) -> None:
    """Small colored dot followed by a label, used as card header and legend."""
    weight = "600" if bold else "500"
    st.markdown(
        f'<span style="display:inline-block;width:10px;height:10px;border-radius:50%;'
        f'background:{color};margin-right:6px;"></span>'
        f'<span style="font-weight:{weight};">{label}</span>',
        unsafe_allow_html=True,
    )
