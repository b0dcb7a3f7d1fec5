"""Centralized CSS, navigation bar and status badges for the case tools."""

from __future__ import annotations

import html as html_mod

import streamlit as st

COURT_NAME = "Dauphin County Courthouse Case Management"

# ---------------------------------------------------------------------------
# Shared CSS
# ---------------------------------------------------------------------------

_BASE_CSS = """\
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800&display=swap');

/* Hide Streamlit chrome */
#MainMenu, footer,
div[data-testid="stToolbar"] { display: none !important; }

.stApp {
    font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
}

/* Navigation bar */
.nav-bar {
    display: flex;
    align-items: center;
    padding: 10px 4px;
    margin: -1rem 0 1.2rem 0;
    border-bottom: 1px solid rgba(0,0,0,0.07);
}
.nav-title {
    flex: 1;
    text-align: center;
    font-size: 1.15rem;
    font-weight: 700;
    color: #1a2744;
    letter-spacing: -0.02em;
}
.nav-sub {
    font-weight: 400;
    color: #86868b;
    font-size: 0.85rem;
    margin-left: 8px;
}

/* Section labels */
.section-label {
    font-size: 0.78rem;
    font-weight: 600;
    color: #5a6a85;
    text-transform: uppercase;
    letter-spacing: 0.04em;
    margin-bottom: 4px;
    margin-top: 12px;
}

/* Status badges */
.status-badge {
    display: inline-block;
    padding: 3px 10px;
    font-size: 0.72rem;
    font-weight: 600;
    border-radius: 12px;
}
.status-pending  { background: #fef3c7; color: #92400e; }
.status-accepted { background: #dcfce7; color: #166534; }
.status-denied   { background: #fee2e2; color: #991b1b; }

/* Charge severity */
.charge-row {
    display: flex;
    justify-content: space-between;
    padding: 6px 10px;
    margin-bottom: 6px;
    border-radius: 6px;
    border: 1px solid;
    font-size: 0.85rem;
}
.severity-high   { background: #fef2f2; border-color: #fecaca; color: #b91c1c; }
.severity-medium { background: #fff7ed; border-color: #fed7aa; color: #c2410c; }
.severity-low    { background: #eff6ff; border-color: #bfdbfe; color: #1d4ed8; }

/* Case rows */
.case-meta {
    font-size: 0.8rem;
    color: #86868b;
}

/* AI summary panel */
.summary-panel {
    background: #f5f7fb;
    border: 1px solid #e2e8f0;
    border-radius: 8px;
    padding: 14px 18px;
    font-size: 0.88rem;
    line-height: 1.6;
    white-space: pre-wrap;
}
"""

_BADGE_CLASSES = {
    "Pending Review": "status-pending",
    "Accepted": "status-accepted",
    "Denied": "status-denied",
}


def render_theme_css(extra_css: str = "") -> None:
    """Inject the shared stylesheet. Pass *extra_css* for tool-specific rules."""
    css = _BASE_CSS
    if extra_css:
        css += "\n" + extra_css
    st.markdown(f"<style>\n{css}\n</style>", unsafe_allow_html=True)


def render_nav_bar(tool_title: str, subtitle: str = COURT_NAME) -> None:
    st.markdown(
        f'<div class="nav-bar">'
        f'<div class="nav-title">{html_mod.escape(tool_title)}'
        f'<span class="nav-sub">&middot; {html_mod.escape(subtitle)}</span></div>'
        f'</div>',
        unsafe_allow_html=True,
    )


def status_badge_html(status: str) -> str:
    """Return a coloured pill for a case status."""
    css_class = _BADGE_CLASSES.get(status, "status-pending")
    return f'<span class="status-badge {css_class}">{html_mod.escape(status)}</span>'


def charge_row_html(charge: str, severity: str) -> str:
    """One charge line tinted by severity ("high", "medium" or "low")."""
    return (
        f'<div class="charge-row severity-{html_mod.escape(severity)}">'
        f"<span>{html_mod.escape(charge)}</span>"
        f"<span>{html_mod.escape(severity.upper())}</span></div>"
    )
