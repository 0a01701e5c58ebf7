"""
Tally Dashboard - data acquisition for an accounting dashboard.

Requests XML report exports from a TallyPrime server over HTTP, normalizes
them into dashboard shapes (KPIs, monthly trend, receivables aging, paged
registers) and falls back to a deterministic synthetic source in demo mode.

Key Features:
- Jinja2-rendered request envelopes, lxml response parsing
- Async transport (httpx) with an explicit timeout
- Synthetic "demo mode" source with per-company scaling
- Orchestrator with a Disconnected/Connecting/Connected/Error state machine
- Optional Gemini advisory insight with a safe fallback

Usage:
    # Print the dashboard bundle in demo mode
    python -m tally_dashboard --demo dashboard

    # Probe a live server
    python -m tally_dashboard --url http://localhost:9000 test-connection
"""

__version__ = "1.0.0"

from .config import DashboardConfig
from .models import ConnectionStatus
from .orchestrator import DashboardOrchestrator

__all__ = ["DashboardConfig", "DashboardOrchestrator", "ConnectionStatus", "__version__"]
