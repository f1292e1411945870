"""
QuickCity Location Tracker — background location reporting agent
=================================================================
While a work session is active, sends the device's last known position to
the QuickCity server every 30 seconds. Without a session, positions go to a
local diagnostic log instead (never uploaded later).

Usage:
    python agent.py
"""

from location_core.runner import run_with_auto_restart


if __name__ == "__main__":
    run_with_auto_restart()
