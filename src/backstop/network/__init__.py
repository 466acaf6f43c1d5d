"""Network reachability: connectivity state machine and active probe."""

from backstop.network.monitor import NetworkMonitor, NetworkState, Probe
from backstop.network.probe import HttpProbe
from backstop.utils.time import format_downtime

__all__ = [
    "HttpProbe",
    "NetworkMonitor",
    "NetworkState",
    "Probe",
    "format_downtime",
]
