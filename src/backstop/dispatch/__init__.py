"""Error dispatch hub: classify, log and fan out reported failures."""

from backstop.dispatch.hub import ErrorHub, ErrorListener, get_error_hub, reset_error_hub

__all__ = [
    "ErrorHub",
    "ErrorListener",
    "get_error_hub",
    "reset_error_hub",
]
