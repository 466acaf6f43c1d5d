"""Classify command for the Backstop CLI.

Builds a synthetic failure from the given options and renders how it would
be classified: kind, severity, user message and recovery actions.

Input selection:
- ``--status`` or ``--code`` given: a transport error
- ``--exception``: a generic exception carrying ``--message``
- otherwise: the bare ``--message`` string
"""

from __future__ import annotations

import json

import typer

from backstop.core.errors import ErrorClassifier, TransportError
from backstop.network import NetworkMonitor

from ..helpers import configure_global_logging
from ..output import console, create_classification_panel


def classify(
    status: int | None = typer.Option(
        None,
        "--status",
        "-s",
        help="HTTP status of the failed response (0 = no response)",
    ),
    code: str | None = typer.Option(
        None,
        "--code",
        "-c",
        help="Application error code, e.g. VALIDATION_ERROR",
    ),
    message: str = typer.Option(
        "",
        "--message",
        "-m",
        help="Error message",
    ),
    request_id: str | None = typer.Option(
        None,
        "--request-id",
        help="Server request id, used as the correlation id",
    ),
    exception: bool = typer.Option(
        False,
        "--exception",
        "-e",
        help="Classify the message as a raised exception",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Classify as if the client were offline",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the classification as JSON",
    ),
) -> None:
    """Show how a failure would be classified."""
    configure_global_logging(console)

    raw: object
    if status is not None or code is not None:
        raw = TransportError(message, status=status, code=code, request_id=request_id)
    elif exception:
        raw = RuntimeError(message)
    else:
        raw = message

    connectivity = NetworkMonitor(platform_online=False) if offline else None
    details = ErrorClassifier(connectivity=connectivity).classify(raw)

    if json_output:
        typer.echo(json.dumps(details.to_dict(), indent=2))
        return
    console.print(create_classification_panel(details))
