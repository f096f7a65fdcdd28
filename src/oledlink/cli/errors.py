"""
oledctl Error Reporting
=======================

Turns exceptions raised by oledctl commands into one line on stderr and
a process exit code.

Exit Code Mapping
-----------------
    CommsError (bridge, port, frame)        "Communication error: ..."  1
    PanelError (geometry, init, buffer)     "Panel error: ..."          1
    other OledError                         "Error: ..."                1
    click.BadParameter, ValueError          "Error: ..."                2
    FileNotFoundError, PermissionError      "Error: ..."                2
    anything else                           "Internal error: ..."       3

With ``--verbose`` the traceback of an internal error is printed too.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from oledlink.errors import CommsError, OledError, PanelError


class ExitCode(IntEnum):
    """Process exit codes of oledctl."""
    SUCCESS = 0
    DEVICE_ERROR = 1     # Transport or panel failure
    INVALID_ARGS = 2     # Bad option value, unreadable image
    INTERNAL_ERROR = 3   # Bug or unexpected environment


# Checked in order; the first matching row wins
_ERROR_ROWS = (
    (CommsError, "Communication error", ExitCode.DEVICE_ERROR),
    (PanelError, "Panel error", ExitCode.DEVICE_ERROR),
    (OledError, "Error", ExitCode.DEVICE_ERROR),
    ((click.BadParameter, ValueError), "Error", ExitCode.INVALID_ARGS),
    ((FileNotFoundError, PermissionError), "Error", ExitCode.INVALID_ARGS),
)


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report ``error`` on stderr and exit with its mapped code.

    Args:
        error: The exception raised by a command.
        verbose: Print the traceback of unexpected errors.

    Raises:
        SystemExit: Always.
    """
    for error_types, label, code in _ERROR_ROWS:
        if isinstance(error, error_types):
            click.echo(f"{label}: {error}", err=True)
            sys.exit(code)

    click.echo(f"Internal error: {error}", err=True)
    if verbose:
        traceback.print_exc()
    sys.exit(ExitCode.INTERNAL_ERROR)
