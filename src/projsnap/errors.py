"""
Exceptions and stderr reporting for projsnap.
"""

from __future__ import annotations

import sys

from colorama import Fore, Style

PREFIX = "[projsnap]"


# Exceptions
class ProjsnapError(Exception): ...
class InvalidRootError(ProjsnapError): ...
class RootUnreadableError(ProjsnapError): ...
class SubtreeUnreadableError(ProjsnapError): ...
class FileReadError(ProjsnapError): ...
class MalformedIgnoreRuleError(ProjsnapError): ...
class ConfigFileError(ProjsnapError): ...
class OutputError(ProjsnapError): ...


def _emit(colour: str, msg: str) -> None:
    print(colour + msg + Style.RESET_ALL, file=sys.stderr)


def warn(msg: str) -> None:
    """Report a recovered problem; the snapshot still completes."""
    _emit(Fore.YELLOW, f"{PREFIX} ! {msg}")


def info(msg: str) -> None:
    _emit(Fore.CYAN, f"{PREFIX} {msg}")


def error(msg: str) -> None:
    _emit(Fore.RED, f"Error: {msg}")


def success(msg: str) -> None:
    _emit(Fore.GREEN, msg)
