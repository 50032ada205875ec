"""
Exception hierarchy.

Cycle errors are absorbed by the poll loop (counted and logged). Config and
startup errors are fatal and surface before any background work starts.
"""

from __future__ import annotations

import enum


class FetchStage(enum.Enum):
    """Where in a poll cycle a failure happened."""

    NETWORK = "network"
    UNEXPECTED_STATUS = "unexpected_status"
    PARSE = "parse"


class PollGaugeError(Exception):
    pass


class CycleError(PollGaugeError):
    stage: FetchStage


class NetworkError(CycleError):
    stage = FetchStage.NETWORK


class UnexpectedStatusError(CycleError):
    stage = FetchStage.UNEXPECTED_STATUS

    def __init__(self, status_code: int, url: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"unexpected status code: {status_code}")


class ParseError(CycleError):
    stage = FetchStage.PARSE


class ConfigError(PollGaugeError):
    pass


class ServerStartupError(PollGaugeError):
    pass


class ShutdownDrainError(PollGaugeError):
    pass
