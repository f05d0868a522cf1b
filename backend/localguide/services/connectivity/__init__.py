"""Connectivity service module.

Network status providers, the connectivity monitor and the
protected-action gate built on top of it.
"""

from .service import (
    CHECK_CONNECTION,
    AlertButton,
    AlertPresenter,
    ConnectivityGate,
    ConnectivityMonitor,
    HttpNetworkStatusProvider,
    LoggingAlertPresenter,
    NetworkStatusProvider,
    ProtectedActionOptions,
    StaticNetworkStatusProvider,
)

__all__ = [
    "CHECK_CONNECTION",
    "AlertButton",
    "AlertPresenter",
    "ConnectivityGate",
    "ConnectivityMonitor",
    "HttpNetworkStatusProvider",
    "LoggingAlertPresenter",
    "NetworkStatusProvider",
    "ProtectedActionOptions",
    "StaticNetworkStatusProvider",
]
