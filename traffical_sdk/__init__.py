"""
Traffical SDK

Client-side parameter resolution for the Traffical experimentation platform,
plus the `traffical` CLI for managing parameter and event definitions.

Architecture Pattern: resolve locally, learn remotely
- The platform decides which value each unit should get (layers, policies,
  allocations) and publishes it as a configuration bundle
- This package caches that bundle and resolves parameters in-process, with
  no network call on the request path
- Decisions and conversions flow back as batched events

Usage:
    from traffical_sdk import ClientOptions, TrafficalClient

    client = TrafficalClient(ClientOptions.from_env())
    client.initialize()
    decision = client.decide({"userId": "u-42"}, {"pricing.discount.percent": 0})
    client.track("purchase", value=42.0, unit_key="u-42", decision_id=decision.decision_id)

Design Principles:
1. Defaults always win when in doubt - a missing, stale or unreachable bundle
   returns the caller's defaults, never an error
2. Determinism - the same unit always lands in the same bucket
3. Non-blocking - event delivery never delays resolution
"""

# Package version - this should match setup.py
__version__ = "0.3.0"

__author__ = "Traffical SDK Team"
__description__ = "Python client SDK and CLI for Traffical parameters"

import logging

from .client import (
    TrafficalClient,
    decide,
    get_client,
    get_params,
    init_client,
    track,
)
from .config import ClientOptions, load_config_file
from .exceptions import (
    BundleFetchError,
    ConfigFileError,
    CredentialsError,
    ErrorCodes,
    EventDeliveryError,
    ManagementApiError,
    TrafficalError,
)
from .models import ConfigBundle, ConfigFile, Decision, DecisionEvent, TrackEvent

__all__ = [
    "TrafficalClient",
    "ClientOptions",
    "init_client",
    "get_client",
    "get_params",
    "decide",
    "track",
    "load_config_file",
    "ConfigBundle",
    "ConfigFile",
    "Decision",
    "DecisionEvent",
    "TrackEvent",
    "TrafficalError",
    "ConfigFileError",
    "CredentialsError",
    "BundleFetchError",
    "EventDeliveryError",
    "ManagementApiError",
    "ErrorCodes",
    "__version__",
]

# Create a logger for this package
# Other modules use child loggers (logging.getLogger(__name__))
logger = logging.getLogger(__name__)

# Add a null handler to prevent logging errors if no handler is configured
logger.addHandler(logging.NullHandler())
