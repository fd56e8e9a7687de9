"""
Transport Module - Black Box Interface

Purpose: Talk to the KubeForge control plane
Interface: register(), poll(), submit_result()
Hidden: HTTP details, authentication headers, TLS settings

Can be replaced with a different transport (SSE stream, gRPC).
"""

from .client import ControlPlaneClient, ControlPlaneError, RegistrationError, TransportError

__all__ = ["ControlPlaneClient", "ControlPlaneError", "RegistrationError", "TransportError"]
