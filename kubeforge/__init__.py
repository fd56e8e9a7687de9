"""
KubeForge Agent - Cluster-resident worker for the KubeForge control plane.

Registers with the control plane, long-polls for commands, executes them
against the Kubernetes API and reports the results back.

Architecture:
- Each module is self-contained with clear interfaces
- Modules talk to each other only through their package exports
- The Kubernetes API and the control plane are reached through
  replaceable collaborators (ResourceProvider, ControlPlaneClient)

Modules:
- api: Wire models shared with the control plane
- transport: Control plane HTTP client
- cluster: Kubernetes resource provider
- manifest: Manifest codec, cleaning, diffing and reconciliation
- dispatcher: Command type to operation mapping
- agent: Registration and fetch-execute-report loop
"""

__version__ = "1.0.0"
