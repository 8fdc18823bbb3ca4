"""Control plane orchestration.

The control plane owns the state store, the engine client and event bridge,
the frame router and every service, and manages their lifecycle.
"""

from .control_plane import ControlPlane

__all__ = ["ControlPlane"]
