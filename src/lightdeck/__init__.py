"""lightdeck: control plane for networked LED controllers."""

__version__ = "0.1.0"

from .orchestration import ControlPlane

__all__ = ["ControlPlane"]
