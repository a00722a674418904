"""
fluxstage - stage release manifests into a flux GitOps repository
"""

__version__ = "0.1.0"

from .core import DeployError, FluxDeployer

__all__ = ["DeployError", "FluxDeployer"]
