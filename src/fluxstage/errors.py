"""Domain errors for fluxstage."""


class DeployError(RuntimeError):
    """Raised when the deployment cannot continue safely."""
