"""Docker runtime services for fluxstage."""

from typing import Callable, Dict, List, Sequence


class DockerRuntimeService:
    """Checks docker availability and builds containerized tool invocations."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def validate_environment(self, run_cmd: Callable):
        self.console.print("[blue]Validating Docker environment...[/blue]")
        run_cmd(["docker", "--version"], capture_output=True)
        self.console.print("[green]Docker is available.[/green]")

    def build_run_command(
        self,
        image: str,
        args: Sequence[str],
        volumes: Dict[str, str],
    ) -> List[str]:
        """Return ``docker run`` for ``image`` with host:container ``volumes`` mounted."""
        cmd = ["docker", "run", "--rm"]
        for host_path, container_path in volumes.items():
            cmd.extend(["-v", f"{host_path}:{container_path}"])
        cmd.append(image)
        cmd.extend(args)
        return cmd
