"""Build-trigger callbacks invoked when a project needs rebuilding."""

from __future__ import annotations

import subprocess
from typing import Callable, Iterable, Sequence

from .logging import get_logger

BuildTrigger = Callable[[str, str], None]


class LoggingBuildTrigger:
    """Records build requests without acting on them (dry runs)."""

    def __init__(self) -> None:
        self.requested: list[tuple[str, str]] = []
        self.logger = get_logger("trigger")

    def __call__(self, owner: str, name: str) -> None:
        self.requested.append((owner, name))
        self.logger.info("%s/%s: build requested (dry run)", owner, name)


class CommandBuildTrigger:
    """Requests a build by running an external command with ``owner name`` appended."""

    def __init__(
        self,
        command: Sequence[str],
        runner: Callable[..., str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("CommandBuildTrigger requires a non-empty command")
        self.command = list(command)
        self._runner = runner or self._default_runner
        self.logger = get_logger("trigger")

    def __call__(self, owner: str, name: str) -> None:
        args = [*self.command, owner, name]
        self.logger.debug("Running build trigger: %s", " ".join(args))
        try:
            self._runner(args)
        except FileNotFoundError as exc:
            raise RuntimeError(f"Build trigger executable not found: {self.command[0]}") from exc
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or "").strip() or f"exit code {exc.returncode}"
            raise RuntimeError(f"Build trigger failed for {owner}/{name}: {message}") from exc

    @staticmethod
    def _default_runner(args: Iterable[str]) -> str:
        completed = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=True,
        )
        return completed.stdout


__all__ = ["BuildTrigger", "CommandBuildTrigger", "LoggingBuildTrigger"]
