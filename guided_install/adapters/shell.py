"""
Shell recipe executor — runs each install step through ``sh -c``.

The SINGLE PLACE where recipe steps touch the host. Steps run
sequentially with the prepared variables exported into their
environment; the first non-zero exit stops the recipe.

Cancellation is observed while a step runs: the child is terminated
(then killed after a grace period) and InterruptError is raised.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import time
from typing import Any

from guided_install.adapters.base import RecipeExecutor
from guided_install.core.context import CancelContext
from guided_install.core.errors import ExecutionFailedError, InterruptError
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import Recipe

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.2
_TERMINATE_GRACE_SECONDS = 5.0
_OUTPUT_TAIL = 2000


class ShellRecipeExecutor(RecipeExecutor):
    """Runs recipe ``install_steps`` with ``sh -c``.

    Args:
        timeout: Per-step timeout in seconds.
        shell: Shell binary used for each step.
    """

    def __init__(self, timeout: float = 600.0, shell: str = "sh"):
        self._timeout = timeout
        self._shell = shell

    def prepare(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        assume_yes: bool,
        license_key: str,
    ) -> dict[str, str]:
        ctx.check()
        variables = {
            "HOSTNAME": manifest.hostname,
            "OS": manifest.os or platform.system().lower(),
            "ARCH": manifest.kernel_arch,
            "ASSUME_YES": "true" if assume_yes else "false",
            "LICENSE_KEY": license_key,
        }
        # Recipe-scoped vars win over discovered ones
        variables.update(recipe.vars)
        return variables

    def execute(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        variables: dict[str, str],
    ) -> None:
        env = os.environ.copy()
        env.update(variables)

        for index, step in enumerate(recipe.install_steps, start=1):
            ctx.check()
            logger.info("Running %s step %d/%d", recipe.name, index, len(recipe.install_steps))
            result = self._run_step(ctx, step, env)

            if not result["ok"]:
                detail = result["error"]
                if result.get("stderr"):
                    detail = f"{detail}: {result['stderr'].strip()}"
                raise ExecutionFailedError(recipe.name, detail)

            logger.debug("%s step %d done in %dms", recipe.name, index, result["elapsed_ms"])

    def _run_step(self, ctx: CancelContext, step: str, env: dict[str, str]) -> dict[str, Any]:
        """Run one step; return ``{"ok": bool, "error": ..., ...}``."""
        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                [self._shell, "-c", step],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=env,
            )
        except OSError as e:
            return {"ok": False, "error": f"cannot start {self._shell}: {e}"}

        try:
            while True:
                try:
                    stdout, stderr = proc.communicate(timeout=_POLL_SECONDS)
                    break
                except subprocess.TimeoutExpired:
                    if ctx.canceled:
                        raise InterruptError(ctx.reason) from None
                    if time.monotonic() - start > self._timeout:
                        return {"ok": False, "error": f"Command timed out ({self._timeout:.0f}s)"}
        finally:
            if proc.poll() is None:
                _stop(proc)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if proc.returncode == 0:
            return {"ok": True, "stdout": stdout[-_OUTPUT_TAIL:], "elapsed_ms": elapsed_ms}

        return {
            "ok": False,
            "error": f"Command failed (exit {proc.returncode})",
            "stderr": stderr[-_OUTPUT_TAIL:] if stderr else "",
            "stdout": stdout[-_OUTPUT_TAIL:] if stdout else "",
            "elapsed_ms": elapsed_ms,
        }


def _stop(proc: subprocess.Popen) -> None:
    proc.terminate()
    try:
        proc.wait(timeout=_TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        logger.warning("Step pid %d ignored SIGTERM, killing", proc.pid)
        proc.kill()
        proc.wait()
