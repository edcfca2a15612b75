"""Manifest synthesis.

nebula does not build Kubernetes objects itself; cdk8s apps do. This module
runs `cdk8s synth` for an app file and reports which manifests it wrote.
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterable
from pathlib import Path

from ..errors import RenderError
from ..shared.logging import get_logger

logger = get_logger(__name__)

# cdk8s needs to know how to execute each kind of app file
APP_RUNNERS = {
    ".py": "python {app}",
    ".ts": "npx tsx {app}",
    ".js": "node {app}",
}


def app_command(app: str) -> str:
    """Build the --app command for an app file."""
    runner = APP_RUNNERS.get(Path(app).suffix)
    if runner is None:
        return app
    return runner.format(app=app)


class ManifestRenderer:
    """Run cdk8s synth."""

    def __init__(self, working_dir: Path | None = None):
        """Initialize renderer.

        Args:
            working_dir: Project directory app paths are relative to.
        """
        self.working_dir = working_dir or Path.cwd()

    def render(self, app: str, output_dir: Path) -> list[Path]:
        """Synthesize an app into output_dir.

        Returns:
            The YAML files present in output_dir afterwards.

        Raises:
            RenderError: If the app file is missing or synth fails.
        """
        if not (self.working_dir / app).exists():
            raise RenderError(f"App file not found: {app}")

        cmd = ["cdk8s", "synth", "--app", app_command(app), "--output", str(output_dir)]
        logger.info("synthesizing", app=app, output=str(output_dir))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=self.working_dir,
            )
        except FileNotFoundError as e:
            raise RenderError("cdk8s not found. Install it: npm install -g cdk8s-cli") from e

        if result.returncode != 0:
            raise RenderError(f"cdk8s synth failed for {app}: {(result.stderr or result.stdout).strip()}")

        return sorted(output_dir.glob("*.yaml"))

    def resolve_module(self, module: str) -> str | None:
        """Find the app file for a workload module.

        Directory modules (module/dev.py) win over flat ones (module.py).
        """
        candidates = [f"{module}/dev{suffix}" for suffix in APP_RUNNERS]
        candidates += [f"{module}{suffix}" for suffix in APP_RUNNERS]
        for candidate in candidates:
            if (self.working_dir / candidate).exists():
                return candidate
        return None

    def render_modules(self, modules: Iterable[str], output_root: Path) -> list[Path]:
        """Render each module that exists into output_root/<module>/.

        Modules with no app file on disk are skipped.
        """
        files: list[Path] = []
        for module in modules:
            app = self.resolve_module(module)
            if app is None:
                logger.debug("module_not_found", module=module)
                continue
            files.extend(self.render(app, output_root / module))
        return files
