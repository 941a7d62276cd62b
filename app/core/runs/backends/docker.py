from __future__ import annotations

import json
import os
import subprocess
from typing import Any, Dict, List, Optional

from .base import StageBackend


class DockerBackend(StageBackend):
    """Runs a stage job's script inside its image with the Docker CLI.

    Variables are passed with `-e NAME` and supplied through the subprocess
    environment, so values never appear on the docker command line. Jobs with
    a dind service get the host docker socket instead of a nested daemon.
    """

    name = "docker"

    def _image_exists(self, image: str) -> bool:
        r = subprocess.run(
            ["docker", "image", "inspect", image],
            capture_output=True,
            text=True,
        )
        return r.returncode == 0

    def _pull_image(self, image: str) -> None:
        r = subprocess.run(
            ["docker", "pull", image],
            capture_output=True,
            text=True,
        )
        if r.returncode != 0:
            raise RuntimeError(f"docker pull failed: {r.stderr.strip() or r.stdout.strip()}")

    def run_command(self, job_name: str, config: Dict[str, Any]) -> List[str]:
        image = config.get("image")
        if not image:
            raise ValueError("docker backend requires config.image")

        script = config.get("script") or []
        if not isinstance(script, list) or not script:
            raise ValueError("docker backend config.script must be a non-empty list")

        cmd = ["docker", "run", "-d", "--name", job_name]
        # passthrough names (secrets) are read by docker from the caller's environment
        names = set((config.get("variables") or {}).keys()) | set(config.get("passthrough") or [])
        for name in sorted(names):
            cmd += ["-e", name]
        if config.get("docker_socket"):
            cmd += ["-v", "/var/run/docker.sock:/var/run/docker.sock"]
        workdir = config.get("workdir")
        if workdir:
            cmd += ["-v", f"{workdir}:/builds/project", "-w", "/builds/project"]
        cmd += [image, "sh", "-c", " && ".join(script)]
        return cmd

    def submit(self, job_name: str, config: Dict[str, Any]) -> Dict[str, Any]:
        cmd = self.run_command(job_name, config)
        image = config["image"]

        if not self._image_exists(image):
            self._pull_image(image)

        # Best-effort cleanup to avoid name collision.
        subprocess.run(["docker", "rm", "-f", job_name], capture_output=True, text=True)

        env = dict(os.environ)
        env.update({k: str(v) for k, v in (config.get("variables") or {}).items()})

        r = subprocess.run(cmd, capture_output=True, text=True, env=env)
        if r.returncode != 0:
            raise RuntimeError(f"docker run failed: {r.stderr.strip() or r.stdout.strip()}")

        container_id = (r.stdout or "").strip()
        backend_ref = container_id or job_name
        return {"backend_ref": backend_ref, "meta": {"container_id": container_id, "container_name": job_name}}

    def status(self, job_name: str, *, backend_ref: Optional[str] = None) -> Dict[str, Any]:
        ref = backend_ref or job_name

        r = subprocess.run(["docker", "inspect", ref], capture_output=True, text=True)
        if r.returncode != 0:
            return {"state": "FAILED", "reason": "not_found", "detail": (r.stderr or r.stdout).strip()}

        try:
            info = json.loads(r.stdout)[0]
        except (ValueError, IndexError):
            return {"state": "FAILED", "reason": "inspect_parse_error"}

        state = info.get("State") or {}
        st = (state.get("Status") or "").strip().lower()
        exit_code = state.get("ExitCode")

        if st in {"created", "running", "paused", "restarting"}:
            return {"state": "RUNNING", "docker_status": st}

        if st == "exited":
            code = int(exit_code or 0)
            if code == 0:
                return {"state": "SUCCESS", "docker_status": st, "exit_code": code}
            return {"state": "FAILED", "docker_status": st, "exit_code": code}

        code = int(exit_code or 1) if exit_code is not None else 1
        return {"state": "FAILED", "docker_status": st or "unknown", "exit_code": code}

    def cancel(self, job_name: str, *, backend_ref: Optional[str] = None) -> None:
        ref = backend_ref or job_name
        subprocess.run(["docker", "rm", "-f", ref], capture_output=True, text=True)
