import subprocess
import sys
from pathlib import Path

from app.core.pipeline.loader import load_pipeline
from app.core.pipeline.renderer import render_gitlab_ci

REPO_ROOT = Path(__file__).resolve().parents[1]
TOOL = REPO_ROOT / "tools" / "render_gitlab_ci.py"


def _run(*args):
    return subprocess.run([sys.executable, str(TOOL), *args], capture_output=True, text=True, cwd=str(REPO_ROOT))


def test_render_to_file_then_check(tmp_path):
    out = tmp_path / ".gitlab-ci.yml"
    r = _run("--out", str(out))
    assert r.returncode == 0, r.stderr
    assert out.read_text(encoding="utf-8") == render_gitlab_ci(load_pipeline())

    r = _run("--out", str(out), "--check")
    assert r.returncode == 0
    assert "up to date" in r.stdout


def test_check_detects_stale_file(tmp_path):
    out = tmp_path / ".gitlab-ci.yml"
    out.write_text("stages: [build]\n", encoding="utf-8")
    r = _run("--out", str(out), "--check")
    assert r.returncode == 1
    assert "out of date" in r.stdout


def test_render_with_override_file(tmp_path):
    override = tmp_path / "pipeline.yaml"
    override.write_text("docker_image: acme/java-app\n", encoding="utf-8")
    r = _run("--pipeline-file", str(override), "--out", "-")
    assert r.returncode == 0, r.stderr
    assert "acme/java-app" in r.stdout
