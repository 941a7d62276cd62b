from __future__ import annotations

import argparse
import sys
from pathlib import Path

# ---- sys.path bootstrap (run as a plain script from anywhere) ----
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))
# -----------------------------------------------------------------

from app.core.pipeline.loader import load_pipeline  # noqa: E402
from app.core.pipeline.renderer import render_gitlab_ci  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Render .gitlab-ci.yml from the pipeline definition")
    ap.add_argument("--pipeline-file", default=None, help="YAML/JSON override file (default: $COPILOT_PIPELINE_FILE)")
    ap.add_argument("--out", default=".gitlab-ci.yml", help="Output path (default .gitlab-ci.yml, '-' for stdout)")
    ap.add_argument("--check", action="store_true", help="Fail if the output file differs from the rendered text")
    args = ap.parse_args()

    pipeline = load_pipeline(Path(args.pipeline_file) if args.pipeline_file else None)
    text = render_gitlab_ci(pipeline)

    if args.out == "-":
        sys.stdout.write(text)
        return 0

    out = Path(args.out)
    if args.check:
        current = out.read_text(encoding="utf-8") if out.exists() else ""
        if current != text:
            print(f"{out} is out of date; re-run tools/render_gitlab_ci.py")
            return 1
        print(f"{out} is up to date")
        return 0

    out.write_text(text, encoding="utf-8")
    print(f"wrote {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
