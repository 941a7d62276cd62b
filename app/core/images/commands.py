from __future__ import annotations

from typing import Dict, List

from .reference import LATEST_TAG, parse_image


def local_commands(image: str, *, port: int = 8080) -> List[Dict[str, str]]:
    """Developer commands for reproducing the pipeline locally."""
    if not (0 < int(port) < 65536):
        raise ValueError(f"port out of range: {port}")

    ref = parse_image(image)
    tagged = ref.with_tag(LATEST_TAG)
    return [
        {"step": "package", "command": "mvn clean package"},
        {"step": "build", "command": f"docker build -t {tagged} ."},
        {"step": "run", "command": f"docker run -d -p {port}:8080 {tagged}"},
        {"step": "inspect", "command": f"docker manifest inspect {tagged}"},
    ]
