import pytest

from app.core.images.commands import local_commands


def test_documented_commands():
    cmds = [c["command"] for c in local_commands("acme/app")]
    assert cmds == [
        "mvn clean package",
        "docker build -t acme/app:latest .",
        "docker run -d -p 8080:8080 acme/app:latest",
        "docker manifest inspect acme/app:latest",
    ]


def test_host_port_configurable():
    run = local_commands("acme/app", port=9090)[2]["command"]
    assert "-p 9090:8080" in run


def test_bad_port_rejected():
    with pytest.raises(ValueError):
        local_commands("acme/app", port=0)


def test_commands_endpoint(client):
    r = client.get("/api/v1/pipeline/commands", params={"image": "acme/app"})
    assert r.status_code == 200
    assert r.json()["commands"][0]["command"] == "mvn clean package"


def test_commands_endpoint_bad_image(client):
    r = client.get("/api/v1/pipeline/commands", params={"image": "Bad Image"})
    assert r.status_code == 400
