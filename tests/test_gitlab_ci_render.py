import yaml

from app.core.pipeline.builtins import builtin_pipeline
from app.core.pipeline.renderer import render_gitlab_ci, render_pipeline_dict


def test_rendered_yaml_parses():
    doc = yaml.safe_load(render_gitlab_ci(builtin_pipeline()))
    assert isinstance(doc, dict)
    assert doc["stages"] == ["build", "test", "package", "docker", "deploy"]


def test_deploy_job_is_commented_out():
    text = render_gitlab_ci(builtin_pipeline())
    doc = render_pipeline_dict(builtin_pipeline())
    assert "deploy" not in {k for k, v in doc.items() if isinstance(v, dict) and "script" in v}
    assert "# deploy:" in text
    assert "# deploy is disabled; uncomment to enable." in text


def test_enabled_deploy_is_rendered_as_job():
    p = builtin_pipeline()
    p.jobs_for_stage("deploy")[0].enabled = True
    doc = render_pipeline_dict(p)
    assert doc["deploy"]["stage"] == "deploy"


def test_workflow_rules_in_order():
    rules = render_pipeline_dict(builtin_pipeline())["workflow"]["rules"]
    assert len(rules) == 3
    assert rules[0]["if"] == '$CI_PIPELINE_SOURCE == "merge_request_event"'
    assert rules[0]["variables"]["PIPELINE_TRIGGER"] == "automatic"
    assert "push" in rules[1]["if"] and '"main"' in rules[1]["if"]
    assert rules[1]["variables"]["PIPELINE_TRIGGER"] == "automatic"
    assert "if" not in rules[2]
    assert rules[2]["variables"]["PIPELINE_TRIGGER"] == "manual"


def test_first_job_is_gated_on_manual_trigger():
    doc = render_pipeline_dict(builtin_pipeline())
    assert doc["build"]["rules"][0] == {"if": '$PIPELINE_TRIGGER == "manual"', "when": "manual"}
    assert "rules" not in doc["test"]


def test_cache_and_artifacts_rendered():
    doc = render_pipeline_dict(builtin_pipeline())
    assert doc["build"]["cache"]["key"] == "$CI_COMMIT_REF_SLUG"
    assert doc["package"]["artifacts"]["paths"] == ["target/*.jar"]
    assert doc["test"]["artifacts"]["reports"]["junit"]


def test_docker_job_uses_dind():
    doc = render_pipeline_dict(builtin_pipeline())
    assert doc["docker"]["services"] == ["docker:24-dind"]
    assert doc["variables"]["DOCKER_TLS_CERTDIR"] == "/certs"


def test_secrets_never_rendered():
    p = builtin_pipeline()
    p.variables["DOCKER_PASSWORD"] = "dckr_pat_should_not_appear"
    text = render_gitlab_ci(p)
    assert "dckr_pat_should_not_appear" not in text


def test_gitlab_ci_endpoint(client):
    r = client.get("/api/v1/pipeline/gitlab-ci")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/yaml")
    assert yaml.safe_load(r.text)["stages"][0] == "build"


def test_pipeline_endpoint(client):
    r = client.get("/api/v1/pipeline")
    assert r.status_code == 200
    body = r.json()
    assert body["enabled_stages"] == ["build", "test", "package", "docker"]
    assert body["workflow_rules"][0]["decision"] == "RUN_AUTOMATICALLY"
