from app.core.credentials import DEFAULT_CREDENTIAL_ENGINE, context_from_env
from app.core.policy.engine import PolicyEngine
from app.core.policy.models import PolicyStatus


def _codes(results):
    return {r.code for r in results}


def test_good_credentials_pass(good_variables, good_flags):
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables, "flags": good_flags})
    assert results == []
    assert PolicyEngine.overall(results) == PolicyStatus.PASS


def test_missing_credentials_block():
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": {"DOCKER_IMAGE": "acme/app"}})
    assert "CREDENTIALS_MISSING" in _codes(results)
    assert PolicyEngine.is_blocking(results)
    missing = next(r for r in results if r.code == "CREDENTIALS_MISSING").details["missing"]
    assert missing == ["DOCKER_USERNAME", "DOCKER_PASSWORD"]


def test_account_password_warns(good_variables):
    good_variables["DOCKER_PASSWORD"] = "MyAccountPassword1"
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables})
    assert _codes(results) == {"PASSWORD_NOT_ACCESS_TOKEN"}
    assert not PolicyEngine.is_blocking(results)


def test_short_password_not_maskable(good_variables):
    good_variables["DOCKER_PASSWORD"] = "short"
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables})
    r = next(r for r in results if r.code == "PASSWORD_NOT_MASKABLE")
    assert r.status == PolicyStatus.FAIL
    assert r.details["reason"] == "too_short"


def test_password_with_spaces_not_maskable(good_variables):
    good_variables["DOCKER_PASSWORD"] = "dckr_pat_has space inside"
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables})
    r = next(r for r in results if r.code == "PASSWORD_NOT_MASKABLE")
    assert r.details["reason"] == "unsupported_characters"


def test_invalid_image_fails(good_variables):
    good_variables["DOCKER_IMAGE"] = "acme/app:1.0"
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables})
    assert "IMAGE_INVALID" in _codes(results)
    assert "IMAGE_NAMESPACE_MISMATCH" not in _codes(results)


def test_namespace_mismatch_warns(good_variables):
    good_variables["DOCKER_IMAGE"] = "someoneelse/java-app"
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables})
    assert _codes(results) == {"IMAGE_NAMESPACE_MISMATCH"}


def test_namespace_match_is_case_insensitive(good_variables):
    good_variables["DOCKER_USERNAME"] = "ACME"
    assert DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables}) == []


def test_unprotected_unmasked_flags_warn(good_variables):
    flags = {
        "DOCKER_USERNAME": {"masked": False, "protected": False},
        "DOCKER_PASSWORD": {"masked": False, "protected": True},
    }
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables, "flags": flags})
    assert _codes(results) == {"VARIABLE_NOT_PROTECTED", "VARIABLE_NOT_MASKED"}
    assert PolicyEngine.overall(results) == PolicyStatus.WARN


def test_results_never_contain_secret_values(good_variables):
    good_variables["DOCKER_PASSWORD"] = "short"
    good_variables["DOCKER_USERNAME"] = "secretuser99"
    good_variables["DOCKER_IMAGE"] = "other/app"
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables})
    assert "IMAGE_NAMESPACE_MISMATCH" in _codes(results)
    dumped = str([r.to_dict() for r in results])
    assert "short" not in dumped.replace("too_short", "")
    assert "secretuser99" not in dumped


def test_credentials_endpoint_hides_username(client, good_variables):
    good_variables["DOCKER_USERNAME"] = "secretuser99"
    good_variables["DOCKER_IMAGE"] = "other/app"
    r = client.post("/api/v1/credentials/check", json={"variables": good_variables})
    assert r.status_code == 200
    assert "secretuser99" not in r.text
    mismatch = next(x for x in r.json()["results"] if x["code"] == "IMAGE_NAMESPACE_MISMATCH")
    assert mismatch["details"] == {"namespace": "other", "field": "DOCKER_USERNAME"}


def test_unmasked_username_warns(good_variables, good_flags):
    good_flags["DOCKER_USERNAME"]["masked"] = False
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate({"variables": good_variables, "flags": good_flags})
    assert [(r.code, r.details["field"]) for r in results] == [("VARIABLE_NOT_MASKED", "DOCKER_USERNAME")]


def test_context_from_env():
    ctx = context_from_env({"DOCKER_USERNAME": "u", "OTHER": "x"})
    assert ctx["variables"] == {"DOCKER_USERNAME": "u", "DOCKER_PASSWORD": "", "DOCKER_IMAGE": ""}


def test_credentials_endpoint(client, good_variables, good_flags):
    r = client.post("/api/v1/credentials/check", json={"variables": good_variables, "flags": good_flags})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body == {"status": "PASS", "blocking": False, "results": []}


def test_credentials_endpoint_blocking(client):
    r = client.post("/api/v1/credentials/check", json={"variables": {}})
    body = r.json()
    assert body["status"] == "FAIL"
    assert body["blocking"] is True
    # DOCKER_IMAGE falls back to the pipeline default
    assert "IMAGE_INVALID" not in {x["code"] for x in body["results"]}
