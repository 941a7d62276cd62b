import time
from typing import Any, Dict, Optional

import requests
import streamlit as st

try:
    API_URL = st.secrets["API_URL"]
except Exception:
    API_URL = "http://localhost:8001"

st.set_page_config(page_title="CI Pipeline Copilot", layout="wide")
st.title("CI Pipeline Copilot")

API_URL = API_URL.rstrip("/")


def api_get(path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
    resp = requests.get(f"{API_URL}{path}", params=params, timeout=20)
    resp.raise_for_status()
    return resp


def api_post(path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    resp = requests.post(f"{API_URL}{path}", json=payload, timeout=30)
    resp.raise_for_status()
    return resp.json()


tabs = st.tabs([
    "Trigger",
    "Pipeline",
    "Credentials",
    "Runs",
])

# ----------------------------
# Tab 0: Trigger
# ----------------------------
with tabs[0]:
    st.header("Trigger decision")
    st.write("Will a pipeline for this event start on its own, or wait for someone to press play?")

    source = st.selectbox("Pipeline source", ["merge_request_event", "push", "web", "schedule", "api"], key="trg_source")
    branch = st.text_input("Branch", value="main", key="trg_branch")

    if st.button("Evaluate", type="primary", key="trg_eval"):
        try:
            out = api_post("/api/v1/trigger/evaluate", {"source": source, "branch": branch})
            if out.get("decision") == "RUN_AUTOMATICALLY":
                st.success(f"Runs automatically (rule: {out.get('rule')})")
            else:
                st.warning(f"Requires manual trigger (rule: {out.get('rule')})")
            st.json(out)
        except Exception as e:
            st.error(f"Evaluation failed: {e}")

# ----------------------------
# Tab 1: Pipeline
# ----------------------------
with tabs[1]:
    st.header("Pipeline definition")
    try:
        definition = api_get("/api/v1/pipeline").json()
        a, b, c = st.columns(3)
        a.metric("Pipeline", definition.get("name", ""))
        b.metric("Default branch", definition.get("default_branch", ""))
        c.metric("Active stages", len(definition.get("enabled_stages", [])))
        st.write(" → ".join(definition.get("stages", [])))

        with st.expander("Show .gitlab-ci.yml"):
            st.code(api_get("/api/v1/pipeline/gitlab-ci").text, language="yaml")

        st.subheader("Local commands")
        for cmd in api_get("/api/v1/pipeline/commands").json().get("commands", []):
            st.code(cmd["command"], language="bash")
    except Exception as e:
        st.error(f"Failed to load pipeline: {e}")

# ----------------------------
# Tab 2: Credentials
# ----------------------------
with tabs[2]:
    st.header("Docker Hub credentials check")
    st.caption("Values are sent to the API for checking only; they are never stored.")

    username = st.text_input("DOCKER_USERNAME", key="cred_user")
    password = st.text_input("DOCKER_PASSWORD", type="password", key="cred_pass")
    image = st.text_input("DOCKER_IMAGE", key="cred_image")
    masked = st.checkbox("Variables are masked", value=True, key="cred_masked")
    protected = st.checkbox("Variables are protected", value=True, key="cred_protected")

    if st.button("Check", key="cred_check"):
        variables = {"DOCKER_USERNAME": username, "DOCKER_PASSWORD": password}
        if image:
            variables["DOCKER_IMAGE"] = image
        flags = {
            "DOCKER_USERNAME": {"masked": masked, "protected": protected},
            "DOCKER_PASSWORD": {"masked": masked, "protected": protected},
        }
        try:
            out = api_post("/api/v1/credentials/check", {"variables": variables, "flags": flags})
            status = out.get("status")
            if status == "PASS":
                st.success("All checks passed")
            elif status == "WARN":
                st.warning("Checks passed with warnings")
            else:
                st.error("Blocking problems found")
            st.table([
                {"status": r["status"], "code": r["code"], "message": r["message"]}
                for r in out.get("results", [])
            ])
        except Exception as e:
            st.error(f"Check failed: {e}")

# ----------------------------
# Tab 3: Runs
# ----------------------------
with tabs[3]:
    st.header("Simulated runs")

    col1, col2, col3 = st.columns(3)
    with col1:
        run_source = st.selectbox("Source", ["push", "merge_request_event", "web"], key="run_source")
    with col2:
        run_branch = st.text_input("Branch", value="main", key="run_branch")
    with col3:
        run_sha = st.text_input("Commit SHA", value="0123456789abcdef0123456789abcdef01234567", key="run_sha")

    fail_stages = st.multiselect("Simulate failure in", ["build", "test", "package", "docker"], key="run_fail")

    if st.button("Start run", type="primary", key="run_start"):
        start = time.time()
        try:
            out = api_post(
                "/api/v1/runs",
                {
                    "source": run_source,
                    "branch": run_branch,
                    "commit_sha": run_sha,
                    "check_credentials": False,
                    "fail_stages": fail_stages,
                    "run_to_completion": True,
                },
            )
            st.caption(f"Finished in {time.time() - start:.2f} seconds")
            st.metric("Status", out.get("status"))
            st.table([{"stage": s["name"], "status": s["status"]} for s in out.get("stages", [])])
            if out.get("status") == "MANUAL":
                st.info(f"Run {out['run_id']} is waiting for a manual trigger.")
            if out.get("image_tags"):
                st.subheader("Image tags")
                for t in out["image_tags"]:
                    st.code(t, language="text")
        except Exception as e:
            st.error(f"Run failed: {e}")

    manual_id = st.text_input("Run id to play", key="run_play_id")
    if st.button("Play", key="run_play") and manual_id:
        try:
            api_post(f"/api/v1/runs/{manual_id}/play", {})
            st.json(api_post(f"/api/v1/runs/{manual_id}/run", {}))
        except Exception as e:
            st.error(f"Play failed: {e}")
