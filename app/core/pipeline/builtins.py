from __future__ import annotations

from .models import ArtifactSpec, CacheSpec, JobSpec, PipelineDefinition, StageName
from .workflow_rules import default_rules, rule_specs


MAVEN_IMAGE = "maven:3.8.5-openjdk-17"
DOCKER_IMAGE = "docker:24"
DIND_SERVICE = "docker:24-dind"

DEFAULT_DOCKER_IMAGE = "yourusername/java-app"


def _maven_cache() -> CacheSpec:
    return CacheSpec(key="$CI_COMMIT_REF_SLUG", paths=[".m2/repository"])


def builtin_pipeline(*, default_branch: str = "main", docker_image: str = DEFAULT_DOCKER_IMAGE) -> PipelineDefinition:
    # Deterministic default: build -> test -> package -> docker, deploy declared but disabled.
    return PipelineDefinition(
        name="java-app",
        default_branch=default_branch,
        variables={
            "MAVEN_OPTS": "-Dmaven.repo.local=$CI_PROJECT_DIR/.m2/repository",
            "DOCKER_IMAGE": docker_image,
            "DOCKER_DRIVER": "overlay2",
            "DOCKER_TLS_CERTDIR": "/certs",
        },
        jobs=[
            JobSpec(
                name="build",
                stage=StageName.BUILD.value,
                image=MAVEN_IMAGE,
                script=["mvn compile"],
                cache=_maven_cache(),
                description="Compile the application",
            ),
            JobSpec(
                name="test",
                stage=StageName.TEST.value,
                image=MAVEN_IMAGE,
                script=["mvn test"],
                cache=_maven_cache(),
                artifacts=ArtifactSpec(junit=["target/surefire-reports/TEST-*.xml"], expire_in="1 week"),
                description="Run unit tests",
            ),
            JobSpec(
                name="package",
                stage=StageName.PACKAGE.value,
                image=MAVEN_IMAGE,
                script=["mvn package -DskipTests"],
                cache=_maven_cache(),
                artifacts=ArtifactSpec(paths=["target/*.jar"], expire_in="1 week"),
                description="Package the application jar",
            ),
            JobSpec(
                name="docker",
                stage=StageName.DOCKER.value,
                image=DOCKER_IMAGE,
                services=[DIND_SERVICE],
                before_script=[
                    'echo "$DOCKER_PASSWORD" | docker login -u "$DOCKER_USERNAME" --password-stdin',
                ],
                script=[
                    "docker build -t $DOCKER_IMAGE:$CI_COMMIT_SHA .",
                    "docker tag $DOCKER_IMAGE:$CI_COMMIT_SHA $DOCKER_IMAGE:latest",
                    "docker push $DOCKER_IMAGE:$CI_COMMIT_SHA",
                    "docker push $DOCKER_IMAGE:latest",
                ],
                description="Build and push the container image",
            ),
            JobSpec(
                name="deploy",
                stage=StageName.DEPLOY.value,
                image="alpine:3.19",
                script=[
                    'echo "Deploying $DOCKER_IMAGE:$CI_COMMIT_SHA"',
                ],
                enabled=False,
                description="Deploy the pushed image (disabled until a target exists)",
            ),
        ],
        workflow_rules=rule_specs(default_rules(default_branch)),
    )
