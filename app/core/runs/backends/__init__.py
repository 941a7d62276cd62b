from .local import LocalBackend
from .docker import DockerBackend

BACKENDS = {
    "local": LocalBackend(),
    "docker": DockerBackend(),
}
