"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and keeps the developer's environment out of the tests.
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

_ENV_VARS = (
    "KUBECONFIG",
    "ZIM_CONFIG_FILE",
    "ZIM_LOG_UNIT",
    "ZIM_LOG_FORMAT",
    "ZIM_SINCE",
    "ZIM_REGISTRY_TIMEOUT",
    "GITHUB_TOKEN",
    "DOCKER_USERNAME",
    "DOCKER_PASSWORD",
    "DOCKER_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Unset ZIM and credential variables and point the config file at a missing path"""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ZIM_CONFIG_FILE", str(tmp_path / "missing-config.yaml"))


@pytest.fixture
def no_retry():
    """Retry settings that fail fast without sleeping"""
    return {"max_retries": 0, "sleep": lambda _delay: None}


def make_pod(name, containers=(), init_containers=(), namespace="default"):
    """Build a pod object shaped like kubernetes.client.V1Pod"""
    pod = MagicMock()
    pod.metadata.name = name
    pod.metadata.namespace = namespace
    pod.spec.containers = [MagicMock(image=image) for image in containers]
    pod.spec.init_containers = [MagicMock(image=image) for image in init_containers] or None
    return pod


def make_pod_page(pods, continue_token=None):
    """Build a pod list page shaped like kubernetes.client.V1PodList"""
    page = MagicMock()
    page.items = list(pods)
    page.metadata._continue = continue_token
    return page
