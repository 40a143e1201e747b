"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for fakes imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from topic_operator.config import ControllerConfig, WorkQueueConfig  # noqa: E402

from fakes import FakeRegistry, FakeTopicApi  # noqa: E402


@pytest.fixture
def controller_config():
    return ControllerConfig(topic_namespace="kafka", cluster_name="my-cluster")


@pytest.fixture
def queue_config():
    return WorkQueueConfig(retry_delay_min=1.0, retry_delay_max=8.0, retry_factor=2.0)


@pytest.fixture
def topics():
    return FakeTopicApi(namespace="kafka")


@pytest.fixture
def registry():
    return FakeRegistry()
