"""Tests for the command line interface."""

from __future__ import annotations

import yaml
from typer.testing import CliRunner

from topic_operator.cli import app

runner = CliRunner()


class TestTopicName:
    """Tests for the topic-name command."""

    def test_simple_name(self) -> None:
        result = runner.invoke(app, ["topic-name", "foo"])

        assert result.exit_code == 0
        assert result.output.strip() == "events-foo"

    def test_hashed_name(self) -> None:
        result = runner.invoke(app, ["topic-name", "FOO"])

        assert result.exit_code == 0
        assert result.output.strip() == "evt-901890a8e9c8cf6d5a1a542b229febff-foo"


class TestRenderTopic:
    """Tests for the render-topic command."""

    def test_defaults(self) -> None:
        result = runner.invoke(app, ["render-topic", "foo"])

        assert result.exit_code == 0
        topic = yaml.safe_load(result.output)
        assert topic["apiVersion"] == "kafka.strimzi.io/v1beta2"
        assert topic["kind"] == "KafkaTopic"
        assert topic["metadata"]["name"] == "events-foo"
        assert topic["metadata"]["namespace"] == "kafka"
        assert topic["metadata"]["labels"] == {"strimzi.io/cluster": "kafka"}
        assert topic["spec"]["topicName"] == "events-foo"

    def test_options(self) -> None:
        result = runner.invoke(
            app,
            [
                "render-topic",
                "foo",
                "-n",
                "events",
                "-c",
                "my-cluster",
                "--partitions",
                "6",
                "--replicas",
                "2",
            ],
        )

        assert result.exit_code == 0
        topic = yaml.safe_load(result.output)
        assert topic["metadata"]["namespace"] == "events"
        assert topic["metadata"]["labels"]["strimzi.io/cluster"] == "my-cluster"
        assert topic["spec"]["partitions"] == 6
        assert topic["spec"]["replicas"] == 2

    def test_invalid_partitions(self) -> None:
        result = runner.invoke(app, ["render-topic", "foo", "--partitions", "0"])

        assert result.exit_code != 0

    def test_needs_no_cluster_access(self, monkeypatch) -> None:
        """Test that rendering never creates a Kubernetes client."""
        import kubernetes

        def no_client():
            raise AssertionError("Kubernetes client created")

        monkeypatch.setattr(kubernetes.client, "CustomObjectsApi", no_client)

        result = runner.invoke(app, ["render-topic", "foo", "--version", "v1"])

        assert result.exit_code == 0
        assert yaml.safe_load(result.output)["apiVersion"] == "kafka.strimzi.io/v1"
