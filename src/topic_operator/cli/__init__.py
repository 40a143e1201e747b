import typer
import yaml
from typing_extensions import Annotated

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(usecwd=True))

app = typer.Typer(
    help="Topic operator: Kafka topics for registry applications",
    add_completion=False,
)


@app.command("operator")
def run_operator():
    """Run the operator (connects to cluster, registry and Kafka)."""
    from topic_operator.main import main

    main()


@app.command("topic-name")
def topic_name(
    application: Annotated[str, typer.Argument(help="Application name")],
):
    """Print the KafkaTopic resource name of an application."""
    from topic_operator.controller.naming import make_topic_resource_name

    typer.echo(make_topic_resource_name(application))


@app.command("render-topic")
def render_topic(
    application: Annotated[str, typer.Argument(help="Application name")],
    namespace: Annotated[
        str, typer.Option("-n", "--namespace", help="Topic namespace")
    ] = "kafka",
    cluster: Annotated[
        str, typer.Option("-c", "--cluster", help="Strimzi cluster name")
    ] = "kafka",
    partitions: Annotated[int, typer.Option("--partitions", min=1)] = 3,
    replicas: Annotated[int, typer.Option("--replicas", min=1)] = 1,
    version: Annotated[
        str, typer.Option("--version", help="KafkaTopic API version")
    ] = "v1beta2",
):
    """Print the KafkaTopic the operator would create for an application."""
    from topic_operator.config import ControllerConfig
    from topic_operator.controller.app import desired_topic
    from topic_operator.controller.naming import make_topic_resource_name
    from topic_operator.services.topics import new_topic_resource

    config = ControllerConfig(
        topic_namespace=namespace,
        cluster_name=cluster,
        topic_version=version,
        partitions=partitions,
        replicas=replicas,
    )
    name = make_topic_resource_name(application)
    topic = new_topic_resource(namespace, name, version)
    topic = desired_topic(topic, application, name, config)

    typer.echo(yaml.safe_dump(topic, sort_keys=False), nl=False)


def main():
    app()
