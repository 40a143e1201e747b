import kopf
import logging
import kubernetes
import os

from topic_operator.config import OperatorConfig
from topic_operator.runtime import OperatorRuntime, get_runtime, set_runtime

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_kubernetes_config():
    try:
        kubernetes.config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()
        logger.info("Loaded local Kubernetes config")


@kopf.on.startup()
async def startup_fn(settings: kopf.OperatorSettings, **kwargs):
    """Start the application controller and the registry event stream."""
    logger.info("Topic Operator is starting up...")

    load_kubernetes_config()

    config = OperatorConfig.from_env()

    settings.batching.worker_limit = int(os.getenv("WORKER_LIMIT", "5"))
    settings.posting.enabled = os.getenv("POSTING_ENABLED", "false").lower() == "true"
    settings.watching.server_timeout = int(os.getenv("SERVER_TIMEOUT", "60"))

    runtime = OperatorRuntime(config)
    set_runtime(runtime)
    runtime.start()

    logger.info(f"Topic namespace: {config.controller.topic_namespace}")
    logger.info(f"Kafka cluster: {config.controller.cluster_name}")
    logger.info(f"Registry: {config.registry.url}")
    logger.info("Topic Operator startup complete")


@kopf.on.cleanup()
async def cleanup_fn(**kwargs):
    """Stop event sources, and let the current reconciliation finish."""
    logger.info("Topic Operator is shutting down...")

    runtime = get_runtime()
    if runtime:
        await runtime.stop()
        set_runtime(None)

    logger.info("Topic Operator shutdown complete")


def main():
    # register the KafkaTopic handlers
    from topic_operator.handlers import topic_handler  # noqa: F401

    config = OperatorConfig.from_env()

    try:
        kopf.run(
            standalone=True,
            namespaces=[config.controller.topic_namespace],
            liveness_endpoint=os.getenv("LIVENESS_ENDPOINT") or None,
        )
    except KeyboardInterrupt:
        logger.info("Operator stopped by user")
    except Exception as e:
        logger.error(f"Operator failed: {e}")
        raise


if __name__ == "__main__":
    main()
