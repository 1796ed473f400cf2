"""
Kubernetes client configuration.
"""
from kubernetes_asyncio import client, config

from dbcontroller.config.logging import get_logger
from dbcontroller.config.settings import Settings, settings as default_settings
from dbcontroller.exceptions import KubernetesConfigError

logger = get_logger(__name__)


async def create_api_client(cfg: Settings = default_settings) -> client.ApiClient:
    """
    Create an ApiClient from in-cluster credentials or a kubeconfig file.

    Args:
        cfg: Controller settings

    Returns:
        ApiClient with its own isolated Configuration

    Raises:
        KubernetesConfigError: If no configuration could be loaded
    """
    configuration = client.Configuration()
    try:
        if cfg.k8s_in_cluster:
            config.load_incluster_config(client_configuration=configuration)
        else:
            await config.load_kube_config(
                config_file=cfg.kubeconfig_path,
                client_configuration=configuration,
            )
    except (config.ConfigException, OSError) as e:
        logger.error("kubernetes_configuration_failed", in_cluster=cfg.k8s_in_cluster, error=str(e))
        raise KubernetesConfigError(
            f"failed to load Kubernetes configuration: {e}",
            details={"in_cluster": cfg.k8s_in_cluster, "kubeconfig": cfg.kubeconfig_path},
        )

    logger.info(
        "kubernetes_configuration_loaded",
        host=configuration.host,
        in_cluster=cfg.k8s_in_cluster,
        verify_ssl=configuration.verify_ssl,
    )
    return client.ApiClient(configuration=configuration)
