# xoclient/services/hub_recipe.py
import logging
from typing import Optional

from ..context import CancelScope
from ..errors import DecodeError, ValidationFailed
from ..payloads.hub_recipe import K8sClusterOptions
from .base import require_text
from .jsonrpc import JsonRpcService

logger = logging.getLogger(__name__)


class HubRecipeService:
    def __init__(self, jsonrpc: JsonRpcService):
        self.jsonrpc = jsonrpc

    def create_k8s_cluster(self, options: K8sClusterOptions, scope: Optional[CancelScope] = None) -> str:
        """Deploy the Kubernetes recipe. Returns the tag put on the cluster's VMs."""
        require_text(options.cluster_name, "cluster name")
        require_text(options.network, "network")
        require_text(options.sr, "SR")
        if options.nb_nodes < 1:
            raise ValidationFailed("a cluster needs at least one worker node")
        if options.control_plane_pool_size < 1:
            raise ValidationFailed("control plane pool size must be at least 1")
        tag = self.jsonrpc.call("xoa.recipe.createKubernetesCluster", options.to_payload(), scope=scope,
                                cluster=options.cluster_name)
        if not isinstance(tag, str):
            raise DecodeError(f"expected a tag from createKubernetesCluster, got {type(tag).__name__}")
        logger.info("Kubernetes cluster %r requested, tagged %s", options.cluster_name, tag)
        return tag
