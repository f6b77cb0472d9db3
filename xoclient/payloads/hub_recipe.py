# xoclient/payloads/hub_recipe.py
from typing import List, Optional

from pydantic import Field

from .base import XOModel


class K8sClusterOptions(XOModel):
    cluster_name: str = Field(alias="clusterName")
    k8s_version: str = Field(alias="k8sVersion")
    network: str
    sr: str
    ssh_key: str = Field(alias="sshKey")
    nb_nodes: int = Field(default=1, alias="nbNodes")
    control_plane_pool_size: int = Field(default=1, alias="controlPlanePoolSize")
    # static addressing, single control plane
    control_plane_ip_address: Optional[str] = Field(default=None, alias="controlPlaneIpAddress")
    # static addressing, HA control plane
    control_plane_ip_addresses: Optional[List[str]] = Field(default=None, alias="controlPlaneIpAddresses")
    gateway_ip_address: Optional[str] = Field(default=None, alias="gatewayIpAddress")
    nameservers: Optional[List[str]] = None
    searches: Optional[List[str]] = None
    vip_address: Optional[str] = Field(default=None, alias="vipAddress")
    worker_node_ip_addresses: Optional[List[str]] = Field(default=None, alias="workerNodeIpAddresses")
