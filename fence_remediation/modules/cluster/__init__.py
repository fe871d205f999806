"""
Cluster Module - Black Box Interface

Purpose: All Kubernetes API access for the controller
Interface: get_remediation(), update_remediation(), get_node(), replace_node(),
           is_node_name_valid(), list_pods(), stream_remediation_events()
Hidden: kubernetes client specifics, thread offloading, error translation

Can be replaced with any object store that offers conditional writes.
"""

from .cluster import ClusterModule, load_kube_config, translate_api_exception

__all__ = ["ClusterModule", "load_kube_config", "translate_api_exception"]
