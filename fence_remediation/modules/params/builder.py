from typing import Dict, List, Optional

from ...errors import MissingNodeParameterError, MissingParametersError
from ..api.models import RemediationSpec


def format_param(name: str, value: str) -> str:
    """Render a single parameter; an empty value yields the bare flag."""
    if value:
        return f"{name}={value}"
    return name


def build_fence_agent_params(spec: RemediationSpec, node_name: str) -> List[str]:
    """
    Collect fence agent arguments for a node.

    Args:
        spec: Remediation spec holding shared and per node parameters
        node_name: Target node (the remediation resource name)

    Returns:
        Shared parameters followed by node parameters, each in the order
        they appear in the resource. The agent itself is not included.

    Raises:
        MissingParametersError: If either parameter map is missing
        MissingNodeParameterError: If a node parameter lacks a value for node_name
    """
    shared: Optional[Dict[str, str]] = spec.shared_parameters
    per_node: Optional[Dict[str, Dict[str, str]]] = spec.node_parameters
    if shared is None or per_node is None:
        raise MissingParametersError()

    params = [format_param(name, value) for name, value in shared.items()]

    for name, node_values in per_node.items():
        if node_name not in node_values:
            raise MissingNodeParameterError(name, node_name)
        params.append(format_param(name, node_values[node_name]))

    return params
