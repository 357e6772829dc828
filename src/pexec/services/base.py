"""BaseService — shared foundation for the pipeline components.

Every component that talks to the cluster receives a
:class:`~pexec.infrastructure.cluster.ClusterReader` at construction time.
The reader is shared and never mutated, so components are safe to build
once per invocation and throw away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pexec.infrastructure.cluster import ClusterReader


class BaseService:
    """Base for services that read from the cluster.

    Usage::

        class InstanceLister(BaseService):
            def list(self, namespace, labels):
                names = self._cluster.list_pod_names(namespace, ...)
    """

    def __init__(self, cluster: ClusterReader) -> None:
        self._cluster = cluster
