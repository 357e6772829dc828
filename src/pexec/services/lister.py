"""InstanceLister — label set to the concrete list of pods."""

from __future__ import annotations

import logging

from pexec.domain.labels import selector_from_labels
from pexec.domain.types import InstanceTarget, LabelSet
from pexec.services.base import BaseService

logger = logging.getLogger(__name__)


class InstanceLister(BaseService):
    """The only place :class:`InstanceTarget` objects are created."""

    def list(self, namespace: str, labels: LabelSet) -> list[InstanceTarget]:
        """List running pods in *namespace* matching every label in *labels*.

        An empty label set matches the whole namespace. No match returns
        an empty list. API failures propagate as resolution errors with
        nothing returned.
        """
        selector = selector_from_labels(labels)
        if not selector:
            logger.warning("Empty label selector: listing every running pod in %s", namespace)

        names = self._cluster.list_pod_names(namespace, selector)
        logger.debug("Selector %r matched %d pod(s) in %s", selector, len(names), namespace)
        return [InstanceTarget(name=name, namespace=namespace) for name in names]
