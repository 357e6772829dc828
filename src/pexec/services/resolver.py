"""WorkloadResolver — workload reference to label set."""

from __future__ import annotations

import logging

from pexec.domain.errors import ConfigurationError
from pexec.domain.types import LabelSet, WorkloadKind, WorkloadReference
from pexec.services.base import BaseService

logger = logging.getLogger(__name__)


class WorkloadResolver(BaseService):
    """Turn a :class:`WorkloadReference` into the labels of its pods."""

    def resolve(self, ref: WorkloadReference, selector: LabelSet | None = None) -> LabelSet:
        """Return the label set identifying *ref*'s pods.

        Pod kind is a pass-through of *selector* and makes no API call.
        Controller kinds read the workload's metadata labels (one call).

        Raises:
            ConfigurationError: Pod kind without a selector, a controller
                kind without a name, or an unknown kind.
            ResourceNotFoundError / AccessError / TransportError: from the
                metadata read.
        """
        if not isinstance(ref.kind, WorkloadKind):
            raise ConfigurationError(f"Unknown workload type '{ref.kind}'")
        if not ref.kind.is_controller:
            if not selector:
                raise ConfigurationError("Pod type needs a label selector (--labels)")
            return dict(selector)

        if not ref.name:
            raise ConfigurationError(f"{ref.kind} needs a name")

        labels = self._cluster.read_workload_labels(ref.kind, ref.name, ref.namespace)
        if not labels:
            logger.warning(
                "%s %s/%s has no labels; every pod in the namespace will match",
                ref.kind,
                ref.namespace,
                ref.name,
            )
        return labels
