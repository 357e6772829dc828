"""ClusterClient — read-only access to workloads and pods.

Owns one ``ApiClient`` for the resolution phase (single-threaded). The
``Configuration`` it was built from is shared read-only with the exec
transport, which builds its own clients per task.

API failures are translated here so nothing above this layer sees an
``ApiException``:

- 404 -> :class:`ResourceNotFoundError`
- 401 / 403 -> :class:`AccessError`
- everything else, including connection errors -> :class:`TransportError`
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from pexec.domain.errors import (
    AccessError,
    ConfigurationError,
    FatalError,
    ResourceNotFoundError,
    TransportError,
)
from pexec.domain.types import LabelSet, WorkloadKind

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

RUNNING_PHASE_SELECTOR = "status.phase=Running"


class ClusterReader(Protocol):
    """What the resolver and lister need from the cluster."""

    def read_workload_labels(self, kind: WorkloadKind, name: str, namespace: str) -> LabelSet: ...

    def list_pod_names(self, namespace: str, label_selector: str) -> list[str]: ...


def load_configuration(kubeconfig: Path | None, context: str | None = None) -> client.Configuration:
    """Build a client ``Configuration`` from a kubeconfig, or in-cluster credentials.

    Raises:
        FatalError: the kubeconfig is missing/invalid, the context does not
            exist, or (without a kubeconfig) no service account is mounted.
    """
    configuration = client.Configuration()
    try:
        if kubeconfig is not None:
            config.load_kube_config(
                config_file=str(kubeconfig),
                context=context,
                client_configuration=configuration,
            )
            logger.debug("Loaded kubeconfig %s (context=%s)", kubeconfig, context or "current")
        else:
            config.load_incluster_config(client_configuration=configuration)
            logger.debug("Loaded in-cluster service account configuration")
    except (config.ConfigException, OSError, ValueError) as exc:
        source = str(kubeconfig) if kubeconfig is not None else "in-cluster config"
        msg = f"Cannot build cluster client from {source}: {exc}"
        raise FatalError(msg) from exc
    return configuration


def _translate(exc: Exception, what: str) -> Exception:
    """Map a client-library failure onto the resolution error taxonomy."""
    if isinstance(exc, ApiException):
        if exc.status == 404:
            return ResourceNotFoundError(f"{what} not found")
        if exc.status in (401, 403):
            return AccessError(f"Access denied reading {what}: {exc.reason}")
        return TransportError(f"API error reading {what}: {exc.status} {exc.reason}")
    return TransportError(f"Cannot reach the cluster while reading {what}: {exc}")


class ClusterClient:
    """Kubernetes-backed :class:`ClusterReader`.

    Parameters:
        configuration: Shared client configuration (credentials, host, TLS).
        api_client: Optional pre-built client; tests inject one.
    """

    def __init__(
        self,
        configuration: client.Configuration,
        *,
        api_client: client.ApiClient | None = None,
    ) -> None:
        self._configuration = configuration
        self._api_client = api_client or client.ApiClient(configuration)
        self._apps = client.AppsV1Api(self._api_client)
        self._core = client.CoreV1Api(self._api_client)

    @classmethod
    def connect(cls, kubeconfig: Path | None, context: str | None = None) -> ClusterClient:
        return cls(load_configuration(kubeconfig, context))

    @property
    def configuration(self) -> client.Configuration:
        return self._configuration

    def close(self) -> None:
        self._api_client.close()

    # ------------------------------------------------------------------
    # ClusterReader
    # ------------------------------------------------------------------

    def read_workload_labels(self, kind: WorkloadKind, name: str, namespace: str) -> LabelSet:
        """Return ``metadata.labels`` of a Deployment, StatefulSet, or DaemonSet."""
        if not kind.is_controller:
            raise ConfigurationError(f"{kind} has no controller metadata to read labels from")

        readers: dict[WorkloadKind, Callable[..., Any]] = {
            WorkloadKind.DEPLOYMENT: self._apps.read_namespaced_deployment,
            WorkloadKind.STATEFULSET: self._apps.read_namespaced_stateful_set,
            WorkloadKind.DAEMONSET: self._apps.read_namespaced_daemon_set,
        }
        reader = readers[kind]
        what = f"{kind} {namespace}/{name}"
        try:
            workload = reader(name, namespace)
        except (ApiException, HTTPError) as exc:
            raise _translate(exc, what) from exc

        labels = dict(workload.metadata.labels or {})
        logger.debug("Resolved %s to labels %s", what, labels)
        return labels

    def list_pod_names(self, namespace: str, label_selector: str) -> list[str]:
        """Names of running pods matching *label_selector*, in API order."""
        what = f"pods in {namespace} ({label_selector or '<all>'})"
        try:
            pod_list = self._core.list_namespaced_pod(
                namespace,
                label_selector=label_selector,
                field_selector=RUNNING_PHASE_SELECTOR,
            )
        except (ApiException, HTTPError) as exc:
            raise _translate(exc, what) from exc
        return [pod.metadata.name for pod in pod_list.items]
