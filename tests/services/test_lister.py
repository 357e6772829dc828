"""Tests for InstanceLister."""

from __future__ import annotations

import pytest

from pexec.domain.errors import TransportError
from pexec.domain.types import InstanceTarget
from pexec.services.lister import InstanceLister
from tests.conftest import FakeCluster


class TestInstanceLister:
    def test_matching_pods(self, web_cluster: FakeCluster) -> None:
        pods = InstanceLister(web_cluster).list("default", {"app": "web"})
        assert [p.name for p in pods] == ["web-0", "web-1", "web-2"]
        assert all(isinstance(p, InstanceTarget) for p in pods)
        assert all(p.namespace == "default" for p in pods)

    def test_selector_string(self, web_cluster: FakeCluster) -> None:
        InstanceLister(web_cluster).list("default", {"tier": "front", "app": "web"})
        assert web_cluster.list_calls == [("default", "app=web,tier=front")]

    def test_no_match_is_empty(self, web_cluster: FakeCluster) -> None:
        assert InstanceLister(web_cluster).list("default", {"app": "nope"}) == []

    def test_other_namespace_is_empty(self, web_cluster: FakeCluster) -> None:
        assert InstanceLister(web_cluster).list("kube-system", {"app": "web"}) == []

    def test_empty_labels_match_everything(self, web_cluster: FakeCluster) -> None:
        pods = InstanceLister(web_cluster).list("default", {})
        assert len(pods) == 4
        assert web_cluster.list_calls == [("default", "")]

    def test_transport_error(self) -> None:
        cluster = FakeCluster(fail_with=TransportError("connection refused"))
        with pytest.raises(TransportError):
            InstanceLister(cluster).list("default", {"app": "web"})
