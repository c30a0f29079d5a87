"""Decisions about which node should hold which role."""

from __future__ import annotations

from dataclasses import dataclass, field

from .nodes import NodeInfo, NodeMetadata, NodeRole

MIN_VOTERS = 3


@dataclass
class RolesConfig:
    """Target numbers of voters and stand-bys."""

    voters: int = 3
    standbys: int = 3


@dataclass
class RolesChanges:
    """Role management algorithm over a snapshot of the cluster.

    ``state`` maps every node in the cluster to its metadata, or to None if the
    node is offline.
    """

    config: RolesConfig = field(default_factory=RolesConfig)
    state: dict[NodeInfo, NodeMetadata | None] = field(default_factory=dict)

    def assume(self, node_id: int) -> NodeRole | None:
        """Return the role a starting node should take, or None for no change."""
        if len(self.state) < MIN_VOTERS:
            return None
        node = self._get(node_id)
        if node is None:
            return None
        if node.role in (NodeRole.VOTER, NodeRole.STANDBY):
            return None

        online_voters = self.count(NodeRole.VOTER, True)
        online_standbys = self.count(NodeRole.STANDBY, True)
        if online_voters >= self.config.voters and online_standbys >= self.config.standbys:
            return None
        if online_voters < self.config.voters:
            return NodeRole.VOTER
        return NodeRole.STANDBY

    def handover(self, node_id: int) -> tuple[NodeRole | None, list[NodeInfo]]:
        """Return the role to hand over and candidates in order of preference."""
        node = self._get(node_id)
        if node is None:
            return None, []
        if node.role not in (NodeRole.VOTER, NodeRole.STANDBY):
            return None, []

        peers = [peer for peer in self.list(node.role, True) if peer.id != node.id]
        domains = self._failure_domains(peers)

        candidates = self.list(NodeRole.SPARE, True)
        if node.role == NodeRole.VOTER:
            candidates = self.list(NodeRole.STANDBY, True) + candidates
        if not candidates:
            return None, []
        return node.role, self._sort_candidates(candidates, domains)

    def adjust(self, leader: int) -> tuple[NodeRole | None, list[NodeInfo]]:
        """Return the role to assign and candidates in order of preference."""
        size = len(self.state)
        if size == 1:
            return None, []

        if size < MIN_VOTERS:
            for node in self.state:
                if node.id == leader or node.role != NodeRole.VOTER:
                    continue
                return NodeRole.SPARE, [node]
            return None, []

        online_voters = self.list(NodeRole.VOTER, True)
        online_standbys = self.list(NodeRole.STANDBY, True)
        offline_voters = self.list(NodeRole.VOTER, False)
        offline_standbys = self.list(NodeRole.STANDBY, False)

        if (
            not offline_voters
            and len(online_voters) == self.config.voters
            and not offline_standbys
            and len(online_standbys) == self.config.standbys
        ):
            return None, []

        if len(online_voters) < self.config.voters:
            candidates = self.list(NodeRole.STANDBY, True) + self.list(NodeRole.SPARE, True)
            if not candidates:
                return None, []
            domains = self._failure_domains(online_voters)
            return NodeRole.VOTER, self._sort_candidates(candidates, domains)

        if len(online_voters) > self.config.voters:
            return NodeRole.SPARE, [n for n in online_voters if n.id != leader]

        if offline_voters:
            return NodeRole.SPARE, offline_voters

        if len(online_standbys) < self.config.standbys:
            candidates = self.list(NodeRole.SPARE, True)
            if not candidates:
                return None, []
            domains = self._failure_domains(online_standbys)
            return NodeRole.STANDBY, self._sort_candidates(candidates, domains)

        if len(online_standbys) > self.config.standbys:
            return NodeRole.SPARE, [n for n in online_standbys if n.id != leader]

        if offline_standbys:
            return NodeRole.SPARE, offline_standbys

        return None, []

    def list(self, role: NodeRole, online: bool) -> list[NodeInfo]:
        """Return the online or offline nodes with the given role."""
        return [
            node
            for node, metadata in self.state.items()
            if node.role == role and (metadata is not None) == online
        ]

    def count(self, role: NodeRole, online: bool) -> int:
        """Return the number of online or offline nodes with the given role."""
        return len(self.list(role, online))

    def _get(self, node_id: int) -> NodeInfo | None:
        return next((node for node in self.state if node.id == node_id), None)

    def _failure_domains(self, nodes: list[NodeInfo]) -> set[int]:
        return {
            metadata.failure_domain
            for metadata in (self.state.get(node) for node in nodes)
            if metadata is not None
        }

    def _sort_candidates(self, candidates: list[NodeInfo], domains: set[int]) -> list[NodeInfo]:
        def key(node: NodeInfo) -> tuple[bool, int]:
            metadata = self.state.get(node) or NodeMetadata()
            return metadata.failure_domain in domains, metadata.weight

        return sorted(candidates, key=key)