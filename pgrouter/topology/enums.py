from __future__ import annotations

from enum import StrEnum


class TargetSessionAttrs(StrEnum):
    """Values handed to the driver as ``target_session_attrs``."""

    READ_WRITE = "read-write"
    ANY = "any"


class ConnectionIntent(StrEnum):
    READ_WRITE = "rw"
    READ_ONLY = "ro"
    BEST_EFFORT = "auto"

    @property
    def session_attrs(self) -> TargetSessionAttrs:
        """Session attribute the driver must enforce for this intent.

        Best-effort governs candidate order, not attribute laxity, so it
        demands a writable node just like read-write.
        """
        if self is ConnectionIntent.READ_ONLY:
            return TargetSessionAttrs.ANY
        return TargetSessionAttrs.READ_WRITE


class NodeRole(StrEnum):
    LEADER = "leader"
    REPLICA = "replica"
    UNKNOWN = "unknown"

    @classmethod
    def from_reported(cls, role: str) -> NodeRole:
        """Map a role string reported by the membership service.

        Matching is case-sensitive; anything other than ``leader`` or
        ``replica`` is ``UNKNOWN``.
        """
        if role == cls.LEADER.value:
            return cls.LEADER
        if role == cls.REPLICA.value:
            return cls.REPLICA
        return cls.UNKNOWN
