from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Beacon, BeaconAssignment


class BeaconRepository(Protocol):
    def list_all(self) -> Sequence[Beacon]:
        raise NotImplementedError

    def get_by_id(self, beacon_id: str) -> Optional[Beacon]:
        raise NotImplementedError

    def get_active_by_mac(self, mac_address: str) -> Optional[Beacon]:
        raise NotImplementedError

    def create_beacon(self, values: dict) -> Beacon:
        raise NotImplementedError

    def update_beacon(self, beacon_id: str, changes: dict) -> Optional[Beacon]:
        raise NotImplementedError

    def delete_by_id(self, beacon_id: str) -> bool:
        raise NotImplementedError


class BeaconAssignmentRepository(Protocol):
    def list_all(self) -> Sequence[BeaconAssignment]:
        raise NotImplementedError

    def list_for_beacon(self, beacon_id: str) -> Sequence[BeaconAssignment]:
        raise NotImplementedError

    def create_assignment(self, *, beacon_id: str, course_id: str, session_id: Optional[str] = None) -> BeaconAssignment:
        raise NotImplementedError

    def delete_by_id(self, assignment_id: str) -> bool:
        raise NotImplementedError

    def delete_for_beacon(self, beacon_id: str) -> int:
        raise NotImplementedError

    def delete_session_bound(self) -> int:
        """Remove every assignment that is tied to a specific session."""

        raise NotImplementedError
