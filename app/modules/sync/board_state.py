"""Participant-side convergence on the active board.

A participant keeps showing the board it has loaded until a status poll reports
a different active board. Only then does it refetch the board snapshot and drop
what it held for the old one. Feeding the same status again changes nothing, so
a note being typed is never interrupted by an unchanged poll.
"""

from typing import Any, Dict, Optional, Union

from app.modules.sync.schemas import WorkshopStatusResponse

Status = Union[WorkshopStatusResponse, Dict[str, Any]]


def _field(status: Status, name: str) -> Any:
    if isinstance(status, dict):
        return status.get(name)
    return getattr(status, name, None)


class BoardViewState:
    def __init__(self, board_id: Optional[str] = None):
        self.board_id = board_id
        self.timer_running = False
        self.timer_started_at = None
        self.remaining_seconds: Optional[int] = None
        self.notes: list = []

    def apply_status(self, status: Status) -> bool:
        """Fold a polled status in. Returns True when the caller must load the new board."""
        self.timer_running = bool(_field(status, "timer_running"))
        self.timer_started_at = _field(status, "timer_started_at")
        self.remaining_seconds = _field(status, "remaining_seconds")

        active_board_id = _field(status, "active_board_id")
        if not active_board_id or active_board_id == self.board_id:
            return False
        self.board_id = active_board_id
        self.notes = []
        return True
