from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from watchparty.schemas.room import ElectionStatus
from watchparty.state.clients import ClientRegistry

logger = logging.getLogger(__name__)


class Election:
    """Exclusive-vote admin election with a live majority threshold.

    Votes are not checked against the roster: a vote for an unknown id is
    recorded like any other, and a candidate who leaves keeps their votes
    until the next promotion clears them.
    """

    def __init__(self, clients: ClientRegistry) -> None:
        self._clients = clients
        self._admin_id: Optional[int] = None
        self._votes: Dict[int, Set[int]] = {}
        self.previous_admin_id: Optional[int] = None

    @property
    def admin_id(self) -> Optional[int]:
        """The elected admin, or None when nobody holds it or the admin has left."""
        if self._clients.is_live(self._admin_id):
            return self._admin_id
        return None

    def votes_needed(self) -> int:
        return len(self._clients) // 2 + 1

    def voters_for(self, candidate_id: int) -> Set[int]:
        return set(self._votes.get(candidate_id, set()))

    def vote(self, voter_id: int, candidate_id: int) -> bool:
        for candidate, voters in list(self._votes.items()):
            voters.discard(voter_id)
            if not voters:
                del self._votes[candidate]
        self._votes.setdefault(candidate_id, set()).add(voter_id)

        needed = self.votes_needed()
        count = len(self._votes[candidate_id])
        logger.info(f"[election] vote voter={voter_id} candidate={candidate_id} count={count}/{needed}")
        if count >= needed:
            self.promote(candidate_id)
            return True
        return False

    def promote(self, candidate_id: int) -> Optional[int]:
        """Make ``candidate_id`` admin, clear all votes, and return the previous admin id."""
        previous = self._admin_id
        self._admin_id = candidate_id
        self.previous_admin_id = previous
        self._votes.clear()
        logger.info(f"[election] admin changed {previous} -> {candidate_id}")
        return previous

    def status(self) -> ElectionStatus:
        return ElectionStatus(
            votes={str(c): len(v) for c, v in self._votes.items()},
            totalVoters=len(self._clients),
            votesNeeded=self.votes_needed(),
            adminId=self.admin_id,
        )
