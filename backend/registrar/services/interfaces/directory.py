"""
Participant directory interface (user-management collaborator).
"""

from abc import ABC, abstractmethod


class ParticipantDirectory(ABC):

    @abstractmethod
    async def participant_exists(self, participant_id: int) -> bool:
        pass
