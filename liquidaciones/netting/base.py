from abc import ABC, abstractmethod

from liquidaciones.netting.models import NetResult


class PenaltyNetter(ABC):
    @abstractmethod
    async def net(self, session, absorbing_id: int, penalized_ids: list[int]) -> NetResult:
        """Offset the selected penalties against the absorbing commission, all or nothing."""
        ...
