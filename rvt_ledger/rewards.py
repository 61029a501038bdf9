"""
Pluggable policies the ledger calls through.

RewardPolicy decides how much claim_rewards mints; ProjectRegistry records
energy-project associations. Neither touches the log directly, so swapping
them cannot break the ledger's invariants.
"""
import logging
from .core import Account, Principal

logger = logging.getLogger(__name__)


class RewardPolicy:
    def calculate(self, account: Account, project_id: int) -> int:
        """Reward owed to `account` for `project_id`."""
        raise NotImplementedError


class FixedReward(RewardPolicy):
    """Pays the same amount on every claim."""

    def __init__(self, amount: int = 100_000_000):
        if amount < 0:
            raise ValueError("Reward amount cannot be negative")
        self.amount = amount

    def calculate(self, account: Account, project_id: int) -> int:
        return self.amount


class ProjectRegistry:
    def associate(self, caller: Principal, project_id: int, amount: int):
        """Record that `caller` associated `amount` with `project_id`."""
        raise NotImplementedError


class NullProjectRegistry(ProjectRegistry):
    """Accepts every association and records nothing."""

    def associate(self, caller: Principal, project_id: int, amount: int):
        logger.debug(f"Ignoring association of {caller} with project {project_id} ({amount})")


class InMemoryProjectRegistry(ProjectRegistry):
    """Keeps associations in a list; useful for tests and local runs."""

    def __init__(self):
        self.associations: list[tuple[Principal, int, int]] = []

    def associate(self, caller: Principal, project_id: int, amount: int):
        self.associations.append((caller, project_id, amount))

    def projects_for(self, caller: Principal) -> list[int]:
        return [project_id for owner, project_id, _ in self.associations if owner == caller]
