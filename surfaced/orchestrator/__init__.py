"""Shop job coordination and periodic scheduling"""

from .coordinator import JobCoordinator
from .scheduler import JobScheduler

__all__ = ["JobCoordinator", "JobScheduler"]
