"""
Identity / time collaborator.

Every request carries who is asking and what "now" is, so pronouns and
temporal phrases resolve the same way for the whole pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now()


@dataclass(frozen=True)
class RequestContext:
    user_id: Optional[str] = None
    now: datetime = field(default_factory=system_clock)

    @classmethod
    def create(cls, user_id: Optional[str] = None, clock: Clock = system_clock) -> "RequestContext":
        return cls(user_id=user_id, now=clock())
