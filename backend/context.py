"""
Request-scoped session context.

Carries the signed-in profile and the document store through the manager
operations in place of module-wide "current user" state.
"""

from dataclasses import dataclass

import schemas
from store import DocumentStore


@dataclass
class SessionContext:
    store: DocumentStore
    profile: schemas.User

    @property
    def user_id(self) -> str:
        return self.profile.id
