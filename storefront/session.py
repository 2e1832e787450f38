"""
Explicit viewer session.
Passed to whatever needs identity instead of reading ambient storage.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Session:
    token: Optional[str] = None
    user_id: Optional[str] = None
    name: Optional[str] = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def auth_headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @classmethod
    def anonymous(cls) -> "Session":
        return cls()
