"""Authenticated principal handed from the JWT middleware to the services."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    id: str
    role: str

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(id=str(user.id), role=user.role)
