"""Persistence layer for user data."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from outdrinkme.domain.entities import User
from outdrinkme.infrastructure.models import FriendshipModel, UserModel


class UserRepository:
    """Lookup helpers for users and their friendships."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_external_id(self, external_id: str) -> User | None:
        model = (
            self.session.query(UserModel)
            .filter(UserModel.external_id == external_id)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def create(self, user: User) -> User:
        model = UserModel(
            external_id=user.external_id,
            username=user.username,
            email=user.email,
            is_active=user.is_active,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def add_friendship(self, user_id: int, friend_id: int) -> None:
        self.session.add(FriendshipModel(user_id=user_id, friend_id=friend_id))
        self.session.commit()

    def list_friend_ids(self, user_id: int) -> Sequence[int]:
        """Return the ids of every friend of ``user_id`` regardless of direction."""

        rows = (
            self.session.query(FriendshipModel.user_id, FriendshipModel.friend_id)
            .filter(
                or_(
                    FriendshipModel.user_id == user_id,
                    FriendshipModel.friend_id == user_id,
                )
            )
            .all()
        )
        friend_ids: list[int] = []
        seen: set[int] = set()
        for owner_id, friend_id in rows:
            other = friend_id if owner_id == user_id else owner_id
            if other == user_id or other in seen:
                continue
            seen.add(other)
            friend_ids.append(other)
        return friend_ids

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            external_id=model.external_id,
            username=model.username,
            email=model.email,
            is_active=bool(model.is_active),
            created_at=model.created_at,
        )


__all__ = ["UserRepository"]
