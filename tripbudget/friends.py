"""
friends.py - friend requests, friendships and blocking

Friendships are stored on the tracker as directed records: user_id sent the
request (or blocked), friend_id received it. A pair of users has at most one
record, whatever its direction.
"""

from typing import Dict, List, Optional

from tripbudget.config import get_logger
from tripbudget.errors import AccessDenied, FriendshipError, RecordNotFound
from tripbudget.models import STATUS_ACCEPTED, STATUS_BLOCKED, STATUS_PENDING, Friendship, User, now_iso

logger = get_logger(__name__)

SEARCH_LIMIT = 10
SEARCH_MIN_LENGTH = 2


def _user_row(user: User, friendship: Optional[Friendship] = None) -> Dict:
    row = {
        "user_id": user.user_id,
        "name": user.name,
        "email": user.email,
        "image_url": user.image_url,
    }
    if friendship is not None:
        row["friendship_id"] = friendship.id
        row["created_at"] = friendship.created_at
    return row


class FriendDirectory:
    """Friendship operations on top of a TripTracker's records and persistence."""

    def __init__(self, tracker):
        self.tracker = tracker

    def _between(self, a: str, b: str) -> Optional[Friendship]:
        return next((f for f in self.tracker.friendships if {f.user_id, f.friend_id} == {a, b}), None)

    def _get(self, friendship_id: int) -> Friendship:
        friendship = next((f for f in self.tracker.friendships if f.id == friendship_id), None)
        if friendship is None:
            raise RecordNotFound("Friend request not found")
        return friendship

    def _users(self, rows) -> List[Dict]:
        out = []
        for user_id, friendship in rows:
            user = self.tracker.get_user(user_id)
            # users removed from the identity provider are skipped
            if user is not None:
                out.append(_user_row(user, friendship))
        return out

    # -----------------------
    # Queries
    # -----------------------
    def friends(self, user_id: Optional[str]) -> List[Dict]:
        user_id = self.tracker.require_user(user_id)
        rows = []
        for f in self.tracker.friendships:
            if f.status != STATUS_ACCEPTED:
                continue
            if f.user_id == user_id:
                rows.append((f.friend_id, None))
            elif f.friend_id == user_id:
                rows.append((f.user_id, None))
        return self._users(rows)

    def pending_requests(self, user_id: Optional[str]) -> List[Dict]:
        """Incoming requests waiting for this user's answer."""
        user_id = self.tracker.require_user(user_id)
        return self._users(
            (f.user_id, f) for f in self.tracker.friendships
            if f.friend_id == user_id and f.status == STATUS_PENDING
        )

    def sent_requests(self, user_id: Optional[str]) -> List[Dict]:
        user_id = self.tracker.require_user(user_id)
        return self._users(
            (f.friend_id, f) for f in self.tracker.friendships
            if f.user_id == user_id and f.status == STATUS_PENDING
        )

    def search_users(self, user_id: Optional[str], query: str) -> List[Dict]:
        """
        Find users to befriend by name or email (case-insensitive substring).
        Excludes self and anyone the user already has a relationship with.
        """
        user_id = self.tracker.require_user(user_id)
        query = (query or "").strip().lower()
        if len(query) < SEARCH_MIN_LENGTH:
            return []
        excluded = {user_id}
        for f in self.tracker.friendships:
            if f.user_id == user_id:
                excluded.add(f.friend_id)
            elif f.friend_id == user_id:
                excluded.add(f.user_id)
        matches = [
            u for u in self.tracker.users.values()
            if u.user_id not in excluded and (query in u.name.lower() or query in u.email.lower())
        ]
        return [_user_row(u) for u in matches[:SEARCH_LIMIT]]

    def are_friends(self, a: str, b: str) -> bool:
        return self.tracker.are_friends(a, b)

    # -----------------------
    # Mutations
    # -----------------------
    def send_request(self, user_id: Optional[str], friend_id: str) -> Friendship:
        user_id = self.tracker.require_user(user_id)
        self.tracker.refresh_remote()
        if user_id == friend_id:
            raise FriendshipError("Cannot send friend request to yourself")
        if self._between(user_id, friend_id) is not None:
            raise FriendshipError("Friendship already exists or pending")
        if self.tracker.get_user(friend_id) is None:
            raise RecordNotFound("User not found")
        friendship = Friendship(
            id=self.tracker.take_id("friendships"), user_id=user_id, friend_id=friend_id, status=STATUS_PENDING,
        )
        self.tracker.friendships.append(friendship)
        self.tracker.save()
        logger.info("Friend request %s -> %s", user_id, friend_id)
        return friendship

    def accept_request(self, user_id: Optional[str], friendship_id: int) -> Friendship:
        user_id = self.tracker.require_user(user_id)
        self.tracker.refresh_remote()
        friendship = self._get(friendship_id)
        if friendship.friend_id != user_id:
            raise AccessDenied("Not authorized to accept this request")
        if friendship.status != STATUS_PENDING:
            raise FriendshipError("Request is not pending")
        friendship.status = STATUS_ACCEPTED
        friendship.updated_at = now_iso()
        self.tracker.save()
        return friendship

    def reject_request(self, user_id: Optional[str], friendship_id: int) -> None:
        """Decline an incoming request or cancel an outgoing one."""
        user_id = self.tracker.require_user(user_id)
        self.tracker.refresh_remote()
        friendship = self._get(friendship_id)
        if user_id not in (friendship.user_id, friendship.friend_id):
            raise AccessDenied("Not authorized to reject this request")
        self.tracker.friendships.remove(friendship)
        self.tracker.save()

    def remove_friend(self, user_id: Optional[str], friend_id: str) -> None:
        user_id = self.tracker.require_user(user_id)
        self.tracker.refresh_remote()
        friendship = self._between(user_id, friend_id)
        if friendship is None:
            raise RecordNotFound("Friendship not found")
        self.tracker.friendships.remove(friendship)
        self.tracker.save()

    def block_user(self, user_id: Optional[str], other_id: str) -> Friendship:
        """Turn any relationship with other_id into a block owned by user_id."""
        user_id = self.tracker.require_user(user_id)
        if user_id == other_id:
            raise FriendshipError("Cannot block yourself")
        self.tracker.refresh_remote()
        friendship = self._between(user_id, other_id)
        if friendship is None:
            friendship = Friendship(
                id=self.tracker.take_id("friendships"), user_id=user_id, friend_id=other_id, status=STATUS_BLOCKED,
            )
            self.tracker.friendships.append(friendship)
        else:
            friendship.user_id = user_id
            friendship.friend_id = other_id
            friendship.status = STATUS_BLOCKED
            friendship.updated_at = now_iso()
        self.tracker.save()
        logger.info("User %s blocked %s", user_id, other_id)
        return friendship
