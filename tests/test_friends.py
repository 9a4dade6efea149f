import pytest

from tripbudget.errors import AccessDenied, FriendshipError, RecordNotFound
from tripbudget.friends import FriendDirectory
from tripbudget.tracker import TripTracker


@pytest.fixture
def friends(tracker):
    return FriendDirectory(tracker)


def test_request_and_accept(friends):
    request = friends.send_request("alice", "bob")
    assert request.status == "pending"
    assert [r["user_id"] for r in friends.sent_requests("alice")] == ["bob"]
    incoming = friends.pending_requests("bob")
    assert [(r["user_id"], r["friendship_id"]) for r in incoming] == [("alice", request.id)]
    assert not friends.are_friends("alice", "bob")

    friends.accept_request("bob", request.id)
    assert friends.are_friends("alice", "bob")
    assert friends.are_friends("bob", "alice")
    assert [f["name"] for f in friends.friends("alice")] == ["Bob"]
    assert [f["name"] for f in friends.friends("bob")] == ["Alice"]
    assert friends.pending_requests("bob") == []


def test_only_recipient_accepts(friends):
    request = friends.send_request("alice", "bob")
    with pytest.raises(AccessDenied):
        friends.accept_request("alice", request.id)
    with pytest.raises(AccessDenied):
        friends.accept_request("carol", request.id)
    friends.accept_request("bob", request.id)
    with pytest.raises(FriendshipError):
        friends.accept_request("bob", request.id)


def test_invalid_requests(friends):
    with pytest.raises(FriendshipError):
        friends.send_request("alice", "alice")
    with pytest.raises(RecordNotFound):
        friends.send_request("alice", "nobody")
    friends.send_request("alice", "bob")
    with pytest.raises(FriendshipError):
        friends.send_request("bob", "alice")
    with pytest.raises(RecordNotFound):
        friends.accept_request("bob", 999)


def test_reject_or_cancel(friends):
    request = friends.send_request("alice", "bob")
    with pytest.raises(AccessDenied):
        friends.reject_request("carol", request.id)
    friends.reject_request("bob", request.id)
    assert friends.sent_requests("alice") == []

    request = friends.send_request("alice", "bob")
    friends.reject_request("alice", request.id)
    assert friends.pending_requests("bob") == []


def test_remove_friend(friends):
    request = friends.send_request("alice", "bob")
    friends.accept_request("bob", request.id)
    friends.remove_friend("bob", "alice")
    assert friends.friends("alice") == []
    with pytest.raises(RecordNotFound):
        friends.remove_friend("bob", "alice")


def test_block_user(friends, tracker):
    request = friends.send_request("bob", "alice")
    blocked = friends.block_user("alice", "bob")
    assert blocked.id == request.id
    assert (blocked.user_id, blocked.friend_id, blocked.status) == ("alice", "bob", "blocked")
    assert friends.pending_requests("alice") == []
    with pytest.raises(FriendshipError):
        friends.send_request("bob", "alice")
    with pytest.raises(FriendshipError):
        friends.block_user("alice", "alice")

    fresh = friends.block_user("alice", "carol")
    assert fresh.status == "blocked"
    assert len(tracker.friendships) == 2


def test_search_users(friends):
    results = friends.search_users("alice", "EXAMPLE.com")
    assert {r["user_id"] for r in results} == {"bob", "carol"}
    assert friends.search_users("alice", "b") == []
    friends.send_request("alice", "bob")
    assert [r["user_id"] for r in friends.search_users("alice", "example")] == ["carol"]
    assert [r["user_id"] for r in friends.search_users("alice", "car")] == ["carol"]


def test_friendships_persist(friends, data_file):
    request = friends.send_request("alice", "bob")
    friends.accept_request("bob", request.id)
    reloaded = FriendDirectory(TripTracker(data_file=data_file))
    assert reloaded.are_friends("alice", "bob")
