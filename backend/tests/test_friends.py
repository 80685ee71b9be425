"""Tests for friend search, requests and the friend list."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

import pytest
from httpx import AsyncClient


@dataclass
class Account:
    id: str
    name: str
    email: str
    headers: dict[str, str]


def make_user_payload(prefix: str) -> dict[str, str]:
    suffix = uuid4().hex[:6]
    return {
        "name": f"{prefix} {suffix}",
        "email": f"{prefix}_{suffix}@example.com",
        "password": "Sup3rSecret!",
    }


async def signup(client: AsyncClient, prefix: str) -> Account:
    payload = make_user_payload(prefix)
    register = await client.post("/api/v1/auth/register", json=payload)
    assert register.status_code == 201
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": payload["email"], "password": payload["password"]},
    )
    assert login.status_code == 200
    return Account(
        id=register.json()["id"],
        name=payload["name"],
        email=payload["email"],
        headers={"Authorization": f"Bearer {login.json()['access_token']}"},
    )


async def send_request(client: AsyncClient, sender: Account, addressee: Account) -> dict:
    response = await client.post(
        "/api/v1/friends/requests",
        json={"addressee_id": addressee.id},
        headers=sender.headers,
    )
    assert response.status_code == 201
    return response.json()["request"]


async def make_friends(client: AsyncClient, first: Account, second: Account) -> None:
    request = await send_request(client, first, second)
    response = await client.patch(
        f"/api/v1/friends/requests/{request['id']}",
        json={"action": "accept"},
        headers=second.headers,
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_search_matches_name_and_email_case_insensitively(async_client: AsyncClient):
    viewer = await signup(async_client, "viewer")
    kiter = await signup(async_client, "kiter")
    await signup(async_client, "surfer")

    by_name = await async_client.get(
        "/api/v1/friends/search",
        params={"q": "KITER"},
        headers=viewer.headers,
    )
    assert by_name.status_code == 200
    assert [user["id"] for user in by_name.json()["users"]] == [kiter.id]

    by_email = await async_client.get(
        "/api/v1/friends/search",
        params={"q": kiter.email.split("@")[0]},
        headers=viewer.headers,
    )
    assert [user["id"] for user in by_email.json()["users"]] == [kiter.id]


@pytest.mark.asyncio
async def test_search_excludes_self_and_blocked_users(async_client: AsyncClient):
    viewer = await signup(async_client, "rider")
    blocked = await signup(async_client, "rider")
    blocker = await signup(async_client, "rider")
    visible = await signup(async_client, "rider")

    await async_client.post(f"/api/v1/users/{blocked.id}/block", headers=viewer.headers)
    await async_client.post(f"/api/v1/users/{viewer.id}/block", headers=blocker.headers)

    response = await async_client.get(
        "/api/v1/friends/search",
        params={"q": "rider"},
        headers=viewer.headers,
    )

    assert response.status_code == 200
    assert [user["id"] for user in response.json()["users"]] == [visible.id]


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(async_client: AsyncClient):
    viewer = await signup(async_client, "viewer")
    await signup(async_client, "other")

    response = await async_client.get(
        "/api/v1/friends/search",
        params={"q": "%"},
        headers=viewer.headers,
    )

    assert response.status_code == 200
    assert response.json()["users"] == []


@pytest.mark.asyncio
async def test_send_request_creates_pending_edge(async_client: AsyncClient):
    sender = await signup(async_client, "sender")
    addressee = await signup(async_client, "addressee")

    request = await send_request(async_client, sender, addressee)

    assert request["requester_id"] == sender.id
    assert request["addressee_id"] == addressee.id
    assert request["status"] == "pending"


@pytest.mark.asyncio
async def test_send_request_rejects_self(async_client: AsyncClient):
    sender = await signup(async_client, "self")

    response = await async_client.post(
        "/api/v1/friends/requests",
        json={"addressee_id": sender.id},
        headers=sender.headers,
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Cannot send a friend request to yourself"}


@pytest.mark.asyncio
async def test_send_request_to_unknown_or_blocked_user_is_not_found(async_client: AsyncClient):
    sender = await signup(async_client, "sender")
    blocker = await signup(async_client, "blocker")
    await async_client.post(f"/api/v1/users/{sender.id}/block", headers=blocker.headers)

    unknown = await async_client.post(
        "/api/v1/friends/requests",
        json={"addressee_id": str(uuid4())},
        headers=sender.headers,
    )
    blocked = await async_client.post(
        "/api/v1/friends/requests",
        json={"addressee_id": blocker.id},
        headers=sender.headers,
    )

    assert unknown.status_code == 404
    assert blocked.status_code == 404
    assert blocked.json() == {"message": "User not found"}


@pytest.mark.asyncio
async def test_send_request_conflicts_in_either_direction(async_client: AsyncClient):
    first = await signup(async_client, "first")
    second = await signup(async_client, "second")
    await send_request(async_client, first, second)

    reverse = await async_client.post(
        "/api/v1/friends/requests",
        json={"addressee_id": first.id},
        headers=second.headers,
    )
    assert reverse.status_code == 409
    assert reverse.json() == {"message": "Friend request already pending"}


@pytest.mark.asyncio
async def test_send_request_to_existing_friend_conflicts(async_client: AsyncClient):
    first = await signup(async_client, "first")
    second = await signup(async_client, "second")
    await make_friends(async_client, first, second)

    response = await async_client.post(
        "/api/v1/friends/requests",
        json={"addressee_id": second.id},
        headers=first.headers,
    )

    assert response.status_code == 409
    assert response.json() == {"message": "You are already friends"}


@pytest.mark.asyncio
async def test_list_requests_filters_by_direction(async_client: AsyncClient):
    viewer = await signup(async_client, "viewer")
    incoming_from = await signup(async_client, "incoming")
    outgoing_to = await signup(async_client, "outgoing")
    incoming = await send_request(async_client, incoming_from, viewer)
    outgoing = await send_request(async_client, viewer, outgoing_to)

    incoming_response = await async_client.get(
        "/api/v1/friends/list-requests",
        params={"type": "incoming"},
        headers=viewer.headers,
    )
    outgoing_response = await async_client.get(
        "/api/v1/friends/list-requests",
        params={"type": "outgoing"},
        headers=viewer.headers,
    )
    all_response = await async_client.get(
        "/api/v1/friends/list-requests",
        headers=viewer.headers,
    )

    assert [item["id"] for item in incoming_response.json()["requests"]] == [incoming["id"]]
    assert [item["id"] for item in outgoing_response.json()["requests"]] == [outgoing["id"]]
    assert {item["id"] for item in all_response.json()["requests"]} == {
        incoming["id"],
        outgoing["id"],
    }


@pytest.mark.asyncio
async def test_list_requests_rejects_unknown_type(async_client: AsyncClient):
    viewer = await signup(async_client, "viewer")

    response = await async_client.get(
        "/api/v1/friends/list-requests",
        params={"type": "sideways"},
        headers=viewer.headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_accept_request_makes_users_friends_both_ways(async_client: AsyncClient):
    first = await signup(async_client, "first")
    second = await signup(async_client, "second")
    request = await send_request(async_client, first, second)

    response = await async_client.patch(
        f"/api/v1/friends/requests/{request['id']}",
        json={"action": "accept"},
        headers=second.headers,
    )
    assert response.status_code == 200
    assert response.json()["request"]["status"] == "accepted"

    first_friends = await async_client.get("/api/v1/friends", headers=first.headers)
    second_friends = await async_client.get("/api/v1/friends", headers=second.headers)
    assert [user["id"] for user in first_friends.json()["friends"]] == [second.id]
    assert [user["id"] for user in second_friends.json()["friends"]] == [first.id]

    pending = await async_client.get("/api/v1/friends/list-requests", headers=second.headers)
    assert pending.json()["requests"] == []


@pytest.mark.asyncio
async def test_decline_request_removes_edge(async_client: AsyncClient):
    first = await signup(async_client, "first")
    second = await signup(async_client, "second")
    request = await send_request(async_client, first, second)

    response = await async_client.patch(
        f"/api/v1/friends/requests/{request['id']}",
        json={"action": "decline"},
        headers=second.headers,
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Friend request declined"}

    friends = await async_client.get("/api/v1/friends", headers=first.headers)
    assert friends.json()["friends"] == []
    # A declined request can be sent again.
    await send_request(async_client, first, second)


@pytest.mark.asyncio
async def test_only_addressee_may_respond(async_client: AsyncClient):
    first = await signup(async_client, "first")
    second = await signup(async_client, "second")
    request = await send_request(async_client, first, second)

    response = await async_client.patch(
        f"/api/v1/friends/requests/{request['id']}",
        json={"action": "accept"},
        headers=first.headers,
    )

    assert response.status_code == 403
    assert response.json() == {"message": "Not allowed to respond to this request"}


@pytest.mark.asyncio
async def test_respond_to_unknown_or_settled_request(async_client: AsyncClient):
    first = await signup(async_client, "first")
    second = await signup(async_client, "second")
    request = await send_request(async_client, first, second)
    await async_client.patch(
        f"/api/v1/friends/requests/{request['id']}",
        json={"action": "accept"},
        headers=second.headers,
    )

    settled = await async_client.patch(
        f"/api/v1/friends/requests/{request['id']}",
        json={"action": "decline"},
        headers=second.headers,
    )
    unknown = await async_client.patch(
        f"/api/v1/friends/requests/{uuid4()}",
        json={"action": "accept"},
        headers=second.headers,
    )

    assert settled.status_code == 400
    assert settled.json() == {"message": "Request is not pending"}
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_friend_list_hides_blocked_friend_until_unblocked(async_client: AsyncClient):
    viewer = await signup(async_client, "viewer")
    friend = await signup(async_client, "friend")
    await make_friends(async_client, viewer, friend)

    await async_client.post(f"/api/v1/users/{friend.id}/block", headers=viewer.headers)
    blocked = await async_client.get("/api/v1/friends", headers=viewer.headers)
    other_side = await async_client.get("/api/v1/friends", headers=friend.headers)
    assert blocked.json()["friends"] == []
    assert other_side.json()["friends"] == []

    await async_client.delete(f"/api/v1/users/{friend.id}/block", headers=viewer.headers)
    restored = await async_client.get("/api/v1/friends", headers=viewer.headers)
    assert [user["id"] for user in restored.json()["friends"]] == [friend.id]
