"""Tests for story persistence, sequence allocation, chains and hearts."""
import threading

import pytest
from fastapi.testclient import TestClient

from storychain.auth.schemas import UserStatus
from storychain.auth.service import UserService
from storychain.errors import ConflictError, InvalidInputError, NotFoundError
from storychain.main import app
from storychain.rooms.schemas import RoomCreate
from storychain.rooms.service import RoomService
from storychain.stories.schemas import MAX_CHAIN_ID
from storychain.stories.service import StoryService


client = TestClient(app)


@pytest.fixture
def stories(in_memory_database):
    return StoryService(in_memory_database, max_content_length=500)


class TestSequenceAllocation:

    def test_first_story_starts_a_chain_at_sequence_one(self, stories, make_user):
        author, _ = make_user()
        story = stories.create(author, "Once upon a time")

        assert story.chainId == 1
        assert story.sequence == 1
        assert story.authorName == "alice"
        assert story.roomId is None

    def test_sequences_increase_within_a_chain(self, stories, make_user):
        author, _ = make_user()
        first = stories.create(author, "One")
        second = stories.create(author, "Two", chain_id=first.chainId)
        third = stories.create(author, "Three", chain_id=first.chainId)

        assert [first.sequence, second.sequence, third.sequence] == [1, 2, 3]

    def test_chains_number_independently(self, stories, make_user):
        author, _ = make_user()
        a = stories.create(author, "Chain A")
        b = stories.create(author, "Chain B")
        b2 = stories.create(author, "Chain B again", chain_id=b.chainId)

        assert (a.chainId, b.chainId) == (1, 2)
        assert b2.sequence == 2
        assert stories.next_chain_id() == 3

    def test_explicit_next_chain_id_starts_at_one(self, stories, make_user):
        author, _ = make_user()
        stories.create(author, "First chain")
        story = stories.create(author, "Fresh", chain_id=stories.next_chain_id())

        assert (story.chainId, story.sequence) == (2, 1)

    @pytest.mark.parametrize("chain_id", [42, MAX_CHAIN_ID])
    def test_new_chain_cannot_skip_ahead(self, stories, make_user, chain_id):
        author, _ = make_user()
        with pytest.raises(InvalidInputError):
            stories.create(author, "Far away", chain_id=chain_id)

        assert stories.create(author, "Normal").chainId == 1
        assert stories.next_chain_id() == 2

    def test_concurrent_submissions_never_duplicate_sequence(self, stories, make_user):
        author, _ = make_user()
        chain_id = stories.create(author, "Start").chainId
        errors = []

        def submit(i):
            try:
                stories.create(author, f"Part {i}", chain_id=chain_id)
            except Exception as exc:  # pragma: no cover - reported below
                errors.append(exc)

        threads = [threading.Thread(target=submit, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        sequences = [s.sequence for s in stories.chain(chain_id)]
        assert sequences == list(range(1, 22))


class TestCreateValidation:

    def test_content_is_stripped(self, stories, make_user):
        author, _ = make_user()
        assert stories.create(author, "  padded  ").content == "padded"

    @pytest.mark.parametrize("content", ["", "   ", "x" * 501])
    def test_bad_content_rejected(self, stories, make_user, content):
        author, _ = make_user()
        with pytest.raises(InvalidInputError):
            stories.create(author, content)

    def test_unknown_room_rejected(self, stories, make_user):
        author, _ = make_user()
        with pytest.raises(NotFoundError):
            stories.create(author, "Hello", room_id="no-such-room")

    def test_chain_keeps_its_room(self, in_memory_database, stories, make_user):
        author, _ = make_user()
        rooms = RoomService(in_memory_database)
        r1 = rooms.create(author.id, RoomCreate(name="One"))
        r2 = rooms.create(author.id, RoomCreate(name="Two"))
        first = stories.create(author, "In room one", room_id=r1.id)

        inherited = stories.create(author, "No room given", chain_id=first.chainId)
        assert inherited.roomId == r1.id

        with pytest.raises(ConflictError):
            stories.create(author, "Wrong room", chain_id=first.chainId, room_id=r2.id)

    def test_author_gains_contribution_and_xp(self, in_memory_database, stories, make_user):
        author, _ = make_user()
        for i in range(10):
            stories.create(author, f"Line {i}")

        refreshed = UserService(in_memory_database).get(author.id)
        assert refreshed.contributionsCount == 10
        assert refreshed.experiencePoints == 100
        assert refreshed.level == 2


class TestChains:

    def test_chains_grouped_and_ordered(self, stories, make_user):
        alice, _ = make_user("alice")
        bob, _ = make_user("bob")
        old = stories.create(alice, "Old chain")
        new = stories.create(bob, "New chain")
        stories.create(alice, "New chain, part two", chain_id=new.chainId)

        chains = stories.chains(limit=10)

        assert [c.chainId for c in chains] == [new.chainId, old.chainId]
        latest = chains[0]
        assert [s.sequence for s in latest.stories] == [1, 2]
        assert latest.contributorCount == 2
        assert latest.totalHearts == 0

    def test_chains_limit_and_room_filter(self, in_memory_database, stories, make_user):
        author, _ = make_user()
        room = RoomService(in_memory_database).create(author.id, RoomCreate(name="Den"))
        for i in range(3):
            stories.create(author, f"Global {i}")
        in_room = stories.create(author, "Roomy", room_id=room.id)

        assert len(stories.chains(limit=2)) == 2
        room_chains = stories.chains(limit=10, room_id=room.id)
        assert [c.chainId for c in room_chains] == [in_room.chainId]

    def test_empty(self, stories):
        assert stories.chains() == []
        assert stories.chain(99) == []
        assert stories.next_chain_id() == 1


class TestHearts:

    def test_toggle_adds_then_removes(self, in_memory_database, stories, make_user):
        author, _ = make_user("author")
        fan, _ = make_user("fan")
        story = stories.create(author, "Heart me")

        assert stories.toggle_heart(story.id, fan.id).model_dump() == {"hearted": True, "hearts": 1}
        assert UserService(in_memory_database).get(author.id).heartsReceived == 1

        assert stories.toggle_heart(story.id, fan.id).model_dump() == {"hearted": False, "hearts": 0}
        assert UserService(in_memory_database).get(author.id).heartsReceived == 0

    def test_counter_matches_heart_rows(self, in_memory_database, stories, make_user):
        author, _ = make_user("author")
        story = stories.create(author, "Popular")
        fans = [make_user(f"fan{i}")[0] for i in range(4)]
        for fan in fans:
            stories.toggle_heart(story.id, fan.id)
        stories.toggle_heart(story.id, fans[0].id)

        rows = in_memory_database.fetchone(
            "SELECT COUNT(*) FROM hearts WHERE story_id = ?", [story.id]
        )[0]
        assert stories.get(story.id).hearts == rows == 3

    def test_unknown_story(self, stories, make_user):
        fan, _ = make_user()
        with pytest.raises(NotFoundError):
            stories.toggle_heart("missing", fan.id)


class TestStoriesAPI:

    def test_create_requires_auth(self):
        resp = client.post("/api/stories", json={"content": "Hi"})
        assert resp.status_code == 401

    def test_pending_user_cannot_post(self, make_user):
        _, headers = make_user(status=UserStatus.PENDING)
        resp = client.post("/api/stories", json={"content": "Hi"}, headers=headers)
        assert resp.status_code == 403

    def test_create_and_fetch_chain(self, make_user):
        _, headers = make_user()
        resp = client.post("/api/stories", json={"content": "Begin"}, headers=headers)
        assert resp.status_code == 201
        story = resp.json()

        resp = client.post(
            "/api/stories",
            json={"content": "Continue", "chainId": story["chainId"]},
            headers=headers,
        )
        assert resp.json()["sequence"] == 2

        chain = client.get(f"/api/stories/chain/{story['chainId']}").json()
        assert [s["content"] for s in chain] == ["Begin", "Continue"]

        chains = client.get("/api/stories/chains").json()
        assert chains[0]["chainId"] == story["chainId"]
        assert chains[0]["contributorCount"] == 1

        assert client.get("/api/stories/next-chain-id").json() == {"chainId": 2}
        assert client.get(f"/api/stories/{story['id']}").json()["content"] == "Begin"

    def test_invalid_content_is_400(self, make_user):
        _, headers = make_user()
        resp = client.post("/api/stories", json={"content": "   "}, headers=headers)
        assert resp.status_code == 400

    def test_heart_endpoint(self, make_user):
        _, author_headers = make_user("author")
        _, fan_headers = make_user("fan")
        story = client.post("/api/stories", json={"content": "Love"}, headers=author_headers).json()

        resp = client.post(f"/api/stories/{story['id']}/heart", headers=fan_headers)
        assert resp.json() == {"hearted": True, "hearts": 1}
        resp = client.post(f"/api/stories/{story['id']}/heart", headers=fan_headers)
        assert resp.json() == {"hearted": False, "hearts": 0}

        resp = client.post("/api/stories/missing/heart", headers=fan_headers)
        assert resp.status_code == 404

    def test_user_profile_and_stories(self, make_user):
        user, headers = make_user()
        client.post("/api/stories", json={"content": "Mine"}, headers=headers)

        profile = client.get(f"/api/users/{user.id}").json()
        assert profile["contributionsCount"] == 1
        assert profile["experiencePoints"] == 10

        mine = client.get(f"/api/users/{user.id}/stories").json()
        assert [s["content"] for s in mine] == ["Mine"]

        assert client.get("/api/users/nobody").status_code == 404
        assert client.get("/api/users/nobody/stories").status_code == 404

    def test_top_chain_id_cannot_exhaust_allocation(self, make_user):
        _, headers = make_user()

        resp = client.post(
            "/api/stories", json={"content": "edge", "chainId": MAX_CHAIN_ID}, headers=headers
        )
        assert resp.status_code == 400

        resp = client.post("/api/stories", json={"content": "new chain"}, headers=headers)
        assert resp.status_code == 201
        assert resp.json()["chainId"] == 1
        assert client.get("/api/stories/next-chain-id").json() == {"chainId": 2}

    @pytest.mark.parametrize("chain_id", [0, MAX_CHAIN_ID + 1, 3_000_000_000])
    def test_out_of_range_chain_id_is_422(self, make_user, chain_id):
        _, headers = make_user()
        resp = client.post(
            "/api/stories", json={"content": "edge", "chainId": chain_id}, headers=headers
        )
        assert resp.status_code == 422
        assert client.get(f"/api/stories/chain/{chain_id}").status_code == 422

    def test_database_work_runs_off_the_event_loop(self, make_user, track_event_loop):
        _, headers = make_user()
        creates = track_event_loop(StoryService, "create")
        chains = track_event_loop(StoryService, "chains")

        assert client.post("/api/stories", json={"content": "Hi"}, headers=headers).status_code == 201
        assert client.get("/api/stories/chains").status_code == 200

        assert creates == [False]
        assert chains == [False]
