import asyncio
import json

import pytest
from fastapi import HTTPException

from conftest import auth_headers, make_brand_manager, make_campaign, make_creator, make_staff, make_task
from auth.ownership import Actor
from database.models import UserRole
from database.marketplace_models import TaskStatusDB
from routers.realtime import authorize_filters, event_stream
from services.change_feed import Change, ChangeFeed, change_feed


class _ConnectedRequest:
    async def is_disconnected(self):
        return False


class TestChangeFeed:

    def test_committed_change_reaches_matching_subscriber(self, db, brand, creator):
        _, brand_id = brand
        campaign = make_campaign(db, brand_id)
        task = make_task(db, campaign, creator, status=TaskStatusDB.UPLOADED)
        db.refresh(task)

        async def scenario():
            mine = change_feed.subscribe("tasks", {"creator_id": creator.id})
            others = change_feed.subscribe("tasks", {"creator_id": "someone-else"})
            try:
                task.status = TaskStatusDB.APPROVED
                db.commit()
                change = await asyncio.wait_for(mine.queue.get(), timeout=1)
                assert others.queue.empty()
                return change
            finally:
                change_feed.unsubscribe(mine)
                change_feed.unsubscribe(others)

        change = asyncio.run(scenario())

        assert change.table == "tasks"
        assert change.action == "UPDATE"
        assert change.record["id"] == task.id
        assert change.record["status"] == "approved"

    def test_rolled_back_change_is_not_published(self, db, brand, creator):
        _, brand_id = brand
        campaign = make_campaign(db, brand_id)
        task = make_task(db, campaign, creator, status=TaskStatusDB.UPLOADED)
        db.refresh(task)

        async def scenario():
            sub = change_feed.subscribe("tasks", {"creator_id": creator.id})
            try:
                task.status = TaskStatusDB.APPROVED
                db.flush()
                db.rollback()
                await asyncio.sleep(0.05)
                return sub.queue.empty()
            finally:
                change_feed.unsubscribe(sub)

        assert asyncio.run(scenario()) is True

    def test_late_subscriber_gets_no_backlog(self, db, brand, creator):
        _, brand_id = brand
        campaign = make_campaign(db, brand_id)
        make_task(db, campaign, creator, status=TaskStatusDB.UPLOADED)

        async def scenario():
            sub = change_feed.subscribe("tasks")
            try:
                await asyncio.sleep(0.05)
                return sub.queue.empty()
            finally:
                change_feed.unsubscribe(sub)

        assert asyncio.run(scenario()) is True

    def test_unwatched_tables_are_ignored(self, db):
        async def scenario():
            sub = change_feed.subscribe("users")
            try:
                make_creator(db, email="quiet@example.com")
                await asyncio.sleep(0.05)
                return sub.queue.empty()
            finally:
                change_feed.unsubscribe(sub)

        assert asyncio.run(scenario()) is True


class TestEventStream:

    def test_ready_then_change_then_cleanup(self):
        feed = ChangeFeed()

        async def scenario():
            sub = feed.subscribe("payments", {"task_id": "task-1"})
            stream = event_stream(_ConnectedRequest(), feed, sub)

            ready = await stream.__anext__()
            feed.publish(Change("payments", "INSERT", {"id": "pay-1", "task_id": "task-1", "status": "pending"}))
            change = await asyncio.wait_for(stream.__anext__(), timeout=1)
            await stream.aclose()
            return ready, change

        ready, change = asyncio.run(scenario())

        assert ready.startswith("event: ready\n")
        assert change.startswith("event: change\n")
        data = json.loads(change.split("data: ", 1)[1])
        assert data == {
            "table": "payments",
            "action": "INSERT",
            "record": {"id": "pay-1", "task_id": "task-1", "status": "pending"},
        }
        assert feed.subscriber_count == 0


class TestSubscriptionAuthorization:

    def test_staff_may_listen_unfiltered(self, db):
        support = make_staff(db, UserRole.SUPPORT)
        authorize_filters(db, Actor(support, db), "tasks", {})

    def test_creator_must_filter(self, db, creator):
        with pytest.raises(HTTPException) as exc:
            authorize_filters(db, Actor(creator, db), "tasks", {})
        assert exc.value.status_code == 403

    def test_creator_may_filter_on_self(self, db, creator):
        authorize_filters(db, Actor(creator, db), "tasks", {"creator_id": creator.id})

    def test_creator_cannot_filter_on_someone_else(self, db, creator):
        other = make_creator(db, email="other@example.com")
        with pytest.raises(HTTPException) as exc:
            authorize_filters(db, Actor(creator, db), "tasks", {"creator_id": other.id})
        assert exc.value.status_code == 403

    def test_brand_may_filter_on_own_campaign(self, db, brand):
        manager, brand_id = brand
        campaign = make_campaign(db, brand_id)
        authorize_filters(db, Actor(manager, db), "applications", {"campaign_id": campaign.id})

    def test_brand_cannot_filter_on_foreign_task(self, db, brand, creator):
        manager, _ = brand
        _, other_brand_id = make_brand_manager(db, email="boss@other.co.il", brand_name="Other")
        task = make_task(db, make_campaign(db, other_brand_id), creator)

        with pytest.raises(HTTPException) as exc:
            authorize_filters(db, Actor(manager, db), "payments", {"task_id": task.id})
        assert exc.value.status_code == 403


class TestRealtimeEndpoint:

    def test_unknown_table(self, client, creator):
        resp = client.get("/api/realtime/users", params={"user_id": creator.id}, headers=auth_headers(creator))
        assert resp.status_code == 400

    def test_unsupported_filter(self, client, creator):
        resp = client.get("/api/realtime/payments", params={"creator_id": creator.id}, headers=auth_headers(creator))
        assert resp.status_code == 400

    def test_unfiltered_creator_is_forbidden(self, client, creator):
        resp = client.get("/api/realtime/tasks", headers=auth_headers(creator))
        assert resp.status_code == 403

    def test_requires_token(self, client):
        assert client.get("/api/realtime/tasks").status_code == 401
