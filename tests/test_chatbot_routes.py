"""Route tests for the chat widget and the admin knowledge base."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from houses_bc.agents.base import AgentResult
from houses_bc.app.config import get_settings
from houses_bc.app.routes.chatbot import router as chatbot_router
from houses_bc.domain.models import ChatSession

SESSION_ID = "3f2b8c1e-9a4d-4e7b-8c6a-1d2e3f4a5b6c"


@pytest.fixture
def agent():
    """Patch ChatAgent so no model is called; yields the agent instance."""
    instance = MagicMock()
    instance.model_name = "gemini-test"
    instance.reply = AsyncMock(
        return_value=AgentResult.success("Hi <b>there</b>", tokens_used=5)
    )
    with patch("houses_bc.services.chat_service.ChatAgent", return_value=instance):
        yield instance


@pytest.fixture
async def admin_headers(make_user, bearer):
    admin = await make_user(phone="+16045550000", role="admin", name="Admin")
    return bearer(admin)


async def _send(client, message="What is the FHSA limit?", session_id=None):
    payload = {"message": message}
    if session_id:
        payload["sessionId"] = session_id
    return await client.post("/api/chatbot/message", json=payload)


class TestMessage:
    async def test_new_conversation(self, make_client, agent):
        async with make_client(chatbot_router) as client:
            resp = await _send(client)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["message"] == "Hi there"
        assert data["sessionId"]
        assert data["messageId"]
        assert data["timestamp"]
        agent.reply.assert_awaited_once()

    async def test_history_is_logged(self, make_client, agent):
        async with make_client(chatbot_router) as client:
            first = await _send(client, "Hello")
            session_id = first.json()["data"]["sessionId"]
            await _send(client, "What about strata fees?", session_id)
            history = await client.get(f"/api/chatbot/history/{session_id}")

        messages = history.json()["data"]["messages"]
        assert len(messages) == 4
        assert {m["role"] for m in messages} == {"user", "assistant"}
        assert sorted(m["content"] for m in messages if m["role"] == "user") == [
            "Hello",
            "What about strata fees?",
        ]
        assert all(m["model"] == "gemini-test" for m in messages if m["role"] == "assistant")

        # Second call sees the first exchange as history
        history_arg = agent.reply.await_args_list[1].args[1]
        assert len(history_arg) == 2

    async def test_unknown_session_id_starts_new_session(self, make_client, agent):
        async with make_client(chatbot_router) as client:
            resp = await _send(client, session_id=SESSION_ID)
        assert resp.status_code == 200
        assert resp.json()["data"]["sessionId"] != SESSION_ID

    async def test_message_is_sanitized_before_model(self, make_client, agent):
        async with make_client(chatbot_router) as client:
            await _send(client, "<b>How much</b>   down payment?")
        assert agent.reply.await_args.args[0] == "How much down payment?"

    @pytest.mark.parametrize(
        "message,error",
        [
            ("click here for free money", "Message flagged as spam"),
            ("DROP TABLE users", "Message contains invalid content"),
            ("   ", "Message cannot be empty"),
        ],
    )
    async def test_rejected_message(self, make_client, agent, message, error):
        async with make_client(chatbot_router) as client:
            resp = await _send(client, message)
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert error in resp.json()["error"]
        agent.reply.assert_not_awaited()

    async def test_invalid_session_id(self, make_client, agent):
        async with make_client(chatbot_router) as client:
            resp = await _send(client, session_id="bad id!")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid session ID"

    async def test_expired_session(self, make_client, agent, db_session):
        db_session.add(
            ChatSession(
                id=SESSION_ID,
                user_id="anonymous",
                is_active=True,
                expires_at=datetime.now(timezone.utc) - timedelta(days=1),
            )
        )
        await db_session.commit()
        async with make_client(chatbot_router) as client:
            resp = await _send(client, session_id=SESSION_ID)
        assert resp.status_code == 400
        assert "expired" in resp.json()["error"]

    async def test_rate_limit(self, make_client, agent, monkeypatch):
        monkeypatch.setattr(get_settings(), "chat_rate_limit_per_hour", 2)
        async with make_client(chatbot_router) as client:
            session_id = (await _send(client)).json()["data"]["sessionId"]
            second = await _send(client, session_id=session_id)
            third = await _send(client, session_id=session_id)
        assert second.status_code == 200
        assert third.status_code == 429
        assert third.json()["success"] is False

    async def test_rate_limit_without_session(self, make_client, agent, monkeypatch):
        monkeypatch.setattr(get_settings(), "chat_rate_limit_per_hour", 3)
        async with make_client(chatbot_router) as client:
            codes = [(await _send(client)).status_code for _ in range(4)]
        assert codes == [200, 200, 200, 429]
        assert agent.reply.await_count == 3

    async def test_unknown_session_ids_share_the_client_limit(
        self, make_client, agent, monkeypatch
    ):
        monkeypatch.setattr(get_settings(), "chat_rate_limit_per_hour", 2)
        async with make_client(chatbot_router) as client:
            codes = [
                (await _send(client, session_id=f"{SESSION_ID[:-1]}{i}")).status_code
                for i in range(3)
            ]
        assert codes == [200, 200, 429]

    async def test_model_failure_is_503(self, make_client, agent):
        agent.reply.return_value = AgentResult.failure("deadline exceeded")
        async with make_client(chatbot_router) as client:
            resp = await _send(client)
        assert resp.status_code == 503
        assert resp.json() == {
            "success": False,
            "error": "ai_chat is temporarily unavailable, please try again",
        }


class TestSessions:
    async def test_invalid_history_id(self, make_client):
        async with make_client(chatbot_router) as client:
            resp = await client.get("/api/chatbot/history/x")
        assert resp.status_code == 400

    async def test_delete_session(self, make_client, agent):
        async with make_client(chatbot_router) as client:
            session_id = (await _send(client)).json()["data"]["sessionId"]
            deleted = await client.delete(f"/api/chatbot/session/{session_id}")
            history = await client.get(f"/api/chatbot/history/{session_id}")
        assert deleted.json()["success"] is True
        assert history.json()["data"]["messages"] == []

    async def test_admin_chat_views(self, make_client, agent, admin_headers):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            session_id = (await _send(client, "Hello")).json()["data"]["sessionId"]
            chats = await client.get("/api/chatbot/admin/chats")
            detail = await client.get(f"/api/chatbot/admin/chat/{session_id}")
            missing = await client.get(f"/api/chatbot/admin/chat/{SESSION_ID}")

        session = chats.json()["data"]["sessions"][0]
        assert session["id"] == session_id
        assert session["messageCount"] == 2
        assert detail.json()["data"]["session"]["id"] == session_id
        assert len(detail.json()["data"]["messages"]) == 2
        assert missing.status_code == 404

    async def test_admin_views_require_admin(self, make_client):
        async with make_client(chatbot_router) as client:
            resp = await client.get("/api/chatbot/admin/chats")
        assert resp.status_code == 401


class TestKnowledge:
    async def test_crud(self, make_client, admin_headers):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            created = await client.post(
                "/api/chatbot/admin/knowledge",
                json={
                    "type": "market_data",
                    "title": " Vancouver benchmark ",
                    "content": "<p>Benchmark is <strong>$1.2M</strong></p><script>x()</script>",
                    "category": "market",
                },
            )
            entry = created.json()["data"]
            updated = await client.put(
                f"/api/chatbot/admin/knowledge/{entry['id']}", json={"category": "prices"}
            )
            listed = await client.get("/api/chatbot/admin/knowledge")
            deleted = await client.delete(f"/api/chatbot/admin/knowledge/{entry['id']}")
            after = await client.get("/api/chatbot/admin/knowledge")

        assert entry["title"] == "Vancouver benchmark"
        assert entry["content"] == "<p>Benchmark is <strong>$1.2M</strong></p>"
        assert entry["addedBy"]
        assert updated.json()["data"]["category"] == "prices"
        assert [k["id"] for k in listed.json()["data"]["knowledge"]] == [entry["id"]]
        assert deleted.status_code == 200
        assert after.json()["data"]["knowledge"] == []

    async def test_knowledge_feeds_the_model(self, make_client, agent, admin_headers):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            await client.post(
                "/api/chatbot/admin/knowledge",
                json={"title": "PTT", "content": "Exempt under $500K"},
            )
            await _send(client)
        knowledge = agent.reply.await_args.args[2]
        assert [k.title for k in knowledge] == ["PTT"]

    async def test_unknown_entry_is_404(self, make_client, admin_headers):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            resp = await client.delete("/api/chatbot/admin/knowledge/nope")
        assert resp.status_code == 404

    async def test_client_cannot_add(self, make_client, make_user, bearer):
        user = await make_user()
        async with make_client(chatbot_router, headers=bearer(user)) as client:
            resp = await client.post(
                "/api/chatbot/admin/knowledge", json={"title": "x", "content": "y"}
            )
        assert resp.status_code == 403


class TestSettings:
    async def test_defaults_come_from_config(self, make_client, admin_headers):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            resp = await client.get("/api/chatbot/admin/settings")
        data = resp.json()["data"]
        assert data["responseStyle"] == "friendly"
        assert data["maxMessageLength"] == get_settings().chat_max_message_length
        assert data["rateLimitPerHour"] == get_settings().chat_rate_limit_per_hour
        assert data["welcomeMessage"]

    async def test_update_drives_the_chat(self, make_client, agent, admin_headers):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            updated = await client.put(
                "/api/chatbot/admin/settings",
                json={
                    "welcomeMessage": "<b>Welcome</b> to Houses BC",
                    "responseStyle": "professional",
                    "maxMessageLength": 50,
                    "rateLimitPerHour": 1,
                },
            )
            too_long = await _send(client, "x" * 51)
            first = await _send(client)
            second = await _send(client)

        data = updated.json()["data"]
        assert data["welcomeMessage"] == "Welcome to Houses BC"
        assert data["updatedBy"]
        assert too_long.status_code == 400
        assert "Maximum 50" in too_long.json()["error"]
        assert first.status_code == 200
        assert agent.reply.await_args.kwargs["style"] == "professional"
        assert second.status_code == 429

    @pytest.mark.parametrize(
        "payload",
        [{"responseStyle": "sarcastic"}, {"rateLimitPerHour": 0}, {"maxMessageLength": 10}],
    )
    async def test_invalid_update(self, make_client, admin_headers, payload):
        async with make_client(chatbot_router, headers=admin_headers) as client:
            resp = await client.put("/api/chatbot/admin/settings", json=payload)
        assert resp.status_code == 422

    async def test_client_cannot_change(self, make_client, make_user, bearer):
        user = await make_user()
        async with make_client(chatbot_router, headers=bearer(user)) as client:
            resp = await client.put("/api/chatbot/admin/settings", json={"rateLimitPerHour": 500})
        assert resp.status_code == 403
