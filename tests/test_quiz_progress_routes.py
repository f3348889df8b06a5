"""Route tests for quiz submission and journey progress."""

from unittest.mock import patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from houses_bc.app.routes.progress import router as progress_router
from houses_bc.app.routes.quiz import router as quiz_router
from houses_bc.domain.models import QuizResponse

QUIZ = {
    "income": 100000,
    "savings": 50000,
    "hasRRSP": False,
    "propertyType": "condo",
    "timeline": "3-6",
}


class TestQuizSubmit:
    """POST /api/quiz/submit computes figures and completes the incentives step."""

    async def test_submit_returns_breakdown_that_sums(self, make_client):
        async with make_client(quiz_router) as client:
            resp = await client.post(
                "/api/quiz/submit", json={"quizData": QUIZ, "sessionId": "sess-quiz-0001"}
            )
        assert resp.status_code == 200
        data = resp.json()["data"]
        breakdown = data["breakdown"]
        assert breakdown["affordablePrice"] > 0
        assert (
            breakdown["mortgage"] + breakdown["downPayment"]
            + breakdown["closingCosts"] + breakdown["buffer"]
            == breakdown["affordablePrice"]
        )
        assert data["incentives"]["hbp"] == 0
        assert data["sessionId"] == "sess-quiz-0001"
        assert data["progressUpdated"] is True

    async def test_missing_session_id_is_generated(self, make_client):
        async with make_client(quiz_router) as client:
            resp = await client.post("/api/quiz/submit", json={"quizData": QUIZ})
        assert resp.status_code == 200
        assert resp.json()["data"]["sessionId"]

    async def test_incentives_step_completed(self, make_client):
        async with make_client(quiz_router, progress_router) as client:
            await client.post(
                "/api/quiz/submit", json={"quizData": QUIZ, "userId": "user-quiz-1"}
            )
            resp = await client.get("/api/progress/user-quiz-1")
        progress = resp.json()["data"]
        assert progress["milestones"]["step4_incentives"]["status"] == "completed"
        assert progress["resolvedStatuses"]["step4_incentives"] == "completed"
        assert progress["overallProgress"] == 12.5

    async def test_resubmission_overwrites(self, make_client):
        async with make_client(quiz_router) as client:
            first = await client.post(
                "/api/quiz/submit", json={"quizData": QUIZ, "userId": "user-quiz-2"}
            )
            second = await client.post(
                "/api/quiz/submit",
                json={"quizData": {**QUIZ, "income": 150000}, "userId": "user-quiz-2"},
            )
            stored = await client.get("/api/quiz/response/user-quiz-2")
        assert first.json()["data"]["quizResponseId"] == second.json()["data"]["quizResponseId"]
        assert stored.json()["data"]["income"] == 150000

    async def test_sign_in_claims_anonymous_response(self, make_client, db_session):
        async with make_client(quiz_router) as client:
            anonymous = await client.post(
                "/api/quiz/submit", json={"quizData": QUIZ, "sessionId": "sess-quiz-0003"}
            )
            signed_in = await client.post(
                "/api/quiz/submit",
                json={"quizData": QUIZ, "userId": "user-quiz-4", "sessionId": "sess-quiz-0003"},
            )
            stored = await client.get("/api/quiz/response/user-quiz-4")

        assert (
            anonymous.json()["data"]["quizResponseId"]
            == signed_in.json()["data"]["quizResponseId"]
        )
        assert stored.json()["data"]["sessionId"] == "sess-quiz-0003"
        count = (await db_session.execute(select(func.count(QuizResponse.id)))).scalar()
        assert count == 1

    async def test_other_users_response_is_not_claimed(self, make_client):
        async with make_client(quiz_router) as client:
            first = await client.post(
                "/api/quiz/submit",
                json={"quizData": QUIZ, "userId": "user-quiz-5", "sessionId": "sess-quiz-0004"},
            )
            second = await client.post(
                "/api/quiz/submit",
                json={"quizData": QUIZ, "userId": "user-quiz-6", "sessionId": "sess-quiz-0004"},
            )
        assert first.json()["data"]["quizResponseId"] != second.json()["data"]["quizResponseId"]

    async def test_invalid_quiz_rejected(self, make_client):
        async with make_client(quiz_router) as client:
            resp = await client.post(
                "/api/quiz/submit",
                json={"quizData": {**QUIZ, "income": 0, "propertyType": "castle"}},
            )
        assert resp.status_code == 422

    async def test_progress_failure_is_reported_not_raised(self, make_client):
        with patch(
            "houses_bc.app.routes.quiz.complete_milestone",
            side_effect=OperationalError("UPDATE", {}, Exception("database is locked")),
        ):
            async with make_client(quiz_router) as client:
                resp = await client.post(
                    "/api/quiz/submit", json={"quizData": QUIZ, "userId": "user-quiz-3"}
                )
        assert resp.status_code == 200
        assert resp.json()["data"]["progressUpdated"] is False


class TestQuizResponse:
    async def test_unknown_id_is_404_envelope(self, make_client):
        async with make_client(quiz_router) as client:
            resp = await client.get("/api/quiz/response/nobody")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Quiz response not found"}

    async def test_update_recalculates(self, make_client):
        async with make_client(quiz_router) as client:
            await client.post(
                "/api/quiz/submit", json={"quizData": QUIZ, "sessionId": "sess-quiz-0002"}
            )
            resp = await client.put(
                "/api/quiz/response/sess-quiz-0002",
                json={"quizData": {**QUIZ, "savings": 0}},
            )
        assert resp.status_code == 200
        assert resp.json()["data"]["calculatedBreakdown"]["buffer"] == 0


class TestProgressRoutes:
    async def test_new_id_auto_creates(self, make_client):
        async with make_client(progress_router) as client:
            resp = await client.get("/api/progress/brand-new")
        data = resp.json()["data"]
        assert data["milestones"]["step1_creditScore"]["status"] == "available"
        assert data["resolvedStatuses"]["step1_creditScore"] == "available"
        assert data["resolvedStatuses"]["step2_fhsa"] == "locked"

    async def test_complete_unlocks_next(self, make_client):
        async with make_client(progress_router) as client:
            await client.get("/api/progress/u-chain")
            resp = await client.post(
                "/api/progress/u-chain/complete/step1_creditScore", json={"data": {"score": 700}}
            )
        data = resp.json()["data"]
        assert data["milestones"]["step1_creditScore"]["completedAt"]
        assert data["milestones"]["step1_creditScore"]["data"] == {"score": 700}
        assert data["resolvedStatuses"]["step2_fhsa"] == "available"
        assert data["resolvedStatuses"]["step3_preApproval"] == "locked"

    async def test_complete_without_body(self, make_client):
        async with make_client(progress_router) as client:
            await client.get("/api/progress/u-nobody")
            resp = await client.post("/api/progress/u-nobody/complete/step2_fhsa")
        assert resp.status_code == 200
        assert resp.json()["data"]["resolvedStatuses"]["step2_fhsa"] == "completed"

    async def test_put_milestone(self, make_client):
        async with make_client(progress_router) as client:
            await client.get("/api/progress/u-put")
            resp = await client.put(
                "/api/progress/u-put/milestone",
                json={"milestoneId": "step3_preApproval", "status": "in_progress", "data": {}},
            )
        assert resp.json()["data"]["resolvedStatuses"]["step3_preApproval"] == "in_progress"

    async def test_unknown_milestone_is_400(self, make_client):
        async with make_client(progress_router) as client:
            await client.get("/api/progress/u-bad")
            resp = await client.put(
                "/api/progress/u-bad/milestone",
                json={"milestoneId": "step9_moveIn", "status": "completed"},
            )
        assert resp.status_code == 400

    async def test_missing_record_is_404(self, make_client):
        async with make_client(progress_router) as client:
            resp = await client.put(
                "/api/progress/ghost/milestone",
                json={"milestoneId": "step1_creditScore", "status": "completed"},
            )
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    async def test_stats(self, make_client):
        async with make_client(progress_router) as client:
            await client.get("/api/progress/u-stats")
            await client.post("/api/progress/u-stats/complete/step1_creditScore")
            resp = await client.get("/api/progress/stats/u-stats")
        stats = resp.json()["data"]
        assert stats["completedMilestones"] == 1
        assert stats["nextMilestone"] == "step2_fhsa"

    async def test_admin_list_requires_auth(self, make_client):
        async with make_client(progress_router) as client:
            resp = await client.get("/api/progress/admin/all")
        assert resp.status_code == 401

    async def test_admin_list(self, make_client, make_user, bearer):
        admin = await make_user(phone="+16045550000", role="admin")
        async with make_client(progress_router, headers=bearer(admin)) as client:
            await client.get("/api/progress/u-admin-view")
            resp = await client.get("/api/progress/admin/all")
        assert resp.status_code == 200
        assert resp.json()["count"] == 1
