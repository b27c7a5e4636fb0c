from datetime import timedelta

from sqlalchemy import delete, select

from main import reconcile_abandoned_generations
from studybot.core.config import settings
from studybot.core.db.base import utcnow
from studybot.core.db.schemas import (
    FlashcardSet,
    GenerationStatus,
    GenerationUsage,
    UserProfile,
)
from studybot.modules.flashcards.normalizer import AI_QUESTION
from tests.conftest import register_and_login, set_plan, upstream_failure


NOTES = (
    "The mitochondria is the powerhouse of the cell. "
    "Ribosomes synthesize proteins from amino acids. "
    "The nucleus stores genetic information."
)


async def generate(client, headers, **body):
    body.setdefault("studyNotes", NOTES)
    return await client.post("/v1/flashcards/generate", json=body, headers=headers)


async def current_user_id(client, headers) -> int:
    res = await client.get("/v1/users/me", headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["id"]


async def test_requires_authentication(client, fake_generator):
    res = await client.post("/v1/flashcards/generate", json={"studyNotes": NOTES})

    assert res.status_code == 401
    assert res.json() == {"error": "Authentication required"}

    res = await generate(client, {"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401
    assert fake_generator.prompts == []


async def test_missing_profile(client, auth_headers, session, fake_generator):
    user_id = await current_user_id(client, auth_headers)
    await session.execute(delete(UserProfile).where(UserProfile.user_id == user_id))
    await session.commit()

    res = await generate(client, auth_headers)

    assert res.status_code == 404
    assert res.json() == {"error": "User profile not found"}
    assert fake_generator.prompts == []


async def test_blank_notes_rejected(client, auth_headers, fake_generator):
    res = await generate(client, auth_headers, studyNotes="   \n\t ")

    assert res.status_code == 400
    assert res.json() == {"error": "Prompt is required"}
    assert fake_generator.prompts == []

    res = await client.post("/v1/flashcards/generate", json={}, headers=auth_headers)
    assert res.status_code == 400


async def test_generate_returns_cards_and_saves_them(client, auth_headers, fake_generator):
    res = await generate(client, auth_headers, subjectLabel="Biology")

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["remainingCount"] == 4
    assert body["planType"] == "freemium"
    cards = body["flashcards"]
    assert 1 <= len(cards) <= 5
    assert cards[0]["question"] == AI_QUESTION
    assert cards[0]["answer"] == "The process plants use to turn light into chemical energy."
    assert {c["subject"] for c in cards} == {"Biology"}

    saved = body["savedRecord"]
    assert saved["status"] == "completed"
    assert saved["title"] == "Biology"
    assert saved["flashcards"] == cards

    assert len(fake_generator.prompts) == 1
    assert fake_generator.prompts[0].endswith(NOTES)

    # Reading the set back gives the same ordered cards
    res = await client.get(f"/v1/flashcards/sets/{saved['id']}", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["flashcards"] == cards


async def test_legacy_body_keys_accepted(client, auth_headers):
    res = await client.post(
        "/v1/flashcards/generate",
        json={"prompt": NOTES, "subject": "Cells"},
        headers=auth_headers,
    )

    assert res.status_code == 200, res.text
    assert res.json()["savedRecord"]["subject_label"] == "Cells"


async def test_default_title_and_subject(client, auth_headers):
    res = await generate(client, auth_headers)

    saved = res.json()["savedRecord"]
    assert saved["title"] == "AI Generated Flashcards"
    assert saved["subject_label"] is None
    assert {c["subject"] for c in saved["flashcards"]} == {"General"}


async def test_sixth_freemium_request_is_refused_without_external_call(
    client, auth_headers, fake_generator
):
    remaining = []
    for _ in range(5):
        res = await generate(client, auth_headers)
        assert res.status_code == 200, res.text
        remaining.append(res.json()["remainingCount"])
    assert remaining == [4, 3, 2, 1, 0]

    res = await generate(client, auth_headers)

    assert res.status_code == 429
    body = res.json()
    assert body["error"] == "Daily limit reached"
    assert body["remainingCount"] == 0
    assert "Upgrade to Premium" in body["message"]
    assert len(fake_generator.prompts) == 5


async def test_premium_is_not_limited(client, auth_headers, fake_generator):
    await set_plan(client, auth_headers, "premium")

    for _ in range(7):
        res = await generate(client, auth_headers)
        assert res.status_code == 200, res.text
        assert res.json()["remainingCount"] == 999
        assert res.json()["planType"] == "premium"
    assert len(fake_generator.prompts) == 7


async def test_upstream_failure_releases_the_slot(client, auth_headers, fake_generator):
    good_output = fake_generator.output
    fake_generator.error = upstream_failure()

    res = await generate(client, auth_headers)

    assert res.status_code == 500
    assert res.json() == {"error": "Flashcard generation service is unavailable"}

    usage = (await client.get("/v1/flashcards/usage", headers=auth_headers)).json()
    assert usage["usedToday"] == 0
    assert usage["remainingCount"] == 5

    sets = (await client.get("/v1/flashcards/sets", headers=auth_headers)).json()
    assert [s["status"] for s in sets] == ["failed"]

    fake_generator.error = None
    fake_generator.output = good_output
    res = await generate(client, auth_headers)
    assert res.status_code == 200
    assert res.json()["remainingCount"] == 4


async def test_upstream_detail_only_exposed_in_dev(
    client, auth_headers, fake_generator, monkeypatch
):
    monkeypatch.setattr(settings.app, "mode", "dev")
    fake_generator.error = upstream_failure("Model HTTP 503: overloaded")

    res = await generate(client, auth_headers)

    assert res.status_code == 500
    assert res.json()["detail"] == "Model HTTP 503: overloaded"


async def test_unknown_subject_id(client, auth_headers, fake_generator):
    res = await generate(client, auth_headers, subjectId=9999)

    assert res.status_code == 404
    assert res.json() == {"error": "Subject not found"}
    assert fake_generator.prompts == []


async def test_subject_name_used_as_label(client, auth_headers):
    res = await client.post(
        "/v1/subjects", json={"name": "Chemistry"}, headers=auth_headers
    )
    subject_id = res.json()["id"]

    res = await generate(client, auth_headers, subjectId=subject_id)

    assert res.status_code == 200, res.text
    saved = res.json()["savedRecord"]
    assert saved["subject_id"] == subject_id
    assert saved["subject_label"] == "Chemistry"

    res = await client.get(
        f"/v1/flashcards/sets?subject_id={subject_id}", headers=auth_headers
    )
    assert [s["id"] for s in res.json()] == [saved["id"]]


async def test_sets_are_private_and_deletable(client, auth_headers):
    res = await generate(client, auth_headers)
    set_id = res.json()["savedRecord"]["id"]

    other = await register_and_login(client, "other@example.com")
    res = await client.get(f"/v1/flashcards/sets/{set_id}", headers=other)
    assert res.status_code == 404
    res = await client.delete(f"/v1/flashcards/sets/{set_id}", headers=other)
    assert res.status_code == 404

    res = await client.delete(f"/v1/flashcards/sets/{set_id}", headers=auth_headers)
    assert res.status_code == 204
    res = await client.get(f"/v1/flashcards/sets/{set_id}", headers=auth_headers)
    assert res.status_code == 404


async def test_usage_endpoint(client, auth_headers):
    await generate(client, auth_headers)
    await generate(client, auth_headers)

    res = await client.get("/v1/flashcards/usage", headers=auth_headers)

    assert res.json() == {
        "planType": "freemium",
        "usedToday": 2,
        "dailyLimit": 5,
        "remainingCount": 3,
    }


async def test_reconcile_fails_stale_pending_sets(client, auth_headers, session):
    user_id = await current_user_id(client, auth_headers)
    stale_at = utcnow() - timedelta(minutes=settings.generation.pending_ttl_minutes + 5)
    session.add_all(
        [
            FlashcardSet(
                user_id=user_id,
                title="stale",
                original_notes=NOTES,
                cards=[],
                status=GenerationStatus.PENDING,
                created_at=stale_at,
            ),
            FlashcardSet(
                user_id=user_id,
                title="in flight",
                original_notes=NOTES,
                cards=[],
                status=GenerationStatus.PENDING,
            ),
            GenerationUsage(user_id=user_id, usage_date=stale_at.date(), count=1),
        ]
    )
    await session.commit()

    assert await reconcile_abandoned_generations() == 1

    session.expire_all()
    rows = (await session.execute(select(FlashcardSet).order_by(FlashcardSet.id))).scalars()
    assert [s.status for s in rows] == [GenerationStatus.FAILED, GenerationStatus.PENDING]
    usage = (await session.execute(select(GenerationUsage.count))).scalar_one()
    assert usage == 0


async def test_unexpected_generator_error_releases_the_slot(
    client, auth_headers, fake_generator
):
    fake_generator.error = RuntimeError("OpenRouter API key not configured")

    res = await generate(client, auth_headers)

    assert res.status_code == 500
    assert res.json() == {"error": "Flashcard generation service is unavailable"}

    sets = (await client.get("/v1/flashcards/sets", headers=auth_headers)).json()
    assert [s["status"] for s in sets] == ["failed"]
    usage = (await client.get("/v1/flashcards/usage", headers=auth_headers)).json()
    assert usage["usedToday"] == 0
    assert usage["remainingCount"] == 5


async def test_deleting_todays_set_gives_the_slot_back(client, auth_headers):
    set_ids = []
    for _ in range(5):
        res = await generate(client, auth_headers)
        set_ids.append(res.json()["savedRecord"]["id"])

    res = await client.delete(f"/v1/flashcards/sets/{set_ids[0]}", headers=auth_headers)
    assert res.status_code == 204

    usage = (await client.get("/v1/flashcards/usage", headers=auth_headers)).json()
    assert usage["usedToday"] == 4
    assert usage["remainingCount"] == 1

    res = await generate(client, auth_headers)
    assert res.status_code == 200, res.text
    assert res.json()["remainingCount"] == 0

    res = await generate(client, auth_headers)
    assert res.status_code == 429


async def test_deleting_failed_set_does_not_free_a_slot(
    client, auth_headers, fake_generator, session
):
    fake_generator.error = upstream_failure()
    res = await generate(client, auth_headers)
    assert res.status_code == 500
    sets = (await client.get("/v1/flashcards/sets", headers=auth_headers)).json()
    failed_id = sets[0]["id"]
    fake_generator.error = None
    await generate(client, auth_headers)

    res = await client.delete(f"/v1/flashcards/sets/{failed_id}", headers=auth_headers)
    assert res.status_code == 204

    count = (await session.execute(select(GenerationUsage.count))).scalar_one()
    assert count == 1


async def test_null_notes_rejected_with_error_body(client, auth_headers, fake_generator):
    res = await client.post(
        "/v1/flashcards/generate", json={"studyNotes": None}, headers=auth_headers
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Prompt is required"}
    assert fake_generator.prompts == []


async def test_malformed_body_rejected_with_error_body(client, auth_headers):
    res = await client.post(
        "/v1/flashcards/generate",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid request"}
