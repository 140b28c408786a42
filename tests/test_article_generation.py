import asyncio
import json

import pytest

from app.core.errors import (
    InsufficientDataError, UpstreamError, UpstreamTimeoutError, ValidationError, WordCountError
)
from app.models.article import Article
from app.services.article_generation import ArticleGenerationService
from conftest import FakeLLMClient

NOTES = "GATE 2026 will be held in February. The organising institute published the schedule."


def words(n):
    return " ".join(["word"] * n)


def draft(article, title="GATE 2026 Schedule Announced", description="Key dates for GATE 2026"):
    return json.dumps({"title": title, "description": description, "article": article})


def run(coro):
    return asyncio.run(coro)


def test_search_facts_uses_web_search():
    llm = FakeLLMClient([NOTES])
    notes = run(ArticleGenerationService(llm).search_facts("GATE 2026 schedule"))

    assert notes == NOTES
    assert llm.calls[0]["web_search"] is True
    assert llm.calls[0]["operation"] == "fact_search"


def test_search_facts_with_too_little_data():
    llm = FakeLLMClient(["No data."])

    with pytest.raises(InsufficientDataError):
        run(ArticleGenerationService(llm).search_facts("GATE 2026 schedule"))


def test_search_facts_validates_headline():
    with pytest.raises(ValidationError):
        run(ArticleGenerationService(FakeLLMClient()).search_facts("   "))


def test_article_in_range_is_not_expanded():
    llm = FakeLLMClient([draft(words(520))])

    generated = run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))

    assert generated.word_count == 520
    assert generated.expansion_attempts == 0
    assert generated.description == "Key dates for GATE 2026"
    assert generated.article_html.startswith('<div class="article-body">')
    assert len(llm.calls) == 1


def test_short_article_is_expanded():
    llm = FakeLLMClient([draft(words(300)), words(420), words(560)])

    generated = run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))

    assert generated.word_count == 560
    assert generated.expansion_attempts == 2


def test_expansion_that_overshoots_stops():
    llm = FakeLLMClient([draft(words(300)), words(800)])

    generated = run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))

    assert generated.word_count == 800
    assert generated.expansion_attempts == 1


def test_expansion_that_does_not_lengthen_fails_word_count():
    llm = FakeLLMClient([draft(words(300)), words(200)])

    with pytest.raises(WordCountError) as exc_info:
        run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))

    assert exc_info.value.details == {"word_count": 300, "min_required": 500, "expansion_attempts": 1}
    assert len(llm.calls) == 2


def test_failed_expansion_attempts_count_toward_limit():
    timeout = UpstreamTimeoutError("timed out")
    llm = FakeLLMClient([draft(words(300)), timeout, timeout, timeout])

    with pytest.raises(WordCountError) as exc_info:
        run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))

    assert exc_info.value.details["expansion_attempts"] == 3
    assert len(llm.calls) == 4


def test_unparseable_draft_is_upstream_error():
    llm = FakeLLMClient(["Sorry, I cannot help with that."])

    with pytest.raises(UpstreamError):
        run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))


def test_draft_without_article_is_upstream_error():
    llm = FakeLLMClient([json.dumps({"title": "Only a title"})])

    with pytest.raises(UpstreamError):
        run(ArticleGenerationService(llm).create_article("GATE 2026", NOTES))


def test_short_notes_are_rejected():
    with pytest.raises(ValidationError):
        run(ArticleGenerationService(FakeLLMClient()).create_article("GATE 2026", "too short"))


# --- API ---

def test_full_pipeline_saves_article(client, db, admin_headers, category, fake_llm, fake_steinhq):
    fake_llm.responses = [NOTES, draft(words(520))]

    response = client.post(
        "/api/v1/article-generation",
        json={"headline": "GATE 2026 schedule", "category": "exam-news",
              "image_url": "https://cdn.example.com/gate.png"},
        headers=admin_headers,
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["word_count"] == 520
    assert body["data"]["slug"] == "gate-2026-schedule-announced"
    assert body["data"]["url"].endswith("/articles/gate-2026-schedule-announced")
    assert body["data"]["suggested_subreddit"] == "r/delhi"
    assert fake_steinhq.posts == [{
        "title": "GATE 2026 Schedule Announced",
        "slug": "gate-2026-schedule-announced",
        "subreddit": "r/delhi",
        "image_url": "https://cdn.example.com/gate.png",
    }]

    saved = db.query(Article).one()
    assert saved.status == "published"
    assert saved.published_at is not None
    assert saved.excerpt == "Key dates for GATE 2026"
    assert saved.author_email == "admin@example.com"


def test_pipeline_stops_on_word_count(client, db, admin_headers, category, fake_llm, fake_steinhq):
    fake_llm.responses = [NOTES, draft(words(100)), words(50)]

    response = client.post(
        "/api/v1/article-generation",
        json={"headline": "GATE 2026 schedule", "category": "exam-news"},
        headers=admin_headers,
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "WORD_COUNT_OUT_OF_RANGE"
    assert db.query(Article).count() == 0
    assert fake_steinhq.posts == []


def test_upstream_timeout_maps_to_504(client, admin_headers, fake_llm):
    fake_llm.responses = [UpstreamTimeoutError("Request timed out. Please try again.")]

    response = client.post("/api/v1/article-generation/search-facts",
                           json={"headline": "GATE 2026"}, headers=admin_headers)

    assert response.status_code == 504
    assert response.json()["error_code"] == "UPSTREAM_TIMEOUT"


def test_generation_is_admin_only(client, student_headers):
    response = client.post("/api/v1/article-generation/search-facts",
                           json={"headline": "GATE 2026"}, headers=student_headers)
    assert response.status_code == 403


def test_create_article_stage(client, admin_headers, fake_llm):
    fake_llm.responses = [draft(words(300)), words(610)]

    response = client.post(
        "/api/v1/article-generation/create-article",
        json={"headline": "GATE 2026", "factual_notes": NOTES},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["word_count"] == 610
    assert data["expansion_attempts"] == 1


def _save(client, headers, title, category="exam-news"):
    return client.post(
        "/api/v1/article-generation/save-article",
        json={"title": title, "article": "# Heading\n\n" + words(60), "category": category},
        headers=headers,
    )


def test_duplicate_title_is_rejected(client, db, admin_headers, category):
    first = _save(client, admin_headers, "Results Declared")
    assert first.status_code == 201

    second = _save(client, admin_headers, "Results Declared")

    assert second.status_code == 409
    body = second.json()
    assert body["error_code"] == "CONFLICT"
    assert body["details"]["existing_id"] == first.json()["data"]["id"]
    assert db.query(Article).count() == 1


def test_unknown_category_is_rejected(client, db, admin_headers, category):
    response = _save(client, admin_headers, "Results Declared", category="does-not-exist")

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"
    assert db.query(Article).count() == 0


def test_subreddits_rotate(client, admin_headers, category):
    first = _save(client, admin_headers, "First Article").json()["data"]
    second = _save(client, admin_headers, "Second Article").json()["data"]

    assert first["suggested_subreddit"] == "r/delhi"
    assert second["suggested_subreddit"] == "r/bangalore"
