import pytest

from conftest import make_question


@pytest.fixture()
def parsing_questions(db):
    for i in range(19):
        make_question(db, f"q{i:02d}", difficulty="easy", topic="lr-parsing" if i % 2 else "ll1-parsing")
    make_question(db, "other", chapter="Code Optimization", topic="loops", difficulty="hard")


def test_chapter_counts_by_difficulty(client, parsing_questions):
    response = client.get("/api/v1/questions/chapter/counts",
                          params={"category": "GATE-CSE", "chapter": "Parsing"})

    assert response.status_code == 200
    assert response.json() == {"easy": 19, "medium": 0, "hard": 0, "total": 19}


def test_chapter_counts_with_difficulty_filter(client, parsing_questions):
    response = client.get("/api/v1/questions/chapter/counts",
                          params={"category": "gate-cse", "chapter": "parsing", "difficulty": "hard"})

    assert response.json() == {"easy": 0, "medium": 0, "hard": 0, "total": 0}


def test_chapter_pagination(client, parsing_questions):
    first = client.get("/api/v1/questions/chapter",
                       params={"category": "GATE-CSE", "chapter": "parsing", "page": 1, "limit": 10}).json()
    second = client.get("/api/v1/questions/chapter",
                        params={"category": "GATE-CSE", "chapter": "parsing", "page": 2, "limit": 10}).json()

    assert len(first["questions"]) == 10
    assert first["has_more"] is True
    assert first["total_count"] == 19
    assert first["total_pages"] == 2
    assert len(second["questions"]) == 9
    assert second["has_more"] is False
    ids = [q["id"] for q in first["questions"] + second["questions"]]
    assert ids == sorted(ids)
    assert "other" not in ids


def test_chapter_name_is_normalized(client, db):
    make_question(db, "m1", chapter="Laws of Motion", category="JEE", subject="Physics")

    response = client.get("/api/v1/questions/chapter",
                          params={"category": "jee", "chapter": "laws-of-motion"})

    assert [q["id"] for q in response.json()["questions"]] == ["m1"]


def test_missing_parameters_return_400(client, parsing_questions):
    response = client.get("/api/v1/questions/chapter", params={"category": "GATE-CSE"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"

    response = client.get("/api/v1/questions/chapter", params={"category": "GATE-CSE", "chapter": "  "})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_results_are_cached(client, db, parsing_questions, question_cache):
    params = {"category": "GATE-CSE", "chapter": "Parsing"}
    assert client.get("/api/v1/questions/chapter/counts", params=params).json()["total"] == 19

    make_question(db, "late", difficulty="medium")
    assert client.get("/api/v1/questions/chapter/counts", params=params).json()["total"] == 19

    question_cache.clear()
    assert client.get("/api/v1/questions/chapter/counts", params=params).json()["total"] == 20


def test_topics_by_chapter(client, parsing_questions):
    response = client.get("/api/v1/questions/topics/by-chapter",
                          params={"category": "GATE-CSE", "chapter": "Parsing"})

    body = response.json()
    assert body["total_topics"] == 2
    assert body["total_questions"] == 19
    assert {t["title"]: t["count"] for t in body["topics"]} == {"ll1-parsing": 10, "lr-parsing": 9}


def test_subjects_and_chapters(client, parsing_questions):
    subjects = client.get("/api/v1/questions/subjects", params={"category": "GATE-CSE"}).json()
    assert subjects == [{"subject": "Compiler Design", "topics": ["ll1-parsing", "loops", "lr-parsing"]}]

    chapters = client.get("/api/v1/questions/chapters/by-subject",
                          params={"category": "GATE-CSE", "subject": "compiler-design"}).json()
    assert [(c["chapter"], c["question_count"]) for c in chapters] == [
        ("Code Optimization", 1), ("Parsing", 19)
    ]


def test_topic_years_newest_first(client, db):
    make_question(db, "y1", topic="graphs", year="gate-2019")
    make_question(db, "y2", topic="graphs", year="gate-2023")
    make_question(db, "y3", topic="graphs", year="gate-2021")

    response = client.get("/api/v1/questions/topic/years",
                          params={"category": "GATE-CSE", "topic": "graphs"})

    assert response.json() == {"years": ["gate-2023", "gate-2021", "gate-2019"]}
