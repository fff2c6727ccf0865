import uuid


def test_subject_and_topic_catalogue(client, admin_headers, user_headers):
    subject = client.post("/admin/subjects", json={"exam": "NEET_PG", "name": "  Physiology "},
                          headers=admin_headers).json()
    assert subject["name"] == "Physiology"
    assert subject["isActive"] is True
    client.post("/admin/subjects", json={"exam": "JEE", "name": "Physics"}, headers=admin_headers)

    names = [s["name"] for s in client.get("/subjects", params={"exam": "NEET_PG"}, headers=user_headers).json()]
    assert names == ["Physiology"]

    topic = client.post("/admin/topics", json={"subjectId": subject["id"], "name": "Renal"}, headers=admin_headers)
    assert topic.status_code == 201
    r = client.get("/topics", params={"subjectId": subject["id"]}, headers=user_headers)
    assert [t["name"] for t in r.json()] == ["Renal"]

    assert client.get("/topics", headers=user_headers).status_code == 400
    r = client.post("/admin/topics", json={"subjectId": str(uuid.uuid4()), "name": "x"}, headers=admin_headers)
    assert r.status_code == 404


def test_question_crud(client, admin_headers, seed_questions):
    subject, topic, questions = seed_questions(count=1)
    qid = questions[0]["id"]
    assert questions[0]["choiceType"] == "single"

    r = client.patch(f"/admin/questions/{qid}", json={"explanation": "because", "difficultyLevel": 4},
                     headers=admin_headers)
    assert r.status_code == 200
    assert (r.json()["explanation"], r.json()["difficultyLevel"]) == ("because", 4)
    assert r.json()["questionText"] == "Question 0?"

    r = client.patch(f"/admin/questions/{qid}", json={"correctOption": 7}, headers=admin_headers)
    assert r.status_code == 400

    listed = client.get("/admin/questions", params={"topicId": topic["id"]}, headers=admin_headers).json()
    assert [q["id"] for q in listed] == [qid]

    assert client.delete(f"/admin/questions/{qid}", headers=admin_headers).status_code == 204
    assert client.get(f"/admin/questions/{qid}", headers=admin_headers).status_code == 404


def test_question_topic_must_belong_to_subject(client, admin_headers, seed_questions):
    _, topic, _ = seed_questions(count=0)
    other = client.post("/admin/subjects", json={"exam": "NEET_PG", "name": "Other"}, headers=admin_headers).json()
    r = client.post("/admin/questions", headers=admin_headers, json={
        "exam": "NEET_PG", "subjectId": other["id"], "topicId": topic["id"],
        "questionText": "?", "optionA": "a", "optionB": "b", "optionC": "c", "optionD": "d",
        "correctOption": 1,
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "topic does not belong to subject"


def test_question_with_history_cannot_be_deleted(client, admin_headers, user_headers, seed_questions):
    _, _, questions = seed_questions(count=1)
    client.post("/practice/sessions", json={"mode": "smart"}, headers=user_headers)
    r = client.delete(f"/admin/questions/{questions[0]['id']}", headers=admin_headers)
    assert r.status_code == 409

    r = client.patch(f"/admin/questions/{questions[0]['id']}", json={"isActive": False}, headers=admin_headers)
    assert r.json()["isActive"] is False


def test_exam_lifecycle_and_learner_events(client, admin_headers, user_headers):
    body = {
        "exam": "NEET_PG", "name": "Grand Mock", "type": "MOCK",
        "numQuestions": 200, "timeLimitMinutes": 210,
        "scheduleStartAt": "2030-01-05T09:00:00Z",
    }
    exam = client.post("/admin/exams", json=body, headers=admin_headers).json()
    assert exam["status"] == "DRAFT"
    assert client.get("/events", headers=user_headers).json() == []

    r = client.patch(f"/admin/exams/{exam['id']}", json={"status": "SCHEDULED", "entryFee": 20},
                     headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["entryFee"] == 20
    assert r.json()["name"] == "Grand Mock"

    events = client.get("/events", headers=user_headers).json()
    assert len(events) == 1
    assert events[0]["config"]["id"] == exam["id"]
    assert events[0]["isRegistered"] is False
    assert client.get("/events", params={"exam": "JEE"}, headers=user_headers).json() == []

    assert client.delete(f"/admin/exams/{exam['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/admin/exams/{exam['id']}", headers=admin_headers).status_code == 404


def test_exam_validation(client, admin_headers):
    r = client.post("/admin/exams", json={"exam": "NEET_PG", "name": "x", "type": "QUIZ",
                                          "numQuestions": 1, "timeLimitMinutes": 1}, headers=admin_headers)
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["detail"]}
    assert "body.type" in fields


def test_podcasts(client, admin_headers, user_headers):
    body = {"exam": "NEET_PG", "title": "Cardiac cycle", "audioUrl": "https://cdn/x.mp3",
            "durationSeconds": 600, "tags": ["cardio", " physiology ", ""]}
    episode = client.post("/admin/podcasts", json=body, headers=admin_headers).json()
    assert episode["tags"] == ["cardio", "physiology"]
    hidden = client.post("/admin/podcasts", json={**body, "title": "Draft", "isActive": False},
                         headers=admin_headers).json()

    learner_view = client.get("/podcasts", headers=user_headers).json()
    assert [p["title"] for p in learner_view] == ["Cardiac cycle"]
    assert client.get(f"/podcasts/{hidden['id']}", headers=user_headers).status_code == 404
    assert client.get(f"/admin/podcasts/{hidden['id']}", headers=admin_headers).status_code == 200

    r = client.patch(f"/admin/podcasts/{episode['id']}", json={**body, "title": "Cardiac cycle II", "tags": []},
                     headers=admin_headers)
    assert r.json()["title"] == "Cardiac cycle II"
    assert r.json()["tags"] == []

    assert client.delete(f"/admin/podcasts/{episode['id']}", headers=admin_headers).status_code == 204


def test_ai_settings(client, admin_headers):
    current = client.get("/admin/ai-settings", headers=admin_headers).json()
    assert current["revisionIntervalsDays"] == [1, 3, 7, 14, 30]
    assert current["revisionEnabled"] is True

    updated = {**current, "revisionIntervalsDays": [2, 5], "weaknessThresholdPercent": 40}
    r = client.put("/admin/ai-settings", json=updated, headers=admin_headers)
    assert r.status_code == 200
    assert client.get("/admin/ai-settings", headers=admin_headers).json()["revisionIntervalsDays"] == [2, 5]

    bad = {**current, "revisionIntervalsDays": [0, 3]}
    assert client.put("/admin/ai-settings", json=bad, headers=admin_headers).status_code == 400
    assert client.put("/admin/ai-settings", json={**current, "revisionIntervalsDays": []},
                      headers=admin_headers).status_code == 400


def test_feed_starts_empty(client, user_headers):
    assert client.get("/feed", headers=user_headers).json() == []
