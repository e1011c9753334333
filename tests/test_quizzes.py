from coursehub.services.quiz import score_answers


def _walk_keys(value):
    if isinstance(value, dict):
        for key, inner in value.items():
            yield key
            yield from _walk_keys(inner)
    elif isinstance(value, list):
        for inner in value:
            yield from _walk_keys(inner)


def _submit(client, user, quiz_id, answers, time_spent=120):
    return client.post(f"/api/quizzes/{quiz_id}/submit",
                       json={"answers": answers, "timeSpent": time_spent},
                       headers=user["headers"])


def test_score_answers_counts_matching_positions():
    assert score_answers([0, 1, 2, 3, 0], [0, 1, 2, 3, 1]) == 4
    assert score_answers([0, 1, 2], []) == 0
    assert score_answers([0, 1, 2], [0, 1, 2, 3, 4]) == 3
    assert score_answers([1, 0], [True, False]) == 0
    assert score_answers([1, 2], ["1", None]) == 0


def test_submit_scores_and_hides_answer_key(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course())
    resp = _submit(client, student, quiz["id"], [0, 1, 2, 3, 1])
    assert resp.status_code == 200
    result = resp.get_json()["result"]
    assert result == {
        "score": 4,
        "totalQuestions": 5,
        "percentage": 80,
        "passed": True,
        "timeSpent": 120,
    }
    assert "correctAnswer" not in set(_walk_keys(resp.get_json()))


def test_submit_below_passing_score(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course(), passingScore=90)
    result = _submit(client, student, quiz["id"], [0, 1, 2, 3, 1]).get_json()["result"]
    assert result["percentage"] == 80
    assert result["passed"] is False


def test_unanswered_and_out_of_range_answers_are_wrong(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course())
    result = _submit(client, student, quiz["id"], [0, 99, -1]).get_json()["result"]
    assert result["score"] == 1
    assert result["percentage"] == 20


def test_attempt_limit(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course(), maxAttempts=2)
    assert _submit(client, student, quiz["id"], [0]).status_code == 200
    assert _submit(client, student, quiz["id"], [0, 1]).status_code == 200

    resp = _submit(client, student, quiz["id"], [0, 1, 2])
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Maximum attempts exceeded"

    results = client.get(f"/api/quizzes/{quiz['id']}/results", headers=student["headers"]).get_json()
    assert [r["score"] for r in results["results"]] == [1, 2]


def test_attempts_are_counted_per_user(client, student, other_student, make_course, make_quiz):
    quiz = make_quiz(make_course(), maxAttempts=1)
    assert _submit(client, student, quiz["id"], [0]).status_code == 200
    assert _submit(client, other_student, quiz["id"], [0]).status_code == 200
    assert _submit(client, student, quiz["id"], [0]).status_code == 409


def test_submit_to_missing_quiz(client, student):
    assert _submit(client, student, 404, [0]).status_code == 404


def test_submit_requires_answer_list(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course())
    resp = client.post(f"/api/quizzes/{quiz['id']}/submit", json={"answers": {"0": 1}},
                       headers=student["headers"])
    assert resp.status_code == 400


def test_fetch_for_taking_strips_answers_and_results(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course())
    _submit(client, student, quiz["id"], [0, 1])

    resp = client.get(f"/api/quizzes/{quiz['id']}")
    assert resp.status_code == 200
    body = resp.get_json()
    keys = set(_walk_keys(body))
    assert "correctAnswer" not in keys
    assert "results" not in keys
    assert "explanation" not in keys
    assert [q["options"] for q in body["questions"]][0] == ["a", "b", "c", "d"]


def test_unpublished_quiz_cannot_be_taken(client, make_course, make_quiz):
    quiz = make_quiz(make_course(), published=False)
    resp = client.get(f"/api/quizzes/{quiz['id']}")
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Quiz is not published"


def test_results_only_show_own_attempts(client, student, other_student, make_course, make_quiz):
    quiz = make_quiz(make_course())
    _submit(client, student, quiz["id"], [0, 1, 2, 3, 0])
    _submit(client, other_student, quiz["id"], [1])

    body = client.get(f"/api/quizzes/{quiz['id']}/results", headers=other_student["headers"]).get_json()
    assert body["quiz"]["maxAttempts"] == 3
    assert len(body["results"]) == 1
    assert body["results"][0]["userId"] == other_student["id"]
    assert body["results"][0]["score"] == 0


def test_course_quizzes_lists_published_only(client, make_course, make_quiz):
    course = make_course()
    shown = make_quiz(course, title="Visible")
    make_quiz(course, title="Draft", published=False)

    items = client.get(f"/api/quizzes/course/{course['id']}").get_json()["items"]
    assert [q["id"] for q in items] == [shown["id"]]
    assert items[0]["questionCount"] == 5
    assert "questions" not in items[0]


def test_quiz_authoring_requires_owner_or_admin(client, student, other_teacher, admin,
                                                make_course, make_quiz):
    course = make_course()
    payload = {"courseId": course["id"], "title": "Sneaky", "questions": []}
    assert client.post("/api/quizzes", json=payload, headers=student["headers"]).status_code == 403
    assert client.post("/api/quizzes", json=payload, headers=other_teacher["headers"]).status_code == 403
    assert client.post("/api/quizzes", json=payload, headers=admin["headers"]).status_code == 201

    quiz = make_quiz(course)
    url = f"/api/quizzes/{quiz['id']}"
    assert client.put(url, json={"title": "Renamed"}, headers=other_teacher["headers"]).status_code == 403
    assert client.delete(url, headers=other_teacher["headers"]).status_code == 403

    resp = client.put(url, json={"title": "Renamed"}, headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.get_json()["quiz"]["title"] == "Renamed"
    assert client.delete(url, headers=admin["headers"]).status_code == 200
    assert client.get(url).status_code == 404


def test_quiz_update_replaces_questions_and_keeps_results(client, teacher, student, make_course, make_quiz):
    quiz = make_quiz(make_course())
    _submit(client, student, quiz["id"], [0, 1, 2, 3, 0])

    resp = client.put(f"/api/quizzes/{quiz['id']}", json={
        "questions": [{"question": "Only one", "options": ["yes", "no"], "correctAnswer": 1}],
    }, headers=teacher["headers"])
    assert resp.status_code == 200
    assert len(resp.get_json()["quiz"]["questions"]) == 1

    results = client.get(f"/api/quizzes/{quiz['id']}/results", headers=student["headers"]).get_json()
    assert len(results["results"]) == 1
    assert results["results"][0]["percentage"] == 100


def test_quiz_payload_validation(client, teacher, make_course):
    course = make_course()
    bad_questions = [
        [{"question": "No options", "options": [], "correctAnswer": 0}],
        [{"question": "Bad key", "options": ["a", "b"], "correctAnswer": 2}],
        [{"question": "", "options": ["a", "b"], "correctAnswer": 0}],
    ]
    for questions in bad_questions:
        resp = client.post("/api/quizzes", json={
            "courseId": course["id"], "title": "Broken", "questions": questions,
        }, headers=teacher["headers"])
        assert resp.status_code == 400

    resp = client.post("/api/quizzes", json={"courseId": course["id"], "title": "Broken",
                                              "passingScore": 120}, headers=teacher["headers"])
    assert resp.status_code == 400
    resp = client.post("/api/quizzes", json={"courseId": 999, "title": "Orphan"},
                       headers=teacher["headers"])
    assert resp.status_code == 404


def test_empty_quiz_scores_zero(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course(), correct=())
    result = _submit(client, student, quiz["id"], []).get_json()["result"]
    assert result["totalQuestions"] == 0
    assert result["percentage"] == 0


def test_submit_rejects_non_finite_time_spent(client, student, make_course, make_quiz):
    quiz = make_quiz(make_course(), maxAttempts=1)
    url = f"/api/quizzes/{quiz['id']}/submit"
    for value in ("NaN", "Infinity", "1" + "0" * 400):
        resp = client.post(url, data='{"answers": [0], "timeSpent": %s}' % value,
                           content_type="application/json", headers=student["headers"])
        assert resp.status_code == 400, value
    # rejected submissions do not use up attempts
    assert _submit(client, student, quiz["id"], [0]).status_code == 200


def test_quiz_settings_reject_oversized_integers(client, teacher, make_course):
    course = make_course()
    body = '{"courseId": %d, "title": "Huge", "maxAttempts": 1%s}' % (course["id"], "0" * 400)
    resp = client.post("/api/quizzes", data=body, content_type="application/json",
                       headers=teacher["headers"])
    assert resp.status_code == 400
    resp = client.post("/api/quizzes", json={"courseId": course["id"] + 0.5, "title": "Half"},
                       headers=teacher["headers"])
    assert resp.status_code == 400
