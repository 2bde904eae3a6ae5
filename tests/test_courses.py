"""Tests for /api/v1/courses."""

import pytest
from sqlalchemy import func, select

from app.db.models.database import Course, Progress, QuizQuestion

API = "/api/v1/courses"


def course_body(**overrides):
    body = {
        "title": "Hand Hygiene",
        "description": "Why and how",
        "category": "Infection Control",
        "duration": "2 hours",
        "cpdPoints": 5,
        "level": "Beginner",
        "modules": [
            {"title": "Intro", "type": "video", "content": "https://youtu.be/x", "duration": 300},
            {
                "title": "Check",
                "type": "quiz",
                "questions": [
                    {"question": "How long?", "options": ["5s", "20s"], "correctAnswer": 1},
                ],
            },
            {"title": "Reflect", "type": "assignment", "content": "<p>Write</p>"},
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture
def create_course(client, auth_headers, manager):
    def _create(actor=None, **overrides):
        response = client.post(API, json=course_body(**overrides), headers=auth_headers(actor or manager))
        assert response.status_code == 201, response.text
        return response.json()

    return _create


class TestCreateCourse:
    def test_manager_creates_own_course(self, client, create_course, manager):
        course = create_course()
        assert course["assignedManagerId"] == manager.id
        assert [m["type"] for m in course["modules"]] == ["video", "quiz", "assignment"]
        assert course["modules"][1]["questions"][0]["correctAnswer"] == 1
        assert course["modules"][0]["questions"] is None

    def test_admin_is_stamped_as_instructor(self, create_course, admin):
        course = create_course(actor=admin, instructor="Someone Else")
        assert course["instructor"] == admin.name

    def test_manager_cannot_assign_other_manager(self, client, auth_headers, manager, make_user):
        other = make_user("manager")
        response = client.post(
            API, json=course_body(assignedManagerId=other.id), headers=auth_headers(manager)
        )
        assert response.status_code == 403

    def test_learner_forbidden(self, client, auth_headers, learner):
        response = client.post(API, json=course_body(), headers=auth_headers(learner))
        assert response.status_code == 403

    def test_anonymous_unauthorized(self, client):
        response = client.post(API, json=course_body())
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized"

    def test_bad_module_type(self, client, auth_headers, manager):
        body = course_body(modules=[{"title": "X", "type": "podcast"}])
        response = client.post(API, json=body, headers=auth_headers(manager))
        assert response.status_code == 400


class TestListCourses:
    def test_public_list_and_filters(self, client, create_course):
        create_course(title="Hand Hygiene", category="Infection Control")
        create_course(title="CPR Refresher", category="Emergency", level="Advanced")

        response = client.get(API)
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 2}

        assert [c["title"] for c in client.get(API, params={"search": "cpr"}).json()["data"]] == [
            "CPR Refresher"
        ]
        assert client.get(API, params={"category": "Emergency"}).json()["pagination"]["total"] == 1
        assert client.get(API, params={"level": "Beginner"}).json()["pagination"]["total"] == 1

    def test_sort_by_rating(self, client, create_course):
        create_course(title="Low", rating=1.5)
        create_course(title="High", rating=4.8)
        titles = [c["title"] for c in client.get(API, params={"sort": "rating"}).json()["data"]]
        assert titles == ["High", "Low"]

    def test_pagination(self, client, create_course):
        for i in range(3):
            create_course(title=f"Course {i}")
        page = client.get(API, params={"page": 2, "limit": 2}).json()
        assert len(page["data"]) == 1
        assert page["pagination"]["total"] == 3

    def test_categories(self, client, create_course):
        create_course(category="Emergency")
        create_course(category="Nutrition")
        create_course(category="Emergency")
        assert client.get(f"{API}/categories").json() == ["All", "Emergency", "Nutrition"]

    def test_manage_scoped_to_manager(self, client, auth_headers, create_course, make_user):
        create_course()
        other = make_user("manager")
        response = client.get(f"{API}/manage", headers=auth_headers(other))
        assert response.status_code == 200
        assert response.json()["data"] == []

        response = client.get(f"{API}/manage/categories", headers=auth_headers(other))
        assert response.json() == ["All"]

    def test_manage_admin_sees_everything(self, client, auth_headers, create_course, admin):
        create_course()
        create_course(actor=admin, title="Taught")
        response = client.get(f"{API}/manage", headers=auth_headers(admin))
        assert response.json()["pagination"]["total"] == 2

    def test_get_course(self, client, create_course):
        course = create_course()
        assert client.get(f"{API}/{course['id']}").json()["title"] == "Hand Hygiene"
        assert client.get(f"{API}/missing").status_code == 404


class TestUpdateCourse:
    def test_partial_update_keeps_modules(self, client, auth_headers, create_course, manager):
        course = create_course()
        response = client.patch(
            f"{API}/{course['id']}", json={"title": "Renamed"}, headers=auth_headers(manager)
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert len(response.json()["modules"]) == 3

    def test_modules_are_replaced_keeping_ids(self, client, auth_headers, create_course, manager, run_db):
        course = create_course()
        quiz = course["modules"][1]
        modules = [
            {**quiz, "title": "Check again"},
            {"title": "Slides", "type": "ppt", "slidesUrl": "https://cdn/s.html"},
        ]
        modules[0].pop("completed")

        response = client.patch(
            f"{API}/{course['id']}", json={"modules": modules}, headers=auth_headers(manager)
        )
        assert response.status_code == 200, response.text
        updated = response.json()["modules"]
        assert [m["title"] for m in updated] == ["Check again", "Slides"]
        assert updated[0]["id"] == quiz["id"]
        assert updated[0]["questions"][0]["id"] == quiz["questions"][0]["id"]
        assert updated[1]["slidesUrl"] == "https://cdn/s.html"

        count = run_db(lambda s: s.scalar(select(func.count()).select_from(QuizQuestion)))
        assert count == 1

    def test_other_manager_forbidden(self, client, auth_headers, create_course, make_user):
        course = create_course()
        other = make_user("manager")
        response = client.patch(f"{API}/{course['id']}", json={"title": "X"}, headers=auth_headers(other))
        assert response.status_code == 403

    def test_admin_must_be_instructor(self, client, auth_headers, create_course, admin):
        course = create_course()
        response = client.patch(f"{API}/{course['id']}", json={"title": "X"}, headers=auth_headers(admin))
        assert response.status_code == 403

    def test_missing_course(self, client, auth_headers, manager):
        response = client.patch(f"{API}/nope", json={"title": "X"}, headers=auth_headers(manager))
        assert response.status_code == 404


class TestDeleteCourse:
    def test_delete_cascades_progress(self, client, auth_headers, create_course, manager, learner, run_db):
        course = create_course()
        client.post(f"{API}/{course['id']}/enroll", headers=auth_headers(learner))

        response = client.delete(f"{API}/{course['id']}", headers=auth_headers(manager))
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"{API}/{course['id']}").status_code == 404
        assert run_db(lambda s: s.scalar(select(func.count()).select_from(Progress))) == 0

    def test_other_manager_forbidden(self, client, auth_headers, create_course, make_user):
        course = create_course()
        response = client.delete(f"{API}/{course['id']}", headers=auth_headers(make_user("manager")))
        assert response.status_code == 403


class TestEnroll:
    def test_enroll_is_idempotent(self, client, auth_headers, create_course, learner, run_db):
        course = create_course()
        first = client.post(f"{API}/{course['id']}/enroll", headers=auth_headers(learner))
        assert first.status_code == 201
        assert first.json()["progress"] == 0
        assert first.json()["courseId"] == course["id"]

        second = client.post(f"{API}/{course['id']}/enroll", headers=auth_headers(learner))
        assert second.status_code == 201

        enrolled = run_db(lambda s: s.scalar(select(Course.enrolled_count).where(Course.id == course["id"])))
        assert enrolled == 1

    def test_enroll_missing_course(self, client, auth_headers, learner):
        response = client.post(f"{API}/nope/enroll", headers=auth_headers(learner))
        assert response.status_code == 404

    def test_staff_cannot_enroll(self, client, auth_headers, create_course, manager):
        course = create_course()
        response = client.post(f"{API}/{course['id']}/enroll", headers=auth_headers(manager))
        assert response.status_code == 403


class TestImport:
    TEXT = "Title: Food Safety\nModule: pdf | Handbook | https://cdn/handbook.pdf\n"

    def test_import_json_text(self, client, auth_headers, manager, run_db):
        response = client.post(f"{API}/import", json={"text": self.TEXT}, headers=auth_headers(manager))
        assert response.status_code == 200
        draft = response.json()
        assert draft["title"] == "Food Safety"
        assert draft["instructor"] == manager.name
        assert draft["modules"][0]["type"] == "pdf"
        # drafts are not saved
        assert run_db(lambda s: s.scalar(select(func.count()).select_from(Course))) == 0

    def test_import_case_study_module(self, client, auth_headers, manager):
        response = client.post(
            f"{API}/import",
            json={"text": "Module: casestudy | Ward | Discuss"},
            headers=auth_headers(manager),
        )
        assert response.status_code == 200
        assert response.json()["modules"][0]["type"] == "assignment"

    def test_import_file(self, client, auth_headers, manager):
        response = client.post(
            f"{API}/import",
            files={"file": ("course.txt", self.TEXT.encode("utf-8-sig"), "text/plain")},
            headers=auth_headers(manager),
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Food Safety"

    def test_import_rejects_other_files(self, client, auth_headers, manager):
        response = client.post(
            f"{API}/import",
            files={"file": ("course.pdf", b"%PDF", "application/pdf")},
            headers=auth_headers(manager),
        )
        assert response.status_code == 400

    def test_import_empty_text(self, client, auth_headers, manager):
        response = client.post(f"{API}/import", json={"text": "   "}, headers=auth_headers(manager))
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Course text is empty"

    def test_import_learner_forbidden(self, client, auth_headers, learner):
        response = client.post(f"{API}/import", json={"text": self.TEXT}, headers=auth_headers(learner))
        assert response.status_code == 403
