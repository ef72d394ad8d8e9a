from app import app, db
from models.checklist import ChecklistTemplate
from models.template import StageTemplate, TaskTemplate
from support import AppTestCase, make_company


class StageTemplatesApiTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            self.company_id = make_company().id
            other = make_company("Other")
            self.other_company_id = other.id
            foreign = StageTemplate(company_id=other.id, name="Foreign", order=1)
            foreign_checklist = ChecklistTemplate(company_id=other.id, name="Foreign checklist")
            db.session.add_all([foreign, foreign_checklist])
            db.session.commit()
            self.foreign_template_id = foreign.id
            self.foreign_checklist_id = foreign_checklist.id

    def _create(self, name, **fields):
        response = self.client.post(
            "/api/templates",
            json={"name": name, **fields},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 201)
        return response.get_json()["template"]

    def _save(self, template_id, tasks, **stage):
        return self.client.put(
            f"/api/templates/{template_id}/structure",
            json={**stage, "tasks": tasks},
            headers=self.headers(self.company_id),
        )

    def _orders(self, ids):
        with app.app_context():
            return [db.session.get(StageTemplate, template_id).order for template_id in ids]

    def test_create_appends_and_lists(self):
        first = self._create("사업타당성 검토")
        second = self._create("발전사업허가", description="산업부 또는 지자체", is_default_active=False)

        self.assertEqual((first["order"], second["order"]), (1, 2))
        self.assertFalse(second["is_default_active"])
        self.assertEqual(second["tasks"], [])

        response = self.client.get("/api/templates", headers=self.headers(self.company_id))
        self.assertEqual([t["name"] for t in response.get_json()["templates"]], ["사업타당성 검토", "발전사업허가"])

    def test_structure_adds_updates_and_removes_tasks(self):
        template = self._create("발전사업허가")
        response = self._save(
            template["id"],
            [
                {"title": "신청서 작성", "is_mandatory": True, "default_due_days": 30},
                {"title": "주민설명회", "is_default_active": False},
            ],
        )
        self.assertEqual(response.status_code, 200)
        tasks = response.get_json()["template"]["tasks"]
        self.assertEqual([(t["title"], t["order"]) for t in tasks], [("신청서 작성", 0), ("주민설명회", 1)])
        keep, drop = tasks

        response = self._save(
            template["id"],
            [
                {"title": "추가 서류", "order": 0},
                {"id": keep["id"], "title": "신청서 제출", "order": 1, "is_mandatory": True},
            ],
            name="발전사업허가 (개정)",
            description="updated",
        )

        self.assertEqual(response.status_code, 200)
        saved = response.get_json()["template"]
        self.assertEqual(saved["name"], "발전사업허가 (개정)")
        self.assertEqual(saved["description"], "updated")
        self.assertEqual([t["title"] for t in saved["tasks"]], ["추가 서류", "신청서 제출"])
        self.assertEqual(saved["tasks"][1]["id"], keep["id"])
        self.assertTrue(saved["tasks"][1]["is_mandatory"])
        with app.app_context():
            self.assertIsNotNone(db.session.get(TaskTemplate, drop["id"]).deleted_at)

    def test_structure_rejects_an_invalid_task(self):
        template = self._create("발전사업허가")

        response = self._save(template["id"], [{"title": "Fine"}, {"title": ""}])

        self.assertEqual(response.status_code, 400)
        with app.app_context():
            self.assertEqual(TaskTemplate.query.count(), 0)

    def test_structure_of_a_foreign_template_is_not_found(self):
        response = self._save(self.foreign_template_id, [{"title": "Sneaky"}])

        self.assertEqual(response.status_code, 404)

    def test_reorder(self):
        ids = [self._create(name)["id"] for name in ("A", "B", "C")]

        response = self.client.put(
            "/api/templates/reorder",
            json={"template_ids": [ids[1], ids[2], ids[0]]},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 200)
        templates = response.get_json()["templates"]
        self.assertEqual([(t["name"], t["order"]) for t in templates], [("B", 1), ("C", 2), ("A", 3)])

    def test_reorder_with_a_foreign_template_changes_nothing(self):
        ids = [self._create(name)["id"] for name in ("A", "B")]

        response = self.client.put(
            "/api/templates/reorder",
            json={"template_ids": [ids[1], self.foreign_template_id, ids[0]]},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._orders(ids), [1, 2])

    def test_link_and_unlink_checklist_template(self):
        template = self._create("개발행위허가")
        task_id = self._save(template["id"], [{"title": "신청"}]).get_json()["template"]["tasks"][0]["id"]
        with app.app_context():
            checklist = ChecklistTemplate(company_id=self.company_id, name="개발행위 서류")
            db.session.add(checklist)
            db.session.commit()
            checklist_id = checklist.id

        response = self.client.patch(
            f"/api/templates/task-templates/{task_id}/checklist-template",
            json={"checklist_template_id": checklist_id},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 200)
        linked = response.get_json()["task_template"]
        self.assertEqual((linked["checklist_template_id"], linked["checklist_template_name"]), (checklist_id, "개발행위 서류"))

        response = self.client.patch(
            f"/api/templates/task-templates/{task_id}/checklist-template",
            json={"checklist_template_id": self.foreign_checklist_id},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 404)

        response = self.client.patch(
            f"/api/templates/task-templates/{task_id}/checklist-template",
            json={"checklist_template_id": None},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.get_json()["task_template"]["checklist_template_id"])

        response = self.client.patch(
            f"/api/templates/task-templates/{task_id}/checklist-template",
            json={"checklist_template_id": "1"},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)

    def test_delete_soft_deletes_the_tasks(self):
        template = self._create("착공신고")
        task_id = self._save(template["id"], [{"title": "착공계 제출"}]).get_json()["template"]["tasks"][0]["id"]

        response = self.client.delete(f"/api/templates/{template['id']}", headers=self.headers(self.company_id))

        self.assertEqual(response.status_code, 200)
        response = self.client.get(f"/api/templates/{template['id']}", headers=self.headers(self.company_id))
        self.assertEqual(response.status_code, 404)
        with app.app_context():
            self.assertIsNotNone(db.session.get(TaskTemplate, task_id).deleted_at)
