from app import app, db
from models.checklist import ChecklistItem
from support import AppTestCase, make_company, make_project, make_stage, make_task


class ChecklistApiTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            company = make_company()
            self.company_id = company.id
            stage = make_stage(make_project(company))
            self.task_id = make_task(stage, title="Collect permit documents").id
            self.other_task_id = make_task(stage, title="Other task").id
            self.other_company_id = make_company("Other").id
            db.session.commit()

    def _add(self, title, **fields):
        response = self.client.post(
            f"/api/tasks/{self.task_id}/checklist",
            json={"title": title, **fields},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 201)
        return response.get_json()["item"]

    def test_items_are_appended_in_order(self):
        first = self._add("토지이용계획확인서")
        second = self._add("측량도면", issued_at="2024-06-01", memo="from surveyor")

        self.assertEqual((first["order"], second["order"]), (0, 1))
        self.assertEqual(second["status"], "pending")
        self.assertEqual(second["issued_at"], "2024-05-31T15:00:00Z")

        response = self.client.get(f"/api/tasks/{self.task_id}/checklist", headers=self.headers(self.company_id))
        payload = response.get_json()
        self.assertEqual([item["title"] for item in payload["items"]], ["토지이용계획확인서", "측량도면"])
        self.assertEqual(payload["summary"], {"total": 2, "completed": 0, "progress": 0})

    def test_bulk_create(self):
        self._add("Existing")
        response = self.client.post(
            f"/api/tasks/{self.task_id}/checklist/bulk",
            json={"items": [{"title": "A"}, {"title": "B", "status": "completed"}]},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 201)
        payload = response.get_json()
        self.assertEqual([(item["title"], item["order"]) for item in payload["items"]], [("Existing", 0), ("A", 1), ("B", 2)])
        self.assertEqual(payload["summary"], {"total": 3, "completed": 1, "progress": 33})

    def test_bulk_create_is_all_or_nothing(self):
        response = self.client.post(
            f"/api/tasks/{self.task_id}/checklist/bulk",
            json={"items": [{"title": "A"}, {"title": ""}]},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 400)
        with app.app_context():
            self.assertEqual(ChecklistItem.query.count(), 0)

    def test_update_and_delete(self):
        item = self._add("Seal certificate")

        response = self.client.patch(
            f"/api/checklist/{item['id']}",
            json={"status": "completed", "title": None, "memo": "received"},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 200)
        updated = response.get_json()["item"]
        self.assertEqual(updated["title"], "Seal certificate")
        self.assertEqual(updated["status"], "completed")
        self.assertEqual(updated["memo"], "received")

        response = self.client.delete(f"/api/checklist/{item['id']}", headers=self.headers(self.company_id))
        self.assertEqual(response.status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(ChecklistItem, item["id"]))

    def test_reorder(self):
        ids = [self._add(title)["id"] for title in ("A", "B", "C")]

        response = self.client.put(
            f"/api/tasks/{self.task_id}/checklist/reorder",
            json={"item_ids": [ids[2], ids[0], ids[1]]},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 200)
        items = response.get_json()["items"]
        self.assertEqual([item["title"] for item in items], ["C", "A", "B"])
        self.assertEqual([item["order"] for item in items], [0, 1, 2])

    def test_reorder_rejects_foreign_items(self):
        ids = [self._add(title)["id"] for title in ("A", "B")]
        with app.app_context():
            foreign = ChecklistItem(task_id=self.other_task_id, title="Foreign", order=0)
            db.session.add(foreign)
            db.session.commit()
            foreign_id = foreign.id

        response = self.client.put(
            f"/api/tasks/{self.task_id}/checklist/reorder",
            json={"item_ids": [ids[1], foreign_id, ids[0]]},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 400)
        with app.app_context():
            orders = [db.session.get(ChecklistItem, item_id).order for item_id in ids]
        self.assertEqual(orders, [0, 1])

    def test_reorder_requires_a_list_of_ids(self):
        response = self.client.put(
            f"/api/tasks/{self.task_id}/checklist/reorder",
            json={"item_ids": "1,2"},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)

    def test_other_company_cannot_touch_items(self):
        item = self._add("Private")
        headers = self.headers(self.other_company_id)

        self.assertEqual(self.client.get(f"/api/tasks/{self.task_id}/checklist", headers=headers).status_code, 404)
        response = self.client.patch(f"/api/checklist/{item['id']}", json={"status": "completed"}, headers=headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.delete(f"/api/checklist/{item['id']}", headers=headers).status_code, 404)
