from unittest import mock

from app.models.comment import Comment
from app.models.complaint import Complaint, ComplaintStatus
from app.models.status_history import StatusHistoryEntry
from app.models.user import UserRole

from support import DatabaseTestCase


class ComplaintApiTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        patcher = mock.patch("app.routers.complaints.dispatch")
        self.dispatch = patcher.start()
        self.addCleanup(patcher.stop)

    def sent_intents(self):
        return [c.args[0] for c in self.dispatch.call_args_list]


class SubmitApiTests(ComplaintApiTestCase):
    def form(self, **kwargs):
        data = {
            "description": "Large pothole on the main road near the market.",
            "location": "Kigali, Nyarugenge",
            "category_id": str(self.category.id),
            "subcategory_id": str(self.roads.id),
            "is_anonymous": "false",
            "full_name": "Jane Citizen",
            "phone_number": "0788123456",
        }
        data.update(kwargs)
        return data

    def test_guest_submission_end_to_end(self):
        response = self.client.post("/complaints", data=self.form())

        self.assertEqual(response.status_code, 201)
        complaint = response.json()["complaint"]
        self.assertRegex(complaint["tracking_id"], r"^IJW-\d{4}-\d{5}$")
        self.assertEqual(complaint["status"], "pending")
        self.assertEqual(complaint["failed_attachments"], [])

        stored = self.db.query(Complaint).one()
        self.assertEqual(self.db.query(StatusHistoryEntry).filter_by(complaint_id=stored.id).count(), 1)

        intent = self.sent_intents()[0]
        self.assertEqual(intent.type, "submitted")
        self.assertEqual(intent.contact.phone_number, "0788123456")
        self.assertEqual(intent.data.tracking_id, complaint["tracking_id"])

    def test_missing_contact_for_guest(self):
        response = self.client.post("/complaints", data=self.form(full_name="", phone_number=""))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "validation_error")
        self.assertEqual(self.db.query(Complaint).count(), 0)

    def test_short_description(self):
        response = self.client.post("/complaints", data=self.form(description="short"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "description")

    def test_mismatched_subcategory(self):
        health = self.create_category("Healthcare", ["Hospitals"])
        response = self.client.post("/complaints", data=self.form(subcategory_id=str(health.subcategories[0].id)))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Subcategory not found or does not belong to the selected category")

    def test_signed_in_submission(self):
        user = self.create_user("citizen@example.com", phone_number="250788999000")
        response = self.client.post(
            "/complaints", data=self.form(full_name="", phone_number=""), headers=self.auth_headers(user)
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.db.query(Complaint).one().user_id, user.id)
        self.assertEqual(self.sent_intents()[0].contact.email, "citizen@example.com")

    @mock.patch("app.services.storage.upload", return_value={"url": "https://files.example.com/a.png", "public_id": "a.png"})
    def test_with_attachment(self, upload):
        response = self.client.post(
            "/complaints",
            data=self.form(),
            files=[("attachments", ("photo.png", b"\x89PNG data", "image/png"))],
        )
        self.assertEqual(response.status_code, 201)
        attachments = response.json()["complaint"]["attachments"]
        self.assertEqual(attachments[0]["file_name"], "photo.png")
        self.assertEqual(attachments[0]["file_url"], "https://files.example.com/a.png")

    def test_disallowed_attachment_type(self):
        response = self.client.post(
            "/complaints",
            data=self.form(),
            files=[("attachments", ("tool.exe", b"MZ", "application/x-msdownload"))],
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.query(Complaint).count(), 0)


class TrackApiTests(ComplaintApiTestCase):
    def test_track_by_id(self):
        self.create_complaint()
        response = self.client.get("/complaints/track/IJW-2025-12345")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["tracking_id"], "IJW-2025-12345")
        self.assertNotIn("phone_number", body)

    def test_malformed_and_unknown(self):
        response = self.client.get("/tracking/IJW-2025-1")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid_tracking_id_format")

        response = self.client.get("/tracking/IJW-2025-54321")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "not_found")

    def test_validate(self):
        self.create_complaint()
        response = self.client.post("/tracking/validate", json={"tracking_id": "IJW-2025-12345"})
        self.assertEqual(response.json(), {"valid": True, "tracking_id": "IJW-2025-12345"})
        self.assertEqual(self.client.post("/tracking/validate", json={"tracking_id": ""}).status_code, 400)

    def test_padded_id_is_rejected_everywhere(self):
        self.create_complaint()
        response = self.client.post("/tracking/validate", json={"tracking_id": " IJW-2025-12345"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid_tracking_id_format")
        self.assertEqual(self.client.get("/tracking/%20IJW-2025-12345").status_code, 400)
        self.assertEqual(self.client.get("/complaints/track/%20IJW-2025-12345").status_code, 400)

    def test_history(self):
        self.create_complaint()
        response = self.client.get("/tracking/IJW-2025-12345/history")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["current_status"], "pending")
        self.assertEqual(body["status_history"][0]["status"], "Submitted")

    def test_my_complaints(self):
        user = self.create_user("citizen@example.com")
        self.create_complaint(user_id=user.id, full_name=None, phone_number=None, email=None)
        self.create_complaint(tracking_id="IJW-2025-67890")
        response = self.client.get("/complaints/user", headers=self.auth_headers(user))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c["tracking_id"] for c in response.json()["complaints"]], ["IJW-2025-12345"])

    def test_my_complaints_requires_verified_user(self):
        user = self.create_user("citizen@example.com", is_verified=False)
        self.assertEqual(self.client.get("/complaints/user", headers=self.auth_headers(user)).status_code, 403)


class CommentApiTests(ComplaintApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner = self.create_user("owner@example.com")
        self.complaint = self.create_complaint(user_id=self.owner.id, full_name=None, phone_number=None, email=None)

    def test_owner_can_comment(self):
        response = self.client.post(
            f"/complaints/{self.complaint.id}/comments", json={"content": "Any update?"}, headers=self.auth_headers(self.owner)
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["content"], "Any update?")
        self.dispatch.assert_not_called()

    def test_other_citizen_cannot_comment(self):
        other = self.create_user("other@example.com")
        response = self.client.post(
            f"/complaints/{self.complaint.id}/comments", json={"content": "Me too"}, headers=self.auth_headers(other)
        )
        self.assertEqual(response.status_code, 403)

    def test_citizen_cannot_post_internal(self):
        response = self.client.post(
            f"/complaints/{self.complaint.id}/comments",
            json={"content": "secret", "is_internal": True},
            headers=self.auth_headers(self.owner),
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.query(Comment).count(), 0)

    def test_admin_public_comment_notifies(self):
        response = self.client.post(
            f"/complaints/{self.complaint.id}/comments",
            json={"content": "A crew is scheduled."},
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 201)
        intent = self.sent_intents()[0]
        self.assertEqual(intent.type, "newComment")
        self.assertEqual(intent.contact.email, "owner@example.com")

    def test_admin_internal_comment_is_silent(self):
        response = self.client.post(
            f"/complaints/{self.complaint.id}/comments",
            json={"content": "Budget approved", "is_internal": True},
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 201)
        self.dispatch.assert_not_called()

    def test_unverified_user_cannot_comment(self):
        self.owner.is_verified = False
        self.db.commit()
        response = self.client.post(
            f"/complaints/{self.complaint.id}/comments", json={"content": "Any update?"}, headers=self.auth_headers(self.owner)
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.query(Comment).count(), 0)

    def test_unknown_complaint(self):
        response = self.client.post("/complaints/999/comments", json={"content": "hi"}, headers=self.auth_headers(self.owner))
        self.assertEqual(response.status_code, 404)


class AdminApiTests(ComplaintApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers(self.admin)
        self.complaint = self.create_complaint()

    def test_admin_routes_require_admin(self):
        citizen = self.create_user("citizen@example.com")
        self.assertEqual(self.client.get("/complaints/admin", headers=self.auth_headers(citizen)).status_code, 403)

    def test_status_change(self):
        response = self.client.patch(
            f"/complaints/admin/{self.complaint.id}/status",
            json={"status": "resolved", "comment": "Pothole filled"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "resolved")
        self.assertEqual(self.sent_intents()[0].type, "resolved")
        self.db.expire_all()
        self.assertIsNotNone(self.db.get(Complaint, self.complaint.id).resolved_at)

    def test_invalid_status(self):
        response = self.client.patch(
            f"/complaints/admin/{self.complaint.id}/status", json={"status": "done"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid_status")

    def test_reject_without_reason(self):
        response = self.client.patch(
            f"/complaints/admin/{self.complaint.id}/status", json={"status": "rejected"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Rejection reason is required")
        self.db.expire_all()
        self.assertEqual(self.db.get(Complaint, self.complaint.id).status, ComplaintStatus.pending)

    def test_assign(self):
        response = self.client.patch(
            f"/complaints/admin/{self.complaint.id}/assign", json={"assigned_to": self.admin.id}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "under_review")
        self.assertEqual(self.sent_intents()[0].data.status, "under_review")

    def test_assign_to_citizen(self):
        citizen = self.create_user("citizen@example.com", role=UserRole.citizen)
        response = self.client.patch(
            f"/complaints/admin/{self.complaint.id}/assign", json={"assigned_to": citizen.id}, headers=self.headers
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Assigned user not found or is not an admin")

    def test_priority(self):
        response = self.client.patch(
            f"/complaints/admin/{self.complaint.id}/priority", json={"priority": "high"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["priority"], "high")
        self.dispatch.assert_not_called()

    def test_list_filters_and_pagination(self):
        self.create_complaint(tracking_id="IJW-2025-20000", location="Musanze market", status=ComplaintStatus.in_progress)
        self.create_complaint(tracking_id="IJW-2025-30000", location="Rubavu")

        response = self.client.get("/complaints/admin", params={"status": "in_progress"}, headers=self.headers)
        self.assertEqual([c["tracking_id"] for c in response.json()["items"]], ["IJW-2025-20000"])

        response = self.client.get("/complaints/admin", params={"search": "musanze"}, headers=self.headers)
        self.assertEqual(response.json()["total"], 1)

        response = self.client.get("/complaints/admin", params={"limit": 2, "page": 2}, headers=self.headers)
        body = response.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(len(body["items"]), 1)

    def test_statistics(self):
        self.create_complaint(tracking_id="IJW-2025-20000", status=ComplaintStatus.resolved)
        response = self.client.get("/complaints/admin/statistics", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 2)
        self.assertEqual(body["by_status"], {"pending": 1, "resolved": 1})
        self.assertEqual(body["by_category"][0]["count"], 2)

    def test_detail_includes_contact_and_ledger(self):
        response = self.client.get(f"/complaints/admin/{self.complaint.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["phone_number"], "250788123456")
        self.assertEqual(len(body["status_history"]), 1)

    def test_detail_unknown(self):
        self.assertEqual(self.client.get("/complaints/admin/999", headers=self.headers).status_code, 404)
