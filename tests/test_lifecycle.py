from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from app.core.errors import AssigneeNotFound, InvalidPriority, InvalidStatus, MissingRejectionReason
from app.models.complaint import ComplaintPriority, ComplaintStatus
from app.models.user import UserRole
from app.schemas.auth import Actor
from app.services import lifecycle

from support import DatabaseTestCase, naive

# no matching users row, so the status_history foreign key rejects the insert
UNKNOWN_ACTOR = Actor(id=424242, role="admin", is_verified=True)


class ValidateTransitionTests(DatabaseTestCase):
    def test_unknown_status_is_rejected(self):
        complaint = self.create_complaint()
        with self.assertRaises(InvalidStatus) as ctx:
            lifecycle.validate_transition(complaint, "archived")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.code, "invalid_status")

    def test_reject_requires_reason(self):
        complaint = self.create_complaint()
        with self.assertRaises(MissingRejectionReason):
            lifecycle.validate_transition(complaint, "rejected", rejection_reason="   ")

    def test_plan_stamps_resolved_and_closed(self):
        complaint = self.create_complaint()
        self.assertEqual(lifecycle.validate_transition(complaint, "resolved").stamp_field, "resolved_at")
        self.assertEqual(lifecycle.validate_transition(complaint, "closed").stamp_field, "closed_at")
        self.assertIsNone(lifecycle.validate_transition(complaint, "in_progress").stamp_field)

    def test_comment_falls_back_to_rejection_reason(self):
        complaint = self.create_complaint()
        plan = lifecycle.validate_transition(complaint, "rejected", rejection_reason="Duplicate of an earlier report")
        self.assertEqual(plan.comment, "Duplicate of an earlier report")

    def test_any_state_may_move_to_any_other(self):
        complaint = self.create_complaint(status=ComplaintStatus.closed)
        plan = lifecycle.validate_transition(complaint, "pending")
        self.assertEqual(plan.target, ComplaintStatus.pending)


class ChangeStatusTests(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.complaint = self.create_complaint()
        self.actor_admin = self.actor(self.admin)

    def test_transition_appends_one_ledger_entry(self):
        outcome = lifecycle.change_status(self.db, self.complaint, "in_progress", self.actor_admin, comment="Crew dispatched")

        self.assertEqual(outcome.complaint.status, ComplaintStatus.in_progress)
        entries = self.ledger(self.complaint)
        self.assertEqual(len(entries), 2)
        last = entries[-1]
        self.assertEqual(last.previous_status, "pending")
        self.assertEqual(last.new_status, "in_progress")
        self.assertEqual(last.comment, "Crew dispatched")
        self.assertEqual(last.changed_by, self.admin.id)

    def test_ledger_grows_by_one_per_transition(self):
        for target in ["under_review", "in_progress", "resolved", "closed"]:
            lifecycle.change_status(self.db, self.complaint, target, self.actor_admin)
        self.assertEqual(len(self.ledger(self.complaint)), 5)

    def test_reject_without_reason_changes_nothing(self):
        with self.assertRaises(MissingRejectionReason):
            lifecycle.change_status(self.db, self.complaint, "rejected", self.actor_admin)
        self.db.refresh(self.complaint)
        self.assertEqual(self.complaint.status, ComplaintStatus.pending)
        self.assertEqual(len(self.ledger(self.complaint)), 1)

    def test_failed_ledger_insert_leaves_complaint_untouched(self):
        complaint = self.create_complaint(tracking_id="IJW-2025-55555", status=ComplaintStatus.rejected,
                                          rejection_reason="Duplicate report")
        with self.assertRaises(IntegrityError):
            lifecycle.change_status(self.db, complaint, "resolved", UNKNOWN_ACTOR)

        self.db.expire_all()
        self.assertEqual(complaint.status, ComplaintStatus.rejected)
        self.assertEqual(complaint.rejection_reason, "Duplicate report")
        self.assertIsNone(complaint.resolved_at)
        self.assertEqual(len(self.ledger(complaint)), 1)

    def test_reject_stores_reason_and_leaving_clears_it(self):
        lifecycle.change_status(self.db, self.complaint, "rejected", self.actor_admin,
                                rejection_reason="Outside municipal jurisdiction")
        self.assertEqual(self.complaint.rejection_reason, "Outside municipal jurisdiction")

        lifecycle.change_status(self.db, self.complaint, "under_review", self.actor_admin)
        self.assertIsNone(self.complaint.rejection_reason)

    def test_resolving_twice_restamps_resolved_at(self):
        first = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        second = first + timedelta(days=3)

        plan = lifecycle.validate_transition(self.complaint, "resolved")
        lifecycle.apply_transition(self.db, self.complaint, plan, self.actor_admin, now=first)
        self.assertEqual(naive(self.complaint.resolved_at), naive(first))

        lifecycle.change_status(self.db, self.complaint, "in_progress", self.actor_admin)
        self.assertEqual(naive(self.complaint.resolved_at), naive(first))

        plan = lifecycle.validate_transition(self.complaint, "resolved")
        lifecycle.apply_transition(self.db, self.complaint, plan, self.actor_admin, now=second)
        self.assertEqual(naive(self.complaint.resolved_at), naive(second))

    def test_intent_type_follows_target_status(self):
        self.assertEqual(lifecycle.change_status(self.db, self.complaint, "resolved", self.actor_admin).intent.type, "resolved")
        outcome = lifecycle.change_status(self.db, self.complaint, "rejected", self.actor_admin,
                                          rejection_reason="Not a public matter")
        self.assertEqual(outcome.intent.type, "rejected")
        self.assertEqual(outcome.intent.data.reason, "Not a public matter")
        self.assertEqual(lifecycle.change_status(self.db, self.complaint, "closed", self.actor_admin).intent.type, "statusUpdate")

    def test_anonymous_complaint_yields_no_intent(self):
        complaint = self.create_complaint(tracking_id="IJW-2025-22222", is_anonymous=True)
        outcome = lifecycle.change_status(self.db, complaint, "in_progress", self.actor_admin)
        self.assertIsNone(outcome.intent)

    def test_complaint_without_contact_yields_no_intent(self):
        complaint = self.create_complaint(tracking_id="IJW-2025-33333", full_name=None, phone_number=None, email=None)
        outcome = lifecycle.change_status(self.db, complaint, "in_progress", self.actor_admin)
        self.assertIsNone(outcome.intent)


class AssignTests(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.complaint = self.create_complaint()
        self.other_admin = self.create_user("second-admin@example.com", role=UserRole.admin)
        self.actor_admin = self.actor(self.admin)

    def test_assigning_unassigned_pending_complaint_starts_review(self):
        outcome = lifecycle.assign(self.db, self.complaint, self.admin.id, self.actor_admin)

        self.assertEqual(outcome.complaint.status, ComplaintStatus.under_review)
        self.assertEqual(outcome.complaint.assigned_to_id, self.admin.id)
        entries = self.ledger(self.complaint)
        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[-1].comment, "Complaint assigned for review")
        self.assertEqual(outcome.intent.type, "statusUpdate")
        self.assertEqual(outcome.intent.data.comment, "Your complaint has been assigned to an administrator for review.")

    def test_assignment_pulls_advanced_complaint_back_to_review(self):
        complaint = self.create_complaint(tracking_id="IJW-2025-44444", status=ComplaintStatus.in_progress)
        lifecycle.assign(self.db, complaint, self.admin.id, self.actor_admin)
        self.assertEqual(complaint.status, ComplaintStatus.under_review)

    def test_reassignment_keeps_status(self):
        lifecycle.assign(self.db, self.complaint, self.admin.id, self.actor_admin)
        lifecycle.change_status(self.db, self.complaint, "in_progress", self.actor_admin)

        outcome = lifecycle.assign(self.db, self.complaint, self.other_admin.id, self.actor_admin)

        self.assertEqual(outcome.complaint.status, ComplaintStatus.in_progress)
        self.assertEqual(outcome.complaint.assigned_to_id, self.other_admin.id)
        self.assertIsNone(outcome.intent)
        self.assertEqual(len(self.ledger(self.complaint)), 3)

    def test_unassigning_keeps_status(self):
        lifecycle.assign(self.db, self.complaint, self.admin.id, self.actor_admin)
        outcome = lifecycle.assign(self.db, self.complaint, None, self.actor_admin)
        self.assertIsNone(outcome.complaint.assigned_to_id)
        self.assertEqual(outcome.complaint.status, ComplaintStatus.under_review)
        self.assertEqual(len(self.ledger(self.complaint)), 2)

    def test_unassigning_unassigned_complaint_is_a_noop(self):
        outcome = lifecycle.assign(self.db, self.complaint, None, self.actor_admin)
        self.assertIsNone(outcome.entry)
        self.assertIsNone(outcome.intent)
        self.assertEqual(len(self.ledger(self.complaint)), 1)
        self.assertIsNone(self.complaint.updated_at)

    def test_assignee_must_be_admin(self):
        citizen = self.create_user("citizen@example.com")
        with self.assertRaises(AssigneeNotFound) as ctx:
            lifecycle.assign(self.db, self.complaint, citizen.id, self.actor_admin)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_failed_ledger_insert_leaves_assignment_untouched(self):
        with self.assertRaises(IntegrityError):
            lifecycle.assign(self.db, self.complaint, self.admin.id, UNKNOWN_ACTOR)

        self.db.expire_all()
        self.assertIsNone(self.complaint.assigned_to_id)
        self.assertEqual(self.complaint.status, ComplaintStatus.pending)
        self.assertIsNone(self.complaint.updated_at)
        self.assertEqual(len(self.ledger(self.complaint)), 1)

    def test_unknown_assignee(self):
        with self.assertRaises(AssigneeNotFound):
            lifecycle.assign(self.db, self.complaint, 9999, self.actor_admin)


class PriorityTests(DatabaseTestCase):
    def test_priority_change_writes_no_ledger(self):
        complaint = self.create_complaint()
        lifecycle.set_priority(self.db, complaint, "urgent")
        self.assertEqual(complaint.priority, ComplaintPriority.urgent)
        self.assertEqual(len(self.ledger(complaint)), 1)

    def test_invalid_priority(self):
        complaint = self.create_complaint()
        with self.assertRaises(InvalidPriority):
            lifecycle.set_priority(self.db, complaint, "critical")
