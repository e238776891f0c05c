from django.test import SimpleTestCase

from ..exceptions import InvalidState
from ..models import CustomizationStatus as S
from ..transitions import TRANSITIONS, can_transition, check_transition


class TransitionTableTestCase(SimpleTestCase):
    def test_every_status_has_an_entry(self):
        self.assertEqual(set(TRANSITIONS), set(S))

    def test_terminal_statuses(self):
        terminal = {status for status in S if not TRANSITIONS[status]}
        self.assertEqual(terminal, {S.COMPLETED, S.CANCELLED})

    def test_design_loop_is_allowed(self):
        self.assertTrue(can_transition(S.IN_PROGRESS, S.AWAITING_CUSTOMER_APPROVAL))
        self.assertTrue(can_transition(S.AWAITING_CUSTOMER_APPROVAL, S.IN_PROGRESS))

    def test_pricing_recovery_edges(self):
        self.assertTrue(can_transition(S.AWAITING_CUSTOMER_APPROVAL, S.AWAITING_PRICING))
        self.assertTrue(can_transition(S.AWAITING_PRICING, S.AWAITING_CUSTOMER_APPROVAL))
        self.assertFalse(can_transition(S.AWAITING_PRICING, S.APPROVED))

    def test_cannot_skip_steps(self):
        self.assertFalse(can_transition(S.PENDING_DESIGNER_REVIEW, S.APPROVED))
        self.assertFalse(can_transition(S.IN_PROGRESS, S.APPROVED))
        self.assertFalse(can_transition(S.COMPLETED, S.CANCELLED))

    def test_accepts_plain_strings(self):
        self.assertTrue(can_transition("approved", "completed"))

    def test_cancellable_statuses(self):
        self.assertEqual(
            {status for status in S if can_transition(status, S.CANCELLED)},
            {S.PENDING_DESIGNER_REVIEW, S.IN_PROGRESS, S.AWAITING_CUSTOMER_APPROVAL, S.AWAITING_PRICING},
        )

    def test_check_transition_raises_invalid_state(self):
        with self.assertRaises(InvalidState):
            check_transition(S.CANCELLED, S.IN_PROGRESS)
