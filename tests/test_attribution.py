import unittest

from correlate.attribution import AttributionState, attribute_work, attribution_step
from fixtures import ALICE, BOB, HOUR, LEAD, QA, T0, assign, issue, stage
from engine import build_issue_timeline
from normalize.activities import normalize_activities
from normalize.util import register_user
from settings.options import AttributionRules


def _worked(activities, users=None, rules=None):
    directory = {}
    for u in users or []:
        register_user(directory, u)
    items = normalize_activities(activities, user_map=directory)
    return attribute_work(items, directory, rules)


class TestOwnershipAttribution(unittest.TestCase):
    def test_owner_is_credited_not_mover(self):
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            stage('a2', T0 + HOUR, BOB, 'In Progress'),
        ])
        self.assertEqual([(w.user_id, w.state) for w in worked], [('1-1', 'In Progress')])
        self.assertEqual(worked[0].name, 'Alice Smith')

    def test_review_state_credits_actor(self):
        worked = _worked([stage('a1', T0, QA, 'QA In Progress')])
        self.assertEqual([(w.user_id, w.state) for w in worked], [('1-4', 'QA In Progress')])

    def test_repeated_transition_credited_once(self):
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            stage('a2', T0 + HOUR, ALICE, 'In Progress'),
            stage('a3', T0 + 2 * HOUR, ALICE, 'Open'),
            stage('a4', T0 + 3 * HOUR, ALICE, 'In Progress'),
        ])
        self.assertEqual(len(worked), 1)

    def test_work_state_without_assignee_emits_nothing(self):
        self.assertEqual(_worked([stage('a1', T0, BOB, 'In Progress')]), [])

    def test_unresolved_assignee_keeps_previous(self):
        ghost = {'$type': 'User', 'name': 'ghost'}
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            assign('a2', T0 + HOUR, LEAD, ghost),
            stage('a3', T0 + 2 * HOUR, LEAD, 'In Progress'),
        ])
        self.assertEqual([w.user_id for w in worked], ['1-1'])

    def test_reassignment_credits_new_owner(self):
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            stage('a2', T0 + HOUR, LEAD, 'In Progress'),
            assign('a3', T0 + 2 * HOUR, LEAD, BOB),
            stage('a4', T0 + 3 * HOUR, LEAD, 'In Progress'),
            stage('a5', T0 + 4 * HOUR, BOB, 'QA In Progress'),
        ])
        self.assertEqual(
            [(w.user_id, w.state) for w in worked],
            [('1-1', 'In Progress'), ('1-2', 'In Progress'), ('1-2', 'QA In Progress')],
        )

    def test_matching_is_case_insensitive(self):
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            stage('a2', T0 + HOUR, LEAD, 'in progress', field='state'),
        ])
        self.assertEqual([w.state for w in worked], ['in progress'])

    def test_substring_is_not_a_match(self):
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            stage('a2', T0 + HOUR, LEAD, 'Not In Progress'),
        ])
        self.assertEqual(worked, [])

    def test_custom_rules(self):
        rules = AttributionRules(stage_fields=['Column'], work_states=['Development'], review_states=['Code Review'])
        worked = _worked([
            assign('a1', T0, LEAD, ALICE),
            stage('a2', T0 + HOUR, LEAD, 'Development', field='Column'),
            stage('a3', T0 + 2 * HOUR, BOB, 'Code Review', field='Column'),
            stage('a4', T0 + 3 * HOUR, LEAD, 'In Progress'),
        ], rules=rules)
        self.assertEqual([(w.user_id, w.state) for w in worked], [('1-1', 'Development'), ('1-2', 'Code Review')])

    def test_rerun_is_idempotent(self):
        directory = {}
        items = normalize_activities([assign('a1', T0, LEAD, ALICE), stage('a2', T0 + HOUR, LEAD, 'In Progress')], user_map=directory)
        self.assertEqual(attribute_work(items, directory), attribute_work(items, directory))


def test_step_is_pure():
    directory = {}
    items = normalize_activities([assign('a1', T0, LEAD, ALICE), stage('a2', T0 + HOUR, LEAD, 'In Progress')], user_map=directory)
    rules = AttributionRules()
    start = AttributionState()
    after_assign, emitted = attribution_step(start, items[0], directory, rules)
    assert emitted == []
    assert after_assign.current_assignee == '1-1'
    assert start.current_assignee is None

    after_stage, emitted = attribution_step(after_assign, items[1], directory, rules)
    assert [e.user_id for e in emitted] == ['1-1']
    assert after_assign.emitted == ()
    assert after_stage.seen == frozenset({('1-1', 'In Progress')})


def test_attribution_follows_timestamps_not_input_order():
    # the stage change arrives first in the payload but happens after the assignment
    result = build_issue_timeline(issue(activities=[
        stage('a2', T0 + HOUR, BOB, 'In Progress'),
        assign('a1', T0, LEAD, ALICE),
    ]))
    assert [(w.user_id, w.state) for w in result.actively_worked_contributors] == [('1-1', 'In Progress')]
