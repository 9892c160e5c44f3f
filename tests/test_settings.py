import unittest

import pytest

from settings.options import AttributionRules, EngineOptions, apply_env_overrides, list_presets, load_options, load_preset


class TestLoadOptions(unittest.TestCase):
    def test_bundled_defaults(self):
        options = load_options(environ={})
        self.assertEqual(options.max_comment_length, 1000)
        self.assertEqual(options.max_activities, 40)
        self.assertFalse(options.include_raw_data)
        self.assertEqual(options.rules.stage_fields, ['Stage', 'State'])
        self.assertEqual(options.rules.work_states, ['In Progress'])

    def test_preset_merges_over_base(self):
        options = load_options(preset='kanban', environ={})
        self.assertEqual(options.rules.assignee_field, 'Assignee')
        self.assertIn('Code Review', options.rules.review_states)
        self.assertEqual(options.max_comment_length, 1000)

    def test_env_overrides_yaml(self):
        options = load_options(preset='detailed', environ={'ISSUE_TIMELINE_MAX_ACTIVITIES': '7', 'ISSUE_TIMELINE_INCLUDE_RAW_DATA': 'yes'})
        self.assertEqual(options.max_activities, 7)
        self.assertEqual(options.max_comment_length, 2000)
        self.assertTrue(options.include_raw_data)

    def test_invalid_env_is_ignored(self):
        values = apply_env_overrides({'max_activities': 5}, environ={'ISSUE_TIMELINE_MAX_ACTIVITIES': 'many', 'ISSUE_TIMELINE_MAX_COMMENT_LENGTH': '-3'})
        self.assertEqual(values, {'max_activities': 5})

    def test_list_presets(self):
        self.assertEqual(set(list_presets()), {'detailed', 'compact', 'kanban'})


def test_unknown_preset_raises():
    with pytest.raises(ValueError):
        load_preset('nope')


def test_missing_file(tmp_path):
    missing = str(tmp_path / 'absent.yaml')
    with pytest.raises(ValueError):
        load_preset('detailed', path=missing)
    assert list_presets(missing) == []
    assert load_options(path=missing, environ={}).max_activities == 40


def test_custom_yaml(tmp_path):
    path = tmp_path / 'opts.yaml'
    path.write_text(
        "max_activities: 3\n"
        "attribution:\n"
        "  work_states: [Doing]\n"
        "presets:\n"
        "  tiny:\n"
        "    max_comment_length: 10\n",
        encoding='utf-8',
    )
    options = load_options(path=str(path), preset='tiny', environ={})
    assert options.max_activities == 3
    assert options.max_comment_length == 10
    assert options.rules.work_states == ['Doing']
    assert options.rules.review_states == ['QA In Progress']


def test_bad_yaml_falls_back(tmp_path):
    path = tmp_path / 'broken.yaml'
    path.write_text("- just\n- a list\n", encoding='utf-8')
    assert load_options(path=str(path), environ={}).max_comment_length == 1000


def test_options_round_trip_dict():
    options = EngineOptions(max_activities=0, rules=AttributionRules(work_states='Doing'))
    again = EngineOptions.from_dict(options.to_dict())
    assert again.max_activities == 0
    assert again.rules.work_states == ['Doing']
