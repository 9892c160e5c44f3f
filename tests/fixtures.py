"""
YouTrack-shaped raw records shared by the test modules.
"""

# 2024-01-01 00:00:00 UTC in epoch milliseconds
T0 = 1704067200000
HOUR = 3600 * 1000

ALICE = {'$type': 'User', 'id': '1-1', 'login': 'alice', 'name': 'alice', 'fullName': 'Alice Smith'}
BOB = {'$type': 'User', 'id': '1-2', 'login': 'bob', 'name': 'bob', 'fullName': 'Bob Jones'}
LEAD = {'$type': 'User', 'id': '1-3', 'login': 'lead', 'name': 'lead', 'fullName': 'Team Lead'}
QA = {'$type': 'User', 'id': '1-4', 'login': 'qa', 'name': 'qa', 'fullName': 'Quinn Tester'}


def field_change(activity_id, ts, author, field, added=None, removed=None, type_tag='CustomFieldActivityItem'):
    record = {
        '$type': type_tag,
        'id': activity_id,
        'timestamp': ts,
        'author': author,
        'field': {'name': field},
    }
    if added is not None:
        record['added'] = added
    if removed is not None:
        record['removed'] = removed
    return record


def assign(activity_id, ts, author, assignee):
    """Assignee change; added values are user objects, as YouTrack returns them."""
    return field_change(activity_id, ts, author, 'Assignee', added=[assignee], removed=[])


def stage(activity_id, ts, author, state, field='Stage'):
    return field_change(activity_id, ts, author, field, added=[{'name': state}], removed=[])


def comment(comment_id, created, author, text, pinned=None):
    record = {'id': comment_id, 'created': created, 'author': author, 'text': text}
    if pinned is not None:
        record['isPinned'] = pinned
    return record


def comment_activity(activity_id, ts, author, comment_id, text):
    return {
        '$type': 'CommentActivityItem',
        'id': activity_id,
        'timestamp': ts,
        'author': author,
        'added': [{'$type': 'IssueComment', 'id': comment_id, 'text': text}],
    }


def issue(activities=None, comments=None, **extra):
    record = {'idReadable': 'PRJ-1', 'summary': 'Fix the widget', 'activities': activities or [], 'comments': comments or []}
    record.update(extra)
    return record
