from fixtures import ALICE, BOB, T0, comment
from normalize.comments import normalize_comment, normalize_comments
from normalize.fields import flatten_attachments, flatten_custom_fields
from normalize.models import TimelineItemType


def test_comment_basic():
    item = normalize_comment(comment('c1', T0, ALICE, 'hello', pinned=True))
    assert item.kind is TimelineItemType.COMMENT
    assert item.text == 'hello'
    assert item.author_id == '1-1'
    assert item.to_dict() == {'id': 'c1', 'type': 'comment', 'timestamp': '2024-01-01 00:00:00', 'author': '1-1', 'text': 'hello', 'isPinned': True}


def test_comment_defaults():
    item = normalize_comment({'id': 'c2'})
    assert item.text == ''
    assert item.timestamp == 'unknown date'
    assert item.author_id is None
    assert 'isPinned' not in item.to_dict()


def test_comment_truncation_bound():
    item = normalize_comment(comment('c3', T0, ALICE, 'y' * 1500))
    assert len(item.text) == 1000 + len(' [truncated]')
    assert item.text.endswith(' [truncated]')


def test_comment_without_id_gets_synthetic_id():
    item = normalize_comment({'created': T0, 'text': 'x'})
    assert item.item_id.startswith('comment-')


def test_normalize_comments_registers_authors():
    users = {}
    items = normalize_comments([comment('c1', T0, ALICE, 'a'), None, comment('c2', T0, BOB, 'b')], user_map=users)
    assert len(items) == 2
    assert set(users) == {'1-1', '1-2'}


def test_flatten_custom_fields():
    raw = [
        {'$type': 'StateIssueCustomField', 'name': 'State', 'value': {'id': 's1', 'name': 'Open', 'isResolved': False, 'color': {'background': '#fff'}}},
        {'$type': 'SingleUserIssueCustomField', 'name': 'Assignee', 'value': BOB},
        {'$type': 'MultiEnumIssueCustomField', 'name': 'Tags', 'value': [{'name': 'a'}, {'name': 'b'}]},
        {'$type': 'PeriodIssueCustomField', 'name': 'Estimation', 'value': {'id': 'PT4H30M'}},
        {'$type': 'SimpleIssueCustomField', 'name': 'Points', 'value': 3},
        {'$type': 'SingleEnumIssueCustomField', 'name': 'Priority', 'value': None},
        {'name': ''},
        'junk',
    ]
    users = {}
    fields = {f['name']: f for f in flatten_custom_fields(raw, user_map=users)}
    assert fields['State'] == {'name': 'State', 'value': 'Open', 'valueId': 's1', 'color': '#fff', 'isResolved': False}
    assert fields['Assignee']['value'] == 'bob'
    assert fields['Tags']['value'] == ['a', 'b']
    assert fields['Estimation']['value'] == '4 hours 30 minutes'
    assert fields['Points']['value'] == 3
    assert fields['Priority'] == {'name': 'Priority', 'value': None}
    assert len(fields) == 6
    assert '1-2' in users


def test_flatten_attachments():
    raw = [{'id': 'f1', 'name': 'log.txt', 'size': 1536, 'created': T0, 'author': ALICE, 'mimeType': 'text/plain'}, {'id': 'f2'}, 7]
    attachments = flatten_attachments(raw)
    assert attachments[0] == {'id': 'f1', 'name': 'log.txt', 'mimeType': 'text/plain', 'size': '1.5 KB', 'created': '2024-01-01 00:00:00', 'author': '1-1'}
    assert attachments[1] == {'id': 'f2', 'name': 'Unnamed attachment'}
    assert len(attachments) == 2


def test_comment_with_out_of_range_created():
    item = normalize_comment({'id': 'c', 'created': '9999-12-31T23:30:00-05:00', 'text': 'x'})
    assert item.timestamp == 'unknown date'
    assert item.occurred_at is None
