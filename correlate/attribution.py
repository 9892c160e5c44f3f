"""
Ownership attribution: credit work-state transitions to the right person.

A single left fold over the chronologically sorted timeline carries the current
assignee. Entering a work state (e.g. "In Progress") credits whoever owns the issue
at that moment, since leads and bots often move cards for someone else. Entering a
review state (e.g. "QA In Progress") credits the author of the transition.
Each (userId, state) pair is credited at most once.

An assignee change whose value can't be resolved in the user directory leaves the
previous assignee in place.
"""
from functools import reduce
from types import MappingProxyType
from typing import FrozenSet, Iterable, List, Mapping, Optional, Tuple

from correlate.models import ActivelyWorkedContributor
from normalize.models import TimelineItem, UserRef
from normalize.util import display_name_for, find_user_id_by_name
from settings.options import AttributionRules


class AttributionState:
    """Immutable fold accumulator."""
    __slots__ = ('current_assignee', 'seen', 'emitted')

    def __init__(self, current_assignee: Optional[str] = None, seen: FrozenSet[tuple] = frozenset(), emitted: Tuple[ActivelyWorkedContributor, ...] = ()):
        self.current_assignee = current_assignee
        self.seen = seen
        self.emitted = emitted


def _credit(state: AttributionState, user_id: Optional[str], value: str, users: Mapping[str, UserRef]) -> AttributionState:
    if not user_id or (user_id, value) in state.seen:
        return state
    credit = ActivelyWorkedContributor(user_id=user_id, name=display_name_for(users, user_id), state=value)
    return AttributionState(state.current_assignee, state.seen | {credit.key}, state.emitted + (credit,))


def attribution_step(state: AttributionState, item: TimelineItem, users: Mapping[str, UserRef], rules: AttributionRules) -> Tuple[AttributionState, List[ActivelyWorkedContributor]]:
    """Transition function: (state, item) -> (new state, attributions emitted by this item)."""
    if not item.is_activity or not item.added_values:
        return state, []

    if rules.is_assignee_field(item.field):
        resolved = find_user_id_by_name(users, item.added_values[0])
        if resolved:
            state = AttributionState(resolved, state.seen, state.emitted)

    before = len(state.emitted)
    if rules.is_stage_field(item.field):
        for value in item.added_values:
            if rules.is_work_state(value):
                state = _credit(state, state.current_assignee, value, users)
            elif rules.is_review_state(value):
                state = _credit(state, item.author_id, value, users)
    return state, list(state.emitted[before:])


def attribute_work(timeline: Iterable[TimelineItem], users: Optional[Mapping[str, UserRef]] = None, rules: Optional[AttributionRules] = None) -> List[ActivelyWorkedContributor]:
    """Run the fold over a timeline that is already sorted ascending; attributions come back in discovery order."""
    directory = MappingProxyType(dict(users or {}))
    rules = rules or AttributionRules()
    final = reduce(lambda state, item: attribution_step(state, item, directory, rules)[0], timeline, AttributionState())
    return list(final.emitted)
