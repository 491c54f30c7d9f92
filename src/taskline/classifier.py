"""
Filter/Classifier

Tab predicates over TaskRecords. Dates are ISO strings, so '<' on them is
a valid calendar comparison.

    today      due today (done or not)
    todo       not done, has a due date
    overdue    not done, due before today
    unplanned  not done, no due date
    all        every record
"""

from typing import Iterable, List, Optional

from .models import Tab, TabCounts, TaskRecord


def matches_tab(record: TaskRecord, tab: Tab, today: str) -> bool:
    """True if record belongs in tab on the given day"""
    tab = Tab(tab)
    if tab == Tab.ALL:
        return True
    if tab == Tab.TODAY:
        return record.due_date == today
    if record.done:
        return False
    if tab == Tab.TODO:
        return record.due_date is not None
    if tab == Tab.OVERDUE:
        return record.due_date is not None and record.due_date < today
    return record.due_date is None


def classify(record: TaskRecord, today: str) -> Optional[Tab]:
    """
    Single most specific tab for a record

    Order: overdue, today, todo, unplanned. Completed tasks only land in
    today (when due today), otherwise None.
    """
    for tab in (Tab.OVERDUE, Tab.TODAY, Tab.TODO, Tab.UNPLANNED):
        if matches_tab(record, tab, today):
            return tab
    return None


def filter_tasks(records: Iterable[TaskRecord], tab: Tab, today: str) -> List[TaskRecord]:
    return [r for r in records if matches_tab(r, tab, today)]


def aggregate(records: Iterable[TaskRecord], today: str) -> TabCounts:
    """
    Count records per tab

    A record may count toward several tabs (today and todo, overdue and
    todo). Only the set of records matters, not their order.
    """
    counts = TabCounts()
    for record in records:
        for tab in Tab:
            if matches_tab(record, tab, today):
                setattr(counts, tab.value, getattr(counts, tab.value) + 1)
    return counts
