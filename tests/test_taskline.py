"""
Tests for the task line engine (codec, extractor, classifier, mutations,
frontmatter, debouncer)

Run with: pytest tests/
"""

import asyncio
import types

import pytest
import yaml

from taskline.classifier import aggregate, classify, filter_tasks, matches_tab
from taskline.codec import decode_task_line, encode_task, is_task_line, normalize_tag
from taskline.debounce import Debouncer
from taskline.errors import AmbiguousOrMissingLine, EmptyInput, ErrorKind, InvalidTask
from taskline.extractor import extract_task_lines, extract_tasks
from taskline.frontmatter import get_scratchpad, is_project, parse_frontmatter, set_scratchpad
from taskline.models import Priority, Tab, TabCounts, TaskRecord
from taskline import mutations

TODAY = '2024-06-01'


class TestTaskLineCodec:
    """Encoding and decoding single task lines"""

    def test_encode_all_metadata(self):
        record = TaskRecord(
            text='Buy milk',
            due_date='2024-01-01',
            priority=Priority.HIGH,
            tags=('errand', 'home')
        )
        assert encode_task(record) == '- [ ] Buy milk 📅 2024-01-01 (High) 🔖 errand 🔖 home'

    def test_encode_without_metadata_has_no_trailing_space(self):
        assert encode_task(TaskRecord(text='  Buy milk ')) == '- [ ] Buy milk'

    def test_encode_done(self):
        assert encode_task(TaskRecord(text='Ship it', done=True, priority=Priority.LOW)) == '- [x] Ship it (Low)'

    def test_encode_rejects_blank_text(self):
        with pytest.raises(EmptyInput):
            encode_task(TaskRecord(text='   '))

    def test_encode_rejects_bad_tag_and_date(self):
        with pytest.raises(InvalidTask):
            encode_task(TaskRecord(text='x', tags=('two words',)))
        with pytest.raises(InvalidTask):
            encode_task(TaskRecord(text='x', due_date='June 1st'))
        with pytest.raises(InvalidTask):
            encode_task(TaskRecord(text='x', tags=('bug\n',)))
        with pytest.raises(InvalidTask):
            encode_task(TaskRecord(text='x', due_date='2024-06-01\n'))

    @pytest.mark.parametrize('text', [
        'Buy eggs\n## Tasks\n- [ ] injected',
        'first\r\nsecond',
        'carriage\rreturn',
    ])
    def test_encode_rejects_multiline_text(self, text):
        with pytest.raises(InvalidTask):
            encode_task(TaskRecord(text=text))

    @pytest.mark.parametrize('line', [
        '* [ ] star bullet',
        '- [X] upper case marker',
        '-  [ ] extra space',
        '  - [ ] indented',
        '- [] empty brackets',
        '## Tasks',
        '',
    ])
    def test_decode_rejects_non_task_lines(self, line):
        assert decode_task_line(line) is None
        assert not is_task_line(line)

    def test_decode_full_line(self):
        line = '- [x] Buy milk 📅 2024-01-01 (Medium) 🔖 errand'
        record = decode_task_line(line, document='Projects/Home.md', line_number=7)

        assert record.done is True
        assert record.text == 'Buy milk'
        assert record.due_date == '2024-01-01'
        assert record.priority == Priority.MEDIUM
        assert record.tags == ('errand',)
        assert record.source_line == line
        assert record.document == 'Projects/Home.md'
        assert record.line_number == 7

    def test_decode_tag_deduplication(self):
        record = decode_task_line('- [ ] Triage 🔖 bug 🔖 bug 🔖 feature')
        assert set(record.tags) == {'bug', 'feature'}
        assert len(record.tags) == 2
        assert record.text == 'Triage'

    def test_decode_first_date_and_priority_win(self):
        record = decode_task_line('- [ ] Plan 📅 2024-01-01 📅 2024-02-02 (Low) (High)')
        assert record.due_date == '2024-01-01'
        assert record.priority == Priority.LOW
        assert record.text == 'Plan  📅 2024-02-02  (High)'

    def test_decode_priority_is_case_sensitive(self):
        record = decode_task_line('- [ ] Plan (high)')
        assert record.priority is None
        assert record.text == 'Plan (high)'

    def test_decode_tag_without_space(self):
        record = decode_task_line('- [ ] Fix login 🔖bug')
        assert record.tags == ('bug',)
        assert record.text == 'Fix login'

    @pytest.mark.parametrize('record', [
        TaskRecord(text='Buy milk'),
        TaskRecord(text='Call Bob (maybe)', done=True, due_date='2024-12-31'),
        TaskRecord(text='Refactor parser', priority=Priority.HIGH, tags=('tech_debt', 'v2')),
    ])
    def test_round_trip(self, record):
        assert decode_task_line(encode_task(record)) == record

    def test_normalize_tag(self):
        assert normalize_tag('🔖 Needs Review') == 'needs_review'
        assert normalize_tag('#front-end') == 'front_end'
        assert normalize_tag('c++') == 'c'

    def test_priority_parse(self):
        assert Priority.parse('high') == Priority.HIGH
        assert Priority.parse('Low') == Priority.LOW
        assert Priority.parse('') is None
        with pytest.raises(ValueError):
            Priority.parse('urgent')


DOCUMENT = '\n'.join([
    '---',
    'type: Project',
    '---',
    '- [ ] before the heading',
    '## Tasks',
    '- [ ] one',
    'not a task',
    '- [x] two',
    '',
    '## Notes',
    '- [ ] after notes',
])


class TestDocumentTaskExtractor:
    """Pulling task lines out of the Tasks section"""

    def test_no_heading_yields_nothing(self):
        assert list(extract_task_lines('# Title\n- [ ] orphan')) == []

    def test_scans_to_end_of_document_by_default(self):
        assert list(extract_task_lines(DOCUMENT)) == ['- [ ] one', '- [x] two', '- [ ] after notes']

    def test_can_close_section_at_next_heading(self):
        assert list(extract_task_lines(DOCUMENT, close_at_heading=True)) == ['- [ ] one', '- [x] two']

    def test_heading_must_match_exactly(self):
        assert list(extract_task_lines('  ## Tasks  \n- [ ] a')) == ['- [ ] a']
        assert list(extract_task_lines('## Tasks list\n- [ ] a')) == []
        assert list(extract_task_lines('### Tasks\n- [ ] a')) == []
        assert list(extract_task_lines('## tasks\n- [ ] a')) == []

    def test_lazy_and_restartable(self):
        lines = extract_task_lines(DOCUMENT)
        assert isinstance(lines, types.GeneratorType)
        assert list(lines) == list(extract_task_lines(DOCUMENT))

    def test_extract_tasks_records_positions(self):
        content = '## Tasks\n- [ ] Call Bob\n- [ ] Call Bob\n- [x] Email Ann'
        records = extract_tasks(content, document='Projects/Work.md')

        assert [r.line_number for r in records] == [2, 3, 4]
        assert [r.occurrence for r in records] == [0, 1, 0]
        assert all(r.document == 'Projects/Work.md' for r in records)
        assert len({r.id for r in records}) == 3


def _task(due=None, done=False):
    return TaskRecord(text='task', done=done, due_date=due)


class TestClassifier:
    """Tab predicates and counts"""

    def test_overdue_scenario(self):
        record = _task(due='2024-05-01')
        assert matches_tab(record, Tab.OVERDUE, TODAY)
        assert matches_tab(record, Tab.TODO, TODAY)
        assert not matches_tab(record, Tab.UNPLANNED, TODAY)
        assert classify(record, TODAY) == Tab.OVERDUE

    def test_today_includes_completed_tasks(self):
        assert matches_tab(_task(due=TODAY, done=True), Tab.TODAY, TODAY)
        assert not matches_tab(_task(due=TODAY, done=True), Tab.TODO, TODAY)

    def test_completed_tasks_are_never_unplanned(self):
        assert not matches_tab(_task(done=True), Tab.UNPLANNED, TODAY)
        assert matches_tab(_task(), Tab.UNPLANNED, TODAY)

    def test_classify(self):
        assert classify(_task(due=TODAY), TODAY) == Tab.TODAY
        assert classify(_task(due='2024-07-01'), TODAY) == Tab.TODO
        assert classify(_task(), TODAY) == Tab.UNPLANNED
        assert classify(_task(due=TODAY, done=True), TODAY) == Tab.TODAY
        assert classify(_task(due='2024-05-01', done=True), TODAY) is None

    def test_all_tab_matches_everything(self):
        records = [_task(), _task(done=True), _task(due='2024-01-01', done=True)]
        assert filter_tasks(records, Tab.ALL, TODAY) == records

    def test_aggregate(self):
        records = [
            _task(due=TODAY),
            _task(due=TODAY, done=True),
            _task(due='2024-05-01'),
            _task(due='2024-07-01'),
            _task(),
            _task(done=True),
        ]
        counts = aggregate(records, TODAY)

        assert counts == TabCounts(all=6, today=2, todo=3, overdue=1, unplanned=1)
        assert aggregate(records, TODAY) == counts
        assert aggregate(list(reversed(records)), TODAY) == counts

    def test_classification_properties(self):
        records = [_task(due=d, done=done)
                   for d in (None, '2024-05-01', TODAY, '2024-07-01')
                   for done in (False, True)]
        for record in records:
            if matches_tab(record, Tab.OVERDUE, TODAY):
                assert matches_tab(record, Tab.TODO, TODAY)
            assert not (matches_tab(record, Tab.TODAY, TODAY) and matches_tab(record, Tab.UNPLANNED, TODAY))


class TestMutations:
    """Text transforms of the mutation engine"""

    def test_insert_creates_section(self):
        content = mutations.insert_task('# Groceries', '- [ ] Buy milk')
        assert content == '# Groceries\n\n## Tasks\n- [ ] Buy milk'
        assert content.endswith('\n## Tasks\n- [ ] Buy milk')

    def test_insert_prepends_within_section(self):
        content = '# Groceries\n## Tasks\n- [ ] Old task\n'
        assert mutations.insert_task(content, '- [ ] New task') == '# Groceries\n## Tasks\n- [ ] New task\n- [ ] Old task\n'

    def test_toggle_scenario(self):
        content = '## Tasks\n- [ ] Buy milk 📅 2024-01-01'
        toggled = mutations.toggle_task(content, '- [ ] Buy milk 📅 2024-01-01')
        assert toggled == '## Tasks\n- [x] Buy milk 📅 2024-01-01'
        assert mutations.toggle_task(toggled, '- [x] Buy milk 📅 2024-01-01') == content

    def test_lines_must_match_exactly(self):
        content = '## Tasks\n- [ ] Buy milk 📅 2024-01-01'
        with pytest.raises(AmbiguousOrMissingLine) as exc:
            mutations.toggle_task(content, '- [ ] Buy milk')
        assert exc.value.kind == ErrorKind.AMBIGUOUS_OR_MISSING_LINE
        assert exc.value.matches == 0

    def test_ambiguous_delete(self):
        content = '## Tasks\n- [ ] Call Bob\n- [ ] Call Bob'
        with pytest.raises(AmbiguousOrMissingLine) as exc:
            mutations.remove_task(content, '- [ ] Call Bob')
        assert exc.value.matches == 2

    def test_replace_keeps_position(self):
        content = '## Tasks\n- [ ] a\n- [ ] b\n- [ ] c'
        assert mutations.replace_task(content, '- [ ] b', '- [x] B (High)') == '## Tasks\n- [ ] a\n- [x] B (High)\n- [ ] c'

    def test_remove_preserves_other_content(self):
        content = '---\ntype: Project\n---\nIntro\n## Tasks\n- [ ] a\n- [ ] b\n'
        assert mutations.remove_task(content, '- [ ] a') == '---\ntype: Project\n---\nIntro\n## Tasks\n- [ ] b\n'


class TestFrontmatter:
    """Frontmatter parsing and scratchpad rewriting"""

    def test_parse(self):
        content = '---\ntype: Project\nstatus: active\n---\n# Body'
        assert parse_frontmatter(content) == {'type': 'Project', 'status': 'active'}
        assert is_project(content)
        assert not is_project('---\ntype: Area\n---\n')
        assert parse_frontmatter('# No frontmatter') == {}

    def test_invalid_yaml_raises(self):
        with pytest.raises(yaml.YAMLError):
            parse_frontmatter('---\ntype: [unclosed\n---\n')

    def test_creates_block_when_missing(self):
        content = set_scratchpad('# Note\n', 'hi')
        assert content == '---\ntype: Project\nscratchpad: "hi"\n---\n\n# Note\n'

    def test_replaces_existing_value_in_place(self):
        content = '---\ntype: Project\nscratchpad: "old"\nstatus: active\n---\nbody'
        updated = set_scratchpad(content, 'new "quoted"')

        assert updated == '---\ntype: Project\nscratchpad: "new \\"quoted\\""\nstatus: active\n---\nbody'
        assert get_scratchpad(updated) == 'new "quoted"'

    def test_appends_key_when_missing(self):
        updated = set_scratchpad('---\ntype: Project\n---\nbody', 'x')
        assert updated == '---\ntype: Project\nscratchpad: "x"\n---\nbody'

    def test_multi_line_value_round_trips(self):
        text = 'line one\nline "two"\tC:\\path'
        updated = set_scratchpad('---\ntype: Project\n---\n', text)

        assert get_scratchpad(updated) == text
        assert updated.count('\n') == 4

    def test_replaces_hand_written_continuation_lines(self):
        content = '---\ntype: Project\nscratchpad: "first\n  second"\ntags: [a]\n---\n'
        updated = set_scratchpad(content, 'new')

        assert parse_frontmatter(updated) == {'type': 'Project', 'scratchpad': 'new', 'tags': ['a']}

    def test_body_is_untouched(self):
        body = '\n## Tasks\n- [ ] Buy milk 📅 2024-01-01 🔖 errand\n'
        updated = set_scratchpad('---\ntype: Project\n---' + body, 'notes')
        assert updated.endswith('---' + body)

    def test_missing_scratchpad_is_empty(self):
        assert get_scratchpad('---\ntype: Project\n---\n') == ''


class TestDebouncer:
    """Coalescing of count recomputations"""

    @pytest.mark.asyncio
    async def test_triggers_collapse_into_one_call(self):
        calls = []

        async def compute():
            calls.append(1)
            return len(calls)

        debouncer = Debouncer(compute, delay=0.01)
        debouncer.trigger()
        debouncer.trigger()
        debouncer.trigger()

        assert await debouncer.wait() == 1
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_superseded_run_result_is_discarded(self):
        started = asyncio.Event()
        release = asyncio.Event()
        values = iter([1, 2])

        async def compute():
            value = next(values)
            if value == 1:
                started.set()
                await release.wait()
            return value

        debouncer = Debouncer(compute, delay=0.01)
        debouncer.trigger()
        await started.wait()

        debouncer.trigger()
        release.set()

        assert await debouncer.wait() == 2
        assert debouncer.calls == 2
        assert debouncer.result == 2

    @pytest.mark.asyncio
    async def test_error_of_latest_run_is_raised(self):
        async def compute():
            raise RuntimeError("boom")

        debouncer = Debouncer(compute, delay=0.01)
        debouncer.trigger()

        with pytest.raises(RuntimeError):
            await debouncer.wait()

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_run(self):
        calls = []

        async def compute():
            calls.append(1)

        debouncer = Debouncer(compute, delay=0.05)
        debouncer.trigger()
        debouncer.cancel()
        await asyncio.sleep(0.1)

        assert calls == []

    def test_created_before_event_loop_starts(self):
        async def compute():
            return 'done'

        debouncer = Debouncer(compute, delay=0.01)

        async def refresh():
            debouncer.trigger()
            return await debouncer.wait()

        assert asyncio.run(refresh()) == 'done'
