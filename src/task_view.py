#!/usr/bin/env python3
"""
TaskView

Task controller for project notes in an Obsidian vault that:
1. Lists project notes (frontmatter 'type: Project')
2. Extracts tasks from each note's ## Tasks section
3. Filters tasks into tabs (all, today, todo, overdue, unplanned) and counts them
4. Creates, toggles, edits and deletes task lines in place
5. Reads and writes the per-project scratchpad
"""

import asyncio
import copy
import logging
import re
import sys
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from integrations import DocumentHandle, DocumentStore, VaultIntegration
from taskline import mutations
from taskline.classifier import aggregate, filter_tasks
from taskline.codec import DUE_GLYPH, TAG_GLYPH, decode_task_line, encode_task, normalize_tag
from taskline.debounce import Debouncer
from taskline.errors import EmptyInput, ErrorKind, InvalidTask, IOFailure, ProjectNotFound, TaskError
from taskline.extractor import extract_tasks
from taskline.frontmatter import get_scratchpad, set_scratchpad
from taskline.models import Priority, Tab, TabCounts, TaskRecord

DEFAULT_CONFIG: Dict[str, Any] = {
    'vault': {
        'path': '~/Obsidian/Vault',
        'project_type': 'Project',
        'ignore_dirs': ['.obsidian', '.trash'],
    },
    'tasks': {
        'section_ends_at_next_heading': False,
        'default_tags': ['feature', 'bug', 'improvement'],
    },
    'batching': {
        'list_batch_size': 10,
        'count_batch_size': 5,
    },
    'counts': {
        'debounce_ms': 100,
    },
    'logging': {
        'level': 'INFO',
    },
}

# Tag tokens as they appear anywhere in a note (vault-wide tag scan)
VAULT_TAG_PATTERN = re.compile(TAG_GLYPH + r'\s*(\w+)(?=\s|$)')

EDITABLE_FIELDS = ('text', 'done', 'due_date', 'priority', 'tags')


@dataclass
class TaskResult:
    """Outcome of a task operation"""
    ok: bool
    error: Optional[ErrorKind] = None
    message: str = ''
    record: Optional[TaskRecord] = None


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides into a copy of base"""
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


class TaskView:
    """
    Task view controller

    Owns the view state (active tab, last counts, task index by id). All
    parsing, filtering and text rewriting is delegated to the pure
    functions of the taskline package; storage goes through a
    DocumentStore.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        store: Optional[DocumentStore] = None,
        config: Optional[Dict[str, Any]] = None,
        today: Optional[str] = None
    ):
        """
        Initialize TaskView

        Args:
            config_path: YAML config file (default: config/config.yaml)
            store: Document store (default: VaultIntegration from config)
            config: Config dict used instead of reading a file
            today: Fixed 'YYYY-MM-DD' date (default: the local date)
        """
        self.logger = self._setup_logging()
        self.project_root = self._detect_project_root()

        if config is not None:
            self.config = merge_config(DEFAULT_CONFIG, config)
        else:
            self.config = self._load_config(config_path)
        self.logger.setLevel(self.config['logging']['level'])

        self._store = store if store is not None else VaultIntegration(self.config['vault'])
        self._today = today

        self.active_tab = Tab.ALL
        self.counts = TabCounts()
        self._tasks: Dict[str, TaskRecord] = {}
        self._counts_debouncer = Debouncer(
            self.compute_counts,
            delay=self.config['counts']['debounce_ms'] / 1000
        )

        self.logger.debug("TaskView initialized")

    def _setup_logging(self) -> logging.Logger:
        """Setup logging for the view"""
        logger = logging.getLogger("TaskView")

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - TaskView - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)

        return logger

    def _detect_project_root(self) -> Path:
        """Detect project root directory"""
        current_path = Path(__file__).resolve()

        for parent in current_path.parents:
            if (parent / 'pyproject.toml').exists():
                return parent

        return Path.cwd()

    def _load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from YAML file, merged over the defaults"""
        if config_path is None:
            config_path = self.project_root / 'config' / 'config.yaml'
            if not config_path.exists():
                example_config = self.project_root / 'config' / 'config.example.yaml'
                self.logger.warning(
                    f"Config not found at {config_path}, using defaults. "
                    f"Copy {example_config} to {config_path} and customize."
                )
                return merge_config(DEFAULT_CONFIG, {})
        else:
            config_path = Path(config_path)
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            return merge_config(DEFAULT_CONFIG, yaml.safe_load(f) or {})

    @property
    def today(self) -> str:
        return self._today or date.today().isoformat()

    @property
    def close_at_heading(self) -> bool:
        return bool(self.config['tasks']['section_ends_at_next_heading'])

    # ==================== Reading ====================

    async def _read_batched(
        self,
        handles: List[DocumentHandle],
        batch_size: int
    ) -> List[Tuple[DocumentHandle, str]]:
        """
        Read documents concurrently in batches

        Results keep the order of handles. Unreadable documents are logged
        and left out.
        """
        results = []
        batch_size = max(1, int(batch_size))

        for i in range(0, len(handles), batch_size):
            batch = handles[i:i + batch_size]
            contents = await asyncio.gather(
                *(self._store.read_document(h) for h in batch),
                return_exceptions=True
            )
            for handle, content in zip(batch, contents):
                if isinstance(content, IOFailure):
                    self.logger.error(f"Skipping {handle.path}: {content}")
                    continue
                if isinstance(content, BaseException):
                    raise content
                results.append((handle, content))

        return results

    async def load_projects(self) -> List[str]:
        """Names of all project notes, sorted"""
        handles = await self._store.list_eligible_documents()
        return sorted(h.name for h in handles)

    async def collect_tags(self) -> List[str]:
        """
        Collect every tag used anywhere in the vault

        Returns:
            Sorted tags, including the configured default tags
        """
        tags = set(self.config['tasks']['default_tags'])

        handles = await self._store.list_documents()
        batch_size = self.config['batching']['list_batch_size']
        for _, content in await self._read_batched(handles, batch_size):
            tags.update(VAULT_TAG_PATTERN.findall(content))

        self.logger.debug(f"Collected {len(tags)} tags")
        return sorted(tags)

    async def _load_records(self, today_only: bool = False) -> List[TaskRecord]:
        handles = await self._store.list_eligible_documents()
        batch_size = self.config['batching']['list_batch_size']
        documents = await self._read_batched(handles, batch_size)

        if today_only:
            marker = f"{DUE_GLYPH} {self.today}"
            documents = [(h, c) for h, c in documents if marker in c]

        records = []
        for handle, content in documents:
            records.extend(extract_tasks(content, document=handle.path, close_at_heading=self.close_at_heading))

        for record in records:
            self._tasks[record.id] = record
        return records

    async def load_tasks(self, tab: Optional[Tab] = None) -> List[TaskRecord]:
        """
        Get the tasks of a tab across all project notes

        Args:
            tab: Tab to show (default: the active tab); becomes the active tab

        Returns:
            Matching TaskRecords in note order, then line order
        """
        if tab is not None:
            self.active_tab = Tab(tab)

        self.logger.info(f"Loading '{self.active_tab.value}' tasks...")

        self._tasks.clear()
        records = await self._load_records(today_only=self.active_tab == Tab.TODAY)
        tasks = filter_tasks(records, self.active_tab, self.today)

        self.logger.info(f"Found {len(tasks)} '{self.active_tab.value}' tasks")
        return tasks

    async def find_task(self, task_id: str) -> Optional[TaskRecord]:
        """Look a task up by id, rescanning the vault if it is not indexed"""
        if task_id not in self._tasks:
            self._tasks.clear()
            await self._load_records()
        return self._tasks.get(task_id)

    async def compute_counts(self) -> TabCounts:
        """
        Recompute tab counts from every project note

        Returns:
            Fresh TabCounts (also stored on self.counts)
        """
        handles = await self._store.list_eligible_documents()
        batch_size = self.config['batching']['count_batch_size']

        records = []
        for handle, content in await self._read_batched(handles, batch_size):
            records.extend(extract_tasks(content, document=handle.path, close_at_heading=self.close_at_heading))

        self.counts = aggregate(records, self.today)
        self.logger.debug(f"Tab counts: {self.counts.as_dict()}")
        return self.counts

    def refresh_counts(self) -> None:
        """Schedule a debounced count recomputation"""
        self._counts_debouncer.trigger()

    async def wait_for_counts(self) -> TabCounts:
        """Wait for the latest scheduled count recomputation"""
        return await self._counts_debouncer.wait()

    # ==================== Mutations ====================

    def _failed(self, action: str, error: TaskError) -> TaskResult:
        self.logger.error(f"❌ Failed to {action}: {error}")
        return TaskResult(ok=False, error=error.kind, message=str(error))

    def _succeeded(self, message: str, record: Optional[TaskRecord] = None) -> TaskResult:
        self.logger.info(f"✅ {message}")
        self.refresh_counts()
        return TaskResult(ok=True, message=message, record=record)

    async def _resolve_project(self, name: str) -> DocumentHandle:
        handle = await self._store.resolve_document_by_name(name)
        if handle is None:
            raise ProjectNotFound(name)
        return handle

    async def _owner_of(self, record: TaskRecord) -> DocumentHandle:
        for handle in await self._store.list_eligible_documents():
            if handle.path == record.document:
                return handle
        raise ProjectNotFound(record.document or '<none>')

    async def create_task(
        self,
        text: str,
        project: str,
        priority: Optional[Any] = None,
        tags: Iterable[str] = (),
        due_date: Optional[str] = None
    ) -> TaskResult:
        """
        Add a task at the top of a project's Tasks section

        Args:
            text: Task description
            project: Project note name
            priority: Priority or label ('high', 'Medium', ...)
            tags: Tags, normalized to word tokens
            due_date: 'YYYY-MM-DD'

        Returns:
            TaskResult with the created record
        """
        try:
            if not text or not text.strip():
                raise EmptyInput()

            record = TaskRecord(
                text=text.strip(),
                done=False,
                due_date=due_date or None,
                priority=self._parse_priority(priority),
                tags=tuple(t for t in (normalize_tag(tag) for tag in tags) if t)
            )
            line = encode_task(record)

            handle = await self._resolve_project(project)
            content = await self._store.read_document(handle)
            await self._store.write_document(handle, mutations.insert_task(content, line))
        except TaskError as e:
            return self._failed("create task", e)

        created = decode_task_line(line, document=handle.path)
        return self._succeeded(f"Task added to {handle.name}", created)

    async def toggle_task(self, record: TaskRecord) -> TaskResult:
        """Flip a task between done and not done"""
        try:
            handle = await self._owner_of(record)
            content = await self._store.read_document(handle)
            new_content = mutations.toggle_task(content, record.source_line)
            await self._store.write_document(handle, new_content)
        except TaskError as e:
            return self._failed("toggle task", e)

        marker = '- [ ]' if record.done else '- [x]'
        toggled = decode_task_line(marker + record.source_line[5:], document=handle.path,
                                   line_number=record.line_number)
        state = "done" if toggled.done else "not done"
        return self._succeeded(f"Marked '{record.text[:50]}' {state}", toggled)

    async def update_task(
        self,
        record: TaskRecord,
        project: Optional[str] = None,
        **changes: Any
    ) -> TaskResult:
        """
        Edit a task, optionally moving it to another project

        Args:
            record: Task as last decoded
            project: Target project name (default: current owner)
            **changes: New values for text, done, due_date, priority, tags;
                fields not given keep their value, done included

        Returns:
            TaskResult with the updated record

        A task moved to another project is removed from the old note and
        inserted at the top of the new note's Tasks section.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise TypeError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        try:
            if 'priority' in changes:
                changes['priority'] = self._parse_priority(changes['priority'])
            if 'tags' in changes:
                changes['tags'] = tuple(t for t in (normalize_tag(tag) for tag in changes['tags']) if t)
            if 'text' in changes:
                changes['text'] = (changes['text'] or '').strip()

            merged = replace(record, **changes)
            new_line = encode_task(merged)

            old_handle = await self._owner_of(record)
            new_handle = await self._resolve_project(project) if project else old_handle

            if new_handle.path != old_handle.path:
                old_content = await self._store.read_document(old_handle)
                target_content = await self._store.read_document(new_handle)

                old_content = mutations.remove_task(old_content, record.source_line)
                target_content = mutations.insert_task(target_content, new_line)

                # Target note first, then the source note
                await self._store.write_document(new_handle, target_content)
                await self._store.write_document(old_handle, old_content)
                message = f"Task moved from {old_handle.name} to {new_handle.name}"
            else:
                content = await self._store.read_document(old_handle)
                content = mutations.replace_task(content, record.source_line, new_line)
                await self._store.write_document(old_handle, content)
                message = f"Task updated in {old_handle.name}"
        except TaskError as e:
            return self._failed("update task", e)

        return self._succeeded(message, decode_task_line(new_line, document=new_handle.path))

    async def delete_task(self, record: TaskRecord) -> TaskResult:
        """Remove a task line from its project"""
        try:
            handle = await self._owner_of(record)
            content = await self._store.read_document(handle)
            await self._store.write_document(handle, mutations.remove_task(content, record.source_line))
        except TaskError as e:
            return self._failed("delete task", e)

        self._tasks.pop(record.id, None)
        return self._succeeded(f"Task deleted from {handle.name}", record)

    async def quick_add(self, note: str, text: str) -> TaskResult:
        """
        Append a task due today to the end of any note

        Unlike create_task the note does not need to be a project and the
        line is not placed under a Tasks heading.
        """
        try:
            if not text or not text.strip():
                raise EmptyInput("Task cannot be empty!")
            line = encode_task(TaskRecord(text=text.strip(), due_date=self.today))

            handle = await self._store.resolve_any_document(note)
            if handle is None:
                raise ProjectNotFound(note)

            content = await self._store.read_document(handle)
            await self._store.write_document(handle, mutations.append_line(content, line))
        except TaskError as e:
            return self._failed("add task", e)

        return self._succeeded(f"Task added to {handle.name}", decode_task_line(line, document=handle.path))

    # ==================== Scratchpad ====================

    async def get_scratchpad(self, project: str) -> Optional[str]:
        """
        Read a project's scratchpad

        Returns:
            Scratchpad text ('' if unset), or None if the project is unknown
        """
        try:
            handle = await self._resolve_project(project)
            content = await self._store.read_document(handle)
        except TaskError as e:
            self.logger.error(f"Error reading scratchpad: {e}")
            return None

        try:
            return get_scratchpad(content)
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing frontmatter of {handle.path}: {e}")
            return None

    async def set_scratchpad(self, project: str, text: str) -> TaskResult:
        """Write a project's scratchpad into its frontmatter"""
        try:
            handle = await self._resolve_project(project)
            content = await self._store.read_document(handle)
            new_content = set_scratchpad(content, text, self.config['vault']['project_type'])
            await self._store.write_document(handle, new_content)
        except TaskError as e:
            return self._failed("save scratchpad", e)

        self.logger.info(f"✅ Scratchpad saved for {handle.name}")
        return TaskResult(ok=True, message=f"Scratchpad saved for {handle.name}")

    def _parse_priority(self, priority: Any) -> Optional[Priority]:
        if priority is None or isinstance(priority, Priority):
            return priority
        try:
            return Priority.parse(priority)
        except ValueError as e:
            raise InvalidTask(str(e)) from e


# ==================== CLI Interface ====================

def _format_task(task: TaskRecord, project: str) -> str:
    checkbox = '[x]' if task.done else '[ ]'
    parts = [f"{checkbox} {task.text}"]
    if task.priority:
        parts.append(f"({task.priority.value})")
    if task.due_date:
        parts.append(f"{DUE_GLYPH} {task.due_date}")
    parts.extend(f"{TAG_GLYPH} {tag}" for tag in task.tags)
    return f"{' '.join(parts)}  [{project}] ({task.id})"


def _valid_date(value: str) -> str:
    """argparse type for YYYY-MM-DD dates"""
    import argparse

    if value == 'today':
        return date.today().isoformat()
    try:
        return datetime.strptime(value, '%Y-%m-%d').date().isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a YYYY-MM-DD date: {value}")


async def _run_command(view: TaskView, args) -> int:
    if args.command == 'list':
        tasks = await view.load_tasks(Tab(args.tab))
        counts = await view.compute_counts()

        print(f"\n📋 {args.tab.upper()} TASKS ({len(tasks)}):")
        print("=" * 60)
        if not tasks:
            print("No tasks in this tab.")
        for task in tasks:
            print(f"  {_format_task(task, Path(task.document).stem)}")

        print("\n" + " | ".join(f"{tab}: {n}" for tab, n in counts.as_dict().items()))
        return 0

    if args.command == 'counts':
        counts = await view.compute_counts()
        print(f"\n📊 TASK COUNTS ({view.today}):")
        print("=" * 60)
        for tab, count in counts.as_dict().items():
            print(f"   {tab.capitalize():<12} {count:>4}")
        return 0

    if args.command == 'projects':
        projects = await view.load_projects()
        print(f"\n🗂️  PROJECTS ({len(projects)}):")
        for name in projects:
            print(f"   • {name}")
        return 0

    if args.command == 'tags':
        tags = await view.collect_tags()
        print(f"\n{TAG_GLYPH} TAGS ({len(tags)}):")
        print("   " + ", ".join(tags))
        return 0

    if args.command == 'add':
        if not args.project:
            print("❌ --project required for add command")
            return 1
        result = await view.create_task(
            args.text or '',
            args.project,
            priority=args.priority,
            tags=args.tag or [],
            due_date=args.due
        )

    elif args.command == 'quick-add':
        if not args.note:
            print("❌ --note required for quick-add command")
            return 1
        result = await view.quick_add(args.note, args.text or '')

    elif args.command in ('toggle', 'edit', 'delete'):
        if not args.task_id:
            print(f"❌ --task-id required for {args.command} command")
            return 1
        task = await view.find_task(args.task_id)
        if task is None:
            print(f"❌ Task not found: {args.task_id}")
            return 1

        if args.command == 'toggle':
            result = await view.toggle_task(task)
        elif args.command == 'delete':
            result = await view.delete_task(task)
        else:
            changes: Dict[str, Any] = {}
            if args.text is not None:
                changes['text'] = args.text
            if args.due is not None:
                changes['due_date'] = args.due
            if args.clear_due:
                changes['due_date'] = None
            if args.priority is not None:
                changes['priority'] = args.priority
            if args.clear_priority:
                changes['priority'] = None
            if args.tag is not None:
                changes['tags'] = args.tag
            if args.done is not None:
                changes['done'] = args.done
            result = await view.update_task(task, project=args.project, **changes)

    elif args.command == 'scratchpad':
        if not args.project:
            print("❌ --project required for scratchpad command")
            return 1
        if args.set is None:
            text = await view.get_scratchpad(args.project)
            if text is None:
                print(f"❌ Project not found: {args.project}")
                return 1
            print(text)
            return 0
        result = await view.set_scratchpad(args.project, args.set)

    else:
        print(f"❌ Unknown command: {args.command}")
        return 1

    if result.ok:
        print(f"✅ {result.message}")
        if result.record is not None:
            print(f"   {result.record.source_line}")
    else:
        print(f"❌ {result.error.value}: {result.message}")

    # Let the debounced count refresh settle before the loop closes
    await view.wait_for_counts()
    return 0 if result.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    import argparse

    parser = argparse.ArgumentParser(
        description="TaskView: checkbox tasks across Obsidian project notes"
    )
    parser.add_argument(
        'command',
        choices=['list', 'counts', 'projects', 'tags', 'add', 'quick-add',
                 'toggle', 'edit', 'delete', 'scratchpad'],
        help='Command to execute'
    )
    parser.add_argument(
        '--tab',
        choices=[tab.value for tab in Tab],
        default=Tab.ALL.value,
        help='Tab to show (for list command)'
    )
    parser.add_argument('--task-id', help='Task ID (for toggle, edit, delete commands)')
    parser.add_argument('--project', help='Project note name')
    parser.add_argument('--note', help='Any note name (for quick-add command)')
    parser.add_argument('--text', help='Task text')
    parser.add_argument('--due', type=_valid_date, help="Due date, YYYY-MM-DD or 'today'")
    parser.add_argument('--clear-due', action='store_true', help='Remove the due date (for edit command)')
    parser.add_argument(
        '--priority',
        choices=['high', 'medium', 'low', 'High', 'Medium', 'Low'],
        help='Task priority'
    )
    parser.add_argument('--clear-priority', action='store_true', help='Remove the priority (for edit command)')
    parser.add_argument('--tag', action='append', help='Tag (repeatable)')
    parser.add_argument('--done', dest='done', action='store_true', default=None, help='Mark done (for edit command)')
    parser.add_argument('--not-done', dest='done', action='store_false', default=None, help='Mark not done (for edit command)')
    parser.add_argument('--set', help='New scratchpad text (for scratchpad command)')
    parser.add_argument('--today', type=_valid_date, help='Override the current date')
    parser.add_argument('--config', help='Path to config file')

    args = parser.parse_args(argv)

    try:
        view = TaskView(config_path=args.config, today=args.today)
    except Exception as e:
        print(f"❌ Failed to initialize TaskView: {e}")
        return 1

    return asyncio.run(_run_command(view, args))


if __name__ == '__main__':
    sys.exit(main())
