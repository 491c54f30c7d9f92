#!/usr/bin/env python3
"""
task-view CLI

Shows and edits checkbox tasks kept under '## Tasks' in Obsidian project
notes (notes whose frontmatter has 'type: Project').

Usage:
    ./task-view.py list --tab today          # Tasks due today
    ./task-view.py counts                    # Per-tab task counts
    ./task-view.py add --project Garden --text "Buy seeds" --due 2024-06-01 --priority high --tag errand
    ./task-view.py toggle --task-id <id>     # Mark done / not done
    ./task-view.py edit --task-id <id> --project Home   # Move to another project
    ./task-view.py delete --task-id <id>
    ./task-view.py scratchpad --project Garden --set "Ask about compost"

Examples:
    # Everything overdue as of a given day
    ./task-view.py list --tab overdue --today 2024-06-01

    # Add a task due today to the end of any note
    ./task-view.py quick-add --note "Daily Log" --text "Call Bob"
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from task_view import main

if __name__ == '__main__':
    sys.exit(main())
