"""
Message formatting utilities
"""

from typing import List
from tasktree.models.task import Task, TaskNode


def format_all_completed(count: int) -> str:
    """
    Format complete-all confirmation message

    Args:
        count: Number of tasks whose state changed

    Returns:
        Formatted message
    """
    if count == 0:
        return "All tasks were already complete"
    return f"All tasks marked as complete ({count} updated)"


def format_all_uncompleted(count: int) -> str:
    """
    Format uncomplete-all confirmation message

    Args:
        count: Number of tasks whose state changed

    Returns:
        Formatted message
    """
    if count == 0:
        return "All tasks were already incomplete"
    return f"All tasks marked as incomplete ({count} updated)"


def format_completed_deleted(count: int) -> str:
    """Format delete-completed confirmation message"""
    noun = "task" if count == 1 else "tasks"
    return f"Deleted {count} completed {noun}"


def format_reordered(count: int) -> str:
    """Format reorder confirmation message"""
    return f"Reordered {count} tasks"


def flatten_tree(nodes: List[TaskNode]) -> List[Task]:
    """
    Flatten a task forest back into plain tasks (pre-order)

    Args:
        nodes: Root nodes as returned by the tree view

    Returns:
        Tasks without their subtask lists
    """
    flat: List[Task] = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        flat.append(Task.model_validate(node.model_dump(exclude={"subtasks"})))
        stack.extend(reversed(node.subtasks))
    return flat
