"""
Task tree store: in-memory task collection with hierarchy maintenance
"""

import threading
from datetime import datetime
from typing import Optional, List, Dict, Set, Tuple, Sequence
from tasktree.models.task import Task, TaskNode, TaskUpdate, TaskMove
from tasktree.models.response import TaskStats
from tasktree.config.constants import (
    TITLE_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    DETAILS_MAX_LENGTH,
    SEARCH_QUERY_MAX_LENGTH,
    COPY_SUFFIX,
)
from tasktree.utils.date_utils import get_current_datetime
from tasktree.utils.error_handler import (
    ValidationError,
    NotFoundError,
    InvariantViolation,
    report_violation,
)
from tasktree.utils.logger import logger


class TaskTreeStore:
    """
    Service owning every task record of the process

    Tasks form one forest per owner. Each public method runs under a single
    re-entrant lock, so structural mutations never interleave. Records handed
    out are copies; callers never hold a live reference into the store.
    """

    def __init__(self):
        """Initialize an empty store"""
        # Insertion order of the dict is creation order
        self._tasks: Dict[int, Task] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self.logger = logger

    # ---- lookups ----

    def _owned(self, owner_id: str) -> List[Task]:
        return [task for task in self._tasks.values() if task.owner_id == owner_id]

    def _find(self, owner_id: str, task_id: int, kind: str = "Task") -> Task:
        """Return the live record or raise NotFoundError (foreign ids look missing)"""
        task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id:
            raise NotFoundError(f"{kind} {task_id} not found")
        return task

    def _siblings(
        self,
        owner_id: str,
        parent_id: Optional[int],
        exclude: Optional[int] = None,
    ) -> List[Task]:
        """Sibling group sorted by current order, id breaking ties"""
        group = [
            task for task in self._tasks.values()
            if task.owner_id == owner_id
            and task.parent_id == parent_id
            and task.id != exclude
        ]
        group.sort(key=lambda task: (task.order, task.id))
        return group

    def _next_order(self, owner_id: str, parent_id: Optional[int]) -> int:
        orders = [
            task.order for task in self._tasks.values()
            if task.owner_id == owner_id and task.parent_id == parent_id
        ]
        return max(orders) + 1 if orders else 0

    def _children_index(self, owner_id: str) -> Dict[Optional[int], List[int]]:
        children: Dict[Optional[int], List[int]] = {}
        for task in self._owned(owner_id):
            children.setdefault(task.parent_id, []).append(task.id)
        return children

    def _descendant_ids(self, owner_id: str, task_id: int) -> Set[int]:
        """All transitive descendants of a task, walked with an explicit stack"""
        children = self._children_index(owner_id)
        found: Set[int] = set()
        stack = [task_id]
        while stack:
            current = stack.pop()
            for child_id in children.get(current, []):
                if child_id not in found:
                    found.add(child_id)
                    stack.append(child_id)
        return found

    # ---- validation ----

    @staticmethod
    def _clean_title(title: Optional[str]) -> str:
        if title is None or not title.strip():
            raise ValidationError("Title is required")
        title = title.strip()
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(f"Title must be {TITLE_MAX_LENGTH} characters or less")
        return title

    @staticmethod
    def _clean_text(value: Optional[str], field: str, limit: int) -> str:
        if value is None:
            raise ValidationError(f"{field.capitalize()} cannot be null")
        value = value.strip()
        if len(value) > limit:
            raise ValidationError(f"{field.capitalize()} must be {limit:,} characters or less")
        return value

    @staticmethod
    def _check_order(order: Optional[int], field: str = "order") -> None:
        if order is not None and order < 0:
            raise ValidationError(f"{field} must be a non-negative integer")

    def _check_new_parent(self, owner_id: str, task: Task, new_parent_id: Optional[int]) -> None:
        """Reject self-parenting, cycles and unknown parents before any mutation"""
        if new_parent_id is None:
            return
        if new_parent_id == task.id:
            raise ValidationError("Task cannot be its own parent")
        if new_parent_id in self._descendant_ids(owner_id, task.id):
            raise ValidationError("Cannot create circular reference")
        self._find(owner_id, new_parent_id, kind="Parent task")

    # ---- structural helpers ----

    @staticmethod
    def _renumber(group: List[Task], now: datetime) -> None:
        """Assign dense orders 0..n-1 following the list position"""
        for index, task in enumerate(group):
            if task.order != index:
                task.order = index
                task.updated_at = now

    def _insert(
        self,
        owner_id: str,
        title: str,
        description: str,
        details: str,
        parent_id: Optional[int],
        order: Optional[int],
    ) -> Task:
        now = get_current_datetime()
        task = Task(
            id=self._next_id,
            owner_id=owner_id,
            title=title,
            description=description,
            details=details,
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
        )
        self._next_id += 1

        if order is None:
            # Plain append; gaps left by earlier deletes are kept
            task.order = self._next_order(owner_id, parent_id)
            self._tasks[task.id] = task
        else:
            group = self._siblings(owner_id, parent_id)
            self._tasks[task.id] = task
            group.insert(min(order, len(group)), task)
            self._renumber(group, now)
        return task

    def _relocate(
        self,
        task: Task,
        parent_given: bool,
        new_parent_id: Optional[int],
        new_order: Optional[int],
        now: datetime,
    ) -> bool:
        """
        Re-parent and/or reposition a task, renumbering affected sibling groups

        Callers must have validated the new parent already.

        Returns:
            True if the task's parent or order changed
        """
        old_parent_id = task.parent_id
        old_order = task.order
        target_parent_id = new_parent_id if parent_given else old_parent_id

        if target_parent_id != old_parent_id:
            old_group = self._siblings(task.owner_id, old_parent_id, exclude=task.id)
            self._renumber(old_group, now)
            task.parent_id = target_parent_id

        group = self._siblings(task.owner_id, target_parent_id, exclude=task.id)
        if new_order is None:
            self._renumber(group, now)
            task.order = len(group)
        else:
            group.insert(min(new_order, len(group)), task)
            self._renumber(group, now)

        return task.parent_id != old_parent_id or task.order != old_order

    # ---- create ----

    def create(
        self,
        owner_id: str,
        title: str,
        description: str = "",
        details: str = "",
        parent_id: Optional[int] = None,
        order: Optional[int] = None,
    ) -> Task:
        """
        Create a task

        Args:
            owner_id: Caller identity
            title: Task title (trimmed, required)
            description: Short description
            details: Long-form notes
            parent_id: Parent task id, None for a root task
            order: Position among siblings; appended after the last one if omitted

        Returns:
            Created task
        """
        title = self._clean_title(title)
        description = self._clean_text(description, "description", DESCRIPTION_MAX_LENGTH)
        details = self._clean_text(details, "details", DETAILS_MAX_LENGTH)
        self._check_order(order)

        with self._lock:
            if parent_id is not None:
                self._find(owner_id, parent_id, kind="Parent task")
            task = self._insert(owner_id, title, description, details, parent_id, order)
            self.logger.info(
                f"[TaskTree] Created task {task.id} for {owner_id} "
                f"(parent={task.parent_id}, order={task.order})"
            )
            return task.model_copy()

    def create_subtask(
        self,
        owner_id: str,
        parent_id: int,
        title: str,
        description: str = "",
        details: str = "",
    ) -> Task:
        """Create a task under an existing parent owned by the caller"""
        if parent_id is None:
            raise ValidationError("Parent ID is required for a subtask")
        return self.create(owner_id, title, description, details, parent_id=parent_id)

    def create_bulk(self, owner_id: str, titles: Sequence[str]) -> List[Task]:
        """
        Create several root tasks at once

        Blank titles are skipped. Every title is validated before anything is
        created, so a rejected batch leaves the store untouched.

        Args:
            owner_id: Caller identity
            titles: Task titles

        Returns:
            Created tasks in input order
        """
        if not isinstance(titles, (list, tuple)) or not titles:
            raise ValidationError("Tasks array is required")

        cleaned = []
        for title in titles:
            if not isinstance(title, str):
                raise ValidationError("Task titles must be strings")
            if title.strip():
                cleaned.append(self._clean_title(title))

        with self._lock:
            created = [
                self._insert(owner_id, title, "", "", None, None)
                for title in cleaned
            ]
            self.logger.info(
                f"[TaskTree] Bulk created {len(created)} tasks for {owner_id} "
                f"({len(titles) - len(cleaned)} blank skipped)"
            )
            return [task.model_copy() for task in created]

    # ---- read ----

    def get(self, owner_id: str) -> List[Task]:
        """All tasks of the caller in creation order"""
        with self._lock:
            return [task.model_copy() for task in self._owned(owner_id)]

    def get_task(self, owner_id: str, task_id: int) -> Task:
        """Single task of the caller"""
        with self._lock:
            return self._find(owner_id, task_id).model_copy()

    def get_completed(self, owner_id: str) -> List[Task]:
        with self._lock:
            return [task.model_copy() for task in self._owned(owner_id) if task.done]

    def get_pending(self, owner_id: str) -> List[Task]:
        with self._lock:
            return [task.model_copy() for task in self._owned(owner_id) if not task.done]

    def search(self, owner_id: str, query: Optional[str]) -> List[Task]:
        """
        Case-insensitive substring search on titles

        Args:
            owner_id: Caller identity
            query: Search text

        Returns:
            Matching tasks in creation order
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query 'q' is required")
        if len(query) > SEARCH_QUERY_MAX_LENGTH:
            raise ValidationError(
                f"Search query must be {SEARCH_QUERY_MAX_LENGTH} characters or less"
            )

        needle = query.lower()
        with self._lock:
            results = [
                task.model_copy() for task in self._owned(owner_id)
                if needle in task.title.lower()
            ]
        self.logger.debug(f"[TaskTree] Search '{query}' for {owner_id}: {len(results)} matches")
        return results

    def get_hierarchical(self, owner_id: str) -> List[TaskNode]:
        """
        Materialize the caller's tasks as a forest

        A task whose parent is missing is reported and placed among the roots.
        Every level is sorted by order without recursion, so depth is not
        limited by the interpreter stack.

        Args:
            owner_id: Caller identity

        Returns:
            Root nodes, each carrying nested subtasks
        """
        with self._lock:
            owned = self._owned(owner_id)
            nodes = {task.id: TaskNode.model_validate(task.model_dump()) for task in owned}

        roots: List[TaskNode] = []
        for node in nodes.values():
            if node.parent_id is None:
                roots.append(node)
            elif node.parent_id in nodes:
                nodes[node.parent_id].subtasks.append(node)
            else:
                report_violation(InvariantViolation(
                    f"Task {node.id} references missing parent {node.parent_id}; "
                    f"treating it as a root",
                    details={"owner_id": owner_id, "task_id": node.id},
                ))
                roots.append(node)

        levels = [roots]
        while levels:
            level = levels.pop()
            level.sort(key=lambda node: (node.order, node.id))
            levels.extend(node.subtasks for node in level if node.subtasks)

        return roots

    def stats(self, owner_id: str) -> TaskStats:
        """Completion statistics for the caller"""
        with self._lock:
            owned = self._owned(owner_id)

        total = len(owned)
        completed = sum(1 for task in owned if task.done)
        completion_rate = round(completed / total * 100, 2) if total else 0

        return TaskStats(
            total=total,
            completed=completed,
            pending=total - completed,
            completion_rate=completion_rate,
        )

    # ---- update / move ----

    def update(self, owner_id: str, task_id: int, patch: TaskUpdate) -> Task:
        """
        Apply a partial update

        Only fields explicitly set on the patch are applied. A parent or order
        change goes through the same cycle check and renumbering as move().

        Args:
            owner_id: Caller identity
            task_id: Task to update
            patch: Fields to change

        Returns:
            Updated task
        """
        fields = patch.model_fields_set

        with self._lock:
            task = self._find(owner_id, task_id)

            changes = {}
            if "title" in fields:
                changes["title"] = self._clean_title(patch.title)
            if "description" in fields:
                changes["description"] = self._clean_text(
                    patch.description, "description", DESCRIPTION_MAX_LENGTH
                )
            if "details" in fields:
                changes["details"] = self._clean_text(
                    patch.details, "details", DETAILS_MAX_LENGTH
                )
            if "done" in fields:
                if patch.done is None:
                    raise ValidationError("Done must be a boolean")
                changes["done"] = patch.done

            # Echoing the current parent is not a move
            parent_given = "parent_id" in fields and patch.parent_id != task.parent_id
            order_given = "order" in fields
            if order_given:
                if patch.order is None:
                    raise ValidationError("Order cannot be null")
                self._check_order(patch.order)
            if parent_given:
                self._check_new_parent(owner_id, task, patch.parent_id)

            now = get_current_datetime()
            changed = False
            for name, value in changes.items():
                if getattr(task, name) != value:
                    setattr(task, name, value)
                    changed = True

            if parent_given or order_given:
                moved = self._relocate(
                    task,
                    parent_given,
                    patch.parent_id,
                    patch.order if order_given else None,
                    now,
                )
                changed = changed or moved

            if changed:
                task.updated_at = now

            self.logger.info(
                f"[TaskTree] Updated task {task_id} for {owner_id}: {sorted(fields)}"
            )
            return task.model_copy()

    def move(self, owner_id: str, task_id: int, request: TaskMove) -> Task:
        """
        Re-parent and/or reposition a task

        An explicit ``new_parent_id=None`` moves the task to the root; leaving
        the field unset keeps the current parent. Without ``new_order`` the
        task is appended to its (new) sibling group.

        Args:
            owner_id: Caller identity
            task_id: Task to move
            request: Move target

        Returns:
            Moved task
        """
        parent_given = "new_parent_id" in request.model_fields_set
        self._check_order(request.new_order, "newOrder")

        with self._lock:
            task = self._find(owner_id, task_id)
            try:
                if parent_given:
                    self._check_new_parent(owner_id, task, request.new_parent_id)
            except ValidationError as e:
                self.logger.warning(
                    f"[TaskTree] Rejected move of {task_id} under {request.new_parent_id}: {e.message}"
                )
                raise

            now = get_current_datetime()
            self._relocate(task, parent_given, request.new_parent_id, request.new_order, now)
            task.updated_at = now

            self.logger.info(
                f"[TaskTree] Moved task {task_id} for {owner_id} "
                f"(parent={task.parent_id}, order={task.order})"
            )
            return task.model_copy()

    def reorder(
        self,
        owner_id: str,
        parent_id: Optional[int],
        ordered_ids: Sequence[int],
    ) -> List[Task]:
        """
        Reorder one sibling group

        Args:
            owner_id: Caller identity
            parent_id: Parent of the group, None for the roots
            ordered_ids: Every id of the group, in the wanted order

        Returns:
            The group in its new order
        """
        if not ordered_ids:
            raise ValidationError("Order array is required")

        with self._lock:
            if parent_id is not None:
                self._find(owner_id, parent_id, kind="Parent task")

            group = self._siblings(owner_id, parent_id)
            group_ids = {task.id for task in group}
            if len(set(ordered_ids)) != len(ordered_ids) or set(ordered_ids) != group_ids:
                raise ValidationError(
                    "Invalid order array",
                    details={"expected_ids": sorted(group_ids)},
                )

            reordered = [self._tasks[task_id] for task_id in ordered_ids]
            self._renumber(reordered, get_current_datetime())

            self.logger.info(
                f"[TaskTree] Reordered {len(reordered)} tasks under parent={parent_id} for {owner_id}"
            )
            return [task.model_copy() for task in reordered]

    def duplicate(self, owner_id: str, task_id: int) -> Task:
        """
        Copy a task (without its subtasks) next to the original

        The copy keeps the parent, is appended to the sibling group and starts
        not done.
        """
        with self._lock:
            source = self._find(owner_id, task_id)
            base_title = source.title[:TITLE_MAX_LENGTH - len(COPY_SUFFIX)]
            copy = self._insert(
                owner_id,
                f"{base_title}{COPY_SUFFIX}",
                source.description,
                source.details,
                source.parent_id,
                None,
            )
            self.logger.info(f"[TaskTree] Duplicated task {task_id} as {copy.id} for {owner_id}")
            return copy.model_copy()

    def _set_done_all(self, owner_id: str, done: bool) -> Tuple[int, List[Task]]:
        with self._lock:
            now = get_current_datetime()
            count = 0
            owned = self._owned(owner_id)
            for task in owned:
                if task.done != done:
                    task.done = done
                    task.updated_at = now
                    count += 1
            self.logger.info(f"[TaskTree] Set done={done} on {count} tasks for {owner_id}")
            return count, [task.model_copy() for task in owned]

    def complete_all(self, owner_id: str) -> Tuple[int, List[Task]]:
        """Mark every task of the caller done; returns changed count and all tasks"""
        return self._set_done_all(owner_id, True)

    def uncomplete_all(self, owner_id: str) -> Tuple[int, List[Task]]:
        """Mark every task of the caller not done; returns changed count and all tasks"""
        return self._set_done_all(owner_id, False)

    # ---- delete ----

    def delete(self, owner_id: str, task_id: int) -> Task:
        """
        Delete a task and all of its descendants

        Surviving siblings keep their order values.

        Returns:
            The deleted task
        """
        with self._lock:
            task = self._find(owner_id, task_id)
            descendants = self._descendant_ids(owner_id, task_id)
            for descendant_id in descendants:
                del self._tasks[descendant_id]
            del self._tasks[task_id]

            self.logger.info(
                f"[TaskTree] Deleted task {task_id} for {owner_id} "
                f"with {len(descendants)} descendants"
            )
            return task.model_copy()

    def delete_completed(self, owner_id: str) -> List[Task]:
        """
        Delete every done task of the caller

        Not cascading: a child that is not done survives and is promoted to
        its nearest surviving ancestor (or the root), appended to that group.

        Returns:
            Deleted tasks in creation order
        """
        with self._lock:
            owned = self._owned(owner_id)
            doomed = [task for task in owned if task.done]
            if not doomed:
                return []
            doomed_ids = {task.id for task in doomed}

            orphans = [
                task for task in owned
                if task.id not in doomed_ids and task.parent_id in doomed_ids
            ]
            orphans.sort(key=lambda task: (task.order, task.id))
            targets = {}
            for orphan in orphans:
                ancestor_id = orphan.parent_id
                while ancestor_id in doomed_ids:
                    ancestor_id = self._tasks[ancestor_id].parent_id
                targets[orphan.id] = ancestor_id

            for task_id in doomed_ids:
                del self._tasks[task_id]

            now = get_current_datetime()
            for orphan in orphans:
                target_id = targets[orphan.id]
                orphan.order = self._next_order(owner_id, target_id)
                orphan.parent_id = target_id
                orphan.updated_at = now

            self.logger.info(
                f"[TaskTree] Deleted {len(doomed)} completed tasks for {owner_id}, "
                f"promoted {len(orphans)} subtasks"
            )
            return [task.model_copy() for task in doomed]

    # ---- diagnostics ----

    def find_violations(self, owner_id: str) -> List[str]:
        """
        Check parent references, acyclicity and sibling order uniqueness

        Returns:
            Human-readable descriptions, empty when the owner's forest is sound
        """
        violations: List[str] = []
        with self._lock:
            owned = self._owned(owner_id)
            by_id = {task.id: task for task in owned}

            for task in owned:
                if task.parent_id is not None and task.parent_id not in by_id:
                    violations.append(f"task {task.id}: dangling parent {task.parent_id}")

                seen = {task.id}
                ancestor_id = task.parent_id
                while ancestor_id in by_id:
                    if ancestor_id in seen:
                        violations.append(f"task {task.id}: cycle through {ancestor_id}")
                        break
                    seen.add(ancestor_id)
                    ancestor_id = by_id[ancestor_id].parent_id

            groups: Dict[Optional[int], List[int]] = {}
            for task in owned:
                groups.setdefault(task.parent_id, []).append(task.order)
            for parent_id, orders in groups.items():
                if len(set(orders)) != len(orders):
                    violations.append(f"parent {parent_id}: duplicate orders {sorted(orders)}")

        return violations
