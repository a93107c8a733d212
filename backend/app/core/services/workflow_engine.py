from __future__ import annotations

import re
from typing import TYPE_CHECKING

from app.core.exceptions import NotFoundError
from app.core.models.workflow import (
    ConditionLogic,
    EventTrigger,
    KeywordField,
    KeywordMatchTrigger,
    MatchMode,
    MoveToFolderAction,
    UrlMatchTrigger,
)
from app.core.schemas.workflow import WorkflowApplyReport
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from app.core.models.bookmark import Bookmark
    from app.core.models.workflow import Action, Trigger, Workflow, WorkflowCreate
    from app.core.repositories.bookmark_repository import BookmarkRepository
    from app.core.repositories.folder_repository import FolderRepository
    from app.core.repositories.workflow_repository import WorkflowRepository

logger = get_logger(__name__)

# Upper bound on bookmarks loaded when a bulk run targets "all bookmarks".
BULK_PAGE_SIZE = 10_000


def _match(text: str, value: str, mode: MatchMode) -> bool:
    if mode is MatchMode.EQUALS:
        return text == value
    if mode is MatchMode.REGEX:
        try:
            return re.search(value, text) is not None
        except re.error:
            return False
    return value in text


def evaluate_trigger(bookmark: Bookmark, trigger: Trigger) -> bool:
    """Evaluate one trigger against a bookmark.

    Lifecycle event triggers are always true: the caller only invokes the
    engine because the event happened. Unknown trigger types are false.
    """
    if isinstance(trigger, UrlMatchTrigger):
        return _match(bookmark.url, trigger.config.value, trigger.config.match_mode)

    if isinstance(trigger, KeywordMatchTrigger):
        config = trigger.config
        if config.field is KeywordField.DESCRIPTION:
            text = bookmark.description
        elif config.field is KeywordField.BOTH:
            text = f"{bookmark.title} {bookmark.description}"
        else:
            text = bookmark.title
        value = config.value
        if not config.case_sensitive:
            text, value = text.lower(), value.lower()
        return _match(text, value, config.match_mode)

    return isinstance(trigger, EventTrigger)


def evaluate_workflow(bookmark: Bookmark, workflow: Workflow) -> bool:
    """A workflow without triggers never matches."""
    if not workflow.triggers:
        return False
    results = (evaluate_trigger(bookmark, t) for t in workflow.triggers)
    if workflow.condition_logic is ConditionLogic.AND:
        return all(results)
    return any(results)


class WorkflowEngine:
    """Workflow CRUD plus rule evaluation over bookmarks."""

    def __init__(
        self,
        workflow_repo: WorkflowRepository,
        bookmark_repo: BookmarkRepository,
        folder_repo: FolderRepository,
    ) -> None:
        self._workflows = workflow_repo
        self._bookmarks = bookmark_repo
        self._folders = folder_repo

    async def create_workflow(self, data: WorkflowCreate) -> Workflow:
        workflow = await self._workflows.create(data)
        logger.info("Created workflow %s (%s)", workflow.id, workflow.name)
        return workflow

    async def get_workflow(self, workflow_id: int) -> Workflow:
        workflow = await self._workflows.get(workflow_id)
        if workflow is None:
            raise NotFoundError("workflow", workflow_id)
        return workflow

    async def list_workflows(self) -> Sequence[Workflow]:
        return await self._workflows.list()

    async def update_workflow(self, workflow_id: int, data: WorkflowCreate) -> Workflow:
        workflow = await self._workflows.update(workflow_id, data)
        if workflow is None:
            raise NotFoundError("workflow", workflow_id)
        logger.info("Updated workflow %s", workflow_id)
        return workflow

    async def delete_workflow(self, workflow_id: int) -> None:
        if not await self._workflows.delete(workflow_id):
            raise NotFoundError("workflow", workflow_id)
        logger.info("Deleted workflow %s", workflow_id)

    async def toggle_workflow(self, workflow_id: int) -> Workflow:
        workflow = await self._workflows.toggle(workflow_id)
        if workflow is None:
            raise NotFoundError("workflow", workflow_id)
        logger.info("Workflow %s enabled=%s", workflow_id, workflow.enabled)
        return workflow

    async def execute_actions(self, bookmark: Bookmark, actions: Iterable[Action]) -> int:
        """Run a workflow's actions for one bookmark. Returns how many ran."""
        executed = 0
        for action in actions:
            if isinstance(action, MoveToFolderAction):
                await self._folders.add_bookmark(bookmark.id, action.config.folder_id)
                executed += 1
            else:
                logger.debug("Ignoring unsupported action type %s", action.action_type)
        return executed

    async def execute_workflows_for_bookmark(self, bookmark: Bookmark) -> int:
        """Run every enabled, matching workflow for one bookmark in priority order.

        A failing workflow is logged and does not stop the others. Returns the
        number of workflows that matched.
        """
        matched = 0
        for workflow in await self._workflows.list():
            if not workflow.enabled or not evaluate_workflow(bookmark, workflow):
                continue
            matched += 1
            try:
                await self.execute_actions(bookmark, workflow.actions)
            except Exception as err:
                logger.error(
                    "Workflow %s failed for bookmark %s: %s", workflow.id, bookmark.id, err
                )
        return matched

    async def apply_workflows_to_bookmarks(
        self,
        workflow_ids: Sequence[int] | None = None,
        bookmark_ids: Sequence[int] | None = None,
    ) -> WorkflowApplyReport:
        """Evaluate every selected bookmark against every selected workflow.

        Empty `workflow_ids` selects all enabled workflows; empty
        `bookmark_ids` selects all bookmarks (bounded by BULK_PAGE_SIZE).
        Explicitly selected workflows run even when disabled. Unknown ids and
        per-item failures are reported, never raised.
        """
        report = WorkflowApplyReport()

        if workflow_ids:
            workflows: list[Workflow] = []
            for workflow_id in workflow_ids:
                workflow = await self._workflows.get(workflow_id)
                if workflow is None:
                    report.errors.append(f"workflow {workflow_id} not found")
                    continue
                workflows.append(workflow)
            workflows.sort(key=lambda w: (w.priority, w.id))
        else:
            workflows = [w for w in await self._workflows.list() if w.enabled]

        if bookmark_ids:
            bookmarks: list[Bookmark] = []
            for bookmark_id in bookmark_ids:
                bookmark = await self._bookmarks.get(bookmark_id)
                if bookmark is None:
                    report.errors.append(f"bookmark {bookmark_id} not found")
                    continue
                bookmarks.append(bookmark)
        else:
            bookmarks = list(await self._bookmarks.list(limit=BULK_PAGE_SIZE, offset=0))

        report.workflows = len(workflows)
        report.bookmarks = len(bookmarks)
        logger.info(
            "Applying %d workflows to %d bookmarks", report.workflows, report.bookmarks
        )

        for bookmark in bookmarks:
            for workflow in workflows:
                if not evaluate_workflow(bookmark, workflow):
                    continue
                report.matches += 1
                try:
                    report.actions_executed += await self.execute_actions(bookmark, workflow.actions)
                except Exception as err:
                    logger.error(
                        "Workflow %s failed for bookmark %s: %s", workflow.id, bookmark.id, err
                    )
                    report.errors.append(f"workflow {workflow.id} on bookmark {bookmark.id}: {err}")

        logger.info(
            "Bulk workflow run finished: %d matches, %d actions, %d errors",
            report.matches,
            report.actions_executed,
            len(report.errors),
        )
        return report
