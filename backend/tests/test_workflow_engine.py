from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.exceptions import NotFoundError
from app.core.models.base import utcnow
from app.core.models.bookmark import Bookmark
from app.core.models.workflow import (
    ConditionLogic,
    EventTrigger,
    MatchMode,
    MoveToFolderAction,
    UnknownAction,
    UnknownTrigger,
    UrlMatchConfig,
    UrlMatchTrigger,
    Workflow,
    WorkflowCreate,
)
from app.core.services.workflow_engine import evaluate_trigger, evaluate_workflow


def _bookmark(**fields) -> Bookmark:
    now = utcnow()
    data = {
        "id": 1,
        "url": "https://github.com/python/cpython",
        "title": "CPython Source",
        "description": "The Python programming language",
        "date_added": now,
        "date_modified": now,
    }
    data.update(fields)
    return Bookmark(**data)


def _workflow(triggers, logic="OR", actions=None, **fields) -> Workflow:
    return Workflow(
        id=fields.pop("id", 1),
        name=fields.pop("name", "wf"),
        condition_logic=logic,
        triggers=triggers,
        actions=actions or [],
        **fields,
    )


def _url(value, mode="contains"):
    return {"trigger_type": "url_match", "config": {"match_mode": mode, "value": value}}


def _keyword(value, **config):
    return {"trigger_type": "keyword_match", "config": {"value": value, **config}}


def _move(folder_id):
    return {"action_type": "move_to_folder", "config": {"folder_id": folder_id}}


class TestTriggerParsing:
    def test_event_and_unknown_variants(self) -> None:
        wf = _workflow(
            [{"trigger_type": "bookmark_created"}, {"trigger_type": "sent_to_moon", "config": {"x": 1}}],
            actions=[_move(3), {"action_type": "archive", "config": {}}],
        )

        assert isinstance(wf.triggers[0], EventTrigger)
        assert isinstance(wf.triggers[1], UnknownTrigger)
        assert isinstance(wf.actions[0], MoveToFolderAction)
        assert isinstance(wf.actions[1], UnknownAction)

    def test_invalid_regex_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WorkflowCreate(name="bad", triggers=[_url("([", mode="regex")])

    def test_move_to_folder_requires_numeric_folder(self) -> None:
        with pytest.raises(ValidationError):
            WorkflowCreate(name="bad", actions=[{"action_type": "move_to_folder", "config": {}}])

    def test_condition_logic_defaults_to_or(self) -> None:
        assert WorkflowCreate(name="x", condition_logic="").condition_logic is ConditionLogic.OR
        assert WorkflowCreate(name="x", condition_logic="and").condition_logic is ConditionLogic.AND
        assert _workflow([], logic="XOR").condition_logic is ConditionLogic.OR


class TestEvaluateTrigger:
    @pytest.mark.parametrize(
        ("trigger", "expected"),
        [
            (_url("github.com"), True),
            (_url("gitlab.com"), False),
            (_url("https://github.com/python/cpython", mode="equals"), True),
            (_url("github.com", mode="equals"), False),
            (_url(r"^https://github\.com/\w+/", mode="regex"), True),
            (_url(r"^http://", mode="regex"), False),
            (_keyword("cpython"), True),
            (_keyword("cpython", case_sensitive=True), False),
            (_keyword("python programming", field="description"), True),
            (_keyword("python programming", field="title"), False),
            (_keyword("source the python", field="both"), True),
            (_keyword("cpython source", match_mode="equals"), True),
            (_keyword(r"^cpython\s", match_mode="regex"), True),
            ({"trigger_type": "title_changed"}, True),
            ({"trigger_type": "bookmark_deleted"}, True),
            ({"trigger_type": "mystery"}, False),
        ],
    )
    def test_predicates(self, trigger, expected) -> None:
        wf = _workflow([trigger])
        assert evaluate_trigger(_bookmark(), wf.triggers[0]) is expected

    def test_unparseable_regex_evaluates_false(self) -> None:
        config = UrlMatchConfig.model_construct(match_mode=MatchMode.REGEX, value="([")
        trigger = UrlMatchTrigger.model_construct(trigger_type="url_match", config=config)
        assert evaluate_trigger(_bookmark(), trigger) is False


class TestEvaluateWorkflow:
    def test_and_or(self) -> None:
        triggers = [_url("github.com"), _url("gitlab.com")]
        assert evaluate_workflow(_bookmark(), _workflow(triggers, logic="AND")) is False
        assert evaluate_workflow(_bookmark(), _workflow(triggers, logic="OR")) is True

    @pytest.mark.parametrize("logic", ["AND", "OR"])
    def test_zero_triggers_never_match(self, logic) -> None:
        assert evaluate_workflow(_bookmark(), _workflow([], logic=logic)) is False


class TestWorkflowCrud:
    async def test_priorities_and_ordering(self, workflow_engine) -> None:
        first = await workflow_engine.create_workflow(WorkflowCreate(name=" First "))
        second = await workflow_engine.create_workflow(WorkflowCreate(name="Second"))

        assert first.name == "First"
        assert (first.priority, second.priority) == (1, 2)
        assert [w.id for w in await workflow_engine.list_workflows()] == [first.id, second.id]

    async def test_update_replaces_rules(self, workflow_engine) -> None:
        wf = await workflow_engine.create_workflow(
            WorkflowCreate(name="wf", triggers=[_url("a"), _url("b")], actions=[_move(1)])
        )

        updated = await workflow_engine.update_workflow(
            wf.id, WorkflowCreate(name="wf2", triggers=[_keyword("k")], condition_logic="AND")
        )

        assert updated.name == "wf2"
        assert updated.priority == wf.priority
        assert [t.trigger_type for t in updated.triggers] == ["keyword_match"]
        assert updated.actions == []
        assert updated.condition_logic is ConditionLogic.AND

    async def test_toggle_and_delete(self, workflow_engine) -> None:
        wf = await workflow_engine.create_workflow(WorkflowCreate(name="wf"))

        assert (await workflow_engine.toggle_workflow(wf.id)).enabled is False
        assert (await workflow_engine.toggle_workflow(wf.id)).enabled is True

        await workflow_engine.delete_workflow(wf.id)
        with pytest.raises(NotFoundError):
            await workflow_engine.get_workflow(wf.id)

    async def test_unknown_ids_raise(self, workflow_engine) -> None:
        with pytest.raises(NotFoundError):
            await workflow_engine.update_workflow(99, WorkflowCreate(name="x"))
        with pytest.raises(NotFoundError):
            await workflow_engine.toggle_workflow(99)
        with pytest.raises(NotFoundError):
            await workflow_engine.delete_workflow(99)


class TestExecution:
    async def test_all_matching_enabled_workflows_run(
        self, workflow_engine, repos, make_bookmark
    ) -> None:
        bookmark = await make_bookmark("https://github.com/psf/requests", title="Requests")
        await workflow_engine.create_workflow(
            WorkflowCreate(name="code", triggers=[_url("github.com")], actions=[_move(10)])
        )
        await workflow_engine.create_workflow(
            WorkflowCreate(name="new", triggers=[{"trigger_type": "bookmark_created"}], actions=[_move(20)])
        )
        await workflow_engine.create_workflow(
            WorkflowCreate(name="off", enabled=False, triggers=[_url("github")], actions=[_move(30)])
        )
        await workflow_engine.create_workflow(
            WorkflowCreate(name="miss", triggers=[_url("gitlab")], actions=[_move(40)])
        )

        matched = await workflow_engine.execute_workflows_for_bookmark(bookmark)

        assert matched == 2
        assert await repos.folders.list_bookmark_folder_ids(bookmark.id) == [10, 20]

    async def test_move_to_folder_is_idempotent(self, workflow_engine, repos, make_bookmark) -> None:
        bookmark = await make_bookmark("https://github.com/psf/requests")
        await workflow_engine.create_workflow(
            WorkflowCreate(name="code", triggers=[_url("github.com")], actions=[_move(10), _move(10)])
        )

        await workflow_engine.execute_workflows_for_bookmark(bookmark)
        await workflow_engine.execute_workflows_for_bookmark(bookmark)

        assert await repos.folders.list_bookmark_folder_ids(bookmark.id) == [10]

    async def test_unknown_actions_are_ignored(self, workflow_engine, repos, make_bookmark) -> None:
        bookmark = await make_bookmark("https://github.com/psf/requests")
        await workflow_engine.create_workflow(
            WorkflowCreate(
                name="code",
                triggers=[_url("github.com")],
                actions=[{"action_type": "archive", "config": {}}, _move(5)],
            )
        )

        await workflow_engine.execute_workflows_for_bookmark(bookmark)

        assert await repos.folders.list_bookmark_folder_ids(bookmark.id) == [5]

    async def test_failing_workflow_does_not_stop_others(
        self, workflow_engine, repos, make_bookmark, monkeypatch
    ) -> None:
        bookmark = await make_bookmark("https://github.com/psf/requests")
        await workflow_engine.create_workflow(
            WorkflowCreate(name="a", triggers=[_url("github")], actions=[_move(1)])
        )
        await workflow_engine.create_workflow(
            WorkflowCreate(name="b", triggers=[_url("github")], actions=[_move(2)])
        )
        original = repos.folders.add_bookmark

        async def flaky(bookmark_id, folder_id):
            if folder_id == 1:
                raise RuntimeError("locked")
            await original(bookmark_id, folder_id)

        monkeypatch.setattr(repos.folders, "add_bookmark", flaky)

        await workflow_engine.execute_workflows_for_bookmark(bookmark)

        assert await repos.folders.list_bookmark_folder_ids(bookmark.id) == [2]


class TestBulkApply:
    async def test_defaults_to_all_enabled_and_all_bookmarks(
        self, workflow_engine, repos, make_bookmark
    ) -> None:
        gh = await make_bookmark("https://github.com/a/b")
        docs = await make_bookmark("https://docs.python.org", title="Python docs")
        await workflow_engine.create_workflow(
            WorkflowCreate(name="code", triggers=[_url("github.com")], actions=[_move(1)])
        )
        await workflow_engine.create_workflow(
            WorkflowCreate(name="py", triggers=[_keyword("python")], actions=[_move(2)])
        )
        await workflow_engine.create_workflow(
            WorkflowCreate(name="off", enabled=False, triggers=[_url("https")], actions=[_move(3)])
        )

        report = await workflow_engine.apply_workflows_to_bookmarks([], [])

        assert (report.workflows, report.bookmarks) == (2, 2)
        assert report.matches == 2
        assert report.actions_executed == 2
        assert report.errors == []
        assert await repos.folders.list_bookmark_folder_ids(gh.id) == [1]
        assert await repos.folders.list_bookmark_folder_ids(docs.id) == [2]

    async def test_explicit_ids_and_unknown_ids(self, workflow_engine, repos, make_bookmark) -> None:
        gh = await make_bookmark("https://github.com/a/b")
        await make_bookmark("https://github.com/c/d")
        off = await workflow_engine.create_workflow(
            WorkflowCreate(name="off", enabled=False, triggers=[_url("github")], actions=[_move(7)])
        )

        report = await workflow_engine.apply_workflows_to_bookmarks([off.id, 404], [gh.id, 999])

        assert (report.workflows, report.bookmarks, report.matches) == (1, 1, 1)
        assert report.errors == ["workflow 404 not found", "bookmark 999 not found"]
        assert await repos.folders.list_bookmark_folder_ids(gh.id) == [7]

    async def test_per_item_failures_are_reported(
        self, workflow_engine, repos, make_bookmark, monkeypatch
    ) -> None:
        await make_bookmark("https://github.com/a/b")
        await make_bookmark("https://github.com/c/d")
        await workflow_engine.create_workflow(
            WorkflowCreate(name="code", triggers=[_url("github")], actions=[_move(1)])
        )

        async def broken(bookmark_id, folder_id):
            raise RuntimeError("no such folder")

        monkeypatch.setattr(repos.folders, "add_bookmark", broken)

        report = await workflow_engine.apply_workflows_to_bookmarks()

        assert report.matches == 2
        assert report.actions_executed == 0
        assert len(report.errors) == 2
