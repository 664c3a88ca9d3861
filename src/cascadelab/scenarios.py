"""
Cascade-delete scenarios.

Each scenario seeds one Origin with one Content, performs a delete (or a
reload) and records what the session and the database report afterwards.
Scenarios run inside ``scenario_scope()`` and are always rolled back.
"""

import logging

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from cascadelab.constants import SCENARIO_CONTENT_NAME, SCENARIO_ORIGIN_NAME
from cascadelab.database.errors import ConstraintViolationError
from cascadelab.database.models import Content, Origin
from cascadelab.database.repository import OriginRepository
from cascadelab.database.session import scenario_scope

logger = logging.getLogger(__name__)


@dataclass
class ScenarioResult:
    """Outcome of one scenario run."""

    name: str
    passed: bool
    observations: dict[str, Any] = field(default_factory=dict)
    expected: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def mismatches(self) -> dict[str, tuple[Any, Any]]:
        """Observations that differ from expectations, as (expected, actual)."""
        return {
            key: (value, self.observations.get(key))
            for key, value in self.expected.items()
            if self.observations.get(key) != value
        }


@dataclass(frozen=True)
class Scenario:
    """A named scenario and the observations it should produce."""

    name: str
    description: str
    run: Callable[[OriginRepository, Origin, Content], dict[str, Any]]
    expected: dict[str, Any]
    invalidate_on_bulk: bool = False


def _graph_delete(repo: OriginRepository, origin: Origin, content: Content) -> dict:
    origin_id, content_id = origin.id, content.id
    repo.delete_origin(origin)
    return {
        "origin_in_session": repo.contains(origin),
        "content_in_session": repo.contains(content),
        "origin_found": repo.find_origin(origin_id) is not None,
        "content_found": repo.find_content(content_id) is not None,
    }


def _graph_delete_after_clear(
    repo: OriginRepository, origin: Origin, content: Content
) -> dict:
    origin_id, content_id = origin.id, content.id
    repo.clear()
    observations: dict[str, Any] = {
        "origin_in_session_after_clear": repo.contains(origin),
        "content_in_session_after_clear": repo.contains(content),
    }
    reloaded = repo.find_origin(origin_id)
    assert reloaded is not None
    observations["reloaded_in_session"] = repo.contains(reloaded)
    observations["reloaded_content_count"] = len(reloaded.content)
    repo.delete_origin(reloaded)
    observations["content_found"] = repo.find_content(content_id) is not None
    observations["content_rows"] = len(repo.content_ids_in_storage(content_id))
    return observations


def _graph_delete_via_query(
    repo: OriginRepository, origin: Origin, content: Content
) -> dict:
    origin_id, content_id = origin.id, content.id
    repo.clear()
    matches = repo.find_origins(Origin.id == origin_id)
    loaded = matches[0]
    observations: dict[str, Any] = {
        "query_matches": len(matches),
        "loaded_in_session": repo.contains(loaded),
        "loaded_content_count": len(loaded.content),
    }
    repo.delete_origin(loaded)
    observations["content_found"] = repo.find_content(content_id) is not None
    observations["content_rows"] = len(repo.content_ids_in_storage(content_id))
    return observations


def _direct_content_delete(
    repo: OriginRepository, origin: Origin, content: Content
) -> dict:
    origin_id, content_id = origin.id, content.id
    repo.delete_content(content)
    observations: dict[str, Any] = {
        "stale_collection_size": len(origin.content),
    }
    repo.expire(origin, "content")
    observations.update(
        {
            "reloaded_collection_size": len(origin.content),
            "origin_in_session": repo.contains(origin),
            "content_in_session": repo.contains(content),
            "content_found": repo.find_content(content_id) is not None,
            "origin_found": repo.find_origin(origin_id) is not None,
        }
    )
    return observations


def _bulk_content_delete(
    repo: OriginRepository, origin: Origin, content: Content
) -> dict:
    origin_id, content_id = origin.id, content.id
    deleted = repo.bulk_delete_content(content_id)
    observations: dict[str, Any] = {
        "rows_deleted": deleted,
        "origin_in_session": repo.contains(origin),
        "content_in_session": repo.contains(content),
        "content_rows": len(repo.content_ids_in_storage(content_id)),
        "origin_found": repo.find_origin(origin_id) is not None,
        "stale_content_found": repo.find_content(content_id) is not None,
        "origin_rows": len(repo.origin_ids_in_storage(origin_id)),
        "stale_collection_size": len(origin.content),
    }
    repo.expire(origin, "content")
    observations["reloaded_collection_size"] = len(origin.content)
    return observations


def _bulk_origin_delete(
    repo: OriginRepository, origin: Origin, content: Content
) -> dict:
    origin_id, content_id = origin.id, content.id
    observations: dict[str, Any] = {"error": None}
    try:
        repo.bulk_delete_origin(origin_id)
    except ConstraintViolationError as e:
        observations["error"] = type(e).__name__
    observations["origin_rows"] = len(repo.origin_ids_in_storage(origin_id))
    observations["content_rows"] = len(repo.content_ids_in_storage(content_id))
    return observations


def _round_trip(repo: OriginRepository, origin: Origin, content: Content) -> dict:
    origin_id = origin.id
    repo.clear()
    reloaded = repo.find_origin(origin_id)
    assert reloaded is not None
    return {
        "reloaded_content_count": len(reloaded.content),
        "content_names": sorted(c.name for c in reloaded.content),
    }


def _list_foreign_keys(
    repo: OriginRepository, origin: Origin, content: Content
) -> dict:
    rows = repo.describe_contents()
    return {
        "rows": len(rows),
        "all_have_origin": all(origin_id is not None for _, _, origin_id in rows),
        "seeded_row": (content.id, content.name, origin.id) in rows,
    }


SCENARIOS: dict[str, Scenario] = {
    s.name: s
    for s in (
        Scenario(
            name="graph-delete",
            description="Deleting the Origin through the session cascades to Content",
            run=_graph_delete,
            expected={
                "origin_in_session": False,
                "content_in_session": False,
                "origin_found": False,
                "content_found": False,
            },
        ),
        Scenario(
            name="graph-delete-after-clear",
            description="Cascade still applies when only the Origin was reloaded",
            run=_graph_delete_after_clear,
            expected={
                "origin_in_session_after_clear": False,
                "content_in_session_after_clear": False,
                "reloaded_in_session": True,
                "reloaded_content_count": 1,
                "content_found": False,
                "content_rows": 0,
            },
        ),
        Scenario(
            name="graph-delete-via-query",
            description="Cascade applies to an Origin loaded with a typed select",
            run=_graph_delete_via_query,
            expected={
                "query_matches": 1,
                "loaded_in_session": True,
                "loaded_content_count": 1,
                "content_found": False,
                "content_rows": 0,
            },
        ),
        Scenario(
            name="direct-content-delete",
            description="Deleting Content leaves the Origin in place",
            run=_direct_content_delete,
            expected={
                "stale_collection_size": 1,
                "reloaded_collection_size": 0,
                "origin_in_session": True,
                "content_in_session": False,
                "content_found": False,
                "origin_found": True,
            },
        ),
        Scenario(
            name="bulk-content-delete",
            description="A DELETE statement on Content leaves a stale session copy",
            run=_bulk_content_delete,
            expected={
                "rows_deleted": 1,
                "origin_in_session": True,
                "content_in_session": True,
                "content_rows": 0,
                "origin_found": True,
                "stale_content_found": True,
                "origin_rows": 1,
                "stale_collection_size": 1,
                "reloaded_collection_size": 0,
            },
        ),
        Scenario(
            name="bulk-content-delete-invalidated",
            description="A DELETE statement on Content with session invalidation",
            run=_bulk_content_delete,
            expected={
                "rows_deleted": 1,
                "origin_in_session": True,
                "content_in_session": False,
                "content_rows": 0,
                "origin_found": True,
                "stale_content_found": False,
                "origin_rows": 1,
                "stale_collection_size": 0,
                "reloaded_collection_size": 0,
            },
            invalidate_on_bulk=True,
        ),
        Scenario(
            name="bulk-origin-delete",
            description="A DELETE statement on a referenced Origin is rejected",
            run=_bulk_origin_delete,
            expected={
                "error": ConstraintViolationError.__name__,
                "origin_rows": 1,
                "content_rows": 1,
            },
        ),
        Scenario(
            name="round-trip",
            description="Reloading a persisted Origin after a clear restores its Content",
            run=_round_trip,
            expected={
                "reloaded_content_count": 1,
                "content_names": [SCENARIO_CONTENT_NAME],
            },
        ),
        Scenario(
            name="list-foreign-keys",
            description="Every Content row resolves its Origin through the relationship",
            run=_list_foreign_keys,
            expected={
                "all_have_origin": True,
                "seeded_row": True,
            },
        ),
    )
}


def seed(repo: OriginRepository) -> tuple[Origin, Content]:
    """Persist "Origin 1" owning "Content 1" and return both."""
    origin = Origin(name=SCENARIO_ORIGIN_NAME)
    content = origin.attach(Content(name=SCENARIO_CONTENT_NAME))
    repo.persist(origin)
    return origin, content


def run_scenario(name: str, session: Session | None = None) -> ScenarioResult:
    """
    Run one scenario.

    Args:
        name: Scenario name from SCENARIOS
        session: Session to run in. If None, a rolled-back ``scenario_scope()``
            is opened.

    Returns:
        ScenarioResult with the recorded observations

    Raises:
        KeyError: If the scenario name is unknown
    """
    if name not in SCENARIOS:
        raise KeyError(
            f"Unknown scenario '{name}'. Available: {', '.join(sorted(SCENARIOS))}"
        )
    scenario = SCENARIOS[name]

    if session is None:
        with scenario_scope() as scoped:
            return _execute(scenario, scoped)
    return _execute(scenario, session)


def _execute(scenario: Scenario, session: Session) -> ScenarioResult:
    repo = OriginRepository(session, invalidate_on_bulk=scenario.invalidate_on_bulk)
    origin, content = seed(repo)

    try:
        observations = scenario.run(repo, origin, content)
    except Exception as e:
        logger.error(f"Scenario {scenario.name} raised: {e}", exc_info=True)
        return ScenarioResult(
            name=scenario.name,
            passed=False,
            expected=dict(scenario.expected),
            error=f"{type(e).__name__}: {e}",
        )

    result = ScenarioResult(
        name=scenario.name,
        passed=False,
        observations=observations,
        expected=dict(scenario.expected),
    )
    result.passed = not result.mismatches
    logger.debug(f"Scenario {scenario.name}: passed={result.passed}")
    return result


def run_scenarios(names: Iterable[str] | None = None) -> list[ScenarioResult]:
    """Run the named scenarios (all when None), each in its own rolled-back scope."""
    selected = list(names) if names else list(SCENARIOS)
    unknown = [n for n in selected if n not in SCENARIOS]
    if unknown:
        raise KeyError(
            f"Unknown scenario(s) {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(SCENARIOS))}"
        )
    return [run_scenario(name) for name in selected]
