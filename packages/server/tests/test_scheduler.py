"""Unit tests for the cascade scheduler."""
import logging
import random
from datetime import timedelta

import pytest

from conftest import day
from taskflow.engine.constraints import is_satisfied
from taskflow.engine.graph import DependencyGraph
from taskflow.engine.scheduler import compute_cascade, reschedule
from taskflow.engine.types import DependencyType, Edge, TaskDates
from taskflow.errors import NotFoundError

FS = DependencyType.FINISH_TO_START
SS = DependencyType.START_TO_START
FF = DependencyType.FINISH_TO_FINISH
SF = DependencyType.START_TO_FINISH


def task(task_id, start, due, milestone=False):
    return TaskDates(
        task_id=task_id,
        start_date=day(start) if start is not None else None,
        due_date=day(due) if due is not None else None,
        is_milestone=milestone,
        title=task_id,
    )


def snapshot(*tasks):
    return {t.task_id: t for t in tasks}


def edge(source, target, type=FS):
    return Edge(id=f"dep_{source}_{target}", source=source, target=target, type=type)


def assert_all_satisfied(graph, tasks):
    for e in graph.edges():
        assert is_satisfied(e, tasks[e.source], tasks[e.target]), e


def apply(tasks, result):
    out = dict(tasks)
    for m in result.mutations:
        out[m.task_id] = m.new
    return out


def test_forward_shift_through_chain():
    graph = DependencyGraph([edge("A", "B"), edge("B", "C")])
    tasks = snapshot(task("A", 0, 4), task("B", 5, 9), task("C", 10, 12))

    result = reschedule(graph, tasks, task("A", 0, 7))

    assert result.task_ids() == ["B", "C"]
    b, c = result.mutations
    assert (b.new.start_date, b.new.due_date) == (day(7), day(11))
    assert (c.new.start_date, c.new.due_date) == (day(11), day(13))
    assert b.source_task_id == "A" and b.dependency_type is FS
    assert c.source_task_id == "B"


def test_cascade_stops_when_constraint_still_holds():
    graph = DependencyGraph([edge("A", "B"), edge("B", "C")])
    tasks = snapshot(task("A", 0, 4), task("B", 10, 12), task("C", 13, 14))

    result = reschedule(graph, tasks, task("A", 0, 7))

    assert result.mutations == []


def test_moving_earlier_never_pulls_dependents_back():
    graph = DependencyGraph([edge("A", "B")])
    tasks = snapshot(task("A", 0, 4), task("B", 5, 9))

    result = reschedule(graph, tasks, task("A", 0, 1))

    assert result.mutations == []


def test_duration_preserved():
    graph = DependencyGraph([edge("A", "B")])
    tasks = snapshot(task("A", 0, 4), task("B", 5, 8.5))

    result = reschedule(graph, tasks, task("A", 0, 9))

    new = result.mutations[0].new
    assert new.due_date - new.start_date == timedelta(days=3.5)


def test_diamond_takes_latest_bound():
    # A -> B -> D and A -> C -> D with C ending later than B.
    graph = DependencyGraph([edge("A", "B"), edge("A", "C"), edge("B", "D"), edge("C", "D")])
    tasks = snapshot(
        task("A", 0, 2), task("B", 2, 3), task("C", 2, 6), task("D", 6, 7)
    )

    result = reschedule(graph, tasks, task("A", 0, 4))

    final = apply(tasks, result)
    assert final["D"].start_date == day(8)
    assert final["D"].due_date == day(9)
    assert result.task_ids().count("D") == 1
    assert_all_satisfied(graph, final)


def test_diamond_with_unequal_path_lengths():
    # D is reachable directly from A and through A -> B -> C -> D.
    graph = DependencyGraph([edge("A", "B"), edge("B", "C"), edge("C", "D"), edge("A", "D")])
    tasks = snapshot(
        task("A", 0, 1), task("B", 1, 2), task("C", 2, 3), task("D", 3, 4)
    )

    result = reschedule(graph, tasks, task("A", 0, 5))

    final = apply(tasks, result)
    assert final["D"].start_date == day(7)
    assert_all_satisfied(graph, final)


def test_start_to_start():
    graph = DependencyGraph([edge("A", "B", SS)])
    tasks = snapshot(task("A", 0, 10), task("B", 1, 3))

    result = reschedule(graph, tasks, task("A", 4, 10))

    new = result.mutations[0].new
    assert (new.start_date, new.due_date) == (day(4), day(6))


def test_finish_to_finish():
    graph = DependencyGraph([edge("A", "B", FF)])
    tasks = snapshot(task("A", 0, 5), task("B", 1, 5))

    result = reschedule(graph, tasks, task("A", 0, 8))

    new = result.mutations[0].new
    assert (new.start_date, new.due_date) == (day(4), day(8))


def test_start_to_finish():
    graph = DependencyGraph([edge("A", "B", SF)])
    tasks = snapshot(task("A", 3, 5), task("B", 0, 2))

    result = reschedule(graph, tasks, task("A", 6, 8))

    new = result.mutations[0].new
    assert (new.start_date, new.due_date) == (day(4), day(6))
    assert result.mutations[0].dependency_type is SF


def test_conflicting_bounds_use_the_maximum_shift():
    # FS from A binds B's start, FF from C binds B's due.
    graph = DependencyGraph([edge("A", "B", FS), edge("C", "B", FF)])
    tasks = snapshot(task("A", 0, 3), task("C", 0, 10), task("B", 3, 10))

    result = reschedule(graph, tasks, task("A", 0, 5))

    new = result.mutations[0].new
    assert (new.start_date, new.due_date) == (day(5), day(12))


def test_milestone_dependent_stays_a_point():
    graph = DependencyGraph([edge("A", "M")])
    tasks = snapshot(task("A", 0, 4), task("M", 5, 5, milestone=True))

    result = reschedule(graph, tasks, task("A", 0, 9))

    new = result.mutations[0].new
    assert new.is_milestone
    assert new.start_date == new.due_date == day(9)


def test_unset_dates_make_constraint_vacuous():
    graph = DependencyGraph([edge("A", "B"), edge("B", "C")])
    tasks = snapshot(task("A", 0, 4), task("B", None, None), task("C", 5, 6))

    result = reschedule(graph, tasks, task("A", 0, 20))

    assert result.mutations == []


def test_dependent_without_constrained_date_is_untouched():
    # FS constrains start; B only has a due date.
    graph = DependencyGraph([edge("A", "B")])
    tasks = snapshot(task("A", 0, 4), task("B", None, 5))

    result = reschedule(graph, tasks, task("A", 0, 10))

    assert result.mutations == []


def test_untouched_branch_is_not_evaluated():
    # X already violates its constraint from Y, but Y is not downstream of A.
    graph = DependencyGraph([edge("A", "B"), edge("Y", "X")])
    tasks = snapshot(task("A", 0, 1), task("B", 2, 3), task("Y", 0, 9), task("X", 1, 2))

    result = reschedule(graph, tasks, task("A", 0, 5))

    assert result.task_ids() == ["B"]


def test_second_run_is_idempotent():
    graph = DependencyGraph([edge("A", "B"), edge("B", "C"), edge("A", "C", SS)])
    tasks = snapshot(task("A", 0, 2), task("B", 2, 4), task("C", 4, 5))

    first = reschedule(graph, tasks, task("A", 1, 6))
    final = apply(tasks, first)
    second = compute_cascade(graph, final, "A")

    assert first.updated > 0
    assert second.mutations == []


def test_stored_cycle_does_not_stop_the_cascade(caplog):
    # X <-> Y is a cycle that reached the store; Z hangs off it without one.
    graph = DependencyGraph([edge("A", "X"), edge("X", "Y"), edge("Y", "X"), edge("X", "Z")])
    tasks = snapshot(task("A", 0, 4), task("X", 5, 6), task("Y", 7, 8), task("Z", 9, 10))

    with caplog.at_level(logging.WARNING, logger="taskflow.engine.scheduler"):
        result = reschedule(graph, tasks, task("A", 0, 10))

    final = apply(tasks, result)
    final["A"] = task("A", 0, 10)
    assert result.cycle_entries == ["X"]
    assert result.task_ids() == ["X", "Y", "Z"]
    assert (final["X"].start_date, final["X"].due_date) == (day(10), day(11))
    assert (final["Y"].start_date, final["Y"].due_date) == (day(11), day(12))
    assert (final["Z"].start_date, final["Z"].due_date) == (day(11), day(12))
    for e in (edge("A", "X"), edge("X", "Y"), edge("X", "Z")):
        assert is_satisfied(e, final[e.source], final[e.target]), e
    assert "dependency cycle" in caplog.text


def test_stored_cycle_below_an_acyclic_chain():
    graph = DependencyGraph([edge("A", "B"), edge("B", "C"), edge("C", "B")])
    tasks = snapshot(task("A", 0, 4), task("B", 5, 6), task("C", 7, 8))

    result = reschedule(graph, tasks, task("A", 0, 10))

    final = apply(tasks, result)
    assert result.cycle_entries == ["B"]
    assert final["B"].start_date == day(10)
    assert final["C"].start_date == day(11)


def test_unknown_root():
    with pytest.raises(NotFoundError):
        compute_cascade(DependencyGraph(), {}, "missing")


def test_mutation_to_dict_uses_epoch_ms():
    graph = DependencyGraph([edge("A", "B")])
    tasks = snapshot(task("A", 0, 4), task("B", 5, 9))

    data = reschedule(graph, tasks, task("A", 0, 7)).to_dict()

    mutation = data["mutations"][0]
    assert data["updated"] == 1
    assert mutation["new_start_date"] == int(day(7).timestamp() * 1000)
    assert mutation["old_start_date"] == int(day(5).timestamp() * 1000)
    assert mutation["dependency_type"] == "FS"


@pytest.mark.parametrize("seed", range(20))
def test_random_dags_end_satisfied_downstream(seed):
    rng = random.Random(seed)
    ids = [f"T{i}" for i in range(12)]
    edges = []
    for i, target in enumerate(ids):
        for source in rng.sample(ids[:i], min(i, rng.randint(0, 3))):
            edges.append(edge(source, target, rng.choice(list(DependencyType))))
    graph = DependencyGraph(edges)

    # Start from a fully satisfied schedule: lay tasks out in index order.
    tasks = {}
    for i, task_id in enumerate(ids):
        tasks[task_id] = task(task_id, i * 10, i * 10 + rng.randint(0, 9))
    assert_all_satisfied(graph, tasks)

    root = ids[rng.randrange(len(ids))]
    old = tasks[root]
    shift = timedelta(days=rng.randint(1, 40))
    result = reschedule(graph, tasks, old.with_dates(old.start_date + shift, old.due_date + shift))
    final = apply(tasks, result)
    final[root] = old.with_dates(old.start_date + shift, old.due_date + shift)

    assert_all_satisfied(graph, final)
    assert len(set(result.task_ids())) == len(result.mutations)
    for m in result.mutations:
        assert m.new.due_date - m.new.start_date == m.old.due_date - m.old.start_date
        assert m.new.start_date >= m.old.start_date
