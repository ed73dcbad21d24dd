import csv

import pytest

from agent_questing.config import QuestSettings
from agent_questing.core.time_manager import ManualClock
from agent_questing.quests.graph import (
    GraphBuilder,
    ObjectiveGraph,
    go_to_position_quest,
    spawn_point_quest,
)
from agent_questing.quests.models import LootAfterCompleting, Objective, Quest, Step


def test_add_quest_rejects_none_and_ignores_duplicates():
    graph = ObjectiveGraph()
    quest = Quest("Q", objectives=[Objective.at_position((1, 2, 3))])
    with pytest.raises(ValueError):
        graph.add_quest(None)
    graph.add_quest(quest)
    graph.add_quest(quest)
    assert graph.quest_count == 1
    assert graph.find_quest("Q") is quest
    assert graph.find_quest("missing") is None


def test_quests_returns_snapshot():
    graph = ObjectiveGraph()
    graph.add_quest(Quest("A"))
    snapshot = graph.quests
    graph.add_quest(Quest("B"))
    assert [q.name for q in snapshot] == ["A"]
    assert [q.name for q in graph.quests] == ["A", "B"]


def test_clear_resets_built_flag():
    graph = ObjectiveGraph()
    graph.add_quest(Quest("A"))
    graph.notify_built()
    assert graph.is_built
    graph.clear()
    assert not graph.is_built
    assert graph.quest_count == 0


def test_builder_skips_quests_without_valid_objectives():
    clock = ManualClock()
    graph = ObjectiveGraph()
    good = Quest("Good", objectives=[Objective.at_position((0, 0, 0))])
    bad = Quest("Bad", objectives=[Objective(steps=[Step(None)])])

    def first_loader():
        clock.advance(1.0)
        return [good, bad]

    def second_loader():
        return [Quest("Later", objectives=[Objective.at_position((5, 5, 0))])]

    builder = GraphBuilder(graph, [first_loader, second_loader], budget=0.5, clock=clock)

    assert builder.step() is False
    assert not graph.is_built
    assert builder.step() is True
    assert builder.done
    assert graph.is_built
    assert [q.name for q in graph.quests] == ["Good", "Later"]


def test_go_to_position_quest_applies_settings():
    settings = QuestSettings(priority=-1, chance=90, max_agents=3, max_run_distance=25.0, interest_time=60)
    quest = go_to_position_quest((4, 5, 6), "Chaser", settings, session_time=100.0)

    assert quest.priority == -1
    assert quest.chance_for_selecting == 90
    assert quest.max_agents == 3
    assert quest.max_session_time == 160.0
    assert quest.objectives[0].first_step_position() == (4.0, 5.0, 6.0)
    assert quest.objectives[0].max_run_distance == 25.0
    assert quest.objectives[0].quest is quest


def test_go_to_position_quest_requires_name():
    with pytest.raises(ValueError):
        go_to_position_quest((0, 0, 0), "", QuestSettings())


def test_spawn_point_quest():
    assert spawn_point_quest([], "Spawns", QuestSettings()) is None

    quest = spawn_point_quest([(0, 0), (10, 0)], "Spawns", QuestSettings(repeatable=True))
    assert quest.is_repeatable
    assert quest.number_of_valid_objectives == 2
    assert quest.objectives[1].first_step_position() == (10.0, 0.0, 0.0)


def test_objectives_near_position():
    graph = ObjectiveGraph()
    near = Objective.at_position((2, 0, 0))
    far = Objective.at_position((50, 0, 0))
    graph.add_quest(Quest("Q", objectives=[near, far]))

    assert graph.objectives_near_position((0.0, 0.0, 0.0), 5.0) == [near]


def test_write_quest_log(tmp_path):
    graph = ObjectiveGraph()
    gate = Objective(
        name="Gate",
        steps=[Step(None), Step((1, 2, 3), chance_of_having_key=25.0)],
        loot_after_completing=LootAfterCompleting.INHIBIT,
    )
    graph.add_quest(Quest("Factory", min_level=3, objectives=[gate, Objective(name="Broken")]))
    path = graph.write_quest_log(tmp_path / "logs" / "quests.csv")

    with path.open(newline="") as fh:
        rows = list(csv.reader(fh))

    assert rows[0][0] == "Quest Name"
    assert rows[1] == ["Factory", "Gate", "2", "3", "99", "inhibit", "25.0", "(1.0, 2.0, 3.0)"]
    assert rows[2][-2:] == ["N/A", "N/A"]


def test_steps_without_position_are_skipped():
    first = Step((1, 0, 0))
    last = Step((3, 0, 0))
    objective = Objective(steps=[Step(None), first, Step(None), last])

    assert objective.first_step() is first
    assert objective.first_step_position() == (1.0, 0.0, 0.0)
    assert objective.next_step(first) is last
    assert objective.next_step(last) is None
    assert Objective(steps=[Step(None)]).first_step() is None
