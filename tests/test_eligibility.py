from agent_questing.quests.eligibility import (
    objective_eligibility,
    objective_level_in_range,
    quest_category_allowed,
    quest_eligibility,
    quest_in_session_window,
)
from agent_questing.quests.models import AgentSnapshot, Objective, Quest, Step


def make_agent(level=10, category="pmc"):
    return AgentSnapshot("a1", (0.0, 0.0, 0.0), level, category)


def test_quest_without_valid_objectives_is_rejected():
    quest = Quest("Empty", objectives=[Objective(steps=[Step(None)])])
    result = quest_eligibility(make_agent(), quest, 0.0)
    assert not result
    assert result.reason == "no_valid_objectives"


def test_quest_level_range_is_inclusive():
    quest = Quest("Q", min_level=5, max_level=15, objectives=[Objective.at_position((1, 0, 0))])
    assert quest_eligibility(make_agent(level=5), quest, 0.0)
    assert quest_eligibility(make_agent(level=15), quest, 0.0)
    assert quest_eligibility(make_agent(level=4), quest, 0.0).reason == "level_too_low"
    assert quest_eligibility(make_agent(level=16), quest, 0.0).reason == "level_too_high"


def test_category_matching_is_case_insensitive():
    quest = Quest("Q", allowed_categories=frozenset({"PMC"}))
    assert quest_category_allowed(make_agent(category="pmc"), quest, 0.0)
    assert quest_category_allowed(make_agent(category="scav"), quest, 0.0).reason == "category_not_allowed"
    assert quest_category_allowed(make_agent(category=None), quest, 0.0).reason == "category_undetermined"


def test_unrestricted_quest_allows_any_category():
    quest = Quest("Q")
    assert quest_category_allowed(make_agent(category=None), quest, 0.0)


def test_session_window():
    quest = Quest("Q", min_session_time=60.0, max_session_time=120.0)
    agent = make_agent()
    assert quest_in_session_window(agent, quest, 30.0).reason == "too_early"
    assert quest_in_session_window(agent, quest, 90.0)
    assert quest_in_session_window(agent, quest, 121.0).reason == "expired"


def test_objective_level_falls_back_to_quest():
    objective = Objective.at_position((1, 0, 0))
    Quest("Q", min_level=20, max_level=30, objectives=[objective])
    assert objective_level_in_range(make_agent(level=10), objective, 0.0).reason == "level_too_low"

    objective.min_level = 5
    assert objective_level_in_range(make_agent(level=10), objective, 0.0)


def test_objective_first_failure_is_reported():
    objective = Objective(steps=[Step(None)], allowed_categories=frozenset({"boss"}))
    result = objective_eligibility(make_agent(), objective, 0.0)
    assert result.reason == "no_valid_steps"
