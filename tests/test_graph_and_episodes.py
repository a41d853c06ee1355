"""Tests for the causal graph and episode log tiers."""

import pytest

from pattern_nexus.core.episodes import EpisodeStore
from pattern_nexus.core.graph import CausalGraph
from pattern_nexus.core.models import CausalEdge


class TestCausalGraph:
    def setup_method(self):
        self.graph = CausalGraph()

    def test_effects_of(self):
        self.graph.add_edge(0, 1, -15, 0.8, 1)
        self.graph.add_edge(1, 2, 25, 0.8, 1)

        assert self.graph.effects_of(0) == [CausalEdge(0, 1, -15, 0.8, 1)]
        assert self.graph.effects_of(1) == [CausalEdge(1, 2, 25, 0.8, 1)]
        assert self.graph.effects_of(2) == []

    def test_unknown_id_is_empty(self):
        assert self.graph.effects_of(42) == []
        assert self.graph.causes_of(42) == []

    def test_no_id_validation(self):
        edge = self.graph.add_edge(100, -7, 1.0)
        assert self.graph.effects_of(100) == [edge]

    def test_duplicates_kept_in_order(self):
        first = self.graph.add_edge(0, 1, 1.0)
        second = self.graph.add_edge(0, 1, 2.0)
        assert self.graph.effects_of(0) == [first, second]

    def test_causes_of(self):
        edge = self.graph.add_edge(3, 4, 0.5)
        assert self.graph.causes_of(4) == [edge]

    def test_returned_list_is_a_copy(self):
        self.graph.add_edge(0, 1, 1.0)
        self.graph.effects_of(0).clear()
        assert len(self.graph.effects_of(0)) == 1

    def test_stats(self):
        self.graph.add_edge(0, 1, 1.0)
        self.graph.add_edge(1, 2, 1.0)
        assert self.graph.get_stats() == {"nodes": 3, "relationships": 2}
        assert self.graph.count == 2

    def test_edge_dict_round_trip(self):
        edge = CausalEdge(1, 2, 3.5, 0.8, 1.0)
        assert CausalEdge.from_dict(edge.to_dict()) == edge


class TestEpisodeStore:
    def setup_method(self):
        self.episodes = EpisodeStore()

    def test_ids_dense_from_zero(self):
        ids = [self.episodes.append("buy", i, i > 0) for i in range(-1, 3)]
        assert ids == [0, 1, 2, 3]
        assert len(self.episodes) == 4
        assert self.episodes.next_id == 4

    def test_retrieve_by_action_keeps_insertion_order(self):
        self.episodes.append("buy", 10, True)
        self.episodes.append("sell", -5, False)
        self.episodes.append("buy", 20, True)

        found = self.episodes.retrieve_by_action("buy")
        assert [e.id for e in found] == [0, 2]
        assert [e.outcome for e in found] == [10, 20]

    def test_retrieve_limit(self):
        for i in range(15):
            self.episodes.append("hold", i, True)
        assert len(self.episodes.retrieve_by_action("hold", limit=10)) == 10
        assert self.episodes.retrieve_by_action("hold", limit=0) == []

    def test_min_relevance_is_advisory(self):
        self.episodes.append("buy", 1, True)
        assert len(self.episodes.retrieve_by_action("buy", 10, min_relevance=0.99)) == 1

    def test_unknown_action(self):
        assert self.episodes.retrieve_by_action("short") == []
        assert self.episodes.all_by_action("short") == []

    def test_all_by_action_unlimited(self):
        for i in range(25):
            self.episodes.append("sell", -i, False)
        assert len(self.episodes.all_by_action("sell")) == 25

    def test_note_and_payload(self):
        self.episodes.append("buy", 10.0, True, payload={"price": 1})
        episode = self.episodes.get(0)
        assert episode.note == "Action buy resulted in 10.0"
        assert episode.to_dict()["payload"] == {"price": 1}

    def test_get_and_latest(self):
        assert self.episodes.latest() is None
        assert self.episodes.get(0) is None
        self.episodes.append("buy", 1, True)
        self.episodes.append("sell", 2, True)
        assert self.episodes.latest().action == "sell"
        assert self.episodes.get(-1) is None

    def test_actions_counts(self):
        self.episodes.append("buy", 1, True)
        self.episodes.append("buy", 1, True)
        self.episodes.append("sell", 1, True)
        assert self.episodes.actions() == {"buy": 2, "sell": 1}

    def test_episodes_are_immutable(self):
        self.episodes.append("buy", 1, True)
        with pytest.raises(AttributeError):
            self.episodes.get(0).outcome = 5
