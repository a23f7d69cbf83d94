"""Tests for team detection, sport parsing and query-context extraction."""

from __future__ import annotations

import pytest

from xsen.services.teams import (
    DEFAULT_TEAM,
    build_context,
    detect_team,
    extract_opponent,
    find_teams,
    parse_sport,
    rewrite_aliases,
)


class TestTeamDetection:
    def test_defaults_to_oklahoma(self):
        assert detect_team("what's the score today") is DEFAULT_TEAM
        assert DEFAULT_TEAM.name == "Oklahoma"

    def test_home_team_wins_matchups(self):
        assert detect_team("Oklahoma vs Texas").name == "Oklahoma"

    def test_single_opponent_keeps_home_team(self):
        assert detect_team("how did we do against Nebraska").name == "Oklahoma"

    def test_other_school_alone(self):
        assert detect_team("Texas Longhorns schedule").name == "Texas"

    def test_two_other_schools_uses_first(self):
        assert detect_team("Alabama against Georgia").name == "Alabama"

    def test_longest_alias_wins(self):
        assert [t.name for t in find_teams("oklahoma state cowboys")] == ["Oklahoma State"]
        assert detect_team("OSU football").name == "Oklahoma State"

    def test_alias_inside_word_is_ignored(self):
        assert find_teams("could you find it") == []


class TestSportParsing:
    @pytest.mark.parametrize(
        "text,sport",
        [
            ("OU softball score", "softball"),
            ("baseball schedule", "baseball"),
            ("women's basketball roster", "womens-basketball"),
            ("hoops tonight", "mens-basketball"),
            ("volleyball results", "womens-volleyball"),
            ("wrestling dual", "wrestling"),
            ("what's the score", "football"),
        ],
    )
    def test_parse_sport(self, text, sport):
        assert parse_sport(text) == sport


class TestOpponentExtraction:
    def test_known_team_preferred(self):
        assert extract_opponent("OU against Baylor in 2021", DEFAULT_TEAM) == "Baylor"

    def test_unknown_opponent_from_matchup_words(self):
        assert extract_opponent("how did OU do against army in 2019", DEFAULT_TEAM) == "Army"

    def test_no_matchup(self):
        assert extract_opponent("OU score today", DEFAULT_TEAM) is None


class TestContext:
    def test_build_context(self):
        ctx = build_context("OU vs Nebraska 1971 football")
        assert ctx.team == "Oklahoma"
        assert ctx.sport == "football"
        assert ctx.opponent == "Nebraska"
        assert ctx.year == 1971

    def test_rewrite_aliases(self):
        assert rewrite_aliases("ou vs texas") == "oklahoma sooners vs texas longhorns"
