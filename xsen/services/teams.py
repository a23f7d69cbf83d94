"""Team aliases, sport detection and query-context extraction.

Shared by the video adapter (alias rewriting) and the stats adapters
(candidate payload building).  Oklahoma is the home team: when a query
names no other school, it is assumed to be about the Sooners.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Team:
    name: str
    mascot: str
    aliases: tuple[str, ...]
    is_default: bool = False

    @property
    def search_name(self) -> str:
        """Name used for video searches, e.g. ``"oklahoma sooners"``."""
        return f"{self.name} {self.mascot}".lower()


TEAMS: tuple[Team, ...] = (
    Team("Oklahoma", "Sooners", ("oklahoma sooners", "oklahoma", "sooners", "ou", "boomer"), is_default=True),
    Team("Oklahoma State", "Cowboys", ("oklahoma state", "okstate", "ok state", "osu", "cowboys", "pokes")),
    Team("Texas", "Longhorns", ("texas longhorns", "texas", "longhorns", "ut austin", "horns")),
    Team("Nebraska", "Cornhuskers", ("nebraska", "cornhuskers", "huskers")),
    Team("Alabama", "Crimson Tide", ("alabama", "crimson tide", "bama")),
    Team("Georgia", "Bulldogs", ("georgia", "uga", "dawgs")),
    Team("LSU", "Tigers", ("lsu", "louisiana state")),
    Team("Missouri", "Tigers", ("missouri", "mizzou")),
    Team("Tennessee", "Volunteers", ("tennessee", "vols", "volunteers")),
    Team("Texas A&M", "Aggies", ("texas a&m", "texas am", "tamu", "aggies")),
    Team("Ole Miss", "Rebels", ("ole miss",)),
    Team("Auburn", "Tigers", ("auburn",)),
    Team("Florida", "Gators", ("florida", "gators")),
    Team("Florida State", "Seminoles", ("florida state", "fsu", "seminoles", "noles")),
    Team("South Carolina", "Gamecocks", ("south carolina", "gamecocks")),
    Team("Kansas", "Jayhawks", ("kansas", "jayhawks")),
    Team("Kansas State", "Wildcats", ("kansas state", "k-state", "kstate")),
    Team("Baylor", "Bears", ("baylor",)),
    Team("TCU", "Horned Frogs", ("tcu", "horned frogs")),
    Team("Texas Tech", "Red Raiders", ("texas tech", "red raiders")),
    Team("Iowa State", "Cyclones", ("iowa state", "cyclones")),
    Team("West Virginia", "Mountaineers", ("west virginia", "wvu", "mountaineers")),
    Team("Notre Dame", "Fighting Irish", ("notre dame", "fighting irish")),
    Team("Ohio State", "Buckeyes", ("ohio state", "buckeyes")),
    Team("USC", "Trojans", ("usc", "trojans")),
    Team("Clemson", "Tigers", ("clemson",)),
    Team("Miami", "Hurricanes", ("miami", "hurricanes")),
)

DEFAULT_TEAM: Team = next(t for t in TEAMS if t.is_default)

_ALIAS_TO_TEAM: dict[str, Team] = {alias: team for team in TEAMS for alias in team.aliases}

# Longest alias first so "oklahoma state" beats "oklahoma".
_ALIAS_RE = re.compile(
    r"(?<![\w&])(?:"
    + "|".join(re.escape(a) for a in sorted(_ALIAS_TO_TEAM, key=len, reverse=True))
    + r")(?![\w&])",
    re.IGNORECASE,
)

# Ordered: the first matching pattern decides the sport.
_SPORT_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), sport)
    for pattern, sport in (
        (r"softball", "softball"),
        (r"baseball", "baseball"),
        (r"\bfootball\b|\bfb\b", "football"),
        (r"women'?s basketball|\blady\b|womens hoops", "womens-basketball"),
        (r"men'?s basketball|basketball|\bhoops\b|\bbball\b", "mens-basketball"),
        (r"volleyball|\bvball\b", "womens-volleyball"),
        (r"women'?s soccer", "womens-soccer"),
        (r"men'?s soccer|\bsoccer\b", "mens-soccer"),
        (r"wrestling", "wrestling"),
        (r"gymnastics", "womens-gymnastics"),
        (r"\btrack\b|cross country", "womens-track-and-field"),
    )
)
DEFAULT_SPORT = "football"

_OPPONENT_RE = re.compile(r"\b(?:vs\.?|versus|against|play(?:ing|s)?)\s+(?:the\s+)?([a-z&'\- ]+)", re.IGNORECASE)
_YEAR_RE = re.compile(r"\b(18[6-9]\d|19\d{2}|20\d{2})\b")
_STOP_WORDS = {"in", "on", "at", "this", "last", "next", "today", "tonight", "game", "games", "since", "for", "the"}


@dataclass(frozen=True)
class QueryContext:
    """Structured hints pulled out of a free-text stats query."""

    team: str
    sport: str
    opponent: str | None = None
    year: int | None = None


def find_teams(text: str) -> list[Team]:
    """Teams mentioned in *text*, in order of appearance, without repeats."""
    found: list[Team] = []
    for match in _ALIAS_RE.finditer(text):
        team = _ALIAS_TO_TEAM[match.group(0).lower()]
        if team not in found:
            found.append(team)
    return found


def detect_team(text: str) -> Team:
    """The school a query is about.

    Matchup questions ("how did we do against Texas") stay with the home
    team unless two other schools are named; otherwise the first school
    mentioned wins, falling back to the home team.
    """
    teams = find_teams(text)
    if DEFAULT_TEAM in teams:
        return DEFAULT_TEAM
    if _OPPONENT_RE.search(text) and len(teams) < 2:
        return DEFAULT_TEAM
    return teams[0] if teams else DEFAULT_TEAM


def parse_sport(text: str) -> str:
    for pattern, sport in _SPORT_PATTERNS:
        if pattern.search(text):
            return sport
    return DEFAULT_SPORT


def extract_opponent(text: str, team: Team) -> str | None:
    """Find the other side of a matchup by removing the primary team.

    Known teams are preferred; otherwise the words after "vs"/"against" are
    used verbatim once the primary team's aliases are stripped out.
    """
    others = [t for t in find_teams(text) if t != team]
    if others:
        return others[0].name

    match = _OPPONENT_RE.search(text)
    if not match:
        return None
    words: list[str] = []
    for word in match.group(1).split():
        if word.lower() in _STOP_WORDS or _YEAR_RE.fullmatch(word):
            break
        words.append(word)
    raw = " ".join(words)
    own = "|".join(re.escape(a) for a in team.aliases)
    raw = re.sub(rf"\b(?:{own})\b", "", raw, flags=re.IGNORECASE)
    return " ".join(raw.split()).title() or None


def rewrite_aliases(text: str) -> str:
    """Replace every team alias in *text* with the team's search name."""
    return _ALIAS_RE.sub(lambda m: _ALIAS_TO_TEAM[m.group(0).lower()].search_name, text)


def build_context(query: str) -> QueryContext:
    team = detect_team(query)
    year = _YEAR_RE.search(query)
    return QueryContext(
        team=team.name,
        sport=parse_sport(query),
        opponent=extract_opponent(query, team),
        year=int(year.group(1)) if year else None,
    )
