"""
Match records and the shape adapter used at the storage boundary.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class Outcome(str, Enum):
    """Result of a single match, from participant A's point of view."""
    A_WINS = 'AWins'
    B_WINS = 'BWins'
    DRAW = 'Draw'

    @classmethod
    def parse(cls, value) -> 'Outcome':
        """
        Parse an outcome from its wire value.

        Accepts the canonical values case-insensitively, plus the aliases
        written by the first version of the web form ('player1', 'player2',
        'draw') and the short CLI forms ('a', 'b').

        Raises:
            ValueError: if the value is not a known outcome
        """
        if isinstance(value, Outcome):
            return value
        if not isinstance(value, str):
            raise ValueError(f"invalid outcome: {value!r}")
        try:
            return _OUTCOME_ALIASES[value.strip().lower()]
        except KeyError:
            raise ValueError(f"unknown outcome: {value!r}") from None

    def scores(self) -> tuple[float, float]:
        """Actual scores (S_A, S_B) for this outcome."""
        if self is Outcome.A_WINS:
            return 1.0, 0.0
        if self is Outcome.B_WINS:
            return 0.0, 1.0
        return 0.5, 0.5


_OUTCOME_ALIASES = {
    'awins': Outcome.A_WINS,
    'a': Outcome.A_WINS,
    'player1': Outcome.A_WINS,
    'bwins': Outcome.B_WINS,
    'b': Outcome.B_WINS,
    'player2': Outcome.B_WINS,
    'draw': Outcome.DRAW,
}


def format_recorded_at(moment: datetime) -> str:
    """Format an instant as UTC ISO-8601 with millisecond precision (2024-01-31T09:15:00.250Z)."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f'{moment.microsecond // 1000:03d}Z'


def parse_recorded_at(value: str) -> datetime:
    """Parse a recordedAt value back into an aware datetime."""
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _required_text(data: dict, *keys: str) -> str:
    """Return the first present value among keys, which must be a non-empty string."""
    for key in keys:
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"invalid value for {key}")
            return value
    raise ValueError(f"missing field: {keys[0]}")


@dataclass(frozen=True)
class Match:
    """A single resolved contest between two participants."""
    participant_a: str
    participant_b: str
    outcome: Outcome
    recorded_at: str  # ISO-8601 instant, also the record's identifier

    def to_dict(self) -> dict:
        return {
            'participantA': self.participant_a,
            'participantB': self.participant_b,
            'outcome': self.outcome.value,
            'recordedAt': self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data) -> 'Match':
        """
        Build a Match from its stored JSON object.

        Legacy records ({player1, player2, result, date}) are accepted and
        mapped onto the current field names. As in the first version of the
        app, a legacy result other than player1/player2 counts as a draw.

        Raises:
            ValueError: if the object is missing a field or has an invalid value
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")

        participant_a = _required_text(data, 'participantA', 'player1')
        participant_b = _required_text(data, 'participantB', 'player2')
        if 'outcome' not in data and 'result' in data:
            outcome = _legacy_outcome(data['result'])
        else:
            outcome = Outcome.parse(_required_text(data, 'outcome'))
        recorded_at = _required_text(data, 'recordedAt', 'date')

        return cls(
            participant_a=participant_a,
            participant_b=participant_b,
            outcome=outcome,
            recorded_at=recorded_at,
        )


def _legacy_outcome(result) -> Outcome:
    if result == 'player1':
        return Outcome.A_WINS
    if result == 'player2':
        return Outcome.B_WINS
    return Outcome.DRAW


@dataclass(frozen=True)
class UnreadableRecord:
    """
    A stored entry that could not be decoded into a Match.

    Stores keep these in place so that writing the ledger back re-emits
    them exactly as they were read. They take no part in ratings.
    """
    data: object

    def to_dict(self):
        return self.data

    @property
    def recorded_at(self):
        if isinstance(self.data, dict):
            value = self.data.get('recordedAt', self.data.get('date'))
            if isinstance(value, str):
                return value
        return None


def normalize_matches(raw, keep_unreadable: bool = False) -> list:
    """
    Normalize whatever a backend returned into an ordered list of matches.

    Handles None, a list, a JSON string (including a JSON string that itself
    encodes a JSON string), and a wrapper object {"matches": [...]}.
    Records that cannot be decoded are skipped with a warning, or kept as
    UnreadableRecord when keep_unreadable is set; order is preserved.
    """
    if raw is None:
        return []

    if isinstance(raw, bytes):
        raw = raw.decode('utf-8', errors='replace')

    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            decoded = json.loads(raw)
        except (ValueError, RecursionError) as e:
            print(f"Warning: Ledger payload is not valid JSON, treating as empty: {e}")
            return []
        return normalize_matches(decoded, keep_unreadable)

    if isinstance(raw, dict):
        return normalize_matches(raw.get('matches'), keep_unreadable)

    if not isinstance(raw, (list, tuple)):
        print(f"Warning: Unexpected ledger payload type {type(raw).__name__}, treating as empty")
        return []

    matches = []
    for index, entry in enumerate(raw):
        if isinstance(entry, Match):
            matches.append(entry)
            continue
        if isinstance(entry, UnreadableRecord):
            if keep_unreadable:
                matches.append(entry)
            continue
        try:
            matches.append(Match.from_dict(entry))
        except ValueError as e:
            if keep_unreadable:
                print(f"Warning: Keeping undecodable match record #{index} as stored: {e}")
                matches.append(UnreadableRecord(entry))
            else:
                print(f"Warning: Skipping malformed match record #{index}: {e}")
    return matches


def readable_matches(entries) -> list[Match]:
    """Only the decoded matches from a stored ledger."""
    return [entry for entry in entries if isinstance(entry, Match)]


def describe_match(match: Match) -> str:
    """One-line summary for match history listings."""
    if match.outcome is Outcome.A_WINS:
        verdict = f"{match.participant_a} won"
    elif match.outcome is Outcome.B_WINS:
        verdict = f"{match.participant_b} won"
    else:
        verdict = "Draw"
    return f"{match.participant_a} vs {match.participant_b} - {verdict}"
