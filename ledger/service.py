"""
Ledger operations: list, record and delete matches.

Each operation is one read-modify-write cycle against the store. There is no
locking: two concurrent writers that read the same ledger will race, and the
later write wins.
"""

from datetime import datetime, timedelta, timezone

from ledger.elo import aggregate
from ledger.models import Match, Outcome, format_recorded_at, parse_recorded_at, readable_matches
from ledger.store import LedgerStore, StorageReadError


class ValidationError(ValueError):
    """Bad or missing input for a ledger operation."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _participant(candidate: dict, field: str) -> str:
    value = candidate.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty name")
    return value.strip()


class LedgerService:
    """Orchestrates the store and the Elo aggregation for one request."""

    def __init__(self, store: LedgerStore, clock=None):
        self.store = store
        self.clock = clock or _utc_now
        self.last_read_error = None

    @property
    def backend(self) -> str:
        return self.store.name

    def list_matches(self) -> list[Match]:
        """
        Current ledger, oldest first.

        A storage failure degrades to an empty ledger; the failure is kept
        in last_read_error so the caller can report it.
        """
        self.last_read_error = None
        try:
            return readable_matches(self.store.read())
        except StorageReadError as e:
            print(f"Warning: {e}; serving an empty ledger")
            self.last_read_error = e
            return []

    def ratings(self) -> dict[str, int]:
        return aggregate(self.list_matches())

    def record_match(self, candidate) -> list[Match]:
        """
        Validate a new match, stamp it and append it to the ledger.

        Args:
            candidate: Mapping with participantA, participantB and outcome.
                Any recordedAt supplied by the caller is ignored.

        Returns:
            The full ledger after the append.

        Raises:
            ValidationError: if the participants are missing, blank or equal,
                or the outcome is unknown
            StorageReadError: if the current ledger cannot be read
            StorageWriteError: if the new ledger was not persisted
        """
        if not isinstance(candidate, dict):
            raise ValidationError("match must be a JSON object")

        participant_a = _participant(candidate, 'participantA')
        participant_b = _participant(candidate, 'participantB')
        if participant_a == participant_b:
            raise ValidationError("participantA and participantB must be different")

        try:
            outcome = Outcome.parse(candidate.get('outcome'))
        except ValueError as e:
            raise ValidationError(str(e)) from None

        matches = list(self.store.read())
        match = Match(
            participant_a=participant_a,
            participant_b=participant_b,
            outcome=outcome,
            recorded_at=self._unique_timestamp(matches),
        )
        matches.append(match)
        self.store.write(matches)
        return readable_matches(matches)

    def delete_match(self, recorded_at) -> list[Match]:
        """
        Remove the match identified by recorded_at.

        Deleting an identifier that is not in the ledger leaves it unchanged
        and is not an error.

        Raises:
            ValidationError: if recorded_at is missing or blank
            StorageReadError: if the current ledger cannot be read
            StorageWriteError: if the new ledger was not persisted
        """
        if not isinstance(recorded_at, str) or not recorded_at.strip():
            raise ValidationError("recordedAt is required")

        matches = [m for m in self.store.read() if m.recorded_at != recorded_at]
        self.store.write(matches)
        return readable_matches(matches)

    def _unique_timestamp(self, matches: list[Match]) -> str:
        """Current instant, nudged forward a millisecond at a time until no record uses it."""
        taken = {m.recorded_at for m in matches}
        moment = self.clock()
        recorded_at = format_recorded_at(moment)
        while recorded_at in taken:
            moment = parse_recorded_at(recorded_at) + timedelta(milliseconds=1)
            recorded_at = format_recorded_at(moment)
        return recorded_at
