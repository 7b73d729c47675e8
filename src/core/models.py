"""
Bracket entities: participants, matches and the bracket that holds them.
"""
from typing import Dict, Iterator, List, Optional


class Participant:
    def __init__(self, id, username):
        self.id = id
        self.username = username

    def __eq__(self, other):
        if not isinstance(other, Participant):
            return NotImplemented
        return str(self.id) == str(other.id) and self.username == other.username

    def __hash__(self):
        return hash((str(self.id), self.username))

    def __repr__(self):
        return f"Participant(id={self.id}, username={self.username})"

    def to_dict(self) -> dict:
        return {'id': self.id, 'username': self.username}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['Participant']:
        if data is None:
            return None
        return cls(id=data['id'], username=data.get('username'))


class Match:
    """One pairing within one round.

    ``next_match_slot`` names the attribute of the next match this winner
    fills: ``'player1'`` or ``'player2'``.
    """

    FIELDS = ('id', 'round', 'match', 'player1', 'player2', 'winner', 'loser',
              'auto_advance', 'source1', 'source2', 'next_match_id',
              'next_match_slot', 'completed_at')

    def __init__(self, id, round, match, player1=None, player2=None, winner=None,
                 loser=None, auto_advance=False, source1=None, source2=None,
                 next_match_id=None, next_match_slot=None, completed_at=None):
        self.id = id
        self.round = round
        self.match = match
        self.player1 = player1
        self.player2 = player2
        self.winner = winner
        self.loser = loser
        self.auto_advance = auto_advance
        self.source1 = source1
        self.source2 = source2
        self.next_match_id = next_match_id
        self.next_match_slot = next_match_slot
        self.completed_at = completed_at

    @property
    def players(self) -> List[Participant]:
        return [p for p in (self.player1, self.player2) if p is not None]

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return all(getattr(self, f) == getattr(other, f) for f in self.FIELDS)

    def __repr__(self):
        return (f"Match(id={self.id}, player1={self.player1}, player2={self.player2}, "
                f"winner={self.winner}, auto_advance={self.auto_advance})")

    def to_dict(self) -> dict:
        data = {
            'id': self.id,
            'round': self.round,
            'match': self.match,
            'player1': self.player1.to_dict() if self.player1 else None,
            'player2': self.player2.to_dict() if self.player2 else None,
            'winner': self.winner.to_dict() if self.winner else None,
            'loser': self.loser.to_dict() if self.loser else None,
            'autoAdvance': self.auto_advance,
            'source1': self.source1,
            'source2': self.source2,
            'nextMatchId': self.next_match_id,
            'nextMatchSlot': self.next_match_slot,
        }
        if self.completed_at:
            data['completedAt'] = self.completed_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Match':
        return cls(
            id=data['id'],
            round=data['round'],
            match=data['match'],
            player1=Participant.from_dict(data.get('player1')),
            player2=Participant.from_dict(data.get('player2')),
            winner=Participant.from_dict(data.get('winner')),
            loser=Participant.from_dict(data.get('loser')),
            auto_advance=bool(data.get('autoAdvance', False)),
            source1=data.get('source1'),
            source2=data.get('source2'),
            next_match_id=data.get('nextMatchId'),
            next_match_slot=data.get('nextMatchSlot'),
            completed_at=data.get('completedAt'),
        )


class Bracket:
    def __init__(self, rounds=None):
        self.rounds = rounds if rounds else []

    def __eq__(self, other):
        if not isinstance(other, Bracket):
            return NotImplemented
        return self.rounds == other.rounds

    def __repr__(self):
        return f"Bracket(rounds={len(self.rounds)}, matches={sum(len(r) for r in self.rounds)})"

    def matches(self) -> Iterator[Match]:
        for round_matches in self.rounds:
            yield from round_matches

    def index(self) -> Dict[str, Match]:
        """Map match id to match, rebuilt from ``rounds`` on every call."""
        return {match.id: match for match in self.matches()}

    def find_match(self, match_id: str) -> Optional[Match]:
        for match in self.matches():
            if match.id == match_id:
                return match
        return None

    @property
    def final_match(self) -> Optional[Match]:
        if not self.rounds or not self.rounds[-1]:
            return None
        return self.rounds[-1][0]

    @property
    def champion(self) -> Optional[Participant]:
        final = self.final_match
        return final.winner if final else None
