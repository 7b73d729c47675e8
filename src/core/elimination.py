"""
Single elimination bracket generation and management.
"""
import math
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional, Sequence

from .errors import IllegalTransitionError, NotFoundError
from .models import Bracket, Match, Participant


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of players in it."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def calculate_bracket_size(num_players: int) -> int:
    """Calculate the bracket size (next power of 2, at least 2)."""
    if num_players <= 0:
        return 0
    return max(2, 2 ** math.ceil(math.log2(num_players)))


def calculate_byes(num_players: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_players) - num_players


def match_id(round_number: int, match_number: int) -> str:
    return f"r{round_number}m{match_number}"


def build_bracket(participants: Sequence[Optional[Participant]]) -> Bracket:
    """
    Build every round of a single elimination bracket.

    Participants fill round 1 slots in the order given; trailing slots up to
    the bracket size are byes. Round 1 match i pairs slots 2i-1 and 2i, and
    each later match is fed by two consecutive matches of the round before
    it (first source -> player1, second source -> player2).

    An empty list gives a bracket with no rounds.
    """
    players = [p for p in participants if p is not None]
    if not players:
        return Bracket(rounds=[])

    bracket_size = calculate_bracket_size(len(players))
    slots: List[Optional[Participant]] = players + [None] * (bracket_size - len(players))

    first_round = []
    for i in range(0, bracket_size, 2):
        number = i // 2 + 1
        first_round.append(Match(
            id=match_id(1, number),
            round=1,
            match=number,
            player1=slots[i],
            player2=slots[i + 1],
        ))

    rounds = [first_round]
    previous_round = first_round
    round_number = 2
    while len(previous_round) > 1:
        current_round = []
        for i in range(0, len(previous_round), 2):
            number = i // 2 + 1
            feeder1 = previous_round[i]
            feeder2 = previous_round[i + 1] if i + 1 < len(previous_round) else None
            match = Match(
                id=match_id(round_number, number),
                round=round_number,
                match=number,
                source1=feeder1.id,
                source2=feeder2.id if feeder2 else None,
            )
            feeder1.next_match_id = match.id
            feeder1.next_match_slot = 'player1'
            if feeder2:
                feeder2.next_match_id = match.id
                feeder2.next_match_slot = 'player2'
            current_round.append(match)
        rounds.append(current_round)
        previous_round = current_round
        round_number += 1

    return Bracket(rounds=rounds)


def _can_produce_winner(match: Match, index: Dict[str, Match]) -> bool:
    """Whether a match has, or can still get, a winner."""
    if match.is_decided or match.player1 is not None or match.player2 is not None:
        return True
    sources = [index.get(s) for s in (match.source1, match.source2) if s]
    return any(_can_produce_winner(source, index) for source in sources if source)


def _slot_is_bye(match: Match, slot: str, index: Dict[str, Match]) -> bool:
    """An empty slot is a bye when nothing upstream can ever fill it."""
    source_id = match.source1 if slot == 'player1' else match.source2
    if not source_id:
        return True
    source = index.get(source_id)
    return source is None or not _can_produce_winner(source, index)


def _resolve_bye(match: Match, index: Dict[str, Match]) -> bool:
    """Auto-advance the lone player of a match whose other slot is a bye."""
    if match.is_decided:
        return False
    if match.player1 is not None and match.player2 is None:
        lone, empty_slot = match.player1, 'player2'
    elif match.player2 is not None and match.player1 is None:
        lone, empty_slot = match.player2, 'player1'
    else:
        return False
    if not _slot_is_bye(match, empty_slot, index):
        return False
    match.winner = lone
    match.auto_advance = True
    return True


def _cascade(index: Dict[str, Match], queue: Deque[Match]) -> List[Match]:
    """
    Push decided winners forward until nothing else resolves.

    Every match in the queue already has a winner. Returns the matches that
    were auto-advanced along the way.
    """
    resolved = []
    while queue:
        match = queue.popleft()
        if not match.next_match_id or match.winner is None:
            continue
        next_match = index.get(match.next_match_id)
        if next_match is None:
            continue
        setattr(next_match, match.next_match_slot, match.winner)
        if _resolve_bye(next_match, index):
            resolved.append(next_match)
            queue.append(next_match)
    return resolved


def propagate_auto_advances(bracket: Bracket) -> List[Match]:
    """
    Resolve every pending bye in place, cascading through later rounds.

    Running it again on a stable bracket changes nothing. Returns the
    matches that were auto-advanced.
    """
    index = bracket.index()
    queue: Deque[Match] = deque()
    resolved = []
    for match in bracket.matches():
        if _resolve_bye(match, index):
            resolved.append(match)
            queue.append(match)
    resolved.extend(_cascade(index, queue))
    return resolved


def apply_match_result(bracket: Bracket, match_id: str, winner_id,
                       completed_at: Optional[str] = None) -> List[Match]:
    """
    Record a reported result and cascade the winner forward.

    Checks run in a fixed order and the bracket is untouched unless all of
    them pass. Returns the later matches that were auto-advanced by the
    cascade, so callers can tally them.

    Raises:
        NotFoundError: no match with that id.
        IllegalTransitionError: the match was auto-advanced, is missing a
            player, is already decided, or the winner is not one of its
            players.
    """
    index = bracket.index()
    match = index.get(match_id)
    if match is None:
        raise NotFoundError("Match not found in bracket.")
    if match.auto_advance:
        raise IllegalTransitionError("Auto-advanced matches cannot be overridden.")
    if match.player1 is None or match.player2 is None:
        raise IllegalTransitionError("Both players must be set before recording a result.")
    if match.is_decided:
        raise IllegalTransitionError("This match result has already been recorded.")

    if str(match.player1.id) == str(winner_id):
        winner, loser = match.player1, match.player2
    elif str(match.player2.id) == str(winner_id):
        winner, loser = match.player2, match.player1
    else:
        raise IllegalTransitionError("Winner must be one of the match participants.")

    match.winner = winner
    match.loser = loser
    match.completed_at = completed_at or datetime.now().isoformat()
    return _cascade(index, deque([match]))


def record_match_result(bracket: Bracket, match_id: str, winner_id,
                        completed_at: Optional[str] = None) -> Bracket:
    """Same as :func:`apply_match_result`, returning the bracket."""
    apply_match_result(bracket, match_id, winner_id, completed_at)
    return bracket


def get_bracket_display(bracket: Bracket) -> Dict:
    """
    Get bracket data formatted for UI display.
    """
    rounds = []
    for round_matches in bracket.rounds:
        rounds.append({
            'name': get_round_name(len(round_matches) * 2),
            'matches': [m.to_dict() for m in round_matches],
        })
    first_round = bracket.rounds[0] if bracket.rounds else []
    champion = bracket.champion
    return {
        'rounds': rounds,
        'bracket_size': len(first_round) * 2,
        'total_rounds': len(bracket.rounds),
        'total_players': sum(len(m.players) for m in first_round),
        'byes': sum(2 - len(m.players) for m in first_round),
        'playable': [m.id for m in bracket.matches()
                     if m.player1 and m.player2 and m.winner is None],
        'champion': champion.to_dict() if champion else None,
    }
