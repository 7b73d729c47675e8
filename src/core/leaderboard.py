"""
Leaderboard calculations over player stat rows.

A stat row is a dict with ``player_id``, ``game``, ``kit``, ``tier`` and
``points`` keys, as stored in ``player_stats.yaml``.
"""
from typing import Dict, List, Optional

TIERS = ["LT5", "HT5", "LT4", "HT4", "LT3", "HT3", "LT2", "HT2", "LT1", "HT1"]


def parse_points(value, default: int = 0) -> int:
    """Parse submitted points, falling back to ``default`` for blanks and junk."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def total_points(stats: List[Dict]) -> int:
    return sum(s.get('points', 0) for s in stats)


def aggregate_game_leaderboard(stats: List[Dict], players: Dict) -> List[Dict]:
    """
    Sum points per player for one game.

    Args:
        stats: Stat rows for the game
        players: Mapping of player id to player dict

    Returns:
        List of {'player_id', 'username', 'total_points', 'kits'} sorted by
        total points, highest first.
    """
    by_player = {}
    for stat in stats:
        pid = stat['player_id']
        if pid not in by_player:
            player = players.get(pid) or {}
            by_player[pid] = {
                'player_id': pid,
                'username': player.get('username', f'Player {pid}'),
                'total_points': 0,
                'kits': [],
            }
        entry = by_player[pid]
        entry['total_points'] += stat.get('points', 0)
        entry['kits'].append({'kit': stat.get('kit'), 'tier': stat.get('tier')})
    return sorted(by_player.values(), key=lambda e: e['total_points'], reverse=True)


def player_rank(stats: List[Dict], player_id) -> int:
    """1-based rank of a player by total points in a game, 0 if unranked."""
    totals = {}
    for stat in stats:
        totals[stat['player_id']] = totals.get(stat['player_id'], 0) + stat.get('points', 0)
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    for position, (pid, _) in enumerate(ordered, start=1):
        if str(pid) == str(player_id):
            return position
    return 0


def kit_labels(stats: List[Dict]) -> List[str]:
    """Distinct ``"kit (tier)"`` labels in first-seen order."""
    labels = []
    for stat in stats:
        label = f"{stat.get('kit')} ({stat.get('tier')})"
        if label not in labels:
            labels.append(label)
    return labels


def compare_players(stats1: List[Dict], stats2: List[Dict]) -> Dict:
    """Head-to-head summary of two players' stat rows."""
    total1 = total_points(stats1)
    total2 = total_points(stats2)
    combined = total1 + total2
    return {
        'total1': total1,
        'total2': total2,
        'total_games1': len(stats1),
        'total_games2': len(stats2),
        'avg1': round(total1 / len(stats1), 1) if stats1 else 0,
        'avg2': round(total2 / len(stats2), 1) if stats2 else 0,
        'win_rate1': round(total1 / combined * 100, 1) if combined else 0,
        'win_rate2': round(total2 / combined * 100, 1) if combined else 0,
        'kits1': kit_labels(stats1),
        'kits2': kit_labels(stats2),
    }


def qualifying_achievements(achievements: List[Dict], points: int, tier: Optional[str]) -> List[Dict]:
    """Achievements whose condition is met by a points total or a tier."""
    qualified = []
    for ach in achievements:
        condition = ach.get('condition_type')
        value = ach.get('condition_value')
        if condition == 'points' and points >= parse_points(value, default=points + 1):
            qualified.append(ach)
        elif condition == 'tier' and tier == value:
            qualified.append(ach)
    return qualified
