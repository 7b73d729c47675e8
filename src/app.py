"""
Flask web application for RankTiers.
"""
import os
import hmac
import random
import time
import yaml
from datetime import datetime, timedelta
from functools import wraps
from filelock import FileLock, Timeout
from flask import Flask, request, jsonify, redirect, session
from werkzeug.security import generate_password_hash, check_password_hash
from werkzeug.utils import secure_filename
from core.errors import BracketError, InvalidInputError, NotFoundError, IllegalTransitionError, CollaboratorError
from core.elimination import build_bracket, propagate_auto_advances, apply_match_result, get_bracket_display
from core.events import validate_event_fields, resolve_tier_filter, select_participants, initial_records, apply_result_tally
from core.leaderboard import TIERS, parse_points, total_points, aggregate_game_leaderboard, player_rank, compare_players, qualifying_achievements
from core.notifications import send_tier_update, get_minecraft_uuid, minecraft_head_url
from core.serialization import serialize_bracket, parse_bracket

app = Flask(__name__)


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('RANKTIERS_DATA_DIR', os.path.join(BASE_DIR, 'data'))
os.makedirs(DATA_DIR, exist_ok=True)

app.secret_key = _get_or_create_secret_key()
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)

UPLOAD_DIR = os.environ.get('UPLOAD_DIR', os.path.join(DATA_DIR, 'uploads'))
ALLOWED_SCREENSHOT_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp'}
MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10 MB
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_SIZE

DISCORD_WEBHOOK_URL = os.environ.get('DISCORD_WEBHOOK_URL')
DISCORD_INVITE_URL = os.environ.get('DISCORD_INVITE_URL', 'https://discord.gg/ranktiers')
ADMIN_USER = os.environ.get('ADMIN_USER')
ADMIN_PASS = os.environ.get('ADMIN_PASS')

# Tables an admin may delete rows from
DELETABLE_TABLES = {'games', 'players', 'player_stats'}

_data_lock = FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)

ERROR_STATUS = {
    InvalidInputError: 400,
    NotFoundError: 404,
    IllegalTransitionError: 409,
    CollaboratorError: 500,
}


def _table_path(table: str) -> str:
    return os.path.join(DATA_DIR, f'{table}.yaml')


def load_table(table: str) -> list:
    """Load the rows of one table from its YAML file."""
    path = _table_path(table)
    if not os.path.exists(path):
        return []
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return []
    if not data or not isinstance(data, dict):
        return []
    rows = data.get(table, [])
    return rows if isinstance(rows, list) else []


def save_table(table: str, rows: list):
    """Save the rows of one table to its YAML file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(_table_path(table), 'w', encoding='utf-8') as f:
        yaml.dump({table: rows}, f, default_flow_style=False)


def _next_id(rows: list) -> int:
    return max((r['id'] for r in rows if isinstance(r.get('id'), int)), default=0) + 1


def _find_row(rows: list, row_id):
    for row in rows:
        if str(row.get('id')) == str(row_id):
            return row
    return None


def _players_by_id() -> dict:
    return {p['id']: p for p in load_table('players')}


def _find_player_by_username(username: str):
    return next((p for p in load_table('players') if p.get('username') == username), None)


def _error_response(error: BracketError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(error, cls)), 400)
    return jsonify({'success': False, 'error': str(error)}), status


def _json_body():
    """The JSON body if it is an object, else None."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _request_data():
    """JSON object body if one was sent, otherwise the form."""
    return _json_body() or request.form


def _request_list(key: str):
    data = _json_body()
    if data is not None:
        return data.get(key)
    values = request.form.getlist(key)
    return values if len(values) != 1 else values[0]


# -------------------- ACCOUNTS --------------------

def create_user(email: str, password: str) -> tuple:
    """Create a new user. Returns (success, message)."""
    email = (email or '').lower().strip()
    if not email or not password:
        return False, 'Email and password required'
    with _data_lock:
        users = load_table('users')
        if any(u['email'] == email for u in users):
            return False, 'Email already registered'
        users.append({
            'id': _next_id(users),
            'email': email,
            'password_hash': generate_password_hash(password),
            'created': datetime.now().isoformat()
        })
        save_table('users', users)
    return True, 'Account created successfully.'


def authenticate_user(email: str, password: str):
    """Check email/password. Returns the user dict if valid, else None."""
    email = (email or '').lower().strip()
    for u in load_table('users'):
        if u['email'] == email:
            return u if check_password_hash(u['password_hash'], password or '') else None
    return None


def login_required(f):
    """Reject requests without a logged-in user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user' not in session:
            return jsonify({'success': False, 'error': 'Login required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Reject requests without an admin session."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('admin'):
            return jsonify({'success': False, 'error': 'Admin login required'}), 401
        return f(*args, **kwargs)
    return decorated_function


# -------------------- EVENTS --------------------

def load_event_bracket(event: dict):
    """Bracket stored on an event, empty if missing or corrupt."""
    return parse_bracket(event.get('bracket'))


def create_event(name, game, kit, tiers_all=None, tiers=None, rng=None) -> dict:
    """
    Create a bracket event from every player with a stat in the game and kit.

    Participants are shuffled with ``rng`` (the ``random`` module by
    default), byes are resolved immediately and a zeroed win/loss record is
    stored for each participant. Every auto-advanced match counts as a
    win for the player who advanced.

    Raises:
        InvalidInputError: missing fields, unknown tiers, or fewer than two
            eligible players.
        CollaboratorError: the store could not be written.
    """
    validate_event_fields(name, game, kit)
    selected_tiers = resolve_tier_filter(tiers_all, tiers)

    participants = select_participants(load_table('player_stats'), _players_by_id(),
                                       game, kit, selected_tiers)
    if not participants:
        raise InvalidInputError('No players found for the selected criteria.')
    (rng or random).shuffle(participants)
    if len(participants) < 2:
        raise InvalidInputError('At least two players are required to create an event.')

    bracket = build_bracket(participants)
    auto_advanced = propagate_auto_advances(bracket)

    try:
        with _data_lock:
            events = load_table('events')
            event = {
                'id': _next_id(events),
                'name': name.strip(),
                'game': game,
                'kit': kit,
                'tiers': selected_tiers,
                'bracket': serialize_bracket(bracket),
                'created_at': datetime.now().isoformat(),
            }
            events.append(event)
            save_table('events', events)

            records = load_table('event_records')
            records.extend(initial_records(event['id'], participants))
            for advanced in auto_advanced:
                apply_result_tally(records, event['id'], advanced.winner, None)
            save_table('event_records', records)
    except (Timeout, OSError) as e:
        app.logger.exception('Failed to create event')
        raise CollaboratorError('Failed to create event. Please try again.') from e

    app.logger.info(f'Created event {event["id"]} "{event["name"]}" with '
                    f'{len(participants)} players, {len(auto_advanced)} auto-advanced')
    return event


def report_event_result(event_id, match_id, winner_id) -> dict:
    """
    Record a match result on a stored event and tally wins and losses.
    Matches auto-advanced by the cascade count as wins too.

    The whole read-modify-write runs under the data lock, so concurrent
    reports for the same match commit at most one winner.

    Raises:
        InvalidInputError: match or winner missing.
        NotFoundError: unknown event or match.
        IllegalTransitionError: the match can't take this result.
        CollaboratorError: the store could not be used.
    """
    if not match_id or winner_id in (None, ''):
        raise InvalidInputError('Match and winner are required.')

    try:
        with _data_lock:
            events = load_table('events')
            event = _find_row(events, event_id)
            if event is None:
                raise NotFoundError('Event not found.')

            bracket = load_event_bracket(event)
            auto_advanced = apply_match_result(bracket, match_id, winner_id)
            match = bracket.find_match(match_id)

            event['bracket'] = serialize_bracket(bracket)
            save_table('events', events)

            records = apply_result_tally(load_table('event_records'), event['id'],
                                         match.winner, match.loser)
            for advanced in auto_advanced:
                apply_result_tally(records, event['id'], advanced.winner, None)
            save_table('event_records', records)
    except (Timeout, OSError) as e:
        app.logger.exception('Failed to record match')
        raise CollaboratorError('Failed to record match result.') from e

    app.logger.info(f'Event {event["id"]}: {match.winner.username} beat {match.loser.username} in {match_id}')
    return event


def _event_records(event_id) -> list:
    players = _players_by_id()
    records = []
    for record in load_table('event_records'):
        if str(record.get('event_id')) != str(event_id):
            continue
        player = players.get(record['player_id']) or {}
        records.append({**record, 'username': player.get('username')})
    return records


def _event_view(event: dict) -> dict:
    summary = {k: v for k, v in event.items() if k != 'bracket'}
    return {
        'success': True,
        'event': summary,
        'bracket': get_bracket_display(load_event_bracket(event)),
        'records': _event_records(event['id']),
    }


def _event_summaries() -> list:
    events = [{k: e.get(k) for k in ('id', 'name', 'game', 'kit', 'created_at')}
              for e in load_table('events')]
    return sorted(events, key=lambda e: e.get('created_at') or '', reverse=True)


@app.route('/events')
def events_list():
    """List events, newest first."""
    return jsonify({'success': True, 'events': _event_summaries()})


@app.route('/events/<event_id>')
def event_detail(event_id):
    """Public view of one event's bracket and records."""
    event = _find_row(load_table('events'), event_id)
    if event is None:
        return _error_response(NotFoundError('Event not found.'))
    return jsonify(_event_view(event))


@app.route('/admin/events', methods=['POST'])
@admin_required
def admin_create_event():
    """Create an event and its bracket."""
    data = _request_data()
    try:
        event = create_event(
            data.get('name'),
            data.get('game'),
            data.get('kit'),
            tiers_all=data.get('tiers_all'),
            tiers=_request_list('tiers'),
        )
    except BracketError as e:
        app.logger.warning(f'Event creation rejected: {e}')
        return _error_response(e)
    return jsonify({
        'success': True,
        'message': f'Event "{event["name"]}" created successfully.',
        'event_id': event['id'],
    }), 201


@app.route('/admin/events/<event_id>')
@admin_required
def admin_event_detail(event_id):
    """Admin view of an event, including which matches can be reported."""
    event = _find_row(load_table('events'), event_id)
    if event is None:
        return _error_response(NotFoundError('Event not found.'))
    return jsonify(_event_view(event))


@app.route('/admin/events/<event_id>/report', methods=['POST'])
@admin_required
def admin_report_result(event_id):
    """Record a match result. Body: matchId, winnerId."""
    data = _request_data()
    try:
        event = report_event_result(event_id, data.get('matchId'), data.get('winnerId'))
    except BracketError as e:
        app.logger.warning(f'Result for event {event_id} rejected: {e}')
        return _error_response(e)
    return jsonify({'success': True, 'message': 'Match result recorded.', **_event_view(event)})


# -------------------- AUTH ROUTES --------------------

@app.route('/register', methods=['POST'])
def register_page():
    """Create an account."""
    data = _request_data()
    ok, msg = create_user(data.get('email'), data.get('password'))
    if not ok:
        return jsonify({'success': False, 'error': msg}), 400
    return jsonify({'success': True, 'message': msg}), 201


@app.route('/login', methods=['POST'])
def login_page():
    """Log a user in."""
    data = _request_data()
    user = authenticate_user(data.get('email'), data.get('password'))
    if not user:
        return jsonify({'success': False, 'error': 'Invalid credentials'}), 401
    session['user'] = {'id': user['id'], 'email': user['email']}
    session.permanent = True
    return jsonify({'success': True, 'user': session['user']})


@app.route('/logout')
def logout():
    """Clear the session."""
    session.clear()
    return jsonify({'success': True})


@app.route('/account')
@login_required
def account():
    """Linked game accounts of the logged-in user."""
    user_id = session['user']['id']
    linked = [a for a in load_table('linked_accounts') if a.get('user_id') == user_id]
    games = sorted(load_table('games'), key=lambda g: g.get('name', ''))
    return jsonify({'success': True, 'user': session['user'], 'linked': linked, 'games': games})


@app.route('/account/link', methods=['POST'])
@login_required
def account_link():
    """Link (or relink) a game account to the logged-in user."""
    data = _request_data()
    game = (data.get('game') or '').strip()
    game_username = (data.get('game_username') or '').strip()
    game_id = (data.get('game_id') or '').strip() or None
    if not game or not game_username:
        return jsonify({'success': False, 'error': 'Game and game username are required.'}), 400
    if game == 'Clash Royale' and not game_id:
        return jsonify({'success': False, 'error': 'Clash Royale ID is required.'}), 400

    user_id = session['user']['id']
    with _data_lock:
        accounts = load_table('linked_accounts')
        existing = next((a for a in accounts if a.get('user_id') == user_id and a.get('game') == game), None)
        if existing:
            existing.update({'game_username': game_username, 'game_id': game_id})
        else:
            accounts.append({
                'id': _next_id(accounts),
                'user_id': user_id,
                'game': game,
                'game_username': game_username,
                'game_id': game_id if game == 'Clash Royale' else None,
            })
        save_table('linked_accounts', accounts)
    return jsonify({'success': True})


# -------------------- ADMIN --------------------

@app.route('/admin/login', methods=['POST'])
def admin_login():
    """Admin login against ADMIN_USER / ADMIN_PASS."""
    data = _request_data()
    username = data.get('username') or ''
    password = data.get('password') or ''
    if (ADMIN_USER and ADMIN_PASS
            and hmac.compare_digest(username, ADMIN_USER)
            and hmac.compare_digest(password, ADMIN_PASS)):
        session['admin'] = {'username': username}
        return jsonify({'success': True})
    return jsonify({'success': False, 'error': 'Invalid credentials'}), 401


@app.route('/admin/logout')
def admin_logout():
    session.pop('admin', None)
    return jsonify({'success': True})


@app.route('/admin/dashboard')
@admin_required
def admin_dashboard():
    """Everything an admin manages, in one response."""
    players = _players_by_id()
    stats = [{**s, 'username': (players.get(s['player_id']) or {}).get('username')}
             for s in load_table('player_stats')]
    stats.sort(key=lambda s: s.get('points', 0), reverse=True)
    return jsonify({
        'success': True,
        'admin': session['admin'],
        'games': sorted(load_table('games'), key=lambda g: g.get('name', '')),
        'players': sorted(players.values(), key=lambda p: p.get('username', '')),
        'stats': stats,
        'events': _event_summaries(),
        'tiers': TIERS,
    })


def _add_named_row(table: str, field: str, value: str):
    with _data_lock:
        rows = load_table(table)
        row = {'id': _next_id(rows), field: value}
        rows.append(row)
        save_table(table, rows)
    return row


@app.route('/admin/games', methods=['POST'])
@admin_required
def admin_add_game():
    name = (_request_data().get('name') or '').strip()
    if not name:
        return jsonify({'success': False, 'error': 'Game name is required.'}), 400
    return jsonify({'success': True, 'game': _add_named_row('games', 'name', name)}), 201


@app.route('/admin/players', methods=['POST'])
@admin_required
def admin_add_player():
    username = (_request_data().get('username') or '').strip()
    if not username:
        return jsonify({'success': False, 'error': 'Username is required.'}), 400
    return jsonify({'success': True, 'player': _add_named_row('players', 'username', username)}), 201


@app.route('/admin/stats/<stat_id>', methods=['POST'])
@admin_required
def admin_update_stat(stat_id):
    """Change a stat's tier or points and announce it on Discord."""
    data = _request_data()
    tier = data.get('tier')
    if tier and tier not in TIERS:
        return jsonify({'success': False, 'error': 'Invalid tier selected'}), 400

    with _data_lock:
        stats = load_table('player_stats')
        stat = _find_row(stats, stat_id)
        if stat is None:
            return jsonify({'success': False, 'error': 'Stat not found'}), 404
        stat['tier'] = tier or stat['tier']
        stat['points'] = parse_points(data.get('points'), default=stat.get('points', 0))
        save_table('player_stats', stats)

    player = _players_by_id().get(stat['player_id']) or {}
    send_tier_update(DISCORD_WEBHOOK_URL, player.get('username', f'Player {stat["player_id"]}'),
                     stat['game'], stat['kit'], stat['tier'], updated=True)
    return jsonify({'success': True, 'stat': stat})


@app.route('/admin/delete/<table>/<row_id>', methods=['POST'])
@admin_required
def admin_delete(table, row_id):
    """Delete a game, player or stat row."""
    if table not in DELETABLE_TABLES:
        return jsonify({'success': False, 'error': 'Invalid table'}), 400
    with _data_lock:
        rows = load_table(table)
        remaining = [r for r in rows if str(r.get('id')) != str(row_id)]
        save_table(table, remaining)
    return jsonify({'success': True, 'deleted': len(rows) - len(remaining)})


# -------------------- PUBLIC PAGES --------------------

@app.route('/')
def index():
    """Games, plus the linked accounts of a logged-in user."""
    linked = []
    if 'user' in session:
        linked = [a for a in load_table('linked_accounts') if a.get('user_id') == session['user']['id']]
    games = sorted(load_table('games'), key=lambda g: g.get('name', ''))
    return jsonify({'success': True, 'games': games, 'user': session.get('user'), 'linked_accounts': linked})


@app.route('/discord')
def discord():
    return redirect(DISCORD_INVITE_URL)


@app.route('/game/<name>')
def game_leaderboard(name):
    """Players of a game ranked by total points."""
    stats = [s for s in load_table('player_stats') if s.get('game') == name]
    user_linked = []
    if 'user' in session:
        user_linked = [a for a in load_table('linked_accounts')
                       if a.get('user_id') == session['user']['id'] and a.get('game') == name]
    return jsonify({
        'success': True,
        'game': name,
        'stats': aggregate_game_leaderboard(stats, _players_by_id()),
        'user_linked': user_linked,
    })


@app.route('/api/games/<game>/players/<username>')
def api_player_card(game, username):
    """A player's points, kits and rank within one game."""
    player = _find_player_by_username(username)
    if not player:
        return jsonify({'success': False, 'error': f'Player {username} not found.'}), 404
    game_stats = [s for s in load_table('player_stats') if s.get('game') == game]
    stats = [s for s in game_stats if s['player_id'] == player['id']]
    if not stats:
        return jsonify({'success': False, 'error': f'{username} has no stats in {game}.'}), 404

    head_url = None
    if game.lower() == 'minecraft':
        head_url = minecraft_head_url(get_minecraft_uuid(username))
    return jsonify({
        'success': True,
        'username': username,
        'game': game,
        'total_points': total_points(stats),
        'kits': [f"{s['kit']} ({s['tier']})" for s in stats],
        'rank': player_rank(game_stats, player['id']),
        'head_url': head_url,
    })


@app.route('/profile/<username>')
def profile(username):
    """A player's stats, achievements and event records."""
    player = _find_player_by_username(username)
    if not player:
        return jsonify({'success': False, 'error': 'Player not found'}), 404

    stats = [{k: s.get(k) for k in ('game', 'kit', 'tier', 'points')}
             for s in load_table('player_stats') if s['player_id'] == player['id']]
    stats.sort(key=lambda s: s.get('points', 0), reverse=True)

    achievements_by_id = {a['id']: a for a in load_table('achievements')}
    achievements = []
    for earned in load_table('player_achievements'):
        if earned.get('player_id') != player['id']:
            continue
        ach = achievements_by_id.get(earned.get('achievement_id')) or {}
        achievements.append({
            'earned_at': earned.get('earned_at'),
            'name': ach.get('name'),
            'description': ach.get('description'),
            'icon': ach.get('icon'),
        })

    events_by_id = {e['id']: e for e in load_table('events')}
    event_records = []
    for record in load_table('event_records'):
        if record.get('player_id') != player['id']:
            continue
        event = events_by_id.get(record.get('event_id')) or {}
        event_records.append({
            'event_id': record.get('event_id'),
            'wins': record.get('wins', 0),
            'losses': record.get('losses', 0),
            'event': {k: event.get(k) for k in ('name', 'game', 'kit')},
        })

    mc_uuid = None
    if any((s.get('game') or '').lower() == 'minecraft' for s in stats):
        mc_uuid = get_minecraft_uuid(username)

    return jsonify({
        'success': True,
        'player': player,
        'stats': stats,
        'total_points': total_points(stats),
        'achievements': achievements,
        'event_records': event_records,
        'mc_uuid': mc_uuid,
    })


@app.route('/compare')
def compare():
    """Compare two players' overall points and kits."""
    name1 = request.args.get('player1')
    name2 = request.args.get('player2')
    if not name1 or not name2:
        return jsonify({'success': False, 'error': 'Please enter both players.'}), 400
    p1 = _find_player_by_username(name1)
    p2 = _find_player_by_username(name2)
    if not p1 or not p2:
        return jsonify({'success': False, 'error': 'Player not found.'}), 404

    stats = load_table('player_stats')
    s1 = [s for s in stats if s['player_id'] == p1['id']]
    s2 = [s for s in stats if s['player_id'] == p2['id']]
    return jsonify({'success': True, 'player1': p1, 'player2': p2, **compare_players(s1, s2)})


# -------------------- SUBMISSIONS --------------------

def _save_screenshot(upload):
    """Store an uploaded screenshot, returning its file name (or None)."""
    if not upload or not upload.filename:
        return None
    name = secure_filename(upload.filename)
    ext = os.path.splitext(name)[1].lower()
    if ext not in ALLOWED_SCREENSHOT_EXTENSIONS:
        raise InvalidInputError(f'Screenshot must be one of: {", ".join(sorted(ALLOWED_SCREENSHOT_EXTENSIONS))}')
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    filename = f'{int(time.time() * 1000)}-{name}'
    upload.save(os.path.join(UPLOAD_DIR, filename))
    return filename


def _award_achievements(player_id, points: int, tier: str) -> list:
    """Store newly earned achievements. Must be called with the data lock held."""
    earned = load_table('player_achievements')
    awarded = []
    for ach in qualifying_achievements(load_table('achievements'), points, tier):
        if any(e.get('player_id') == player_id and e.get('achievement_id') == ach['id'] for e in earned):
            continue
        earned.append({
            'id': _next_id(earned),
            'player_id': player_id,
            'achievement_id': ach['id'],
            'earned_at': datetime.now().isoformat(),
        })
        awarded.append(ach)
    if awarded:
        save_table('player_achievements', earned)
    return awarded


@app.route('/submit', methods=['POST'])
def submit():
    """Submit a tier result for a player, creating the player if needed."""
    player_name = (request.form.get('player_name') or '').strip()
    game = (request.form.get('game') or '').strip()
    kit = (request.form.get('kit') or '').strip()
    tier = request.form.get('tier')
    points_raw = request.form.get('points')

    if tier not in TIERS:
        return jsonify({'success': False, 'error': 'Invalid tier selected'}), 400
    if not player_name or not game or not kit:
        return jsonify({'success': False, 'error': 'Player name, game, and kit are required.'}), 400

    try:
        screenshot = _save_screenshot(request.files.get('screenshot'))
    except InvalidInputError as e:
        return _error_response(e)

    points = parse_points(points_raw)
    with _data_lock:
        players = load_table('players')
        player = next((p for p in players if p.get('username') == player_name), None)
        if player is None:
            player = {'id': _next_id(players), 'username': player_name}
            players.append(player)
            save_table('players', players)

        stats = load_table('player_stats')
        existing = next((s for s in stats if s['player_id'] == player['id']
                         and s.get('game') == game and s.get('kit') == kit), None)
        updated = existing is not None
        if existing:
            existing['tier'] = tier
            existing['points'] = parse_points(points_raw, default=existing.get('points', 0))
        else:
            stats.append({
                'id': _next_id(stats),
                'player_id': player['id'],
                'game': game,
                'kit': kit,
                'tier': tier,
                'points': points,
            })
        save_table('player_stats', stats)

        submissions = load_table('submissions')
        submissions.append({
            'id': _next_id(submissions),
            'player_id': player['id'],
            'player_name': player_name,
            'game': game,
            'kit': kit,
            'tier': tier,
            'points': points,
            'screenshot': screenshot,
            'created_at': datetime.now().isoformat(),
        })
        save_table('submissions', submissions)

        awarded = _award_achievements(player['id'], points, tier)

    send_tier_update(DISCORD_WEBHOOK_URL, player['username'], game, kit, tier, updated)

    message = ('Tier updated successfully and notification sent!' if updated
               else 'Submission received. Awaiting admin review.')
    return jsonify({
        'success': True,
        'message': message,
        'updated': updated,
        'achievements': [a.get('name') for a in awarded],
    })
