"""
Conversion between brackets and the value stored on an event record.
"""
import json
import logging
from typing import Any

from .models import Bracket, Match

logger = logging.getLogger(__name__)


def serialize_bracket(bracket: Bracket) -> dict:
    """Plain ``{'rounds': [[match, ...], ...]}`` structure for storage."""
    return {'rounds': [[m.to_dict() for m in round_matches] for round_matches in bracket.rounds]}


def bracket_to_json(bracket: Bracket) -> str:
    return json.dumps(serialize_bracket(bracket))


def parse_bracket(value: Any) -> Bracket:
    """
    Read a stored bracket back, from either a parsed structure or JSON text.

    Anything that does not look like a bracket (missing or non-list
    ``rounds``, bad JSON, malformed matches) becomes an empty bracket.
    The problem is logged, never raised.
    """
    if isinstance(value, Bracket):
        return value
    if value is None:
        return Bracket()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, str):
        if not value.strip():
            return Bracket()
        try:
            value = json.loads(value)
        except ValueError as e:
            logger.warning(f'Stored bracket is not valid JSON: {e}')
            return Bracket()

    if not isinstance(value, dict):
        logger.warning(f'Stored bracket has unexpected type {type(value).__name__}')
        return Bracket()
    rounds = value.get('rounds')
    if not isinstance(rounds, list):
        if value:
            logger.warning(f'Stored bracket has no usable rounds: {rounds!r}')
        return Bracket()

    try:
        parsed = []
        for round_data in rounds:
            if not isinstance(round_data, list):
                raise TypeError('round is not a list')
            parsed.append([Match.from_dict(m) for m in round_data])
    except (KeyError, TypeError, AttributeError) as e:
        logger.warning(f'Stored bracket has malformed matches: {e}')
        return Bracket()
    return Bracket(rounds=parsed)
