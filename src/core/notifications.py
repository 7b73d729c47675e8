"""
Outbound calls: Discord tier notifications and Minecraft profile lookups.

Both are best effort. Failures are logged and reported through the return
value so a submission never fails because Discord or Mojang is down.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import requests

logger = logging.getLogger(__name__)

MOJANG_PROFILE_URL = 'https://api.mojang.com/users/profiles/minecraft/{username}'
HEAD_URL = 'https://crafatar.com/avatars/{uuid}?size=128&overlay'
REQUEST_TIMEOUT = 10

COLOR_UPDATED = 0xF1C40F
COLOR_NEW = 0x2ECC71


def build_tier_embed(username: str, game: str, kit: str, tier: str, updated: bool) -> dict:
    verb = 'updated' if updated else 'earned'
    return {
        'title': '🔁 Tier Updated' if updated else '🌟 New Tier Earned!',
        'description': (f'**{username}** has {verb} a tier in **{game}**!\n\n'
                        f'🎮 **Kit:** {kit}\n🏅 **Tier:** {tier}'),
        'color': COLOR_UPDATED if updated else COLOR_NEW,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


def send_tier_update(webhook_url: Optional[str], username: str, game: str, kit: str,
                     tier: str, updated: bool) -> bool:
    """Post a tier embed to a Discord webhook. Returns True if Discord accepted it."""
    if not webhook_url:
        return False
    payload = {'embeds': [build_tier_embed(username, game, kit, tier, updated)]}
    try:
        response = requests.post(webhook_url, json=payload, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f'Error sending Discord webhook: {e}')
        return False
    return True


def get_minecraft_uuid(username: str) -> Optional[str]:
    """Look up a Minecraft account id, or None if it can't be resolved."""
    try:
        response = requests.get(MOJANG_PROFILE_URL.format(username=username), timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.warning(f'Error fetching Minecraft UUID for {username}: {e}')
        return None
    if not response.ok:
        return None
    try:
        return response.json().get('id')
    except ValueError:
        logger.warning(f'Unexpected Mojang response for {username}')
        return None


def minecraft_head_url(uuid: Optional[str]) -> Optional[str]:
    return HEAD_URL.format(uuid=uuid) if uuid else None
